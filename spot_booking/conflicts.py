from __future__ import annotations

from typing import Iterable

from .booking import Interval, overlaps
from .yaml_store import ReservationRecord, ReservationYamlRepository


def conflicting_reservations(
    candidate: Interval,
    reservations: Iterable[ReservationRecord],
    exclude_reservation_id: str | None = None,
) -> list[ReservationRecord]:
    """Return every active reservation in the snapshot whose stay overlaps the candidate."""
    return [
        record
        for record in reservations
        if record.is_active
        and record.reservation_id != exclude_reservation_id
        and overlaps(candidate, record.interval)
    ]


def find_conflicts(
    repository: ReservationYamlRepository,
    resource_id: str,
    candidate: Interval,
    exclude_reservation_id: str | None = None,
) -> list[ReservationRecord]:
    """Check the candidate against the resource's current active reservations.

    Call this inside ``repository.resource_section(resource_id)`` and perform the
    write before leaving the section; otherwise two bookings can both see a
    clear ledger and both commit.
    """
    active = repository.list_active(resource_id)
    return sorted(
        conflicting_reservations(candidate, active, exclude_reservation_id),
        key=lambda record: (record.start, record.end),
    )
