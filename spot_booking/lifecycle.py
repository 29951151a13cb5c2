from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Sequence

from .booking import Interval, coerce_interval
from .conflicts import find_conflicts
from .errors import ConflictError, ForbiddenError, LifecycleError
from .spots import SpotYamlCatalog
from .yaml_store import STATUS_CANCELLED, ReservationRecord, ReservationYamlRepository


class ReservationManager:
    """Create, modify and cancel bookings against the reservation ledger.

    Cheap checks (ownership, input, temporal state) run before the resource
    section is entered; the conflict check and the write share one section.
    """

    def __init__(
        self,
        repository: ReservationYamlRepository,
        catalog: SpotYamlCatalog,
        now_provider: Callable[[], datetime] | None = None,
    ) -> None:
        self.repository = repository
        self.catalog = catalog
        self.clock: Callable[[], datetime] = now_provider or datetime.now

    def create(
        self,
        resource_id: str,
        requester_id: str,
        interval: Interval | Sequence[Any],
    ) -> ReservationRecord:
        candidate = coerce_interval(interval)
        self.catalog.get_spot(resource_id)

        with self.repository.resource_section(resource_id):
            conflicts = find_conflicts(self.repository, resource_id, candidate)
            if conflicts:
                raise ConflictError(candidate, conflicts)
            return self.repository.insert(resource_id, requester_id, candidate, now=self.clock())

    def modify(
        self,
        reservation_id: str,
        requester_id: str,
        interval: Interval | Sequence[Any],
    ) -> ReservationRecord:
        current = self.repository.get(reservation_id)
        if current.requester_id != requester_id:
            raise ForbiddenError("Booking must belong to the current user")

        candidate = coerce_interval(interval)
        now = self.clock()
        _ensure_modifiable(current, now)

        with self.repository.resource_section(current.resource_id):
            latest = self.repository.get(reservation_id)
            _ensure_modifiable(latest, now)

            conflicts = find_conflicts(
                self.repository,
                latest.resource_id,
                candidate,
                exclude_reservation_id=reservation_id,
            )
            if conflicts:
                raise ConflictError(candidate, conflicts)
            return self.repository.update(reservation_id, candidate, now=now)

    def cancel(self, reservation_id: str, requester_id: str) -> ReservationRecord:
        current = self.repository.get(reservation_id)
        if not self._may_cancel(current, requester_id):
            raise ForbiddenError("Booking must belong to the current user or the Spot must belong to the current user")

        now = self.clock()
        _ensure_cancellable(current, now)

        with self.repository.resource_section(current.resource_id):
            latest = self.repository.get(reservation_id)
            _ensure_cancellable(latest, now)
            return self.repository.set_status(reservation_id, STATUS_CANCELLED, now=now)

    def _may_cancel(self, record: ReservationRecord, requester_id: str) -> bool:
        if record.requester_id == requester_id:
            return True
        spot = self.catalog.find_spot(record.resource_id)
        return spot is not None and spot.owner_id == requester_id


def _ensure_modifiable(record: ReservationRecord, now: datetime) -> None:
    if not record.is_active:
        raise LifecycleError("Cancelled bookings cannot be modified")
    if record.end <= now.date():
        raise LifecycleError("Past bookings can't be modified")


def _ensure_cancellable(record: ReservationRecord, now: datetime) -> None:
    if not record.is_active:
        raise LifecycleError("Booking has already been cancelled")
    if record.start <= now.date():
        raise LifecycleError("Bookings that have been started can't be deleted")
