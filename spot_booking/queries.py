from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .spots import Spot, SpotYamlCatalog
from .yaml_store import ReservationRecord, ReservationYamlRepository

PERSPECTIVE_OWNER = "owner"
PERSPECTIVE_PUBLIC = "public"


@dataclass(frozen=True)
class ReservationView:
    reservation_id: str
    resource_id: str
    start: str
    end: str
    status: str
    requester_id: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.reservation_id,
            "spotId": self.resource_id,
            "startDate": self.start,
            "endDate": self.end,
            "status": self.status,
        }
        if self.requester_id is not None:
            payload["userId"] = self.requester_id
        if self.created_at is not None:
            payload["createdAt"] = self.created_at
        if self.updated_at is not None:
            payload["updatedAt"] = self.updated_at
        return payload


@dataclass(frozen=True)
class RequesterReservationView:
    reservation: ReservationView
    spot: dict[str, Any] | None

    def to_dict(self) -> dict[str, Any]:
        return {**self.reservation.to_dict(), "Spot": self.spot}


def project_reservation(record: ReservationRecord, perspective: str = PERSPECTIVE_OWNER) -> ReservationView:
    if perspective not in (PERSPECTIVE_OWNER, PERSPECTIVE_PUBLIC):
        raise ValueError(f"Unknown perspective: {perspective}")

    if perspective == PERSPECTIVE_PUBLIC:
        return ReservationView(
            reservation_id=record.reservation_id,
            resource_id=record.resource_id,
            start=record.start.isoformat(),
            end=record.end.isoformat(),
            status=record.status,
        )
    return ReservationView(
        reservation_id=record.reservation_id,
        resource_id=record.resource_id,
        start=record.start.isoformat(),
        end=record.end.isoformat(),
        status=record.status,
        requester_id=record.requester_id,
        created_at=record.created_at.isoformat(timespec="seconds"),
        updated_at=record.updated_at.isoformat(timespec="seconds"),
    )


class ReservationQueries:
    """Read-side views over the ledger; nothing here writes."""

    def __init__(self, repository: ReservationYamlRepository, catalog: SpotYamlCatalog) -> None:
        self.repository = repository
        self.catalog = catalog

    def perspective_for(self, resource_id: str, viewer_id: str | None) -> str:
        spot = self.catalog.get_spot(resource_id)
        if viewer_id is not None and spot.owner_id == viewer_id:
            return PERSPECTIVE_OWNER
        return PERSPECTIVE_PUBLIC

    def reservations_for_resource(self, resource_id: str, perspective: str) -> list[ReservationView]:
        self.catalog.get_spot(resource_id)
        active = sorted(self.repository.list_active(resource_id), key=lambda record: (record.start, record.end))
        return [project_reservation(record, perspective) for record in active]

    def reservations_for_requester(self, requester_id: str) -> list[RequesterReservationView]:
        records = sorted(
            self.repository.list_for_requester(requester_id),
            key=lambda record: (record.start, record.resource_id),
        )
        spots: dict[str, Spot | None] = {}
        views: list[RequesterReservationView] = []
        for record in records:
            if record.resource_id not in spots:
                spots[record.resource_id] = self.catalog.find_spot(record.resource_id)
            spot = spots[record.resource_id]
            views.append(
                RequesterReservationView(
                    reservation=project_reservation(record, PERSPECTIVE_OWNER),
                    spot=spot.summary() if spot is not None else None,
                )
            )
        return views
