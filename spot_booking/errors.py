from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from .booking import Interval
    from .yaml_store import ReservationRecord


class ReservationError(Exception):
    pass


class ValidationError(ReservationError, ValueError):
    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class ConflictError(ReservationError):
    def __init__(self, requested: "Interval", conflicts: Sequence["ReservationRecord"]) -> None:
        self.requested = requested
        self.conflicts = tuple(conflicts)
        super().__init__(
            "Sorry, this spot is already booked for the specified dates "
            f"({requested.start.isoformat()} to {requested.end.isoformat()})"
        )


class LifecycleError(ReservationError):
    pass


class NotFoundError(ReservationError, LookupError):
    pass


class ForbiddenError(ReservationError):
    pass


class StoreError(ReservationError, RuntimeError):
    pass
