from .booking import Interval, is_valid_interval, overlaps, parse_date, parse_interval
from .conflicts import conflicting_reservations, find_conflicts
from .errors import (
	ConflictError,
	ForbiddenError,
	LifecycleError,
	NotFoundError,
	ReservationError,
	StoreError,
	ValidationError,
)
from .lifecycle import ReservationManager
from .queries import PERSPECTIVE_OWNER, PERSPECTIVE_PUBLIC, ReservationQueries, ReservationView
from .spots import Spot, SpotYamlCatalog
from .yaml_store import STATUS_ACTIVE, STATUS_CANCELLED, ReservationRecord, ReservationYamlRepository

__all__ = [
	"Interval",
	"is_valid_interval",
	"overlaps",
	"parse_date",
	"parse_interval",
	"conflicting_reservations",
	"find_conflicts",
	"ConflictError",
	"ForbiddenError",
	"LifecycleError",
	"NotFoundError",
	"ReservationError",
	"StoreError",
	"ValidationError",
	"ReservationManager",
	"PERSPECTIVE_OWNER",
	"PERSPECTIVE_PUBLIC",
	"ReservationQueries",
	"ReservationView",
	"Spot",
	"SpotYamlCatalog",
	"STATUS_ACTIVE",
	"STATUS_CANCELLED",
	"ReservationRecord",
	"ReservationYamlRepository",
]
