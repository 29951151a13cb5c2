from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import date, datetime
from pathlib import Path
from threading import Lock, RLock
from typing import Any, Callable, Iterator
import shutil
from uuid import uuid4

import yaml

from .booking import Interval
from .errors import LifecycleError, NotFoundError, StoreError, ValidationError

STATUS_ACTIVE = "active"
STATUS_CANCELLED = "cancelled"
RESERVATION_STATUSES = (STATUS_ACTIVE, STATUS_CANCELLED)

_LEDGER_LOCKS_GUARD = Lock()
_LEDGER_LOCKS: dict[Path, "_LedgerLocks"] = {}


@dataclass(frozen=True)
class ReservationRecord:
    reservation_id: str
    resource_id: str
    requester_id: str
    start: date
    end: date
    status: str
    created_at: datetime
    updated_at: datetime

    @property
    def interval(self) -> Interval:
        return Interval(self.start, self.end)

    @property
    def is_active(self) -> bool:
        return self.status == STATUS_ACTIVE

    def to_dict(self) -> dict[str, str]:
        return {
            "reservation_id": self.reservation_id,
            "resource_id": self.resource_id,
            "requester_id": self.requester_id,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "status": self.status,
            "created_at": self.created_at.isoformat(timespec="seconds"),
            "updated_at": self.updated_at.isoformat(timespec="seconds"),
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "ReservationRecord":
        return ReservationRecord(
            reservation_id=str(data["reservation_id"]),
            resource_id=str(data["resource_id"]),
            requester_id=str(data["requester_id"]),
            start=date.fromisoformat(str(data["start"])),
            end=date.fromisoformat(str(data["end"])),
            status=str(data.get("status", STATUS_ACTIVE)),
            created_at=datetime.fromisoformat(str(data["created_at"])),
            updated_at=datetime.fromisoformat(str(data["updated_at"])),
        )


def read_yaml_list(path: Path) -> list[dict[str, Any]]:
    """Load a top-level YAML list of mappings, raising StoreError on anything else."""
    try:
        payload = yaml.safe_load(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return []
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as error:
        raise StoreError(f"Failed to read YAML file: {path}") from error

    if payload is None:
        return []
    if not isinstance(payload, list):
        raise StoreError(f"Top-level YAML is not a list: {path}")

    for index, row in enumerate(payload):
        if not isinstance(row, dict):
            raise StoreError(f"Row {index} of {path.name} is not a mapping")
    return payload


def write_yaml_list(path: Path, rows: list[dict[str, Any]]) -> None:
    temp_path = path.with_suffix(path.suffix + ".tmp")
    try:
        temp_path.write_text(yaml.safe_dump(rows, allow_unicode=True, sort_keys=False), encoding="utf-8")
        temp_path.replace(path)
    except OSError as error:
        raise StoreError(f"Failed to write YAML file: {path}") from error
    finally:
        if temp_path.exists():
            temp_path.unlink(missing_ok=True)


class _LedgerLocks:
    def __init__(self) -> None:
        self.guard = Lock()
        self.resources: dict[str, RLock] = {}
        self.file = Lock()
        self.log = Lock()


def _ledger_locks_for(base_dir: Path) -> _LedgerLocks:
    """Return the locks shared by every repository opened on the same directory."""
    key = base_dir.resolve()
    with _LEDGER_LOCKS_GUARD:
        locks = _LEDGER_LOCKS.get(key)
        if locks is None:
            locks = _LedgerLocks()
            _LEDGER_LOCKS[key] = locks
        return locks


def backup_corrupted_yaml(path: Path) -> Path | None:
    timestamp = datetime.now().strftime("%Y%m%d%H%M%S")
    backup_path = path.with_name(f"{path.stem}.corrupt.{timestamp}{path.suffix}")
    try:
        if path.exists():
            shutil.copy2(path, backup_path)
            return backup_path
    except OSError:
        return None
    return None


class ReservationYamlRepository:
    """Authoritative reservation ledger backed by ``reservations.yaml``.

    Every mutation for a resource runs under that resource's lock; callers that
    need read-evaluate-write atomicity hold ``resource_section`` around the whole
    sequence. The lock is reentrant, so the mutators can be called from inside it.
    Repositories opened on the same directory share one set of locks.
    """

    def __init__(self, base_dir: str | Path = "data") -> None:
        self.base_dir = Path(base_dir)
        self.reservations_file = self.base_dir / "reservations.yaml"
        self.log_file = self.base_dir / "reservation_events.yaml"
        self._ensure_files()
        self._locks = _ledger_locks_for(self.base_dir)

    def _ensure_files(self) -> None:
        try:
            self.base_dir.mkdir(parents=True, exist_ok=True)
            for path in (self.reservations_file, self.log_file):
                if not path.exists():
                    path.write_text("[]\n", encoding="utf-8")
        except OSError as error:
            raise StoreError(f"Failed to prepare data directory: {self.base_dir}") from error

    def _lock_for(self, resource_id: str) -> RLock:
        with self._locks.guard:
            lock = self._locks.resources.get(resource_id)
            if lock is None:
                lock = RLock()
                self._locks.resources[resource_id] = lock
            return lock

    @contextmanager
    def resource_section(self, resource_id: str) -> Iterator[None]:
        with self._lock_for(resource_id):
            yield

    def _read_records(self) -> list[ReservationRecord]:
        rows = self._read_reservation_rows()
        try:
            return [ReservationRecord.from_dict(row) for row in rows]
        except (KeyError, TypeError, ValueError) as error:
            backup_corrupted_yaml(self.reservations_file)
            raise StoreError(f"Malformed reservation row in {self.reservations_file.name}") from error

    def _read_reservation_rows(self) -> list[dict[str, Any]]:
        try:
            return read_yaml_list(self.reservations_file)
        except StoreError:
            backup_corrupted_yaml(self.reservations_file)
            raise

    def _log_event(self, event_type: str, payload: dict[str, Any], event_time: datetime | None = None) -> None:
        timestamp = (event_time or datetime.now()).isoformat(timespec="seconds")
        with self._locks.log:
            try:
                events = read_yaml_list(self.log_file)
            except StoreError as error:
                events = self._recover_event_log(error)
            events.append({"event_time": timestamp, "event_type": event_type, "payload": payload})
            write_yaml_list(self.log_file, events)

    def _recover_event_log(self, error: Exception) -> list[dict[str, Any]]:
        backup_path = backup_corrupted_yaml(self.log_file)
        return [
            {
                "event_time": datetime.now().isoformat(timespec="seconds"),
                "event_type": "YAML_RECOVERED",
                "payload": {
                    "file": self.log_file.name,
                    "backup": backup_path.name if backup_path else None,
                    "reason": str(error.__cause__ or error),
                },
            }
        ]

    def get_events(self) -> list[dict[str, Any]]:
        return read_yaml_list(self.log_file)

    def find(self, reservation_id: str) -> ReservationRecord | None:
        for record in self._read_records():
            if record.reservation_id == reservation_id:
                return record
        return None

    def get(self, reservation_id: str) -> ReservationRecord:
        record = self.find(reservation_id)
        if record is None:
            raise NotFoundError("Booking could not be found")
        return record

    def list_active(self, resource_id: str) -> list[ReservationRecord]:
        return [
            record
            for record in self._read_records()
            if record.resource_id == resource_id and record.is_active
        ]

    def list_for_resource(self, resource_id: str) -> list[ReservationRecord]:
        return [record for record in self._read_records() if record.resource_id == resource_id]

    def list_for_requester(self, requester_id: str) -> list[ReservationRecord]:
        return [record for record in self._read_records() if record.requester_id == requester_id]

    def insert(
        self,
        resource_id: str,
        requester_id: str,
        interval: Interval,
        now: datetime | None = None,
    ) -> ReservationRecord:
        effective_now = now or datetime.now()
        record = ReservationRecord(
            reservation_id=str(uuid4()),
            resource_id=resource_id,
            requester_id=requester_id,
            start=interval.start,
            end=interval.end,
            status=STATUS_ACTIVE,
            created_at=effective_now,
            updated_at=effective_now,
        )

        with self.resource_section(resource_id), self._locks.file:
            rows = self._read_reservation_rows()
            rows.append(record.to_dict())
            write_yaml_list(self.reservations_file, rows)

        self._log_event(
            "RESERVATION_CREATED",
            {
                "reservation_id": record.reservation_id,
                "resource_id": resource_id,
                "requester_id": requester_id,
                **interval.to_dict(),
            },
            effective_now,
        )
        return record

    def update(self, reservation_id: str, interval: Interval, now: datetime | None = None) -> ReservationRecord:
        effective_now = now or datetime.now()
        current = self.get(reservation_id)

        def change(record: ReservationRecord) -> ReservationRecord:
            if not record.is_active:
                raise LifecycleError("Cancelled bookings cannot be modified")
            return replace(record, start=interval.start, end=interval.end, updated_at=effective_now)

        updated = self._rewrite(current.resource_id, reservation_id, change)
        self._log_event(
            "RESERVATION_UPDATED",
            {
                "reservation_id": reservation_id,
                "resource_id": updated.resource_id,
                **interval.to_dict(),
            },
            effective_now,
        )
        return updated

    def set_status(self, reservation_id: str, status: str, now: datetime | None = None) -> ReservationRecord:
        if status not in RESERVATION_STATUSES:
            raise ValidationError(f"Unknown reservation status: {status}")

        effective_now = now or datetime.now()
        current = self.get(reservation_id)

        def change(record: ReservationRecord) -> ReservationRecord:
            if record.status == STATUS_CANCELLED:
                raise LifecycleError("Cancelled bookings cannot change status")
            return replace(record, status=status, updated_at=effective_now)

        updated = self._rewrite(current.resource_id, reservation_id, change)
        event_type = "RESERVATION_CANCELLED" if status == STATUS_CANCELLED else "RESERVATION_STATUS_CHANGED"
        self._log_event(
            event_type,
            {
                "reservation_id": reservation_id,
                "resource_id": updated.resource_id,
                "status": status,
            },
            effective_now,
        )
        return updated

    def _rewrite(
        self,
        resource_id: str,
        reservation_id: str,
        change: Callable[[ReservationRecord], ReservationRecord],
    ) -> ReservationRecord:
        with self.resource_section(resource_id), self._locks.file:
            rows = self._read_reservation_rows()
            for index, row in enumerate(rows):
                if str(row.get("reservation_id")) == reservation_id:
                    try:
                        current = ReservationRecord.from_dict(row)
                    except (KeyError, TypeError, ValueError) as error:
                        raise StoreError(f"Malformed reservation row: {reservation_id}") from error
                    updated = change(current)
                    rows[index] = updated.to_dict()
                    write_yaml_list(self.reservations_file, rows)
                    return updated

        raise NotFoundError("Booking could not be found")
