import tempfile
import threading
import unittest
from datetime import date, datetime
from pathlib import Path
from unittest import mock

from spot_booking import (
    STATUS_ACTIVE,
    STATUS_CANCELLED,
    Interval,
    LifecycleError,
    NotFoundError,
    ReservationYamlRepository,
    StoreError,
    ValidationError,
)

NOW = datetime(2024, 2, 1, 9, 0)


class TestReservationYamlRepository(unittest.TestCase):
    def test_insert_assigns_id_and_stores_active(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            repo = ReservationYamlRepository(Path(temp_dir) / "data")
            created = repo.insert("spot-1", "guest-a", Interval(date(2024, 3, 1), date(2024, 3, 3)), now=NOW)

            self.assertTrue(created.reservation_id)
            self.assertEqual(created.status, STATUS_ACTIVE)
            self.assertEqual(created.created_at, NOW)
            self.assertEqual(repo.get(created.reservation_id), created)
            self.assertEqual(repo.list_active("spot-1"), [created])

    def test_list_active_is_empty_for_unknown_resource(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            repo = ReservationYamlRepository(Path(temp_dir) / "data")
            self.assertEqual(repo.list_active("missing"), [])

    def test_list_active_filters_by_resource_and_status(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            repo = ReservationYamlRepository(Path(temp_dir) / "data")
            kept = repo.insert("spot-1", "guest-a", Interval(date(2024, 3, 1), date(2024, 3, 3)), now=NOW)
            cancelled = repo.insert("spot-1", "guest-b", Interval(date(2024, 3, 5), date(2024, 3, 7)), now=NOW)
            repo.insert("spot-2", "guest-a", Interval(date(2024, 3, 1), date(2024, 3, 3)), now=NOW)
            repo.set_status(cancelled.reservation_id, STATUS_CANCELLED, now=NOW)

            active_ids = [record.reservation_id for record in repo.list_active("spot-1")]
            self.assertEqual(active_ids, [kept.reservation_id])
            self.assertEqual(len(repo.list_for_resource("spot-1")), 2)
            self.assertEqual(len(repo.list_for_requester("guest-a")), 2)

    def test_update_replaces_interval_in_place(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            repo = ReservationYamlRepository(Path(temp_dir) / "data")
            created = repo.insert("spot-1", "guest-a", Interval(date(2024, 3, 1), date(2024, 3, 3)), now=NOW)
            later = datetime(2024, 2, 2, 10, 0)

            updated = repo.update(created.reservation_id, Interval(date(2024, 3, 4), date(2024, 3, 6)), now=later)

            self.assertEqual(updated.reservation_id, created.reservation_id)
            self.assertEqual(updated.interval, Interval(date(2024, 3, 4), date(2024, 3, 6)))
            self.assertEqual(updated.created_at, NOW)
            self.assertEqual(updated.updated_at, later)
            self.assertEqual(len(repo.list_for_resource("spot-1")), 1)

    def test_unknown_ids_raise_not_found(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            repo = ReservationYamlRepository(Path(temp_dir) / "data")
            interval = Interval(date(2024, 3, 1), date(2024, 3, 3))

            with self.assertRaises(NotFoundError):
                repo.get("nope")
            with self.assertRaises(NotFoundError):
                repo.update("nope", interval)
            with self.assertRaises(NotFoundError):
                repo.set_status("nope", STATUS_CANCELLED)

    def test_set_status_rejects_unknown_status(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            repo = ReservationYamlRepository(Path(temp_dir) / "data")
            created = repo.insert("spot-1", "guest-a", Interval(date(2024, 3, 1), date(2024, 3, 3)), now=NOW)

            with self.assertRaises(ValidationError):
                repo.set_status(created.reservation_id, "archived")

    def test_cancelled_reservation_cannot_be_reactivated(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            repo = ReservationYamlRepository(Path(temp_dir) / "data")
            stay = Interval(date(2024, 6, 1), date(2024, 6, 5))
            first = repo.insert("spot-1", "guest-a", stay, now=NOW)
            repo.set_status(first.reservation_id, STATUS_CANCELLED, now=NOW)
            second = repo.insert("spot-1", "guest-b", stay, now=NOW)

            with self.assertRaises(LifecycleError):
                repo.set_status(first.reservation_id, STATUS_ACTIVE, now=NOW)
            with self.assertRaises(LifecycleError):
                repo.set_status(first.reservation_id, STATUS_CANCELLED, now=NOW)

            self.assertEqual(repo.list_active("spot-1"), [second])
            self.assertEqual(repo.get(first.reservation_id).status, STATUS_CANCELLED)

    def test_update_refuses_cancelled_reservation(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            repo = ReservationYamlRepository(Path(temp_dir) / "data")
            created = repo.insert("spot-1", "guest-a", Interval(date(2024, 6, 1), date(2024, 6, 5)), now=NOW)
            repo.set_status(created.reservation_id, STATUS_CANCELLED, now=NOW)

            with self.assertRaises(LifecycleError):
                repo.update(created.reservation_id, Interval(date(2024, 6, 10), date(2024, 6, 12)), now=NOW)

            self.assertEqual(repo.get(created.reservation_id).interval, Interval(date(2024, 6, 1), date(2024, 6, 5)))
            event_types = [event["event_type"] for event in repo.get_events()]
            self.assertNotIn("RESERVATION_UPDATED", event_types)

    def test_repositories_on_same_directory_share_resource_locks(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            data_dir = Path(temp_dir) / "data"
            first_repo = ReservationYamlRepository(data_dir)
            second_repo = ReservationYamlRepository(Path(temp_dir) / "." / "data")
            inserted: list[str] = []

            def insert_from_second_repo() -> None:
                record = second_repo.insert("spot-1", "guest-b", Interval(date(2024, 6, 5), date(2024, 6, 8)), now=NOW)
                inserted.append(record.reservation_id)

            with first_repo.resource_section("spot-1"):
                worker = threading.Thread(target=insert_from_second_repo)
                worker.start()
                worker.join(timeout=0.2)
                self.assertTrue(worker.is_alive())
                first_repo.insert("spot-1", "guest-a", Interval(date(2024, 6, 1), date(2024, 6, 5)), now=NOW)

            worker.join(timeout=5)
            self.assertFalse(worker.is_alive())
            self.assertEqual(len(inserted), 1)
            self.assertEqual(len(first_repo.list_active("spot-1")), 2)
            self.assertEqual(len(second_repo.list_active("spot-1")), 2)

    def test_reservations_survive_reopening(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            data_dir = Path(temp_dir) / "data"
            created = ReservationYamlRepository(data_dir).insert(
                "spot-1", "guest-a", Interval(date(2024, 3, 1), date(2024, 3, 3)), now=NOW
            )

            reopened = ReservationYamlRepository(data_dir)
            self.assertEqual(reopened.get(created.reservation_id), created)

    def test_logs_create_update_cancel_events(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            repo = ReservationYamlRepository(Path(temp_dir) / "data")
            created = repo.insert("spot-1", "guest-a", Interval(date(2024, 3, 1), date(2024, 3, 3)), now=NOW)
            repo.update(created.reservation_id, Interval(date(2024, 3, 2), date(2024, 3, 4)), now=NOW)
            repo.set_status(created.reservation_id, STATUS_CANCELLED, now=NOW)

            event_types = [event["event_type"] for event in repo.get_events()]
            self.assertEqual(event_types, ["RESERVATION_CREATED", "RESERVATION_UPDATED", "RESERVATION_CANCELLED"])

            contents = (Path(temp_dir) / "data" / "reservation_events.yaml").read_text(encoding="utf-8")
            self.assertIn("2024-03-02", contents)

    def test_corrupted_reservations_raise_store_error_and_keep_backup(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            data_dir = Path(temp_dir) / "data"
            repo = ReservationYamlRepository(data_dir)
            active_path = data_dir / "reservations.yaml"
            active_path.write_text("this: [is: invalid", encoding="utf-8")

            with self.assertRaises(StoreError):
                repo.list_active("spot-1")

            self.assertEqual(active_path.read_text(encoding="utf-8"), "this: [is: invalid")
            self.assertEqual(len(list(data_dir.glob("reservations.corrupt.*.yaml"))), 1)

    def test_non_list_reservations_file_raises_store_error(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            data_dir = Path(temp_dir) / "data"
            repo = ReservationYamlRepository(data_dir)
            (data_dir / "reservations.yaml").write_text("reservation_id: abc\n", encoding="utf-8")

            with self.assertRaises(StoreError):
                repo.get("abc")

    def test_corrupted_event_log_is_recovered(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            data_dir = Path(temp_dir) / "data"
            repo = ReservationYamlRepository(data_dir)
            (data_dir / "reservation_events.yaml").write_text("this: [is: invalid", encoding="utf-8")

            repo.insert("spot-1", "guest-a", Interval(date(2024, 3, 1), date(2024, 3, 3)), now=NOW)

            event_types = [event["event_type"] for event in repo.get_events()]
            self.assertEqual(event_types, ["YAML_RECOVERED", "RESERVATION_CREATED"])

    def test_write_failure_raises_store_error_without_partial_state(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            repo = ReservationYamlRepository(Path(temp_dir) / "data")
            with mock.patch.object(Path, "replace", side_effect=OSError("disk full")):
                with self.assertRaises(StoreError):
                    repo.insert("spot-1", "guest-a", Interval(date(2024, 3, 1), date(2024, 3, 3)), now=NOW)

            self.assertEqual(repo.list_active("spot-1"), [])
            self.assertEqual(repo.get_events(), [])


if __name__ == "__main__":
    unittest.main()
