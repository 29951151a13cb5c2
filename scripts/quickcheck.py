from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timedelta
from pathlib import Path
from threading import Barrier
import shutil
import traceback

from spot_booking import (
    ConflictError,
    ReservationManager,
    ReservationYamlRepository,
    SpotYamlCatalog,
)


def main() -> int:
    print("[INFO] Spot Booking Quick Check")
    print("[INFO] Seeding demo spots and racing two bookings...")

    data_dir = Path("data") / "quickcheck"
    shutil.rmtree(data_dir, ignore_errors=True)
    repo = ReservationYamlRepository(data_dir)
    catalog = SpotYamlCatalog(data_dir)
    spots = catalog.seed_demo_spots(overwrite=True)
    print(f"[OK] Demo spots seeded: {len(spots)} spots")

    manager = ReservationManager(repo, catalog, now_provider=datetime.now)
    spot_id = spots[0].spot_id
    start = date.today() + timedelta(days=30)
    end = start + timedelta(days=2)
    barrier = Barrier(2)

    def attempt(requester_id: str) -> str:
        barrier.wait()
        try:
            manager.create(spot_id, requester_id, (start, end))
            return "booked"
        except ConflictError:
            return "conflict"

    with ThreadPoolExecutor(max_workers=2) as pool:
        outcomes = list(pool.map(attempt, ["guest-a", "guest-b"]))

    print(f"[OK] Race outcomes: {outcomes}")
    if sorted(outcomes) != ["booked", "conflict"]:
        print("[ERROR] Exactly one booking must win the race.")
        return 1

    active_count = len(repo.list_active(spot_id))
    print(f"[OK] Active bookings on spot {spot_id}: {active_count}")
    print(f"[OK] Reservations YAML: {repo.reservations_file.resolve()}")
    print(f"[OK] Event Log YAML: {repo.log_file.resolve()}")

    print("[DONE] Quick check completed successfully.")
    return 0


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except Exception:
        print("[ERROR] Quick check failed.")
        traceback.print_exc()
        raise SystemExit(1)
