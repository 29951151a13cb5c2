from __future__ import annotations

from pathlib import Path

from mcp.server.fastmcp import FastMCP

from spot_booking import (
    PERSPECTIVE_PUBLIC,
    ReservationManager,
    ReservationQueries,
    ReservationYamlRepository,
    SpotYamlCatalog,
)
from spot_booking.queries import project_reservation

mcp = FastMCP(
    "Spot Booking MCP Server",
    instructions="Expose spot bookings and booking commands from the spot_booking project.",
    json_response=True,
)

DATA_DIR = Path(__file__).parent / "data"
REPOSITORY = ReservationYamlRepository(DATA_DIR)
CATALOG = SpotYamlCatalog(DATA_DIR)
MANAGER = ReservationManager(REPOSITORY, CATALOG)
QUERIES = ReservationQueries(REPOSITORY, CATALOG)


@mcp.resource("booking://spots")
async def list_spots() -> list[dict]:
    """List bookable spots."""
    return [spot.to_dict() for spot in CATALOG.list_spots()]


@mcp.tool()
def list_spot_bookings(spot_id: str) -> list[dict]:
    """Return the booked date ranges of a spot without guest identities."""
    return [view.to_dict() for view in QUERIES.reservations_for_resource(spot_id, PERSPECTIVE_PUBLIC)]


@mcp.tool()
def book_spot(spot_id: str, requester_id: str, start_date: str, end_date: str) -> dict:
    """Book a spot for [start_date, end_date) using YYYY-MM-DD dates."""
    created = MANAGER.create(spot_id, requester_id, (start_date, end_date))
    return project_reservation(created).to_dict()


@mcp.tool()
def cancel_booking(booking_id: str, requester_id: str) -> dict:
    """Cancel a booking that has not started yet."""
    cancelled = MANAGER.cancel(booking_id, requester_id)
    return project_reservation(cancelled).to_dict()


def main() -> None:
    mcp.run()


if __name__ == "__main__":
    main()
