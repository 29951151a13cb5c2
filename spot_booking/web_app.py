from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Callable

from flask import Flask, jsonify, request

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
from .queries import ReservationQueries, project_reservation
from .spots import SpotYamlCatalog
from .yaml_store import ReservationYamlRepository

USER_HEADER = "X-User-Id"
_ERROR_FIELDS = {"start": "startDate", "end": "endDate"}

_STATUS_CODES: list[tuple[type[ReservationError], int]] = [
    (ValidationError, 400),
    (NotFoundError, 404),
    (ConflictError, 403),
    (LifecycleError, 403),
    (ForbiddenError, 403),
    (StoreError, 500),
]


def create_app(
    data_dir: str | Path = "data",
    now_provider: Callable[[], datetime] | None = None,
) -> Flask:
    app = Flask(__name__)
    repository = ReservationYamlRepository(data_dir)
    catalog = SpotYamlCatalog(data_dir)
    manager = ReservationManager(repository, catalog, now_provider=now_provider)
    queries = ReservationQueries(repository, catalog)

    app.extensions["spot_booking"] = {
        "repository": repository,
        "catalog": catalog,
        "manager": manager,
        "queries": queries,
    }

    @app.after_request
    def add_cors_headers(response: Any) -> Any:
        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = f"Content-Type,{USER_HEADER}"
        return response

    @app.errorhandler(ReservationError)
    def handle_reservation_error(error: ReservationError) -> Any:
        return _error_response(error)

    @app.get("/api/spots/<spot_id>/bookings")
    def get_spot_bookings(spot_id: str) -> Any:
        viewer_id = _current_user_id()
        if viewer_id is None:
            return _authentication_required()

        perspective = queries.perspective_for(spot_id, viewer_id)
        views = queries.reservations_for_resource(spot_id, perspective)
        return jsonify({"Bookings": [view.to_dict() for view in views]})

    @app.post("/api/spots/<spot_id>/bookings")
    def create_spot_booking(spot_id: str) -> Any:
        requester_id = _current_user_id()
        if requester_id is None:
            return _authentication_required()

        start, end = _read_dates()
        created = manager.create(spot_id, requester_id, (start, end))
        return jsonify(project_reservation(created).to_dict())

    @app.put("/api/bookings/<booking_id>")
    def edit_booking(booking_id: str) -> Any:
        requester_id = _current_user_id()
        if requester_id is None:
            return _authentication_required()

        start, end = _read_dates()
        updated = manager.modify(booking_id, requester_id, (start, end))
        return jsonify(project_reservation(updated).to_dict())

    @app.delete("/api/bookings/<booking_id>")
    def delete_booking(booking_id: str) -> Any:
        requester_id = _current_user_id()
        if requester_id is None:
            return _authentication_required()

        manager.cancel(booking_id, requester_id)
        return jsonify({"message": "Successfully deleted", "statusCode": 200})

    @app.get("/api/bookings/current")
    def get_current_bookings() -> Any:
        requester_id = _current_user_id()
        if requester_id is None:
            return _authentication_required()

        views = queries.reservations_for_requester(requester_id)
        return jsonify({"Bookings": [view.to_dict() for view in views]})

    return app


def _current_user_id() -> str | None:
    value = str(request.headers.get(USER_HEADER, "")).strip()
    return value or None


def _read_dates() -> tuple[Any, Any]:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        payload = {}
    return payload.get("startDate"), payload.get("endDate")


def _authentication_required() -> Any:
    return jsonify({"message": "Authentication required", "statusCode": 401}), 401


def _error_response(error: ReservationError) -> Any:
    status_code = 500
    for error_type, code in _STATUS_CODES:
        if isinstance(error, error_type):
            status_code = code
            break

    payload: dict[str, Any] = {"message": str(error), "statusCode": status_code}
    if isinstance(error, ValidationError):
        payload["message"] = "Validation error"
        payload["errors"] = {_ERROR_FIELDS.get(error.field, "endDate"): str(error)}
    elif isinstance(error, ConflictError):
        payload["message"] = "Sorry, this spot is already booked for the specified dates"
        payload["errors"] = {
            "startDate": "Start date conflicts with an existing booking",
            "endDate": "End date conflicts with an existing booking",
        }
    elif isinstance(error, StoreError):
        payload["message"] = "Reservation storage is unavailable"
    return jsonify(payload), status_code


if __name__ == "__main__":
    app = create_app()
    app.run(host="127.0.0.1", port=5000, debug=False)
