from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from threading import Lock
from typing import Any

from .errors import NotFoundError, StoreError, ValidationError
from .yaml_store import read_yaml_list, write_yaml_list

DEMO_SPOTS: list[dict[str, Any]] = [
    {
        "spot_id": "1",
        "owner_id": "1",
        "address": "101 Fake Address Blvd",
        "city": "Fake City",
        "state": "CA",
        "country": "USA",
        "name": "Fake User",
        "price": 103,
    },
    {
        "spot_id": "2",
        "owner_id": "2",
        "address": "102 Fake Address Street",
        "city": "Fake City",
        "state": "CA",
        "country": "USA",
        "name": "Shabalaba Dingdong",
        "price": 300,
    },
    {
        "spot_id": "3",
        "owner_id": "3",
        "address": "103 Sherman Way",
        "city": "Las Vegas",
        "state": "NV",
        "country": "USA",
        "name": "Finding Nemo",
        "price": 45,
    },
    {
        "spot_id": "4",
        "owner_id": "4",
        "address": "3000 Palos Verdes Blvd",
        "city": "Palos Verdes",
        "state": "CA",
        "country": "USA",
        "name": "Sherman Oaks",
        "price": 50,
    },
]


@dataclass(frozen=True)
class Spot:
    spot_id: str
    owner_id: str
    name: str
    address: str = ""
    city: str = ""
    state: str = ""
    country: str = ""
    price: float = 0
    preview_image: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "spot_id": self.spot_id,
            "owner_id": self.owner_id,
            "name": self.name,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "country": self.country,
            "price": self.price,
        }
        if self.preview_image is not None:
            payload["preview_image"] = self.preview_image
        return payload

    def summary(self) -> dict[str, Any]:
        """Display fields shown next to a guest's booking."""
        return {
            "id": self.spot_id,
            "ownerId": self.owner_id,
            "name": self.name,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "country": self.country,
            "price": self.price,
            "previewImage": self.preview_image,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Spot":
        return Spot(
            spot_id=str(data["spot_id"]),
            owner_id=str(data["owner_id"]),
            name=str(data.get("name", "")),
            address=str(data.get("address", "")),
            city=str(data.get("city", "")),
            state=str(data.get("state", "")),
            country=str(data.get("country", "")),
            price=data.get("price", 0),
            preview_image=(str(data["preview_image"]) if data.get("preview_image") is not None else None),
        )


class SpotYamlCatalog:
    """Read-mostly spot lookup used for existence, ownership and display fields."""

    def __init__(self, base_dir: str | Path = "data") -> None:
        self.base_dir = Path(base_dir)
        self.spots_file = self.base_dir / "spots.yaml"
        self._write_lock = Lock()
        try:
            self.base_dir.mkdir(parents=True, exist_ok=True)
            if not self.spots_file.exists():
                self.spots_file.write_text("[]\n", encoding="utf-8")
        except OSError as error:
            raise StoreError(f"Failed to prepare data directory: {self.base_dir}") from error

    def list_spots(self) -> list[Spot]:
        try:
            return [Spot.from_dict(row) for row in read_yaml_list(self.spots_file)]
        except (KeyError, TypeError) as error:
            raise StoreError(f"Malformed spot row in {self.spots_file.name}") from error

    def find_spot(self, spot_id: str) -> Spot | None:
        for spot in self.list_spots():
            if spot.spot_id == spot_id:
                return spot
        return None

    def get_spot(self, spot_id: str) -> Spot:
        spot = self.find_spot(spot_id)
        if spot is None:
            raise NotFoundError("Spot couldn't be found")
        return spot

    def add_spot(self, spot: Spot) -> Spot:
        if not spot.spot_id.strip() or not spot.owner_id.strip():
            raise ValidationError("spot_id and owner_id must not be empty")

        with self._write_lock:
            rows = read_yaml_list(self.spots_file)
            if any(str(row.get("spot_id")) == spot.spot_id for row in rows):
                raise ValidationError(f"Spot already exists: {spot.spot_id}")
            rows.append(spot.to_dict())
            write_yaml_list(self.spots_file, rows)
        return spot

    def seed_demo_spots(self, overwrite: bool = True) -> list[Spot]:
        generated = [Spot.from_dict(row) for row in DEMO_SPOTS]

        with self._write_lock:
            rows = [] if overwrite else read_yaml_list(self.spots_file)
            existing_ids = {str(row.get("spot_id")) for row in rows}
            rows.extend(spot.to_dict() for spot in generated if spot.spot_id not in existing_ids)
            write_yaml_list(self.spots_file, rows)
        return generated

