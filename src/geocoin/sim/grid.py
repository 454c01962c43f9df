from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

DEFAULT_TILE_WIDTH = 1e-4


@dataclass(frozen=True, order=True)
class Cell:
    """Canonical grid coordinate (i, j); i follows latitude, j longitude."""

    i: int
    j: int

    def key(self) -> str:
        return f"{self.i},{self.j}"

    def to_dict(self) -> dict[str, int]:
        return {"i": self.i, "j": self.j}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Cell":
        return cls(i=int(data["i"]), j=int(data["j"]))


@dataclass(frozen=True)
class LatLng:
    lat: float
    lng: float

    def to_dict(self) -> dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}


@dataclass(frozen=True)
class Bounds:
    """Half-open rectangle ``[south, north) x [west, east)``."""

    south: float
    west: float
    north: float
    east: float

    def contains(self, point: LatLng) -> bool:
        return self.south <= point.lat < self.north and self.west <= point.lng < self.east


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def cell_of(point: LatLng, tile_width: float = DEFAULT_TILE_WIDTH) -> Cell:
    return Cell(_round_half_up(point.lat / tile_width), _round_half_up(point.lng / tile_width))


def origin_of(cell: Cell, tile_width: float = DEFAULT_TILE_WIDTH) -> LatLng:
    """Tile-aligned anchor point of ``cell``."""
    return LatLng(cell.i * tile_width, cell.j * tile_width)


def bounds_of(cell: Cell, tile_width: float = DEFAULT_TILE_WIDTH) -> Bounds:
    """Rectangle of every point that ``cell_of`` maps to ``cell``.

    Nearest rounding puts the cell anchor at the rectangle center, so the
    rectangle spans half a tile on either side of ``origin_of(cell)``.
    """
    half = tile_width / 2.0
    return Bounds(
        south=cell.i * tile_width - half,
        west=cell.j * tile_width - half,
        north=cell.i * tile_width + half,
        east=cell.j * tile_width + half,
    )


def center_of(bounds: Bounds) -> LatLng:
    return LatLng((bounds.south + bounds.north) / 2.0, (bounds.west + bounds.east) / 2.0)


def neighborhood(center: LatLng, radius: int, tile_width: float = DEFAULT_TILE_WIDTH) -> set[Cell]:
    if radius < 0:
        raise ValueError("radius must be >= 0")
    anchor = cell_of(center, tile_width)
    return {
        Cell(anchor.i + di, anchor.j + dj)
        for di in range(-radius, radius + 1)
        for dj in range(-radius, radius + 1)
    }
