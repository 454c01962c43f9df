from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from geocoin.sim.grid import DEFAULT_TILE_WIDTH, LatLng
from geocoin.sim.rng import INITIAL_VALUE_SALT, MAX_INITIAL_COINS

CONFIG_SCHEMA_VERSION = 1
DEFAULT_NEIGHBORHOOD_RADIUS = 6
DEFAULT_SPAWN_PROBABILITY = 0.1
DEFAULT_START = LatLng(36.9995, -122.0533)


@dataclass(frozen=True)
class GameConfig:
    tile_width: float = DEFAULT_TILE_WIDTH
    neighborhood_radius: int = DEFAULT_NEIGHBORHOOD_RADIUS
    spawn_probability: float = DEFAULT_SPAWN_PROBABILITY
    start: LatLng = field(default_factory=lambda: DEFAULT_START)
    max_initial_coins: int = MAX_INITIAL_COINS
    initial_value_salt: str = INITIAL_VALUE_SALT

    def __post_init__(self) -> None:
        if not isinstance(self.tile_width, (int, float)) or not math.isfinite(self.tile_width) or self.tile_width <= 0:
            raise ValueError("tile_width must be a finite number > 0")
        if isinstance(self.neighborhood_radius, bool) or not isinstance(self.neighborhood_radius, int):
            raise ValueError("neighborhood_radius must be an integer")
        if self.neighborhood_radius < 0:
            raise ValueError("neighborhood_radius must be >= 0")
        if not isinstance(self.spawn_probability, (int, float)) or not 0.0 <= self.spawn_probability <= 1.0:
            raise ValueError("spawn_probability must be within [0, 1]")
        if not isinstance(self.start, LatLng):
            raise ValueError("start must be a LatLng")
        if not math.isfinite(self.start.lat) or not math.isfinite(self.start.lng):
            raise ValueError("start coordinates must be finite")
        if isinstance(self.max_initial_coins, bool) or not isinstance(self.max_initial_coins, int):
            raise ValueError("max_initial_coins must be an integer")
        if self.max_initial_coins < 0:
            raise ValueError("max_initial_coins must be >= 0")
        if not isinstance(self.initial_value_salt, str) or not self.initial_value_salt:
            raise ValueError("initial_value_salt must be a non-empty string")

    def to_dict(self) -> dict[str, Any]:
        return {
            "schema_version": CONFIG_SCHEMA_VERSION,
            "tile_width": self.tile_width,
            "neighborhood_radius": self.neighborhood_radius,
            "spawn_probability": self.spawn_probability,
            "start": self.start.to_dict(),
            "max_initial_coins": self.max_initial_coins,
            "initial_value_salt": self.initial_value_salt,
        }


def load_game_config_json(path: str | Path) -> GameConfig:
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    return _config_from_payload(payload)


def _config_from_payload(payload: Any) -> GameConfig:
    if not isinstance(payload, dict):
        raise ValueError("game config payload must be an object")

    schema_version = payload.get("schema_version")
    if isinstance(schema_version, bool) or not isinstance(schema_version, int):
        raise ValueError("game config must contain integer field: schema_version")
    if schema_version != CONFIG_SCHEMA_VERSION:
        raise ValueError(f"unsupported game config schema_version: {schema_version}")

    defaults = GameConfig()
    kwargs: dict[str, Any] = {}

    for key in ("tile_width", "spawn_probability"):
        if key in payload:
            value = payload[key]
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{key} must be numeric")
            kwargs[key] = float(value)

    for key in ("neighborhood_radius", "max_initial_coins"):
        if key in payload:
            value = payload[key]
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{key} must be an integer")
            kwargs[key] = value

    if "initial_value_salt" in payload:
        kwargs["initial_value_salt"] = payload["initial_value_salt"]

    start = payload.get("start")
    if start is not None:
        if not isinstance(start, dict):
            raise ValueError("start must be an object")
        lat = start.get("lat")
        lng = start.get("lng")
        for name, value in (("start.lat", lat), ("start.lng", lng)):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{name} must be numeric")
        kwargs["start"] = LatLng(float(lat), float(lng))
    else:
        kwargs["start"] = defaults.start

    return GameConfig(**kwargs)
