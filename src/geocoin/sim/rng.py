from __future__ import annotations

import hashlib
import math

from geocoin.sim.grid import Cell

INITIAL_VALUE_SALT = "initialValue"
MAX_INITIAL_COINS = 100
_MANTISSA_BITS = 53


def luck(seed: str) -> float:
    """Map ``seed`` to a stable float in [0, 1) from the top 53 bits of its SHA-256 digest."""
    digest = hashlib.sha256(seed.encode("utf-8")).digest()
    value = int.from_bytes(digest[:8], byteorder="big", signed=False) >> (64 - _MANTISSA_BITS)
    return value / float(1 << _MANTISSA_BITS)


def spawn_seed(cell: Cell) -> str:
    return f"{cell.i},{cell.j}"


def initial_value_seed(cell: Cell, salt: str = INITIAL_VALUE_SALT) -> str:
    return f"{cell.i},{cell.j},{salt}"


def spawns_cache(cell: Cell, probability: float) -> bool:
    return luck(spawn_seed(cell)) < probability


def initial_coin_count(cell: Cell, *, salt: str = INITIAL_VALUE_SALT, max_coins: int = MAX_INITIAL_COINS) -> int:
    return math.floor(luck(initial_value_seed(cell, salt)) * max_coins)
