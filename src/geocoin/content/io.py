from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Sequence, TypeVar

from geocoin.content.codec import (
    COIN_STACK_CODEC,
    TRAVEL_HISTORY_CODEC,
    decode_known_cells,
    decode_position,
    encode_known_cells,
    encode_position,
)
from geocoin.content.storage import KeyValueStorage
from geocoin.sim.cache import Coin
from geocoin.sim.errors import InvalidPersistedValue, MalformedRecord
from geocoin.sim.grid import Cell, LatLng

T = TypeVar("T")

CUR_POS_KEY = "curPos"
KNOWN_CELLS_KEY = "knownCells"
WALLET_KEY = "wallet"
TRAVEL_HISTORY_KEY = "travelHist"
SESSION_KEYS = (CUR_POS_KEY, KNOWN_CELLS_KEY, WALLET_KEY, TRAVEL_HISTORY_KEY)


@dataclass
class PersistedSession:
    """Typed view of the four session keys; ``None`` means the key was absent or unusable."""

    position: LatLng | None = None
    known_cells: dict[Cell, str] = field(default_factory=dict)
    wallet: list[Coin] | None = None
    history: list[LatLng] | None = None
    warnings: list[str] = field(default_factory=list)


def read_key(storage: KeyValueStorage, key: str, parse: Callable[[str], T]) -> T | None:
    raw = storage.get(key)
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise InvalidPersistedValue(key, "value must be a string")
    try:
        return parse(raw)
    except MalformedRecord as exc:
        raise InvalidPersistedValue(key, str(exc)) from exc


def read_session(storage: KeyValueStorage) -> PersistedSession:
    """Parse every session key, falling back per key when one is corrupt."""
    loaded = PersistedSession()

    def attempt(key: str, parse: Callable[[str], T]) -> T | None:
        try:
            return read_key(storage, key, parse)
        except InvalidPersistedValue as exc:
            loaded.warnings.append(f"ignoring persisted {exc}")
            return None

    loaded.position = attempt(CUR_POS_KEY, decode_position)
    loaded.known_cells = attempt(KNOWN_CELLS_KEY, decode_known_cells) or {}
    loaded.wallet = attempt(WALLET_KEY, COIN_STACK_CODEC.decode)
    loaded.history = attempt(TRAVEL_HISTORY_KEY, TRAVEL_HISTORY_CODEC.decode)
    return loaded


def write_position(storage: KeyValueStorage, point: LatLng) -> None:
    storage.set(CUR_POS_KEY, encode_position(point))


def write_known_cells(storage: KeyValueStorage, known_cells: dict[Cell, str]) -> None:
    storage.set(KNOWN_CELLS_KEY, encode_known_cells(known_cells))


def write_wallet(storage: KeyValueStorage, coins: Sequence[Coin]) -> None:
    storage.set(WALLET_KEY, COIN_STACK_CODEC.encode(coins))


def write_history(storage: KeyValueStorage, history: Sequence[LatLng]) -> None:
    storage.set(TRAVEL_HISTORY_KEY, TRAVEL_HISTORY_CODEC.encode(history))


def clear_session(storage: KeyValueStorage) -> None:
    for key in SESSION_KEYS:
        storage.remove(key)
