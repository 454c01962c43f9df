from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Callable, Generic, Sequence, TypeVar

from geocoin.sim.cache import Coin
from geocoin.sim.errors import MalformedMemento, MalformedRecord
from geocoin.sim.grid import Cell, LatLng

T = TypeVar("T")

COIN_SEPARATOR = ";"
FIELD_SEPARATOR = ","
KNOWN_CELL_SEPARATOR = " and "
KNOWN_CELL_ASSIGNMENT = " has "

_INT_PATTERN = re.compile(r"-?\d+")
_FLOAT_PATTERN = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")


@dataclass(frozen=True)
class RecordCodec(Generic[T]):
    """Delimited list codec: one record per element, joined by ``separator``.

    The empty string is the empty list in both directions. Record parsers
    raise ``MalformedRecord`` (or a subclass) and never return partial data.
    """

    name: str
    separator: str
    encode_record: Callable[[T], str]
    decode_record: Callable[[str], T]

    def encode(self, records: Sequence[T]) -> str:
        return self.separator.join(self.encode_record(record) for record in records)

    def decode(self, text: str) -> list[T]:
        if not isinstance(text, str):
            raise MalformedRecord(f"{self.name} payload must be a string")
        if text == "":
            return []
        return [self.decode_record(chunk) for chunk in text.split(self.separator)]


def _parse_int(text: str, *, field_name: str, error: type[MalformedRecord]) -> int:
    if not _INT_PATTERN.fullmatch(text):
        raise error(f"{field_name} must be an integer, got {text!r}")
    return int(text)


def _parse_coordinate(text: str, *, field_name: str) -> float:
    if not _FLOAT_PATTERN.fullmatch(text):
        raise MalformedRecord(f"{field_name} must be numeric, got {text!r}")
    value = float(text)
    if not math.isfinite(value):
        raise MalformedRecord(f"{field_name} must be finite, got {text!r}")
    return value


def format_coordinate(value: float) -> str:
    text = repr(float(value))
    if text.endswith(".0"):
        return text[:-2]
    return text


def _encode_coin(coin: Coin) -> str:
    return f"{coin.origin.i},{coin.origin.j},{coin.serial}"


def _decode_coin(record: str) -> Coin:
    fields = record.split(FIELD_SEPARATOR)
    if len(fields) != 3:
        raise MalformedMemento(f"coin record must have 3 fields, got {len(fields)} in {record!r}")
    i = _parse_int(fields[0], field_name="coin.origin.i", error=MalformedMemento)
    j = _parse_int(fields[1], field_name="coin.origin.j", error=MalformedMemento)
    serial = _parse_int(fields[2], field_name="coin.serial", error=MalformedMemento)
    return Coin(origin=Cell(i, j), serial=serial)


def _encode_position(point: LatLng) -> str:
    return f"{format_coordinate(point.lat)},{format_coordinate(point.lng)}"


def _decode_position(record: str) -> LatLng:
    fields = record.split(FIELD_SEPARATOR)
    if len(fields) != 2:
        raise MalformedRecord(f"position record must have 2 fields, got {len(fields)} in {record!r}")
    return LatLng(
        lat=_parse_coordinate(fields[0], field_name="position.lat"),
        lng=_parse_coordinate(fields[1], field_name="position.lng"),
    )


def encode_cell_key(cell: Cell) -> str:
    return cell.key()


def decode_cell_key(text: str) -> Cell:
    fields = text.split(FIELD_SEPARATOR)
    if len(fields) != 2:
        raise MalformedRecord(f"cell key must have 2 fields, got {len(fields)} in {text!r}")
    return Cell(
        _parse_int(fields[0], field_name="cell.i", error=MalformedRecord),
        _parse_int(fields[1], field_name="cell.j", error=MalformedRecord),
    )


COIN_STACK_CODEC: RecordCodec[Coin] = RecordCodec(
    name="coins",
    separator=COIN_SEPARATOR,
    encode_record=_encode_coin,
    decode_record=_decode_coin,
)

TRAVEL_HISTORY_CODEC: RecordCodec[LatLng] = RecordCodec(
    name="travel_history",
    separator=COIN_SEPARATOR,
    encode_record=_encode_position,
    decode_record=_decode_position,
)


def encode_memento(coins: Sequence[Coin]) -> str:
    """Serialize a coin stack bottom-to-top, e.g. ``"12,-7,0;12,-7,1"``."""
    return COIN_STACK_CODEC.encode(coins)


def decode_memento(text: str) -> list[Coin]:
    return COIN_STACK_CODEC.decode(text)


def encode_position(point: LatLng) -> str:
    return _encode_position(point)


def decode_position(text: str) -> LatLng:
    return _decode_position(text)


def _encode_known_cell(entry: tuple[Cell, str]) -> str:
    cell, memento = entry
    return f"{encode_cell_key(cell)}{KNOWN_CELL_ASSIGNMENT}{memento}"


def _decode_known_cell(record: str) -> tuple[Cell, str]:
    key, assignment, memento = record.partition(KNOWN_CELL_ASSIGNMENT)
    if not assignment:
        raise MalformedRecord(f"known cell entry is missing {KNOWN_CELL_ASSIGNMENT.strip()!r}: {record!r}")
    cell = decode_cell_key(key)
    # Validate eagerly so a corrupt memento is caught at load time.
    decode_memento(memento)
    return cell, memento


KNOWN_CELLS_CODEC: RecordCodec[tuple[Cell, str]] = RecordCodec(
    name="known_cells",
    separator=KNOWN_CELL_SEPARATOR,
    encode_record=_encode_known_cell,
    decode_record=_decode_known_cell,
)


def encode_known_cells(known_cells: dict[Cell, str]) -> str:
    return KNOWN_CELLS_CODEC.encode([(cell, known_cells[cell]) for cell in sorted(known_cells)])


def decode_known_cells(text: str) -> dict[Cell, str]:
    known: dict[Cell, str] = {}
    for cell, memento in KNOWN_CELLS_CODEC.decode(text):
        if cell in known:
            raise MalformedRecord(f"duplicate known cell entry: {cell.key()}")
        known[cell] = memento
    return known
