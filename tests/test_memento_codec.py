import pytest

from geocoin.content.codec import (
    COIN_STACK_CODEC,
    TRAVEL_HISTORY_CODEC,
    decode_known_cells,
    decode_memento,
    decode_position,
    encode_known_cells,
    encode_memento,
    encode_position,
)
from geocoin.sim.cache import Coin, Geocache
from geocoin.sim.errors import MalformedMemento, MalformedRecord
from geocoin.sim.grid import Cell, LatLng


def test_generated_cache_encodes_bottom_to_top() -> None:
    cache = Geocache.generate(Cell(12, -7), 3)

    assert encode_memento(cache.stack.coins) == "12,-7,0;12,-7,1;12,-7,2"


def test_empty_stack_round_trips_through_empty_string() -> None:
    assert encode_memento([]) == ""
    assert decode_memento("") == []


def test_mixed_origin_stack_round_trips() -> None:
    coins = [Coin(Cell(1, 2), 0), Coin(Cell(-5, 9), 41), Coin(Cell(1, 2), 3)]

    assert decode_memento(encode_memento(coins)) == coins


@pytest.mark.parametrize(
    "text",
    ["1,2", "1,2,3,4", "1,2,x", "1.5,2,3", "1,2,3;", ";", " 1,2,3", "1,2,"],
)
def test_malformed_memento_is_rejected(text: str) -> None:
    with pytest.raises(MalformedMemento):
        decode_memento(text)


def test_malformed_memento_is_a_value_error() -> None:
    with pytest.raises(ValueError, match="coin record must have 3 fields"):
        decode_memento("7,8")


def test_position_format_matches_persisted_shape() -> None:
    assert encode_position(LatLng(36.9995, -122.0533)) == "36.9995,-122.0533"
    assert encode_position(LatLng(37.0, -122.0)) == "37,-122"
    assert decode_position("36.9995,-122.0533") == LatLng(36.9995, -122.0533)


@pytest.mark.parametrize("text", ["", "1", "a,b", "nan,1", "1,inf", "1e400,0", "1,2,3"])
def test_malformed_position_is_rejected(text: str) -> None:
    with pytest.raises(MalformedRecord):
        decode_position(text)


def test_history_codec_keeps_order() -> None:
    history = [LatLng(1.0, 2.0), LatLng(1.0001, 2.0), LatLng(0.5, -0.25)]

    encoded = TRAVEL_HISTORY_CODEC.encode(history)

    assert encoded == "1,2;1.0001,2;0.5,-0.25"
    assert TRAVEL_HISTORY_CODEC.decode(encoded) == history


def test_wallet_codec_shares_coin_record_format() -> None:
    coins = [Coin(Cell(3, 4), 1)]

    assert COIN_STACK_CODEC.encode(coins) == "3,4,1"


def test_known_cells_round_trip_including_emptied_cache() -> None:
    known = {Cell(3, 4): "", Cell(1, 2): "1,2,0;1,2,1"}

    encoded = encode_known_cells(known)

    assert encoded == "1,2 has 1,2,0;1,2,1 and 3,4 has "
    assert decode_known_cells(encoded) == known
    assert decode_known_cells("") == {}


@pytest.mark.parametrize("text", ["1,2 1,2,0", "x,2 has 1,2,0", "1,2 has 1,2", "1,2 has  and 1,2 has "])
def test_malformed_known_cells_are_rejected(text: str) -> None:
    with pytest.raises(MalformedRecord):
        decode_known_cells(text)
