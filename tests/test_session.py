from __future__ import annotations

from geocoin.content.config import GameConfig
from geocoin.content.io import CUR_POS_KEY, KNOWN_CELLS_KEY, TRAVEL_HISTORY_KEY, WALLET_KEY
from geocoin.content.storage import MemoryStorage
from geocoin.sim.core import OUTCOME_APPLIED, OUTCOME_EMPTY, OUTCOME_REJECTED, Session, StatusReport
from geocoin.sim.errors import EmptyStack, MovementLocked, NoCacheHere
from geocoin.sim.grid import Cell, LatLng
from geocoin.sim.position import Direction, ManualPositionFeed
from geocoin.sim.wallet import NO_COINS_YET

DENSE_CONFIG = GameConfig(spawn_probability=1.0, neighborhood_radius=2)


def _cell_with_coins(session: Session, minimum: int = 2) -> Cell:
    for cell, cache in session.visible_caches():
        if cache.coin_count >= minimum:
            return cell
    raise AssertionError("no cache with enough coins nearby")


def test_fresh_session_starts_at_configured_start() -> None:
    session = Session(storage=MemoryStorage(), config=DENSE_CONFIG)

    assert session.position == DENSE_CONFIG.start
    assert session.tracker.history == [DENSE_CONFIG.start]
    assert session.wallet.summary() == NO_COINS_YET
    assert session.load_warnings == []
    assert len(session.visible_caches()) == 25


def test_collect_persists_cache_and_wallet() -> None:
    storage = MemoryStorage()
    session = Session(storage=storage, config=DENSE_CONFIG)
    cell = _cell_with_coins(session)
    before = session.cache_at(cell).coin_count

    report = session.collect(cell)

    assert report.outcome == OUTCOME_APPLIED
    assert report.cache_count == before - 1
    assert report.wallet_count == 1
    assert report.coin == session.wallet.stack.peek()
    assert storage.get(WALLET_KEY) == f"{cell.i},{cell.j},{before - 1}"
    assert storage.get(KNOWN_CELLS_KEY).startswith(f"{cell.i},{cell.j} has ")


def test_session_restores_from_storage() -> None:
    storage = MemoryStorage()
    session = Session(storage=storage, config=DENSE_CONFIG)
    cell = _cell_with_coins(session)
    session.collect(cell)
    session.collect(cell)
    session.move(Direction.NORTH)
    session.deposit(cell)

    restored = Session(storage=storage, config=DENSE_CONFIG)

    assert restored.position == session.position
    assert restored.tracker.history == session.tracker.history
    assert restored.wallet.coins() == session.wallet.coins()
    assert restored.cache_at(cell) == session.cache_at(cell)
    assert restored.store.known_cells == session.store.known_cells


def test_collect_from_empty_cache_reports_empty_without_saving() -> None:
    storage = MemoryStorage()
    session = Session(storage=storage, config=GameConfig(spawn_probability=1.0, max_initial_coins=0))
    cell = session.tracker.cell

    report = session.collect(cell)

    assert report.outcome == OUTCOME_EMPTY
    assert isinstance(report.error, EmptyStack)
    assert report.cache_count == 0
    assert session.store.known_cells == {}
    assert storage.get(KNOWN_CELLS_KEY) is None
    assert storage.get(WALLET_KEY) is None


def test_deposit_with_empty_wallet_reports_empty() -> None:
    session = Session(storage=MemoryStorage(), config=DENSE_CONFIG)

    report = session.deposit(session.tracker.cell)

    assert report.outcome == OUTCOME_EMPTY
    assert session.store.known_cells == {}


def test_transfer_on_cell_without_cache_is_rejected() -> None:
    session = Session(storage=MemoryStorage(), config=GameConfig(spawn_probability=0.0))

    report = session.collect(Cell(0, 0))

    assert report.outcome == OUTCOME_REJECTED
    assert isinstance(report.error, NoCacheHere)


def test_deposit_then_collect_returns_deposited_coin() -> None:
    session = Session(storage=MemoryStorage(), config=DENSE_CONFIG)
    source = _cell_with_coins(session)
    carried = session.collect(source).coin
    target = next(cell for cell, _ in session.visible_caches() if cell != source)

    session.deposit(target)
    report = session.collect(target)

    assert report.coin == carried


def test_move_persists_position_and_history() -> None:
    storage = MemoryStorage()
    session = Session(storage=storage, config=GameConfig(start=LatLng(0.0, 0.0), tile_width=1.0))

    session.move(Direction.NORTH)
    session.move(Direction.EAST)

    assert storage.get(CUR_POS_KEY) == "1,1"
    assert storage.get(TRAVEL_HISTORY_KEY) == "0,0;1,0;1,1"


def test_reset_after_moves_and_collects_restores_initial_state() -> None:
    storage = MemoryStorage()
    session = Session(storage=storage, config=DENSE_CONFIG)
    for direction in (Direction.NORTH, Direction.EAST, Direction.SOUTH):
        session.move(direction)
    cell = _cell_with_coins(session)
    session.collect(cell)
    session.collect(cell)
    assert session.store.known_cells

    report = session.reset()

    assert report.outcome == OUTCOME_APPLIED
    assert session.tracker.history == [DENSE_CONFIG.start]
    assert session.position == DENSE_CONFIG.start
    assert session.wallet.coin_count == 0
    assert session.store.known_cells == {}
    assert storage.snapshot() == {}


def test_corrupt_position_falls_back_and_keeps_other_keys() -> None:
    storage = MemoryStorage(
        {
            CUR_POS_KEY: "north,west",
            WALLET_KEY: "1,2,3",
            KNOWN_CELLS_KEY: "1,2 has 1,2,0",
            TRAVEL_HISTORY_KEY: "1,2;3,4",
        }
    )

    session = Session(storage=storage, config=DENSE_CONFIG)

    assert session.position == DENSE_CONFIG.start
    assert len(session.load_warnings) == 1
    assert CUR_POS_KEY in session.load_warnings[0]
    assert [coin.label() for coin in session.wallet.coins()] == ["1:2#3"]
    assert session.store.known_cells == {Cell(1, 2): "1,2,0"}
    assert session.tracker.history == [LatLng(1.0, 2.0), LatLng(3.0, 4.0)]


def test_every_corrupt_key_falls_back_independently() -> None:
    storage = MemoryStorage(
        {
            CUR_POS_KEY: "1,2,3",
            WALLET_KEY: "1,2",
            KNOWN_CELLS_KEY: "garbage",
            TRAVEL_HISTORY_KEY: "NaN,NaN",
        }
    )

    session = Session(storage=storage, config=DENSE_CONFIG)

    assert len(session.load_warnings) == 4
    assert session.position == DENSE_CONFIG.start
    assert session.wallet.summary() == NO_COINS_YET
    assert session.store.known_cells == {}
    assert session.tracker.history == [DENSE_CONFIG.start]


def test_sensor_tracking_blocks_manual_moves_and_applies_fixes() -> None:
    feed = ManualPositionFeed()
    storage = MemoryStorage()
    session = Session(storage=storage, config=DENSE_CONFIG, position_source=feed)

    session.toggle_sensor()
    blocked = session.move(Direction.NORTH)
    feed.push(LatLng(36.99961, -122.05312))

    assert blocked.outcome == OUTCOME_REJECTED
    assert isinstance(blocked.error, MovementLocked)
    assert not session.manual_movement_enabled
    assert session.position == LatLng(36.99961, -122.05312)
    assert len(session.tracker.history) == 2
    assert storage.get(CUR_POS_KEY) == "36.99961,-122.05312"

    session.toggle_sensor()

    assert feed.watcher_count == 0
    assert session.move(Direction.NORTH).outcome == OUTCOME_APPLIED
    assert session.position.lng == -122.05312
    assert abs(session.position.lat - (36.99961 + DENSE_CONFIG.tile_width)) < 1e-12


def test_listeners_receive_every_report() -> None:
    session = Session(storage=MemoryStorage(), config=DENSE_CONFIG)
    reports: list[StatusReport] = []
    session.add_listener(reports.append)

    session.move(Direction.WEST)
    session.deposit(session.tracker.cell)
    session.reset()

    assert [report.intent for report in reports] == ["move", "deposit", "reset"]


def test_reset_stops_sensor_tracking() -> None:
    feed = ManualPositionFeed()
    session = Session(storage=MemoryStorage(), config=DENSE_CONFIG, position_source=feed)
    session.toggle_sensor()
    feed.push(LatLng(37.0, -122.0))

    session.reset()

    assert session.manual_movement_enabled
    assert feed.watcher_count == 0
    assert session.position == DENSE_CONFIG.start
    assert session.move(Direction.EAST).outcome == OUTCOME_APPLIED
