import pytest

from geocoin.sim.errors import MovementLocked
from geocoin.sim.grid import Cell, LatLng
from geocoin.sim.position import Direction, ManualPositionFeed, PositionTracker, SensorState, SensorToggle


def test_move_advances_one_tile_and_records_history() -> None:
    tracker = PositionTracker(LatLng(0.0, 0.0), tile_width=1.0)

    tracker.move(Direction.NORTH)
    tracker.move(Direction.EAST)
    tracker.move(Direction.EAST)

    assert tracker.cell == Cell(1, 2)
    assert tracker.position == LatLng(1.0, 2.0)
    assert tracker.history == [LatLng(0.0, 0.0), LatLng(1.0, 0.0), LatLng(1.0, 1.0), LatLng(1.0, 2.0)]


def test_move_from_start_position_lands_on_neighbor_cell() -> None:
    start = LatLng(36.9995, -122.0533)
    tracker = PositionTracker(start)

    tracker.move(Direction.SOUTH)
    tracker.move(Direction.WEST)

    assert tracker.cell == Cell(369994, -1220534)
    assert len(tracker.history) == 3


def test_set_absolute_keeps_unaligned_point() -> None:
    tracker = PositionTracker(LatLng(0.0, 0.0), tile_width=1.0)

    tracker.set_absolute(LatLng(3.3, -1.2))

    assert tracker.position == LatLng(3.3, -1.2)
    assert tracker.cell == Cell(3, -1)


def test_move_after_unaligned_fix_steps_one_tile_on_one_axis() -> None:
    tracker = PositionTracker(LatLng(0.0, 0.0), tile_width=1.0)
    tracker.set_absolute(LatLng(3.25, -1.25))

    tracker.move(Direction.NORTH)
    assert tracker.position == LatLng(4.25, -1.25)
    assert tracker.cell == Cell(4, -1)

    tracker.move(Direction.WEST)
    assert tracker.position == LatLng(4.25, -2.25)
    assert tracker.history[-3:] == [LatLng(3.25, -1.25), LatLng(4.25, -1.25), LatLng(4.25, -2.25)]


def test_reset_truncates_history_to_start() -> None:
    tracker = PositionTracker(LatLng(0.0, 0.0), tile_width=1.0)
    for _ in range(3):
        tracker.move(Direction.WEST)

    tracker.reset()

    assert tracker.position == LatLng(0.0, 0.0)
    assert tracker.history == [LatLng(0.0, 0.0)]


def test_restored_tracker_keeps_history() -> None:
    history = [LatLng(0.0, 0.0), LatLng(1.0, 0.0)]

    tracker = PositionTracker(LatLng(0.0, 0.0), tile_width=1.0, position=LatLng(1.0, 0.0), history=history)

    assert tracker.history == history
    assert tracker.history is not history


def test_sensor_toggle_guards_manual_movement_and_unsubscribes_once() -> None:
    feed = ManualPositionFeed()
    fixes: list[LatLng] = []
    toggle = SensorToggle()

    assert toggle.manual_movement_enabled
    assert toggle.toggle(feed, fixes.append) is SensorState.TRACKING
    assert not toggle.manual_movement_enabled
    with pytest.raises(MovementLocked):
        toggle.require_manual_movement()

    feed.push(LatLng(1.5, 2.5))
    assert fixes == [LatLng(1.5, 2.5)]

    assert toggle.toggle(feed, fixes.append) is SensorState.IDLE
    assert feed.watcher_count == 0
    toggle.stop()
    toggle.stop()
    feed.push(LatLng(9.0, 9.0))

    assert fixes == [LatLng(1.5, 2.5)]
    assert toggle.manual_movement_enabled


def test_feed_skips_watcher_removed_during_delivery() -> None:
    feed = ManualPositionFeed()
    delivered: list[str] = []
    unsubscribe_later: list = []

    def first(point: LatLng) -> None:
        delivered.append("first")
        unsubscribe_later[0]()

    feed.watch(first)
    unsubscribe_later.append(feed.watch(lambda point: delivered.append("second")))

    feed.push(LatLng(1.0, 1.0))

    assert delivered == ["first"]
    assert feed.watcher_count == 1
