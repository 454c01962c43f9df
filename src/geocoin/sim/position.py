from __future__ import annotations

from enum import Enum
from typing import Callable, Protocol

from geocoin.sim.errors import MovementLocked
from geocoin.sim.grid import DEFAULT_TILE_WIDTH, Cell, LatLng, cell_of

PositionCallback = Callable[[LatLng], None]
Unsubscribe = Callable[[], None]


class Direction(Enum):
    NORTH = (1, 0)
    SOUTH = (-1, 0)
    EAST = (0, 1)
    WEST = (0, -1)

    @property
    def di(self) -> int:
        return self.value[0]

    @property
    def dj(self) -> int:
        return self.value[1]


class PositionTracker:
    """Current position plus the append-only travel history."""

    def __init__(
        self,
        start: LatLng,
        *,
        tile_width: float = DEFAULT_TILE_WIDTH,
        position: LatLng | None = None,
        history: list[LatLng] | None = None,
    ) -> None:
        self.start = start
        self.tile_width = tile_width
        self.position = position if position is not None else start
        self.history: list[LatLng] = list(history) if history else [self.position]

    @property
    def cell(self) -> Cell:
        return cell_of(self.position, self.tile_width)

    def move(self, direction: Direction) -> LatLng:
        """Step exactly one tile width along one axis from the current position."""
        step = self.tile_width
        return self._advance_to(
            LatLng(self.position.lat + direction.di * step, self.position.lng + direction.dj * step)
        )

    def set_absolute(self, point: LatLng) -> LatLng:
        return self._advance_to(point)

    def reset(self) -> None:
        self.position = self.start
        self.history = [self.start]

    def _advance_to(self, point: LatLng) -> LatLng:
        self.position = point
        self.history.append(point)
        return point


class PositionSource(Protocol):
    def watch(self, on_position: PositionCallback) -> Unsubscribe:
        ...


class ManualPositionFeed:
    """Push-driven position source; ``push`` delivers a fix to every watcher."""

    def __init__(self) -> None:
        self._watchers: dict[int, PositionCallback] = {}
        self._next_token = 0

    @property
    def watcher_count(self) -> int:
        return len(self._watchers)

    def watch(self, on_position: PositionCallback) -> Unsubscribe:
        token = self._next_token
        self._next_token += 1
        self._watchers[token] = on_position

        def unsubscribe() -> None:
            self._watchers.pop(token, None)

        return unsubscribe

    def push(self, point: LatLng) -> None:
        for token in sorted(self._watchers):
            # a callback may unsubscribe a later watcher
            callback = self._watchers.get(token)
            if callback is not None:
                callback(point)


class SensorState(Enum):
    IDLE = "idle"
    TRACKING = "tracking"


class SensorToggle:
    """Idle <-> Tracking guard; manual movement is only allowed while idle."""

    def __init__(self) -> None:
        self.state = SensorState.IDLE
        self._unsubscribe: Unsubscribe | None = None

    @property
    def manual_movement_enabled(self) -> bool:
        return self.state is SensorState.IDLE

    def require_manual_movement(self) -> None:
        if not self.manual_movement_enabled:
            raise MovementLocked("manual movement is disabled while sensor tracking is active")

    def toggle(self, source: PositionSource, on_position: PositionCallback) -> SensorState:
        if self.state is SensorState.IDLE:
            self._unsubscribe = source.watch(on_position)
            self.state = SensorState.TRACKING
        else:
            self.stop()
        return self.state

    def stop(self) -> None:
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe is not None:
            unsubscribe()
        self.state = SensorState.IDLE
