from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from geocoin.content.config import GameConfig
from geocoin.content.io import (
    clear_session,
    read_session,
    write_history,
    write_known_cells,
    write_position,
    write_wallet,
)
from geocoin.content.storage import KeyValueStorage, MemoryStorage
from geocoin.sim.cache import Coin, CoinStack, Geocache
from geocoin.sim.errors import EmptyStack, GeocoinError, MovementLocked, NoCacheHere
from geocoin.sim.grid import Cell, LatLng, neighborhood
from geocoin.sim.position import Direction, ManualPositionFeed, PositionSource, PositionTracker, SensorState, SensorToggle
from geocoin.sim.wallet import Wallet, collect, deposit
from geocoin.sim.world import GeocacheStore

OUTCOME_APPLIED = "applied"
OUTCOME_EMPTY = "empty"
OUTCOME_REJECTED = "rejected"


@dataclass(frozen=True)
class StatusReport:
    """What the presentation layer needs to refresh after an intent."""

    intent: str
    outcome: str
    message: str
    wallet_summary: str
    wallet_count: int
    cell: Cell | None = None
    cache_count: int | None = None
    coin: Coin | None = None
    error: GeocoinError | None = None

    @property
    def applied(self) -> bool:
        return self.outcome == OUTCOME_APPLIED


StatusListener = Callable[[StatusReport], None]


class Session:
    """Session-level aggregate owning the cache store, wallet and position.

    Every intent runs to completion and returns a ``StatusReport``; domain
    errors are reported in the report instead of propagating.
    """

    def __init__(
        self,
        storage: KeyValueStorage | None = None,
        config: GameConfig | None = None,
        position_source: PositionSource | None = None,
    ) -> None:
        self.config = config if config is not None else GameConfig()
        self.storage = storage if storage is not None else MemoryStorage()
        self.position_source = position_source if position_source is not None else ManualPositionFeed()
        self.sensor = SensorToggle()
        self._listeners: list[StatusListener] = []

        loaded = read_session(self.storage)
        self.load_warnings: list[str] = [*self.storage.warnings, *loaded.warnings]
        self.store = GeocacheStore(
            spawn_probability=self.config.spawn_probability,
            initial_value_salt=self.config.initial_value_salt,
            max_initial_coins=self.config.max_initial_coins,
            known_cells=loaded.known_cells,
        )
        self.wallet = Wallet(stack=CoinStack(list(loaded.wallet or [])), touched=loaded.wallet is not None)
        self.tracker = PositionTracker(
            self.config.start,
            tile_width=self.config.tile_width,
            position=loaded.position,
            history=loaded.history,
        )

    def add_listener(self, listener: StatusListener) -> None:
        self._listeners.append(listener)

    @property
    def position(self) -> LatLng:
        return self.tracker.position

    @property
    def manual_movement_enabled(self) -> bool:
        return self.sensor.manual_movement_enabled

    def cache_at(self, cell: Cell) -> Geocache | None:
        return self.store.get_or_create(cell)

    def visible_cells(self) -> set[Cell]:
        return neighborhood(self.position, self.config.neighborhood_radius, self.config.tile_width)

    def visible_caches(self) -> list[tuple[Cell, Geocache]]:
        return self.store.list_active(self.visible_cells())

    def collect(self, cell: Cell) -> StatusReport:
        return self._transfer("collect", cell, collect)

    def deposit(self, cell: Cell) -> StatusReport:
        return self._transfer("deposit", cell, deposit)

    def move(self, direction: Direction) -> StatusReport:
        try:
            self.sensor.require_manual_movement()
        except MovementLocked as exc:
            return self._report("move", OUTCOME_REJECTED, str(exc), error=exc)
        self.tracker.move(direction)
        self._persist_position()
        cell = self.tracker.cell
        return self._report("move", OUTCOME_APPLIED, f"moved {direction.name.lower()} to {cell.key()}", cell=cell)

    def set_absolute(self, point: LatLng) -> StatusReport:
        self.tracker.set_absolute(point)
        self._persist_position()
        return self._report("sensor_fix", OUTCOME_APPLIED, f"sensor fix at {self.tracker.cell.key()}", cell=self.tracker.cell)

    def toggle_sensor(self) -> StatusReport:
        state = self.sensor.toggle(self.position_source, self.set_absolute)
        if state is SensorState.TRACKING:
            message = "sensor tracking on; manual movement disabled"
        else:
            message = "sensor tracking off; manual movement enabled"
        return self._report("toggle_sensor", OUTCOME_APPLIED, message)

    def stop_sensor(self) -> None:
        self.sensor.stop()

    def reset(self) -> StatusReport:
        self.sensor.stop()
        clear_session(self.storage)
        self.store.clear()
        self.wallet.clear()
        self.tracker.reset()
        return self._report("reset", OUTCOME_APPLIED, "session reset")

    def to_dict(self) -> dict[str, Any]:
        return {
            "position": self.position.to_dict(),
            "history": [point.to_dict() for point in self.tracker.history],
            "wallet": [coin.to_dict() for coin in self.wallet.stack],
            "known_cells": {cell.key(): memento for cell, memento in sorted(self.store.known_cells.items())},
            "sensor_state": self.sensor.state.value,
        }

    def _transfer(
        self,
        intent: str,
        cell: Cell,
        operation: Callable[[Geocache, Wallet, GeocacheStore], Coin],
    ) -> StatusReport:
        cache = self.store.get_or_create(cell)
        if cache is None:
            error = NoCacheHere(f"no cache at {cell.key()}")
            return self._report(intent, OUTCOME_REJECTED, str(error), cell=cell, error=error)
        try:
            coin = operation(cache, self.wallet, self.store)
        except EmptyStack as exc:
            return self._report(intent, OUTCOME_EMPTY, str(exc), cell=cell, cache_count=cache.coin_count, error=exc)
        write_known_cells(self.storage, self.store.known_cells)
        write_wallet(self.storage, self.wallet.coins())
        return self._report(
            intent,
            OUTCOME_APPLIED,
            f"{intent} {coin.label()} at {cell.key()}",
            cell=cell,
            cache_count=cache.coin_count,
            coin=coin,
        )

    def _persist_position(self) -> None:
        write_position(self.storage, self.tracker.position)
        write_history(self.storage, self.tracker.history)

    def _report(
        self,
        intent: str,
        outcome: str,
        message: str,
        *,
        cell: Cell | None = None,
        cache_count: int | None = None,
        coin: Coin | None = None,
        error: GeocoinError | None = None,
    ) -> StatusReport:
        report = StatusReport(
            intent=intent,
            outcome=outcome,
            message=message,
            wallet_summary=self.wallet.summary(),
            wallet_count=self.wallet.coin_count,
            cell=cell,
            cache_count=cache_count,
            coin=coin,
            error=error,
        )
        for listener in self._listeners:
            listener(report)
        return report
