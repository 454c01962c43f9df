from __future__ import annotations

from typing import Iterable

from geocoin.content.codec import decode_memento, encode_memento
from geocoin.sim import rng
from geocoin.sim.cache import Geocache
from geocoin.sim.grid import Cell
from geocoin.sim.rng import INITIAL_VALUE_SALT, MAX_INITIAL_COINS


class GeocacheStore:
    """Sparse, lazily materialized cell -> cache mapping.

    Only mutated caches are kept, as mementos in ``known_cells``. Every other
    cache is regenerated from ``rng.luck`` on demand, so two lookups of an
    untouched cell always produce the same coins.
    """

    def __init__(
        self,
        *,
        spawn_probability: float,
        initial_value_salt: str = INITIAL_VALUE_SALT,
        max_initial_coins: int = MAX_INITIAL_COINS,
        known_cells: dict[Cell, str] | None = None,
    ) -> None:
        self.spawn_probability = spawn_probability
        self.initial_value_salt = initial_value_salt
        self.max_initial_coins = max_initial_coins
        self._known_cells: dict[Cell, str] = {}
        for cell, memento in (known_cells or {}).items():
            decode_memento(memento)
            self._known_cells[cell] = memento

    @property
    def known_cells(self) -> dict[Cell, str]:
        return dict(self._known_cells)

    def is_known(self, cell: Cell) -> bool:
        return cell in self._known_cells

    def spawns(self, cell: Cell) -> bool:
        return rng.spawns_cache(cell, self.spawn_probability)

    def get_or_create(self, cell: Cell) -> Geocache | None:
        memento = self._known_cells.get(cell)
        if memento is not None:
            return Geocache.from_coins(cell, decode_memento(memento))
        if not self.spawns(cell):
            return None
        count = rng.initial_coin_count(cell, salt=self.initial_value_salt, max_coins=self.max_initial_coins)
        return Geocache.generate(cell, count)

    def save(self, cell: Cell, cache: Geocache) -> None:
        if cache.cell != cell:
            raise ValueError(f"cache for {cache.cell.key()} cannot be saved under {cell.key()}")
        self._known_cells[cell] = encode_memento(cache.stack.coins)

    def list_active(self, cells: Iterable[Cell]) -> list[tuple[Cell, Geocache]]:
        active: list[tuple[Cell, Geocache]] = []
        for cell in sorted(set(cells)):
            cache = self.get_or_create(cell)
            if cache is not None:
                active.append((cell, cache))
        return active

    def clear(self) -> None:
        self._known_cells.clear()
