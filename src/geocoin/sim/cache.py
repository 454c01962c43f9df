from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

from geocoin.sim.errors import EmptyStack
from geocoin.sim.grid import Cell


@dataclass(frozen=True, order=True)
class Coin:
    """Coin identity: the cell it was generated in plus its serial there."""

    origin: Cell
    serial: int

    def __post_init__(self) -> None:
        if isinstance(self.serial, bool) or not isinstance(self.serial, int):
            raise ValueError("coin serial must be an integer")

    def label(self) -> str:
        return f"{self.origin.i}:{self.origin.j}#{self.serial}"

    def to_dict(self) -> dict[str, Any]:
        return {"origin": self.origin.to_dict(), "serial": self.serial}


@dataclass
class CoinStack:
    """LIFO stack of coins stored bottom-to-top."""

    coins: list[Coin] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.coins)

    def __iter__(self):
        return iter(self.coins)

    def push(self, coin: Coin) -> None:
        self.coins.append(coin)

    def pop(self, *, source: str) -> Coin:
        if not self.coins:
            raise EmptyStack(source)
        return self.coins.pop()

    def peek(self) -> Coin | None:
        return self.coins[-1] if self.coins else None

    def clear(self) -> None:
        self.coins.clear()

    def extend(self, coins: Iterable[Coin]) -> None:
        self.coins.extend(coins)


@dataclass
class Geocache:
    cell: Cell
    stack: CoinStack = field(default_factory=CoinStack)

    @classmethod
    def generate(cls, cell: Cell, count: int) -> "Geocache":
        if count < 0:
            raise ValueError("initial coin count must be >= 0")
        return cls(cell=cell, stack=CoinStack([Coin(origin=cell, serial=serial) for serial in range(count)]))

    @classmethod
    def from_coins(cls, cell: Cell, coins: Iterable[Coin]) -> "Geocache":
        return cls(cell=cell, stack=CoinStack(list(coins)))

    @property
    def coin_count(self) -> int:
        return len(self.stack)

    def describe(self) -> str:
        return f'There is a pit here at "{self.cell.i},{self.cell.j}". It has {self.coin_count} coins.'
