from __future__ import annotations

from dataclasses import dataclass, field

from geocoin.sim.cache import Coin, CoinStack, Geocache
from geocoin.sim.world import GeocacheStore

NO_COINS_YET = "No coins yet..."


@dataclass
class Wallet:
    """Coins held by the player; top of the stack is the latest collected coin."""

    stack: CoinStack = field(default_factory=CoinStack)
    touched: bool = False

    @property
    def coin_count(self) -> int:
        return len(self.stack)

    def coins(self) -> list[Coin]:
        return list(self.stack.coins)

    def summary(self) -> str:
        if not self.touched and not self.stack:
            return NO_COINS_YET
        top = self.stack.peek()
        if top is None:
            return f"{self.coin_count} coins"
        return f"{self.coin_count} coins (Last coin: {top.label()})"

    def clear(self) -> None:
        self.stack.clear()
        self.touched = False


def collect(cache: Geocache, wallet: Wallet, store: GeocacheStore) -> Coin:
    """Move the cache's top coin onto the wallet and persist the cache.

    Raises ``EmptyStack`` without touching either stack or the store.
    """
    coin = cache.stack.pop(source=f"cache {cache.cell.key()}")
    wallet.stack.push(coin)
    wallet.touched = True
    store.save(cache.cell, cache)
    return coin


def deposit(cache: Geocache, wallet: Wallet, store: GeocacheStore) -> Coin:
    """Move the wallet's top coin onto the cache and persist the cache."""
    coin = wallet.stack.pop(source="wallet")
    cache.stack.push(coin)
    wallet.touched = True
    store.save(cache.cell, cache)
    return coin
