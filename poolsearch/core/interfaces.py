"""Core interfaces for the pool search engine."""

from typing import Protocol, runtime_checkable

from .types import Candle, Pool, SwapEvent, Token, TopTrader, WindowActivity


@runtime_checkable
class SearchStore(Protocol):
    """Read-only access to indexed tokens, pools, swaps and candles.

    Addresses are passed as raw 32-byte values. Timestamps are unix seconds.
    Implementations raise StorageUnavailable when the backend fails.
    """

    # Entity lookups
    async def get_token(self, mint_address: bytes) -> Token | None:
        """Look up a token by mint address."""
        ...

    async def get_pool(self, pool_address: bytes) -> Pool | None:
        """Look up a pool by pool address."""
        ...

    async def search_tokens_by_name(self, text: str, limit: int) -> list[Token]:
        """Case-insensitive substring match on token name."""
        ...

    async def search_tokens_by_symbol(self, text: str, limit: int) -> list[Token]:
        """Case-insensitive substring match on token symbol."""
        ...

    # Swap history
    async def latest_swap(
        self, pool_address: bytes, at_or_before: float | None = None
    ) -> SwapEvent | None:
        """Most recent swap for a pool, optionally bounded by a timestamp."""
        ...

    async def latest_trade_before(
        self, pool_address: bytes, before: float
    ) -> SwapEvent | None:
        """Most recent BUY or SELL strictly before a timestamp."""
        ...

    async def first_trade_between(
        self, pool_address: bytes, start: float, end: float
    ) -> SwapEvent | None:
        """Earliest BUY or SELL with start <= ts <= end."""
        ...

    async def recent_swaps(
        self, pool_address: bytes, start: float, end: float, limit: int
    ) -> list[SwapEvent]:
        """Swaps with start <= ts <= end, newest first."""
        ...

    async def top_traders(self, pool_address: bytes, limit: int) -> list[TopTrader]:
        """Per-trader buy/sell totals, largest base bought first."""
        ...

    async def window_activity(
        self, pool_address: bytes, start: float, end: float
    ) -> WindowActivity:
        """Buy/sell counters for trades with start <= ts <= end."""
        ...

    # Candles
    async def load_candles(
        self, pool_address: bytes, start: int, end: int
    ) -> list[Candle]:
        """1-second candles with start <= timestamp <= end, oldest first."""
        ...
