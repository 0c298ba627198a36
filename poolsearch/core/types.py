"""Core data types for the pool search engine."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class SwapType(str, Enum):
    """Direction of a swap event."""

    BUY = "BUY"
    SELL = "SELL"
    ADD = "ADD"
    REMOVE = "REMOVE"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: str) -> "SwapType":
        try:
            return cls(value.upper())
        except ValueError:
            return cls.UNKNOWN


class ReportWindow(str, Enum):
    """Trailing aggregation window."""

    ONE_MINUTE = "1m"
    FIVE_MINUTES = "5m"
    ONE_HOUR = "1h"
    SIX_HOURS = "6h"
    ONE_DAY = "24h"

    @property
    def seconds(self) -> int:
        return _WINDOW_SECONDS[self]


_WINDOW_SECONDS = {
    ReportWindow.ONE_MINUTE: 60,
    ReportWindow.FIVE_MINUTES: 5 * 60,
    ReportWindow.ONE_HOUR: 60 * 60,
    ReportWindow.SIX_HOURS: 6 * 60 * 60,
    ReportWindow.ONE_DAY: 24 * 60 * 60,
}

# Windows reported by the search endpoint
SEARCH_WINDOWS: tuple[ReportWindow, ...] = (
    ReportWindow.FIVE_MINUTES,
    ReportWindow.ONE_HOUR,
    ReportWindow.SIX_HOURS,
    ReportWindow.ONE_DAY,
)


class Token(BaseModel):
    """Fungible token metadata indexed from chain."""

    mint_address: str = Field(description="Token mint address")
    name: str = Field(default="", description="Token name")
    symbol: str = Field(default="", description="Token symbol")
    decimals: int = Field(default=0, description="Token decimals")
    uri: str | None = Field(default=None, description="Metadata URI")
    supply: int = Field(default=0, description="Total supply in raw units")
    slot: int = Field(default=0, description="Slot the mint was created in")
    mint_authority: str | None = Field(default=None, description="Mint authority")
    freeze_authority: str | None = Field(
        default=None, description="Freeze authority"
    )
    hash: str | None = Field(default=None, description="Creation transaction")
    image: str | None = Field(default=None, description="Image URL")
    twitter: str | None = Field(default=None, description="Twitter link")
    telegram: str | None = Field(default=None, description="Telegram link")
    website: str | None = Field(default=None, description="Website link")
    program_id: str | None = Field(default=None, description="Owning token program")


class Pool(BaseModel):
    """Liquidity pool pairing a base token with a quote token."""

    pool_address: str = Field(description="Pool address")
    factory: str = Field(description="Originating protocol")
    pre_factory: str | None = Field(
        default=None, description="Protocol the pool migrated from"
    )
    reversed: bool = Field(
        default=False, description="Base/quote swapped relative to accounts"
    )
    token_base_address: str = Field(description="Base token mint")
    token_quote_address: str = Field(description="Quote token mint")
    pool_base_address: str = Field(description="Base reserve account")
    pool_quote_address: str = Field(description="Quote reserve account")
    curve_percentage: float | None = Field(
        default=None, description="Bonding curve progress percentage"
    )
    initial_token_base_reserve: float = Field(
        default=0.0, description="Base reserve at creation"
    )
    initial_token_quote_reserve: float = Field(
        default=0.0, description="Quote reserve at creation"
    )
    slot: int = Field(default=0, description="Creation slot")
    creator: str | None = Field(default=None, description="Pool creator")
    hash: str | None = Field(default=None, description="Creation transaction")
    metadata: dict[str, Any] | None = Field(
        default=None, description="Free-form metadata"
    )
    created_at: datetime = Field(description="Creation timestamp")
    updated_at: datetime | None = Field(default=None, description="Last update")


class SwapEvent(BaseModel):
    """One trade against a pool."""

    pool_address: str = Field(description="Pool address")
    creator: str = Field(description="Trader address")
    hash: str = Field(description="Transaction signature")
    swap_type: SwapType = Field(description="Swap direction")
    base_amount: float = Field(default=0.0, description="Base token amount")
    quote_amount: float = Field(default=0.0, description="Quote token amount")
    base_reserve: float = Field(description="Base reserve after the swap")
    quote_reserve: float = Field(description="Quote reserve after the swap")
    price_sol: float = Field(description="Base price in the quote asset")
    slot: int = Field(description="Slot of the swap")
    created_at: datetime = Field(description="Swap timestamp")


class Candle(BaseModel):
    """OHLCV bucket for a pool."""

    pool_address: str = Field(description="Pool address")
    timestamp: int = Field(description="Bucket start, unix seconds")
    open: float
    high: float
    low: float
    close: float
    volume_base: float = 0.0
    volume_quote: float = 0.0
    buy_count: int = 0
    sell_count: int = 0
    buyer_count: int = 0
    seller_count: int = 0

    @property
    def trades(self) -> int:
        return self.buy_count + self.sell_count


class WindowActivity(BaseModel):
    """Raw trade counters for a time range, as returned by the store."""

    buy_volume: float = 0.0
    sell_volume: float = 0.0
    buy_count: int = 0
    sell_count: int = 0
    buyer_count: int = 0
    seller_count: int = 0
    trader_count: int = 0


class TopTrader(BaseModel):
    """Lifetime trading totals of one address in a pool."""

    creator: str = Field(description="Trader address")
    is_sniper: bool = Field(
        default=False, description="Traded in the pool's first trading slot"
    )
    base_bought: float = Field(default=0.0, description="Base token bought")
    base_sold: float = Field(default=0.0, description="Base token sold")
    quote_bought: float = Field(default=0.0, description="Quote spent on buys")
    quote_sold: float = Field(default=0.0, description="Quote received on sells")


class WindowReport(BaseModel):
    """Trading activity of a pool over one trailing window."""

    pool_address: str = Field(description="Pool address")
    window: ReportWindow = Field(description="Window label")
    bucket_start: datetime = Field(description="Window start (now - duration)")
    buy_volume: float = Field(default=0.0, description="Quote volume bought")
    buy_count: int = Field(default=0, description="Number of buys")
    buyer_count: int = Field(default=0, description="Distinct buyers")
    sell_volume: float = Field(default=0.0, description="Quote volume sold")
    sell_count: int = Field(default=0, description="Number of sells")
    seller_count: int = Field(default=0, description="Distinct sellers")
    trader_count: int = Field(default=0, description="Distinct traders")
    open_price: float | None = Field(default=None, description="Price at start")
    close_price: float | None = Field(default=None, description="Price at end")
    price_change_percent: float = Field(
        default=0.0, description="Percent change from open to close"
    )

    @property
    def is_empty(self) -> bool:
        """True when no trade happened inside the window."""
        return self.buy_count + self.sell_count == 0


class PoolData(Pool):
    """Pool augmented with the state left by its latest swap."""

    price_sol: float | None = Field(default=None, description="Latest price")
    base_reserve: float = Field(description="Latest base reserve")
    quote_reserve: float = Field(description="Latest quote reserve")


class MultiPoolReport(BaseModel):
    """Window reports keyed by label."""

    report_5m: WindowReport
    report_1h: WindowReport
    report_6h: WindowReport
    report_24h: WindowReport


class SearchResult(BaseModel):
    """One search hit: a bare token or a full pool bundle."""

    base_token_data: Token | None = None
    quote_token_data: Token | None = None
    pool_data: PoolData | None = None
    pool_report: WindowReport | None = None
    multi_pool_report: MultiPoolReport | None = None

    @classmethod
    def token_only(cls, token: Token) -> "SearchResult":
        return cls(base_token_data=token)

    @property
    def is_pool_bundle(self) -> bool:
        return self.pool_data is not None
