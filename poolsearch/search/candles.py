"""OHLCV candles rolled up from 1-second buckets."""

from enum import Enum

import structlog

from ..core.address import decode_address
from ..core.interfaces import SearchStore
from ..core.types import Candle

logger = structlog.get_logger(__name__)


class CandleInterval(str, Enum):
    """Supported candle granularities."""

    ONE_SECOND = "1s"
    FIVE_SECONDS = "5s"
    FIFTEEN_SECONDS = "15s"
    THIRTY_SECONDS = "30s"
    ONE_MINUTE = "1m"
    FIVE_MINUTES = "5m"
    FIFTEEN_MINUTES = "15m"
    THIRTY_MINUTES = "30m"
    ONE_HOUR = "1h"
    FOUR_HOURS = "4h"
    SIX_HOURS = "6h"
    TWELVE_HOURS = "12h"
    ONE_DAY = "1d"

    @property
    def seconds(self) -> int:
        value = int(self.value[:-1])
        unit = self.value[-1]
        return value * {"s": 1, "m": 60, "h": 3600, "d": 86400}[unit]


def roll_up(candles: list[Candle], interval_seconds: int) -> list[Candle]:
    """Merge 1-second candles into epoch-aligned buckets.

    Input must be sorted oldest first. Distinct buyer/seller counts are summed
    across the merged seconds, so they are an upper bound for the bucket.

    Returns:
        Merged candles, oldest first
    """
    if interval_seconds < 1:
        raise ValueError("interval_seconds must be positive")

    merged: list[Candle] = []
    for candle in candles:
        bucket = candle.timestamp - candle.timestamp % interval_seconds
        current = merged[-1] if merged else None

        if current is None or current.timestamp != bucket:
            merged.append(candle.model_copy(update={"timestamp": bucket}))
            continue

        current.high = max(current.high, candle.high)
        current.low = min(current.low, candle.low)
        current.close = candle.close
        current.volume_base += candle.volume_base
        current.volume_quote += candle.volume_quote
        current.buy_count += candle.buy_count
        current.sell_count += candle.sell_count
        current.buyer_count += candle.buyer_count
        current.seller_count += candle.seller_count

    return merged


class CandleReader:
    """Reads candles for a pool at a requested interval."""

    def __init__(self, store: SearchStore) -> None:
        self.store = store

    async def candles(
        self,
        pool_address: str,
        interval: CandleInterval,
        start: int,
        end: int,
        limit: int,
    ) -> list[Candle]:
        """Candles within [start, end], newest first, at most `limit` of them."""
        raw = await self.store.load_candles(decode_address(pool_address), start, end)
        merged = roll_up(raw, interval.seconds)
        merged.reverse()

        logger.debug(
            "Candles loaded",
            pool_address=pool_address,
            interval=interval.value,
            raw=len(raw),
            merged=len(merged),
        )
        return merged[:limit]
