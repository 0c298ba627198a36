"""Rolling-window trading activity reports."""

import asyncio
from collections.abc import Iterable
from datetime import UTC, datetime

import structlog

from ..core.address import decode_address
from ..core.errors import StorageUnavailable
from ..core.interfaces import SearchStore
from ..core.types import ReportWindow, WindowActivity, WindowReport

logger = structlog.get_logger(__name__)


def price_change_percent(
    open_price: float | None, close_price: float | None, trades: int
) -> float:
    """Percent change from open to close.

    Zero when the window saw no trades or the open price is zero/unknown.
    """
    if trades == 0 or not open_price or close_price is None:
        return 0.0
    return (close_price - open_price) / open_price * 100


class WindowAggregator:
    """Computes WindowReports for a pool over trailing windows.

    Each window is an independent aggregation over [now - duration, now],
    inclusive on both edges, so windows can be computed concurrently.
    """

    def __init__(self, store: SearchStore) -> None:
        self.store = store

    async def aggregate(
        self,
        pool_address: str,
        windows: Iterable[ReportWindow],
        now: float,
    ) -> dict[ReportWindow, WindowReport]:
        """Compute one report per window against the same reference instant.

        Args:
            pool_address: Pool address (base58)
            windows: Windows to report on
            now: Reference unix timestamp, shared by all windows

        Returns:
            Reports keyed by window, in the order requested
        """
        windows = list(windows)
        reports = await asyncio.gather(
            *(self.report(pool_address, window, now) for window in windows)
        )
        return dict(zip(windows, reports, strict=True))

    async def report(
        self, pool_address: str, window: ReportWindow, now: float
    ) -> WindowReport:
        """Compute the report for a single window.

        A window with no trades, or one whose queries fail, yields a report
        with zero counters rather than an error.
        """
        address = decode_address(pool_address)
        start = now - window.seconds

        try:
            activity, first_in_window, last_before, last_swap = await asyncio.gather(
                self.store.window_activity(address, start, now),
                self.store.first_trade_between(address, start, now),
                self.store.latest_trade_before(address, start),
                self.store.latest_swap(address, at_or_before=now),
            )
        except StorageUnavailable as e:
            logger.warning(
                "Window aggregation failed, reporting empty window",
                pool_address=pool_address,
                window=window.value,
                error=str(e),
            )
            return self.empty_report(pool_address, window, now)

        # Liquidity events never open a window; an idle window carries the
        # last trade price from before its start.
        if first_in_window is not None:
            open_price = first_in_window.price_sol
        elif last_before is not None:
            open_price = last_before.price_sol
        else:
            open_price = None
        close_price = last_swap.price_sol if last_swap is not None else None

        report = self._build(pool_address, window, start, activity, open_price, close_price)

        logger.debug(
            "Window aggregated",
            pool_address=pool_address,
            window=window.value,
            trades=activity.buy_count + activity.sell_count,
            traders=activity.trader_count,
        )
        return report

    @classmethod
    def empty_report(
        cls, pool_address: str, window: ReportWindow, now: float
    ) -> WindowReport:
        """Zero-valued report with unknown prices."""
        start = now - window.seconds
        return cls._build(pool_address, window, start, WindowActivity(), None, None)

    @staticmethod
    def _build(
        pool_address: str,
        window: ReportWindow,
        start: float,
        activity: WindowActivity,
        open_price: float | None,
        close_price: float | None,
    ) -> WindowReport:
        trades = activity.buy_count + activity.sell_count
        return WindowReport(
            pool_address=pool_address,
            window=window,
            bucket_start=datetime.fromtimestamp(start, tz=UTC),
            buy_volume=activity.buy_volume,
            buy_count=activity.buy_count,
            buyer_count=activity.buyer_count,
            sell_volume=activity.sell_volume,
            sell_count=activity.sell_count,
            seller_count=activity.seller_count,
            trader_count=activity.trader_count,
            open_price=open_price,
            close_price=close_price,
            price_change_percent=price_change_percent(open_price, close_price, trades),
        )
