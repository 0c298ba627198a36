"""Search orchestration and result assembly."""

import asyncio
import time
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager

import structlog

from ..core.address import decode_address
from ..core.errors import StorageUnavailable
from ..core.interfaces import SearchStore
from ..core.types import (
    SEARCH_WINDOWS,
    Candle,
    MultiPoolReport,
    ReportWindow,
    SearchResult,
    SwapEvent,
    TopTrader,
    WindowReport,
)
from .candles import CandleInterval, CandleReader
from .classifier import classify_query
from .latest import LatestState, LatestSwapResolver
from .lookup import EntityLookup, Hit, PoolHit, TokenHit
from .windows import WindowAggregator

logger = structlog.get_logger(__name__)


class SearchService:
    """Resolves search queries into token-only records and pool bundles."""

    def __init__(
        self,
        store: SearchStore,
        search_limit: int = 10,
        request_timeout: float = 10.0,
        now_fn: Callable[[], float] | None = None,
    ) -> None:
        """Initialize search service.

        Args:
            store: Read-only store
            search_limit: Maximum rows per text search query
            request_timeout: Deadline in seconds for one request's sub-queries
            now_fn: Optional function returning the current unix time (for testing)
        """
        self.store = store
        self.request_timeout = request_timeout
        self._now_fn = now_fn or time.time

        self.lookup = EntityLookup(store, search_limit=search_limit)
        self.resolver = LatestSwapResolver(store)
        self.aggregator = WindowAggregator(store)
        self.candle_reader = CandleReader(store)

    @asynccontextmanager
    async def _deadline(self, operation: str) -> AsyncIterator[None]:
        """Cancel every sub-query of a request once its deadline passes."""
        try:
            async with asyncio.timeout(self.request_timeout):
                yield
        except TimeoutError as e:
            logger.error(
                "Request deadline exceeded",
                operation=operation,
                timeout=self.request_timeout,
            )
            raise StorageUnavailable(f"{operation} exceeded {self.request_timeout}s") from e

    async def search(self, raw_query: str | None) -> list[SearchResult]:
        """Resolve a free-form query.

        Returns:
            Results ordered mint hits, pool hits, then text hits. Empty when
            the query is blank or nothing matched.

        Raises:
            StorageUnavailable: If the store fails during lookup or the
                request deadline expires
        """
        query = classify_query(raw_query)
        if query is None:
            logger.debug("Empty search query")
            return []

        now = self._now_fn()
        async with self._deadline("search"):
            hits = await self.lookup.lookup(query)
            results = await asyncio.gather(*(self._assemble(hit, now) for hit in hits))

        logger.info(
            "Search completed",
            query_type=type(query).__name__,
            results=len(results),
            pool_bundles=sum(1 for r in results if r.is_pool_bundle),
        )
        return list(results)

    async def _assemble(self, hit: Hit, now: float) -> SearchResult:
        if isinstance(hit, TokenHit):
            return SearchResult.token_only(hit.token)

        try:
            return await self.pool_bundle(hit, now)
        except (StorageUnavailable, ValueError) as e:
            logger.error(
                "Pool bundle assembly failed, using defaults",
                pool_address=hit.pool.pool_address,
                error=str(e),
            )
            reports = {
                window: self.aggregator.empty_report(hit.pool.pool_address, window, now)
                for window in SEARCH_WINDOWS
            }
            return self._bundle(hit, LatestState.initial(hit.pool), reports)

    async def pool_bundle(self, hit: PoolHit, now: float) -> SearchResult:
        """Latest state and window reports for a pool hit, fetched concurrently."""
        latest, reports = await asyncio.gather(
            self.resolver.resolve(hit.pool),
            self.aggregator.aggregate(hit.pool.pool_address, SEARCH_WINDOWS, now),
        )
        return self._bundle(hit, latest, reports)

    @staticmethod
    def _bundle(
        hit: PoolHit,
        latest: LatestState,
        reports: dict[ReportWindow, WindowReport],
    ) -> SearchResult:
        return SearchResult(
            base_token_data=hit.base_token,
            quote_token_data=hit.quote_token,
            pool_data=latest.apply_to(hit.pool),
            pool_report=reports[ReportWindow.ONE_DAY],
            multi_pool_report=MultiPoolReport(
                report_5m=reports[ReportWindow.FIVE_MINUTES],
                report_1h=reports[ReportWindow.ONE_HOUR],
                report_6h=reports[ReportWindow.SIX_HOURS],
                report_24h=reports[ReportWindow.ONE_DAY],
            ),
        )

    async def pool_report(
        self, pool_address: str, window: ReportWindow
    ) -> WindowReport | None:
        """Single window report for a known pool.

        Raises:
            InvalidEncoding: If pool_address is not a valid address
        """
        address = decode_address(pool_address)
        now = self._now_fn()
        async with self._deadline("pool_report"):
            pool = await self.store.get_pool(address)
            if pool is None:
                return None
            return await self.aggregator.report(pool.pool_address, window, now)

    async def last_transaction(self, pool_address: str) -> SwapEvent | None:
        """Most recent swap of a pool."""
        decode_address(pool_address)
        async with self._deadline("last_transaction"):
            return await self.resolver.latest_swap(pool_address)

    async def candles(
        self,
        pool_address: str,
        interval: CandleInterval,
        start: int,
        end: int,
        limit: int,
    ) -> list[Candle]:
        """Candles for a pool, newest first."""
        decode_address(pool_address)
        async with self._deadline("candles"):
            return await self.candle_reader.candles(
                pool_address, interval, start, end, limit
            )

    async def trades(
        self, pool_address: str, start: float, end: float, limit: int
    ) -> list[SwapEvent]:
        """Swaps of a pool within [start, end], newest first.

        Raises:
            InvalidEncoding: If pool_address is not a valid address
        """
        address = decode_address(pool_address)
        async with self._deadline("trades"):
            return await self.store.recent_swaps(address, start, end, limit)

    async def top_traders(self, pool_address: str, limit: int = 20) -> list[TopTrader]:
        """Largest buyers of a pool by base amount, with sniper flags."""
        address = decode_address(pool_address)
        async with self._deadline("top_traders"):
            traders = await self.store.top_traders(address, limit)

        logger.debug("Top traders loaded", pool_address=pool_address, count=len(traders))
        return traders

    def now(self) -> float:
        """Current unix time from the service clock."""
        return self._now_fn()
