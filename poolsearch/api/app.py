"""HTTP interface for the pool search engine."""

from collections.abc import Callable
from contextlib import asynccontextmanager
from datetime import UTC, date, datetime, time, timedelta

import structlog
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..config.settings import AppSettings
from ..core.errors import InvalidEncoding, StorageUnavailable
from ..core.types import (
    Candle,
    ReportWindow,
    SearchResult,
    SwapEvent,
    TopTrader,
    WindowReport,
)
from ..persist.storage import SQLiteStorage
from ..search.candles import CandleInterval
from ..search.service import SearchService

logger = structlog.get_logger(__name__)

router = APIRouter()

DEFAULT_CANDLE_LOOKBACK = timedelta(days=7)
DEFAULT_TRADES_LOOKBACK = timedelta(days=7)
DEFAULT_TRADES_LIMIT = 20


def get_service(request: Request) -> SearchService:
    return request.app.state.service


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/pools", response_model=list[SearchResult])
async def search_pools(
    search: str | None = Query(default=None, description="Address, name or symbol"),
    service: SearchService = Depends(get_service),
) -> list[SearchResult]:
    """Search tokens and pools by address, name or symbol."""
    if search is None:
        raise HTTPException(status_code=400, detail="Missing 'search' query parameter")
    return await service.search(search)


@router.get("/pool-report", response_model=WindowReport)
async def get_pool_report(
    pool_address: str = Query(description="Pool address"),
    report_type: str = Query(description="One of 1m, 5m, 1h, 6h, 24h"),
    service: SearchService = Depends(get_service),
) -> WindowReport:
    """Trading activity of one pool over a trailing window."""
    try:
        window = ReportWindow(report_type)
    except ValueError as e:
        valid = ", ".join(w.value for w in ReportWindow)
        raise HTTPException(
            status_code=400, detail=f"Invalid report_type: {report_type}. Must be one of: {valid}"
        ) from e

    report = await service.pool_report(pool_address, window)
    if report is None:
        raise HTTPException(status_code=404, detail="Pool not found")
    return report


@router.get("/last-transaction/{pool_address}", response_model=SwapEvent)
async def get_last_transaction(
    pool_address: str,
    service: SearchService = Depends(get_service),
) -> SwapEvent:
    """Most recent swap of a pool."""
    swap = await service.last_transaction(pool_address)
    if swap is None:
        raise HTTPException(status_code=404, detail="No transactions for pool")
    return swap


@router.get("/candlestick", response_model=list[Candle])
async def get_candlestick(
    pool_address: str = Query(description="Pool address"),
    interval: str = Query(description="Candle interval, e.g. 1m"),
    start_time: int | None = Query(default=None, description="Unix seconds"),
    end_time: int | None = Query(default=None, description="Unix seconds"),
    limit: int = Query(default=500, ge=1, le=5000),
    service: SearchService = Depends(get_service),
) -> list[Candle]:
    """OHLCV candles for a pool, newest first."""
    try:
        candle_interval = CandleInterval(interval)
    except ValueError as e:
        valid = ", ".join(i.value for i in CandleInterval)
        raise HTTPException(
            status_code=400, detail=f"Invalid interval: {interval}. Must be one of: {valid}"
        ) from e

    now = datetime.fromtimestamp(service.now(), tz=UTC)
    if end_time is None:
        end_time = int(now.timestamp())
    if start_time is None:
        start_time = int((now - DEFAULT_CANDLE_LOOKBACK).timestamp())
    if start_time > end_time:
        raise HTTPException(status_code=400, detail="start_time is after end_time")

    return await service.candles(pool_address, candle_interval, start_time, end_time, limit)


def _parse_day(value: str, name: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as e:
        raise HTTPException(
            status_code=400, detail=f"Invalid {name}: {value}. Expected YYYY-MM-DD"
        ) from e


@router.get("/trades", response_model=list[SwapEvent])
async def get_trades(
    pool_address: str = Query(description="Pool address"),
    start_date: str | None = Query(default=None, description="First day, YYYY-MM-DD"),
    end_date: str | None = Query(default=None, description="Last day, YYYY-MM-DD"),
    limit: int = Query(default=DEFAULT_TRADES_LIMIT, ge=1, le=100),
    service: SearchService = Depends(get_service),
) -> list[SwapEvent]:
    """Most recent swaps of a pool, newest first."""
    now = datetime.fromtimestamp(service.now(), tz=UTC)

    if end_date is None:
        end = now
    else:
        end = datetime.combine(_parse_day(end_date, "end_date"), time.max, tzinfo=UTC)
    if start_date is None:
        start = end - DEFAULT_TRADES_LOOKBACK
    else:
        start = datetime.combine(_parse_day(start_date, "start_date"), time.min, tzinfo=UTC)
    if start > end:
        raise HTTPException(status_code=400, detail="start_date is after end_date")

    return await service.trades(pool_address, start.timestamp(), end.timestamp(), limit)


@router.get("/top-traders/{pool_address}", response_model=list[TopTrader])
async def get_top_traders(
    pool_address: str,
    service: SearchService = Depends(get_service),
) -> list[TopTrader]:
    """Largest traders of a pool over its whole history."""
    return await service.top_traders(pool_address)


async def _invalid_encoding_handler(request: Request, exc: InvalidEncoding) -> JSONResponse:
    logger.info("Rejected malformed address", path=request.url.path, reason=exc.reason)
    return JSONResponse(status_code=400, content={"detail": str(exc)})


async def _storage_unavailable_handler(
    request: Request, exc: StorageUnavailable
) -> JSONResponse:
    logger.error("Storage unavailable", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=500, content={"detail": "storage unavailable"})


def create_app(
    settings: AppSettings,
    storage: SQLiteStorage | None = None,
    now_fn: Callable[[], float] | None = None,
) -> FastAPI:
    """Assemble the FastAPI application.

    Args:
        settings: Application settings
        storage: Optional pre-built storage (defaults to settings.database_path)
        now_fn: Optional clock override (for testing)

    Returns:
        Configured FastAPI app
    """
    if storage is None:
        storage = SQLiteStorage(
            db_path=settings.database_path,
            max_connections=settings.max_connections,
            query_timeout=settings.query_timeout_seconds,
        )

    service = SearchService(
        storage,
        search_limit=settings.search_limit,
        request_timeout=settings.request_timeout_seconds,
        now_fn=now_fn,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await storage.initialize()
        logger.info("Pool search API started", env=settings.env)
        yield
        await storage.close()
        logger.info("Pool search API stopped")

    app = FastAPI(
        title="Pool Search API",
        description="Token and liquidity pool search over indexed chain data",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    app.add_exception_handler(InvalidEncoding, _invalid_encoding_handler)
    app.add_exception_handler(StorageUnavailable, _storage_unavailable_handler)
    app.include_router(router)
    app.state.service = service
    app.state.storage = storage

    return app
