"""Persistence storage for indexed chain data using SQLite."""

import asyncio
import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

import aiosqlite
import structlog

from ..core.address import decode_address, encode_address
from ..core.errors import StorageUnavailable
from ..core.interfaces import SearchStore
from ..core.types import (
    Candle,
    Pool,
    SwapEvent,
    SwapType,
    Token,
    TopTrader,
    WindowActivity,
)

logger = structlog.get_logger(__name__)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS tokens (
        mint_address BLOB PRIMARY KEY,
        name TEXT NOT NULL DEFAULT '',
        symbol TEXT NOT NULL DEFAULT '',
        decimals INTEGER NOT NULL DEFAULT 0,
        uri TEXT,
        supply INTEGER NOT NULL DEFAULT 0,
        slot INTEGER NOT NULL DEFAULT 0,
        mint_authority BLOB,
        freeze_authority BLOB,
        hash TEXT,
        image TEXT,
        twitter TEXT,
        telegram TEXT,
        website TEXT,
        program_id BLOB
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS pools (
        pool_address BLOB PRIMARY KEY,
        factory TEXT NOT NULL,
        pre_factory TEXT,
        reversed INTEGER NOT NULL DEFAULT 0,
        token_base_address BLOB NOT NULL,
        token_quote_address BLOB NOT NULL,
        pool_base_address BLOB NOT NULL,
        pool_quote_address BLOB NOT NULL,
        curve_percentage REAL,
        initial_token_base_reserve REAL NOT NULL DEFAULT 0,
        initial_token_quote_reserve REAL NOT NULL DEFAULT 0,
        slot INTEGER NOT NULL DEFAULT 0,
        creator BLOB,
        hash TEXT,
        metadata TEXT,
        created_at REAL NOT NULL,
        updated_at REAL
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_pools_token_base
    ON pools(token_base_address)
    """,
    """
    CREATE TABLE IF NOT EXISTS swaps (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        pool_address BLOB NOT NULL,
        creator BLOB NOT NULL,
        hash TEXT NOT NULL,
        swap_type TEXT NOT NULL,
        base_amount REAL NOT NULL DEFAULT 0,
        quote_amount REAL NOT NULL DEFAULT 0,
        base_reserve REAL NOT NULL,
        quote_reserve REAL NOT NULL,
        price_sol REAL NOT NULL,
        slot INTEGER NOT NULL,
        ts REAL NOT NULL
    )
    """,
    # Serves both "most recent" and "range since" scans per pool
    """
    CREATE INDEX IF NOT EXISTS idx_swaps_pool_ts
    ON swaps(pool_address, ts, slot)
    """,
    """
    CREATE TABLE IF NOT EXISTS candles_1s (
        pool_address BLOB NOT NULL,
        ts INTEGER NOT NULL,
        open REAL NOT NULL,
        high REAL NOT NULL,
        low REAL NOT NULL,
        close REAL NOT NULL,
        volume_base REAL NOT NULL DEFAULT 0,
        volume_quote REAL NOT NULL DEFAULT 0,
        buy_count INTEGER NOT NULL DEFAULT 0,
        sell_count INTEGER NOT NULL DEFAULT 0,
        buyer_count INTEGER NOT NULL DEFAULT 0,
        seller_count INTEGER NOT NULL DEFAULT 0,
        PRIMARY KEY (pool_address, ts)
    )
    """,
)

_SWAP_ORDER_DESC = "ORDER BY ts DESC, slot DESC, id DESC"
_SWAP_ORDER_ASC = "ORDER BY ts ASC, slot ASC, id ASC"
_TRADE_FILTER = "swap_type IN ('BUY', 'SELL')"


def _to_ts(value: datetime) -> float:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.timestamp()


def _from_ts(value: float | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromtimestamp(value, tz=UTC)


def _opt_encode(value: bytes | None) -> str | None:
    return encode_address(value) if value is not None else None


def _opt_decode(value: str | None) -> bytes | None:
    return decode_address(value) if value is not None else None


def _casefold(value: str | None) -> str | None:
    return value.casefold() if value is not None else None


def _escape_like(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _row_to_token(row: aiosqlite.Row) -> Token:
    return Token(
        mint_address=encode_address(row["mint_address"]),
        name=row["name"],
        symbol=row["symbol"],
        decimals=row["decimals"],
        uri=row["uri"],
        supply=row["supply"],
        slot=row["slot"],
        mint_authority=_opt_encode(row["mint_authority"]),
        freeze_authority=_opt_encode(row["freeze_authority"]),
        hash=row["hash"],
        image=row["image"],
        twitter=row["twitter"],
        telegram=row["telegram"],
        website=row["website"],
        program_id=_opt_encode(row["program_id"]),
    )


def _row_to_pool(row: aiosqlite.Row) -> Pool:
    metadata = json.loads(row["metadata"]) if row["metadata"] else None
    return Pool(
        pool_address=encode_address(row["pool_address"]),
        factory=row["factory"],
        pre_factory=row["pre_factory"],
        reversed=bool(row["reversed"]),
        token_base_address=encode_address(row["token_base_address"]),
        token_quote_address=encode_address(row["token_quote_address"]),
        pool_base_address=encode_address(row["pool_base_address"]),
        pool_quote_address=encode_address(row["pool_quote_address"]),
        curve_percentage=row["curve_percentage"],
        initial_token_base_reserve=row["initial_token_base_reserve"],
        initial_token_quote_reserve=row["initial_token_quote_reserve"],
        slot=row["slot"],
        creator=_opt_encode(row["creator"]),
        hash=row["hash"],
        metadata=metadata,
        created_at=_from_ts(row["created_at"]),
        updated_at=_from_ts(row["updated_at"]),
    )


def _row_to_swap(row: aiosqlite.Row) -> SwapEvent:
    return SwapEvent(
        pool_address=encode_address(row["pool_address"]),
        creator=encode_address(row["creator"]),
        hash=row["hash"],
        swap_type=SwapType.parse(row["swap_type"]),
        base_amount=row["base_amount"],
        quote_amount=row["quote_amount"],
        base_reserve=row["base_reserve"],
        quote_reserve=row["quote_reserve"],
        price_sol=row["price_sol"],
        slot=row["slot"],
        created_at=_from_ts(row["ts"]),
    )


def _row_to_candle(row: aiosqlite.Row) -> Candle:
    return Candle(
        pool_address=encode_address(row["pool_address"]),
        timestamp=row["ts"],
        open=row["open"],
        high=row["high"],
        low=row["low"],
        close=row["close"],
        volume_base=row["volume_base"],
        volume_quote=row["volume_quote"],
        buy_count=row["buy_count"],
        sell_count=row["sell_count"],
        buyer_count=row["buyer_count"],
        seller_count=row["seller_count"],
    )


class SQLiteStorage(SearchStore):
    """SQLite-based store of tokens, pools, swaps and candles."""

    def __init__(
        self,
        db_path: str = "indexer.sqlite",
        max_connections: int = 10,
        query_timeout: float = 5.0,
    ) -> None:
        """Initialize SQLite storage.

        Args:
            db_path: Path to SQLite database file
            max_connections: Maximum number of concurrently open connections
            query_timeout: Seconds to wait on a locked database
        """
        if max_connections < 1:
            raise ValueError("max_connections must be at least 1")

        self.db_path = db_path
        self.max_connections = max_connections
        self.query_timeout = query_timeout
        self._slots = asyncio.Semaphore(max_connections)

        logger.info(
            "SQLite storage initialized",
            db_path=db_path,
            max_connections=max_connections,
        )

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        """Acquire a connection slot and open a connection for one sub-query."""
        async with self._slots:
            try:
                db = await aiosqlite.connect(self.db_path, timeout=self.query_timeout)
            except (aiosqlite.Error, OSError) as e:
                logger.error("Failed to open database", db_path=self.db_path, error=str(e))
                raise StorageUnavailable(f"Cannot open {self.db_path}: {e}") from e

            try:
                db.row_factory = aiosqlite.Row
                # SQLite LIKE only folds ASCII case
                await db.create_function("casefold", 1, _casefold)
                yield db
            except aiosqlite.Error as e:
                logger.error("Database query failed", error=str(e))
                raise StorageUnavailable(f"Query failed: {e}") from e
            finally:
                await db.close()

    async def _fetchone(self, sql: str, params: tuple[Any, ...]) -> aiosqlite.Row | None:
        async with self._connect() as db:
            async with db.execute(sql, params) as cursor:
                return await cursor.fetchone()

    async def _fetchall(self, sql: str, params: tuple[Any, ...]) -> list[aiosqlite.Row]:
        async with self._connect() as db:
            async with db.execute(sql, params) as cursor:
                return list(await cursor.fetchall())

    async def initialize(self) -> None:
        """Initialize database tables."""
        async with self._connect() as db:
            for statement in _SCHEMA:
                await db.execute(statement)
            await db.commit()

        logger.info("Database tables initialized")

    # Entity lookups

    async def get_token(self, mint_address: bytes) -> Token | None:
        row = await self._fetchone(
            "SELECT * FROM tokens WHERE mint_address = ?", (mint_address,)
        )
        return _row_to_token(row) if row else None

    async def get_pool(self, pool_address: bytes) -> Pool | None:
        row = await self._fetchone(
            "SELECT * FROM pools WHERE pool_address = ?", (pool_address,)
        )
        return _row_to_pool(row) if row else None

    async def search_tokens_by_name(self, text: str, limit: int) -> list[Token]:
        rows = await self._fetchall(
            "SELECT * FROM tokens WHERE casefold(name) LIKE ? ESCAPE '\\' "
            "ORDER BY rowid LIMIT ?",
            (_escape_like(text.casefold()), limit),
        )
        tokens = [_row_to_token(row) for row in rows]
        logger.debug("Token name search", text=text, count=len(tokens))
        return tokens

    async def search_tokens_by_symbol(self, text: str, limit: int) -> list[Token]:
        rows = await self._fetchall(
            "SELECT * FROM tokens WHERE casefold(symbol) LIKE ? ESCAPE '\\' "
            "ORDER BY rowid LIMIT ?",
            (_escape_like(text.casefold()), limit),
        )
        tokens = [_row_to_token(row) for row in rows]
        logger.debug("Token symbol search", text=text, count=len(tokens))
        return tokens

    # Swap history

    async def latest_swap(
        self, pool_address: bytes, at_or_before: float | None = None
    ) -> SwapEvent | None:
        if at_or_before is None:
            sql = f"SELECT * FROM swaps WHERE pool_address = ? {_SWAP_ORDER_DESC} LIMIT 1"
            params: tuple[Any, ...] = (pool_address,)
        else:
            sql = (
                "SELECT * FROM swaps WHERE pool_address = ? AND ts <= ? "
                f"{_SWAP_ORDER_DESC} LIMIT 1"
            )
            params = (pool_address, at_or_before)

        row = await self._fetchone(sql, params)
        return _row_to_swap(row) if row else None

    async def latest_trade_before(
        self, pool_address: bytes, before: float
    ) -> SwapEvent | None:
        row = await self._fetchone(
            "SELECT * FROM swaps WHERE pool_address = ? AND ts < ? "
            f"AND {_TRADE_FILTER} {_SWAP_ORDER_DESC} LIMIT 1",
            (pool_address, before),
        )
        return _row_to_swap(row) if row else None

    async def first_trade_between(
        self, pool_address: bytes, start: float, end: float
    ) -> SwapEvent | None:
        row = await self._fetchone(
            "SELECT * FROM swaps WHERE pool_address = ? AND ts >= ? AND ts <= ? "
            f"AND {_TRADE_FILTER} {_SWAP_ORDER_ASC} LIMIT 1",
            (pool_address, start, end),
        )
        return _row_to_swap(row) if row else None

    async def recent_swaps(
        self, pool_address: bytes, start: float, end: float, limit: int
    ) -> list[SwapEvent]:
        rows = await self._fetchall(
            "SELECT * FROM swaps WHERE pool_address = ? AND ts >= ? AND ts <= ? "
            f"{_SWAP_ORDER_DESC} LIMIT ?",
            (pool_address, start, end, limit),
        )
        return [_row_to_swap(row) for row in rows]

    async def top_traders(self, pool_address: bytes, limit: int) -> list[TopTrader]:
        rows = await self._fetchall(
            f"""
            WITH first_trade AS (
                SELECT slot FROM swaps
                WHERE pool_address = ? AND {_TRADE_FILTER}
                {_SWAP_ORDER_ASC}
                LIMIT 1
            )
            SELECT
                s.creator AS creator,
                COALESCE(SUM(CASE WHEN s.swap_type = 'BUY' THEN s.base_amount END), 0)
                    AS base_bought,
                COALESCE(SUM(CASE WHEN s.swap_type = 'SELL' THEN s.base_amount END), 0)
                    AS base_sold,
                COALESCE(SUM(CASE WHEN s.swap_type = 'BUY' THEN s.quote_amount END), 0)
                    AS quote_bought,
                COALESCE(SUM(CASE WHEN s.swap_type = 'SELL' THEN s.quote_amount END), 0)
                    AS quote_sold,
                MAX(s.slot = f.slot) AS is_sniper
            FROM swaps s
            CROSS JOIN first_trade f
            WHERE s.pool_address = ? AND s.{_TRADE_FILTER}
            GROUP BY s.creator
            ORDER BY base_bought DESC, MIN(s.id) ASC
            LIMIT ?
            """,
            (pool_address, pool_address, limit),
        )
        return [
            TopTrader(
                creator=encode_address(row["creator"]),
                is_sniper=bool(row["is_sniper"]),
                base_bought=row["base_bought"],
                base_sold=row["base_sold"],
                quote_bought=row["quote_bought"],
                quote_sold=row["quote_sold"],
            )
            for row in rows
        ]

    async def window_activity(
        self, pool_address: bytes, start: float, end: float
    ) -> WindowActivity:
        row = await self._fetchone(
            f"""
            SELECT
                COALESCE(SUM(CASE WHEN swap_type = 'BUY' THEN quote_amount END), 0)
                    AS buy_volume,
                COALESCE(SUM(CASE WHEN swap_type = 'SELL' THEN quote_amount END), 0)
                    AS sell_volume,
                COUNT(CASE WHEN swap_type = 'BUY' THEN 1 END) AS buy_count,
                COUNT(CASE WHEN swap_type = 'SELL' THEN 1 END) AS sell_count,
                COUNT(DISTINCT CASE WHEN swap_type = 'BUY' THEN creator END)
                    AS buyer_count,
                COUNT(DISTINCT CASE WHEN swap_type = 'SELL' THEN creator END)
                    AS seller_count,
                COUNT(DISTINCT creator) AS trader_count
            FROM swaps
            WHERE pool_address = ?
              AND ts >= ? AND ts <= ?
              AND {_TRADE_FILTER}
            """,
            (pool_address, start, end),
        )
        return WindowActivity(**dict(row))

    # Candles

    async def load_candles(
        self, pool_address: bytes, start: int, end: int
    ) -> list[Candle]:
        rows = await self._fetchall(
            "SELECT * FROM candles_1s WHERE pool_address = ? AND ts >= ? AND ts <= ? "
            "ORDER BY ts ASC",
            (pool_address, start, end),
        )
        return [_row_to_candle(row) for row in rows]

    # Fixture loading (development seed data and tests)

    async def upsert_token(self, token: Token) -> None:
        """Insert or replace a token record."""
        async with self._connect() as db:
            await db.execute(
                """
                INSERT INTO tokens (
                    mint_address, name, symbol, decimals, uri, supply, slot,
                    mint_authority, freeze_authority, hash, image, twitter,
                    telegram, website, program_id
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(mint_address) DO UPDATE SET
                    name = excluded.name,
                    symbol = excluded.symbol,
                    decimals = excluded.decimals,
                    uri = excluded.uri,
                    supply = excluded.supply,
                    image = excluded.image,
                    twitter = excluded.twitter,
                    telegram = excluded.telegram,
                    website = excluded.website
            """,
                (
                    decode_address(token.mint_address),
                    token.name,
                    token.symbol,
                    token.decimals,
                    token.uri,
                    token.supply,
                    token.slot,
                    _opt_decode(token.mint_authority),
                    _opt_decode(token.freeze_authority),
                    token.hash,
                    token.image,
                    token.twitter,
                    token.telegram,
                    token.website,
                    _opt_decode(token.program_id),
                ),
            )
            await db.commit()

        logger.debug("Token upserted", mint_address=token.mint_address)

    async def upsert_pool(self, pool: Pool) -> None:
        """Insert or replace a pool record."""
        async with self._connect() as db:
            await db.execute(
                """
                INSERT OR REPLACE INTO pools (
                    pool_address, factory, pre_factory, reversed,
                    token_base_address, token_quote_address,
                    pool_base_address, pool_quote_address, curve_percentage,
                    initial_token_base_reserve, initial_token_quote_reserve,
                    slot, creator, hash, metadata, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
                (
                    decode_address(pool.pool_address),
                    pool.factory,
                    pool.pre_factory,
                    int(pool.reversed),
                    decode_address(pool.token_base_address),
                    decode_address(pool.token_quote_address),
                    decode_address(pool.pool_base_address),
                    decode_address(pool.pool_quote_address),
                    pool.curve_percentage,
                    pool.initial_token_base_reserve,
                    pool.initial_token_quote_reserve,
                    pool.slot,
                    _opt_decode(pool.creator),
                    pool.hash,
                    json.dumps(pool.metadata) if pool.metadata is not None else None,
                    _to_ts(pool.created_at),
                    _to_ts(pool.updated_at) if pool.updated_at else None,
                ),
            )
            await db.commit()

        logger.debug("Pool upserted", pool_address=pool.pool_address)

    async def record_swap(self, swap: SwapEvent) -> int:
        """Append a swap to the log.

        Returns:
            Swap row ID
        """
        async with self._connect() as db:
            cursor = await db.execute(
                """
                INSERT INTO swaps (
                    pool_address, creator, hash, swap_type, base_amount,
                    quote_amount, base_reserve, quote_reserve, price_sol, slot, ts
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
                (
                    decode_address(swap.pool_address),
                    decode_address(swap.creator),
                    swap.hash,
                    swap.swap_type.value,
                    swap.base_amount,
                    swap.quote_amount,
                    swap.base_reserve,
                    swap.quote_reserve,
                    swap.price_sol,
                    swap.slot,
                    _to_ts(swap.created_at),
                ),
            )
            swap_id = cursor.lastrowid
            await db.commit()

        logger.debug(
            "Swap recorded",
            swap_id=swap_id,
            pool_address=swap.pool_address,
            swap_type=swap.swap_type.value,
            price_sol=swap.price_sol,
        )
        return swap_id

    async def record_candle(self, candle: Candle) -> None:
        """Insert or replace a 1-second candle."""
        async with self._connect() as db:
            await db.execute(
                """
                INSERT OR REPLACE INTO candles_1s (
                    pool_address, ts, open, high, low, close, volume_base,
                    volume_quote, buy_count, sell_count, buyer_count, seller_count
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
                (
                    decode_address(candle.pool_address),
                    candle.timestamp,
                    candle.open,
                    candle.high,
                    candle.low,
                    candle.close,
                    candle.volume_base,
                    candle.volume_quote,
                    candle.buy_count,
                    candle.sell_count,
                    candle.buyer_count,
                    candle.seller_count,
                ),
            )
            await db.commit()

    async def close(self) -> None:
        """Close storage (cleanup if needed)."""
        logger.info("Storage closed")

    async def __aenter__(self):
        """Async context manager entry."""
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
