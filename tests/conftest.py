"""Shared fixtures for pool search tests."""

import tempfile
from datetime import UTC, datetime
from pathlib import Path

import pytest
import pytest_asyncio

from poolsearch.core.address import encode_address
from poolsearch.core.defaults import SOL_MINT
from poolsearch.core.types import Pool, SwapEvent, SwapType, Token
from poolsearch.persist.storage import SQLiteStorage

# Fixed reference instant for window arithmetic
NOW = 1_790_000_000.0


def _address(seed: int) -> str:
    return encode_address(bytes([seed]) * 32)


@pytest.fixture
def now() -> float:
    """Reference unix timestamp shared by a test."""
    return NOW


@pytest.fixture
def addr():
    """Deterministic valid address for a small integer seed."""
    return _address


@pytest_asyncio.fixture
async def storage():
    """Create a temporary initialized SQLite storage."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        db_path = str(Path(tmp_dir) / "indexer.sqlite")

        storage = SQLiteStorage(db_path=db_path, max_connections=4)
        await storage.initialize()

        yield storage

        await storage.close()


@pytest.fixture
def make_token():
    """Build a Token with sensible defaults."""

    def factory(seed: int, name: str = "Token", symbol: str = "TKN", **kwargs) -> Token:
        return Token(
            mint_address=_address(seed),
            name=name,
            symbol=symbol,
            decimals=kwargs.pop("decimals", 6),
            supply=kwargs.pop("supply", 1_000_000_000),
            **kwargs,
        )

    return factory


@pytest.fixture
def make_pool():
    """Build a Pool pairing a base token with SOL by default."""

    def factory(
        seed: int,
        base_seed: int,
        quote_address: str = SOL_MINT,
        **kwargs,
    ) -> Pool:
        return Pool(
            pool_address=_address(seed),
            factory=kwargs.pop("factory", "PumpSwap"),
            token_base_address=_address(base_seed),
            token_quote_address=quote_address,
            pool_base_address=_address(seed + 100),
            pool_quote_address=_address(seed + 101),
            initial_token_base_reserve=kwargs.pop("initial_token_base_reserve", 1000.0),
            initial_token_quote_reserve=kwargs.pop("initial_token_quote_reserve", 30.0),
            slot=kwargs.pop("slot", 1),
            creator=_address(200),
            hash="poolcreationhash",
            created_at=kwargs.pop("created_at", datetime.fromtimestamp(NOW - 86400 * 2, tz=UTC)),
            **kwargs,
        )

    return factory


@pytest.fixture
def make_swap():
    """Build a SwapEvent `ago` seconds before NOW."""
    counter = {"slot": 1000}

    def factory(
        pool: Pool,
        price: float,
        ago: float = 0.0,
        swap_type: SwapType = SwapType.BUY,
        trader_seed: int = 50,
        quote_amount: float = 1.0,
        slot: int | None = None,
        base_reserve: float = 900.0,
        quote_reserve: float = 33.0,
    ) -> SwapEvent:
        if slot is None:
            counter["slot"] += 1
            slot = counter["slot"]
        return SwapEvent(
            pool_address=pool.pool_address,
            creator=_address(trader_seed),
            hash=f"swap-{slot}",
            swap_type=swap_type,
            base_amount=quote_amount / price if price else 0.0,
            quote_amount=quote_amount,
            base_reserve=base_reserve,
            quote_reserve=quote_reserve,
            price_sol=price,
            slot=slot,
            created_at=datetime.fromtimestamp(NOW - ago, tz=UTC),
        )

    return factory
