"""Tests for core data types."""

import json
from datetime import UTC, datetime

from poolsearch.core.defaults import SOL_MINT, USDC_MINT, quote_token_fallback
from poolsearch.core.types import (
    SEARCH_WINDOWS,
    Candle,
    PoolData,
    ReportWindow,
    SearchResult,
    SwapType,
    Token,
    TopTrader,
    WindowReport,
)

POOL_ADDRESS = "HJPjoWUrhoZzkNfRpHuieeFk9WcZWjwy6PBjZ81ngndJ"


def test_swap_type_parse() -> None:
    """Test SwapType parsing is case-insensitive with a fallback."""
    assert SwapType.parse("buy") == SwapType.BUY
    assert SwapType.parse("SELL") == SwapType.SELL
    assert SwapType.parse("migrate") == SwapType.UNKNOWN


def test_report_window_seconds() -> None:
    """Test window durations."""
    assert ReportWindow("1m").seconds == 60
    assert ReportWindow("5m").seconds == 300
    assert ReportWindow("1h").seconds == 3600
    assert ReportWindow("6h").seconds == 21600
    assert ReportWindow("24h").seconds == 86400
    assert [w.value for w in SEARCH_WINDOWS] == ["5m", "1h", "6h", "24h"]


def test_token_defaults() -> None:
    """Test Token creation with only a mint address."""
    token = Token(mint_address=USDC_MINT)

    assert token.name == ""
    assert token.symbol == ""
    assert token.decimals == 0
    assert token.supply == 0
    assert token.image is None


def test_top_trader_defaults() -> None:
    trader = TopTrader(creator=POOL_ADDRESS)

    assert trader.is_sniper is False
    assert trader.base_bought == trader.base_sold == 0.0
    assert trader.quote_bought == trader.quote_sold == 0.0


def test_token_only_result_serialization() -> None:
    """Test a token-only result leaves pool fields null."""
    result = SearchResult.token_only(Token(mint_address=USDC_MINT, symbol="USDC"))

    data = json.loads(result.model_dump_json())

    assert data["base_token_data"]["symbol"] == "USDC"
    assert data["quote_token_data"] is None
    assert data["pool_data"] is None
    assert data["pool_report"] is None
    assert data["multi_pool_report"] is None
    assert result.is_pool_bundle is False


def test_pool_data_serialization() -> None:
    """Test PoolData carries pool fields plus latest state."""
    pool = PoolData(
        pool_address=POOL_ADDRESS,
        factory="Raydium",
        token_base_address=USDC_MINT,
        token_quote_address=SOL_MINT,
        pool_base_address=USDC_MINT,
        pool_quote_address=SOL_MINT,
        created_at=datetime(2026, 1, 1, tzinfo=UTC),
        price_sol=None,
        base_reserve=10.0,
        quote_reserve=20.0,
    )

    data = json.loads(pool.model_dump_json())

    assert data["pool_address"] == POOL_ADDRESS
    assert data["price_sol"] is None
    assert data["base_reserve"] == 10.0
    assert data["reversed"] is False


def test_window_report_is_empty() -> None:
    """Test a report without trades is empty."""
    report = WindowReport(
        pool_address=POOL_ADDRESS,
        window=ReportWindow.ONE_HOUR,
        bucket_start=datetime(2026, 1, 1, tzinfo=UTC),
    )

    assert report.is_empty
    assert json.loads(report.model_dump_json())["window"] == "1h"

    busy = report.model_copy(update={"sell_count": 1})
    assert not busy.is_empty


def test_candle_trades() -> None:
    """Test candle trade count sums buys and sells."""
    candle = Candle(
        pool_address=POOL_ADDRESS,
        timestamp=60,
        open=1,
        high=1,
        low=1,
        close=1,
        buy_count=2,
        sell_count=3,
    )

    assert candle.trades == 5


def test_quote_token_fallback() -> None:
    """Test built-in SOL and USDC records."""
    sol = quote_token_fallback(SOL_MINT)
    assert sol.symbol == "SOL"
    assert sol.decimals == 9

    usdc = quote_token_fallback(USDC_MINT)
    assert usdc.decimals == 6

    assert quote_token_fallback(POOL_ADDRESS) is None

    # Callers get their own copy
    sol.name = "changed"
    assert quote_token_fallback(SOL_MINT).name == "Solana"
