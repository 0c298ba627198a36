"""Tests for the server runner."""

from datetime import UTC, datetime
from pathlib import Path

import pytest

from poolsearch.core.address import decode_address
from poolsearch.runner import server
from poolsearch.search.service import SearchService

PROJECT_ROOT = Path(__file__).parent.parent.parent
SEED_PATH = PROJECT_ROOT / "configs" / "seed.example.json"
DEV_CONFIG = PROJECT_ROOT / "configs" / "dev.yaml"

SEED_POOL = "HJPjoWUrhoZzkNfRpHuieeFk9WcZWjwy6PBjZ81ngndJ"


class TestLoadSeed:
    """Seed fixture loading."""

    @pytest.mark.asyncio
    async def test_load_example_seed(self, storage):
        """Test the bundled example seed loads and is searchable."""
        counts = await server.load_seed(storage, str(SEED_PATH))

        assert counts == {"tokens": 2, "pools": 1, "swaps": 2, "candles": 1}
        assert await storage.get_pool(decode_address(SEED_POOL)) is not None

        now = datetime(2026, 10, 18, 12, 30, tzinfo=UTC).timestamp()
        service = SearchService(storage, now_fn=lambda: now)
        results = await service.search(SEED_POOL)

        assert len(results) == 1
        result = results[0]
        assert result.base_token_data.name == "Bonk"
        assert result.quote_token_data.name == "Wrapped SOL"
        assert result.pool_data.price_sol == pytest.approx(3.1e-8)
        assert result.multi_pool_report.report_1h.sell_count == 1
        assert result.multi_pool_report.report_24h.trader_count == 2


class TestMain:
    """Command line entry point."""

    def test_missing_config_exits(self):
        with pytest.raises(SystemExit) as exc_info:
            server.main(["--config", "does-not-exist.yaml"])

        assert exc_info.value.code == 1

    def test_invalid_profile_exits(self):
        with pytest.raises(SystemExit):
            server.main(["--config", str(DEV_CONFIG), "--profile", "paper"])

    def test_starts_uvicorn(self, monkeypatch):
        """Test settings flow into the uvicorn call."""
        calls = []
        monkeypatch.setattr(
            server.uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs))
        )
        monkeypatch.setattr(server, "configure_logging", lambda level, json: None)

        server.main(["--config", str(DEV_CONFIG), "--profile", "dev"])

        assert len(calls) == 1
        app, kwargs = calls[0]
        assert kwargs["host"] == "127.0.0.1"
        assert kwargs["port"] == 8080
        assert app.state.storage.db_path == "./indexer.sqlite"
