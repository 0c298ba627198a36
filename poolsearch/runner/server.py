"""Pool search API server runner."""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

import structlog
import uvicorn

from ..api.app import create_app
from ..config.logging import configure_logging
from ..config.settings import PROFILES, AppSettings, load_settings
from ..core.types import Candle, Pool, SwapEvent, Token
from ..persist.storage import SQLiteStorage

logger = structlog.get_logger(__name__)


async def load_seed(storage: SQLiteStorage, seed_path: str) -> dict[str, int]:
    """Load a JSON fixture of tokens, pools, swaps and candles into storage.

    The file holds a mapping with optional "tokens", "pools", "swaps" and
    "candles" lists, each entry shaped like the corresponding model.

    Returns:
        Number of records loaded per section
    """
    with open(seed_path, encoding="utf-8") as f:
        seed: dict[str, list[dict[str, Any]]] = json.load(f)

    await storage.initialize()

    for item in seed.get("tokens", []):
        await storage.upsert_token(Token(**item))
    for item in seed.get("pools", []):
        await storage.upsert_pool(Pool(**item))
    for item in seed.get("swaps", []):
        await storage.record_swap(SwapEvent(**item))
    for item in seed.get("candles", []):
        await storage.record_candle(Candle(**item))

    counts = {
        section: len(seed.get(section, []))
        for section in ("tokens", "pools", "swaps", "candles")
    }
    logger.info("Seed data loaded", seed_path=seed_path, **counts)
    return counts


def build_storage(settings: AppSettings) -> SQLiteStorage:
    return SQLiteStorage(
        db_path=settings.database_path,
        max_connections=settings.max_connections,
        query_timeout=settings.query_timeout_seconds,
    )


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the pool search API."""
    parser = argparse.ArgumentParser(description="Pool Search API")
    parser.add_argument(
        "--config", default="configs/dev.yaml", help="Configuration file path"
    )
    parser.add_argument(
        "--profile",
        default="dev",
        choices=list(PROFILES),
        help="Configuration profile",
    )
    parser.add_argument("--seed", default=None, help="JSON fixture to load before serving")

    args = parser.parse_args(argv)

    try:
        settings = load_settings(args.profile, args.config)
        configure_logging(settings.log_level, settings.log_json)
        logger.info("Settings loaded", profile=args.profile, config=args.config)

        if args.seed:
            if not Path(args.seed).exists():
                raise FileNotFoundError(f"Seed file not found: {args.seed}")
            asyncio.run(load_seed(build_storage(settings), args.seed))

        app = create_app(settings, storage=build_storage(settings))
        uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)

    except Exception as e:
        logger.error("Fatal error", error=str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
