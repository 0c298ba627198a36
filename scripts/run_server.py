#!/usr/bin/env python3
"""
Development server launcher script.

This script starts the pool search API with the dev.yaml configuration and
loads the example seed data, so search results can be explored locally
without an indexer feeding the database.
"""

import sys
from pathlib import Path

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from poolsearch.runner.server import main


if __name__ == "__main__":
    try:
        main(
            [
                "--config",
                str(project_root / "configs" / "dev.yaml"),
                "--profile",
                "dev",
                "--seed",
                str(project_root / "configs" / "seed.example.json"),
            ]
        )
    except KeyboardInterrupt:
        print("\nServer stopped by user.")
        sys.exit(0)
