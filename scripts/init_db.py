#!/usr/bin/env python3
"""
Create every kernel and lending table.

Reads the database URL from the active configuration (``DATABASE_URL``
or ``MFI_CONFIG_PATH`` override) unless ``--db-url`` is given.

Usage:
    python3 scripts/init_db.py
    python3 scripts/init_db.py --db-url sqlite:///mfi.db --drop
"""

import argparse
import sys
from pathlib import Path

# ---------------------------------------------------------------------------
# Project root on sys.path
# ---------------------------------------------------------------------------
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def main() -> int:
    parser = argparse.ArgumentParser(description="Create the MFI ledger schema")
    parser.add_argument("--db-url", help="Database URL (overrides configuration)")
    parser.add_argument(
        "--drop", action="store_true",
        help="Drop existing tables first (destroys all data)",
    )
    parser.add_argument("--echo", action="store_true", help="Echo SQL")
    args = parser.parse_args()

    from mfi_config import get_active_config
    from mfi_kernel.db.engine import (
        create_tables,
        drop_tables,
        init_engine_from_url,
        reset_engine,
    )
    from mfi_kernel.logging_config import configure_logging

    config = get_active_config()
    configure_logging(level=config.logging.level, fmt=config.logging.format)

    url = args.db_url or config.database.url
    init_engine_from_url(url, echo=args.echo or config.database.echo)
    try:
        if args.drop:
            drop_tables()
            print("  Dropped existing tables.")
        create_tables()
        print(f"  Schema ready at {url}")
    finally:
        reset_engine()
    return 0


if __name__ == "__main__":
    sys.exit(main())
