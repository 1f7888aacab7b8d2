#!/usr/bin/env python3
"""
Seed the microfinance chart of accounts from configuration.

Accounts whose code already exists are skipped, so the script can be
re-run safely.  The accounts named under ``ledger_accounts`` must exist
before loans can be disbursed.

Usage:
    python3 scripts/seed_chart_of_accounts.py
    python3 scripts/seed_chart_of_accounts.py --db-url sqlite:///mfi.db --create-tables
"""

import argparse
import sys
from pathlib import Path
from uuid import UUID

# ---------------------------------------------------------------------------
# Project root on sys.path
# ---------------------------------------------------------------------------
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

SYSTEM_ACTOR_ID = UUID("00000000-0000-0000-0000-000000000001")


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed the chart of accounts")
    parser.add_argument("--db-url", help="Database URL (overrides configuration)")
    parser.add_argument(
        "--create-tables", action="store_true",
        help="Create the schema before seeding",
    )
    args = parser.parse_args()

    from mfi_config import get_active_config
    from mfi_kernel.db.engine import (
        create_tables,
        init_engine_from_url,
        reset_engine,
        session_scope,
    )
    from mfi_kernel.exceptions import MfiKernelError
    from mfi_kernel.logging_config import configure_logging
    from mfi_modules.gl import GeneralLedgerService

    config = get_active_config()
    configure_logging(level=config.logging.level, fmt=config.logging.format)

    init_engine_from_url(args.db_url or config.database.url, echo=config.database.echo)
    if args.create_tables:
        create_tables()

    try:
        with session_scope() as session:
            created = GeneralLedgerService(session).seed_chart_of_accounts(
                config.chart_of_accounts, actor_id=SYSTEM_ACTOR_ID,
            )
    except MfiKernelError as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 1
    finally:
        reset_engine()

    for account in created:
        print(f"  + {account.code:<6} {account.name:<30} {account.account_type}")
    skipped = len(config.chart_of_accounts) - len(created)
    print(f"  {len(created)} created, {skipped} already present")
    return 0


if __name__ == "__main__":
    sys.exit(main())
