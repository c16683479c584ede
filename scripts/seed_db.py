"""Load demo departments, PTO types and users into an existing portal database."""

from __future__ import annotations

import argparse
import importlib
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.coreos_portal.coreos_portal.database.bootstrap import apply_seed_sql, ensure_demo_users, list_tables

logger = logging.getLogger("seed_db")

REQUIRED_TABLES = ("departments", "users", "pto_types", "pto_balances")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--seed-file", type=Path, default=REPO_ROOT / "database" / "seed.sql")
    parser.add_argument("--year", type=int, help="PTO year for the demo balances (default: this year)")
    parser.add_argument("--no-demo-users", action="store_true", help="only apply the seed file")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    settings = importlib.import_module(get_settings_module())
    logging.basicConfig(level=getattr(logging, str(getattr(settings, "LOG_LEVEL", "INFO")).upper(), logging.INFO))
    db_config = dict(settings.DB_CONFIG)

    missing = sorted(set(REQUIRED_TABLES) - set(list_tables(db_config)))
    if missing:
        logger.error("Missing tables %s; run scripts/init_db.py first", ", ".join(missing))
        return 1

    apply_seed_sql(db_config, seed_path=args.seed_file)
    if not args.no_demo_users:
        ensure_demo_users(db_config, year=args.year)
    logger.info("Seeded %s/%s", db_config.get("host"), db_config.get("database"))
    return 0


if __name__ == "__main__":
    sys.exit(main())
