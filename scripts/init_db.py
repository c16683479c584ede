"""Create the portal tables, optionally seeding demo data in the same run.

    python scripts/init_db.py              # schema.sql only
    python scripts/init_db.py --seed       # schema.sql, seed.sql and demo users
"""

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

from src.coreos_portal.coreos_portal.database.bootstrap import (
    apply_schema,
    apply_seed_sql,
    ensure_demo_users,
    list_tables,
)

logger = logging.getLogger("init_db")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--schema", type=Path, default=REPO_ROOT / "database" / "schema.sql")
    parser.add_argument("--seed", action="store_true", help="also apply seed.sql and create the demo users")
    parser.add_argument("--year", type=int, help="PTO year for the demo balances (default: this year)")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    settings = importlib.import_module(get_settings_module())
    logging.basicConfig(level=getattr(logging, str(getattr(settings, "LOG_LEVEL", "INFO")).upper(), logging.INFO))
    db_config = dict(settings.DB_CONFIG)

    if not args.schema.is_file():
        logger.error("Schema file %s does not exist", args.schema)
        return 1

    apply_schema(db_config, schema_path=args.schema)
    if args.seed:
        apply_seed_sql(db_config, seed_path=args.schema.with_name("seed.sql"))
        ensure_demo_users(db_config, year=args.year)

    tables = list_tables(db_config)
    logger.info(
        "Database %s@%s/%s ready with %d tables%s",
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("database"),
        len(tables),
        " and demo data" if args.seed else "",
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
