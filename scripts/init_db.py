"""Create the timeclock database and apply database/schema.sql.

    APP_ENV=production python scripts/init_db.py
    python scripts/init_db.py --schema other.sql
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module, load_settings

from src.timeclock.timeclock.core.logging import configure_logging
from src.timeclock.timeclock.database.bootstrap import apply_schema, list_tables

logger = logging.getLogger("timeclock.init_db")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--schema", type=Path, default=REPO_ROOT / "database" / "schema.sql")
    args = parser.parse_args(argv)

    load_dotenv(override=False)
    configure_logging("INFO")
    settings = load_settings()

    apply_schema(settings.DB_CONFIG, schema_path=args.schema)
    tables = list_tables(settings.DB_CONFIG)
    logger.info("schema ready settings=%s tables=%s", get_settings_module(), ",".join(sorted(tables)))
    return 0


if __name__ == "__main__":
    sys.exit(main())
