"""Run one news refresh pass or inspect the update lock.

Usage:
  python scripts/update_now.py            # refresh every configured category
  python scripts/update_now.py --status   # print the current lock holder

Reads configuration from .env via pydantic settings. Requires DATABASE_URL,
REDIS_URL and SERPAPI_KEY.
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import List

from ingestion.db.models import Base
from ingestion.db.session import get_engine, get_sessionmaker
from ingestion.services.lock_manager import get_lock_status
from ingestion.settings import NEWS_UPDATE_JOB, get_settings
from ingestion.tasks.update import update_database
from ingestion.utils.logging import configure_logging


def main(argv: List[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="News refresh runner")
    parser.add_argument("--status", action="store_true", help="Print the update lock and exit")
    args = parser.parse_args(argv)

    cfg = get_settings()
    configure_logging(cfg.log_level, json_enabled=cfg.log_json)
    Base.metadata.create_all(bind=get_engine(cfg))

    if args.status:
        lock = get_lock_status(get_sessionmaker(cfg), NEWS_UPDATE_JOB)
        if lock is None:
            print("Lock: none")
        else:
            print(f"Lock: held by {lock.locked_by} since {lock.locked_at.isoformat()} until {lock.expires_at.isoformat()}")
        return 0

    report = update_database(settings=cfg)
    print(json.dumps(report.as_dict(), indent=2, ensure_ascii=False))
    if not report.acquired:
        return 3
    return 1 if report.error or report.failed else 0


if __name__ == "__main__":  # pragma: no cover - manual utility
    sys.exit(main())
