#!/usr/bin/env python3
"""
Counter Repair Script

Recomputes the denormalized counters from their source rows:
- users.followers_count / users.following_count
- stories.reposts_count
- communities.member_count / communities.post_count
- poll_options.votes_count
- hashtags.usage_count

Usage (from the api/ directory):
    python scripts/repair_counters.py

Options:
    --dry-run     Report drift without writing anything
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

# Add the app to the path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

load_dotenv()

from app.db import SessionLocal  # noqa: E402
from app.services.counters import CounterService  # noqa: E402


def main() -> int:
    parser = argparse.ArgumentParser(description="Recompute denormalized counters")
    parser.add_argument("--dry-run", action="store_true", help="Report drift without changes")
    args = parser.parse_args()

    if args.dry_run:
        logger.info("DRY RUN MODE - No changes will be made")

    db = SessionLocal()
    try:
        report = CounterService(db).repair(dry_run=args.dry_run)
    finally:
        db.close()

    for name, rows in sorted(report.drifted.items()):
        logger.info(f"  {name}: {rows}")
    logger.info(f"Total drifted rows: {report.total}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
