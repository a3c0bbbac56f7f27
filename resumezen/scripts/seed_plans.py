#!/usr/bin/env python3
"""
Seed the plan catalog.

Creates missing tables, then inserts the default plans. Existing plans are
left alone unless --force is given, which rewrites every catalog row.

Usage:
    python -m resumezen.scripts.seed_plans [--force] [--database-url URL]
"""
import argparse
import sys

from dotenv import load_dotenv

from resumezen.core.config import settings
from resumezen.core.database import create_all_tables, init_engine
from resumezen.core.logging import configure_logging
from resumezen.features.plans.service import list_plans, seed_plans


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Seed the ResumeZen plan catalog")
    parser.add_argument("--force", action="store_true", help="overwrite existing catalog plans")
    parser.add_argument("--database-url", default=None, help="override DATABASE_URL")
    args = parser.parse_args(argv)

    load_dotenv()
    configure_logging(settings.ENV)
    init_engine(args.database_url)
    create_all_tables()

    written = seed_plans(force=args.force)
    print(f"{'Rewrote' if args.force else 'Inserted'} {written} plan(s)")
    for plan in list_plans():
        credits = "unlimited" if plan.is_unlimited else f"{plan.credits} credit(s)"
        print(f"  {plan.plan_id:<16} {plan.currency} {plan.price:>6}  {credits}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
