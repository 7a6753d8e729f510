#!/usr/bin/env python3
"""Load the sample organisation into the configured database.

Creates a CEO, the Engineering / Marketing / Human Resources departments
with their heads, and a few staff members. Does nothing if a CEO exists.

Usage:
    python scripts/seed_data.py                     # seed (schema from alembic)
    python scripts/seed_data.py --create-tables     # create tables first
    python scripts/seed_data.py --password s3cret!  # custom password for all users

Requires JWT_SECRET and DATABASE_URL in the environment or .env
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# ── Path setup ────────────────────────────────────────────────────────
SCRIPT_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = SCRIPT_DIR.parent
sys.path.insert(0, str(PROJECT_ROOT))

# model modules register their tables on Base.metadata
import hrms.auth.models  # noqa: E402,F401
import hrms.common.audit  # noqa: E402,F401
from hrms.database import Base, async_session_factory, engine  # noqa: E402
from hrms.seed import DEFAULT_PASSWORD, seed_sample_data  # noqa: E402

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger("seed_data")


async def run(create_tables: bool, password: str) -> bool:
    if create_tables:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Tables created")

    try:
        async with async_session_factory() as session:
            async with session.begin():
                return await seed_sample_data(session, password=password)
    finally:
        await engine.dispose()


def main():
    parser = argparse.ArgumentParser(description="Seed the sample organisation")
    parser.add_argument("--create-tables", action="store_true",
                        help="Create all tables before seeding")
    parser.add_argument("--password", default=DEFAULT_PASSWORD,
                        help="Password for every seeded account")
    args = parser.parse_args()

    seeded = asyncio.run(run(args.create_tables, args.password))
    if seeded:
        print("\n  Sample data initialized. Log in with any of:")
        print("    ceo@company.com, eng.head@company.com, marketing.head@company.com,")
        print("    hr.head@company.com, dev1@company.com, marketer1@company.com,")
        print("    hr.staff@company.com")
    else:
        print("\n  Organisation already has a CEO; nothing to do.")


if __name__ == "__main__":
    main()
