#!/usr/bin/env python3
"""
Initialize ledger tables for local development.

Production databases are migrated with ``alembic upgrade head``. This
script creates the tables directly and can enroll a first affiliate:

    python scripts/init_database.py --enroll-user 42 --terms-version 2026-01
"""

import argparse
import asyncio
import sys

from loguru import logger

from app.config.database import async_engine, async_session_maker
from app.models import Base
from app.services.affiliate import AffiliateRegistry

logger.remove()
logger.add(sys.stderr, level="INFO")


async def init_database(enroll_user: int | None, terms_version: str) -> None:
    """Create all ledger tables, optionally enrolling one affiliate."""
    logger.info("Creating tables (checkfirst=True)...")
    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all, checkfirst=True)
    logger.success(f"Tables ready: {', '.join(sorted(Base.metadata.tables))}")

    if enroll_user is not None:
        async with async_session_maker() as session:
            affiliate = await AffiliateRegistry(session).enroll(
                enroll_user, terms_version
            )
        logger.success(
            f"Affiliate {affiliate.id} enrolled for user {enroll_user}, "
            f"referral code {affiliate.referral_code}"
        )

    await async_engine.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--enroll-user", type=int, default=None)
    parser.add_argument("--terms-version", default="1")
    args = parser.parse_args()
    asyncio.run(init_database(args.enroll_user, args.terms_version))


if __name__ == "__main__":
    main()
