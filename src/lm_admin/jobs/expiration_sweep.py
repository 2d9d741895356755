"""Periodic expiration sweep, for cron.

    python -m src.lm_admin.jobs.expiration_sweep [--notify-expiring]

Exits non-zero if the database is unreachable; the scheduler owns retries.
"""

import argparse
import asyncio
import logging

from src.lm_admin.application.service import AdminService
from src.lm_common.database import async_session_factory, engine
from src.lm_common.datetime_utils import utc_now

logger = logging.getLogger(__name__)


async def run(notify_expiring: bool) -> int:
    service = AdminService()
    now = utc_now()
    try:
        async with async_session_factory() as db:
            async with db.begin():
                result = await service.run_expiration_sweep(db, now)
            if notify_expiring:
                await service.check_expiring_listings(db, now)
    finally:
        await engine.dispose()
    return int(result["expired"])


def main() -> None:
    parser = argparse.ArgumentParser(description="Expire listings past their expires_at")
    parser.add_argument(
        "--notify-expiring",
        action="store_true",
        help="also warn sellers whose listings expire within EXPIRY_WARNING_DAYS",
    )
    args = parser.parse_args()
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    asyncio.run(run(args.notify_expiring))


if __name__ == "__main__":
    main()
