"""
Weekly payout generation worker.

Runs PayoutGenerator on a cron schedule (PAYOUT_CRON, default Monday 02:00 UTC).
max_instances=1 keeps the job single-flight inside this process; the unique
claim on payout_orders.order_id guards against a second worker.

    python payout_scheduler.py          # run forever on the schedule
    python payout_scheduler.py --once   # one generation pass, then exit
"""
import argparse
import asyncio

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from shared.config.database import AsyncSessionLocal
from shared.config.settings import get_settings
from shared.observability.setup import configure_logging

# IMPORTANT: import models so foreign keys resolve
from settlement.seller_service import models as seller_models
from settlement.order_service import models as order_models
from settlement.payout_service import models as payout_models
from settlement.payout_service.service import PayoutGenerator

logger = structlog.get_logger("payout_scheduler")


async def run_payout_generation():
    settings = get_settings()
    async with AsyncSessionLocal() as db:
        report = await PayoutGenerator.generate(db, settings)
    logger.info(
        "scheduled_payout_run",
        payouts_created=report.payouts_created,
        failed_sellers=report.failed_sellers,
        week_start=report.week_start_date.isoformat(),
    )
    return report


async def serve():
    settings = get_settings()
    scheduler = AsyncIOScheduler(timezone="UTC")
    scheduler.add_job(
        run_payout_generation,
        CronTrigger.from_crontab(settings.payout_cron, timezone="UTC"),
        id="weekly_payouts",
        max_instances=1,
        coalesce=True,
        misfire_grace_time=3600,
    )
    scheduler.start()
    logger.info("payout_scheduler_started", cron=settings.payout_cron)
    try:
        await asyncio.Event().wait()
    finally:
        scheduler.shutdown(wait=False)


def main():
    parser = argparse.ArgumentParser(description="Weekly seller payout generation")
    parser.add_argument("--once", action="store_true", help="run a single generation pass and exit")
    args = parser.parse_args()

    configure_logging()
    if args.once:
        asyncio.run(run_payout_generation())
    else:
        asyncio.run(serve())


if __name__ == "__main__":
    main()
