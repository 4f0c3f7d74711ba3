import asyncio
import logging
from datetime import date, datetime, timedelta
from typing import Optional
from roomrent.config import config
from roomrent.database.core import AsyncSessionLocal
from roomrent.services import contract_service, invoice_service
from roomrent.services import notification_service as notifications


async def daily_lifecycle_job(session_factory=AsyncSessionLocal, as_of: Optional[date] = None) -> dict:
    """
    Expire ACTIVE contracts past their end date and re-derive invoice
    statuses (PENDING/PARTIAL -> OVERDUE).
    """
    as_of = as_of or date.today()
    logging.info(f"Running daily lifecycle job for {as_of}...")
    summary = {"expired": [], "invoices_changed": 0}

    async with session_factory() as session:
        try:
            summary["expired"] = await contract_service.expire_contracts(session, as_of)
        except Exception as e:
            logging.error(f"Error expiring contracts: {e}")
            await session.rollback()

        try:
            summary["invoices_changed"] = await invoice_service.refresh_invoice_statuses(session, as_of)
        except Exception as e:
            logging.error(f"Error refreshing invoice statuses: {e}")
            await session.rollback()

    if summary["expired"] and notifications.notification_service:
        await notifications.notification_service.report_expired_contracts(summary["expired"])

    logging.info(
        f"Daily lifecycle job finished: {len(summary['expired'])} contracts expired, "
        f"{summary['invoices_changed']} invoice statuses changed."
    )
    return summary


async def scheduler_loop():
    """Run the lifecycle job once a day at SCHEDULER_HOUR."""
    logging.info("Scheduler started.")

    # Initial delay to settle startup
    await asyncio.sleep(10)

    while True:
        try:
            now = datetime.now()
            today_target = now.replace(hour=config.SCHEDULER_HOUR, minute=0, second=0, microsecond=0)

            if now < today_target:
                next_run = today_target
            else:
                next_run = today_target + timedelta(days=1)

            wait_seconds = (next_run - now).total_seconds()
            logging.info(f"Next scheduler job at {next_run} (in {wait_seconds/3600:.1f}h)")

            await asyncio.sleep(wait_seconds)

            await daily_lifecycle_job()

            # Buffer to skip current minute
            await asyncio.sleep(60)

        except Exception as e:
            logging.error(f"Error in scheduler loop: {e}")
            await asyncio.sleep(60)  # Prevent tight loop on error
