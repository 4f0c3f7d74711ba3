import asyncio
import logging
import sys

from aiogram import Bot, Dispatcher
from aiogram.enums import ParseMode
from aiogram.client.default import DefaultBotProperties

from roomrent.config import config
from roomrent.handlers import common, admin
from roomrent.middlewares.db import DbSessionMiddleware
from roomrent.middlewares.error import GlobalErrorMiddleware
from roomrent.services.notification_service import setup_notifications
from roomrent.cron import scheduler_loop
from roomrent.database.core import engine, create_tables


async def main():
    # Configure logging
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
        stream=sys.stdout,
    )

    config.validate()

    # Local SQLite databases are created on the fly; PostgreSQL is migrated with alembic
    if config.DATABASE_URL.startswith("sqlite"):
        await create_tables(engine)

    bot = Bot(
        token=config.BOT_TOKEN,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML)
    )
    dp = Dispatcher()

    # Setup Services
    setup_notifications(bot)

    # Order matters: Error (outer) -> DB
    dp.update.outer_middleware(GlobalErrorMiddleware())
    dp.update.middleware(DbSessionMiddleware())

    # /start, /help and /cancel must win over admin dialog states
    dp.include_router(common.router)
    dp.include_router(admin.router)

    # Start Scheduler
    asyncio.create_task(scheduler_loop())

    logging.info("Starting bot...")
    await dp.start_polling(bot)

if __name__ == "__main__":
    try:
        if sys.platform == "win32":
            asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        logging.info("Bot stopped.")
