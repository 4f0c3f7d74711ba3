import os
import logging
from dotenv import load_dotenv

load_dotenv()


def _parse_ids(raw: str) -> list[int]:
    return [int(x.strip()) for x in raw.split(",") if x.strip() and x.strip().isdigit()]


class Config:
    # Bot Token (required to start the bot, not to import the core)
    BOT_TOKEN = os.getenv("BOT_TOKEN")

    # Database Configuration
    DB_USER = os.getenv("DB_USER", "postgres")
    DB_PASS = os.getenv("DB_PASS", "postgres")
    DB_HOST = os.getenv("DB_HOST", "localhost")
    DB_PORT = os.getenv("DB_PORT", "5432")
    DB_NAME = os.getenv("DB_NAME", "roomrent")

    @property
    def DATABASE_URL(self):
        # Prefer DATABASE_URL env var if set (for SQLite support)
        url = os.getenv("DATABASE_URL")
        if url:
            return url

        # Build PostgreSQL URL
        return f"postgresql+asyncpg://{self.DB_USER}:{self.DB_PASS}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    # Owners are the multi-tenant isolation key: every building, room, tenant,
    # contract and invoice is scoped to the Telegram ID of its owner.
    OWNER_IDS = _parse_ids(os.getenv("OWNER_IDS", ""))
    ADMIN_IDS = _parse_ids(os.getenv("ADMIN_IDS", ""))

    # Daily lifecycle job (contract expiry, overdue invoices)
    SCHEDULER_HOUR = int(os.getenv("SCHEDULER_HOUR", "9"))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    def validate(self):
        """Check the settings the bot cannot start without."""
        if not self.BOT_TOKEN:
            raise ValueError(
                "BOT_TOKEN is required! Set it in .env file.\n"
                "Get token from @BotFather on Telegram."
            )
        if not self.OWNER_IDS:
            raise ValueError(
                "OWNER_IDS is required! Set at least one Telegram ID in .env file.\n"
                "Get your Telegram ID from @userinfobot"
            )
        logging.info(f"Bot configured with {len(self.OWNER_IDS)} owners, {len(self.ADMIN_IDS)} admins")
        logging.info(f"Database: {self.DATABASE_URL.split('@')[1] if '@' in self.DATABASE_URL else 'SQLite'}")

config = Config()
