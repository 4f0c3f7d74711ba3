import logging
import random
import string
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

# Entity code prefixes
BUILDING_PREFIX = "BD"
ROOM_PREFIX = "RM"
TENANT_PREFIX = "TN"
CONTRACT_PREFIX = "HD"
SERVICE_PREFIX = "SV"
INVOICE_PREFIX = "INV"

MAX_ATTEMPTS = 5

_BASE36 = string.digits + string.ascii_uppercase


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def _timestamp_part(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return _to_base36(int(now.timestamp() * 1000))


def _random_suffix() -> str:
    return str(random.randint(1000, 9999))


def generate_code(prefix: str, now: Optional[datetime] = None) -> str:
    """PREFIX-{base36 ms timestamp}-{4 random digits}, e.g. HD-LXK3Q2A1-4821."""
    return f"{prefix}-{_timestamp_part(now)}-{_random_suffix()}"


async def ensure_unique_code(
    prefix: str,
    exists: Callable[[str], Awaitable[bool]],
    now: Optional[datetime] = None
) -> str:
    """
    Generate a code that `exists` does not know yet.
    Regenerates the random suffix on collision; after MAX_ATTEMPTS collisions
    one extra random digit is appended and returned without another check.
    """
    stamp = _timestamp_part(now)
    code = f"{prefix}-{stamp}-{_random_suffix()}"

    for attempt in range(1, MAX_ATTEMPTS + 1):
        if not await exists(code):
            return code
        if attempt == MAX_ATTEMPTS:
            break
        code = f"{prefix}-{stamp}-{_random_suffix()}"

    logging.warning(f"Code collision limit reached for prefix {prefix}, extending {code}")
    return code + str(random.randint(0, 9))


def column_exists_check(session: AsyncSession, column) -> Callable[[str], Awaitable[bool]]:
    """Build an `exists` callback that looks a code up in the given model column."""
    async def _exists(code: str) -> bool:
        result = await session.execute(select(column).where(column == code).limit(1))
        return result.first() is not None
    return _exists


async def unique_code_for(session: AsyncSession, prefix: str, column, now: Optional[datetime] = None) -> str:
    return await ensure_unique_code(prefix, column_exists_check(session, column), now=now)
