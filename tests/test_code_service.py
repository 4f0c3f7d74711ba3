import re
import pytest
from datetime import datetime, timezone

from roomrent.database.models import Building
from roomrent.services import code_service
from roomrent.services.code_service import (
    generate_code, ensure_unique_code, unique_code_for, MAX_ATTEMPTS, _to_base36
)

CODE_RE = re.compile(r"^HD-[0-9A-Z]+-\d{4}$")
NOW = datetime(2026, 1, 10, 10, 0, tzinfo=timezone.utc)


def test_code_format():
    code = generate_code("HD", now=NOW)
    assert CODE_RE.match(code)
    assert code.split("-")[1] == _to_base36(int(NOW.timestamp() * 1000))


def test_base36():
    assert _to_base36(0) == "0"
    assert _to_base36(35) == "Z"
    assert _to_base36(36) == "10"


@pytest.mark.asyncio
async def test_first_free_code_is_returned():
    calls = []

    async def exists(code):
        calls.append(code)
        return False

    code = await ensure_unique_code("HD", exists, now=NOW)

    assert calls == [code]
    assert CODE_RE.match(code)


@pytest.mark.asyncio
async def test_retries_after_collisions():
    """Two collisions, then a free code on the third try"""
    calls = []

    async def exists(code):
        calls.append(code)
        return len(calls) < 3

    code = await ensure_unique_code("HD", exists, now=NOW)

    assert len(calls) == 3
    assert code == calls[-1]
    # The timestamp part stays the same across retries
    assert len({c.split("-")[1] for c in calls}) == 1


@pytest.mark.asyncio
async def test_collision_limit_appends_digit():
    calls = []

    async def exists(code):
        calls.append(code)
        return True

    code = await ensure_unique_code("HD", exists, now=NOW)

    assert len(calls) == MAX_ATTEMPTS
    assert code[:-1] == calls[-1]
    assert re.match(r"^HD-[0-9A-Z]+-\d{5}$", code)


@pytest.mark.asyncio
async def test_unique_code_checks_table(async_session, monkeypatch):
    """An existing building code forces a new suffix"""
    # Setup
    suffixes = iter(["1111", "2222"])
    monkeypatch.setattr(code_service, "_random_suffix", lambda: next(suffixes))
    stamp = code_service._timestamp_part(NOW)
    async_session.add(Building(owner_id=1, code=f"BD-{stamp}-1111", name="Taken"))
    await async_session.commit()

    # Test
    code = await unique_code_for(async_session, "BD", Building.code, now=NOW)

    assert code == f"BD-{stamp}-2222"
