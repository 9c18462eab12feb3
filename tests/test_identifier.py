import re

import pytest

from app.core.exceptions import ExhaustedAttemptsError
from app.services.trackers.identifier import (
    build_share_url,
    ensure_unique_tracker_id,
    generate_tracker_id,
    tracker_id_exists,
)
from conftest import make_tracker

TRACKER_ID_PATTERN = re.compile(r"^TRK[A-Z0-9]{6}\d{4}$")


def test_generated_id_format():
    tracker_id = generate_tracker_id()
    assert TRACKER_ID_PATTERN.match(tracker_id)
    assert len(tracker_id) <= 20


def test_generated_ids_vary():
    ids = {generate_tracker_id() for _ in range(50)}
    assert len(ids) > 1


def test_share_url_joins_without_double_slash():
    assert build_share_url("https://wertigo.test/", "TRKABC1234567") == "https://wertigo.test/trip/TRKABC1234567"
    assert build_share_url("https://wertigo.test", "TRKABC1234567") == "https://wertigo.test/trip/TRKABC1234567"


@pytest.mark.asyncio
async def test_exists_lookup(db, trip):
    await make_tracker(db, trip, tracker_id="TRKTAKEN00001")
    assert await tracker_id_exists(db, "TRKTAKEN00001")
    assert not await tracker_id_exists(db, "TRKFREE000001")


@pytest.mark.asyncio
async def test_returns_first_free_candidate(db, trip):
    await make_tracker(db, trip, tracker_id="TRKTAKEN00001")
    candidates = iter(["TRKTAKEN00001", "TRKFRESH00002"])

    tracker_id = await ensure_unique_tracker_id(db, max_attempts=5, generator=lambda: next(candidates))

    assert tracker_id == "TRKFRESH00002"


@pytest.mark.asyncio
async def test_gives_up_after_exactly_max_attempts(db, trip):
    await make_tracker(db, trip, tracker_id="TRKTAKEN00001")
    calls = []

    def always_taken():
        calls.append(1)
        return "TRKTAKEN00001"

    with pytest.raises(ExhaustedAttemptsError) as exc_info:
        await ensure_unique_tracker_id(db, max_attempts=3, generator=always_taken)

    assert len(calls) == 3
    assert exc_info.value.status_code == 500
    assert exc_info.value.error == "Failed to create tracker"


@pytest.mark.asyncio
async def test_default_generator_finds_unused_id(db):
    tracker_id = await ensure_unique_tracker_id(db)
    assert TRACKER_ID_PATTERN.match(tracker_id)
