import asyncio
import random
from typing import List

import pytest

from bikematch import config
from bikematch.matching import MatchingEngine
from bikematch.models import Coordinate, MatchStatus
from bikematch.session import MatchSession

ZOCALO = Coordinate(19.4326, -99.1332)


def _session(seed: int = 1) -> MatchSession:
    engine = MatchingEngine(rng=random.Random(seed), time_scale=0.0)
    return MatchSession(requester_id="rider-1", pickup=ZOCALO, engine=engine)


async def _ticks(n: int) -> None:
    for _ in range(n):
        await asyncio.sleep(0)


def test_refresh_candidates_stores_the_list() -> None:
    session = _session()
    candidates = asyncio.run(session.refresh_candidates())
    assert candidates
    assert session.candidates is candidates


def test_request_records_status_log_and_forwards() -> None:
    session = _session(2)
    forwarded: List[MatchStatus] = []
    result = asyncio.run(session.request(on_status_update=lambda status, payload: forwarded.append(status)))

    assert result.success
    assert session.result is result
    assert session.matched_candidate is result.candidate
    assert [s for s, _ in session.status_log] == forwarded
    assert forwarded[0] is MatchStatus.SEARCHING
    assert forwarded[-1] is MatchStatus.ACCEPTED


def test_request_resets_status_log() -> None:
    session = _session(3)

    async def scenario() -> None:
        await session.request()
        await session.request(max_distance_km=0)

    asyncio.run(scenario())
    assert [s for s, _ in session.status_log] == [MatchStatus.SEARCHING, MatchStatus.ERROR]
    assert session.matched_candidate is None


def test_start_tracking_without_match_raises() -> None:
    with pytest.raises(ValueError):
        _session().start_tracking()


def test_tracking_moves_the_matched_cyclist() -> None:
    session = _session(4)
    received: List[Coordinate] = []

    async def scenario() -> Coordinate:
        await session.request()
        origin = session.matched_candidate.location
        session.start_tracking(received.append)
        assert session.is_tracking
        await _ticks(10)
        session.stop_tracking()
        return origin

    origin = asyncio.run(scenario())
    assert received
    assert session.tracked_location == received[-1]
    assert session.matched_candidate.location == received[-1]
    assert session.matched_candidate.location != origin
    assert not session.is_tracking


def test_new_request_stops_previous_tracking() -> None:
    session = _session(5)

    async def scenario() -> Coordinate:
        await session.request()
        session.start_tracking()
        await _ticks(5)
        await session.request()
        assert not session.is_tracking
        location = session.tracked_location
        await _ticks(5)
        return location

    last_seen = asyncio.run(scenario())
    assert session.tracked_location == last_seen


def test_cancel_clears_the_match() -> None:
    session = _session(6)

    async def scenario() -> bool:
        await session.request()
        session.start_tracking()
        await _ticks(3)
        return await session.cancel()

    assert asyncio.run(scenario()) is True
    assert session.result is None
    assert session.tracked_location is None
    assert not session.is_tracking


def test_cancel_without_match() -> None:
    assert asyncio.run(_session().cancel()) is False


def test_default_session_radius() -> None:
    session = _session(7)
    result = asyncio.run(session.request())
    assert result.distance_km <= config.DEFAULT_MAX_DISTANCE_KM


def test_close_is_safe_without_tracking() -> None:
    session = _session()
    session.close()
    session.close()
    assert not session.is_tracking
