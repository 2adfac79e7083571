import asyncio
import random
from typing import Any, Dict, List, Tuple

import pytest

from bikematch import config, matching, roster, utils
from bikematch.matching import MatchingEngine
from bikematch.models import Coordinate, MatchError, MatchRequest, MatchStatus

ZOCALO = Coordinate(19.4326, -99.1332)


def _engine(seed: int = 1, **kwargs) -> MatchingEngine:
    return MatchingEngine(rng=random.Random(seed), time_scale=0.0, **kwargs)


def _request(**kwargs) -> MatchRequest:
    return MatchRequest(requester_id="tester", pickup_location=ZOCALO, **kwargs)


def _negotiate(engine: MatchingEngine, request: MatchRequest) -> Tuple[Any, List[Tuple[MatchStatus, Dict[str, Any]]]]:
    updates: List[Tuple[MatchStatus, Dict[str, Any]]] = []
    result = asyncio.run(engine.request_match(request, lambda status, payload: updates.append((status, payload))))
    return result, updates


# -----------------------------------------------------------------------------
# Discovery
# -----------------------------------------------------------------------------

def test_fetch_returns_available_candidates_within_radius_sorted_by_eta() -> None:
    for seed in range(30):
        candidates = asyncio.run(_engine(seed).fetch_nearby_candidates(ZOCALO, 5))
        assert candidates
        for c in candidates:
            assert c.is_available
            distance = utils.distance_km(ZOCALO, c.location)
            assert distance <= 5
            assert c.estimated_arrival_minutes == utils.estimated_arrival_minutes(distance)
        etas = [c.estimated_arrival_minutes for c in candidates]
        assert etas == sorted(etas)


def test_fetch_never_exceeds_a_tight_radius() -> None:
    seen = 0
    for seed in range(60):
        candidates = asyncio.run(_engine(seed).fetch_nearby_candidates(ZOCALO, 0.4))
        seen += len(candidates)
        for c in candidates:
            assert utils.distance_km(ZOCALO, c.location) <= 0.4
    assert seen > 0


def test_fetch_sort_is_stable_for_equal_etas() -> None:
    entries = [
        roster.RosterEntry("a", "Ana A", 4.0, "Paseo casual", "", "", spread=0.0),
        roster.RosterEntry("b", "Beto B", 4.5, "Paseo casual", "", "", spread=0.0),
        roster.RosterEntry("c", "Caro C", 4.9, "Paseo casual", "", "", spread=0.0),
    ]
    candidates = asyncio.run(_engine(roster_entries=entries).fetch_nearby_candidates(ZOCALO))
    assert [c.candidate_id for c in candidates] == ["a", "b", "c"]
    assert all(c.estimated_arrival_minutes == 0 for c in candidates)


def test_fetch_is_reproducible_with_a_seed() -> None:
    first = asyncio.run(_engine(42).fetch_nearby_candidates(ZOCALO))
    second = asyncio.run(_engine(42).fetch_nearby_candidates(ZOCALO))
    assert first == second


def test_fetch_with_zero_radius_is_empty() -> None:
    assert asyncio.run(_engine(3).fetch_nearby_candidates(ZOCALO, 0)) == []


# -----------------------------------------------------------------------------
# Selection
# -----------------------------------------------------------------------------

def test_find_best_match_success_fields() -> None:
    result = asyncio.run(_engine(7).find_best_match(_request()))

    assert result.success
    assert result.error_message is None
    candidate = result.candidate
    distance = utils.distance_km(ZOCALO, candidate.location)
    assert result.distance_km == round(distance, 2)
    assert result.estimated_price == utils.estimated_price(distance)
    assert result.estimated_arrival_minutes == candidate.estimated_arrival_minutes
    assert result.estimated_arrival_minutes == utils.estimated_arrival_minutes(distance)


def test_find_best_match_picks_the_highest_score() -> None:
    engine = _engine(9)
    pool = asyncio.run(_engine(9).fetch_nearby_candidates(ZOCALO))
    result = asyncio.run(engine.find_best_match(_request()))

    best_score = max(c.rating / (c.estimated_arrival_minutes + 1) for c in pool)
    assert result.candidate.rating / (result.estimated_arrival_minutes + 1) == pytest.approx(best_score)


def test_find_best_match_respects_activity() -> None:
    for seed in range(20):
        result = asyncio.run(_engine(seed).find_best_match(_request(activity_type="ruta DEPORTIVA")))
        assert result.success
        assert result.candidate.activity_label == "Ruta deportiva"


def test_unknown_activity_behaves_like_no_activity() -> None:
    for seed in range(20):
        with_filter = asyncio.run(_engine(seed).find_best_match(_request(activity_type="Nado sincronizado")))
        without = asyncio.run(_engine(seed).find_best_match(_request()))
        assert with_filter == without


def test_find_best_match_with_zero_radius_fails() -> None:
    result = asyncio.run(_engine(4).find_best_match(_request(max_distance_km=0)))

    assert result.success is False
    assert result.error is MatchError.NO_CANDIDATES_IN_RADIUS
    assert result.error_message
    assert result.candidate is None


def test_find_best_match_with_no_radius_uses_default() -> None:
    result = asyncio.run(_engine(4).find_best_match(_request(max_distance_km=None)))
    assert result.success


def test_find_best_match_converts_upstream_faults() -> None:
    engine = _engine()

    async def broken_fetch(pickup, max_distance_km=5):
        raise RuntimeError("fleet service down")

    engine.fetch_nearby_candidates = broken_fetch
    result = asyncio.run(engine.find_best_match(_request()))

    assert result.success is False
    assert result.error is MatchError.UPSTREAM_FAILURE
    assert result.error_message == config.MSG_UPSTREAM_FAILURE


def test_module_level_find_best_match() -> None:
    result = asyncio.run(matching.find_best_match(_request(max_distance_km=0), rng=random.Random(1)))
    assert not result.success


# -----------------------------------------------------------------------------
# Negotiation
# -----------------------------------------------------------------------------

def test_request_match_accepted_first_round(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, "ACCEPTANCE_PROBABILITY", 1.0)
    result, updates = _negotiate(_engine(2), _request())

    assert result.success
    assert [s for s, _ in updates] == [MatchStatus.SEARCHING, MatchStatus.FOUND, MatchStatus.ACCEPTED]
    found, accepted = updates[1][1], updates[2][1]
    assert found["candidate"] is result.candidate
    assert accepted["candidate"] is result.candidate
    assert accepted["eta"] == result.estimated_arrival_minutes
    assert all(payload["message"] for _, payload in updates)


def test_request_match_rejection_retries_once_and_confirms_same_cyclist(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, "ACCEPTANCE_PROBABILITY", 0.0)
    result, updates = _negotiate(_engine(2), _request())

    assert result.success
    assert [s for s, _ in updates] == [
        MatchStatus.SEARCHING,
        MatchStatus.FOUND,
        MatchStatus.SEARCHING,
        MatchStatus.ACCEPTED,
    ]
    assert updates[2][1]["message"] == config.MSG_RETRYING
    assert updates[1][1]["candidate"] is updates[3][1]["candidate"] is result.candidate


def test_request_match_error_is_terminal() -> None:
    result, updates = _negotiate(_engine(2), _request(max_distance_km=0))

    assert not result.success
    assert [s for s, _ in updates] == [MatchStatus.SEARCHING, MatchStatus.ERROR]
    assert updates[-1][1]["message"] == result.error_message


def test_request_match_first_and_last_status() -> None:
    for seed in range(40):
        _, updates = _negotiate(_engine(seed), _request())
        statuses = [s for s, _ in updates]
        assert statuses[0] is MatchStatus.SEARCHING
        assert statuses[-1].is_terminal
        assert sum(1 for s in statuses if s.is_terminal) == 1


def test_request_match_reproducible_with_seed() -> None:
    first, first_updates = _negotiate(_engine(17), _request())
    second, second_updates = _negotiate(_engine(17), _request())
    assert first == second
    assert [s for s, _ in first_updates] == [s for s, _ in second_updates]


def test_request_match_converts_callback_faults() -> None:
    seen: List[MatchStatus] = []

    def flaky(status: MatchStatus, payload: Dict[str, Any]) -> None:
        seen.append(status)
        if status is MatchStatus.FOUND:
            raise ValueError("UI crashed")

    result = asyncio.run(_engine(5).request_match(_request(), flaky))

    assert not result.success
    assert result.error is MatchError.UPSTREAM_FAILURE
    assert seen == [MatchStatus.SEARCHING, MatchStatus.FOUND, MatchStatus.ERROR]


def test_request_match_does_not_send_a_second_terminal(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, "ACCEPTANCE_PROBABILITY", 1.0)
    seen: List[MatchStatus] = []

    def fails_on_accept(status: MatchStatus, payload: Dict[str, Any]) -> None:
        seen.append(status)
        if status is MatchStatus.ACCEPTED:
            raise ValueError("UI crashed")

    result = asyncio.run(_engine(5).request_match(_request(), fails_on_accept))

    assert not result.success
    assert seen == [MatchStatus.SEARCHING, MatchStatus.FOUND, MatchStatus.ACCEPTED]


def test_delays_follow_time_scale(monkeypatch: pytest.MonkeyPatch) -> None:
    slept: List[float] = []

    async def fake_sleep(seconds: float) -> None:
        slept.append(seconds)

    monkeypatch.setattr(config, "ACCEPTANCE_PROBABILITY", 0.0)
    monkeypatch.setattr(matching.asyncio, "sleep", fake_sleep)
    engine = MatchingEngine(rng=random.Random(1), time_scale=2.0)
    asyncio.run(engine.request_match(_request(), lambda status, payload: None))

    assert slept == [
        config.SEARCH_DELAY_SECONDS * 2,
        config.FETCH_DELAY_SECONDS * 2,
        config.ACCEPT_DELAY_SECONDS * 2,
        config.RETRY_DELAY_SECONDS * 2,
    ]


def test_cancel_match() -> None:
    assert asyncio.run(_engine().cancel_match("tester:cyclist-1")) is True
