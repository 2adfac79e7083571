from typing import List

import pytest

from bikematch import scoring
from bikematch.models import Candidate, Coordinate

HERE = Coordinate(19.4326, -99.1332)


def _candidate(candidate_id: str, rating: float, eta: float, activity: str = "Paseo casual") -> Candidate:
    return Candidate(
        candidate_id=candidate_id,
        name=candidate_id.title(),
        rating=rating,
        location=HERE,
        activity_label=activity,
        estimated_arrival_minutes=eta,
    )


def test_match_score() -> None:
    assert scoring.match_score(_candidate("a", 4.0, 3)) == pytest.approx(1.0)
    assert scoring.match_score(_candidate("b", 5.0, 0)) == pytest.approx(5.0)


def test_select_best_prefers_rating_per_minute() -> None:
    pool = [
        _candidate("slow-star", 5.0, 9),   # 0.5
        _candidate("close-ok", 4.0, 1),    # 2.0
        _candidate("mid", 4.8, 2),         # 1.6
    ]
    assert scoring.select_best_candidate(pool).candidate_id == "close-ok"


def test_select_best_keeps_first_on_tie() -> None:
    pool = [
        _candidate("first", 4.0, 1),   # 2.0
        _candidate("second", 2.0, 0),  # 2.0
        _candidate("third", 6.0, 2),   # 2.0
    ]
    assert scoring.select_best_candidate(pool).candidate_id == "first"


def test_select_best_empty() -> None:
    assert scoring.select_best_candidate([]) is None


def test_filter_by_activity_is_case_insensitive() -> None:
    pool = [
        _candidate("a", 4.0, 1, "Paseo casual"),
        _candidate("b", 4.0, 1, "Ruta deportiva"),
        _candidate("c", 4.0, 1, "paseo CASUAL"),
    ]
    kept: List[Candidate] = scoring.filter_by_activity(pool, "PASEO CASUAL")
    assert [c.candidate_id for c in kept] == ["a", "c"]


def test_filter_by_activity_falls_back_when_nobody_matches() -> None:
    pool = [_candidate("a", 4.0, 1, "Paseo casual"), _candidate("b", 4.0, 1, "Ruta deportiva")]
    assert scoring.filter_by_activity(pool, "Descenso") == pool


@pytest.mark.parametrize("activity", [None, ""])
def test_filter_without_activity_returns_everyone(activity) -> None:
    pool = [_candidate("a", 4.0, 1), _candidate("b", 4.0, 2)]
    assert scoring.filter_by_activity(pool, activity) == pool
