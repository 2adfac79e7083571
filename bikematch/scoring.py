# bikematch/scoring.py
"""
Scoring functions for best-match selection.

A candidate's score trades rating against how long they need to arrive:

    score = rating / (estimated_arrival_minutes + 1)

Key Design Principles:
1. Higher score = better match
2. An activity preference narrows the pool but never empties it
3. Selection is a single greedy pass; the earliest candidate keeps ties
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from . import config
from .models import Candidate


def match_score(candidate: Candidate) -> float:
    """
    Score a candidate for selection.

    Args:
        candidate: A candidate with its ETA already attached

    Returns:
        rating / (ETA + 1); higher is better
    """
    return candidate.rating / (candidate.estimated_arrival_minutes + config.SCORE_ETA_OFFSET)


def filter_by_activity(
    candidates: Sequence[Candidate],
    activity_type: Optional[str],
) -> List[Candidate]:
    """
    Keep candidates offering the requested activity.

    If no activity is requested, or nobody offers it, the full list is
    returned unchanged so a preference mismatch never fails a match.
    """
    if not activity_type:
        return list(candidates)

    matching = [c for c in candidates if c.offers(activity_type)]
    if not matching:
        return list(candidates)
    return matching


def select_best_candidate(candidates: Sequence[Candidate]) -> Optional[Candidate]:
    """
    Pick the highest scoring candidate.

    Starts from the first candidate and only replaces it on a strictly
    greater score, so on a tie the earlier (faster) candidate wins.

    Returns:
        The best candidate, or None for an empty sequence
    """
    if not candidates:
        return None

    best = candidates[0]
    best_score = match_score(best)
    for current in candidates[1:]:
        current_score = match_score(current)
        if current_score > best_score:
            best, best_score = current, current_score
    return best
