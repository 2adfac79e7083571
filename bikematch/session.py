# bikematch/session.py
"""
Per-requester matching session.

Holds everything one requester accumulates while using the "connect nearby
cyclists" flow: the last candidate list, the status log of the current
negotiation, the match result and the live-tracking stream of the matched
cyclist. Nothing here is shared between sessions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from . import config
from .matching import MatchingEngine, StatusCallback
from .models import Candidate, Coordinate, MatchRequest, MatchResult, MatchStatus
from .tracking import Canceller, LocationCallback

logger = logging.getLogger(__name__)


@dataclass
class MatchSession:
    """
    State of one requester's matching flow.

    Attributes:
        requester_id: Who the session belongs to
        pickup: Requester location
        engine: Matching engine used for every call
        candidates: Last list returned by refresh_candidates
        status_log: (status, payload) pairs of the last negotiation, in order
        result: Last negotiation result
        tracked_location: Last live position of the matched cyclist
    """
    requester_id: str
    pickup: Coordinate
    engine: MatchingEngine = field(default_factory=MatchingEngine)
    candidates: List[Candidate] = field(default_factory=list)
    status_log: List[Tuple[MatchStatus, Dict[str, Any]]] = field(default_factory=list)
    result: Optional[MatchResult] = None
    tracked_location: Optional[Coordinate] = None
    _cancel_tracking: Optional[Canceller] = field(default=None, repr=False)

    @property
    def matched_candidate(self) -> Optional[Candidate]:
        if self.result is not None and self.result.success:
            return self.result.candidate
        return None

    @property
    def is_tracking(self) -> bool:
        return self._cancel_tracking is not None

    async def refresh_candidates(
        self,
        max_distance_km: float = config.DEFAULT_MAX_DISTANCE_KM,
    ) -> List[Candidate]:
        """Fetch a fresh list of nearby cyclists."""
        self.candidates = await self.engine.fetch_nearby_candidates(self.pickup, max_distance_km)
        return self.candidates

    def _record_status(self, status: MatchStatus, payload: Dict[str, Any]) -> None:
        self.status_log.append((status, payload))

    async def request(
        self,
        activity_type: Optional[str] = None,
        max_distance_km: float = config.DEFAULT_MAX_DISTANCE_KM,
        destination: Optional[Coordinate] = None,
        on_status_update: Optional[StatusCallback] = None,
    ) -> MatchResult:
        """
        Run a negotiation for this requester.

        Every status is recorded in status_log before being forwarded to
        on_status_update. Any live tracking from a previous match is stopped
        first.
        """
        self.stop_tracking()
        self.status_log = []
        request = MatchRequest(
            requester_id=self.requester_id,
            pickup_location=self.pickup,
            destination_location=destination,
            activity_type=activity_type,
            max_distance_km=max_distance_km,
        )

        def on_status(status: MatchStatus, payload: Dict[str, Any]) -> None:
            self._record_status(status, payload)
            if on_status_update is not None:
                on_status_update(status, payload)

        self.result = await self.engine.request_match(request, on_status)
        return self.result

    def start_tracking(self, on_location_update: Optional[LocationCallback] = None) -> None:
        """
        Follow the matched cyclist. Must run inside an event loop.

        Raises:
            ValueError: If there is no successful match to follow
        """
        candidate = self.matched_candidate
        if candidate is None:
            raise ValueError("No matched cyclist to track")

        self.stop_tracking()

        def on_update(location: Coordinate) -> None:
            self.tracked_location = location
            candidate.location = location
            if on_location_update is not None:
                on_location_update(location)

        self._cancel_tracking = self.engine.subscribe_to_candidate_location(
            candidate.candidate_id, self.pickup, on_update, start=candidate.location
        )

    def stop_tracking(self) -> None:
        if self._cancel_tracking is not None:
            self._cancel_tracking()
            self._cancel_tracking = None

    async def cancel(self) -> bool:
        """Cancel the current match and stop tracking."""
        self.stop_tracking()
        candidate = self.matched_candidate
        if candidate is None:
            return False

        cancelled = await self.engine.cancel_match(f"{self.requester_id}:{candidate.candidate_id}")
        if cancelled:
            self.result = None
            self.tracked_location = None
        return cancelled

    def close(self) -> None:
        self.stop_tracking()
        logger.debug(f"Closed session for {self.requester_id}")
