# bikematch/matching.py
"""
Matching Engine for the BikeMatch nearby-cyclist demo.

This module connects a requester with a nearby cyclist in three layers:

1. **Discovery**: Places the synthetic roster around the pickup, keeps the
   available cyclists inside the search radius and sorts them by ETA.

2. **Selection**: Optionally narrows the pool to the requested activity
   (falling back to everyone if nobody offers it) and greedily picks the
   best rating-per-minute score.

3. **Negotiation**: Reports progress through a status callback:

       searching -> found -> accepted
       searching -> found -> searching (retry) -> accepted
       searching -> error

   The acceptance round succeeds with a fixed probability; a rejection gets
   exactly one retry round that always confirms the same cyclist.

All delays are simulated with asyncio.sleep and scaled by ``time_scale``
(0 disables them). The engine keeps no state besides its random source.
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Callable, Dict, List, Optional, Sequence

from . import config, roster, scoring, utils
from .models import Candidate, Coordinate, MatchError, MatchRequest, MatchResult, MatchStatus
from .tracking import Canceller, LocationCallback, LocationSubscription

logger = logging.getLogger(__name__)

StatusCallback = Callable[[MatchStatus, Dict[str, Any]], None]


class _StatusChannel:
    """
    Delivers status updates for a single negotiation, in order.

    Remembers whether a terminal status has been handed to the callback so
    the engine never emits a second one.
    """

    def __init__(self, callback: StatusCallback, requester_id: str) -> None:
        self._callback = callback
        self._requester_id = requester_id
        self.terminal_sent = False

    def emit(self, status: MatchStatus, **payload: Any) -> None:
        if self.terminal_sent:
            return
        if status.is_terminal:
            self.terminal_sent = True
        logger.info(f"[{self._requester_id}] {status.value}: {payload.get('message', '')}")
        self._callback(status, payload)


class MatchingEngine:
    """
    Simulated matching service.

    Attributes:
        rng: Random source used for placement, availability and acceptance
        roster: Synthetic cyclists placed around every pickup
        time_scale: Multiplier applied to every simulated delay
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        roster_entries: Sequence[roster.RosterEntry] = roster.DEFAULT_ROSTER,
        time_scale: float = 1.0,
    ) -> None:
        self.rng = rng or random.Random()
        self.roster = roster_entries
        self.time_scale = time_scale

    async def _pause(self, seconds: float) -> None:
        await asyncio.sleep(seconds * self.time_scale)

    # -------------------------------------------------------------------------
    # Discovery
    # -------------------------------------------------------------------------

    async def fetch_nearby_candidates(
        self,
        pickup: Coordinate,
        max_distance_km: float = config.DEFAULT_MAX_DISTANCE_KM,
    ) -> List[Candidate]:
        """
        Find available cyclists around a pickup.

        Args:
            pickup: Requester location
            max_distance_km: Search radius

        Returns:
            Fresh candidates within the radius, ETA attached, sorted by ETA
            (ties keep roster order)
        """
        await self._pause(config.FETCH_DELAY_SECONDS)

        nearby: List[Candidate] = []
        for candidate in roster.generate_candidates(pickup, self.rng, self.roster):
            if not candidate.is_available:
                continue

            distance = utils.distance_km(pickup, candidate.location)
            if distance > max_distance_km:
                continue

            candidate.estimated_arrival_minutes = utils.estimated_arrival_minutes(distance)
            nearby.append(candidate)

        nearby.sort(key=lambda c: c.estimated_arrival_minutes)
        logger.debug(f"{len(nearby)} candidates within {max_distance_km} km of {pickup}")
        return nearby

    # -------------------------------------------------------------------------
    # Selection
    # -------------------------------------------------------------------------

    async def find_best_match(self, request: MatchRequest) -> MatchResult:
        """
        Select the best nearby cyclist for a request.

        Never raises: an empty radius and any unexpected fault are both
        returned as failed results.
        """
        try:
            max_distance = request.max_distance_km
            if max_distance is None:
                max_distance = config.DEFAULT_MAX_DISTANCE_KM

            nearby = await self.fetch_nearby_candidates(request.pickup_location, max_distance)
            if not nearby:
                return MatchResult.failed(MatchError.NO_CANDIDATES_IN_RADIUS, config.MSG_NO_CANDIDATES)

            pool = scoring.filter_by_activity(nearby, request.activity_type)
            best = scoring.select_best_candidate(pool)

            # Location is untouched since discovery, so this is the ranking distance.
            distance = utils.distance_km(request.pickup_location, best.location)

            return MatchResult.matched(
                candidate=best,
                estimated_arrival_minutes=best.estimated_arrival_minutes,
                estimated_price=utils.estimated_price(distance),
                distance_km=round(distance, config.DISTANCE_DECIMALS),
            )

        except Exception:
            logger.exception(f"Candidate search failed for {request.requester_id}")
            return MatchResult.failed(MatchError.UPSTREAM_FAILURE, config.MSG_UPSTREAM_FAILURE)

    # -------------------------------------------------------------------------
    # Negotiation
    # -------------------------------------------------------------------------

    async def request_match(
        self,
        request: MatchRequest,
        on_status_update: StatusCallback,
    ) -> MatchResult:
        """
        Run the full negotiation for a request.

        The callback receives (status, payload). The first status is always
        SEARCHING and exactly one terminal status (ACCEPTED or ERROR) is the
        last. Payloads carry a "message" and, where relevant, "candidate"
        and "eta".

        Returns:
            The match result; faults inside the negotiation (including ones
            raised by the callback) are returned as an upstream failure
        """
        channel = _StatusChannel(on_status_update, request.requester_id)
        try:
            channel.emit(MatchStatus.SEARCHING, message=config.MSG_SEARCHING)
            await self._pause(config.SEARCH_DELAY_SECONDS)

            result = await self.find_best_match(request)
            if not result.success:
                channel.emit(MatchStatus.ERROR, message=result.error_message)
                return result

            channel.emit(MatchStatus.FOUND, message=config.MSG_FOUND, candidate=result.candidate)
            await self._pause(config.ACCEPT_DELAY_SECONDS)

            if self.rng.random() >= config.ACCEPTANCE_PROBABILITY:
                # Single retry round; it always confirms the same cyclist.
                channel.emit(MatchStatus.SEARCHING, message=config.MSG_RETRYING)
                await self._pause(config.RETRY_DELAY_SECONDS)

            channel.emit(
                MatchStatus.ACCEPTED,
                message=config.MSG_ACCEPTED,
                candidate=result.candidate,
                eta=result.estimated_arrival_minutes,
            )
            return result

        except Exception:
            logger.exception(f"Negotiation failed for {request.requester_id}")
            failure = MatchResult.failed(MatchError.UPSTREAM_FAILURE, config.MSG_UPSTREAM_FAILURE)
            if not channel.terminal_sent:
                try:
                    channel.emit(MatchStatus.ERROR, message=failure.error_message)
                except Exception:
                    logger.exception("Status callback failed while reporting an error")
            return failure

    async def cancel_match(self, match_id: str) -> bool:
        """
        Cancel a confirmed match.

        Returns:
            True once the (simulated) cancellation round-trip completes
        """
        await self._pause(config.CANCEL_DELAY_SECONDS)
        logger.info(f"Cancelled match {match_id}")
        return True

    # -------------------------------------------------------------------------
    # Live tracking
    # -------------------------------------------------------------------------

    def subscribe_to_candidate_location(
        self,
        candidate_id: str,
        anchor: Coordinate,
        on_location_update: LocationCallback,
        start: Optional[Coordinate] = None,
    ) -> Canceller:
        """
        Follow a matched cyclist. Must be called inside a running event loop.

        The stream starts at ``start`` (typically the cyclist's matched
        location) or, if omitted, at a random point near the anchor.

        Returns:
            An idempotent canceller
        """
        subscription = LocationSubscription(
            candidate_id,
            anchor,
            on_location_update,
            rng=self.rng,
            interval=config.LOCATION_UPDATE_INTERVAL_SECONDS * self.time_scale,
            start=start,
        ).start()
        return subscription.cancel


# =============================================================================
# MODULE-LEVEL SHORTCUTS
# =============================================================================
# Each call builds its own engine, so no state is shared between calls.

async def fetch_nearby_candidates(
    pickup: Coordinate,
    max_distance_km: float = config.DEFAULT_MAX_DISTANCE_KM,
    rng: Optional[random.Random] = None,
) -> List[Candidate]:
    return await MatchingEngine(rng=rng).fetch_nearby_candidates(pickup, max_distance_km)


async def find_best_match(request: MatchRequest, rng: Optional[random.Random] = None) -> MatchResult:
    return await MatchingEngine(rng=rng).find_best_match(request)


async def request_match(
    request: MatchRequest,
    on_status_update: StatusCallback,
    rng: Optional[random.Random] = None,
) -> MatchResult:
    return await MatchingEngine(rng=rng).request_match(request, on_status_update)


async def cancel_match(match_id: str) -> bool:
    return await MatchingEngine().cancel_match(match_id)
