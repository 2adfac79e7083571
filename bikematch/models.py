# bikematch/models.py
"""
Core domain models for the BikeMatch matching engine.

This module defines the value objects exchanged with the engine:
- Coordinate: A latitude/longitude pair in degrees
- Candidate: A nearby cyclist that can be matched with the requester
- MatchRequest: What the requester is looking for
- MatchResult: The outcome of a matching attempt (success or failure)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from . import config


class MatchStatus(Enum):
    """
    Status tags emitted by the negotiation state machine.

    A negotiation always starts with SEARCHING and ends with exactly one
    terminal status: ACCEPTED or ERROR.
    """
    SEARCHING = "searching"
    FOUND = "found"
    ACCEPTED = "accepted"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (MatchStatus.ACCEPTED, MatchStatus.ERROR)


class MatchError(Enum):
    """Machine-readable reasons attached to a failed match."""
    NO_CANDIDATES_IN_RADIUS = "no_candidates_in_radius"
    UPSTREAM_FAILURE = "upstream_failure"


@dataclass(frozen=True)
class Coordinate:
    """
    A point on Earth in decimal degrees.

    No range validation is performed: out-of-range values flow through the
    distance math unchanged.
    """
    latitude: float
    longitude: float

    @classmethod
    def from_tuple(cls, loc: Tuple[float, float]) -> Coordinate:
        """Build a coordinate from a (lat, lng) tuple."""
        return cls(latitude=loc[0], longitude=loc[1])

    def to_tuple(self) -> Tuple[float, float]:
        """Returns the location as a (lat, lng) tuple."""
        return (self.latitude, self.longitude)

    def __repr__(self) -> str:
        return f"Coordinate({self.latitude:.5f}, {self.longitude:.5f})"


@dataclass
class Candidate:
    """
    A cyclist discovered around the requester.

    Attributes:
        candidate_id: Identifier, stable for the lifetime of one fetch
        name: Display name
        rating: Average rating, nominally 0-5
        location: Current position (moves during live tracking)
        activity_label: Free-text activity offered, e.g. "Paseo casual"
        is_available: Only available candidates are eligible for matching
        contact_phone: Opaque phone string
        vehicle_type: Free-text bike descriptor
        photo_url: Avatar shown by the UI

    Derived:
        estimated_arrival_minutes: Recomputed from distance on every fetch
    """
    candidate_id: str
    name: str
    rating: float
    location: Coordinate
    activity_label: str
    is_available: bool = True
    contact_phone: str = ""
    vehicle_type: str = ""
    photo_url: str = ""
    estimated_arrival_minutes: float = 0.0

    def offers(self, activity_type: str) -> bool:
        """Case-insensitive comparison against a requested activity."""
        return self.activity_label.lower() == activity_type.lower()

    def __repr__(self) -> str:
        return f"Candidate({self.candidate_id}, {self.name}, eta={self.estimated_arrival_minutes:g}m)"


@dataclass
class MatchRequest:
    """
    A requester looking for a nearby cyclist.

    Attributes:
        requester_id: Who is asking
        pickup_location: Where the cyclist should meet the requester
        destination_location: Optional end of the ride (informational)
        activity_type: Optional activity preference, compared case-insensitively
        max_distance_km: Search radius around the pickup
    """
    requester_id: str
    pickup_location: Coordinate
    destination_location: Optional[Coordinate] = None
    activity_type: Optional[str] = None
    max_distance_km: float = config.DEFAULT_MAX_DISTANCE_KM


@dataclass
class MatchResult:
    """
    Outcome of a matching attempt.

    On success, candidate/estimated_arrival_minutes/estimated_price/distance_km
    are set. On failure, error_message (user-facing) and error are set.
    """
    success: bool
    candidate: Optional[Candidate] = None
    estimated_arrival_minutes: Optional[float] = None
    estimated_price: Optional[int] = None
    distance_km: Optional[float] = None
    error_message: Optional[str] = None
    error: Optional[MatchError] = None

    @classmethod
    def matched(
        cls,
        candidate: Candidate,
        estimated_arrival_minutes: float,
        estimated_price: int,
        distance_km: float,
    ) -> MatchResult:
        return cls(
            success=True,
            candidate=candidate,
            estimated_arrival_minutes=estimated_arrival_minutes,
            estimated_price=estimated_price,
            distance_km=distance_km,
        )

    @classmethod
    def failed(cls, error: MatchError, message: str) -> MatchResult:
        return cls(success=False, error_message=message, error=error)

    def __repr__(self) -> str:
        if self.success:
            return (
                f"MatchResult(ok, {self.candidate.candidate_id}, "
                f"eta={self.estimated_arrival_minutes:g}m, dist={self.distance_km}km)"
            )
        return f"MatchResult(failed, {self.error_message!r})"
