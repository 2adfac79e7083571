# bikematch/__init__.py

from .models import Candidate, Coordinate, MatchError, MatchRequest, MatchResult, MatchStatus
from .config import (
    AVG_SPEED_KMH,
    BASE_FARE,
    PER_KM_RATE,
    DEFAULT_MAX_DISTANCE_KM,
    FALLBACK_LOCATION,
)
from .utils import (
    distance_km,
    estimated_arrival_minutes,
    estimated_price,
    format_distance,
    resolve_pickup_location,
)
from .matching import (
    MatchingEngine,
    cancel_match,
    fetch_nearby_candidates,
    find_best_match,
    request_match,
)
from .tracking import LocationSubscription, subscribe_to_candidate_location
from .session import MatchSession

__version__ = "1.0.0"

__all__ = [
    # Models
    "Candidate",
    "Coordinate",
    "MatchError",
    "MatchRequest",
    "MatchResult",
    "MatchStatus",
    # Core
    "MatchingEngine",
    "MatchSession",
    "LocationSubscription",
    # Functions
    "distance_km",
    "estimated_arrival_minutes",
    "estimated_price",
    "format_distance",
    "resolve_pickup_location",
    "fetch_nearby_candidates",
    "find_best_match",
    "request_match",
    "cancel_match",
    "subscribe_to_candidate_location",
    # Config
    "AVG_SPEED_KMH",
    "BASE_FARE",
    "PER_KM_RATE",
    "DEFAULT_MAX_DISTANCE_KM",
    "FALLBACK_LOCATION",
]
