# bikematch/config.py
"""
Configuration parameters for the BikeMatch nearby-cyclist matching engine.

This module centralizes all tunable parameters, making it easy to:
- Adjust the simulated network and negotiation delays
- Tune the synthetic roster placement around the requester
- Change pricing and ETA assumptions

All parameters are documented with their purpose and typical value ranges.
"""

from typing import Final, Tuple

# =============================================================================
# PHYSICS AND TIME CONSTANTS
# =============================================================================

EARTH_RADIUS_KM: Final[float] = 6371.0
"""Mean Earth radius used by the haversine formula."""

AVG_SPEED_KMH: float = 15.0
"""Average cycling speed in km/h. Used to derive ETAs from distance."""

# =============================================================================
# PRICING
# =============================================================================
# Currency-agnostic units (the demo city prices in MXN).

BASE_FARE: float = 25.0
"""Flat fare charged for every match, regardless of distance."""

PER_KM_RATE: float = 8.0
"""Rate charged per kilometre between pickup and the matched cyclist."""

# =============================================================================
# CANDIDATE DISCOVERY
# =============================================================================

DEFAULT_MAX_DISTANCE_KM: float = 5.0
"""Default search radius when a request does not specify one."""

FETCH_DELAY_SECONDS: float = 0.5
"""Simulated latency of the "nearby cyclists" lookup."""

JITTER_SPREAD_TIGHT: float = 0.008
JITTER_SPREAD_NEAR: float = 0.01
JITTER_SPREAD_MEDIUM: float = 0.015
JITTER_SPREAD_WIDE: float = 0.02
JITTER_SPREAD_FAR: float = 0.025
"""
Total width (in degrees) of the box each roster entry is placed in around the
pickup. A spread of 0.01 places the cyclist within +/-0.005 degrees per axis.
These are demo constants without geodesic meaning.
"""

INTERMITTENT_ONLINE_PROBABILITY: float = 0.7
"""Chance that a roster entry flagged as intermittent is online on a fetch."""

# =============================================================================
# MATCHING
# =============================================================================

SCORE_ETA_OFFSET: float = 1.0
"""
Added to the ETA in the score denominator (rating / (eta + offset)).
Keeps the score finite for a cyclist that is already at the pickup.
"""

DISTANCE_DECIMALS: int = 2
"""Decimal places kept on the distance reported in a match result."""

# =============================================================================
# NEGOTIATION
# =============================================================================

SEARCH_DELAY_SECONDS: float = 1.5
"""Simulated round-trip before the best match is computed."""

ACCEPT_DELAY_SECONDS: float = 2.0
"""Simulated think-time of the selected cyclist."""

RETRY_DELAY_SECONDS: float = 1.0
"""Wait before the retry round is confirmed."""

ACCEPTANCE_PROBABILITY: float = 0.9
"""
Chance the selected cyclist accepts on the first round.
A rejection triggers one retry round that always confirms the same cyclist.
"""

CANCEL_DELAY_SECONDS: float = 0.5
"""Simulated round-trip of a match cancellation."""

# =============================================================================
# LIVE LOCATION TRACKING
# =============================================================================

LOCATION_UPDATE_INTERVAL_SECONDS: float = 2.0
"""Cadence of simulated position updates for a matched cyclist."""

CONVERGENCE_FACTOR: float = 0.1
"""Fraction of the remaining offset covered on every tick."""

TRACKING_START_SPREAD: float = 0.01
"""Width (degrees) of the box the tracked cyclist starts in around the anchor."""

TRACKING_JITTER_SPREAD: float = 0.0002
"""Width (degrees) of the random wobble added on every tick."""

# =============================================================================
# PICKUP LOCATION
# =============================================================================

FALLBACK_LOCATION: Final[Tuple[float, float]] = (19.4326, -99.1332)
"""Static pickup (Mexico City, Zócalo) used when geolocation is unavailable."""

USE_IP_GEOLOCATION: bool = False
"""
Enable IP-based geolocation of the requester.
When False, the fallback location is always used.
"""

IP_GEOLOCATION_URL: str = "https://ipapi.co/json/"
"""Endpoint returning a JSON object with "latitude" and "longitude" keys."""

IP_GEOLOCATION_TIMEOUT_SECONDS: float = 3.0
"""Timeout for the geolocation request. Fail fast and fall back."""

# =============================================================================
# USER-FACING MESSAGES
# =============================================================================

MSG_SEARCHING: str = "Buscando ciclistas cercanos..."
MSG_FOUND: str = "Ciclista encontrado"
MSG_ACCEPTED: str = "¡Ciclista en camino!"
MSG_RETRYING: str = "Buscando otro ciclista..."
MSG_NO_CANDIDATES: str = "No hay ciclistas disponibles en tu área"
MSG_UPSTREAM_FAILURE: str = "Error al buscar ciclistas. Intenta de nuevo."
