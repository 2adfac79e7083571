# bikematch/utils.py
"""
Utility functions for the BikeMatch matching engine.

Provides geographic calculations, the derived ETA/price metrics and
pickup-location resolution (optional IP geolocation with a static fallback).
"""

from __future__ import annotations

import math
import logging
import random
from typing import Optional

import requests

from . import config
from .models import Coordinate

# Configure logging
logger = logging.getLogger(__name__)


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the great-circle distance between two points on Earth.

    Uses the Haversine formula to compute the distance between two GPS coordinates.

    Args:
        lat1: Latitude of point 1 in decimal degrees
        lon1: Longitude of point 1 in decimal degrees
        lat2: Latitude of point 2 in decimal degrees
        lon2: Longitude of point 2 in decimal degrees

    Returns:
        Distance in kilometers between the two points

    Example:
        >>> haversine_distance(19.4326, -99.1332, 19.4336, -99.1312)
        0.2387  # ~240 meters
    """
    # Convert decimal degrees to radians
    lon1, lat1, lon2, lat2 = map(math.radians, [lon1, lat1, lon2, lat2])

    # Haversine formula
    dlon = lon2 - lon1
    dlat = lat2 - lat1
    a = math.sin(dlat / 2)**2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2)**2
    a = min(a, 1.0)  # float error near antipodes
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return c * config.EARTH_RADIUS_KM


def distance_km(a: Coordinate, b: Coordinate) -> float:
    """
    Great-circle distance in km between two coordinates.

    Non-negative and symmetric; zero when both coordinates are equal.
    """
    return haversine_distance(a.latitude, a.longitude, b.latitude, b.longitude)


def estimated_arrival_minutes(distance: float) -> int:
    """
    Estimated arrival time for a cyclist at the configured average speed.

    Always rounded up so an arrival is never reported sooner than the
    distance implies.

    Args:
        distance: Distance in kilometers

    Returns:
        Whole minutes until arrival

    Example:
        >>> estimated_arrival_minutes(1.0)  # 1km at 15km/h
        4
    """
    return math.ceil(distance * 60 / config.AVG_SPEED_KMH)


def estimated_price(distance: float) -> int:
    """
    Estimated price of a match: base fare plus a per-kilometre rate.

    Halves round up, e.g. 29.5 becomes 30 and 30.5 becomes 31.

    Example:
        >>> estimated_price(10.0)
        105
    """
    return math.floor(config.BASE_FARE + distance * config.PER_KM_RATE + 0.5)


def format_distance(distance: float) -> str:
    """
    Format a distance as shown next to each cyclist, e.g. "1.2 km".
    """
    return f"{distance:.1f} km"


def jitter(origin: Coordinate, spread: float, rng: random.Random) -> Coordinate:
    """
    Place a point uniformly inside a square box centred on ``origin``.

    Args:
        origin: Centre of the box
        spread: Total box width in degrees (each axis moves by +/- spread / 2)
        rng: Random source

    Returns:
        A new coordinate inside the box
    """
    return Coordinate(
        latitude=origin.latitude + (rng.random() - 0.5) * spread,
        longitude=origin.longitude + (rng.random() - 0.5) * spread,
    )


def fallback_location() -> Coordinate:
    """The static pickup used when the requester cannot be located."""
    return Coordinate.from_tuple(config.FALLBACK_LOCATION)


def ip_geolocate() -> Optional[Coordinate]:
    """
    Locate the requester from their public IP address.

    Returns:
        The coordinate reported by the geolocation endpoint, or None if the
        request failed or the response could not be parsed.
    """
    try:
        response = requests.get(
            config.IP_GEOLOCATION_URL,
            timeout=config.IP_GEOLOCATION_TIMEOUT_SECONDS,
        )
        response.raise_for_status()

        data = response.json()
        return Coordinate(
            latitude=float(data["latitude"]),
            longitude=float(data["longitude"]),
        )

    except requests.exceptions.Timeout:
        logger.warning("Geolocation request timed out")
        return None
    except requests.exceptions.RequestException as e:
        logger.warning(f"Geolocation request failed: {e}")
        return None
    except (KeyError, ValueError, TypeError) as e:
        logger.warning(f"Geolocation response parsing failed: {e}")
        return None


def resolve_pickup_location(use_ip_geolocation: Optional[bool] = None) -> Coordinate:
    """
    Get the requester's pickup location using the configured method.

    When IP geolocation is enabled and succeeds, its coordinate is used.
    Otherwise (disabled, denied, or failed) the static fallback is returned.

    Args:
        use_ip_geolocation: Overrides config.USE_IP_GEOLOCATION when given

    Returns:
        The pickup coordinate
    """
    enabled = config.USE_IP_GEOLOCATION if use_ip_geolocation is None else use_ip_geolocation
    if enabled:
        located = ip_geolocate()
        if located is not None:
            return located

        logger.info("Falling back to the static pickup location")

    return fallback_location()
