# bikematch/roster.py
"""
Synthetic roster of cyclists used by candidate discovery.

There is no live fleet behind the engine: every fetch places this fixed
roster around the requester's pickup, each entry jittered inside its own
spread, and rolls availability for the intermittent entries.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from . import config, utils
from .models import Candidate, Coordinate

AVATAR_URL = "https://api.dicebear.com/7.x/avataaars/svg?seed={seed}"


@dataclass(frozen=True)
class RosterEntry:
    """
    Template for one synthetic cyclist.

    Attributes:
        candidate_id: Identifier reused on every fetch
        name: Display name
        rating: Average rating
        activity_label: Activity the cyclist offers
        contact_phone: Phone string shown by the UI
        vehicle_type: Bike descriptor
        spread: Width of the jitter box around the pickup, in degrees
        intermittent: If True, the entry is online only part of the time
    """
    candidate_id: str
    name: str
    rating: float
    activity_label: str
    contact_phone: str
    vehicle_type: str
    spread: float
    intermittent: bool = False

    @property
    def photo_url(self) -> str:
        return AVATAR_URL.format(seed=self.name.split()[0])


DEFAULT_ROSTER: Tuple[RosterEntry, ...] = (
    RosterEntry(
        candidate_id="cyclist-1",
        name="Ana Rodriguez",
        rating=4.9,
        activity_label="Paseo casual",
        contact_phone="+52 55 1234 5678",
        vehicle_type="Bicicleta de montaña",
        spread=config.JITTER_SPREAD_NEAR,
    ),
    RosterEntry(
        candidate_id="cyclist-2",
        name="Carlos Martinez",
        rating=4.7,
        activity_label="Ruta deportiva",
        contact_phone="+52 55 2345 6789",
        vehicle_type="Bicicleta de ruta",
        spread=config.JITTER_SPREAD_MEDIUM,
    ),
    RosterEntry(
        candidate_id="cyclist-3",
        name="Sofia Lopez",
        rating=4.8,
        activity_label="Aventura urbana",
        contact_phone="+52 55 3456 7890",
        vehicle_type="Bicicleta urbana",
        spread=config.JITTER_SPREAD_WIDE,
    ),
    RosterEntry(
        candidate_id="cyclist-4",
        name="Miguel Torres",
        rating=4.6,
        activity_label="Paseo casual",
        contact_phone="+52 55 4567 8901",
        vehicle_type="Bicicleta eléctrica",
        spread=config.JITTER_SPREAD_FAR,
        intermittent=True,
    ),
    RosterEntry(
        candidate_id="cyclist-5",
        name="Laura Hernandez",
        rating=4.95,
        activity_label="Ruta deportiva",
        contact_phone="+52 55 5678 9012",
        vehicle_type="Bicicleta de montaña",
        spread=config.JITTER_SPREAD_TIGHT,
    ),
)


def activity_labels(roster: Sequence[RosterEntry] = DEFAULT_ROSTER) -> List[str]:
    """Distinct activity labels offered by a roster, in roster order."""
    labels: List[str] = []
    for entry in roster:
        if entry.activity_label not in labels:
            labels.append(entry.activity_label)
    return labels


def generate_candidates(
    pickup: Coordinate,
    rng: random.Random,
    roster: Sequence[RosterEntry] = DEFAULT_ROSTER,
) -> List[Candidate]:
    """
    Materialize the roster around a pickup.

    Every call returns fresh Candidate objects: locations are re-jittered and
    intermittent entries re-roll their availability.
    """
    candidates = []
    for entry in roster:
        location = utils.jitter(pickup, entry.spread, rng)
        is_available = True
        if entry.intermittent:
            is_available = rng.random() < config.INTERMITTENT_ONLINE_PROBABILITY

        candidates.append(
            Candidate(
                candidate_id=entry.candidate_id,
                name=entry.name,
                rating=entry.rating,
                location=location,
                activity_label=entry.activity_label,
                is_available=is_available,
                contact_phone=entry.contact_phone,
                vehicle_type=entry.vehicle_type,
                photo_url=entry.photo_url,
            )
        )
    return candidates
