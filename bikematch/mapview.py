# bikematch/mapview.py
"""pydeck layers shared by the dashboard and the tracking timeline."""

from __future__ import annotations

from typing import List, Optional, Sequence

import pydeck as pdk

from .models import Candidate, Coordinate

REQUESTER_COLOR = [239, 68, 68]
CANDIDATE_COLOR = [59, 130, 246]
MATCHED_COLOR = [16, 185, 129]
PATH_COLOR = [16, 185, 129]


def requester_layer(pickup: Coordinate) -> pdk.Layer:
    data = [
        {
            "position": [pickup.longitude, pickup.latitude],
            "color": REQUESTER_COLOR,
            "label": "Tú",
        }
    ]
    return pdk.Layer(
        "ScatterplotLayer",
        data,
        get_position="position",
        get_fill_color="color",
        get_radius=60,
        pickable=True,
        stroked=True,
        filled=True,
        line_width_min_pixels=2,
    )


def candidate_layer(candidates: Sequence[Candidate], matched_id: Optional[str] = None) -> pdk.Layer:
    data = [
        {
            "position": [c.location.longitude, c.location.latitude],
            "color": MATCHED_COLOR if c.candidate_id == matched_id else CANDIDATE_COLOR,
            "label": f"{c.name} · {c.activity_label} · ★{c.rating}",
        }
        for c in candidates
    ]
    return pdk.Layer(
        "ScatterplotLayer",
        data,
        get_position="position",
        get_fill_color="color",
        get_radius=45,
        pickable=True,
        stroked=True,
        filled=True,
        line_width_min_pixels=1,
    )


def path_layer(positions: Sequence[Coordinate], label: str = "") -> pdk.Layer:
    """Polyline through a tracked cyclist's positions, oldest first."""
    data = [
        {
            "path": [[p.longitude, p.latitude] for p in positions],
            "color": PATH_COLOR,
            "label": label,
        }
    ]
    return pdk.Layer(
        "PathLayer",
        data,
        get_path="path",
        get_color="color",
        width_min_pixels=3,
        pickable=True,
    )


def build_deck(pickup: Coordinate, layers: List[pdk.Layer], zoom: int = 14) -> pdk.Deck:
    view_state = pdk.ViewState(latitude=pickup.latitude, longitude=pickup.longitude, zoom=zoom)
    return pdk.Deck(layers=layers, initial_view_state=view_state, tooltip={"text": "{label}"})
