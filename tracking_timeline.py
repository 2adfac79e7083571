"""Streamlit map: tick-by-tick replay of a matched cyclist converging on the requester.

Run:
    streamlit run tracking_timeline.py

Runs one seeded match at the fallback pickup, records the live-location
stream, and lets you scrub through it with a slider.
"""

from __future__ import annotations

import asyncio
import random
from typing import Dict, List

import streamlit as st

from bikematch import config, mapview, utils
from bikematch.matching import MatchingEngine
from bikematch.models import Coordinate, MatchRequest
from bikematch.tracking import collect_locations

# -----------------------------------------------------------------------------
# Scenario: requester at the Zócalo, default radius, no activity preference
# -----------------------------------------------------------------------------
PICKUP = utils.fallback_location()
TICKS = 30


# -----------------------------------------------------------------------------
# Trace engine
# -----------------------------------------------------------------------------

async def _trace(seed: int, ticks: int) -> Dict:
    engine = MatchingEngine(rng=random.Random(seed), time_scale=0.0)
    request = MatchRequest(requester_id="timeline", pickup_location=PICKUP)

    statuses: List[str] = []
    result = await engine.request_match(request, lambda status, payload: statuses.append(status.value))
    if not result.success:
        return {"statuses": statuses, "error": result.error_message, "positions": []}

    start = result.candidate.location
    positions = await collect_locations(result.candidate.candidate_id, PICKUP, ticks, rng=engine.rng, interval=0.0, start=start)
    return {
        "statuses": statuses,
        "name": result.candidate.name,
        "eta": result.estimated_arrival_minutes,
        "positions": [start.to_tuple()] + [p.to_tuple() for p in positions],
    }


@st.cache_data(show_spinner=False)
def get_trace(seed: int, ticks: int) -> Dict:
    return asyncio.run(_trace(seed, ticks))


# -----------------------------------------------------------------------------
# UI
# -----------------------------------------------------------------------------

st.set_page_config(page_title="Tracking Timeline", page_icon="🗺️", layout="wide")
st.title("🗺️ Live Tracking Timeline")
st.write(
    f"**Demo:** one match at the Zócalo. Every tick the cyclist covers "
    f"{config.CONVERGENCE_FACTOR:.0%} of the remaining distance "
    f"(one tick = {config.LOCATION_UPDATE_INTERVAL_SECONDS:g} s)."
)

seed = st.number_input("Seed", min_value=0, value=7, step=1)
trace = get_trace(int(seed), TICKS)

st.markdown(f"**Negotiation:** {' → '.join(trace['statuses'])}")
if not trace["positions"]:
    st.error(trace.get("error") or "No timeline produced.")
    st.stop()

positions = [Coordinate.from_tuple(p) for p in trace["positions"]]
idx = st.slider("Tick", 0, len(positions) - 1, 0, help="Scrub through the live-location stream")
current = positions[idx]

col1, col2 = st.columns([1, 1])
with col1:
    st.markdown(f"**Cyclist:** {trace['name']} (ETA at match: {trace['eta']} min)")
    st.markdown(f"**Elapsed:** {idx * config.LOCATION_UPDATE_INTERVAL_SECONDS:g} s")
with col2:
    remaining = utils.distance_km(current, PICKUP) * 1000
    st.markdown(
        f"<div style='padding:0.75rem; background:#0f172a; color:#e2e8f0; border-radius:12px;'>"
        f"<b>Position:</b> {current.latitude:.6f}, {current.longitude:.6f}<br>"
        f"<b>Distance to you:</b> {remaining:.0f} m"
        f"</div>",
        unsafe_allow_html=True,
    )

layers = [
    mapview.path_layer(positions[: idx + 1], label=trace["name"]),
    mapview.requester_layer(PICKUP),
]
st.pydeck_chart(mapview.build_deck(PICKUP, layers, zoom=15))

st.markdown("---")
st.markdown("#### Timeline Table")
rows = [
    {
        "tick": i,
        "lat": round(p.latitude, 6),
        "lng": round(p.longitude, 6),
        "meters away": round(utils.distance_km(p, PICKUP) * 1000),
    }
    for i, p in enumerate(positions)
]
st.dataframe(rows, use_container_width=True, hide_index=True)
