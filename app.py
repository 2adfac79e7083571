"""
BikeMatch - Connect Nearby Cyclists
===================================

Dashboard for the nearby-cyclist matching demo.

Features:
- Pickup from IP geolocation or the Mexico City fallback
- Nearby cyclists table and map
- Match negotiation with its status log
- Live tracking of the matched cyclist

Run:
    streamlit run app.py
"""

import streamlit as st
import pandas as pd
import asyncio
import random
from typing import Any, Dict, List, Optional, Tuple

from bikematch import config, mapview, roster, utils
from bikematch.matching import MatchingEngine
from bikematch.models import Coordinate, MatchStatus
from bikematch.session import MatchSession
from bikematch.tracking import collect_locations

# =============================================================================
# PAGE CONFIG
# =============================================================================

st.set_page_config(
    page_title="BikeMatch",
    page_icon="🚲",
    layout="wide",
    initial_sidebar_state="expanded"
)

st.markdown("""
<style>
    .main .block-container {
        padding-top: 2rem;
        padding-bottom: 2rem;
    }

    .status-line {
        padding: 0.5rem 0.75rem;
        border-radius: 10px;
        margin-bottom: 0.4rem;
        background: #0f172a;
        color: #e2e8f0;
    }

    .status-line.accepted { border-left: 6px solid #10b981; }
    .status-line.error { border-left: 6px solid #ef4444; }
    .status-line.found { border-left: 6px solid #3b82f6; }
    .status-line.searching { border-left: 6px solid #f59e0b; }

    #MainMenu {visibility: hidden;}
    footer {visibility: hidden;}
</style>
""", unsafe_allow_html=True)

STATUS_ICONS: Dict[MatchStatus, str] = {
    MatchStatus.SEARCHING: "🔎",
    MatchStatus.FOUND: "🚴",
    MatchStatus.ACCEPTED: "✅",
    MatchStatus.ERROR: "⚠️",
}


# =============================================================================
# SESSION
# =============================================================================

def get_session(pickup: Coordinate, seed: Optional[int], fast: bool) -> MatchSession:
    """Return the MatchSession stored in Streamlit state, rebuilding it when inputs change."""
    key = (pickup.to_tuple(), seed, fast)
    if st.session_state.get("session_key") != key:
        old = st.session_state.get("match_session")
        if old is not None:
            old.close()
        rng = random.Random(seed) if seed is not None else random.Random()
        engine = MatchingEngine(rng=rng, time_scale=0.0 if fast else 1.0)
        st.session_state["match_session"] = MatchSession(requester_id="web-user", pickup=pickup, engine=engine)
        st.session_state["session_key"] = key
        st.session_state.pop("track_positions", None)
    return st.session_state["match_session"]


@st.cache_data(show_spinner=False)
def locate(use_ip: bool) -> Tuple[float, float]:
    """Resolve and cache the pickup location."""
    return utils.resolve_pickup_location(use_ip_geolocation=use_ip).to_tuple()


# =============================================================================
# SIDEBAR
# =============================================================================

def render_sidebar() -> Dict[str, Any]:
    st.sidebar.markdown("## 🎛️ Configuration")
    st.sidebar.markdown("---")

    st.sidebar.markdown("### 📍 Pickup")
    use_ip = st.sidebar.checkbox("Locate me by IP", value=config.USE_IP_GEOLOCATION)
    default_lat, default_lng = locate(use_ip)
    lat = st.sidebar.number_input("Latitude", value=float(default_lat), format="%.5f")
    lng = st.sidebar.number_input("Longitude", value=float(default_lng), format="%.5f")

    st.sidebar.markdown("### 🚲 Preferences")
    activity = st.sidebar.selectbox("Activity", ["(any)"] + roster.activity_labels())
    max_distance = st.sidebar.slider(
        "Search radius (km)",
        min_value=0.0,
        max_value=10.0,
        value=float(config.DEFAULT_MAX_DISTANCE_KM),
        step=0.5,
    )

    st.sidebar.markdown("### ⚙️ Simulation")
    fast = st.sidebar.checkbox("Skip simulated delays", value=True)
    seed_text = st.sidebar.text_input("Random seed (blank = random)", value="")
    seed = int(seed_text) if seed_text.strip().lstrip("-").isdigit() else None

    st.sidebar.markdown("---")
    st.sidebar.info("""
    **How matching works**

    Cyclists in range are ranked by rating per minute of arrival:
    `rating / (ETA + 1)`. An activity preference narrows the list
    unless nobody offers it.
    """)

    return {
        "pickup": Coordinate(lat, lng),
        "activity": None if activity == "(any)" else activity,
        "max_distance": max_distance,
        "fast": fast,
        "seed": seed,
    }


# =============================================================================
# RENDERING
# =============================================================================

def candidates_frame(session: MatchSession) -> pd.DataFrame:
    rows: List[Dict[str, Any]] = []
    for c in session.candidates:
        rows.append({
            "Cyclist": c.name,
            "Activity": c.activity_label,
            "Rating": c.rating,
            "Distance": utils.format_distance(utils.distance_km(session.pickup, c.location)),
            "ETA (min)": c.estimated_arrival_minutes,
            "Bike": c.vehicle_type,
            "Phone": c.contact_phone,
        })
    return pd.DataFrame(rows)


def render_status_log(session: MatchSession) -> None:
    for status, payload in session.status_log:
        text = payload.get("message", "")
        candidate = payload.get("candidate")
        if candidate is not None:
            text += f" · {candidate.name}"
        if payload.get("eta") is not None:
            text += f" · llega en {payload['eta']} min"
        st.markdown(
            f"<div class='status-line {status.value}'>{STATUS_ICONS[status]} {text}</div>",
            unsafe_allow_html=True,
        )


def render_match(session: MatchSession) -> None:
    result = session.result
    if result is None:
        return
    if not result.success:
        st.error(result.error_message)
        return

    c = result.candidate
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Cyclist", c.name, f"★ {c.rating}")
    col2.metric("ETA", f"{result.estimated_arrival_minutes} min")
    col3.metric("Distance", f"{result.distance_km} km")
    col4.metric("Price", f"${result.estimated_price}")


def render_map(session: MatchSession) -> None:
    matched = session.matched_candidate
    matched_id = matched.candidate_id if matched else None
    # The match comes from its own fetch; show its position rather than the listed one.
    shown = [c for c in session.candidates if c.candidate_id != matched_id]
    if matched is not None:
        shown.append(matched)
    layers = [
        mapview.candidate_layer(shown, matched_id),
        mapview.requester_layer(session.pickup),
    ]
    positions = st.session_state.get("track_positions")
    if matched is not None and positions:
        layers.append(mapview.path_layer(positions, label=f"{matched.name}"))
    st.pydeck_chart(mapview.build_deck(session.pickup, layers))


# =============================================================================
# MAIN
# =============================================================================

def main():
    st.title("🚲 BikeMatch · Conecta con ciclistas cercanos")

    params = render_sidebar()
    session = get_session(params["pickup"], params["seed"], params["fast"])

    col_a, col_b, col_c, col_d = st.columns(4)
    if col_a.button("🔄 Find nearby cyclists", use_container_width=True):
        with st.spinner("Searching..."):
            asyncio.run(session.refresh_candidates(params["max_distance"]))
        st.session_state.pop("track_positions", None)

    if col_b.button("🤝 Request match", use_container_width=True):
        with st.spinner("Negotiating..."):
            asyncio.run(session.request(
                activity_type=params["activity"],
                max_distance_km=params["max_distance"],
            ))
        st.session_state.pop("track_positions", None)

    matched = session.matched_candidate
    if col_c.button("📡 Track cyclist", use_container_width=True, disabled=matched is None):
        interval = config.LOCATION_UPDATE_INTERVAL_SECONDS * session.engine.time_scale
        with st.spinner(f"Following {matched.name}..."):
            st.session_state["track_positions"] = asyncio.run(
                collect_locations(
                    matched.candidate_id,
                    session.pickup,
                    10,
                    rng=session.engine.rng,
                    interval=interval,
                    start=matched.location,
                )
            )

    if col_d.button("✖️ Cancel match", use_container_width=True, disabled=matched is None):
        with st.spinner("Cancelling..."):
            asyncio.run(session.cancel())
        st.session_state.pop("track_positions", None)
        matched = None

    st.markdown("---")
    left, right = st.columns([3, 2])

    with left:
        render_map(session)

    with right:
        st.markdown("#### Nearby cyclists")
        if session.candidates:
            st.dataframe(candidates_frame(session), use_container_width=True, hide_index=True)
        else:
            st.caption("No cyclists loaded yet.")

        st.markdown("#### Match")
        render_status_log(session)
        render_match(session)

    positions = st.session_state.get("track_positions")
    if matched is not None and positions:
        st.markdown("#### Live tracking")
        track_rows = [
            {
                "tick": i,
                "lat": p.latitude,
                "lng": p.longitude,
                "meters away": round(utils.distance_km(p, session.pickup) * 1000),
            }
            for i, p in enumerate(positions, start=1)
        ]
        st.dataframe(pd.DataFrame(track_rows), use_container_width=True, hide_index=True)


if __name__ == "__main__":
    main()
