from bikematch import mapview
from bikematch.models import Candidate, Coordinate

ZOCALO = Coordinate(19.4326, -99.1332)


def _candidate(candidate_id: str, lat_offset: float) -> Candidate:
    return Candidate(
        candidate_id=candidate_id,
        name=f"Rider {candidate_id}",
        rating=4.5,
        location=Coordinate(ZOCALO.latitude + lat_offset, ZOCALO.longitude),
        activity_label="Paseo casual",
    )


def test_candidate_layer_highlights_match() -> None:
    layer = mapview.candidate_layer([_candidate("a", 0.001), _candidate("b", 0.002)], matched_id="b")
    colors = [row["color"] for row in layer.data]
    assert colors == [mapview.CANDIDATE_COLOR, mapview.MATCHED_COLOR]
    assert layer.data[0]["position"] == [ZOCALO.longitude, ZOCALO.latitude + 0.001]


def test_path_layer_uses_lng_lat_order() -> None:
    positions = [ZOCALO, Coordinate(19.44, -99.14)]
    layer = mapview.path_layer(positions, label="Ana")
    assert layer.data[0]["path"] == [[-99.1332, 19.4326], [-99.14, 19.44]]
    assert layer.data[0]["label"] == "Ana"


def test_build_deck_centers_on_pickup() -> None:
    deck = mapview.build_deck(ZOCALO, [mapview.requester_layer(ZOCALO)], zoom=12)
    assert deck.initial_view_state.latitude == ZOCALO.latitude
    assert deck.initial_view_state.longitude == ZOCALO.longitude
    assert deck.initial_view_state.zoom == 12
    assert len(deck.layers) == 1
