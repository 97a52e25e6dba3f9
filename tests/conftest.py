import copy

import pytest

from thetrains.config import EngineConfig
from thetrains.data_cache import build_models
from thetrains.network import Network
from thetrains.network_models import Link, Station
from thetrains.timetable_models import StopEvent, Trip

RAW_NETWORK = {
    "nodes": [
        {"id": "A", "name": "Alpha", "x": 0, "y": 0},
        {"id": "B", "name": "Bravo", "x": 10, "y": 0},
        {"id": "C", "name": "Charlie", "x": 10, "y": 10},
    ],
    "links": [
        {"source": "A", "target": "B", "line": "red"},
        {"source": "B", "target": "C", "line": "red"},
    ],
}

RAW_TRIPS = {
    "t1": {
        "line": "red",
        "begin": 0,
        "end": 200,
        "stops": [{"stop": "A", "time": 0}, {"stop": "B", "time": 100}, {"stop": "C", "time": 200}],
    },
    "t2": {
        "line": "red",
        "begin": 300,
        "end": 400,
        "stops": [{"stop": "C", "time": 300}, {"stop": "B", "time": 400}],
    },
}

RAW_HEADER = {"A|red": [0], "B|red": [10], "C|red": [20]}


def make_trip(trip_id, stops, line="red"):
    events = [StopEvent(station_id=s, line=line, time=float(t)) for s, t in stops]
    return Trip(trip_id=trip_id, line=line, stops=events, begin=events[0].time, end=events[-1].time)


@pytest.fixture
def raw_network():
    return copy.deepcopy(RAW_NETWORK)


@pytest.fixture
def raw_trips():
    return copy.deepcopy(RAW_TRIPS)


@pytest.fixture
def raw_header():
    return copy.deepcopy(RAW_HEADER)


@pytest.fixture
def network():
    return Network(
        [
            Station("A", "Alpha", (0.0, 0.0)),
            Station("B", "Bravo", (10.0, 0.0)),
            Station("C", "Charlie", (10.0, 10.0)),
        ],
        [Link("red", "A", "B"), Link("red", "B", "C")],
    )


@pytest.fixture
def trip():
    return make_trip("t1", [("A", 0), ("B", 100), ("C", 200)])


@pytest.fixture
def models(raw_network, raw_trips, raw_header):
    return build_models(raw_network, raw_trips, raw_header)


@pytest.fixture
def config():
    return EngineConfig(resize_debounce_sec=0.01)


class RecordingRenderer:
    """Collects every draw instruction it receives."""

    def __init__(self):
        self.glyph_calls = []
        self.path_calls = []
        self.lined_up_calls = []
        self.mark_calls = []
        self.label_calls = []

    def place_glyphs(self, glyphs, hidden):
        self.glyph_calls.append((list(glyphs), list(hidden)))

    def draw_paths(self, paths, lined_up_paths):
        self.path_calls.append(list(paths))
        self.lined_up_calls.append(list(lined_up_paths))

    def mark_trips(self, highlighted, hovered):
        self.mark_calls.append((highlighted, hovered))

    def show_labels(self, keys):
        self.label_calls.append(list(keys))


@pytest.fixture
def renderer():
    return RecordingRenderer()
