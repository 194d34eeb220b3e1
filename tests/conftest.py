import math

import pytest

from wayfinder.events import EventBus
from wayfinder.geo import EARTH_RADIUS, haversine_distance
from wayfinder.graph import PathGraph
from wayfinder.logger import Logger
from wayfinder.models import PositionSample

M_PER_DEG = math.radians(1) * EARTH_RADIUS
SPACING = 0.0005  # degrees of longitude between line nodes
SEGMENT = haversine_distance((0.0, 0.0), (SPACING, 0.0))
LINE_IDS = ["A", "B", "C", "D", "E"]


def line_features() -> list[dict]:
    """A-B-C-D-E along the equator, one SEGMENT apart"""
    features = []
    for i, node_id in enumerate(LINE_IDS):
        features.append({
            "id": node_id,
            "name": node_id,
            "type": "junction",
            "coordinates": [i * SPACING, 0.0],
            "connects_to": LINE_IDS[i + 1:i + 2],
        })
    return features


def sample_at(east: float, north: float = 0.0, accuracy: float = 3.0) -> PositionSample:
    """Sample east/north meters from (0, 0)"""
    return PositionSample(latitude=north / M_PER_DEG, longitude=east / M_PER_DEG,
                          accuracy=accuracy)


class FakeClock:
    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class EventCollector:
    def __init__(self):
        self.events = []

    def __call__(self, event):
        self.events.append(event)

    def of_type(self, etype):
        return [e for e in self.events if isinstance(e, etype)]

    def names(self) -> list[str]:
        return [type(e).__name__ for e in self.events]

    def clear(self):
        self.events.clear()


@pytest.fixture
def quiet_logger():
    return Logger(quiet=True)


@pytest.fixture
def line_graph(quiet_logger):
    graph = PathGraph(logger=quiet_logger)
    graph.build_from_features(line_features())
    return graph


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def collector(bus):
    events = EventCollector()
    bus.on_any(events)
    return events
