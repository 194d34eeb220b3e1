"""Data classes for Wayfinder."""

import math
from collections import deque
from dataclasses import dataclass, field, asdict
from typing import Optional

Coordinates = tuple[float, float]  # (lon, lat)


@dataclass
class PositionSample:
    latitude: float
    longitude: float
    accuracy: Optional[float] = None
    timestamp: Optional[float] = None

    @property
    def coords(self) -> Coordinates:
        return (self.longitude, self.latitude)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> "PositionSample":
        return cls(
            latitude=d["latitude"],
            longitude=d["longitude"],
            accuracy=d.get("accuracy"),
            timestamp=d.get("timestamp"),
        )


@dataclass
class Node:
    """A point location in the pedestrian network"""
    id: str
    coordinates: Coordinates
    type: str
    name: str
    properties: dict = field(default_factory=dict)

    @property
    def connects_to(self) -> list[str]:
        return list(self.properties.get("connects_to") or [])


@dataclass(frozen=True)
class Waypoint:
    """One node of a planned route, as handed to the UI"""
    node_id: str
    coordinates: Coordinates
    name: str
    type: str

    @classmethod
    def from_node(cls, node: Node) -> "Waypoint":
        return cls(node_id=node.id, coordinates=node.coordinates,
                   name=node.name, type=node.type)

    @property
    def label(self) -> str:
        return self.name or self.node_id

    def to_dict(self) -> dict:
        return {
            "nodeId": self.node_id,
            "coordinates": list(self.coordinates),
            "name": self.name,
            "type": self.type,
        }


@dataclass(frozen=True)
class Route:
    """A planned walk from start to end.

    distance is math.inf and duration None when the end is unreachable.
    """
    success: bool
    distance: float
    duration: Optional[int]
    path: tuple[Waypoint, ...]
    error: Optional[str] = None

    @property
    def node_ids(self) -> list[str]:
        return [w.node_id for w in self.path]

    @property
    def destination(self) -> Optional[Waypoint]:
        return self.path[-1] if self.path else None

    @classmethod
    def failure(cls, error: str) -> "Route":
        return cls(success=False, distance=math.inf, duration=None, path=(), error=error)

    def to_dict(self) -> dict:
        d = {
            "success": self.success,
            "distance": self.distance,
            "duration": self.duration,
            "path": [w.to_dict() for w in self.path],
        }
        if self.error:
            d["error"] = self.error
        return d


@dataclass
class HistoryEntry:
    position: PositionSample
    waypoint_index: int
    timestamp: float

    def to_dict(self) -> dict:
        return {
            "position": self.position.to_dict(),
            "waypointIndex": self.waypoint_index,
            "timestamp": self.timestamp,
        }


@dataclass
class NavigationSession:
    """Mutable state of one active walk"""
    route: Route
    start_coords: Coordinates
    end_coords: Coordinates
    start_time: float
    history_limit: int = 100
    waypoint_index: int = 0
    current_position: Optional[PositionSample] = None
    total_distance_traveled: float = 0.0
    last_progress_time: Optional[float] = None
    last_sample_time: Optional[float] = None
    history: deque = field(init=False)

    def __post_init__(self):
        self.history = deque(maxlen=self.history_limit)

    @property
    def current_waypoint(self) -> Optional[Waypoint]:
        if 0 <= self.waypoint_index < len(self.route.path):
            return self.route.path[self.waypoint_index]
        return None

    @property
    def next_waypoint(self) -> Optional[Waypoint]:
        if self.waypoint_index + 1 < len(self.route.path):
            return self.route.path[self.waypoint_index + 1]
        return None

    def record(self, sample: PositionSample, now: float):
        """Add a sample to the bounded history"""
        self.history.append(HistoryEntry(position=sample,
                                         waypoint_index=self.waypoint_index,
                                         timestamp=now))
