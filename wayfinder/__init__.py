"""Wayfinder - Pedestrian wayfinding through a cemetery footpath network."""

from .config import CONFIG
from .errors import (
    WayfinderError,
    GraphNotBuiltError,
    NavigationStateError,
    PositionError,
)
from .models import (
    Coordinates,
    PositionSample,
    Node,
    Waypoint,
    Route,
    HistoryEntry,
    NavigationSession,
)
from .logger import Logger
from .geo import (
    haversine_distance,
    bearing_between,
    point_to_segment_distance,
    bearing_to_compass,
    relative_direction,
)
from .graph import PathGraph
from .frontier import Frontier
from .planner import RoutePlanner, estimate_walking_time
from .events import (
    EventBus,
    LocationUpdate,
    NavigationUpdate,
    WaypointReached,
    DestinationReached,
    OffRoute,
    RouteRecalculated,
    NavigationError,
)
from .tracker import NavigationTracker, NavState
from .gps import PositionFeed, GPSRecorder, GPSPlayback, simulate_walk
from .session_log import SessionRecorder
from .checks import run_route_checks, graph_report
from .app import Wayfinder
from .__main__ import main

__all__ = [
    "CONFIG",
    "WayfinderError",
    "GraphNotBuiltError",
    "NavigationStateError",
    "PositionError",
    "Coordinates",
    "PositionSample",
    "Node",
    "Waypoint",
    "Route",
    "HistoryEntry",
    "NavigationSession",
    "Logger",
    "haversine_distance",
    "bearing_between",
    "point_to_segment_distance",
    "bearing_to_compass",
    "relative_direction",
    "PathGraph",
    "Frontier",
    "RoutePlanner",
    "estimate_walking_time",
    "EventBus",
    "LocationUpdate",
    "NavigationUpdate",
    "WaypointReached",
    "DestinationReached",
    "OffRoute",
    "RouteRecalculated",
    "NavigationError",
    "NavigationTracker",
    "NavState",
    "PositionFeed",
    "GPSRecorder",
    "GPSPlayback",
    "simulate_walk",
    "SessionRecorder",
    "run_route_checks",
    "graph_report",
    "Wayfinder",
    "main",
]
