"""Navigation events and the bus that delivers them."""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Optional

from .models import PositionSample, Route, Waypoint


@dataclass
class NavEvent:
    def to_dict(self) -> dict:
        return {"type": type(self).__name__}


@dataclass
class LocationUpdate(NavEvent):
    position: PositionSample

    def to_dict(self) -> dict:
        return {"type": "LocationUpdate", "position": self.position.to_dict()}


@dataclass
class NavigationUpdate(NavEvent):
    current_position: PositionSample
    current_waypoint: Waypoint
    next_waypoint: Optional[Waypoint]
    distance_to_waypoint: float
    distance_to_destination: float
    total_distance_traveled: float
    estimated_time_remaining: int  # seconds
    waypoint_index: int
    total_waypoints: int
    bearing: Optional[float]
    instruction: str

    def to_dict(self) -> dict:
        return {
            "type": "NavigationUpdate",
            "currentWaypoint": self.current_waypoint.to_dict(),
            "nextWaypoint": self.next_waypoint.to_dict() if self.next_waypoint else None,
            "distanceToWaypoint": self.distance_to_waypoint,
            "distanceToDestination": self.distance_to_destination,
            "totalDistanceTraveled": self.total_distance_traveled,
            "estimatedTimeRemaining": self.estimated_time_remaining,
            "waypointIndex": self.waypoint_index,
            "totalWaypoints": self.total_waypoints,
            "bearing": self.bearing,
            "instruction": self.instruction,
        }


@dataclass
class WaypointReached(NavEvent):
    waypoint: Waypoint
    waypoint_index: int
    total_waypoints: int

    def to_dict(self) -> dict:
        return {
            "type": "WaypointReached",
            "waypoint": self.waypoint.to_dict(),
            "waypointIndex": self.waypoint_index,
            "totalWaypoints": self.total_waypoints,
        }


@dataclass
class DestinationReached(NavEvent):
    destination: Waypoint
    total_distance_traveled: float
    total_time: float  # seconds
    history: list = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "type": "DestinationReached",
            "destination": self.destination.to_dict(),
            "totalDistanceTraveled": self.total_distance_traveled,
            "totalTime": self.total_time,
            "history": [h.to_dict() for h in self.history],
        }


@dataclass
class OffRoute(NavEvent):
    current_position: PositionSample
    original_route: Route
    distance_from_route: float

    def to_dict(self) -> dict:
        return {
            "type": "OffRoute",
            "currentPosition": self.current_position.to_dict(),
            "originalRoute": self.original_route.to_dict(),
            "distanceFromRoute": self.distance_from_route,
        }


@dataclass
class RouteRecalculated(NavEvent):
    route: Route

    def to_dict(self) -> dict:
        return {"type": "RouteRecalculated", "route": self.route.to_dict()}


@dataclass
class NavigationError(NavEvent):
    code: str
    message: str

    def to_dict(self) -> dict:
        return {"type": "NavigationError", "code": self.code, "message": self.message}


Handler = Callable[[Any], None]


class EventBus:
    """Observer registry keyed by event type"""

    def __init__(self):
        self._subs: dict[type, list[Handler]] = {}
        self._any: list[Handler] = []

    def on(self, etype: type, handler: Handler) -> None:
        self._subs.setdefault(etype, []).append(handler)

    def on_any(self, handler: Handler) -> None:
        self._any.append(handler)

    def off(self, etype: type, handler: Handler) -> None:
        handlers = self._subs.get(etype, [])
        if handler in handlers:
            handlers.remove(handler)

    def off_any(self, handler: Handler) -> None:
        if handler in self._any:
            self._any.remove(handler)

    def emit(self, event: NavEvent) -> None:
        # Copy so handlers may unsubscribe while being called
        for handler in list(self._subs.get(type(event), ())):
            handler(event)
        for handler in list(self._any):
            handler(event)
