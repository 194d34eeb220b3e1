"""Real-time navigation along a planned route."""

import math
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from .config import CONFIG
from .errors import NavigationStateError, PositionError, WayfinderError
from .events import (
    DestinationReached,
    EventBus,
    LocationUpdate,
    NavigationError,
    NavigationUpdate,
    OffRoute,
    RouteRecalculated,
    WaypointReached,
)
from .geo import bearing_between, bearing_to_compass, haversine_distance, point_to_segment_distance
from .logger import Logger, default_logger
from .models import Coordinates, NavigationSession, PositionSample, Route, Waypoint
from .planner import RoutePlanner

ROUTE_FAILED = "ROUTE_FAILED"


class NavState(Enum):
    IDLE = "idle"
    NAVIGATING = "navigating"
    OFF_ROUTE = "off_route"
    RECALCULATING = "recalculating"
    ARRIVED = "arrived"
    STOPPED = "stopped"


ACTIVE_STATES = {NavState.NAVIGATING, NavState.OFF_ROUTE, NavState.RECALCULATING}


@dataclass
class StartResult:
    success: bool
    route: Optional[Route] = None
    error: Optional[str] = None
    message: str = ""


def generate_instruction(current: Waypoint, following: Optional[Waypoint],
                         distance_to_waypoint: float, near_distance: float) -> str:
    """Human-readable hint for the walker"""
    if following is None:
        return f"Continue to {current.name or 'destination'}"

    direction = bearing_to_compass(
        bearing_between(current.coordinates, following.coordinates)
    ).capitalize()
    meters = round(distance_to_waypoint)
    if distance_to_waypoint < near_distance:
        return f"In {meters}m, head {direction} to {following.label}"
    return f"Continue {meters}m to {current.label}, then head {direction}"


class NavigationTracker:
    """State machine that follows a walker along a route.

    Samples go in through on_position_sample(); progress, waypoint, off-route
    and arrival events come out on the event bus. Once the destination is
    reached or stop() is called, further samples are ignored.
    """

    def __init__(self, bus: Optional[EventBus] = None, options: Optional[dict] = None,
                 logger: Optional[Logger] = None, clock: Callable[[], float] = time.monotonic):
        self.options = {**CONFIG, **(options or {})}
        self.bus = bus or EventBus()
        self.logger = logger or default_logger
        self.clock = clock

        self.state = NavState.IDLE
        self.session: Optional[NavigationSession] = None
        self.planner: Optional[RoutePlanner] = None
        self.estimated_time_remaining = 0

        self._feed = None
        self._watch_id = None
        self._last_tick: Optional[float] = None
        self._in_tick = False
        self._recalculating = False
        self._stale_reported = False
        self._pending = False

    @property
    def is_navigating(self) -> bool:
        return self.state in ACTIVE_STATES

    @property
    def route(self) -> Optional[Route]:
        return self.session.route if self.session else None

    def start(self, start_coords: Coordinates, end_coords: Coordinates,
              planner: RoutePlanner, feed=None) -> StartResult:
        """Plan the initial route and begin tracking"""
        if self.is_navigating:
            raise NavigationStateError(f"navigation already active ({self.state.value})")

        self.logger.log("Starting navigation", {"start": start_coords, "end": end_coords})
        self.planner = planner
        route = planner.plan_between(start_coords, end_coords)

        if not route.success:
            error = route.error or "Could not calculate route to destination"
            self.state = NavState.IDLE
            self.logger.log("Navigation start failed", {"error": error})
            self.bus.emit(NavigationError(code=ROUTE_FAILED, message=error))
            return StartResult(success=False, error=error)

        now = self.clock()
        self.session = NavigationSession(
            route=route,
            start_coords=start_coords,
            end_coords=end_coords,
            start_time=now,
            history_limit=self.options["history_limit"],
        )
        self._last_tick = None
        self._pending = False
        self._stale_reported = False
        self.state = NavState.NAVIGATING
        self.logger.log("Route calculated", {"distance": route.distance,
                                             "waypoints": len(route.path)})

        if feed is not None:
            self._feed = feed
            self._watch_id = feed.watch(self.on_position_sample, self.on_position_error)

        return StartResult(success=True, route=route, message="Real-time navigation started")

    def on_position_sample(self, sample: PositionSample):
        """Ingest a raw position and re-evaluate progress"""
        if not self.is_navigating:
            return
        session = self.session
        now = self.clock()
        session.last_sample_time = now
        self._stale_reported = False

        if session.current_position is not None:
            moved = haversine_distance(session.current_position.coords, sample.coords)
            # Sub-threshold moves are GPS jitter
            if moved >= self.options["min_progress_distance"]:
                session.total_distance_traveled += moved
                session.last_progress_time = now
                session.record(sample, now)

        session.current_position = sample
        self.bus.emit(LocationUpdate(position=sample))

        interval = self.options["evaluation_interval"]
        if self._last_tick is None or now - self._last_tick >= interval:
            self.tick()
        else:
            # Evaluated by the next poll() once the interval has passed
            self._pending = True

    def on_position_error(self, error: PositionError):
        """Report a failure from the position source; navigation continues"""
        self.logger.log("GPS error", {"code": error.code, "message": error.message})
        self.bus.emit(NavigationError(code=error.code, message=error.message))

    def check_staleness(self, now: Optional[float] = None) -> bool:
        """Emit a TIMEOUT error once when samples have stopped arriving"""
        if not self.is_navigating or self._stale_reported:
            return False
        now = self.clock() if now is None else now
        last = self.session.last_sample_time
        if last is None:
            last = self.session.start_time
        if now - last < self.options["position_timeout"]:
            return False
        self._stale_reported = True
        self.on_position_error(PositionError(PositionError.TIMEOUT))
        return True

    def poll(self):
        """Periodic driver, meant to run every evaluation_interval.

        Evaluates a sample that was held back by the rate limit and checks for
        a silent position source. Location watches stop sending samples when
        the walker stands still, so the last sample is only seen here.
        """
        if not self.is_navigating:
            return
        now = self.clock()
        if self._pending and now - self._last_tick >= self.options["evaluation_interval"]:
            self.tick()
        self.check_staleness(now)

    def tick(self):
        """Evaluate the current position against the route"""
        if not self.is_navigating or self._in_tick:
            return
        session = self.session
        if session.current_position is None:
            return

        self._in_tick = True
        try:
            self._last_tick = self.clock()
            self._pending = False
            self._evaluate(session)
        finally:
            self._in_tick = False

    def _evaluate(self, session: NavigationSession):
        position = session.current_position.coords
        destination = session.route.destination
        distance_to_destination = haversine_distance(position, destination.coordinates)

        if distance_to_destination <= self.options["arrival_threshold"]:
            self._reach_destination()
            return

        if self.state == NavState.OFF_ROUTE:
            if not self._recalculate():
                return

        current = session.current_waypoint
        following = session.next_waypoint
        distance_to_waypoint = haversine_distance(position, current.coordinates)

        if distance_to_waypoint <= self.options["waypoint_threshold"] and following is not None:
            self._reach_waypoint()
            return

        off_route_distance = self.distance_from_route()
        if off_route_distance is not None and off_route_distance > self.options["off_route_threshold"]:
            self._handle_off_route(off_route_distance)
            return

        self.estimated_time_remaining = math.ceil(
            self.remaining_distance() / self.options["walking_speed"]
        )
        self.bus.emit(NavigationUpdate(
            current_position=session.current_position,
            current_waypoint=current,
            next_waypoint=following,
            distance_to_waypoint=distance_to_waypoint,
            distance_to_destination=distance_to_destination,
            total_distance_traveled=session.total_distance_traveled,
            estimated_time_remaining=self.estimated_time_remaining,
            waypoint_index=session.waypoint_index,
            total_waypoints=len(session.route.path),
            bearing=bearing_between(position, following.coordinates) if following else None,
            instruction=generate_instruction(current, following, distance_to_waypoint,
                                             self.options["near_instruction_distance"]),
        ))

    def distance_from_route(self) -> Optional[float]:
        """Perpendicular distance from the walker to the active part of the route.

        The active part is the segment from the current waypoint to the next
        one, together with the segment leading into the current waypoint,
        which is the one the walker is normally on.
        """
        session = self.session
        if not session or session.current_position is None:
            return None
        path = session.route.path
        index = session.waypoint_index
        position = session.current_position.coords

        distances = []
        if index + 1 < len(path):
            distances.append(point_to_segment_distance(
                position, path[index].coordinates, path[index + 1].coordinates))
        if index > 0:
            distances.append(point_to_segment_distance(
                position, path[index - 1].coordinates, path[index].coordinates))
        return min(distances) if distances else None

    def remaining_distance(self) -> float:
        """Remaining full segments plus the distance to the current waypoint"""
        session = self.session
        path = session.route.path
        remaining = 0.0
        for i in range(session.waypoint_index, len(path) - 1):
            remaining += haversine_distance(path[i].coordinates, path[i + 1].coordinates)
        remaining += haversine_distance(session.current_position.coords,
                                        session.current_waypoint.coordinates)
        return remaining

    def _reach_waypoint(self):
        session = self.session
        reached_index = session.waypoint_index
        waypoint = session.route.path[reached_index]
        session.waypoint_index += 1

        # Index 0 is where the route starts, not a checkpoint along it
        if reached_index == 0:
            return
        self.logger.log("Reached waypoint", {"waypoint": waypoint.label, "index": reached_index})
        self.bus.emit(WaypointReached(
            waypoint=waypoint,
            waypoint_index=reached_index,
            total_waypoints=len(session.route.path),
        ))

    def _reach_destination(self):
        session = self.session
        self.state = NavState.ARRIVED
        event = DestinationReached(
            destination=session.route.destination,
            total_distance_traveled=session.total_distance_traveled,
            total_time=self.clock() - session.start_time,
            history=list(session.history),
        )
        self.logger.log("Destination reached", {
            "destination": event.destination.label,
            "traveled": event.total_distance_traveled,
            "seconds": event.total_time,
        })
        # Released first so an observer can start the next walk
        self._teardown()
        self.bus.emit(event)

    def _handle_off_route(self, distance: float):
        session = self.session
        self.state = NavState.OFF_ROUTE
        self.logger.log("Off route detected, recalculating", {"distance": distance})
        self.bus.emit(OffRoute(
            current_position=session.current_position,
            original_route=session.route,
            distance_from_route=distance,
        ))
        # An observer may have stopped navigation
        if self.state == NavState.OFF_ROUTE:
            self._recalculate()

    def _recalculate(self) -> bool:
        """Re-plan from the current position to the original destination"""
        if self._recalculating or not self.is_navigating:
            return False
        session = self.session
        self._recalculating = True
        self.state = NavState.RECALCULATING
        route = None
        try:
            route = self.planner.plan_between(session.current_position.coords, session.end_coords)
        except WayfinderError as e:
            self.logger.log("Route recalculation failed", {"error": str(e)})
        finally:
            self._recalculating = False

        if self.state != NavState.RECALCULATING:
            return False
        if route is None or not route.success:
            self.state = NavState.OFF_ROUTE
            self.logger.log("No route from current position, will retry",
                            {"error": route.error if route else None})
            return False

        session.route = route
        session.waypoint_index = 0
        self.state = NavState.NAVIGATING
        self.logger.log("Route recalculated", {"distance": route.distance,
                                               "waypoints": len(route.path)})
        self.bus.emit(RouteRecalculated(route=route))
        return True

    def _teardown(self):
        if self._feed is not None and self._watch_id is not None:
            self._feed.clear_watch(self._watch_id)
        self._feed = None
        self._watch_id = None
        self.session = None
        self._last_tick = None
        self._pending = False

    def stop(self):
        """Stop tracking and release the position feed. Safe to call repeatedly."""
        if self.is_navigating:
            self.logger.log("Stopping navigation")
            self.state = NavState.STOPPED
        self._teardown()

    def get_status(self) -> dict:
        session = self.session
        return {
            "state": self.state.value,
            "isNavigating": self.is_navigating,
            "currentPosition": session.current_position.to_dict()
            if session and session.current_position else None,
            "currentWaypointIndex": session.waypoint_index if session else 0,
            "totalWaypoints": len(session.route.path) if session else 0,
            "totalDistanceTraveled": session.total_distance_traveled if session else 0,
            "lastProgressTime": session.last_progress_time if session else None,
            "estimatedTimeRemaining": self.estimated_time_remaining,
            "route": session.route.to_dict() if session else None,
        }
