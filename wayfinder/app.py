"""Main Wayfinder application."""

import json
import time
from datetime import datetime
from typing import Callable, Optional
from xml.sax.saxutils import escape

from .checks import bbox_center, farthest_node, graph_report, run_route_checks
from .config import CONFIG
from .events import (
    DestinationReached,
    EventBus,
    NavigationError,
    NavigationUpdate,
    OffRoute,
    RouteRecalculated,
    WaypointReached,
)
from .geo import bearing_between, bearing_to_compass, relative_direction
from .gps import GPSPlayback, GPSRecorder, simulate_walk
from .graph import PathGraph
from .logger import Logger
from .models import Coordinates, Route
from .planner import RoutePlanner
from .session_log import SessionRecorder
from .tracker import NavigationTracker


def _flatten_feature(feature: dict) -> Optional[dict]:
    geometry = feature.get("geometry") or {}
    if geometry.get("type") not in ("Point", "LineString"):
        return None
    props = dict(feature.get("properties") or {})
    props.setdefault("id", feature.get("id"))
    props["coordinates"] = geometry["coordinates"]
    return props


def load_features(path: str) -> list[dict]:
    """Read a feature list from a JSON array or a GeoJSON FeatureCollection"""
    with open(path) as f:
        data = json.load(f)

    if isinstance(data, dict) and data.get("type") == "FeatureCollection":
        flattened = (_flatten_feature(f) for f in data.get("features", []))
        return [f for f in flattened if f is not None]
    if isinstance(data, dict) and "features" in data:
        return list(data["features"])
    return list(data)


def parse_coordinates(value: str) -> Coordinates:
    """Parse "LON,LAT" into a coordinate pair"""
    lon, lat = (float(part) for part in value.split(","))
    return (lon, lat)


class Wayfinder:
    """Main application"""

    def __init__(self, features: list[dict], blocks: Optional[list[dict]] = None,
                 log_path: Optional[str] = None, quiet: bool = False,
                 options: Optional[dict] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.logger = Logger(log_path, quiet=quiet)
        self.quiet = quiet
        self.options = {**CONFIG, **(options or {})}
        self.clock = clock
        self.bus = EventBus()

        self.graph = PathGraph(logger=self.logger)
        self.graph.build_from_features(features)
        if blocks:
            self.graph.integrate_blocks(blocks, hubs=self.options["hub_ids"])
        self.planner = RoutePlanner(self.graph, logger=self.logger)

        self._walk = {}
        self.bus.on(NavigationUpdate, self._on_update)
        self.bus.on(WaypointReached, self._on_waypoint)
        self.bus.on(OffRoute, self._on_off_route)
        self.bus.on(RouteRecalculated, self._on_recalculated)
        self.bus.on(DestinationReached, self._on_arrival)
        self.bus.on(NavigationError, self._on_error)

    @classmethod
    def from_files(cls, features_path: str, blocks_path: Optional[str] = None,
                   **kwargs) -> "Wayfinder":
        blocks = load_features(blocks_path) if blocks_path else None
        return cls(load_features(features_path), blocks=blocks, **kwargs)

    def _say(self, text: str):
        if not self.quiet:
            print(text)

    def resolve_location(self, value) -> Coordinates:
        """Coordinates from a (lon, lat) pair, a "LON,LAT" string or a block name"""
        if isinstance(value, (tuple, list)):
            return (float(value[0]), float(value[1]))
        try:
            return parse_coordinates(value)
        except ValueError:
            node_id = self.graph.find_node_by_block(value)
            if node_id is None:
                raise ValueError(f"Unknown location: {value}") from None
            return self.graph.get_node_location(node_id)

    def plan(self, start, end) -> Route:
        return self.planner.plan_between(self.resolve_location(start),
                                         self.resolve_location(end))

    def demo_endpoints(self, start=None, end=None) -> tuple[Coordinates, Coordinates]:
        """Fill in missing endpoints for a demo walk.

        The start defaults to the node nearest the middle of the grounds and
        the destination to the node farthest from the start.
        """
        if start is None:
            start = self.graph.get_node_location(self.graph.find_nearest_node(bbox_center(self.graph)))
        start = self.resolve_location(start)
        if end is None:
            end = self.graph.get_node_location(farthest_node(self.graph, start))
        end = self.resolve_location(end)
        self.logger.log("Demo endpoints", {"start": start, "end": end})
        return start, end

    # --- Route preview ---

    def direction_instruction(self, prev_node: str, node: str, next_node: str) -> str:
        """Relative turn at node when arriving from prev_node"""
        prev_loc = self.graph.get_node_location(prev_node)
        loc = self.graph.get_node_location(node)
        next_loc = self.graph.get_node_location(next_node)
        direction = relative_direction(bearing_between(prev_loc, loc),
                                       bearing_between(loc, next_loc))
        if direction == "straight":
            return "Continue straight"
        if direction == "u-turn":
            return "Make a u-turn"
        return f"Turn {direction}"

    def turn_by_turn(self, route: Route) -> list[dict]:
        """Instructions at the start and at every junction along a route"""
        steps = []
        ids = route.node_ids
        cumulative = 0.0

        for i in range(len(ids) - 1):
            current_node = ids[i]
            next_node = ids[i + 1]
            length = self.graph.edge_weight(current_node, next_node) or 0.0

            if i == 0:
                bearing = bearing_between(route.path[0].coordinates, route.path[1].coordinates)
                instruction = f"Head {bearing_to_compass(bearing)}"
            elif self.graph.is_intersection(current_node):
                instruction = self.direction_instruction(ids[i - 1], current_node, next_node)
            else:
                cumulative += length
                continue

            steps.append({
                "at": cumulative,
                "instruction": instruction,
                "toward": route.path[i + 1].label,
                "length": length,
            })
            cumulative += length

        if route.path:
            steps.append({"at": cumulative, "instruction": f"Arrive at {route.destination.label}",
                          "toward": None, "length": 0.0})
        return steps

    def preview(self, start, end) -> Route:
        """Print a preview of the route between two locations"""
        route = self.plan(start, end)

        print("\n" + "=" * 60)
        print("ROUTE PREVIEW")
        print("=" * 60)

        if not route.success:
            print(f"\nNo route found: {route.error or 'destination unreachable'}")
            return route

        print(f"\nTotal distance: {route.distance:.0f}m ({route.distance/1000:.2f}km)")
        print(f"Walking time: about {route.duration} min")
        print(f"Waypoints: {len(route.path)}")

        print("\n" + "-" * 60)
        print("TURN-BY-TURN DIRECTIONS")
        print("-" * 60)

        for step in self.turn_by_turn(route):
            print(f"\n{step['at']:>6.0f}m | {step['instruction']}")
            if step["toward"]:
                print(f"         -> {step['toward']} ({step['length']:.0f}m)")

        print("\n" + "=" * 60)
        return route

    def export_gpx(self, route: Route, path: str) -> dict:
        """Write a route as GPX 1.1 for use in phone navigation apps"""
        if not route.success:
            raise ValueError(f"Cannot export a failed route: {route.error or 'no path'}")
        ids = route.node_ids
        timestamp = datetime.now().isoformat()

        # Waypoints at start, junctions and end
        waypoints = []
        for i, waypoint in enumerate(route.path):
            if i == 0:
                name = "Start"
            elif i == len(ids) - 1:
                name = waypoint.label
            elif self.graph.is_intersection(ids[i]):
                name = self.direction_instruction(ids[i - 1], ids[i], ids[i + 1])
            else:
                continue
            lon, lat = waypoint.coordinates
            waypoints.append({"lat": lat, "lon": lon, "name": name})

        gpx_lines = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<gpx version="1.1" creator="Wayfinder"',
            '     xmlns="http://www.topografix.com/GPX/1/1"',
            '     xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance"',
            '     xsi:schemaLocation="http://www.topografix.com/GPX/1/1 http://www.topografix.com/GPX/1/1/gpx.xsd">',
            '  <metadata>',
            f'    <name>{escape(route.destination.label)} ({route.distance:.0f} m)</name>',
            f'    <time>{timestamp}</time>',
            '  </metadata>',
        ]

        for wp in waypoints:
            gpx_lines.append(f'  <wpt lat="{wp["lat"]:.6f}" lon="{wp["lon"]:.6f}">')
            gpx_lines.append(f'    <name>{escape(wp["name"])}</name>')
            gpx_lines.append('  </wpt>')

        gpx_lines.append('  <trk>')
        gpx_lines.append('    <name>Wayfinder Route</name>')
        gpx_lines.append('    <trkseg>')
        for waypoint in route.path:
            lon, lat = waypoint.coordinates
            gpx_lines.append(f'      <trkpt lat="{lat:.6f}" lon="{lon:.6f}"/>')
        gpx_lines.append('    </trkseg>')
        gpx_lines.append('  </trk>')
        gpx_lines.append('</gpx>')

        with open(path, "w") as f:
            f.write("\n".join(gpx_lines))

        self._say(f"\nGPX route saved to: {path}")
        self._say(f"  {len(waypoints)} waypoints, {len(route.path)} track points")
        return {"waypoints": len(waypoints), "trackpoints": len(route.path)}

    # --- Live navigation ---

    def simulated_feed(self, start, end, speed: float = 1.0) -> GPSPlayback:
        """Playback feed of a walker following the planned route at walking pace"""
        route = self.plan(start, end)
        step = self.options["simulation_step"]
        interval = step / self.options["walking_speed"]
        samples = simulate_walk(route, step=step, accuracy=self.options["simulation_accuracy"],
                                interval=interval)
        return GPSPlayback.from_samples(samples, interval=interval, speed=speed)

    def navigate(self, start, end, feed: Optional[GPSPlayback] = None,
                 record_path: Optional[str] = None,
                 session_log_path: Optional[str] = None,
                 sleep: Callable[[float], None] = time.sleep) -> dict:
        """Track a walk from start to end and return a summary of it.

        feed defaults to a simulated walk along the planned route.
        """
        start_coords = self.resolve_location(start)
        end_coords = self.resolve_location(end)
        if feed is None:
            feed = self.simulated_feed(start_coords, end_coords)

        tracker = NavigationTracker(bus=self.bus, options=self.options,
                                    logger=self.logger, clock=self.clock)
        recorder = GPSRecorder(feed, record_path, clock=self.clock) if record_path else None
        session_log = (SessionRecorder(self.bus, self.options, clock=self.clock)
                       if session_log_path else None)

        self._walk = {"waypoints": 0, "off_route": 0, "recalculations": 0, "errors": 0,
                      "distance": 0.0}
        walk_start = self.clock()

        self._say("\n=== Wayfinder ===")
        self._say(f"Playback mode: {feed.speed}x speed")
        self._say("Press Ctrl+C to stop\n")

        result = tracker.start(start_coords, end_coords, self.planner, feed=feed)
        try:
            if result.success:
                if session_log:
                    session_log.set_route(result.route)
                self._say(f"Route: {result.route.distance:.0f}m, about {result.route.duration} min, "
                          f"{len(result.route.path)} waypoints")
                feed.run(tracker, sleep=sleep)
                if feed.is_finished() and tracker.is_navigating:
                    # Fast playback can outrun the evaluation interval
                    tracker.tick()
                if feed.is_finished() and tracker.is_navigating:
                    print("\nPlayback finished")
                    self.logger.log("Playback finished")
            else:
                print(f"Could not start navigation: {result.error}")
        except KeyboardInterrupt:
            print("\nWalk interrupted")
            self.logger.log("Walk interrupted by user")
        finally:
            tracker.stop()
            if recorder:
                recorder.close()
                recorder.save()
            if session_log:
                session_log.detach()
                session_log.save(session_log_path)

        summary = {
            "outcome": tracker.state.value,
            "distance": self._walk["distance"],
            "waypoints": self._walk["waypoints"],
            "off_route": self._walk["off_route"],
            "recalculations": self._walk["recalculations"],
            "errors": self._walk["errors"],
            "duration": self.clock() - walk_start,
        }
        self.logger.log("Walk summary", summary)

        print("\nWalk summary:")
        print(f"  Outcome: {summary['outcome']}")
        print(f"  Distance: {summary['distance']:.0f}m")
        print(f"  Waypoints: {summary['waypoints']}")
        print(f"  Recalculations: {summary['recalculations']}")
        print(f"  Duration: {summary['duration']/60:.1f} minutes")
        return summary

    def _on_update(self, event: NavigationUpdate):
        self._walk["distance"] = event.total_distance_traveled

    def _on_waypoint(self, event: WaypointReached):
        self._walk["waypoints"] += 1
        self._say(f"Reached {event.waypoint.label} "
                  f"({event.waypoint_index + 1}/{event.total_waypoints})")

    def _on_off_route(self, event: OffRoute):
        self._walk["off_route"] += 1
        self._say(f"Off route by {event.distance_from_route:.0f}m, recalculating...")

    def _on_recalculated(self, event: RouteRecalculated):
        self._walk["recalculations"] += 1
        self._say(f"New route: {event.route.distance:.0f}m")

    def _on_arrival(self, event: DestinationReached):
        self._walk["distance"] = event.total_distance_traveled
        self._say(f"Arrived at {event.destination.label}")

    def _on_error(self, event: NavigationError):
        self._walk["errors"] += 1
        self._say(f"Warning: {event.message}")

    # --- Diagnostics ---

    def check_routes(self, start, targets: list[dict]) -> dict:
        """Plan and validate routes from start to each target, printing a table"""
        report = run_route_checks(self.planner, self.resolve_location(start), targets)
        for r in report["results"]:
            status = "PASS" if r["success"] else "FAIL"
            print(f"{status}  {r['name']:<30} {r['distance']:>8.1f}m  "
                  f"{r['path_length']:>3} nodes  {r['calculation_ms']:.2f}ms")
            for issue in r["issues"]:
                print(f"      {issue}")
        s = report["summary"]
        print(f"\n{s['passed']}/{s['total']} passed, "
              f"average {s['average_distance']:.0f}m, {s['average_ms']:.2f}ms per route")
        self.logger.log("Route checks", s)
        return report

    def report(self) -> dict:
        report = graph_report(self.graph)
        print(f"Nodes: {report['nodes']}  Edges: {report['edges']}")
        for node_type, count in sorted(report["node_types"].items()):
            print(f"  {node_type}: {count}")
        print(f"Components: {report['components']}")
        return report

    def close(self):
        self.logger.close()
