"""Shortest walking routes over the footpath graph."""

import math
import time
from typing import Optional

from .config import CONFIG
from .frontier import Frontier
from .graph import PathGraph
from .logger import Logger, default_logger
from .models import Coordinates, Route, Waypoint

NODE_NOT_FOUND = "start or end node not found"


def estimate_walking_time(distance: float, speed: Optional[float] = None) -> Optional[int]:
    """Whole minutes needed to walk distance meters, None if it is not finite"""
    if not math.isfinite(distance):
        return None
    speed = speed or CONFIG["walking_speed"]
    return math.ceil(distance / speed / 60)


class RoutePlanner:
    """Dijkstra search with a per-(start, end) result cache.

    The cache is keyed by the ordered pair, so (B, A) is planned separately
    from (A, B). It is never invalidated here: callers that change the graph
    after planning must call clear_cache().
    """

    def __init__(self, graph: PathGraph, logger: Optional[Logger] = None):
        self.graph = graph
        self.logger = logger or default_logger
        self._cache: dict[tuple[str, str], Route] = {}
        self.cache_hits = 0
        self.cache_misses = 0

    def clear_cache(self):
        self._cache.clear()

    def is_cached(self, start_id: str, end_id: str) -> bool:
        return (start_id, end_id) in self._cache

    def plan(self, start_id: str, end_id: str) -> Route:
        """Shortest route between two node ids"""
        key = (start_id, end_id)
        cached = self._cache.get(key)
        if cached is not None:
            self.cache_hits += 1
            return cached

        if start_id not in self.graph or end_id not in self.graph:
            self.logger.log("Route planning failed", {"start": start_id, "end": end_id,
                                                      "error": NODE_NOT_FOUND})
            return Route.failure(NODE_NOT_FOUND)

        self.cache_misses += 1
        t0 = time.perf_counter()
        distance, previous = self._search(start_id, end_id)
        node_ids = self._reconstruct(previous, start_id, end_id)

        path = tuple(Waypoint.from_node(self.graph.nodes[n]) for n in node_ids)
        route = Route(
            success=math.isfinite(distance),
            distance=distance,
            duration=estimate_walking_time(distance),
            path=path,
        )
        self._cache[key] = route

        self.logger.log("Route calculated", {
            "start": start_id,
            "end": end_id,
            "nodes": len(path),
            "distance": distance,
            "success": route.success,
            "ms": round((time.perf_counter() - t0) * 1000, 3),
        })
        return route

    def plan_between(self, start_coords: Coordinates, end_coords: Coordinates) -> Route:
        """Route between the graph nodes nearest to two locations"""
        start_id = self.graph.find_nearest_node(start_coords)
        end_id = self.graph.find_nearest_node(end_coords)
        return self.plan(start_id, end_id)

    def _search(self, start_id: str, end_id: str) -> tuple[float, dict[str, str]]:
        """Run Dijkstra until end_id is finalized.

        Returns the distance to end_id (inf if unreachable) and the
        predecessor map.
        """
        dist: dict[str, float] = {start_id: 0.0}
        previous: dict[str, str] = {}
        finalized: set[str] = set()
        frontier = Frontier()
        frontier.push(start_id, 0.0)

        while frontier:
            current, current_dist = frontier.pop_min()
            finalized.add(current)

            # Nonnegative weights: a popped node's distance is final
            if current == end_id:
                break

            for neighbor, weight in self.graph.get_neighbors(current):
                if neighbor in finalized:
                    continue
                candidate = current_dist + weight
                if candidate < dist.get(neighbor, math.inf):
                    dist[neighbor] = candidate
                    previous[neighbor] = current
                    frontier.push(neighbor, candidate)

        return dist.get(end_id, math.inf), previous

    @staticmethod
    def _reconstruct(previous: dict[str, str], start_id: str, end_id: str) -> list[str]:
        path = [end_id]
        current = end_id
        while current != start_id and current in previous:
            current = previous[current]
            path.append(current)
        path.reverse()
        return path

    def get_route_distance(self, route: Route) -> float:
        """Sum of edge weights along a route's path, as stored in the graph"""
        total = 0.0
        ids = route.node_ids
        for a, b in zip(ids, ids[1:]):
            weight = self.graph.edge_weight(a, b)
            if weight is None:
                return math.inf
            total += weight
        return total
