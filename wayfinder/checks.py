"""Offline route checks and graph diagnostics."""

import math
import time
from collections import Counter

from .geo import haversine_distance
from .graph import PathGraph
from .models import Coordinates, Route
from .planner import RoutePlanner


def validate_path(graph: PathGraph, route: Route) -> list[str]:
    """Problems found in a planned route, empty when it is consistent with the graph"""
    issues = []
    ids = route.node_ids
    total = 0.0
    for a, b in zip(ids, ids[1:]):
        weight = graph.edge_weight(a, b)
        if weight is None:
            issues.append(f"no edge between {a} and {b}")
            continue
        total += weight
    if not issues and not math.isclose(total, route.distance, rel_tol=1e-9, abs_tol=1e-6):
        issues.append(f"path length {total:.3f}m differs from reported {route.distance:.3f}m")
    if len(set(ids)) != len(ids):
        issues.append("path visits a node twice")
    return issues


def run_route_checks(planner: RoutePlanner, start_coords: Coordinates,
                     targets: list[dict]) -> dict:
    """Plan from start_coords to every target and validate each route.

    Targets are {"name", "coordinates"} with an optional "expected" node id
    that the destination must resolve to.
    """
    graph = planner.graph
    start_id = graph.find_nearest_node(start_coords)
    results = []

    for target in targets:
        end_id = graph.find_nearest_node(tuple(target["coordinates"]))
        t0 = time.perf_counter()
        route = planner.plan(start_id, end_id)
        elapsed_ms = (time.perf_counter() - t0) * 1000

        issues = validate_path(graph, route) if route.success else ["no route found"]
        expected = target.get("expected")
        if expected and expected != end_id:
            issues.append(f"destination resolved to {end_id}, expected {expected}")

        results.append({
            "name": target["name"],
            "start_node": start_id,
            "end_node": end_id,
            "success": route.success and not issues,
            "distance": route.distance,
            "duration": route.duration,
            "path_length": len(route.path),
            "calculation_ms": elapsed_ms,
            "route": [w.label for w in route.path],
            "issues": issues,
        })

    passed = [r for r in results if r["success"]]
    return {
        "results": results,
        "summary": {
            "total": len(results),
            "passed": len(passed),
            "failed": len(results) - len(passed),
            "average_distance": sum(r["distance"] for r in passed) / len(passed) if passed else 0,
            "average_ms": sum(r["calculation_ms"] for r in results) / len(results) if results else 0,
        },
    }


def graph_report(graph: PathGraph) -> dict:
    """Node and edge counts, node types and connected component sizes"""
    components = []
    seen: set[str] = set()
    for node_id in graph.nodes:
        if node_id in seen:
            continue
        component = graph.reachable_from(node_id)
        seen |= component
        components.append(len(component))
    components.sort(reverse=True)

    edge_lengths = [d["weight"] for _, _, d in graph.graph.edges(data=True)]
    return {
        "nodes": len(graph.nodes),
        "edges": graph.total_edge_count(),
        "node_types": dict(Counter(n.type for n in graph.nodes.values())),
        "components": components,
        "isolated_nodes": sum(1 for size in components if size == 1),
        "total_path_length": sum(edge_lengths),
        "longest_edge": max(edge_lengths) if edge_lengths else 0,
    }


def bbox_center(graph: PathGraph) -> Coordinates:
    lons = [n.coordinates[0] for n in graph.nodes.values()]
    lats = [n.coordinates[1] for n in graph.nodes.values()]
    return ((min(lons) + max(lons)) / 2, (min(lats) + max(lats)) / 2)


def farthest_node(graph: PathGraph, coords: Coordinates) -> str:
    """Node farthest from coords; the first one wins a tie"""
    return max(graph.nodes, key=lambda n: haversine_distance(coords, graph.nodes[n].coordinates))
