import itertools
import math
import random

import networkx as nx
import pytest

from wayfinder.graph import PathGraph
from wayfinder.planner import NODE_NOT_FOUND, RoutePlanner, estimate_walking_time

from conftest import LINE_IDS, SEGMENT, SPACING


@pytest.fixture
def planner(line_graph, quiet_logger):
    return RoutePlanner(line_graph, logger=quiet_logger)


def _grid_features(size: int, keep: float, seed: int) -> list[dict]:
    rng = random.Random(seed)
    features = []
    for i, j in itertools.product(range(size), range(size)):
        links = []
        if i + 1 < size and rng.random() < keep:
            links.append(f"n{i + 1}_{j}")
        if j + 1 < size and rng.random() < keep:
            links.append(f"n{i}_{j + 1}")
        features.append({
            "id": f"n{i}_{j}",
            "coordinates": [i * 0.0003 + rng.uniform(-0.0001, 0.0001),
                            j * 0.0003 + rng.uniform(-0.0001, 0.0001)],
            "connects_to": links,
        })
    return features


def test_line_route(planner):
    route = planner.plan("A", "E")
    assert route.success
    assert route.node_ids == LINE_IDS
    assert route.distance == pytest.approx(4 * SEGMENT)
    assert route.duration == math.ceil(route.distance / 1.4 / 60)
    assert route.path[2].coordinates == (2 * SPACING, 0.0)
    assert route.path[2].name == "C"


def test_reverse_route_mirrors_forward(planner):
    forward = planner.plan("A", "E")
    backward = planner.plan("E", "A")
    assert backward.node_ids == list(reversed(forward.node_ids))
    assert backward.distance == pytest.approx(forward.distance)
    assert backward is not forward


def test_route_to_self(planner):
    route = planner.plan("C", "C")
    assert route.success
    assert route.node_ids == ["C"]
    assert route.distance == 0.0
    assert route.duration == 0


def test_unknown_ids_fail_without_caching(planner):
    route = planner.plan("A", "Z")
    assert not route.success
    assert route.error == NODE_NOT_FOUND
    assert route.path == ()
    assert math.isinf(route.distance)
    assert not planner.is_cached("A", "Z")


def test_unreachable_end(line_graph, quiet_logger):
    line_graph.add_node("island", (1.0, 1.0), "junction", "Island")
    planner = RoutePlanner(line_graph, logger=quiet_logger)
    route = planner.plan("A", "island")
    assert not route.success
    assert math.isinf(route.distance)
    assert route.duration is None
    assert route.node_ids == ["island"]
    assert planner.is_cached("A", "island")


def test_cache_returns_same_route_object(planner):
    first = planner.plan("A", "D")
    second = planner.plan("A", "D")
    assert first is second
    assert planner.cache_hits == 1
    assert planner.cache_misses == 1

    planner.clear_cache()
    third = planner.plan("A", "D")
    assert third is not first
    assert third == first
    assert planner.cache_misses == 2


def test_prefers_shorter_branch(quiet_logger):
    graph = PathGraph(logger=quiet_logger)
    graph.build_from_features([
        {"id": "start", "coordinates": [0.0, 0.0], "connects_to": ["high", "low"]},
        {"id": "high", "coordinates": [0.0005, 0.0010], "connects_to": ["end"]},
        {"id": "low", "coordinates": [0.0005, 0.0001], "connects_to": ["end"]},
        {"id": "end", "coordinates": [0.0010, 0.0]},
    ])
    route = RoutePlanner(graph, logger=quiet_logger).plan("start", "end")
    assert route.node_ids == ["start", "low", "end"]


@pytest.mark.parametrize("seed", [1, 7, 23])
def test_matches_networkx_on_random_grids(seed, quiet_logger):
    graph = PathGraph(logger=quiet_logger)
    graph.build_from_features(_grid_features(size=6, keep=0.7, seed=seed))
    planner = RoutePlanner(graph, logger=quiet_logger)

    for start, end in itertools.product(list(graph.nodes)[::5], list(graph.nodes)[::3]):
        route = planner.plan(start, end)
        try:
            expected = nx.dijkstra_path_length(graph.graph, start, end, weight="weight")
        except nx.NetworkXNoPath:
            assert not route.success
            continue
        assert route.success
        assert route.distance == pytest.approx(expected)
        assert route.node_ids[0] == start and route.node_ids[-1] == end
        assert planner.get_route_distance(route) == pytest.approx(route.distance)


def test_plan_between_uses_nearest_nodes(planner):
    route = planner.plan_between((-0.0001, 0.00002), (3.2 * SPACING, -0.00001))
    assert route.node_ids == ["A", "B", "C", "D"]


def test_get_route_distance_missing_edge(planner, line_graph):
    route = planner.plan("A", "C")
    line_graph.graph.remove_edge("B", "C")
    assert math.isinf(planner.get_route_distance(route))


@pytest.mark.parametrize("distance,minutes", [
    (0, 0),
    (80, 1),
    (90, 2),
    (1000, 12),
])
def test_estimate_walking_time(distance, minutes):
    assert estimate_walking_time(distance) == minutes


def test_estimate_walking_time_unreachable():
    assert estimate_walking_time(math.inf) is None


def test_no_simple_path_is_shorter(quiet_logger):
    graph = PathGraph(logger=quiet_logger)
    graph.build_from_features(_grid_features(size=3, keep=0.9, seed=5))
    planner = RoutePlanner(graph, logger=quiet_logger)

    for start, end in itertools.permutations(graph.nodes, 2):
        route = planner.plan(start, end)
        lengths = [
            sum(graph.edge_weight(a, b) for a, b in zip(path, path[1:]))
            for path in nx.all_simple_paths(graph.graph, start, end)
        ]
        if not lengths:
            assert not route.success
            continue
        assert route.distance == pytest.approx(min(lengths))
