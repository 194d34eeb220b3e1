"""Footpath graph representation."""

from collections import deque
from typing import Callable, Iterable, Optional

import networkx as nx

from .config import CONFIG
from .errors import GraphNotBuiltError
from .geo import haversine_distance
from .logger import Logger, default_logger
from .models import Coordinates, Node

PATHWAY_POINT = "pathway_point"
BLOCK_ACCESS = "block_access"


def _is_linear(coordinates) -> bool:
    return bool(coordinates) and isinstance(coordinates[0], (list, tuple))


def _as_coords(raw) -> Coordinates:
    return (float(raw[0]), float(raw[1]))


class PathGraph:
    """Graph of walkable footpaths.

    Nodes live in an insertion-ordered dict so nearest-node and tag lookups
    resolve ties to the first node added. Edges are stored in an undirected
    networkx graph whose "weight" attribute is the haversine length in meters.
    """

    def __init__(self, logger: Optional[Logger] = None):
        self.graph = nx.Graph()
        self.nodes: dict[str, Node] = {}
        self.logger = logger or default_logger

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, node_id) -> bool:
        return node_id in self.nodes

    def _require_nodes(self):
        if not self.nodes:
            raise GraphNotBuiltError("graph has no nodes; build it before querying")

    def add_node(self, node_id: str, coordinates: Coordinates, node_type: str,
                 name: str, properties: Optional[dict] = None) -> Node:
        """Insert or overwrite a node. Existing edges keep their endpoints."""
        node = Node(id=node_id, coordinates=_as_coords(coordinates), type=node_type,
                    name=name, properties=dict(properties or {}))
        replaced = node_id in self.nodes
        self.nodes[node_id] = node
        self.graph.add_node(node_id)
        if replaced:
            # Coordinates may have moved; keep weights equal to the geodesic length
            for neighbor in self.graph.neighbors(node_id):
                self.graph[node_id][neighbor]["weight"] = haversine_distance(
                    node.coordinates, self.nodes[neighbor].coordinates
                )
        return node

    def add_edge(self, node_a: str, node_b: str) -> bool:
        """Connect two nodes in both directions. Returns True if an edge was added."""
        if node_a not in self.nodes or node_b not in self.nodes:
            self.logger.log("Skipping edge to unknown node", {"from": node_a, "to": node_b})
            return False
        if node_a == node_b:
            self.logger.log("Skipping self-loop", {"node": node_a})
            return False
        if self.graph.has_edge(node_a, node_b):
            return False

        weight = haversine_distance(self.nodes[node_a].coordinates,
                                    self.nodes[node_b].coordinates)
        self.graph.add_edge(node_a, node_b, weight=weight)
        return True

    def build_from_features(self, features: Iterable[dict]):
        """Build the graph from point and linear features.

        Connections are wired in a second pass because a node's connects_to
        may name a pathway point that is only created later in the list.
        """
        features = list(features)
        linear: list[tuple[dict, list[str]]] = []

        # First pass: point nodes, pathway vertices and the edges along each path
        for feature in features:
            feature_id = feature.get("id")
            coords = feature.get("coordinates")
            if feature_id is None or not coords:
                self.logger.log("Skipping malformed feature", {"id": feature_id})
                continue

            if _is_linear(coords):
                linear.append((feature, self._add_pathway(feature)))
            else:
                properties = {k: v for k, v in feature.items() if k != "coordinates"}
                self.add_node(str(feature_id), coords, feature.get("type", "unknown"),
                              feature.get("name", str(feature_id)), properties)

        # Second pass: explicit connections
        for node_id, node in list(self.nodes.items()):
            for connected_id in node.connects_to:
                self.add_edge(node_id, str(connected_id))

        for feature, vertex_ids in linear:
            for connected_id in feature.get("connects_to") or []:
                self.add_edge(vertex_ids[0], str(connected_id))
                self.add_edge(vertex_ids[-1], str(connected_id))

        self.logger.log("Built graph", {"nodes": len(self.nodes), "edges": self.total_edge_count()})

    def _add_pathway(self, feature: dict) -> list[str]:
        """Create one node per vertex of a linear feature and chain them"""
        pathway_id = str(feature["id"])
        pathway_name = feature.get("name", pathway_id)
        vertex_ids = []
        for i, coords in enumerate(feature["coordinates"]):
            node_id = f"{pathway_id}_point_{i}"
            self.add_node(node_id, coords, PATHWAY_POINT, f"{pathway_name} Point {i}",
                          {"pathway_id": pathway_id})
            if vertex_ids:
                self.add_edge(vertex_ids[-1], node_id)
            vertex_ids.append(node_id)
        return vertex_ids

    def add_block_access_point(self, node_id: str, data: dict) -> Node:
        """Append a block access node after the graph has been built"""
        node = self.add_node(node_id, data["coordinates"], data.get("type", BLOCK_ACCESS),
                             data.get("name", node_id),
                             {k: v for k, v in data.items() if k != "coordinates"})
        for connected_id in node.connects_to:
            self.add_edge(node_id, str(connected_id))
        self.logger.log("Added block access point",
                        {"node": node_id, "block": data.get("serves_block")})
        return node

    def nearest_hub(self, coords: Coordinates, hubs: Optional[list[str]] = None) -> str:
        """Closest existing hub node; falls back to the configured default hub"""
        nearest = CONFIG["default_hub"]
        min_dist = float("inf")
        for hub_id in hubs if hubs is not None else CONFIG["hub_ids"]:
            hub = self.nodes.get(hub_id)
            if not hub:
                continue
            dist = haversine_distance(coords, hub.coordinates)
            if dist < min_dist:
                min_dist = dist
                nearest = hub_id
        return nearest

    def integrate_blocks(self, blocks: Iterable[dict], hubs: Optional[list[str]] = None) -> list[str]:
        """Add access points for blocks that have none yet.

        Each block is {"name", "label", "coordinates"}. Returns the new node ids.
        """
        added = []
        for block in blocks:
            name = block["name"]
            label = block.get("label", name)
            if self.find_node_by_block(name):
                continue
            coords = _as_coords(block["coordinates"])
            node_id = f"block_{label}_access_auto"
            self.add_block_access_point(node_id, {
                "name": f"{name} Access",
                "type": BLOCK_ACCESS,
                "coordinates": coords,
                "serves_block": name,
                "block_id": label,
                "connects_to": [self.nearest_hub(coords, hubs)],
            })
            added.append(node_id)
        if added:
            self.logger.log("Integrated blocks", {"added": len(added)})
        return added

    def find_nearest_node(self, coords: Coordinates) -> str:
        """Find the nearest graph node to a location"""
        self._require_nodes()

        min_dist = float("inf")
        nearest = None

        for node_id, node in self.nodes.items():
            dist = haversine_distance(coords, node.coordinates)
            if dist < min_dist:
                min_dist = dist
                nearest = node_id

        return nearest

    def find_node_by_tag(self, predicate: Callable[[Node], bool]) -> Optional[str]:
        """First node (in insertion order) for which predicate holds"""
        self._require_nodes()
        for node_id, node in self.nodes.items():
            if predicate(node):
                return node_id
        return None

    def find_node_by_block(self, block: str) -> Optional[str]:
        """Find the node serving a cemetery block, by tag or by name"""
        def serves(node: Node) -> bool:
            props = node.properties
            return (props.get("serves_block") == block or
                    props.get("block_id") == block or
                    (bool(node.name) and block in node.name))
        return self.find_node_by_tag(serves)

    def get_node(self, node_id: str) -> Optional[Node]:
        return self.nodes.get(node_id)

    def get_node_location(self, node_id: str) -> Optional[Coordinates]:
        """Get (lon, lat) of a node"""
        node = self.nodes.get(node_id)
        return node.coordinates if node else None

    def get_neighbors(self, node_id: str) -> list[tuple[str, float]]:
        """Neighbors of a node with edge weights, in insertion order"""
        if node_id not in self.graph:
            return []
        return [(n, d["weight"]) for n, d in self.graph[node_id].items()]

    def has_edge(self, node_a: str, node_b: str) -> bool:
        return self.graph.has_edge(node_a, node_b)

    def edge_weight(self, node_a: str, node_b: str) -> Optional[float]:
        if not self.graph.has_edge(node_a, node_b):
            return None
        return self.graph[node_a][node_b]["weight"]

    def is_intersection(self, node_id: str) -> bool:
        """Check if a node is a junction of paths (degree > 2)"""
        return node_id in self.graph and self.graph.degree(node_id) > 2

    def total_edge_count(self) -> int:
        """Number of undirected edges (each is stored in both adjacency lists)"""
        return sum(len(neighbors) for _, neighbors in self.graph.adjacency()) // 2

    def reachable_from(self, node_id: str) -> set[str]:
        """Breadth-first set of nodes connected to node_id"""
        self._require_nodes()
        if node_id not in self.nodes:
            return set()

        reachable = {node_id}
        queue = deque([node_id])
        while queue:
            current = queue.popleft()
            for neighbor in self.graph.neighbors(current):
                if neighbor not in reachable:
                    reachable.add(neighbor)
                    queue.append(neighbor)
        return reachable
