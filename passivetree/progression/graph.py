"""
Node graph store - the immutable passive tree dataset.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterator, Mapping, Optional

from passivetree.progression.nodes import Node, NodeType


@dataclass(frozen=True)
class TreeMetadata:
    """Optional document metadata."""
    version: str = ""
    total_nodes: int = 0
    last_updated: str = ""


class NodeGraph:
    """
    Read-only passive tree.

    Built once by the loader; nothing mutates it afterwards, so any
    number of sessions may share one instance.
    """

    def __init__(
        self,
        nodes: list[Node],
        edges: list[tuple[str, str]],
        metadata: Optional[TreeMetadata] = None,
        start_node_id: str = "start",
        points_stat: str = "points",
    ):
        self._nodes: Mapping[str, Node] = MappingProxyType({n.id: n for n in nodes})
        self._edges: tuple[tuple[str, str], ...] = tuple(edges)
        self.metadata = metadata or TreeMetadata()
        self.start_node_id = start_node_id

        # Reverse index of node requirements: prerequisite -> dependents
        dependents: dict[str, set[str]] = {}
        for node in nodes:
            for req_id in node.prerequisite_ids:
                dependents.setdefault(req_id, set()).add(node.id)
        self._dependents = {k: frozenset(v) for k, v in dependents.items()}

        start = self._nodes.get(start_node_id)
        self.starting_points = int(start.granted(points_stat)) if start else 0

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[Node]:
        return iter(self._nodes.values())

    @property
    def nodes(self) -> Mapping[str, Node]:
        return self._nodes

    @property
    def edges(self) -> tuple[tuple[str, str], ...]:
        return self._edges

    @property
    def start_node(self) -> Node:
        return self._nodes[self.start_node_id]

    def get_node(self, node_id: str) -> Optional[Node]:
        """Get a node by id."""
        return self._nodes.get(node_id)

    def get_dependents(self, node_id: str) -> frozenset[str]:
        """Ids of nodes that name node_id in a node requirement."""
        return self._dependents.get(node_id, frozenset())

    def get_nodes_by_type(self, node_type: NodeType) -> list[Node]:
        """Get all nodes of a type, in load order."""
        return [n for n in self._nodes.values() if n.type == node_type]

    def neighbors(self, node_id: str) -> set[str]:
        """Ids joined to node_id by an edge (layout relation only)."""
        result = set()
        for a, b in self._edges:
            if a == node_id:
                result.add(b)
            elif b == node_id:
                result.add(a)
        return result

    def keystone_ids(self, node_ids) -> list[str]:
        """Filter node_ids down to keystones present in the graph."""
        result = []
        for nid in node_ids:
            node = self._nodes.get(nid)
            if node and node.is_keystone:
                result.append(nid)
        return result
