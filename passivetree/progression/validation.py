"""
Tree structure validation.

Checks a loaded tree for authoring mistakes that do not stop it from
loading but make parts of it unusable: nodes with no edges, edges or
requirements pointing at missing nodes, prerequisite cycles, and nodes
that cannot be reached from the start node.
"""

from __future__ import annotations

from collections import Counter, deque
from dataclasses import dataclass, field

from passivetree.progression.graph import NodeGraph
from passivetree.progression.nodes import NodeType


@dataclass
class TreeReport:
    """Result of validate_structure()."""
    total_nodes: int = 0
    orphaned: list[str] = field(default_factory=list)
    invalid_edges: list[tuple[str, str]] = field(default_factory=list)
    dangling_requirements: list[tuple[str, str]] = field(default_factory=list)
    cycles: list[list[str]] = field(default_factory=list)
    unreachable: list[str] = field(default_factory=list)
    keystones: list[str] = field(default_factory=list)
    type_distribution: dict[str, int] = field(default_factory=dict)

    @property
    def issues(self) -> list[str]:
        """Human-readable summary of every problem found."""
        found = []
        if self.orphaned:
            found.append(f"{len(self.orphaned)} orphaned nodes")
        if self.invalid_edges:
            found.append(f"{len(self.invalid_edges)} invalid edges")
        if self.dangling_requirements:
            found.append(f"{len(self.dangling_requirements)} requirements on missing nodes")
        if self.cycles:
            found.append(f"{len(self.cycles)} prerequisite cycles")
        if self.unreachable:
            found.append(f"{len(self.unreachable)} unreachable nodes")
        return found

    @property
    def is_valid(self) -> bool:
        return not self.issues


def validate_structure(graph: NodeGraph) -> TreeReport:
    """Inspect a tree and report structural problems."""
    start_id = graph.start_node_id
    report = TreeReport(total_nodes=len(graph))

    edge_nodes = set()
    for a, b in graph.edges:
        edge_nodes.update((a, b))
        if a not in graph or b not in graph:
            report.invalid_edges.append((a, b))

    report.orphaned = [
        n.id for n in graph
        if n.id != start_id and n.id not in edge_nodes
    ]

    for node in graph:
        for req_id in node.prerequisite_ids:
            if req_id not in graph:
                report.dangling_requirements.append((node.id, req_id))

    report.cycles = _find_cycles(graph)
    report.unreachable = _unreachable_from_start(graph)
    report.keystones = [n.id for n in graph.get_nodes_by_type(NodeType.KEYSTONE)]
    report.type_distribution = dict(Counter(n.type.value for n in graph))
    return report


def _unreachable_from_start(graph: NodeGraph) -> list[str]:
    """Breadth-first search over edges from the start node."""
    adjacency: dict[str, list[str]] = {}
    for a, b in graph.edges:
        adjacency.setdefault(a, []).append(b)
        adjacency.setdefault(b, []).append(a)

    visited = {graph.start_node_id}
    queue = deque([graph.start_node_id])
    while queue:
        current = queue.popleft()
        for neighbor in adjacency.get(current, []):
            if neighbor not in visited:
                visited.add(neighbor)
                queue.append(neighbor)

    return [n.id for n in graph if n.id not in visited]


def _find_cycles(graph: NodeGraph) -> list[list[str]]:
    """Depth-first search over node requirements; one entry per cycle found."""
    visiting: list[str] = []
    visited: set[str] = set()
    cycles: list[list[str]] = []

    def dfs(node_id: str) -> None:
        if node_id in visited or node_id not in graph:
            return
        if node_id in visiting:
            cycles.append(visiting[visiting.index(node_id):] + [node_id])
            return
        visiting.append(node_id)
        for req_id in graph.nodes[node_id].prerequisite_ids:
            dfs(req_id)
        visiting.pop()
        visited.add(node_id)

    for node in graph:
        dfs(node.id)
    return cycles
