"""
Passive tree loader.

Handles loading and validation of the static node/edge dataset.
"""

from __future__ import annotations

import json
import logging
from collections import Counter
from pathlib import Path
from typing import Any, Mapping, Optional, Union

import jsonschema
from pydantic import ValidationError

from passivetree.config import CalculatorConfig, DEFAULT_CONFIG
from passivetree.core.errors import DataError
from passivetree.progression.graph import NodeGraph, TreeMetadata
from passivetree.progression.nodes import (
    EffectOp,
    Node,
    RequirementKind,
    adapt_legacy_node,
)

SCHEMA_PATH = Path(__file__).parent / "schemas" / "skill_tree.schema.json"

Source = Union[Mapping[str, Any], str, Path]


class GraphLoader:
    """
    Builds a NodeGraph from a tree document.

    Validation happens in three passes: JSON schema (document shape),
    Pydantic (node fields), then graph rules (start node, unique ids,
    no node gated on an attribute it modifies itself).
    """

    def __init__(self, config: Optional[CalculatorConfig] = None):
        self.config = config or DEFAULT_CONFIG
        self._schema: Optional[dict[str, Any]] = None
        self.logger = logging.getLogger(__name__)

    def load(self, source: Source) -> NodeGraph:
        """
        Load and validate a tree.

        Args:
            source: Parsed document, JSON text, or path to a JSON file

        Returns:
            The read-only NodeGraph

        Raises:
            DataError: If the document is unreadable or invalid
        """
        document = self._read(source)
        self._validate_schema(document)

        raw_nodes = [adapt_legacy_node(n) for n in document.get('nodes', [])]
        self._check_unique_ids(raw_nodes)

        nodes = []
        for raw in raw_nodes:
            try:
                nodes.append(Node.model_validate(raw))
            except ValidationError as e:
                raise DataError(f"Invalid node '{raw.get('id')}': {e}") from e

        start_id = self.config.start_node_id
        if not any(n.id == start_id for n in nodes):
            raise DataError(f"Tree has no '{start_id}' node")

        self._check_attribute_cycles(nodes)
        self._warn_dangling_requirements(nodes)

        edges = [(str(a), str(b)) for a, b in document.get('edges', [])]
        meta = document.get('metadata') or {}
        metadata = TreeMetadata(
            version=str(meta.get('version', '')),
            total_nodes=int(meta.get('totalNodes', len(nodes))),
            last_updated=str(meta.get('lastUpdated', '')),
        )

        graph = NodeGraph(
            nodes,
            edges,
            metadata=metadata,
            start_node_id=start_id,
            points_stat=self.config.points_stat,
        )

        self.logger.info(
            f"Loaded passive tree: {len(graph)} nodes, {len(edges)} edges, "
            f"{graph.starting_points} starting points."
        )
        return graph

    def _read(self, source: Source) -> dict[str, Any]:
        """Turn a source into a parsed document."""
        if isinstance(source, Mapping):
            return dict(source)

        try:
            if isinstance(source, str) and source.lstrip().startswith('{'):
                data = json.loads(source)
            else:
                with open(Path(source), 'r', encoding='utf-8') as f:
                    data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise DataError(f"Failed to read passive tree from {source!r}: {e}") from e

        if not isinstance(data, dict):
            raise DataError("Passive tree document must be a JSON object")
        return data

    def _load_schema(self) -> dict[str, Any]:
        if self._schema is None:
            with open(SCHEMA_PATH, 'r', encoding='utf-8') as f:
                self._schema = json.load(f)
        return self._schema

    def _validate_schema(self, document: dict[str, Any]) -> None:
        try:
            jsonschema.validate(instance=document, schema=self._load_schema())
        except jsonschema.ValidationError as e:
            raise DataError(f"Schema validation error: {e.message}") from e

    def _check_unique_ids(self, raw_nodes: list[dict[str, Any]]) -> None:
        counts = Counter(n['id'] for n in raw_nodes)
        duplicates = sorted(nid for nid, count in counts.items() if count > 1)
        if duplicates:
            raise DataError(f"Duplicate node ids: {', '.join(duplicates)}")

    def _check_attribute_cycles(self, nodes: list[Node]) -> None:
        """Reject nodes gated on an attribute that they also modify."""
        for node in nodes:
            gated = {
                req.stat for req in node.requirements
                if req.known_kind == RequirementKind.ATTRIBUTE
            }
            affected = set()
            for effect in node.effects:
                affected.add(effect.stat)
                if effect.known_op == EffectOp.CONVERT and effect.target:
                    affected.add(effect.target)
            overlap = gated & affected
            if overlap:
                raise DataError(
                    f"Node '{node.id}' requires and modifies "
                    f"{', '.join(sorted(overlap))}"
                )

    def _warn_dangling_requirements(self, nodes: list[Node]) -> None:
        known = {n.id for n in nodes}
        for node in nodes:
            for req_id in node.prerequisite_ids:
                if req_id not in known:
                    self.logger.warning(
                        f"Node '{node.id}' requires unknown node '{req_id}'; "
                        f"it can never be allocated"
                    )


def load(source: Source, config: Optional[CalculatorConfig] = None) -> NodeGraph:
    """Load a passive tree with a default loader."""
    return GraphLoader(config).load(source)
