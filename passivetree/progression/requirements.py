"""
Requirement evaluator - decides whether a node may be allocated.
"""

from __future__ import annotations

import logging
from typing import Optional

from passivetree.core.model import DataModel
from passivetree.progression.nodes import Node, Requirement, RequirementKind
from passivetree.progression.stat_vector import StatVector
from passivetree.progression.state import TreeState

logger = logging.getLogger(__name__)


class CharacterContext(DataModel):
    """
    Character facts supplied by the character system.

    Attributes:
        level: Current character level
        character_class: Class name (compared case-insensitively)
    """
    level: int = 1
    character_class: Optional[str] = None


class RequirementEvaluator:
    """
    Evaluates allocation preconditions.

    Attribute requirements read a StatVector that the caller computes
    once per allocation attempt; the evaluator never runs the stat
    pipeline itself.
    """

    def can_allocate(
        self,
        node: Node,
        state: TreeState,
        context: CharacterContext,
        stats: Optional[StatVector] = None,
    ) -> bool:
        """Check if a node can be allocated."""
        if state.is_allocated(node.id):
            return False
        if state.available_points <= 0:
            return False
        return self.requirements_met(node, state, context, stats)

    def requirements_met(
        self,
        node: Node,
        state: TreeState,
        context: CharacterContext,
        stats: Optional[StatVector] = None,
    ) -> bool:
        """Check every requirement of a node, ignoring budget."""
        for req in node.requirements:
            if not self._check(node, req, state, context, stats):
                return False
        return True

    def needs_stats(self, node: Node) -> bool:
        """True if evaluating the node reads the stat vector."""
        return any(r.known_kind == RequirementKind.ATTRIBUTE for r in node.requirements)

    def _check(
        self,
        node: Node,
        req: Requirement,
        state: TreeState,
        context: CharacterContext,
        stats: Optional[StatVector],
    ) -> bool:
        kind = req.known_kind

        if kind == RequirementKind.NODE:
            return str(req.value) in state.allocated

        if kind == RequirementKind.ATTRIBUTE:
            if stats is None:
                logger.debug(f"No stat vector for attribute requirement on '{node.id}'")
                return False
            if req.stat is None or req.stat not in StatVector.model_fields:
                logger.warning(f"Node '{node.id}' has attribute requirement on unknown stat {req.stat!r}")
                return False
            threshold = _as_number(req.value)
            if threshold is None:
                logger.warning(f"Node '{node.id}' has non-numeric attribute threshold {req.value!r}")
                return False
            return getattr(stats, req.stat) >= threshold

        if kind == RequirementKind.LEVEL:
            threshold = _as_number(req.value)
            if threshold is None:
                logger.warning(f"Node '{node.id}' has non-numeric level requirement {req.value!r}")
                return False
            return context.level >= threshold

        if kind == RequirementKind.CLASS:
            if context.character_class is None:
                return False
            return context.character_class.lower() == str(req.value).lower()

        logger.warning(f"Node '{node.id}' has unknown requirement kind '{req.kind}'; rejecting")
        return False


def _as_number(value) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
