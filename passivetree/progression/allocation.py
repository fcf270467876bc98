"""
Allocation/refund controller - the only writer of a TreeState.
"""

from __future__ import annotations

import logging
from typing import Optional

from passivetree.progression.graph import NodeGraph
from passivetree.progression.requirements import CharacterContext, RequirementEvaluator
from passivetree.progression.stat_vector import StatVector
from passivetree.progression.state import TreeState

logger = logging.getLogger(__name__)


class AllocationController:
    """
    Mutates a TreeState under budget and prerequisite invariants.

    Every rule violation is reported as False; nothing here raises for
    gameplay reasons. Each mutation either fully happens or leaves the
    state untouched.
    """

    def __init__(
        self,
        graph: NodeGraph,
        state: Optional[TreeState] = None,
        evaluator: Optional[RequirementEvaluator] = None,
    ):
        self.graph = graph
        self.state = state or TreeState.fresh(graph.starting_points, graph.start_node_id)
        self.evaluator = evaluator or RequirementEvaluator()

    def can_allocate(
        self,
        node_id: str,
        context: CharacterContext,
        stats: Optional[StatVector] = None,
    ) -> bool:
        """Check if a node can be allocated."""
        node = self.graph.get_node(node_id)
        if node is None:
            return False
        return self.evaluator.can_allocate(node, self.state, context, stats)

    def allocate(
        self,
        node_id: str,
        context: CharacterContext,
        stats: Optional[StatVector] = None,
    ) -> bool:
        """
        Allocate a node.

        Returns:
            True if the node was allocated
        """
        if not self.can_allocate(node_id, context, stats):
            return False

        node = self.graph.get_node(node_id)
        allocated = self.state.allocated | {node_id}
        keystones = set(self.state.active_keystones)
        if node.is_keystone:
            keystones.add(node_id)

        self._commit(
            allocated,
            self.state.available_points - 1,
            self.state.spent + 1,
            keystones,
        )
        logger.debug(f"Allocated '{node_id}' ({self.state.available_points} points left)")
        return True

    def can_refund(self, node_id: str) -> bool:
        """
        Check if a node can be refunded.

        A node is refundable only when no other allocated node names it
        in a node requirement. Edges play no part in this.
        """
        if node_id == self.graph.start_node_id:
            return False
        if not self.state.is_allocated(node_id):
            return False
        dependents = self.graph.get_dependents(node_id)
        return dependents.isdisjoint(self.state.allocated)

    def refund(self, node_id: str) -> bool:
        """
        Refund (deallocate) a node.

        Returns:
            True if the node was refunded
        """
        if not self.can_refund(node_id):
            return False

        self._commit(
            self.state.allocated - {node_id},
            self.state.available_points + 1,
            self.state.spent - 1,
            self.state.active_keystones - {node_id},
        )
        logger.debug(f"Refunded '{node_id}' ({self.state.available_points} points left)")
        return True

    def reset(self) -> int:
        """
        Refund every node except the start node.

        Returns:
            Number of points returned
        """
        returned = self.state.spent
        self._commit(
            {self.graph.start_node_id},
            self.state.available_points + returned,
            0,
            set(),
        )
        logger.debug(f"Tree reset, {returned} points returned")
        return returned

    def _commit(
        self,
        allocated: set[str],
        available_points: int,
        spent: int,
        active_keystones: set[str],
    ) -> None:
        """Swap in a fully built state so callers never see a half update."""
        self.state = TreeState(
            allocated=allocated,
            available_points=available_points,
            spent=spent,
            active_keystones=active_keystones,
        )
