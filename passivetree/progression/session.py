"""
Skill tree session - the API the UI and combat loop talk to.

One session per character. Sessions never share mutable state; only the
read-only NodeGraph and the keystone registry are shared.

Usage:
    graph = load("data/skill_tree.json")
    session = SkillTreeSession(graph)
    session.set_character_context(level=12, character_class="warrior")

    if session.allocate_node("str_1"):
        stats = session.calculate(character_stats, equipment_bonuses)
"""

from __future__ import annotations

import hashlib
import json
import logging
from typing import Any, Mapping, Optional, Union

from passivetree.core.events import EventBus, TreeEvent
from passivetree.progression.allocation import AllocationController
from passivetree.progression.graph import NodeGraph
from passivetree.progression.requirements import CharacterContext
from passivetree.progression.stat_vector import StatVector
from passivetree.progression.state import TreeState
from passivetree.progression.stats import StatCalculator
from passivetree.save.persistence import TreeSaveData, capture_tree_state, restore_tree_state

logger = logging.getLogger(__name__)

# User-facing allocation failure messages
UNKNOWN_NODE = "Unknown node"
ALREADY_ALLOCATED = "Already allocated"
NO_POINTS = "No points available"
REQUIREMENTS_NOT_MET = "Requirements not met"


class SkillTreeSession:
    """
    Passive tree of a single character.

    Owns the character's TreeState (through its AllocationController),
    character context, and the base/equipment inputs last supplied by
    the character and equipment systems.
    """

    def __init__(
        self,
        graph: NodeGraph,
        state: Optional[TreeState] = None,
        context: Optional[CharacterContext] = None,
        calculator: Optional[StatCalculator] = None,
        event_bus: Optional[EventBus] = None,
    ):
        self.graph = graph
        self.calculator = calculator or StatCalculator()
        self.event_bus = event_bus
        self.context = context or CharacterContext()
        self._controller = AllocationController(graph, state)

        # Inputs supplied by the character and equipment systems
        self._base_stats: Optional[Mapping[str, Any]] = None
        self._equipment_bonuses: Optional[Mapping[str, Any]] = None

        # Last calculation, keyed by digest of its inputs
        self._cache_key: Optional[str] = None
        self._cached_stats: Optional[StatVector] = None

    # State access

    @property
    def state(self) -> TreeState:
        return self._controller.state

    @property
    def available_points(self) -> int:
        return self.state.available_points

    @property
    def spent_points(self) -> int:
        return self.state.spent

    def get_allocated_nodes(self) -> list[str]:
        """Allocated ids in graph order."""
        return [n.id for n in self.graph if n.id in self.state.allocated]

    def get_active_keystones(self) -> list[str]:
        """Active keystones in the order their effects are applied."""
        active = self.state.active_keystones
        registry = self.calculator.registry
        ordered = [kid for kid in registry if kid in active]
        return ordered + sorted(active - set(ordered))

    # Character inputs

    def set_character_context(self, level: int, character_class: Optional[str] = None) -> None:
        """Update level and class used by level/class requirements."""
        self.context = CharacterContext(level=level, character_class=character_class)
        self._publish(TreeEvent.CONTEXT_CHANGED, level=level, character_class=character_class)

    def set_base_stats(self, base_stats: Optional[Mapping[str, Any]]) -> None:
        """Set the character stats used when calculate() gets none."""
        self._base_stats = base_stats

    def set_equipment_bonuses(self, equipment_bonuses: Optional[Mapping[str, Any]]) -> None:
        """Set the equipment bonuses used when calculate() gets none."""
        self._equipment_bonuses = equipment_bonuses

    # Allocation

    def can_allocate_node(self, node_id: str) -> bool:
        """Check if a node can be allocated right now."""
        return self.allocation_failure_reason(node_id) is None

    def allocation_failure_reason(self, node_id: str) -> Optional[str]:
        """
        Explain why a node cannot be allocated.

        Returns:
            None if the node can be allocated, else a message for the UI
        """
        node = self.graph.get_node(node_id)
        if node is None:
            return UNKNOWN_NODE
        if self.state.is_allocated(node_id):
            return ALREADY_ALLOCATED
        if self.state.available_points <= 0:
            return NO_POINTS
        if not self._controller.can_allocate(node_id, self.context, self._stats_for(node_id)):
            return REQUIREMENTS_NOT_MET
        return None

    def allocate_node(self, node_id: str) -> bool:
        """Allocate a node. Returns True if successful."""
        if not self._controller.allocate(node_id, self.context, self._stats_for(node_id)):
            return False
        self._publish(TreeEvent.NODE_ALLOCATED, node_id=node_id, points=self.available_points)
        return True

    def can_refund_node(self, node_id: str) -> bool:
        """Check if a node can be refunded."""
        return self._controller.can_refund(node_id)

    def refund_node(self, node_id: str) -> bool:
        """Refund a node. Returns True if successful."""
        if not self._controller.refund(node_id):
            return False
        self._publish(TreeEvent.NODE_REFUNDED, node_id=node_id, points=self.available_points)
        return True

    def reset_tree(self) -> None:
        """Refund every node except the start node."""
        returned = self._controller.reset()
        self._publish(TreeEvent.TREE_RESET, returned=returned, points=self.available_points)

    # Stats

    def calculate(
        self,
        base_stats: Optional[Mapping[str, Any]] = None,
        equipment_bonuses: Optional[Mapping[str, Any]] = None,
    ) -> StatVector:
        """
        Calculate the character's stats from the current allocation.

        Args:
            base_stats: Character stats (defaults to the last set_base_stats)
            equipment_bonuses: Equipment bonuses (defaults to the last set_equipment_bonuses)
        """
        if base_stats is None:
            base_stats = self._base_stats
        if equipment_bonuses is None:
            equipment_bonuses = self._equipment_bonuses
        return self._calculate_for(self.state.allocated, base_stats, equipment_bonuses)

    def preview_allocation(
        self,
        node_id: str,
        base_stats: Optional[Mapping[str, Any]] = None,
        equipment_bonuses: Optional[Mapping[str, Any]] = None,
    ) -> dict[str, float]:
        """
        Stat changes that allocating a node would cause.

        Returns:
            {stat: delta} for every stat that would change; empty if the
            node is unknown or already allocated
        """
        if node_id not in self.graph or self.state.is_allocated(node_id):
            return {}
        if base_stats is None:
            base_stats = self._base_stats
        if equipment_bonuses is None:
            equipment_bonuses = self._equipment_bonuses

        current = self._calculate_for(self.state.allocated, base_stats, equipment_bonuses)
        hypothetical = self.calculator.calculate(
            base_stats,
            equipment_bonuses,
            self.state.allocated | {node_id},
            self.graph,
        )
        return current.diff(hypothetical)

    def _stats_for(self, node_id: str) -> Optional[StatVector]:
        """Stat vector for requirement checks, computed only when needed."""
        node = self.graph.get_node(node_id)
        if node is None or not self._controller.evaluator.needs_stats(node):
            return None
        return self._calculate_for(self.state.allocated, self._base_stats, self._equipment_bonuses)

    def _calculate_for(
        self,
        allocated: set[str],
        base_stats: Optional[Mapping[str, Any]],
        equipment_bonuses: Optional[Mapping[str, Any]],
    ) -> StatVector:
        key = _inputs_digest(allocated, base_stats, equipment_bonuses)
        if key != self._cache_key or self._cached_stats is None:
            self._cached_stats = self.calculator.calculate(
                base_stats, equipment_bonuses, allocated, self.graph
            )
            self._cache_key = key
        # Callers may edit what they get back; the cached vector stays private
        return self._cached_stats.model_copy()

    # Persistence

    def to_save_data(self) -> TreeSaveData:
        """Snapshot the tree for a save file."""
        return capture_tree_state(self.state, self.graph.start_node_id)

    def load_save_data(self, data: Union[TreeSaveData, Mapping[str, Any]]) -> None:
        """Replace this session's tree with saved data."""
        self._controller.state = restore_tree_state(data, self.graph)
        self._publish(
            TreeEvent.STATE_RESTORED,
            allocated=len(self.state.allocated),
            points=self.available_points,
        )

    @classmethod
    def from_save_data(
        cls,
        graph: NodeGraph,
        data: Union[TreeSaveData, Mapping[str, Any]],
        **kwargs: Any,
    ) -> SkillTreeSession:
        """Create a session from saved data."""
        return cls(graph, state=restore_tree_state(data, graph), **kwargs)

    def _publish(self, event_type: TreeEvent, **data: Any) -> None:
        if self.event_bus:
            self.event_bus.publish(event_type, **data)


def _inputs_digest(
    allocated: set[str],
    base_stats: Optional[Mapping[str, Any]],
    equipment_bonuses: Optional[Mapping[str, Any]],
) -> str:
    """Digest of calculation inputs, used as the cache key."""
    if hasattr(base_stats, 'model_dump'):
        base_stats = base_stats.model_dump()
    payload = {
        'allocated': sorted(allocated),
        'base': dict(base_stats) if base_stats else {},
        'equipment': dict(equipment_bonuses) if equipment_bonuses else {},
    }
    json_str = json.dumps(payload, sort_keys=True, default=str)
    return hashlib.sha256(json_str.encode('utf-8')).hexdigest()
