"""
Tree persistence - converts TreeState to and from save data.

Saved shape:
    {"allocatedNodes": [...], "availablePoints": 22, "activeKeystones": [...]}

Loading never trusts the saved keystone list and never fails on a save
that predates a field; missing fields get defaults and the allocation
set is repaired so it is closed under prerequisites again.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Union

from pydantic import ConfigDict, Field, ValidationError

from passivetree.core.errors import DataError
from passivetree.core.model import DataModel
from passivetree.progression.graph import NodeGraph
from passivetree.progression.state import TreeState

logger = logging.getLogger(__name__)


class TreeSaveData(DataModel):
    """Serialized passive tree of one character."""

    # Saves carry fields this module does not own (weapon specializations, ...)
    model_config = ConfigDict(extra='ignore')

    allocated_nodes: list[str] = Field(default_factory=lambda: ["start"], alias="allocatedNodes")
    available_points: Optional[int] = Field(default=None, alias="availablePoints")
    active_keystones: list[str] = Field(default_factory=list, alias="activeKeystones")

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


def capture_tree_state(state: TreeState, start_node_id: str = "start") -> TreeSaveData:
    """Build save data from a live TreeState."""
    others = sorted(state.allocated - {start_node_id})
    return TreeSaveData(
        allocated_nodes=[start_node_id] + others,
        available_points=state.available_points,
        active_keystones=sorted(state.active_keystones),
    )


def restore_tree_state(
    data: Union[TreeSaveData, Mapping[str, Any]],
    graph: NodeGraph,
) -> TreeState:
    """
    Rebuild a TreeState from save data.

    - Unknown node ids are dropped and their points returned.
    - Nodes whose prerequisites are no longer allocated are dropped and
      their points returned.
    - A missing point count is derived from the tree's starting budget.
    - Active keystones are always re-derived from the allocated nodes.

    Raises:
        DataError: If the save data has the wrong types
    """
    if not isinstance(data, TreeSaveData):
        try:
            data = TreeSaveData.model_validate(dict(data))
        except ValidationError as e:
            raise DataError(f"Invalid passive tree save data: {e}") from e

    start_id = graph.start_node_id
    saved = set(data.allocated_nodes) - {start_id}

    unknown = sorted(nid for nid in saved if nid not in graph)
    if unknown:
        logger.warning(f"Dropping unknown passive nodes from save: {', '.join(unknown)}")

    allocated = {nid for nid in saved if nid in graph} | {start_id}
    pruned = _prune_unsupported(allocated, graph)
    if pruned:
        logger.warning(f"Dropping passive nodes with unmet prerequisites: {', '.join(sorted(pruned))}")

    spent = len(allocated) - 1
    dropped = len(unknown) + len(pruned)

    if data.available_points is None:
        available = graph.starting_points - spent
    else:
        available = data.available_points + dropped
    if available < 0:
        logger.warning(f"Save has negative passive points ({available}); clamping to 0")
        available = 0

    keystones = set(graph.keystone_ids(allocated))
    if set(data.active_keystones) != keystones:
        logger.debug("Saved keystone list differs from allocation; using allocation")

    return TreeState(
        allocated=allocated,
        available_points=available,
        spent=spent,
        active_keystones=keystones,
    )


def _prune_unsupported(allocated: set[str], graph: NodeGraph) -> set[str]:
    """Remove nodes until every allocated node has its prerequisites. Mutates allocated."""
    pruned: set[str] = set()
    changed = True
    while changed:
        changed = False
        for node_id in sorted(allocated):
            if node_id == graph.start_node_id:
                continue
            node = graph.get_node(node_id)
            if any(req not in allocated for req in node.prerequisite_ids):
                allocated.discard(node_id)
                pruned.add(node_id)
                changed = True
    return pruned
