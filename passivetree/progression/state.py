"""
Tree state - per-character allocation set and point budget.
"""

from __future__ import annotations

from pydantic import Field

from passivetree.core.model import DataModel


class TreeState(DataModel):
    """
    Mutable allocation record for one character.

    Only the AllocationController changes a TreeState; everything
    else reads it.

    Attributes:
        allocated: Allocated node ids (always contains the start node)
        available_points: Points left to spend
        spent: Points spent on allocated nodes
        active_keystones: Allocated keystone ids
    """
    allocated: set[str] = Field(default_factory=lambda: {"start"})
    available_points: int = 0
    spent: int = 0
    active_keystones: set[str] = Field(default_factory=set)

    @classmethod
    def fresh(cls, points: int, start_node_id: str = "start") -> TreeState:
        """Create the state of an untouched tree."""
        return cls(allocated={start_node_id}, available_points=points)

    def is_allocated(self, node_id: str) -> bool:
        return node_id in self.allocated

    def snapshot(self) -> tuple[frozenset[str], int, int, frozenset[str]]:
        """Hashable copy of every field, for equality checks and cache keys."""
        return (
            frozenset(self.allocated),
            self.available_points,
            self.spent,
            frozenset(self.active_keystones),
        )
