"""
Save module - passive tree persistence.
"""

from passivetree.save.persistence import (
    TreeSaveData,
    capture_tree_state,
    restore_tree_state,
)

__all__ = [
    "TreeSaveData",
    "capture_tree_state",
    "restore_tree_state",
]
