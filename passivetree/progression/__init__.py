"""
Progression module - passive nodes, allocation and stats.

Provides:
- Node, effect and requirement definitions
- The read-only node graph
- Per-character tree state and allocation rules
- Keystone effects
- The stat pipeline
- SkillTreeSession, the per-character API
"""

from passivetree.progression.nodes import (
    Node,
    NodeType,
    Effect,
    EffectOp,
    Requirement,
    RequirementKind,
)
from passivetree.progression.graph import NodeGraph, TreeMetadata
from passivetree.progression.state import TreeState
from passivetree.progression.requirements import CharacterContext, RequirementEvaluator
from passivetree.progression.allocation import AllocationController
from passivetree.progression.stat_vector import StatVector, STAT_FIELDS
from passivetree.progression.keystones import (
    KeystoneRegistry,
    KeystoneEffect,
    KeystoneOperation,
    KeystoneOpKind,
    default_registry,
)
from passivetree.progression.stats import StatCalculator, calculate
from passivetree.progression.session import SkillTreeSession
from passivetree.progression.validation import TreeReport, validate_structure

__all__ = [
    # Nodes
    "Node",
    "NodeType",
    "Effect",
    "EffectOp",
    "Requirement",
    "RequirementKind",
    # Graph and state
    "NodeGraph",
    "TreeMetadata",
    "TreeState",
    "CharacterContext",
    "RequirementEvaluator",
    "AllocationController",
    # Stats
    "StatVector",
    "STAT_FIELDS",
    "StatCalculator",
    "calculate",
    # Keystones
    "KeystoneRegistry",
    "KeystoneEffect",
    "KeystoneOperation",
    "KeystoneOpKind",
    "default_registry",
    # Session
    "SkillTreeSession",
    # Validation
    "TreeReport",
    "validate_structure",
]
