"""
Passive Tree

Passive-skill allocation graph and deterministic stat pipeline for
action RPG characters.

Quick Start:
    from passivetree import load, SkillTreeSession

    graph = load("data/skill_tree.json")
    session = SkillTreeSession(graph)
    session.allocate_node("str_1")
    stats = session.calculate({"strength": 20}, {"fire_res": 30})
"""

__version__ = "0.1.0"

# Progression first: the save package imports from it
from passivetree.progression import (
    Node,
    NodeType,
    Effect,
    EffectOp,
    Requirement,
    RequirementKind,
    NodeGraph,
    TreeState,
    CharacterContext,
    AllocationController,
    StatVector,
    StatCalculator,
    calculate,
    KeystoneRegistry,
    KeystoneEffect,
    KeystoneOperation,
    KeystoneOpKind,
    default_registry,
    SkillTreeSession,
    TreeReport,
    validate_structure,
)
from passivetree.save import TreeSaveData, capture_tree_state, restore_tree_state
from passivetree.resources import GraphLoader, load
from passivetree.core import DataError, EventBus, Event, TreeEvent
from passivetree.config import CalculatorConfig, DEFAULT_CONFIG

__all__ = [
    # Data
    "Node",
    "NodeType",
    "Effect",
    "EffectOp",
    "Requirement",
    "RequirementKind",
    "NodeGraph",
    "GraphLoader",
    "load",
    "DataError",
    # Allocation
    "TreeState",
    "CharacterContext",
    "AllocationController",
    "SkillTreeSession",
    # Stats
    "StatVector",
    "StatCalculator",
    "calculate",
    "CalculatorConfig",
    "DEFAULT_CONFIG",
    # Keystones
    "KeystoneRegistry",
    "KeystoneEffect",
    "KeystoneOperation",
    "KeystoneOpKind",
    "default_registry",
    # Persistence
    "TreeSaveData",
    "capture_tree_state",
    "restore_tree_state",
    # Validation
    "TreeReport",
    "validate_structure",
    # Events
    "EventBus",
    "Event",
    "TreeEvent",
]
