"""
Passive node definitions - nodes, effects and requirements.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional, Union

from pydantic import AliasChoices, Field, field_validator

from passivetree.core.model import FrozenModel


class NodeType(str, Enum):
    """Passive node tiers."""
    START = "start"
    SMALL = "small"
    MAJOR = "major"
    NOTABLE = "notable"
    KEYSTONE = "keystone"
    MASTERY = "mastery"


class EffectOp(str, Enum):
    """Operations a node effect can perform on a stat."""
    ADD = "add"
    MUL = "mul"
    MORE = "more"
    LESS = "less"
    SET = "set"
    CONVERT = "convert"


class RequirementKind(str, Enum):
    """Kinds of allocation preconditions."""
    NODE = "node"
    ATTRIBUTE = "attribute"
    LEVEL = "level"
    CLASS = "class"


class Effect(FrozenModel):
    """
    A declarative stat change.

    Attributes:
        stat: Target stat name
        op: Operation name (see EffectOp); unknown names are kept so the
            calculator can log and skip them
        value: Amount (flat for add/set, percent for mul/more/less/convert)
        target: Destination stat for convert
        condition: Free-form scope tag, informational only
    """
    stat: str
    op: str = EffectOp.ADD.value
    value: float = 0.0
    target: Optional[str] = None
    condition: Optional[str] = None

    @field_validator('op', mode='before')
    @classmethod
    def _normalize_op(cls, v: Any) -> Any:
        if isinstance(v, Enum):
            return v.value
        return v.lower() if isinstance(v, str) else v

    @property
    def known_op(self) -> Optional[EffectOp]:
        """The operation as an EffectOp, or None if unrecognized."""
        try:
            return EffectOp(self.op)
        except ValueError:
            return None


class Requirement(FrozenModel):
    """
    A precondition for allocating a node.

    Attributes:
        kind: node, attribute, level or class (unknown kinds fail closed)
        value: Node id, threshold, level or class name
        stat: Attribute name for attribute requirements
    """
    kind: str = Field(
        validation_alias=AliasChoices('type', 'kind'),
        serialization_alias='type',
    )
    value: Union[int, float, str]
    stat: Optional[str] = None

    @field_validator('kind', mode='before')
    @classmethod
    def _normalize_kind(cls, v: Any) -> Any:
        if isinstance(v, Enum):
            return v.value
        return v.lower() if isinstance(v, str) else v

    @property
    def known_kind(self) -> Optional[RequirementKind]:
        """The kind as a RequirementKind, or None if unrecognized."""
        try:
            return RequirementKind(self.kind)
        except ValueError:
            return None


class Node(FrozenModel):
    """A single purchasable vertex of the passive tree."""
    id: str
    name: str
    x: float = 0.0
    y: float = 0.0
    type: NodeType = NodeType.SMALL
    effects: tuple[Effect, ...] = ()
    requirements: tuple[Requirement, ...] = ()
    tags: tuple[str, ...] = ()
    description: str = ""

    @property
    def is_keystone(self) -> bool:
        return self.type == NodeType.KEYSTONE

    @property
    def prerequisite_ids(self) -> list[str]:
        """Ids named by node-kind requirements."""
        return [
            str(req.value) for req in self.requirements
            if req.known_kind == RequirementKind.NODE
        ]

    def granted(self, stat: str) -> float:
        """Sum of add effects on a stat (e.g. points on the start node)."""
        return sum(
            e.value for e in self.effects
            if e.stat == stat and e.known_op == EffectOp.ADD
        )


def adapt_legacy_node(data: dict[str, Any]) -> dict[str, Any]:
    """
    Convert a node written in the legacy shape to the unified one.

    Legacy nodes carry `grants: [{stat, value}]` and `requires: [id]`.
    Both are folded into `effects` (op add) and `requirements` (kind node)
    so the calculator only ever sees one representation.
    """
    if 'grants' not in data and 'requires' not in data:
        return data

    adapted = {k: v for k, v in data.items() if k not in ('grants', 'requires')}

    effects = list(adapted.get('effects', []))
    for grant in data.get('grants') or []:
        effects.append({
            'stat': grant['stat'],
            'op': EffectOp.ADD.value,
            'value': grant.get('value', 0),
        })
    adapted['effects'] = effects

    requirements = list(adapted.get('requirements', []))
    for req_id in data.get('requires') or []:
        requirements.append({'type': RequirementKind.NODE.value, 'value': req_id})
    adapted['requirements'] = requirements

    return adapted
