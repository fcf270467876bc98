"""
Keystone registry - hand-written effects for keystone nodes.

Keystone behaviour is written in a tiny operation language instead of
free-form callbacks. Each KeystoneEffect is a list of operations; each
operation kind has exactly one interpreter, and a missing interpreter
fails at import time rather than at allocation time.

Active keystones are applied one after another in registration order.
Order matters: two keystones that each scale armor by 1.2 yield
armor * 1.2 * 1.2, not armor * 1.4.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Iterator, Mapping, Optional

from passivetree.progression.stat_vector import STAT_FIELDS, StatVector, bounded

logger = logging.getLogger(__name__)


class KeystoneOpKind(str, Enum):
    """Operation kinds understood by the keystone interpreter."""
    FLAT = "flat"            # stat += value
    SCALE = "scale"          # stat *= value
    TRANSFER = "transfer"    # move value% of stat into target
    LOCK = "lock"            # stat = value
    PER_NODE = "per_node"    # stat += value per allocated passive


@dataclass(frozen=True)
class KeystoneOperation:
    """One step of a keystone effect."""
    kind: KeystoneOpKind
    stat: str
    value: float
    target: Optional[str] = None

    def __post_init__(self):
        if not math.isfinite(self.value):
            raise ValueError(f"Keystone operation value must be finite, got {self.value}")
        for name in (self.stat, self.target):
            if name is not None and name not in STAT_FIELDS:
                raise ValueError(f"Keystone operation on unknown stat '{name}'")
        if self.kind == KeystoneOpKind.TRANSFER and self.target is None:
            raise ValueError("Transfer operations need a target stat")


Interpreter = Callable[[dict[str, float], KeystoneOperation, int], None]


def _flat(values: dict[str, float], op: KeystoneOperation, passives: int) -> None:
    values[op.stat] += op.value


def _scale(values: dict[str, float], op: KeystoneOperation, passives: int) -> None:
    values[op.stat] *= op.value


def _transfer(values: dict[str, float], op: KeystoneOperation, passives: int) -> None:
    moved = values[op.stat] * op.value / 100
    values[op.stat] -= moved
    values[op.target] += moved


def _lock(values: dict[str, float], op: KeystoneOperation, passives: int) -> None:
    values[op.stat] = op.value


def _per_node(values: dict[str, float], op: KeystoneOperation, passives: int) -> None:
    values[op.stat] += op.value * passives


_INTERPRETERS: dict[KeystoneOpKind, Interpreter] = {
    KeystoneOpKind.FLAT: _flat,
    KeystoneOpKind.SCALE: _scale,
    KeystoneOpKind.TRANSFER: _transfer,
    KeystoneOpKind.LOCK: _lock,
    KeystoneOpKind.PER_NODE: _per_node,
}

_missing = set(KeystoneOpKind) - set(_INTERPRETERS)
if _missing:
    raise RuntimeError(f"No keystone interpreter for {sorted(k.value for k in _missing)}")


@dataclass(frozen=True)
class KeystoneEffect:
    """A named keystone effect."""
    name: str
    description: str
    operations: tuple[KeystoneOperation, ...] = ()

    def apply(
        self,
        stats: StatVector,
        allocated_node_ids: Iterable[str],
        start_node_id: str = "start",
        magnitude_limit: float = 1e12,
    ) -> StatVector:
        """
        Return a new StatVector with this keystone applied.

        Pure: the input vector is never modified. Every intermediate
        value is clamped so the result is always finite.
        """
        values = stats.as_dict()
        passives = len(set(allocated_node_ids) - {start_node_id})
        for op in self.operations:
            _INTERPRETERS[op.kind](values, op, passives)
            for name in (op.stat, op.target):
                if name is not None:
                    values[name] = bounded(values[name], magnitude_limit)
        return StatVector(**values)


class KeystoneRegistry:
    """
    Maps keystone node ids to their effects.

    Usage:
        registry = KeystoneRegistry()
        registry.register("unbreakable", KeystoneEffect(...))
        stats = registry.apply_all(stats, ["unbreakable"], allocated)
    """

    def __init__(
        self,
        effects: Optional[Mapping[str, KeystoneEffect]] = None,
        start_node_id: str = "start",
        magnitude_limit: float = 1e12,
    ):
        self._effects: dict[str, KeystoneEffect] = {}
        self.start_node_id = start_node_id
        self.magnitude_limit = magnitude_limit
        for keystone_id, effect in (effects or {}).items():
            self.register(keystone_id, effect)

    def __contains__(self, keystone_id: object) -> bool:
        return keystone_id in self._effects

    def __iter__(self) -> Iterator[str]:
        return iter(self._effects)

    def __len__(self) -> int:
        return len(self._effects)

    def register(self, keystone_id: str, effect: KeystoneEffect) -> None:
        """Register an effect. Re-registering keeps the original position."""
        self._effects[keystone_id] = effect

    def get_keystone_effect(self, keystone_id: str) -> Optional[KeystoneEffect]:
        """Get the effect for a keystone id."""
        return self._effects.get(keystone_id)

    def apply_all(
        self,
        stats: StatVector,
        active_keystones: Iterable[str],
        allocated_node_ids: Iterable[str],
    ) -> StatVector:
        """
        Apply every active keystone in registration order.

        Active ids without a registered effect are logged and skipped.
        """
        active = set(active_keystones)
        allocated = frozenset(allocated_node_ids)

        for keystone_id in sorted(active - set(self._effects)):
            logger.warning(f"Keystone '{keystone_id}' has no registered effect; ignoring")

        for keystone_id, effect in self._effects.items():
            if keystone_id in active:
                stats = effect.apply(
                    stats,
                    allocated,
                    start_node_id=self.start_node_id,
                    magnitude_limit=self.magnitude_limit,
                )
                logger.debug(f"Applied keystone '{keystone_id}' ({effect.name})")
        return stats


def _op(kind: KeystoneOpKind, stat: str, value: float, target: Optional[str] = None) -> KeystoneOperation:
    return KeystoneOperation(kind=kind, stat=stat, value=value, target=target)


BUILTIN_KEYSTONES: dict[str, KeystoneEffect] = {
    "unbreakable": KeystoneEffect(
        name="Unbreakable",
        description="You have 20% more Armor and cannot be stunned",
        operations=(
            _op(KeystoneOpKind.FLAT, "str", 25),
            _op(KeystoneOpKind.FLAT, "hp_flat", 60),
            _op(KeystoneOpKind.SCALE, "armor", 1.20),
        ),
    ),
    "phantom_strike": KeystoneEffect(
        name="Phantom Strike",
        description="You move 15% faster and your attacks have a chance to pass through enemies",
        operations=(
            _op(KeystoneOpKind.FLAT, "dex", 25),
            _op(KeystoneOpKind.FLAT, "bow_pct", 25),
            _op(KeystoneOpKind.SCALE, "movement_speed", 1.15),
        ),
    ),
    "arcane_dominion": KeystoneEffect(
        name="Arcane Dominion",
        description="Your spells have 20% increased effect and you regenerate mana 50% faster",
        operations=(
            _op(KeystoneOpKind.FLAT, "int", 25),
            _op(KeystoneOpKind.FLAT, "spell_pct", 20),
            _op(KeystoneOpKind.FLAT, "mp_flat", 50),
        ),
    ),
    "ascendant_power": KeystoneEffect(
        name="Ascendant Power",
        description="Master of all elements; +2 Life for every allocated passive",
        operations=(
            _op(KeystoneOpKind.FLAT, "str", 20),
            _op(KeystoneOpKind.FLAT, "dex", 20),
            _op(KeystoneOpKind.FLAT, "int", 20),
            _op(KeystoneOpKind.FLAT, "hp_flat", 50),
            _op(KeystoneOpKind.FLAT, "mp_flat", 50),
            _op(KeystoneOpKind.PER_NODE, "hp_flat", 2),
        ),
    ),
    "iron_reflexes": KeystoneEffect(
        name="Iron Reflexes",
        description="Converts all Evasion Rating to Armour",
        operations=(
            _op(KeystoneOpKind.TRANSFER, "evasion", 100, target="armor"),
        ),
    ),
    "blood_magic": KeystoneEffect(
        name="Blood Magic",
        description="Your maximum Mana is added to your Life; you have no Mana",
        operations=(
            _op(KeystoneOpKind.TRANSFER, "mp_flat", 100, target="hp_flat"),
            _op(KeystoneOpKind.LOCK, "mp_flat", 0),
        ),
    ),
    "precise_technique": KeystoneEffect(
        name="Precise Technique",
        description="Your hits can't be critical strikes; 10% more Attack Speed",
        operations=(
            _op(KeystoneOpKind.LOCK, "crit_chance", 0),
            _op(KeystoneOpKind.SCALE, "attack_speed", 1.10),
        ),
    ),
}


def default_registry(start_node_id: str = "start", magnitude_limit: float = 1e12) -> KeystoneRegistry:
    """Registry preloaded with the built-in keystones."""
    return KeystoneRegistry(
        BUILTIN_KEYSTONES,
        start_node_id=start_node_id,
        magnitude_limit=magnitude_limit,
    )
