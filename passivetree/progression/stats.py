"""
Stat calculator - the deterministic passive stat pipeline.

Stage order is fixed; changing it changes results:

    1. Base        seed from character data, fallback defaults
    2. Additive    equipment bonuses + every `add` effect
    3. Multiply    `mul`: value *= 1 + pct/100, per effect
    4. More/Less   `more`/`less` factors applied to the stage 2 value
                   (replaces the stage 3 value for that stat), then `set`
    5. Conversion  `convert` (not implemented yet, logged)
    6. Keystones   registry effects in registration order
    7. Limits      crit/block/resistance caps
    8. Round       nearest integer, halves away from zero

The calculator is pure: identical inputs always give identical output and
nothing outside the returned vector is touched. Every intermediate value
is kept inside CalculatorConfig.magnitude_limit, so no combination of
effects can produce NaN or Infinity.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional

from passivetree.config import CalculatorConfig, DEFAULT_CONFIG
from passivetree.progression.graph import NodeGraph
from passivetree.progression.keystones import KeystoneRegistry, default_registry
from passivetree.progression.nodes import Effect, EffectOp
from passivetree.progression.stat_vector import STAT_FIELDS, StatVector, bounded

logger = logging.getLogger(__name__)


# Character sheet names -> StatVector fields
BASE_STAT_ALIASES: dict[str, str] = {
    "strength": "str",
    "dexterity": "dex",
    "intelligence": "int",
    "maxHp": "hp_flat",
    "maxMp": "mp_flat",
    "energyShield": "energy_shield",
    "maxEnergyShield": "energy_shield",
    "fireResistance": "fire_resistance",
    "coldResistance": "cold_resistance",
    "lightningResistance": "lightning_resistance",
    "chaosResistance": "chaos_resistance",
    "critChance": "crit_chance",
    "attackSpeed": "attack_speed",
    "castSpeed": "cast_speed",
    "movementSpeed": "movement_speed",
    "blockChance": "block_chance",
}

# Equipment affix names -> StatVector fields they add to
EQUIPMENT_ALIASES: dict[str, tuple[str, ...]] = {
    "fire_res": ("fire_resistance",),
    "cold_res": ("cold_resistance",),
    "lightning_res": ("lightning_resistance",),
    "chaos_res": ("chaos_resistance",),
    "all_attributes": ("str", "dex", "int"),
    "aps_pct": ("attack_speed",),
    "cast_speed_pct": ("cast_speed",),
    "spell_damage_pct": ("spell_pct",),
    "minion_damage_pct": ("minion_damage",),
}

# Equipment affixes with no StatVector field; consumed by combat and loot code
NON_VECTOR_EQUIPMENT_KEYS: frozenset[str] = frozenset({
    "hp_regen",
    "mp_regen",
    "phys_damage_pct",
    "spell_crit_chance",
    "fire_damage_pct",
    "cold_damage_pct",
    "lightning_damage_pct",
    "chaos_damage_pct",
    "lightning_damage_flat",
    "life_gain_per_kill",
    "life_leech_pct",
    "gold_find_pct",
    "bleed_chance",
    "poison_chance",
})


@dataclass
class _EffectGroups:
    """Allocated effects sorted by operation, in graph order."""
    add: list[Effect] = field(default_factory=list)
    mul: list[Effect] = field(default_factory=list)
    more_less: list[Effect] = field(default_factory=list)
    overrides: list[Effect] = field(default_factory=list)
    convert: list[Effect] = field(default_factory=list)


class StatCalculator:
    """
    Turns base stats, equipment and allocated nodes into a StatVector.

    Usage:
        calculator = StatCalculator()
        stats = calculator.calculate(character, equipment, allocated, graph)
    """

    def __init__(
        self,
        registry: Optional[KeystoneRegistry] = None,
        config: Optional[CalculatorConfig] = None,
    ):
        self.config = config or DEFAULT_CONFIG
        self.registry = registry if registry is not None else default_registry(
            start_node_id=self.config.start_node_id,
            magnitude_limit=self.config.magnitude_limit,
        )

    def calculate(
        self,
        base_stats: Optional[Mapping[str, Any]],
        equipment_bonuses: Optional[Mapping[str, Any]],
        allocated_node_ids: Iterable[str],
        graph: NodeGraph,
    ) -> StatVector:
        """
        Run the full pipeline.

        Args:
            base_stats: Character data (StatVector names or sheet names)
            equipment_bonuses: Summed equipment affixes
            allocated_node_ids: Allocated ids; ids missing from the graph are ignored
            graph: The passive tree

        Returns:
            The final, capped, rounded StatVector
        """
        requested = set(allocated_node_ids)
        # Graph order, not caller order, so results never depend on iteration order
        allocated = [node for node in graph if node.id in requested]
        allocated_ids = [node.id for node in allocated]

        groups = self._collect_effects(allocated)

        values = self._seed_base(base_stats)
        values = self._apply_additive(values, equipment_bonuses, groups.add)
        additive = dict(values)
        values = self._apply_multiplicative(values, groups.mul)
        values = self._apply_more_less(values, additive, groups.more_less, groups.overrides)
        values = self._apply_conversion(values, groups.convert)
        values = self._apply_keystones(values, allocated_ids, graph)
        values = self._apply_limits(values)
        values = self._round(values)

        return StatVector(**values)

    def _collect_effects(self, nodes) -> _EffectGroups:
        groups = _EffectGroups()
        for node in nodes:
            for effect in node.effects:
                if effect.stat == self.config.points_stat:
                    continue
                if effect.stat not in STAT_FIELDS:
                    logger.warning(f"Node '{node.id}' affects unknown stat '{effect.stat}'; skipping")
                    continue

                op = effect.known_op
                if op == EffectOp.ADD:
                    groups.add.append(effect)
                elif op == EffectOp.MUL:
                    groups.mul.append(effect)
                elif op in (EffectOp.MORE, EffectOp.LESS):
                    groups.more_less.append(effect)
                elif op == EffectOp.SET:
                    groups.overrides.append(effect)
                elif op == EffectOp.CONVERT:
                    groups.convert.append(effect)
                else:
                    logger.warning(f"Node '{node.id}' uses unknown operation '{effect.op}'; skipping")
        return groups

    def _bound(self, value: float) -> float:
        return bounded(value, self.config.magnitude_limit)

    def _seed_base(self, base_stats: Optional[Mapping[str, Any]]) -> dict[str, float]:
        """Stage 1: defaults overlaid with character data."""
        values = {name: float(self.config.base_defaults.get(name, 0)) for name in STAT_FIELDS}
        if base_stats is None:
            return values
        if hasattr(base_stats, 'model_dump'):
            base_stats = base_stats.model_dump()

        for key, raw in base_stats.items():
            stat = BASE_STAT_ALIASES.get(key, key)
            if stat not in values:
                logger.debug(f"Ignoring base field '{key}'")
                continue
            number = _finite_number(raw)
            if number is None:
                logger.warning(f"Base stat '{key}' has unusable value {raw!r}; using default")
                continue
            values[stat] = self._bound(number)
        return values

    def _apply_additive(
        self,
        values: dict[str, float],
        equipment_bonuses: Optional[Mapping[str, Any]],
        effects: list[Effect],
    ) -> dict[str, float]:
        """Stage 2: equipment and add effects."""
        for key, raw in (equipment_bonuses or {}).items():
            if key in NON_VECTOR_EQUIPMENT_KEYS:
                logger.debug(f"Equipment bonus '{key}' has no passive stat; ignoring")
                continue
            targets = EQUIPMENT_ALIASES.get(key, (key,))
            if any(t not in values for t in targets):
                logger.warning(f"Equipment bonus on unknown stat '{key}'; skipping")
                continue
            number = _finite_number(raw)
            if number is None:
                logger.warning(f"Equipment bonus '{key}' has unusable value {raw!r}; skipping")
                continue
            for stat in targets:
                values[stat] = self._bound(values[stat] + number)

        for effect in effects:
            values[effect.stat] = self._bound(values[effect.stat] + effect.value)
        return values

    def _apply_multiplicative(self, values: dict[str, float], effects: list[Effect]) -> dict[str, float]:
        """Stage 3: increased/reduced, one multiplication per effect."""
        for effect in effects:
            factor = self._bound(1 + effect.value / 100)
            values[effect.stat] = self._bound(values[effect.stat] * factor)
        return values

    def _apply_more_less(
        self,
        values: dict[str, float],
        additive: dict[str, float],
        effects: list[Effect],
        overrides: list[Effect],
    ) -> dict[str, float]:
        """
        Stage 4: more/less multipliers, then overrides.

        Multipliers scale the stage 2 value, not the stage 3 one, so a
        stat with both mul and more effects ends up with only the more
        scaling. Balance numbers rely on this.

        Neither factor goes below zero, so no effect can flip a sign.
        """
        factors: dict[str, float] = {}
        for effect in effects:
            if effect.known_op == EffectOp.MORE:
                step = max(0.0, 1 + effect.value / 100)
            else:
                step = max(0.0, 1 - effect.value / 100)
            factors[effect.stat] = self._bound(factors.get(effect.stat, 1.0) * step)

        for stat, factor in factors.items():
            values[stat] = self._bound(additive[stat] * factor)

        for effect in overrides:
            values[effect.stat] = self._bound(effect.value)
        return values

    def _apply_conversion(self, values: dict[str, float], effects: list[Effect]) -> dict[str, float]:
        """Stage 5: stat conversion."""
        # TODO: define conversion semantics (source loss and target gain) once the convert effects are designed
        for effect in effects:
            logger.debug(f"Conversion {effect.stat} -> {effect.target} not implemented; ignoring")
        return values

    def _apply_keystones(
        self,
        values: dict[str, float],
        allocated_ids: list[str],
        graph: NodeGraph,
    ) -> dict[str, float]:
        """Stage 6: keystone registry."""
        active = graph.keystone_ids(allocated_ids)
        if not active:
            return values
        stats = self.registry.apply_all(StatVector(**values), active, allocated_ids)
        return {name: self._bound(value) for name, value in stats.as_dict().items()}

    def _apply_limits(self, values: dict[str, float]) -> dict[str, float]:
        """Stage 7: caps. Runs after keystones so nothing can exceed them."""
        for stat, cap in self.config.caps.items():
            if stat in values:
                values[stat] = min(values[stat], cap)
        return values

    def _round(self, values: dict[str, float]) -> dict[str, float]:
        """Stage 8: nearest integer, halves away from zero."""
        return {
            name: float(_round_half_away(value))
            for name, value in values.items()
        }


def _round_half_away(value: float) -> int:
    if value < 0:
        return -math.floor(-value + 0.5)
    return math.floor(value + 0.5)


def _finite_number(raw: Any) -> Optional[float]:
    """Return raw as a finite float, or None."""
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        return None
    number = float(raw)
    if not math.isfinite(number):
        return None
    return number


_default_calculator: Optional[StatCalculator] = None


def calculate(
    base_stats: Optional[Mapping[str, Any]],
    equipment_bonuses: Optional[Mapping[str, Any]],
    allocated_node_ids: Iterable[str],
    graph: NodeGraph,
) -> StatVector:
    """Run the pipeline with the built-in keystones and default config."""
    global _default_calculator
    if _default_calculator is None:
        _default_calculator = StatCalculator()
    return _default_calculator.calculate(base_stats, equipment_bonuses, allocated_node_ids, graph)
