"""
StatVector - the final combat stat schema.
"""

from __future__ import annotations

import math

from passivetree.core.model import DataModel


class StatVector(DataModel):
    """
    Fixed schema of combat stats produced by the calculator.

    Percent-style fields (melee_pct, crit_chance, resistances, ...) hold
    whole percentages. Speeds are percentages of the base speed.
    """
    # Attributes
    str: float = 10
    dex: float = 10
    int: float = 10

    # Resources
    hp_flat: float = 100
    mp_flat: float = 50
    energy_shield: float = 0

    # Offense
    melee_pct: float = 0
    bow_pct: float = 0
    spell_pct: float = 0
    crit_chance: float = 5
    crit_multiplier: float = 150
    attack_speed: float = 100
    cast_speed: float = 100
    minion_damage: float = 0
    totem_damage: float = 0

    # Defense
    armor: float = 0
    evasion: float = 0
    block_chance: float = 0

    # Resistances
    fire_resistance: float = 0
    cold_resistance: float = 0
    lightning_resistance: float = 0
    chaos_resistance: float = 0

    # Utility
    movement_speed: float = 100
    mana_cost_reduction: float = 0

    def as_dict(self) -> dict[str, float]:
        return self.model_dump()

    def diff(self, other: StatVector) -> dict[str, float]:
        """Fields whose value changes going from self to other, as deltas."""
        mine = self.as_dict()
        return {
            name: value - mine[name]
            for name, value in other.as_dict().items()
            if value != mine[name]
        }


STAT_FIELDS: tuple[str, ...] = tuple(StatVector.model_fields)

RESISTANCE_FIELDS: tuple[str, ...] = (
    "fire_resistance",
    "cold_resistance",
    "lightning_resistance",
    "chaos_resistance",
)


def bounded(value: float, limit: float) -> float:
    """Clamp into [-limit, limit]; NaN collapses to 0."""
    if math.isnan(value):
        return 0.0
    return max(-limit, min(limit, value))
