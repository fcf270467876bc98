"""
Calculator configuration - stat defaults, caps and numeric limits.
"""

from __future__ import annotations

from typing import Optional


# Fallback values for every StatVector field when the character
# data does not supply one.
DEFAULT_BASE_STATS: dict[str, float] = {
    # Attributes
    "str": 10,
    "dex": 10,
    "int": 10,
    # Resources
    "hp_flat": 100,
    "mp_flat": 50,
    "energy_shield": 0,
    # Offense
    "melee_pct": 0,
    "bow_pct": 0,
    "spell_pct": 0,
    "crit_chance": 5,
    "crit_multiplier": 150,
    "attack_speed": 100,
    "cast_speed": 100,
    "minion_damage": 0,
    "totem_damage": 0,
    # Defense
    "armor": 0,
    "evasion": 0,
    "block_chance": 0,
    # Resistances
    "fire_resistance": 0,
    "cold_resistance": 0,
    "lightning_resistance": 0,
    "chaos_resistance": 0,
    # Utility
    "movement_speed": 100,
    "mana_cost_reduction": 0,
}

DEFAULT_STAT_CAPS: dict[str, float] = {
    "crit_chance": 95,
    "block_chance": 75,
    "fire_resistance": 75,
    "cold_resistance": 75,
    "lightning_resistance": 75,
    "chaos_resistance": 75,
}


class CalculatorConfig:
    """Configuration for the stat pipeline and tree sessions."""

    def __init__(
        self,
        base_defaults: Optional[dict[str, float]] = None,
        caps: Optional[dict[str, float]] = None,
        magnitude_limit: float = 1e12,
        start_node_id: str = "start",
        points_stat: str = "points",
    ):
        self.base_defaults = dict(DEFAULT_BASE_STATS)
        if base_defaults:
            self.base_defaults.update(base_defaults)
        self.caps = dict(DEFAULT_STAT_CAPS if caps is None else caps)
        # Every intermediate value is clamped into +/- this bound
        self.magnitude_limit = magnitude_limit
        self.start_node_id = start_node_id
        self.points_stat = points_stat


DEFAULT_CONFIG = CalculatorConfig()
