"""
Base class for data models.

Graph data (nodes, effects, requirements) and runtime records (tree state,
stat vectors, save data) are Pydantic models. Static graph data is frozen
after load; runtime records validate on assignment.

Usage:
    class Effect(FrozenModel):
        stat: str
        op: str
        value: float

    class TreeState(DataModel):
        available_points: int = 0
"""

from __future__ import annotations

from typing import ClassVar

from pydantic import BaseModel, ConfigDict


class DataModel(BaseModel):
    """
    Base class for all passive tree models.

    Uses Pydantic for:
    - Automatic validation
    - JSON serialization
    - Type hints
    - Default values

    Non-finite floats are rejected so NaN/Infinity can never
    enter the stat pipeline through data.
    """

    model_config = ConfigDict(
        validate_assignment=True,
        extra='forbid',
        allow_inf_nan=False,
        populate_by_name=True,
    )

    # Class variable: model type name (used in log messages and reports)
    _type_name: ClassVar[str] = ""

    @classmethod
    def get_type_name(cls) -> str:
        """Get the model type name."""
        return cls._type_name or cls.__name__

    def clone(self) -> DataModel:
        """Create a deep copy of this model."""
        return self.model_copy(deep=True)


class FrozenModel(DataModel):
    """Immutable model for data that never changes after load."""

    model_config = ConfigDict(
        frozen=True,
        extra='forbid',
        allow_inf_nan=False,
        populate_by_name=True,
    )
