"""
Core building blocks shared by every passive tree module.
"""

from passivetree.core.errors import DataError
from passivetree.core.events import EventBus, Event, TreeEvent
from passivetree.core.model import DataModel, FrozenModel

__all__ = [
    "DataError",
    "EventBus",
    "Event",
    "TreeEvent",
    "DataModel",
    "FrozenModel",
]
