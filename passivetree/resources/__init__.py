"""
Resources module - loading static passive tree data.
"""

from passivetree.resources.loader import GraphLoader, load, SCHEMA_PATH

__all__ = [
    "GraphLoader",
    "load",
    "SCHEMA_PATH",
]
