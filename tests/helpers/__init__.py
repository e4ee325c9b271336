"""Test helper utilities."""

from .catalog import FlakyCatalog, StaticCatalog, attack_on_titan, frieren, make_anime

__all__ = [
    "FlakyCatalog",
    "StaticCatalog",
    "attack_on_titan",
    "frieren",
    "make_anime",
]
