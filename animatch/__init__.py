"""Anime title recognition against a local catalog."""

__version__ = "0.1.0"
