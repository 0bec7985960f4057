"""Tile collision, animation file loading, audio mixing and debug logging for a retro side-scroller."""

__version__ = "0.1.0"