"""Readers for retro side-scroller data packs, game configuration, stages and tiles, plus camera logic."""

__version__ = "0.1.0"
__all__ = ["datapack", "reader", "gameconfig", "stage", "tiles", "camera"]