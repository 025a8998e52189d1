"""Hue light scenes driven by a live news feed."""

__version__ = "1.0.0"
