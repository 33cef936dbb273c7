"""Dome: enclosure on the leg junction (closed bowl or legacy open dome)."""

from .build import add_closed_bowl_and_inlets, add_legacy_open_dome, add_enclosure

__all__ = ["add_closed_bowl_and_inlets", "add_legacy_open_dome", "add_enclosure"]
