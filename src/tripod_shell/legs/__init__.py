"""Legs: three organic legs with bulbous segments and cylindrical feet."""

from .build import leg_waypoints, build_leg_lattice, create_organic_tripod_legs

__all__ = ["leg_waypoints", "build_leg_lattice", "create_organic_tripod_legs"]
