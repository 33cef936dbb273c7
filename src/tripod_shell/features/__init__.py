"""Features: mating balls, clearance sockets, hollow tapered nozzles."""

from .build import (
    ball_centers,
    add_balls,
    cut_sockets,
    add_tapered_nozzles,
    add_ball_sockets_and_nozzles,
)

__all__ = [
    "ball_centers",
    "add_balls",
    "cut_sockets",
    "add_tapered_nozzles",
    "add_ball_sockets_and_nozzles",
]
