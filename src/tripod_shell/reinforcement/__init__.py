"""Reinforcement: nozzle base thickening and bored mounting bosses."""

from .build import add_nozzle_base_thickening, add_mounting_bosses, add_reinforcement

__all__ = ["add_nozzle_base_thickening", "add_mounting_bosses", "add_reinforcement"]
