"""Flow: plenum + curved ducts, hollowed into thin walls, and legacy inlets."""

from .build import (
    create_flow_volume,
    hollow_volume,
    hollow_flow_system,
    add_flow_walls,
    add_vertical_edf_inlets,
)

__all__ = [
    "create_flow_volume",
    "hollow_volume",
    "hollow_flow_system",
    "add_flow_walls",
    "add_vertical_edf_inlets",
]
