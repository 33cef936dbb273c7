"""
Dome: Enclosure on the leg junction (Stage 3)

Two variants, selected once by ShellConfig.dome_style:

CLOSED_BOWL - thick spherical bowl (outer sphere minus inner sphere one
    flow wall thinner), kept above a rim just below the leg junction so it
    sits on the legs without a seam. Three vertical EDF inlets are cut
    through the bowl here.
LEGACY_OPEN_DOME - hemispherical annulus trimmed to a cap between the
    junction and the dome top. Inlets are cut later, after hollowing.
"""

import logging

from ..common.config import DomeStyle, ShellConfig
from ..common.primitives import BBox, ring_points
from ..common.voxel import Lattice, VoxelGrid, voxel_sphere

logger = logging.getLogger(__name__)

# Bowl geometry relative to dome_center_z_mm
BOWL_RIM_DROP_MM = 18.0
BOWL_TRIM_Z_TOP = 125.0
BOWL_TRIM_MARGIN_MM = 2.0
INLET_TOP_ABOVE_CENTER_MM = 52.0
INLET_BOTTOM_BELOW_CENTER_MM = 28.0


def _spherical_annulus(center, r_outer: float, r_inner: float, z_min: float, z_max: float,
                       spacing: float, margin: float = 0.0) -> VoxelGrid:
    """Outer sphere minus inner sphere, both kept between z_min and z_max."""
    outer = voxel_sphere(center, r_outer, spacing)
    inner = voxel_sphere(center, r_inner, spacing)
    outer.trim(BBox.around((0.0, 0.0, 0.0), r_outer + margin, z_min, z_max))
    inner.trim(BBox.around((0.0, 0.0, 0.0), r_inner + margin, z_min, z_max))
    return outer.boolean_subtract(inner)


def build_closed_bowl(config: ShellConfig) -> VoxelGrid:
    """Bowl shell: upper part of a thick sphere, wall = flow wall thickness."""
    r_out = config.dome_radius_mm
    r_in = r_out - config.flow_wall_thickness_mm
    z_center = config.dome_center_z_mm
    return _spherical_annulus(
        (0.0, 0.0, z_center), r_out, r_in,
        z_min=z_center - BOWL_RIM_DROP_MM, z_max=BOWL_TRIM_Z_TOP,
        spacing=config.voxel_size_mm, margin=BOWL_TRIM_MARGIN_MM,
    )


def build_bowl_inlets(config: ShellConfig) -> VoxelGrid:
    """Three vertical round-capped inlet conduits through the bowl top."""
    radial = config.dome_radius_mm * config.edf_inlet_radial_position
    z_top = config.dome_center_z_mm + INLET_TOP_ABOVE_CENTER_MM
    z_bottom = config.dome_center_z_mm - INLET_BOTTOM_BELOW_CENTER_MM
    r = config.edf_inlet_radius_mm

    lattice = Lattice()
    for top, bottom in zip(ring_points(radial, z_top), ring_points(radial, z_bottom)):
        lattice.add_beam(top, bottom, r, r, round_caps=True)
    return lattice.to_voxels(config.voxel_size_mm)


def add_closed_bowl_and_inlets(shell: VoxelGrid, config: ShellConfig) -> VoxelGrid:
    """
    Union the closed bowl into the shell, then subtract the three inlets.

    Args:
        shell: Accumulator (mutated in place)
        config: Shell configuration

    Returns:
        The shell
    """
    logger.info(f"\n=== Step 3: Closed dome + 3 EDF inlets (R={config.dome_radius_mm} mm, "
                f"center Z={config.dome_center_z_mm}, {config.flow_wall_thickness_mm} mm wall) ===")

    shell.boolean_union(build_closed_bowl(config))
    shell.boolean_subtract(build_bowl_inlets(config))
    return shell


def add_legacy_open_dome(shell: VoxelGrid, config: ShellConfig) -> VoxelGrid:
    """Union the legacy open dome cap (no inlets) into the shell."""
    logger.info(f"\n=== Step 3: Integrate dome on leg junction (R={config.dome_outer_r} mm, "
                f"Z {config.dome_junction_z}..{config.dome_z_top}) ===")

    dome = _spherical_annulus(
        (0.0, 0.0, 0.0), config.dome_outer_r, config.dome_inner_r,
        z_min=config.dome_junction_z, z_max=config.dome_z_top,
        spacing=config.voxel_size_mm,
    )
    return shell.boolean_union(dome)


def add_enclosure(shell: VoxelGrid, config: ShellConfig) -> VoxelGrid:
    """Dispatch to the configured enclosure variant."""
    if config.dome_style is DomeStyle.CLOSED_BOWL:
        return add_closed_bowl_and_inlets(shell, config)
    return add_legacy_open_dome(shell, config)
