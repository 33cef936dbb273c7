"""
Flow: Internal duct network (Stages 4-5)

The flow volume is the FLUID path: a plenum disc (sphere trimmed to a
horizontal band) feeding three ducts that curve up through each leg to a
side exit. It is never merged as-is; hollowing turns it into a wall.

Hollowing is the canonical wall pattern of the whole part:

    wall = offset(V, t) - V

Wall thickness equals t exactly, independent of local curvature, and the
wall is connected because it comes from a single contiguous source.
"""

import logging

from ..common.config import ShellConfig
from ..common.primitives import BBox, ring_points
from ..common.voxel import Lattice, VoxelGrid, voxel_cylinder, voxel_sphere

logger = logging.getLogger(__name__)

PLENUM_TRIM_MARGIN_MM = 2.0
LEGACY_INLET_EXTRA_HEIGHT_MM = 4.0


def create_flow_volume(config: ShellConfig) -> VoxelGrid:
    """
    Solid plenum + three two-beam ducts at 120° spacing.

    Each duct runs from the plenum rim through a curved midpoint to the
    side exit with a constant tube radius.
    """
    spacing = config.voxel_size_mm
    logger.info("\n=== Step 4: Create flow volume (plenum + 3 curved tubes inside legs) ===")

    plenum = voxel_sphere((0.0, 0.0, config.plenum_z), config.plenum_radius, spacing)
    plenum.trim(BBox.around(
        (0.0, 0.0, 0.0), config.plenum_radius + PLENUM_TRIM_MARGIN_MM,
        config.plenum_z_min, config.plenum_z_max,
    ))

    tube_r = config.flow_tube_r
    starts = ring_points(config.plenum_radius, config.plenum_z)
    mids = ring_points(config.flow_curve_mid_radial_mm, config.flow_curve_mid_z)
    exits = ring_points(config.flow_side_exit_radial_mm, config.flow_side_exit_z)

    tubes = Lattice()
    for p0, p_mid, p_end in zip(starts, mids, exits):
        tubes.add_beam(p0, p_mid, tube_r, tube_r, round_caps=True)
        tubes.add_beam(p_mid, p_end, tube_r, tube_r, round_caps=True)

    flow = plenum.boolean_union(tubes.to_voxels(spacing))
    volume, _ = flow.measure()
    logger.info(f"Flow volume: {volume:.0f} mm³")
    return flow


def hollow_volume(solid: VoxelGrid, wall_thickness: float) -> VoxelGrid:
    """
    Outward offset minus the solid: a wall of exactly `wall_thickness`.

    Empty in, empty out. The input is left untouched.
    """
    if wall_thickness <= 0:
        raise ValueError(f"wall_thickness must be positive, got {wall_thickness}")
    return solid.offset(wall_thickness).boolean_subtract(solid)


def hollow_flow_system(flow: VoxelGrid, config: ShellConfig) -> VoxelGrid:
    """Hollow the flow volume with the configured flow wall thickness."""
    logger.info(f"\n=== Step 5: Hollow flow system "
                f"(offset {config.flow_wall_thickness_mm} mm, subtract flow) ===")

    walls = hollow_volume(flow, config.flow_wall_thickness_mm)
    volume, _ = walls.measure()
    logger.info(f"Hollow flow walls: {volume:.0f} mm³")
    return walls


def add_flow_walls(shell: VoxelGrid, config: ShellConfig) -> VoxelGrid:
    """Build the flow volume, hollow it, and union the walls into the shell."""
    flow = create_flow_volume(config)
    walls = hollow_flow_system(flow, config)
    del flow
    return shell.boolean_union(walls)


def add_vertical_edf_inlets(shell: VoxelGrid, config: ShellConfig) -> VoxelGrid:
    """
    Subtract three vertical inlet cylinders (legacy open dome only).

    The cylinder spans edf_inlet_z_bottom..edf_inlet_z_top plus 2 mm at
    each end so the cut is clean.
    """
    logger.info(f"\n=== Step 6a: 3x vertical EDF inlets R={config.edf_inlet_radius} mm "
                f"(Z={config.edf_inlet_z_bottom}..{config.edf_inlet_z_top}) ===")

    z_center = (config.edf_inlet_z_bottom + config.edf_inlet_z_top) * 0.5
    height = config.edf_inlet_z_top - config.edf_inlet_z_bottom + LEGACY_INLET_EXTRA_HEIGHT_MM
    for center in ring_points(config.edf_inlet_radial_mm, z_center):
        inlet = voxel_cylinder(center, config.edf_inlet_radius, height, config.voxel_size_mm)
        shell.boolean_subtract(inlet)
    return shell
