"""
Reinforcement: Local material (Stage 6c/6d)

- Nozzle base thickening: a short oversized beam down from each ball centre
  minus a bore at the nominal inner radius, so the passage never narrows.
- Mounting bosses: four bored standoffs at 90° spacing from boss_angle_deg.

The pipeline skips this stage in preview_mode.
"""

import logging
import math

from ..common.config import ShellConfig
from ..common.primitives import ring_points
from ..common.voxel import Lattice, VoxelGrid, voxel_cylinder
from ..features.build import ball_centers

logger = logging.getLogger(__name__)

BOSS_HOLE_EXTRA_HEIGHT_MM = 4.0


def add_nozzle_base_thickening(shell: VoxelGrid, config: ShellConfig) -> VoxelGrid:
    extra_r = config.nozzle_base_extra_r_mm
    h = config.nozzle_base_thicken_height_mm
    logger.info(f"\n=== Step 6c: Nozzle base thickening (+{extra_r} mm, h={h} mm) ===")

    r_outer = config.nozzle_outer_r_base + extra_r
    r_inner = config.nozzle_inner_r_base
    outer, inner = Lattice(), Lattice()
    for x, y, z in ball_centers(config):
        top, bottom = (x, y, z), (x, y, z - h)
        outer.add_beam(top, bottom, r_outer, r_outer, round_caps=True)
        inner.add_beam(top, bottom, r_inner, r_inner, round_caps=True)

    spacing = config.voxel_size_mm
    thick = outer.to_voxels(spacing).boolean_subtract(inner.to_voxels(spacing))
    return shell.boolean_union(thick)


def add_mounting_bosses(shell: VoxelGrid, config: ShellConfig) -> VoxelGrid:
    """Each boss: union the body, then bore a hole 4 mm taller than it."""
    logger.info(f"\n=== Step 6d: 4x mounting bosses R={config.boss_radius_mm} mm, "
                f"hole Ø{config.boss_hole_radius_mm * 2} mm ===")

    spacing = config.voxel_size_mm
    h = config.boss_height_mm
    centers = ring_points(config.boss_radial_mm, config.boss_z, count=4,
                          start_rad=math.radians(config.boss_angle_deg))
    for center in centers:
        shell.boolean_union(voxel_cylinder(center, config.boss_radius_mm, h, spacing))
        shell.boolean_subtract(
            voxel_cylinder(center, config.boss_hole_radius_mm, h + BOSS_HOLE_EXTRA_HEIGHT_MM, spacing)
        )
    return shell


def add_reinforcement(shell: VoxelGrid, config: ShellConfig) -> VoxelGrid:
    """Apply whichever reinforcements are switched on."""
    if config.enable_nozzle_base_thickening:
        add_nozzle_base_thickening(shell, config)
    if config.enable_mounting_bosses:
        add_mounting_bosses(shell, config)
    return shell
