"""
Features: Ball sockets and tapered nozzles (Stage 6b)

Order matters:
1. Union three balls (nominal radius) at 120° spacing
2. Subtract three sockets of radius ball + tolerance at the same centres,
   leaving a cavity that receives a separate ball with the configured gap
3. Union hollow tapered nozzle tubes from each ball centre to its tip
"""

import logging
from typing import List, Tuple

from ..common.config import ShellConfig
from ..common.primitives import ring_points
from ..common.voxel import Lattice, VoxelGrid

logger = logging.getLogger(__name__)

Point = Tuple[float, float, float]


def ball_centers(config: ShellConfig) -> List[Point]:
    return ring_points(config.ball_r, config.ball_z)


def nozzle_tips(config: ShellConfig) -> List[Point]:
    return ring_points(config.nozzle_tip_r, config.nozzle_tip_z)


def add_balls(shell: VoxelGrid, config: ShellConfig) -> VoxelGrid:
    lattice = Lattice()
    for c in ball_centers(config):
        lattice.add_sphere(c, config.ball_radius_mm)
    return shell.boolean_union(lattice.to_voxels(config.voxel_size_mm))


def cut_sockets(shell: VoxelGrid, config: ShellConfig) -> VoxelGrid:
    """Carve spherical sockets of radius ball_radius + socket_tolerance."""
    lattice = Lattice()
    for c in ball_centers(config):
        lattice.add_sphere(c, config.socket_radius_mm)
    return shell.boolean_subtract(lattice.to_voxels(config.voxel_size_mm))


def build_tapered_tubes(
    config: ShellConfig,
    starts: List[Point],
    ends: List[Point],
    outer_radii: Tuple[float, float],
    inner_radii: Tuple[float, float],
) -> VoxelGrid:
    """Outer tapered beams minus concentric inner beams."""
    outer, inner = Lattice(), Lattice()
    for p0, p1 in zip(starts, ends):
        outer.add_beam(p0, p1, *outer_radii, round_caps=True)
        inner.add_beam(p0, p1, *inner_radii, round_caps=True)

    spacing = config.voxel_size_mm
    return outer.to_voxels(spacing).boolean_subtract(inner.to_voxels(spacing))


def add_tapered_nozzles(shell: VoxelGrid, config: ShellConfig) -> VoxelGrid:
    nozzles = build_tapered_tubes(
        config,
        ball_centers(config),
        nozzle_tips(config),
        outer_radii=(config.nozzle_outer_r_base, config.nozzle_outer_r_tip),
        inner_radii=(config.nozzle_inner_r_base, config.nozzle_inner_r_tip),
    )
    return shell.boolean_union(nozzles)


def add_ball_sockets_and_nozzles(shell: VoxelGrid, config: ShellConfig) -> VoxelGrid:
    """
    Balls, then sockets, then nozzles.

    Args:
        shell: Accumulator (mutated in place)
        config: Shell configuration

    Returns:
        The shell
    """
    logger.info(f"\n=== Step 6b: Ball sockets (Ø{config.ball_diameter_mm} mm, "
                f"tolerance {config.socket_tolerance_mm} mm) + tapered hollow nozzles ===")

    add_balls(shell, config)
    cut_sockets(shell, config)
    add_tapered_nozzles(shell, config)
    return shell
