"""
Legs: Organic Tripod (Stage 2)

Three legs at 120° spacing, each a chain of tapered beams through four
waypoints with a sphere at every interior waypoint, standing on flat
cylindrical feet. The legs seed the shell accumulator; no dome yet.

Algorithm:
L1. Waypoints per leg: junction anchor -> outward bulge -> inner bulge -> foot
L2. Three round-capped tapered beams + two joint spheres per leg
L3. Rasterize all primitives in one lattice pass
L4. Union three foot cylinders
L5. Trim to the safe global bbox
"""

import logging
import math
from typing import List, Tuple

from ..common.config import ShellConfig
from ..common.voxel import Lattice, VoxelGrid, voxel_cylinder

logger = logging.getLogger(__name__)

Point = Tuple[float, float, float]


def leg_waypoints(config: ShellConfig, angle_rad: float) -> List[Point]:
    """
    Four waypoints (p0..p3) of one leg in the vertical plane at angle_rad.

    p0 sits under the dome junction, p1 bulges outward, p2 tucks back in
    at Z=8, p3 is the top of the foot cylinder.
    """
    r_start = config.leg_start_radial_mm
    z_junc = config.leg_junction_z
    curve = config.leg_outward_curve()

    radial_z = [
        (r_start, z_junc),
        (r_start + curve, z_junc - 17.0),
        (r_start - 2.0, 8.0),
        (config.foot_radial_mm, config.foot_ground_z + config.foot_height_mm),
    ]
    cx, cy = math.cos(angle_rad), math.sin(angle_rad)
    return [(r * cx, r * cy, z) for r, z in radial_z]


def build_leg_lattice(config: ShellConfig) -> Lattice:
    """
    Beams and joint spheres of all three legs.

    Consecutive beams with different radii do not blend on their own, so
    every interior waypoint also gets a sphere of its radius.
    """
    r0, r1, r2, r3 = config.leg_radii()
    lattice = Lattice()

    for i in range(3):
        p0, p1, p2, p3 = leg_waypoints(config, i * config.deg120_rad)
        lattice.add_beam(p0, p1, r0, r1, round_caps=True)
        lattice.add_beam(p1, p2, r1, r2, round_caps=True)
        lattice.add_beam(p2, p3, r2, r3, round_caps=True)
        lattice.add_sphere(p1, r1)
        lattice.add_sphere(p2, r2)

    return lattice


def create_organic_tripod_legs(config: ShellConfig) -> VoxelGrid:
    """
    Build the complete leg structure (beams, joints, feet), trimmed to the
    global bbox.

    Args:
        config: Shell configuration

    Returns:
        VoxelGrid owning the legs; becomes the shell accumulator
    """
    spacing = config.voxel_size_mm
    logger.info(f"\n=== Step 2: Create organic tripod legs "
                f"({config.bulge_count} bulges, feet R={config.foot_cylinder_r} mm) ===")

    legs = build_leg_lattice(config).to_voxels(spacing)

    z_foot_center = config.foot_ground_z + config.foot_height_mm * 0.5
    for i in range(3):
        a = i * config.deg120_rad
        center = (config.foot_radial_mm * math.cos(a), config.foot_radial_mm * math.sin(a), z_foot_center)
        legs.boolean_union(voxel_cylinder(center, config.foot_cylinder_r, config.foot_height_mm, spacing))

    legs.trim(config.bbox)

    logger.info(f"Leg radii R0..R3: {config.leg_radii()}, grid shape {legs.shape}")
    return legs
