"""
Configuration and constants for shell generation.

Unit Model (NON-NEGOTIABLE):
- All dimensions are millimetres, Z is up, the tripod axis is the Z axis
- Voxel size is the single global sampling resolution for one run
- The config is frozen: derive variants with dataclasses.replace
"""

import json
import math
from dataclasses import dataclass, field, fields, replace, asdict
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from .primitives import BBox


class DomeStyle(Enum):
    """
    Enclosure variant - exactly one per run.

    CLOSED_BOWL (default): thick bowl sitting on the leg junction, with the
        three EDF inlets cut while the bowl is built.
    LEGACY_OPEN_DOME: hemispherical annulus without inlets; the inlets are
        cut as vertical cylinders after the flow walls are merged.
    """
    CLOSED_BOWL = "closed_bowl"
    LEGACY_OPEN_DOME = "legacy_open_dome"

    @property
    def cuts_inlets_in_dome(self) -> bool:
        return self is DomeStyle.CLOSED_BOWL

    @property
    def cuts_inlets_after_hollowing(self) -> bool:
        return not self.cuts_inlets_in_dome


# Fixed foot taper radius at the end of each leg
LEG_FOOT_TAPER_R = 12.0

# Fallback radii when leg_bulge_radii is too short
DEFAULT_BULGE_RADII = (18.0, 28.0, 18.0)


@dataclass(frozen=True)
class ShellConfig:
    """
    Parameter table for one tripod shell build.

    Defaults reproduce the tuned reference part. voxel_size_mm = 0.35 is
    laptop friendly; 0.24 is the final print resolution.
    """

    # Build mode
    voxel_size_mm: float = 0.35
    laptop_mode: bool = True
    preview_mode: bool = False

    # Safe global bbox (xmin, ymin, zmin, xmax, ymax, zmax)
    global_bbox: Tuple[float, float, float, float, float, float] = (
        -110.0, -110.0, -55.0, 110.0, 110.0, 110.0
    )

    # Enclosure variant
    dome_style: DomeStyle = DomeStyle.CLOSED_BOWL

    # Legacy open dome (origin centred, trimmed to a cap)
    dome_outer_r: float = 100.0
    dome_inner_r: float = 95.0
    dome_junction_z: float = 50.0
    dome_z_top: float = 100.0

    # Closed bowl
    dome_radius_mm: float = 115.0
    dome_center_z_mm: float = 58.0
    edf_inlet_radius_mm: float = 25.0
    edf_inlet_radial_position: float = 0.48

    # Organic legs
    leg_bulge_count: int = 3
    leg_bulge_radii: Tuple[float, ...] = DEFAULT_BULGE_RADII
    leg_start_radial_mm: float = 75.0
    leg_junction_z: float = 50.0
    leg_curve_strength: float = 42.0
    leg_outward_curve_mm: float = 48.0
    middle_bulge_radius_mm: float = 31.0

    # Feet
    foot_cylinder_r: float = 13.0
    foot_height_mm: float = 22.0
    foot_ground_z: float = -40.0
    foot_radial_mm: float = 70.0

    # Plenum & flow
    plenum_radius: float = 35.0
    plenum_z: float = 20.0
    plenum_z_min: float = 15.0
    plenum_z_max: float = 25.0
    flow_tube_r: float = 15.0
    flow_wall_thickness_mm: float = 5.0
    flow_side_exit_radial_mm: float = 90.0
    flow_side_exit_z: float = 50.0
    flow_curve_mid_z: float = 35.0
    flow_curve_mid_radial_mm: float = 70.0

    # Legacy vertical EDF inlets
    edf_inlet_radius: float = 25.0
    edf_inlet_z_top: float = 100.0
    edf_inlet_z_bottom: float = 20.0
    edf_inlet_radial_mm: float = 25.0

    # Ball joints & nozzles
    ball_r: float = 45.0
    ball_z: float = 75.0
    ball_diameter_mm: float = 24.0
    socket_tolerance_mm: float = 0.3
    nozzle_tip_r: float = 70.0
    nozzle_tip_z: float = -40.0
    nozzle_outer_r_base: float = 8.0
    nozzle_outer_r_tip: float = 6.0
    nozzle_inner_r_base: float = 3.0
    nozzle_inner_r_tip: float = 2.0
    nozzle_base_extra_r_mm: float = 1.5
    nozzle_base_thicken_height_mm: float = 10.0

    # Smoothing
    smoothing_offset_mm: float = 2.2
    smoothing_passes: int = 2

    # Optional reinforcement
    enable_mounting_bosses: bool = True
    enable_nozzle_base_thickening: bool = True

    # Mounting bosses
    boss_radius_mm: float = 4.0
    boss_height_mm: float = 8.0
    boss_hole_radius_mm: float = 1.5
    boss_z: float = 35.0
    boss_radial_mm: float = 22.0
    boss_angle_deg: float = 45.0

    # Surface extraction (gaussian sigma in voxels, 0 = raw occupancy)
    surface_blur_sigma: float = 0.5

    # Paths
    source_path: Optional[Path] = field(default_factory=lambda: Path("ref") / "source.stl")
    output_path: Path = field(default_factory=lambda: Path("outputs") / "tripod_shell.stl")

    def __post_init__(self):
        if self.voxel_size_mm <= 0:
            raise ValueError(f"voxel_size_mm must be positive, got {self.voxel_size_mm}")
        if len(self.global_bbox) != 6:
            raise ValueError("global_bbox needs six values (xmin, ymin, zmin, xmax, ymax, zmax)")

    # ----- Derived values -----

    @property
    def ball_radius_mm(self) -> float:
        return self.ball_diameter_mm * 0.5

    @property
    def socket_radius_mm(self) -> float:
        return self.ball_radius_mm + self.socket_tolerance_mm

    @property
    def deg120_rad(self) -> float:
        return math.pi * 2.0 / 3.0

    @property
    def bbox(self) -> BBox:
        return BBox.from_tuple(self.global_bbox)

    @property
    def smoothing_pass_count(self) -> int:
        """Laptop mode forces a single pass; otherwise at most two."""
        if self.laptop_mode:
            return 1
        return min(max(0, self.smoothing_passes), 2)

    def leg_outward_curve(self) -> float:
        """
        Outward bulge offset (mm) of the first leg waypoint.

        leg_outward_curve_mm wins when positive, otherwise the older
        leg_curve_strength is used. The two scale factors are tuned by eye.
        """
        if self.leg_outward_curve_mm > 0.0:
            return self.leg_outward_curve_mm * 0.25
        return self.leg_curve_strength * 0.12

    def leg_radii(self) -> Tuple[float, float, float, float]:
        """Radii (R0, R1, R2, R3) at the four leg waypoints."""
        radii = tuple(self.leg_bulge_radii or ())
        r0 = radii[0] if len(radii) > 0 else DEFAULT_BULGE_RADII[0]
        if self.middle_bulge_radius_mm > 0.0:
            r1 = self.middle_bulge_radius_mm
        else:
            r1 = radii[1] if len(radii) > 1 else DEFAULT_BULGE_RADII[1]
        r2 = radii[2] if len(radii) > 2 else DEFAULT_BULGE_RADII[2]
        return float(r0), float(r1), float(r2), LEG_FOOT_TAPER_R

    @property
    def bulge_count(self) -> int:
        """Bulge sections actually available, at least one."""
        n_radii = len(self.leg_bulge_radii) if self.leg_bulge_radii else len(DEFAULT_BULGE_RADII)
        return max(1, min(self.leg_bulge_count, n_radii))

    # ----- Serialization -----

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["dome_style"] = self.dome_style.value
        data["global_bbox"] = list(self.global_bbox)
        data["leg_bulge_radii"] = list(self.leg_bulge_radii)
        data["source_path"] = str(self.source_path) if self.source_path is not None else None
        data["output_path"] = str(self.output_path)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ShellConfig":
        """Build a config from (possibly partial) overrides on top of defaults."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown config keys: {unknown}")

        data = dict(data)
        if "dome_style" in data:
            data["dome_style"] = DomeStyle(data["dome_style"])
        if "global_bbox" in data:
            data["global_bbox"] = tuple(float(v) for v in data["global_bbox"])
        if "leg_bulge_radii" in data:
            data["leg_bulge_radii"] = tuple(float(v) for v in data["leg_bulge_radii"] or ())
        if "source_path" in data:
            data["source_path"] = Path(data["source_path"]) if data["source_path"] is not None else None
        if "output_path" in data:
            data["output_path"] = Path(data["output_path"])
        return cls(**data)

    @classmethod
    def from_json(cls, path: Path) -> "ShellConfig":
        """Load config overrides from JSON file."""
        with open(path) as f:
            return cls.from_dict(json.load(f))

    def save(self, path: Path) -> None:
        """Save config to JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    def with_overrides(self, **overrides: Any) -> "ShellConfig":
        return replace(self, **overrides)


# Global default config
DEFAULT_CONFIG = ShellConfig()
