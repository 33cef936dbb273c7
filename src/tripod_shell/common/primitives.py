"""
Analytic primitives and their signed distance functions.

Every primitive evaluates a vectorised SDF on broadcastable coordinate
arrays (negative inside) and reports its axis-aligned bounds so the voxel
engine only samples the sub-box it touches.
"""

from dataclasses import dataclass
from typing import Iterable, Sequence, Tuple

import numpy as np


Vec3 = Tuple[float, float, float]


def _vec(p: Iterable[float]) -> np.ndarray:
    return np.asarray(tuple(p), dtype=np.float64).reshape(3)


@dataclass(frozen=True)
class BBox:
    """Axis-aligned box given by min and max corners (mm)."""
    min_corner: Vec3
    max_corner: Vec3

    @classmethod
    def from_tuple(cls, values: Sequence[float]) -> "BBox":
        """(xmin, ymin, zmin, xmax, ymax, zmax) -> BBox"""
        x0, y0, z0, x1, y1, z1 = (float(v) for v in values)
        return cls((x0, y0, z0), (x1, y1, z1))

    @classmethod
    def around(cls, center: Iterable[float], half_xy: float, z_min: float, z_max: float) -> "BBox":
        """Box spanning +-half_xy around center in X/Y and [z_min, z_max] in Z."""
        c = _vec(center)
        return cls(
            (c[0] - half_xy, c[1] - half_xy, z_min),
            (c[0] + half_xy, c[1] + half_xy, z_max),
        )

    @property
    def lo(self) -> np.ndarray:
        return _vec(self.min_corner)

    @property
    def hi(self) -> np.ndarray:
        return _vec(self.max_corner)

    def to_tuple(self) -> Tuple[float, ...]:
        return tuple(self.min_corner) + tuple(self.max_corner)


@dataclass(frozen=True)
class Sphere:
    center: Vec3
    radius: float

    def bounds(self) -> BBox:
        c = _vec(self.center)
        return BBox(tuple(c - self.radius), tuple(c + self.radius))

    def sdf(self, x: np.ndarray, y: np.ndarray, z: np.ndarray) -> np.ndarray:
        cx, cy, cz = self.center
        return np.sqrt((x - cx) ** 2 + (y - cy) ** 2 + (z - cz) ** 2) - self.radius


@dataclass(frozen=True)
class Cylinder:
    """Z-aligned cylinder centred on `center` (height spans center.z +- h/2)."""
    center: Vec3
    radius: float
    height: float

    def bounds(self) -> BBox:
        c = _vec(self.center)
        half = np.array([self.radius, self.radius, self.height * 0.5])
        return BBox(tuple(c - half), tuple(c + half))

    def sdf(self, x: np.ndarray, y: np.ndarray, z: np.ndarray) -> np.ndarray:
        cx, cy, cz = self.center
        radial = np.sqrt((x - cx) ** 2 + (y - cy) ** 2) - self.radius
        axial = np.abs(z - cz) - self.height * 0.5
        return np.maximum(radial, axial)


@dataclass(frozen=True)
class Beam:
    """
    Tapered capsule from p0 (radius r0) to p1 (radius r1).

    The radius interpolates linearly with the projection parameter along the
    axis. round_caps adds the end spheres; without them the beam is cut
    flat at both ends.
    """
    p0: Vec3
    p1: Vec3
    r0: float
    r1: float
    round_caps: bool = True

    def bounds(self) -> BBox:
        a, b = _vec(self.p0), _vec(self.p1)
        r = max(self.r0, self.r1)
        return BBox(tuple(np.minimum(a, b) - r), tuple(np.maximum(a, b) + r))

    def sdf(self, x: np.ndarray, y: np.ndarray, z: np.ndarray) -> np.ndarray:
        a, b = _vec(self.p0), _vec(self.p1)
        ab = b - a
        length_sq = float(ab @ ab)

        px, py, pz = x - a[0], y - a[1], z - a[2]
        if length_sq == 0.0:
            return np.sqrt(px ** 2 + py ** 2 + pz ** 2) - max(self.r0, self.r1)

        t_raw = (px * ab[0] + py * ab[1] + pz * ab[2]) / length_sq
        t = np.clip(t_raw, 0.0, 1.0)
        dx = px - t * ab[0]
        dy = py - t * ab[1]
        dz = pz - t * ab[2]
        radius = self.r0 + (self.r1 - self.r0) * t
        dist = np.sqrt(dx ** 2 + dy ** 2 + dz ** 2) - radius

        if self.round_caps:
            return dist

        # Flat ends: planes through p0 and p1 perpendicular to the axis
        length = np.sqrt(length_sq)
        cap = np.maximum(-t_raw, t_raw - 1.0) * length
        return np.maximum(dist, cap)


def ring_points(radial: float, z: float, count: int = 3, start_rad: float = 0.0) -> list:
    """Points evenly spaced on a horizontal circle, the first at start_rad."""
    step = 2.0 * np.pi / count
    return [
        (radial * float(np.cos(start_rad + i * step)),
         radial * float(np.sin(start_rad + i * step)),
         float(z))
        for i in range(count)
    ]
