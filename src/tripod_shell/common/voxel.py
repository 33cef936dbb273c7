"""
Voxel grid utilities for shell generation.

All grids live on one infinite lattice anchored at the world origin:
voxel (i, j, k) is centred at (i, j, k) * spacing. A grid only stores the
sub-box it occupies, so primitives stay cheap and booleans just align
integer offsets. All operations work in millimetres.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple, Union

import numpy as np
from scipy.ndimage import distance_transform_edt, gaussian_filter
from skimage.measure import marching_cubes

from .primitives import BBox, Beam, Cylinder, Sphere

logger = logging.getLogger(__name__)

Primitive = Union[Sphere, Cylinder, Beam]
SdfFn = Callable[[np.ndarray, np.ndarray, np.ndarray], np.ndarray]


def _index_range(bounds: BBox, spacing: float) -> Tuple[np.ndarray, np.ndarray]:
    """Inclusive lattice index range covering a world-space box."""
    lo = np.floor(bounds.lo / spacing).astype(np.int64)
    hi = np.ceil(bounds.hi / spacing).astype(np.int64)
    return lo, hi


def _axes(lo: np.ndarray, hi: np.ndarray, spacing: float):
    """Sparse world-coordinate axes for an inclusive index range."""
    axes = [np.arange(lo[d], hi[d] + 1) * spacing for d in range(3)]
    return np.meshgrid(*axes, indexing='ij', sparse=True)


@dataclass
class VoxelGrid:
    """
    3D occupancy grid on the shared lattice.

    `data` is a boolean array indexed [x, y, z]; `origin_index` is the
    lattice index of data[0, 0, 0]. After every operation the array is
    cropped to its occupied voxels, so an empty grid has size 0.
    """
    data: np.ndarray
    origin_index: np.ndarray
    spacing: float

    # ----- Construction -----

    @classmethod
    def empty(cls, spacing: float) -> "VoxelGrid":
        return cls(
            data=np.zeros((0, 0, 0), dtype=bool),
            origin_index=np.zeros(3, dtype=np.int64),
            spacing=float(spacing),
        )

    @classmethod
    def from_array(cls, data: np.ndarray, origin_index, spacing: float) -> "VoxelGrid":
        grid = cls(
            data=np.asarray(data, dtype=bool),
            origin_index=np.asarray(origin_index, dtype=np.int64).reshape(3),
            spacing=float(spacing),
        )
        return grid._shrink()

    @classmethod
    def from_sdf(cls, sdf: SdfFn, bounds: BBox, spacing: float) -> "VoxelGrid":
        """Rasterize an analytic SDF: voxels with sdf <= 0 are solid."""
        lo, hi = _index_range(bounds, spacing)
        x, y, z = _axes(lo, hi, spacing)
        return cls.from_array(sdf(x, y, z) <= 0.0, lo, spacing)

    @classmethod
    def from_primitive(cls, primitive: Primitive, spacing: float) -> "VoxelGrid":
        return cls.from_sdf(primitive.sdf, primitive.bounds(), spacing)

    def copy(self) -> "VoxelGrid":
        return VoxelGrid(
            data=self.data.copy(),
            origin_index=self.origin_index.copy(),
            spacing=self.spacing,
        )

    # ----- Properties -----

    @property
    def shape(self) -> Tuple[int, int, int]:
        return self.data.shape

    @property
    def is_empty(self) -> bool:
        return self.data.size == 0

    @property
    def voxel_count(self) -> int:
        return int(np.count_nonzero(self.data))

    @property
    def index_max(self) -> np.ndarray:
        """Inclusive lattice index of the last stored voxel."""
        return self.origin_index + np.array(self.shape, dtype=np.int64) - 1

    @property
    def bounds_mm(self) -> Optional[Tuple[np.ndarray, np.ndarray]]:
        """Return (min_corner, max_corner) of the occupied voxel cells."""
        if self.is_empty:
            return None
        half = 0.5 * self.spacing
        return (
            self.origin_index * self.spacing - half,
            self.index_max * self.spacing + half,
        )

    def world_to_grid(self, points_mm: np.ndarray) -> np.ndarray:
        """Convert world coordinates (mm) to local array indices."""
        return np.round(np.asarray(points_mm) / self.spacing).astype(np.int64) - self.origin_index

    def grid_to_world(self, indices: np.ndarray) -> np.ndarray:
        """Convert local array indices to world coordinates (mm)."""
        return (np.asarray(indices) + self.origin_index).astype(float) * self.spacing

    def contains_point(self, point_mm) -> bool:
        """True when the voxel nearest to point_mm is solid."""
        if self.is_empty:
            return False
        idx = self.world_to_grid(np.asarray(point_mm, dtype=float))
        if np.any(idx < 0) or np.any(idx >= np.array(self.shape)):
            return False
        return bool(self.data[tuple(idx)])

    # ----- Booleans (in place) -----

    def _check_spacing(self, other: "VoxelGrid") -> None:
        if not math.isclose(self.spacing, other.spacing, rel_tol=1e-9):
            raise ValueError(
                f"Voxel grids have different spacing ({self.spacing} vs {other.spacing})"
            )

    def _slices_in(self, lo: np.ndarray) -> Tuple[slice, ...]:
        start = self.origin_index - lo
        return tuple(slice(int(start[d]), int(start[d]) + self.shape[d]) for d in range(3))

    def boolean_union(self, other: "VoxelGrid") -> "VoxelGrid":
        """self |= other"""
        self._check_spacing(other)
        if other.is_empty:
            return self
        if self.is_empty:
            self.data = other.data.copy()
            self.origin_index = other.origin_index.copy()
            return self

        lo = np.minimum(self.origin_index, other.origin_index)
        hi = np.maximum(self.index_max, other.index_max)
        if np.array_equal(lo, self.origin_index) and np.array_equal(hi, self.index_max):
            merged = self.data
        else:
            merged = np.zeros(tuple(int(n) for n in hi - lo + 1), dtype=bool)
            merged[self._slices_in(lo)] = self.data
        merged[other._slices_in(lo)] |= other.data

        self.data = merged
        self.origin_index = lo
        return self

    def boolean_subtract(self, other: "VoxelGrid") -> "VoxelGrid":
        """
        Boolean subtraction: self AND NOT other.

        Used for every cut: inner spheres, inlets, sockets, bores.
        """
        self._check_spacing(other)
        if self.is_empty or other.is_empty:
            return self

        lo = np.maximum(self.origin_index, other.origin_index)
        hi = np.minimum(self.index_max, other.index_max)
        if np.any(hi < lo):
            return self

        mine = tuple(
            slice(int(lo[d] - self.origin_index[d]), int(hi[d] - self.origin_index[d]) + 1)
            for d in range(3)
        )
        theirs = tuple(
            slice(int(lo[d] - other.origin_index[d]), int(hi[d] - other.origin_index[d]) + 1)
            for d in range(3)
        )
        self.data[mine] &= ~other.data[theirs]
        return self._shrink()

    def __sub__(self, other: "VoxelGrid") -> "VoxelGrid":
        return self.copy().boolean_subtract(other)

    def __or__(self, other: "VoxelGrid") -> "VoxelGrid":
        return self.copy().boolean_union(other)

    def trim(self, bbox: BBox) -> "VoxelGrid":
        """Discard every voxel whose centre lies outside bbox (inclusive)."""
        if self.is_empty:
            return self
        eps = 1e-9
        lo = np.ceil(bbox.lo / self.spacing - eps).astype(np.int64)
        hi = np.floor(bbox.hi / self.spacing + eps).astype(np.int64)
        lo = np.maximum(lo, self.origin_index)
        hi = np.minimum(hi, self.index_max)
        if np.any(hi < lo):
            return self._clear()

        start = lo - self.origin_index
        stop = hi - self.origin_index + 1
        self.data = self.data[start[0]:stop[0], start[1]:stop[1], start[2]:stop[2]].copy()
        self.origin_index = lo
        return self._shrink()

    # ----- Offsets -----

    def offset(self, distance: float) -> "VoxelGrid":
        """
        Return a new grid offset by `distance` mm.

        distance > 0 dilates: every voxel within `distance` of a solid voxel.
        distance < 0 erodes: solid voxels farther than |distance| from the
        nearest empty voxel. Distances are exact Euclidean (EDT) between
        voxel centres, so a dilate/erode pair never removes material.
        """
        if self.is_empty or distance == 0:
            return self.copy()

        eps = 1e-6 * self.spacing
        if distance > 0:
            pad = int(np.ceil(distance / self.spacing)) + 1
            padded = np.pad(self.data, pad)
            dist = distance_transform_edt(~padded, sampling=self.spacing)
            result = dist <= distance + eps
        else:
            pad = 1
            padded = np.pad(self.data, pad)
            dist = distance_transform_edt(padded, sampling=self.spacing)
            result = dist > -distance + eps
        del dist

        return VoxelGrid.from_array(result, self.origin_index - pad, self.spacing)

    def apply_offset(self, distance: float) -> "VoxelGrid":
        """In-place form of offset(), used on the accumulator."""
        result = self.offset(distance)
        self.data = result.data
        self.origin_index = result.origin_index
        return self

    # ----- Measurement & extraction -----

    def measure(self) -> Tuple[float, Optional[Tuple[np.ndarray, np.ndarray]]]:
        """Return (enclosed volume in mm^3, bounds)."""
        return self.voxel_count * self.spacing ** 3, self.bounds_mm

    def to_mesh(
        self,
        threshold: float = 0.5,
        blur_sigma: float = 0.0,
        step_size: int = 1
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Extract mesh using marching cubes.

        The occupancy field is padded with empty voxels first, so the surface
        is always closed. Returns vertices in MILLIMETRES (world coordinates).

        Args:
            threshold: Isosurface threshold on the occupancy field
            blur_sigma: Optional Gaussian blur (voxels) before extraction
            step_size: Step size for marching cubes

        Returns:
            Tuple of (vertices_mm, faces)
        """
        if self.is_empty:
            return np.empty((0, 3)), np.empty((0, 3), dtype=int)

        pad = 2 + int(np.ceil(3.0 * blur_sigma))
        occupancy = np.pad(self.data, pad).astype(np.float32)
        if blur_sigma > 0:
            occupancy = gaussian_filter(occupancy, sigma=blur_sigma)

        try:
            verts, faces, _, _ = marching_cubes(
                occupancy,
                level=threshold,
                spacing=(self.spacing,) * 3,
                step_size=step_size,
                allow_degenerate=False
            )
        except ValueError as e:
            logger.error(f"Marching cubes failed: {e}")
            return np.empty((0, 3)), np.empty((0, 3), dtype=int)

        verts_mm = verts + (self.origin_index - pad) * self.spacing
        logger.debug(f"Extracted mesh: {len(verts_mm)} vertices, {len(faces)} faces")
        return verts_mm, faces

    # ----- Internals -----

    def _clear(self) -> "VoxelGrid":
        self.data = np.zeros((0, 0, 0), dtype=bool)
        self.origin_index = np.zeros(3, dtype=np.int64)
        return self

    def _shrink(self) -> "VoxelGrid":
        """Crop the array to its occupied voxels."""
        if self.data.size == 0 or not self.data.any():
            return self._clear()

        lo, hi = [], []
        for d in range(3):
            others = tuple(a for a in range(3) if a != d)
            occupied = np.flatnonzero(self.data.any(axis=others))
            lo.append(int(occupied[0]))
            hi.append(int(occupied[-1]) + 1)

        if lo != [0, 0, 0] or hi != list(self.shape):
            self.data = self.data[lo[0]:hi[0], lo[1]:hi[1], lo[2]:hi[2]].copy()
            self.origin_index = self.origin_index + np.array(lo, dtype=np.int64)
        return self


@dataclass
class Lattice:
    """
    Collection of beams and spheres rasterized together.

    Each primitive is only evaluated over its own bounding sub-box and OR-ed
    into one array, so a whole limb set costs a single allocation.
    """
    primitives: List[Primitive] = field(default_factory=list)

    def add_beam(self, p0, p1, r0: float, r1: float, round_caps: bool = True) -> "Lattice":
        self.primitives.append(Beam(tuple(p0), tuple(p1), float(r0), float(r1), round_caps))
        return self

    def add_sphere(self, center, radius: float) -> "Lattice":
        self.primitives.append(Sphere(tuple(center), float(radius)))
        return self

    def __len__(self) -> int:
        return len(self.primitives)

    def to_voxels(self, spacing: float) -> VoxelGrid:
        if not self.primitives:
            return VoxelGrid.empty(spacing)

        ranges = [_index_range(p.bounds(), spacing) for p in self.primitives]
        lo = np.min([r[0] for r in ranges], axis=0)
        hi = np.max([r[1] for r in ranges], axis=0)
        data = np.zeros(tuple(int(n) for n in hi - lo + 1), dtype=bool)

        for prim, (p_lo, p_hi) in zip(self.primitives, ranges):
            x, y, z = _axes(p_lo, p_hi, spacing)
            start = p_lo - lo
            stop = p_hi - lo + 1
            data[start[0]:stop[0], start[1]:stop[1], start[2]:stop[2]] |= prim.sdf(x, y, z) <= 0.0

        logger.debug(f"Rasterized lattice: {len(self.primitives)} primitives, shape {data.shape}")
        return VoxelGrid.from_array(data, lo, spacing)


def voxel_sphere(center, radius: float, spacing: float) -> VoxelGrid:
    return VoxelGrid.from_primitive(Sphere(tuple(center), float(radius)), spacing)


def voxel_cylinder(center, radius: float, height: float, spacing: float) -> VoxelGrid:
    return VoxelGrid.from_primitive(Cylinder(tuple(center), float(radius), float(height)), spacing)


def voxel_beam(p0, p1, r0: float, r1: float, spacing: float, round_caps: bool = True) -> VoxelGrid:
    return VoxelGrid.from_primitive(Beam(tuple(p0), tuple(p1), float(r0), float(r1), round_caps), spacing)
