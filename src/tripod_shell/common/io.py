"""
Surface I/O utilities.

Handles loading the source surface into the voxel lattice and saving the
finished shell with its metadata sidecar.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np
import trimesh

from .primitives import BBox
from .voxel import VoxelGrid

logger = logging.getLogger(__name__)


class EmptySourceError(ValueError):
    """Source surface is missing, unreadable, or has zero triangles."""


@dataclass
class ShellMetadata:
    """
    Metadata written next to every exported shell.

    Every exported mesh MUST include:
    - n_triangles / n_vertices of the written surface
    - input_triangles of the source surface (0 for procedural-only runs)
    - voxel_volume_mm3 measured before extraction
    """
    n_triangles: int
    n_vertices: int
    input_triangles: int
    voxel_size_mm: float
    voxel_volume_mm3: float
    mesh_volume_mm3: Optional[float]
    is_watertight: bool
    bounds: Dict[str, List[float]]
    stage_volumes_mm3: Dict[str, float] = field(default_factory=dict)
    generation_params: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "n_triangles": self.n_triangles,
            "n_vertices": self.n_vertices,
            "input_triangles": self.input_triangles,
            "voxel_size_mm": self.voxel_size_mm,
            "voxel_volume_mm3": self.voxel_volume_mm3,
            "mesh_volume_mm3": self.mesh_volume_mm3,
            "is_watertight": self.is_watertight,
            "bounds": self.bounds,
            "stage_volumes_mm3": self.stage_volumes_mm3,
            "generation_params": self.generation_params,
        }

    def save(self, path: Path) -> None:
        """Save metadata to JSON file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ShellMetadata":
        return cls(**data)


def load_source_mesh(path: Path) -> trimesh.Trimesh:
    """
    Load the source surface as a single mesh.

    Raises:
        EmptySourceError: path missing, unreadable, or zero triangles
    """
    path = Path(path)
    if not path.is_file():
        raise EmptySourceError(f"STL empty or failed: {path} (file not found)")

    try:
        mesh = trimesh.load(str(path), force="mesh")
    except Exception as e:
        raise EmptySourceError(f"STL empty or failed: {path} ({e})") from e

    if not isinstance(mesh, trimesh.Trimesh) or len(mesh.faces) == 0:
        raise EmptySourceError(f"STL empty or failed: {path} (0 triangles)")

    return mesh


def voxelize_mesh(mesh: trimesh.Trimesh, spacing: float) -> VoxelGrid:
    """
    Rasterize a surface mesh onto the shared lattice and fill its interior.

    trimesh places voxel centres at integer multiples of the pitch, which is
    exactly the lattice VoxelGrid uses. Filling closes small holes in the
    input surface.
    """
    voxels = mesh.voxelized(pitch=spacing, max_iter=None).fill()
    origin_index = np.round(np.asarray(voxels.translation) / spacing).astype(np.int64)
    return VoxelGrid.from_array(voxels.matrix, origin_index, spacing)


def load_and_voxelize(path: Path, spacing: float, bbox: BBox):
    """
    Load, voxelize and trim the source surface.

    Returns:
        Tuple of (VoxelGrid, input triangle count)
    """
    mesh = load_source_mesh(path)
    n_triangles = len(mesh.faces)
    grid = voxelize_mesh(mesh, spacing).trim(bbox)
    del mesh
    return grid, n_triangles


def save_mesh(mesh: trimesh.Trimesh, path: Path, metadata: ShellMetadata) -> Path:
    """
    Write the shell surface and its `.json` metadata sidecar.

    A surface that is not watertight is still written, since the slicer
    may repair it, but gets a warning.

    Returns:
        Path of the sidecar
    """
    path = Path(path)
    if len(mesh.faces) != metadata.n_triangles:
        raise ValueError(
            f"Metadata reports {metadata.n_triangles} triangles, mesh has {len(mesh.faces)}"
        )

    path.parent.mkdir(parents=True, exist_ok=True)
    mesh.export(str(path))

    meta_path = path.with_suffix('.json')
    metadata.save(meta_path)

    logger.info(f"Wrote {path.name} + {meta_path.name}: {metadata.n_triangles} tris, "
                f"watertight={metadata.is_watertight}")
    if not metadata.is_watertight:
        logger.warning(f"{path} is not watertight; check it before printing")
    return meta_path
