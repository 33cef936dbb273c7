"""
Common modules for all shell construction stages.

Unit Model (NON-NEGOTIABLE):
- Millimetres everywhere, Z up, tripod axis = Z axis
- One voxel size per run; grids share a lattice anchored at the origin
"""

from .config import ShellConfig, DomeStyle, DEFAULT_CONFIG
from .primitives import BBox, Sphere, Cylinder, Beam, ring_points
from .voxel import VoxelGrid, Lattice, voxel_sphere, voxel_cylinder, voxel_beam
from .io import EmptySourceError, ShellMetadata, load_and_voxelize, save_mesh
from .mesh_ops import build_mesh, clean_mesh, compute_mesh_stats

__all__ = [
    'ShellConfig', 'DomeStyle', 'DEFAULT_CONFIG',
    'BBox', 'Sphere', 'Cylinder', 'Beam', 'ring_points',
    'VoxelGrid', 'Lattice', 'voxel_sphere', 'voxel_cylinder', 'voxel_beam',
    'EmptySourceError', 'ShellMetadata', 'load_and_voxelize', 'save_mesh',
    'build_mesh', 'clean_mesh', 'compute_mesh_stats',
]
