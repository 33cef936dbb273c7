"""
Mesh operation utilities.

Statistics and clean-up for the extracted shell surface.
"""

import logging
from typing import Any, Dict

import numpy as np
import trimesh

logger = logging.getLogger(__name__)


def compute_mesh_stats(mesh: trimesh.Trimesh) -> Dict[str, Any]:
    """
    Compute mesh statistics for the export report.

    Args:
        mesh: Trimesh mesh object

    Returns:
        Dictionary of mesh statistics
    """
    if len(mesh.faces) == 0:
        return {
            "n_vertices": len(mesh.vertices),
            "n_faces": 0,
            "bounds": {"min": [0.0, 0.0, 0.0], "max": [0.0, 0.0, 0.0]},
            "extents": [0.0, 0.0, 0.0],
            "max_extent": 0.0,
            "volume": None,
            "surface_area": 0.0,
            "is_watertight": False,
        }

    bounds = mesh.bounds
    extents = mesh.extents

    return {
        "n_vertices": len(mesh.vertices),
        "n_faces": len(mesh.faces),
        "bounds": {
            "min": bounds[0].tolist(),
            "max": bounds[1].tolist()
        },
        "extents": extents.tolist(),
        "max_extent": float(max(extents)),
        "volume": float(mesh.volume) if mesh.is_watertight else None,
        "surface_area": float(mesh.area),
        "is_watertight": bool(mesh.is_watertight),
    }


def build_mesh(vertices: np.ndarray, faces: np.ndarray) -> trimesh.Trimesh:
    """Wrap marching cubes output, merging coincident vertices."""
    return trimesh.Trimesh(vertices=vertices, faces=faces, process=True)


def clean_mesh(mesh: trimesh.Trimesh) -> trimesh.Trimesh:
    """
    Drop degenerate and duplicate faces, unreferenced vertices, and make
    winding consistent with outward normals.

    Args:
        mesh: Input mesh (modified in place)

    Returns:
        The same mesh
    """
    n_before = len(mesh.faces)

    mesh.update_faces(mesh.nondegenerate_faces())
    mesh.update_faces(mesh.unique_faces())
    mesh.remove_unreferenced_vertices()
    mesh.fix_normals()

    logger.info(f"Mesh cleanup: {n_before}→{len(mesh.faces)} faces, "
                f"watertight={mesh.is_watertight}")

    return mesh
