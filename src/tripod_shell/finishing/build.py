"""
Finishing: Organic smoothing and export (Stages 7-8)

Smoothing is a morphological closing: offset(+d) then offset(-d). Surface
regions flatter than d come back unchanged, narrow gaps and sharp concave
creases between unioned primitives get filled and rounded.

Export measures the voxel volume, frees memory, extracts a closed surface
with marching cubes, and writes STL + JSON metadata.
"""

import gc
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

import trimesh

from ..common.config import ShellConfig
from ..common.io import ShellMetadata, save_mesh
from ..common.mesh_ops import build_mesh, clean_mesh, compute_mesh_stats
from ..common.voxel import VoxelGrid

logger = logging.getLogger(__name__)


@dataclass
class ExportResult:
    """What the export stage wrote."""
    output_path: Path
    n_triangles: int
    input_triangles: int
    voxel_volume_mm3: float
    metadata: ShellMetadata


def apply_organic_smoothing(shell: VoxelGrid, config: ShellConfig) -> VoxelGrid:
    """
    Paired dilate/erode passes on the accumulator.

    Pass count comes from ShellConfig.smoothing_pass_count (one pass in
    laptop mode).
    """
    d = config.smoothing_offset_mm
    n = config.smoothing_pass_count
    logger.info(f"\n=== Step 7: Organic smoothing ({n}x offset +{d} / -{d} mm, "
                f"laptop={config.laptop_mode}) ===")

    for i in range(n):
        shell.apply_offset(d)
        shell.apply_offset(-d)
        logger.debug(f"Smoothing pass {i + 1}/{n}: {shell.voxel_count} voxels")
    return shell


def extract_surface(shell: VoxelGrid, config: ShellConfig) -> trimesh.Trimesh:
    """Marching cubes over the occupancy field, then mesh cleanup."""
    verts, faces = shell.to_mesh(threshold=0.5, blur_sigma=config.surface_blur_sigma)
    if len(verts) == 0:
        raise ValueError("Marching cubes produced empty mesh")
    return clean_mesh(build_mesh(verts, faces))


def export_shell(
    shell: VoxelGrid,
    config: ShellConfig,
    input_triangles: int,
    stage_volumes: Optional[Dict[str, float]] = None,
    output_path: Optional[Path] = None,
) -> ExportResult:
    """
    Extract the shell surface and write it with its metadata sidecar.

    Args:
        shell: Final accumulator
        config: Shell configuration
        input_triangles: Triangle count of the source surface
        stage_volumes: Per-stage voxel volumes for the metadata
        output_path: Overrides config.output_path

    Returns:
        ExportResult
    """
    output_path = Path(output_path or config.output_path)
    logger.info("\n=== Step 8: Export ===")

    volume_mm3, _ = shell.measure()
    logger.info(f"Volume: {volume_mm3:.2f} mm³")

    logger.info("Freeing memory before meshing...")
    gc.collect()

    mesh = extract_surface(shell, config)
    stats = compute_mesh_stats(mesh)

    metadata = ShellMetadata(
        n_triangles=stats["n_faces"],
        n_vertices=stats["n_vertices"],
        input_triangles=input_triangles,
        voxel_size_mm=config.voxel_size_mm,
        voxel_volume_mm3=float(volume_mm3),
        mesh_volume_mm3=stats["volume"],
        is_watertight=stats["is_watertight"],
        bounds=stats["bounds"],
        stage_volumes_mm3=dict(stage_volumes or {}),
        generation_params=config.to_dict(),
    )
    save_mesh(mesh, output_path, metadata)

    logger.info(f"Output: {output_path}")
    logger.info(f"Triangles: {metadata.n_triangles} (input was {input_triangles})")

    return ExportResult(
        output_path=output_path,
        n_triangles=metadata.n_triangles,
        input_triangles=input_triangles,
        voxel_volume_mm3=float(volume_mm3),
        metadata=metadata,
    )
