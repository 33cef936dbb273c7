"""
Shell pipeline - ordered stages over one accumulator.

Load -> Legs -> Dome -> Flow walls -> (legacy inlets) -> Sockets/nozzles
-> Reinforcement -> Smoothing -> Export

Every stage has the same contract, run(shell, config) -> shell, and mutates
the accumulator in place. Intermediates live inside the stage that builds
them and are dropped once folded in.
"""

import gc
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from .common.config import ShellConfig
from .common.io import load_and_voxelize
from .common.voxel import VoxelGrid
from .dome.build import add_enclosure
from .features.build import add_ball_sockets_and_nozzles
from .finishing.build import ExportResult, apply_organic_smoothing, export_shell
from .flow.build import add_flow_walls, add_vertical_edf_inlets
from .legs.build import create_organic_tripod_legs
from .reinforcement.build import add_reinforcement

logger = logging.getLogger(__name__)

StageFn = Callable[[VoxelGrid, ShellConfig], VoxelGrid]


@dataclass(frozen=True)
class Stage:
    """A named accumulator transformation, optionally gated on the config."""
    name: str
    run: StageFn
    enabled: Callable[[ShellConfig], bool] = lambda config: True
    skip_reason: str = ""


@dataclass
class StageReport:
    name: str
    volume_mm3: float
    elapsed_ms: float
    skipped: bool = False


@dataclass
class SourceVolume:
    grid: VoxelGrid
    n_triangles: int


@dataclass
class PipelineResult:
    export: Optional[ExportResult]
    reports: List[StageReport] = field(default_factory=list)

    @property
    def stage_volumes(self):
        return {r.name: r.volume_mm3 for r in self.reports}


def build_stages(config: ShellConfig) -> List[Stage]:
    """Stages that fold into the accumulator after the legs seed it."""
    return [
        Stage("dome", add_enclosure),
        Stage("flow_walls", add_flow_walls),
        Stage(
            "legacy_inlets",
            add_vertical_edf_inlets,
            enabled=lambda c: c.dome_style.cuts_inlets_after_hollowing,
            skip_reason="EDF inlets already cut in dome",
        ),
        Stage("sockets_nozzles", add_ball_sockets_and_nozzles),
        Stage(
            "reinforcement",
            add_reinforcement,
            enabled=lambda c: not c.preview_mode,
            skip_reason="preview mode",
        ),
        Stage("smoothing", apply_organic_smoothing),
    ]


def load_source_volume(config: ShellConfig) -> Optional[SourceVolume]:
    """
    Stage 1: load and voxelize the source surface.

    Returns None for procedural-only runs (source_path is None).

    Raises:
        EmptySourceError: source missing, unreadable or without triangles
    """
    if config.source_path is None:
        logger.info("\n=== Step 1: No source surface (procedural-only run) ===")
        return None

    logger.info(f"\n=== Step 1: Load & voxelize input STL ({config.source_path}) ===")
    grid, n_triangles = load_and_voxelize(config.source_path, config.voxel_size_mm, config.bbox)
    _, bounds = grid.measure()
    if bounds is not None:
        logger.info(f"Triangles: {n_triangles}, bbox Z: {bounds[0][2]:.1f} .. {bounds[1][2]:.1f}")
    else:
        logger.info(f"Triangles: {n_triangles}, nothing inside the safe bbox")
    return SourceVolume(grid=grid, n_triangles=n_triangles)


class ShellPipeline:
    """
    Runs the full build once for a fixed configuration.

    Usage:
        result = ShellPipeline(ShellConfig()).run()
    """

    def __init__(self, config: ShellConfig, stages: Optional[List[Stage]] = None):
        self.config = config
        self.stages = stages if stages is not None else build_stages(config)
        self.reports: List[StageReport] = []
        self.input_triangles = 0

    def _record(self, name: str, shell: VoxelGrid, start: float, skipped: bool = False) -> None:
        volume, _ = shell.measure()
        elapsed_ms = (time.perf_counter() - start) * 1000
        self.reports.append(StageReport(name, volume, elapsed_ms, skipped))
        logger.info(f"[{name}] {volume:.0f} mm³ [{elapsed_ms:.0f} ms]")

    def build_volume(self) -> VoxelGrid:
        """Everything up to (not including) export. Returns the accumulator."""
        self.reports = []
        logger.info("=" * 60)
        logger.info("Tripod Shell: organic tripod build")
        logger.info("=" * 60)
        logger.info(f"Voxel size (mm): {self.config.voxel_size_mm}")

        source = load_source_volume(self.config)
        self.input_triangles = source.n_triangles if source is not None else 0
        # Reported only; the source is not merged into the shell
        del source

        start = time.perf_counter()
        shell = create_organic_tripod_legs(self.config)
        self._record("legs", shell, start)

        for stage in self.stages:
            start = time.perf_counter()
            if not stage.enabled(self.config):
                logger.info(f"[{stage.name}] skipped: {stage.skip_reason}")
                self._record(stage.name, shell, start, skipped=True)
                continue
            shell = stage.run(shell, self.config)
            self._record(stage.name, shell, start)

        return shell

    def run(self, output_path: Optional[Path] = None) -> PipelineResult:
        """Build and export. Exceptions propagate to the caller."""
        start = time.perf_counter()
        shell = self.build_volume()
        gc.collect()

        export = export_shell(
            shell,
            self.config,
            input_triangles=self.input_triangles,
            stage_volumes={r.name: r.volume_mm3 for r in self.reports},
            output_path=output_path,
        )
        logger.info(f"[Total] {(time.perf_counter() - start) * 1000:.0f} ms")
        return PipelineResult(export=export, reports=list(self.reports))
