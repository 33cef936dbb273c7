#!/usr/bin/env python3
"""
Tripod Shell - Orchestrator

Build the shell once from the parameter table and write STL + metadata.

Usage:
    python -m tripod_shell.run_all --source ref/source.stl
    python -m tripod_shell.run_all --no-source --voxel-size 1.0 --preview
    python -m tripod_shell.run_all --config final.json --final
"""

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from .common.config import DomeStyle, ShellConfig
from .common.io import EmptySourceError
from .pipeline import ShellPipeline

logger = logging.getLogger(__name__)


def config_from_args(args: argparse.Namespace) -> ShellConfig:
    """Defaults <- JSON config file <- command line flags."""
    config = ShellConfig.from_json(args.config) if args.config else ShellConfig()

    overrides = {}
    if args.no_source:
        overrides["source_path"] = None
    elif args.source is not None:
        overrides["source_path"] = args.source
    if args.output is not None:
        overrides["output_path"] = args.output
    if args.voxel_size is not None:
        overrides["voxel_size_mm"] = args.voxel_size
    if args.preview:
        overrides["preview_mode"] = True
    if args.final:
        overrides["laptop_mode"] = False
    if args.legacy_dome:
        overrides["dome_style"] = DomeStyle.LEGACY_OPEN_DOME

    return config.with_overrides(**overrides) if overrides else config


def run(config: ShellConfig) -> dict:
    """
    Run the pipeline once and return a summary dictionary.

    Raises whatever the pipeline raises; main() is the only place that
    reports errors.
    """
    result = ShellPipeline(config).run()
    export = result.export
    return {
        "timestamp": datetime.now().isoformat(),
        "config": config.to_dict(),
        "output": str(export.output_path),
        "n_triangles": export.n_triangles,
        "input_triangles": export.input_triangles,
        "voxel_volume_mm3": export.voxel_volume_mm3,
        "stages": [
            {
                "name": r.name,
                "volume_mm3": r.volume_mm3,
                "elapsed_ms": r.elapsed_ms,
                "skipped": r.skipped,
            }
            for r in result.reports
        ],
    }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Tripod Shell - build the organic tripod shell STL"
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        help="JSON file with parameter overrides"
    )
    parser.add_argument(
        "--source", "-s",
        type=Path,
        default=None,
        help="Source STL surface"
    )
    parser.add_argument(
        "--no-source",
        action="store_true",
        help="Procedural-only run without a source surface"
    )
    parser.add_argument(
        "--output", "-o",
        type=Path,
        default=None,
        help="Output STL path"
    )
    parser.add_argument(
        "--voxel-size", "-r",
        type=float,
        default=None,
        help="Voxel size in mm (0.35 laptop, 0.24 final print)"
    )
    parser.add_argument(
        "--preview",
        action="store_true",
        help="Skip reinforcement (bosses, nozzle base thickening)"
    )
    parser.add_argument(
        "--final",
        action="store_true",
        help="Disable laptop mode (full smoothing passes)"
    )
    parser.add_argument(
        "--legacy-dome",
        action="store_true",
        help="Use the legacy open dome instead of the closed bowl"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose logging"
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    try:
        config = config_from_args(args)
        summary = run(config)
    except EmptySourceError as e:
        logger.error(f"Input error: {e}")
        return 1
    except Exception as e:
        logger.error(f"ERROR: {e}")
        logger.debug("Traceback:", exc_info=True)
        return 1

    summary_path = Path(summary["output"]).parent / "run_summary.json"
    with open(summary_path, 'w') as f:
        json.dump(summary, f, indent=2)

    logger.info(f"\nSummary saved to: {summary_path}")
    logger.info(f"\n{'='*60}")
    logger.info(f"COMPLETE: {summary['n_triangles']} triangles -> {summary['output']}")
    logger.info(f"{'='*60}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
