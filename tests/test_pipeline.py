"""
Tests for pipeline orchestration and the command line entry point

Tests cover:
- Stage list and inlet path exclusivity
- Preview mode gating and stage reports
- End-to-end build (determinism, stage volumes, triangle counts)
- CLI exit codes and error reporting
"""

import json
import logging

import pytest
from pathlib import Path
import sys

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import trimesh

from tripod_shell.common.config import DomeStyle, ShellConfig
from tripod_shell.common.io import EmptySourceError
from tripod_shell.pipeline import ShellPipeline, Stage, build_stages, load_source_volume
from tripod_shell.run_all import main


STAGE_ORDER = [
    "legs", "dome", "flow_walls", "legacy_inlets",
    "sockets_nozzles", "reinforcement", "smoothing",
]


# ============== Fixtures ==============

@pytest.fixture
def fast_config(tmp_path):
    """3 mm voxels, procedural only."""
    return ShellConfig(
        voxel_size_mm=3.0,
        source_path=None,
        output_path=tmp_path / "shell.stl",
    )


@pytest.fixture
def box_stl(tmp_path):
    mesh = trimesh.creation.box(extents=(30.0, 30.0, 30.0))
    path = tmp_path / "source.stl"
    mesh.export(str(path))
    return path


@pytest.fixture
def fast_result(fast_config):
    return ShellPipeline(fast_config).run()


# ============== Stage List Tests ==============

class TestBuildStages:
    """Test the stage list and its gates."""

    def test_order(self):
        names = [s.name for s in build_stages(ShellConfig())]
        assert names == STAGE_ORDER[1:]

    @pytest.mark.parametrize("style", list(DomeStyle))
    def test_exactly_one_inlet_path(self, style):
        config = ShellConfig(dome_style=style)
        legacy = next(s for s in build_stages(config) if s.name == "legacy_inlets")
        assert legacy.enabled(config) != style.cuts_inlets_in_dome

    def test_reinforcement_gated_by_preview(self):
        stage = next(s for s in build_stages(ShellConfig()) if s.name == "reinforcement")
        assert stage.enabled(ShellConfig())
        assert not stage.enabled(ShellConfig(preview_mode=True))


class TestLoadSourceVolume:

    def test_no_source(self, fast_config):
        assert load_source_volume(fast_config) is None

    def test_missing_source(self, fast_config, tmp_path):
        config = fast_config.with_overrides(source_path=tmp_path / "missing.stl")
        with pytest.raises(EmptySourceError):
            load_source_volume(config)

    def test_box_source(self, fast_config, box_stl):
        source = load_source_volume(fast_config.with_overrides(source_path=box_stl))
        assert source.n_triangles == 12
        assert not source.grid.is_empty


# ============== Pipeline Tests ==============

class TestShellPipeline:
    """End-to-end runs at coarse resolution."""

    def test_reports_every_stage(self, fast_result):
        assert [r.name for r in fast_result.reports] == STAGE_ORDER

    def test_closed_bowl_skips_legacy_inlets(self, fast_result):
        skipped = {r.name for r in fast_result.reports if r.skipped}
        assert skipped == {"legacy_inlets"}

    def test_stage_volume_ordering(self, fast_result):
        v = fast_result.stage_volumes
        assert v["legs"] > 0
        # union-only stages and smoothing never lose material
        assert v["dome"] > v["legs"]
        assert v["flow_walls"] >= v["dome"]
        assert v["legacy_inlets"] == v["flow_walls"]
        assert v["smoothing"] >= v["reinforcement"]
        assert fast_result.export.voxel_volume_mm3 > v["legs"]

    def test_legacy_stage_volume_ordering(self, fast_config):
        config = fast_config.with_overrides(dome_style=DomeStyle.LEGACY_OPEN_DOME)
        result = ShellPipeline(config).run()
        v = result.stage_volumes

        assert v["dome"] > v["legs"]
        assert v["legacy_inlets"] < v["flow_walls"]
        assert v["smoothing"] >= v["reinforcement"]
        assert v["smoothing"] > v["legs"]
        assert result.export.voxel_volume_mm3 > v["legs"]

    def test_export(self, fast_result, fast_config):
        export = fast_result.export
        assert export.output_path == fast_config.output_path
        assert export.output_path.exists()
        assert export.n_triangles > 0
        assert export.input_triangles == 0
        assert export.voxel_volume_mm3 == pytest.approx(fast_result.stage_volumes["smoothing"])

    def test_metadata_sidecar(self, fast_result):
        with open(fast_result.export.output_path.with_suffix(".json")) as f:
            data = json.load(f)
        assert data["n_triangles"] == fast_result.export.n_triangles
        assert data["generation_params"]["voxel_size_mm"] == 3.0
        assert set(data["stage_volumes_mm3"]) == set(STAGE_ORDER)

    def test_deterministic(self, fast_config, tmp_path):
        first = ShellPipeline(fast_config).run(output_path=tmp_path / "a.stl")
        second = ShellPipeline(fast_config).run(output_path=tmp_path / "b.stl")

        assert first.export.n_triangles == second.export.n_triangles
        assert (tmp_path / "a.stl").read_bytes() == (tmp_path / "b.stl").read_bytes()

    def test_preview_mode(self, fast_config):
        config = fast_config.with_overrides(preview_mode=True)
        result = ShellPipeline(config).run()
        reports = {r.name: r for r in result.reports}

        assert reports["reinforcement"].skipped
        assert reports["reinforcement"].volume_mm3 == reports["sockets_nozzles"].volume_mm3

    def test_legacy_dome(self, fast_config):
        config = fast_config.with_overrides(dome_style=DomeStyle.LEGACY_OPEN_DOME, preview_mode=True)
        result = ShellPipeline(config).run()
        reports = {r.name: r for r in result.reports}

        assert not reports["legacy_inlets"].skipped
        assert reports["legacy_inlets"].volume_mm3 <= reports["flow_walls"].volume_mm3
        assert result.export.n_triangles > 0

    def test_source_counted_not_merged(self, fast_config, box_stl):
        config = fast_config.with_overrides(source_path=box_stl, preview_mode=True)
        with_source = ShellPipeline(config).run()
        without = ShellPipeline(fast_config.with_overrides(preview_mode=True)).run()

        assert with_source.export.input_triangles == 12
        assert with_source.stage_volumes == without.stage_volumes

    def test_custom_stages(self, fast_config):
        calls = []

        def mark(shell, config):
            calls.append(shell.voxel_count)
            return shell

        pipeline = ShellPipeline(fast_config, stages=[Stage("mark", mark)])
        shell = pipeline.build_volume()

        assert len(calls) == 1
        assert [r.name for r in pipeline.reports] == ["legs", "mark"]
        assert calls[0] == shell.voxel_count

    def test_stage_error_propagates(self, fast_config):
        def boom(shell, config):
            raise RuntimeError("stage failed")

        pipeline = ShellPipeline(fast_config, stages=[Stage("boom", boom)])
        with pytest.raises(RuntimeError):
            pipeline.run()
        assert not fast_config.output_path.exists()


# ============== Stage Volume Regression ==============

# Enclosed volume (mm³) after each stage, defaults at 2 mm voxels without a
# source surface. Any geometry change in a stage shows up here.
STAGE_VOLUMES_2MM = {
    DomeStyle.CLOSED_BOWL: {
        "legs": 481160.0,
        "smoothing": 861504.0,
    },
    DomeStyle.LEGACY_OPEN_DOME: {
        "legs": 481160.0,
        "flow_walls": 716296.0,
        "legacy_inlets": 654640.0,
        "smoothing": 697656.0,
    },
}


@pytest.fixture(scope="module", params=list(DomeStyle), ids=lambda s: s.value)
def volumes_2mm(request):
    config = ShellConfig(voxel_size_mm=2.0, source_path=None, dome_style=request.param)
    pipeline = ShellPipeline(config)
    pipeline.build_volume()
    return request.param, {r.name: r.volume_mm3 for r in pipeline.reports}


class TestStageVolumeRegression:
    """Pinned per-stage volumes for both enclosure variants."""

    def test_pinned_volumes(self, volumes_2mm):
        style, volumes = volumes_2mm
        for name, expected in STAGE_VOLUMES_2MM[style].items():
            assert volumes[name] == pytest.approx(expected), name

    def test_every_stage_reported(self, volumes_2mm):
        _, volumes = volumes_2mm
        assert list(volumes) == STAGE_ORDER

    def test_legs_shared_by_both_variants(self, volumes_2mm):
        _, volumes = volumes_2mm
        assert volumes["legs"] == pytest.approx(481160.0)


# ============== CLI Tests ==============

class TestCli:
    """Test the command line entry point."""

    def test_success(self, tmp_path):
        out = tmp_path / "cli" / "shell.stl"
        code = main(["--no-source", "--voxel-size", "3", "--preview", "--output", str(out)])

        assert code == 0
        assert out.exists()
        with open(out.parent / "run_summary.json") as f:
            summary = json.load(f)
        assert summary["n_triangles"] > 0
        assert [s["name"] for s in summary["stages"]] == STAGE_ORDER

    def test_missing_source_fails_once(self, tmp_path, caplog):
        out = tmp_path / "shell.stl"
        with caplog.at_level(logging.INFO):
            code = main(["--source", str(tmp_path / "missing.stl"),
                         "--voxel-size", "3", "--output", str(out)])

        assert code == 1
        errors = [r for r in caplog.records if r.levelno >= logging.ERROR]
        assert len(errors) == 1
        assert "STL empty or failed" in errors[0].getMessage()
        assert not out.exists()
        assert not (tmp_path / "run_summary.json").exists()

    def test_bad_config_key(self, tmp_path, caplog):
        cfg = tmp_path / "bad.json"
        cfg.write_text(json.dumps({"not_a_parameter": 1}))
        with caplog.at_level(logging.INFO):
            code = main(["--config", str(cfg), "--no-source"])

        assert code == 1
        errors = [r for r in caplog.records if r.levelno >= logging.ERROR]
        assert len(errors) == 1

    def test_config_file_with_flags(self, tmp_path):
        cfg = tmp_path / "cfg.json"
        out = tmp_path / "from_config.stl"
        cfg.write_text(json.dumps({
            "voxel_size_mm": 3.0,
            "source_path": None,
            "output_path": str(out),
            "dome_style": "closed_bowl",
        }))
        code = main(["--config", str(cfg), "--preview", "--legacy-dome"])

        assert code == 0
        with open(out.with_suffix(".json")) as f:
            params = json.load(f)["generation_params"]
        assert params["dome_style"] == "legacy_open_dome"
        assert params["preview_mode"] is True
