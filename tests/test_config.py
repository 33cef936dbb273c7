"""
Tests for ShellConfig and DomeStyle
"""

import dataclasses
import json

import pytest
from pathlib import Path
import sys

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from tripod_shell.common.config import (
    DEFAULT_BULGE_RADII,
    DEFAULT_CONFIG,
    LEG_FOOT_TAPER_R,
    DomeStyle,
    ShellConfig,
)


class TestDefaults:
    """Defaults reproduce the tuned reference part."""

    def test_build_mode(self):
        config = ShellConfig()
        assert config.voxel_size_mm == 0.35
        assert config.laptop_mode is True
        assert config.preview_mode is False
        assert config.dome_style is DomeStyle.CLOSED_BOWL

    def test_geometry(self):
        config = ShellConfig()
        assert config.global_bbox == (-110.0, -110.0, -55.0, 110.0, 110.0, 110.0)
        assert config.dome_radius_mm == 115.0
        assert config.dome_center_z_mm == 58.0
        assert config.edf_inlet_radial_position == 0.48
        assert config.ball_diameter_mm == 24.0
        assert config.socket_tolerance_mm == 0.3
        assert config.smoothing_offset_mm == 2.2

    def test_derived(self):
        config = ShellConfig()
        assert config.ball_radius_mm == 12.0
        assert config.socket_radius_mm == pytest.approx(12.3)
        assert config.bbox.to_tuple() == config.global_bbox

    def test_default_config_instance(self):
        assert DEFAULT_CONFIG == ShellConfig()


class TestValidation:

    def test_frozen(self):
        config = ShellConfig()
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.voxel_size_mm = 1.0

    def test_non_positive_voxel_size(self):
        with pytest.raises(ValueError):
            ShellConfig(voxel_size_mm=0.0)

    def test_bad_bbox(self):
        with pytest.raises(ValueError):
            ShellConfig(global_bbox=(0, 0, 0, 1, 1))

    def test_with_overrides_returns_new(self):
        config = ShellConfig()
        coarse = config.with_overrides(voxel_size_mm=2.0, preview_mode=True)
        assert coarse.voxel_size_mm == 2.0
        assert coarse.preview_mode is True
        assert config.voxel_size_mm == 0.35


class TestSerialization:
    """JSON overrides on top of defaults."""

    def test_partial_json(self, tmp_path):
        path = tmp_path / "overrides.json"
        path.write_text(json.dumps({
            "voxel_size_mm": 1.5,
            "dome_style": "legacy_open_dome",
            "leg_bulge_radii": [10, 20, 10],
            "source_path": None,
        }))

        config = ShellConfig.from_json(path)

        assert config.voxel_size_mm == 1.5
        assert config.dome_style is DomeStyle.LEGACY_OPEN_DOME
        assert config.leg_bulge_radii == (10.0, 20.0, 10.0)
        assert config.source_path is None
        assert config.ball_diameter_mm == 24.0

    def test_unknown_key_rejected(self):
        with pytest.raises(ValueError, match="Unknown config keys"):
            ShellConfig.from_dict({"voxel_size": 1.0})

    def test_bad_enum_value_rejected(self):
        with pytest.raises(ValueError):
            ShellConfig.from_dict({"dome_style": "open"})

    def test_save_and_reload(self, tmp_path):
        config = ShellConfig(voxel_size_mm=0.8, dome_style=DomeStyle.LEGACY_OPEN_DOME,
                             output_path=tmp_path / "out.stl")
        path = tmp_path / "cfg" / "config.json"
        config.save(path)

        assert ShellConfig.from_json(path) == config

    def test_to_dict_is_json_ready(self):
        data = ShellConfig().to_dict()
        json.dumps(data)
        assert data["dome_style"] == "closed_bowl"
        assert data["source_path"].endswith("source.stl")


class TestLegParameters:
    """Leg radii fallbacks and curve selection."""

    def test_default_radii(self):
        # middle_bulge_radius_mm overrides the middle entry
        assert ShellConfig().leg_radii() == (18.0, 31.0, 18.0, LEG_FOOT_TAPER_R)

    def test_middle_from_list_when_disabled(self):
        config = ShellConfig(middle_bulge_radius_mm=0.0, leg_bulge_radii=(10.0, 20.0, 15.0))
        assert config.leg_radii() == (10.0, 20.0, 15.0, 12.0)

    def test_short_list_falls_back(self):
        config = ShellConfig(middle_bulge_radius_mm=0.0, leg_bulge_radii=(9.0,))
        assert config.leg_radii() == (9.0, DEFAULT_BULGE_RADII[1], DEFAULT_BULGE_RADII[2], 12.0)

    def test_empty_list_falls_back(self):
        config = ShellConfig(middle_bulge_radius_mm=0.0, leg_bulge_radii=())
        assert config.leg_radii()[:3] == DEFAULT_BULGE_RADII

    def test_outward_curve_preferred(self):
        assert ShellConfig(leg_outward_curve_mm=48.0).leg_outward_curve() == pytest.approx(12.0)

    def test_curve_strength_fallback(self):
        config = ShellConfig(leg_outward_curve_mm=0.0, leg_curve_strength=42.0)
        assert config.leg_outward_curve() == pytest.approx(5.04)

    def test_bulge_count_clamped(self):
        assert ShellConfig(leg_bulge_count=10).bulge_count == 3
        assert ShellConfig(leg_bulge_count=0).bulge_count == 1


class TestSmoothingPasses:

    def test_laptop_mode_single_pass(self):
        assert ShellConfig(laptop_mode=True, smoothing_passes=5).smoothing_pass_count == 1

    @pytest.mark.parametrize("passes,expected", [(-1, 0), (0, 0), (1, 1), (2, 2), (7, 2)])
    def test_final_mode_clamped(self, passes, expected):
        config = ShellConfig(laptop_mode=False, smoothing_passes=passes)
        assert config.smoothing_pass_count == expected


class TestDomeStyle:

    @pytest.mark.parametrize("style", list(DomeStyle))
    def test_inlet_paths_are_complements(self, style):
        assert style.cuts_inlets_in_dome != style.cuts_inlets_after_hollowing

    def test_closed_bowl_cuts_in_dome(self):
        assert DomeStyle.CLOSED_BOWL.cuts_inlets_in_dome
        assert DomeStyle.LEGACY_OPEN_DOME.cuts_inlets_after_hollowing
