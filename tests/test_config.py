import dataclasses

import pytest

from core.config import ConfigError, DetectorConfig, HorizonConfig, ProcessingConfig
from utils.config_manager import ConfigManager


def test_horizon_defaults():
    cfg = HorizonConfig()
    assert cfg.max_horizon_angle == 45
    assert cfg.wall_angle_tolerance == 15
    assert cfg.cluster_angle_tolerance == 8
    assert cfg.min_cluster_segments == 1
    assert cfg.smooth_frames == 5


def test_config_is_immutable():
    cfg = HorizonConfig()
    with pytest.raises(dataclasses.FrozenInstanceError):
        cfg.smooth_frames = 3


def test_from_mapping_converts_types():
    cfg = HorizonConfig.from_mapping({"smooth_frames": "7", "max_horizon_angle": 30})
    assert cfg.smooth_frames == 7
    assert isinstance(cfg.max_horizon_angle, float)
    assert HorizonConfig.from_mapping(None) == HorizonConfig()


def test_from_mapping_rejects_unknown_keys():
    with pytest.raises(ConfigError, match="smoothFrames"):
        HorizonConfig.from_mapping({"smoothFrames": 5})


@pytest.mark.parametrize(
    "kwargs",
    [
        {"smooth_frames": 0},
        {"min_cluster_segments": 0},
        {"max_horizon_angle": 0},
        {"max_horizon_angle": 120},
        {"cluster_angle_tolerance": -1},
    ],
)
def test_invalid_horizon_values(kwargs):
    with pytest.raises(ConfigError):
        HorizonConfig(**kwargs)


def test_invalid_detector_and_processing_values():
    with pytest.raises(ConfigError):
        DetectorConfig(blur_kernel=4)
    with pytest.raises(ConfigError):
        DetectorConfig(canny_low=200, canny_high=100)
    with pytest.raises(ConfigError):
        ProcessingConfig(process_width=0)
    with pytest.raises(ConfigError, match="expected int"):
        ProcessingConfig.from_mapping({"process_width": "wide"})


def test_config_manager_missing_file_uses_defaults(tmp_path):
    manager = ConfigManager(tmp_path / "absent.yaml")
    assert manager.horizon_config() == HorizonConfig()
    assert manager.processing_config().size == (640, 480)


def test_config_manager_merges_yaml(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("horizon:\n  smooth_frames: 9\nprocessing:\n  process_width: 320\n", encoding="utf-8")
    manager = ConfigManager(path)
    assert manager.horizon_config().smooth_frames == 9
    assert manager.horizon_config().max_horizon_angle == 45
    assert manager.processing_config().size == (320, 480)


def test_config_manager_overrides():
    manager = ConfigManager(None)
    manager.apply_override("horizon.cluster_angle_tolerance=4.5")
    manager.apply_override("renderer.grid.enabled=false")
    assert manager.horizon_config().cluster_angle_tolerance == 4.5
    assert manager.get_value("renderer.grid.enabled") is False
    assert manager.get_value("renderer.walls.color", "none") == "none"
    with pytest.raises(ValueError):
        manager.apply_override("no-equals-sign")


@pytest.mark.parametrize("value", [5.9, True, "2.5", float("inf")])
def test_int_fields_reject_fractions_and_bools(value):
    with pytest.raises(ConfigError, match="smooth_frames"):
        HorizonConfig.from_mapping({"smooth_frames": value})


def test_int_fields_accept_whole_floats():
    cfg = HorizonConfig.from_mapping({"smooth_frames": 5.0, "max_walls": "3"})
    assert cfg.smooth_frames == 5
    assert isinstance(cfg.smooth_frames, int)
    assert cfg.max_walls == 3


def test_direct_construction_checks_int_fields():
    with pytest.raises(ConfigError, match="expected int"):
        HorizonConfig(smooth_frames=2.5)
    with pytest.raises(ConfigError, match="expected int"):
        DetectorConfig(blur_kernel=True)


def test_float_fields_reject_non_numbers():
    with pytest.raises(ConfigError, match="expected float"):
        HorizonConfig.from_mapping({"max_horizon_angle": [30]})
    with pytest.raises(ConfigError, match="expected float"):
        DetectorConfig.from_mapping({"canny_low": False})


def test_section_must_be_a_mapping():
    with pytest.raises(ConfigError, match="horizon must be a mapping"):
        HorizonConfig.from_mapping(5)


def test_config_manager_malformed_yaml(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("horizon: [\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="malformed YAML"):
        ConfigManager(path)


def test_config_manager_top_level_must_be_mapping(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="top level"):
        ConfigManager(path)


def test_config_manager_empty_file_uses_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("# nothing here\n", encoding="utf-8")
    assert ConfigManager(path).horizon_config() == HorizonConfig()


def test_scalar_section_override_is_config_error():
    manager = ConfigManager(None)
    manager.apply_override("horizon=5")
    with pytest.raises(ConfigError, match="horizon must be a mapping"):
        manager.horizon_config()
    with pytest.raises(ConfigError, match="not a mapping"):
        manager.apply_override("horizon.smooth_frames=3")


def test_empty_yaml_section_accepts_nested_override(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("renderer:\n", encoding="utf-8")
    manager = ConfigManager(path)
    assert manager.renderer_config() == {}
    manager.set_value("renderer.debug.enabled", True)
    assert manager.get_value("renderer.debug.enabled") is True


def test_unparseable_override_value_is_config_error():
    manager = ConfigManager(None)
    with pytest.raises(ConfigError, match="Cannot parse"):
        manager.apply_override("renderer.grid.color=[1, 2")
