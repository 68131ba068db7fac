import pytest

from sphere_render.config import RenderConfig
from sphere_render.exceptions import ConfigError


def test_defaults_are_valid():
    config = RenderConfig().validate()
    assert config.res == 1024
    assert config.s_min == 5.0
    assert config.s_max == 7.0


@pytest.mark.parametrize("overrides", [
    {"res": 0},
    {"num_images": 0},
    {"fov": 180.0},
    {"radius": -1.0},
    {"step": 0.0},
    {"half_width": 0.0},
    {"integrator": "simpson"},
    {"scene": "teapot"},
    {"voxels": 0},
    {"arch": "tpu"},
    {"phi": 0.0},
    {"phi": 180.0},
    {"image_pattern": "pics/out{frame}.png"},
    {"image_pattern": "pics/out{}.png"},
])
def test_invalid_config(overrides):
    with pytest.raises(ConfigError):
        RenderConfig().update(**overrides).validate()


def test_update_ignores_none_and_rejects_unknown():
    config = RenderConfig().update(res=None, fov=30.0)
    assert config.res == 1024
    assert config.fov == 30.0
    with pytest.raises(ConfigError):
        RenderConfig().update(resolution=64)


def test_from_yaml(tmp_path):
    path = tmp_path / "run.yaml"
    path.write_text("res: 64\nscene: lattice\nintegrator: uniform\n")
    config = RenderConfig.from_yaml(str(path)).validate()
    assert config.res == 64
    assert config.scene == "lattice"
    assert config.integrator == "uniform"


def test_from_yaml_missing(tmp_path):
    with pytest.raises(ConfigError):
        RenderConfig.from_yaml(str(tmp_path / "missing.yaml"))
