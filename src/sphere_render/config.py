# config.py
"""Run configuration for dataset rendering."""

from dataclasses import dataclass, fields, replace
from typing import Optional

import yaml

from .exceptions import ConfigError
from .presets import PRESETS
from .renderer import INTEGRATORS


@dataclass
class RenderConfig:
    # Image
    res: int = 1024
    fov: float = 45.0

    # Orbit
    radius: float = 6.0
    num_images: int = 4
    phi: float = 90.0

    # Integration over [radius - half_width, radius + half_width]
    step: float = 0.01
    half_width: float = 1.0
    integrator: str = "hierarchical"
    flat_field: float = 0.0

    # Scene: a preset name or a YAML file written by a previous run
    scene: str = "cube_minus_sphere"
    deform: bool = False

    # Output
    image_pattern: str = "pics/out{index}.png"
    transforms_path: str = "transforms.json"
    object_path: str = "object.yaml"
    preview: bool = False
    volume_path: Optional[str] = None
    voxels: int = 64

    arch: str = "cpu"

    @property
    def s_min(self):
        return self.radius - self.half_width

    @property
    def s_max(self):
        return self.radius + self.half_width

    def validate(self):
        if self.res <= 0:
            raise ConfigError(f"res must be positive, got {self.res}")
        if self.num_images <= 0:
            raise ConfigError(f"num_images must be positive, got {self.num_images}")
        if not 0.0 < self.fov < 180.0:
            raise ConfigError(f"fov must be in (0, 180) degrees, got {self.fov}")
        if not 0.0 < self.phi < 180.0:
            # the camera would look along the up axis
            raise ConfigError(f"phi must be in (0, 180) degrees, got {self.phi}")
        if self.radius <= 0.0:
            raise ConfigError(f"radius must be positive, got {self.radius}")
        if self.step <= 0.0:
            raise ConfigError(f"step must be positive, got {self.step}")
        if self.half_width <= 0.0:
            raise ConfigError(f"half_width must be positive, got {self.half_width}")
        if self.integrator not in INTEGRATORS:
            raise ConfigError(f"integrator must be one of {INTEGRATORS}, got {self.integrator!r}")
        if self.scene not in PRESETS and not self.scene.endswith((".yaml", ".yml")):
            raise ConfigError(f"scene must be one of {sorted(PRESETS)} or a .yaml file, got {self.scene!r}")
        if self.voxels <= 0:
            raise ConfigError(f"voxels must be positive, got {self.voxels}")
        if self.arch not in ("cpu", "gpu"):
            raise ConfigError(f"arch must be 'cpu' or 'gpu', got {self.arch!r}")
        try:
            self.image_pattern.format(index=0)
        except (KeyError, IndexError, ValueError) as e:
            raise ConfigError(f"image_pattern may only use the {{index}} placeholder, got {self.image_pattern!r}") from e
        return self

    def update(self, **overrides):
        """Copy with the non-None ``overrides`` applied."""
        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise ConfigError(f"unknown configuration keys: {sorted(unknown)}")
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    @classmethod
    def from_yaml(cls, filename):
        try:
            with open(filename) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"cannot read config {filename}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"config {filename} must be a mapping")
        return cls().update(**data)
