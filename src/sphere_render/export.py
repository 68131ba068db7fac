# export.py
import json
import logging
import os
from dataclasses import asdict, dataclass, field
from typing import List

import cv2
import numpy as np
import yaml

from .exceptions import ExportError

logger = logging.getLogger(__name__)


def encode_frame(img):
    """Transmittance grid indexed ``[i, j]`` -> ``(res, res, 4)`` uint16 RGBA raster.

    Pixel ``(i, j)`` lands in column ``i``, row ``j``. Gray channels hold
    ``v * 65535`` truncated, alpha is opaque. Values outside [0, 1], from
    net-negative density, are clamped.
    """
    val = (np.clip(np.asarray(img, dtype=np.float64).T, 0.0, 1.0) * 0xFFFF).astype(np.uint16)
    out = np.empty(val.shape + (4,), dtype=np.uint16)
    out[..., 0] = val
    out[..., 1] = val
    out[..., 2] = val
    out[..., 3] = 0xFFFF
    return out


def _ensure_parent(filename):
    parent = os.path.dirname(filename)
    if parent:
        os.makedirs(parent, exist_ok=True)


def write_frame(img, filename):
    """Write a 16-bit RGBA PNG. Raises ``ExportError`` if the file cannot be written."""
    try:
        _ensure_parent(filename)
        # gray channels, so OpenCV's BGRA order needs no swap
        ok = cv2.imwrite(filename, encode_frame(img))
    except (OSError, cv2.error) as e:
        raise ExportError(f"cannot write frame {filename}: {e}") from e
    if not ok:
        raise ExportError(f"cannot write frame {filename}")
    logger.debug("wrote frame %s", filename)


@dataclass
class FrameRecord:
    file_path: str
    transform_matrix: List[List[float]]


@dataclass
class TransformParams:
    camera_angle_x: float
    fl_x: float
    fl_y: float
    w: float
    h: float
    cx: float
    cy: float
    frames: List[FrameRecord] = field(default_factory=list)

    @classmethod
    def from_camera(cls, camera):
        return cls(
            camera_angle_x=float(camera.camera_angle_x),
            fl_x=float(camera.focal_length),
            fl_y=float(camera.focal_length),
            w=float(camera.res),
            h=float(camera.res),
            cx=camera.res / 2.0,
            cy=camera.res / 2.0,
        )

    def add_frame(self, file_path, transform):
        rows = np.asarray(transform, dtype=np.float64).tolist()
        self.frames.append(FrameRecord(file_path=file_path, transform_matrix=rows))

    def to_dict(self):
        return asdict(self)


def write_transforms(params, filename):
    try:
        _ensure_parent(filename)
        with open(filename, "w") as f:
            json.dump(params.to_dict(), f, indent=2)
    except (OSError, TypeError, ValueError) as e:
        raise ExportError(f"cannot write transforms {filename}: {e}") from e
    logger.info("wrote %d frames to %s", len(params.frames), filename)


def write_object_yaml(scene, filename):
    try:
        _ensure_parent(filename)
        with open(filename, "w") as f:
            yaml.safe_dump(scene.to_yaml(), f, sort_keys=False)
    except (OSError, yaml.YAMLError) as e:
        raise ExportError(f"cannot write scene description {filename}: {e}") from e
    logger.info("wrote scene description to %s", filename)
