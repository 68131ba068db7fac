# volume.py
import logging

import numpy as np
import SimpleITK as sitk
import taichi as ti

from .exceptions import ExportError

logger = logging.getLogger(__name__)


@ti.data_oriented
class Volume:
    """Density of a scene sampled at voxel centres of a cube of side ``extent``."""

    def __init__(self, scene, voxels=64, extent=1.0, center=(0.0, 0.0, 0.0)):
        self.scene = scene
        self.shape = (voxels, voxels, voxels)
        self.spacing = np.full(3, extent / voxels)
        self.origin = np.asarray(center, dtype=np.float64) - extent / 2.0 + self.spacing / 2.0

        self.volume = ti.field(dtype=ti.f64, shape=self.shape)
        self.volume_origin = ti.Vector.field(3, dtype=ti.f64, shape=())
        self.volume_spacing = ti.Vector.field(3, dtype=ti.f64, shape=())
        self.volume_origin.from_numpy(self.origin)
        self.volume_spacing.from_numpy(self.spacing)

    @ti.kernel
    def sample(self):
        for i, j, k in self.volume:
            p = self.volume_origin[None] + ti.Vector([i, j, k], dt=ti.f64) * self.volume_spacing[None]
            self.volume[i, j, k] = self.scene.density(p)

    def to_numpy(self):
        """Sampled densities indexed ``[x, y, z]``."""
        self.sample()
        return self.volume.to_numpy()

    def save(self, filename):
        data = np.transpose(self.to_numpy(), (2, 1, 0)).astype(np.float32)
        itkimage = sitk.GetImageFromArray(data)
        itkimage.SetOrigin(tuple(float(c) for c in self.origin))
        itkimage.SetSpacing(tuple(float(c) for c in self.spacing))
        try:
            sitk.WriteImage(itkimage, filename)
        except RuntimeError as e:
            raise ExportError(f"cannot write volume {filename}: {e}") from e
        logger.info("wrote %s voxel volume to %s", "x".join(map(str, self.shape)), filename)


def load_volume(filename):
    """Read a saved volume as ``(data[x, y, z], origin, spacing)``, the layout of ``Volume.to_numpy``."""
    try:
        itkimage = sitk.ReadImage(filename)
    except RuntimeError as e:
        raise ExportError(f"cannot read volume {filename}: {e}") from e
    # SimpleITK arrays are indexed [z, y, x]
    data = np.transpose(sitk.GetArrayFromImage(itkimage), (2, 1, 0))
    return data, np.asarray(itkimage.GetOrigin()), np.asarray(itkimage.GetSpacing())
