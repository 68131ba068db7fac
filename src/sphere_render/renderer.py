# renderer.py
import logging

import numpy as np
import taichi as ti
from PIL import Image

from .integrator import march_hierarchical, march_uniform
from .ray import make_ray

logger = logging.getLogger(__name__)

INTEGRATORS = ("hierarchical", "uniform")


@ti.data_oriented
class Renderer:
    """Renders transmittance images of a scene, one pixel per parallel task.

    The image and direction fields are allocated once and reused for every
    frame. Each pixel task writes only its own cell of ``image``, so the only
    synchronisation needed is the join at the end of the kernel.
    """

    def __init__(self, scene, res, integrator="hierarchical", step=0.01,
                 s_min=5.0, s_max=7.0, flat_field=0.0):
        if integrator not in INTEGRATORS:
            raise ValueError(f"unknown integrator {integrator!r}, expected one of {INTEGRATORS}")
        self.scene = scene
        self.res = res
        self.integrator = integrator
        self.step = step
        self.s_min = s_min
        self.s_max = s_max
        self.flat_field = flat_field

        self.image = ti.field(dtype=ti.f64, shape=(res, res))
        self.directions = ti.Vector.field(3, dtype=ti.f64, shape=(res, res))
        self.origin = ti.Vector.field(3, dtype=ti.f64, shape=())

    @ti.func
    def render_pixel(self, i, j, ds, s_min, s_max, flat_field):
        ray = make_ray(self.origin[None], self.directions[i, j])
        if ti.static(self.integrator == "hierarchical"):
            self.image[i, j] = march_hierarchical(self.scene, ray, ds, s_min, s_max)
        else:
            self.image[i, j] = march_uniform(self.scene, ray, ds, s_min, s_max, flat_field)

    @ti.kernel
    def render_parallel(self, ds: ti.f64, s_min: ti.f64, s_max: ti.f64, flat_field: ti.f64):
        for i, j in self.image:
            self.render_pixel(i, j, ds, s_min, s_max, flat_field)

    @ti.kernel
    def render_serial(self, ds: ti.f64, s_min: ti.f64, s_max: ti.f64, flat_field: ti.f64):
        ti.loop_config(serialize=True)
        for i, j in ti.ndrange(self.res, self.res):
            self.render_pixel(i, j, ds, s_min, s_max, flat_field)

    @ti.kernel
    def clear_image(self):
        for i, j in self.image:
            self.image[i, j] = 0.0

    def set_camera(self, camera):
        if camera.res != self.res:
            raise ValueError(f"camera resolution {camera.res} does not match renderer resolution {self.res}")
        self.origin.from_numpy(camera.position.astype(np.float64))
        self.directions.from_numpy(camera.ray_directions().astype(np.float64))

    def render(self, camera):
        """Render one frame in parallel and return a copy of the ``(res, res)`` grid."""
        self.clear_image()
        self.set_camera(camera)
        self.render_parallel(self.step, self.s_min, self.s_max, self.flat_field)
        ti.sync()
        return self.image.to_numpy()

    def render_sequential(self, camera):
        """Same as ``render`` with pixels evaluated one after another."""
        self.clear_image()
        self.set_camera(camera)
        self.render_serial(self.step, self.s_min, self.s_max, self.flat_field)
        ti.sync()
        return self.image.to_numpy()

    def save_image(self, filename):
        """8-bit grayscale preview of the last frame, same orientation as the 16-bit export."""
        transmittance = np.clip(self.image.to_numpy().T, 0.0, 1.0)
        Image.fromarray(np.round(transmittance * 255.0).astype(np.uint8)).save(filename)
        logger.debug("wrote preview %s", filename)
