# main.py
import argparse
import logging
import os
import sys
import time

import taichi as ti
from tqdm import tqdm

from .camera import Camera
from .config import RenderConfig
from .exceptions import ConfigError, ExportError
from .export import TransformParams, write_frame, write_object_yaml, write_transforms
from .presets import build_scene
from .renderer import INTEGRATORS, Renderer
from .volume import Volume

logger = logging.getLogger("sphere_render")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Render an orbit of transmittance images and camera poses of a density field.")
    parser.add_argument("--config", help="YAML file with RenderConfig fields")
    parser.add_argument("--res", type=int)
    parser.add_argument("--fov", type=float)
    parser.add_argument("--radius", type=float)
    parser.add_argument("--num-images", dest="num_images", type=int)
    parser.add_argument("--step", type=float)
    parser.add_argument("--half-width", dest="half_width", type=float)
    parser.add_argument("--integrator", choices=INTEGRATORS)
    parser.add_argument("--scene", help="preset name or scene YAML file")
    parser.add_argument("--deform", action="store_true", default=None)
    parser.add_argument("--image-pattern", dest="image_pattern")
    parser.add_argument("--transforms", dest="transforms_path")
    parser.add_argument("--object", dest="object_path")
    parser.add_argument("--preview", action="store_true", default=None)
    parser.add_argument("--volume", dest="volume_path", help="also write the voxelised density as .mhd")
    parser.add_argument("--voxels", type=int)
    parser.add_argument("--arch", choices=("cpu", "gpu"))
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


def build_config(args):
    config = RenderConfig.from_yaml(args.config) if args.config else RenderConfig()
    overrides = {k: v for k, v in vars(args).items() if k not in ("config", "verbose")}
    return config.update(**overrides).validate()


def render_dataset(config):
    """Render every frame of the orbit and write the dataset. Returns the number of failed writes."""
    ti.init(arch=ti.gpu if config.arch == "gpu" else ti.cpu, default_fp=ti.f64)

    scene = build_scene(config.scene, config.deform)
    renderer = Renderer(scene, config.res, integrator=config.integrator, step=config.step,
                        s_min=config.s_min, s_max=config.s_max, flat_field=config.flat_field)
    cameras = Camera.orbit(config.num_images, config.res, phi=config.phi,
                           radius=config.radius, fov=config.fov)
    params = TransformParams.from_camera(cameras[0])

    failures = 0
    for index, camera in enumerate(tqdm(cameras, desc="Rendering", unit="frame")):
        img = renderer.render(camera)
        filename = config.image_pattern.format(index=index)
        try:
            write_frame(img, filename)
        except ExportError as e:
            logger.error("frame %d: %s", index, e)
            failures += 1
            continue
        params.add_frame(filename, camera.camera_to_world())
        if config.preview:
            preview = os.path.splitext(filename)[0] + "_preview.png"
            try:
                renderer.save_image(preview)
            except OSError as e:
                logger.error("frame %d preview %s: %s", index, preview, e)
                failures += 1

    try:
        write_transforms(params, config.transforms_path)
    except ExportError as e:
        logger.error("%s", e)
        failures += 1
    try:
        write_object_yaml(scene, config.object_path)
    except ExportError as e:
        logger.error("%s", e)
        failures += 1
    if config.volume_path:
        try:
            Volume(scene, voxels=config.voxels).save(config.volume_path)
        except ExportError as e:
            logger.error("%s", e)
            failures += 1
    return failures


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    start_time = time.time()
    try:
        config = build_config(args)
        failures = render_dataset(config)
    except ConfigError as e:
        logger.error("configuration error: %s", e)
        return 2
    logger.info("finished in %.2f s", time.time() - start_time)
    if failures:
        logger.error("%d output(s) could not be written", failures)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
