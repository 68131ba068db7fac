# ray.py
import taichi as ti


@ti.dataclass
class Ray:
    origin: ti.types.vector(3, ti.f64)
    direction: ti.types.vector(3, ti.f64)


@ti.func
def make_ray(origin, direction) -> Ray:
    # arc length along the ray is measured in world units
    return Ray(origin=origin, direction=direction.normalized())


@ti.func
def ray_point(ray: ti.template(), s):
    return ray.origin + ray.direction * s
