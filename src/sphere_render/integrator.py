# integrator.py
"""Beer-Lambert integration of a density field along a ray.

Two strategies are provided. ``march_uniform`` steps with a fixed ``ds``
and can straddle a density discontinuity, which over- or under-estimates
the optical depth of that step. ``march_hierarchical`` takes coarse steps
of ``DS`` and only re-integrates a window with ``DS / 25`` steps when the
density switches between zero and non-zero across it. A boundary that is
entered and left within one coarse window is not seen.
"""
import taichi as ti

from .ray import make_ray, ray_point

REFINEMENT = 25.0


@ti.func
def march_uniform(field: ti.template(), ray: ti.template(), ds, s_min, s_max, flat_field):
    T = flat_field
    s = s_min
    while s < s_max:
        T += field.density(ray_point(ray, s)) * ds
        s += ds
    return ti.exp(-T)


@ti.func
def march_hierarchical(field: ti.template(), ray: ti.template(), DS, s_min, s_max):
    right = s_min + DS
    left = s_min
    ds = DS / REFINEMENT
    prev_rho = 0.0
    T = 0.0
    while right <= s_max:
        rho = field.density(ray_point(ray, right))
        if (rho == 0.0) != (prev_rho == 0.0):
            # material boundary somewhere in [left, right]
            left += ds
            while left < right:
                T += field.density(ray_point(ray, left)) * ds
                left += ds
            T += rho * ds
        else:
            T += rho * DS
        prev_rho = rho
        left = right
        right += DS
    return ti.exp(-T)


@ti.kernel
def _uniform_kernel(field: ti.template(), ox: ti.f64, oy: ti.f64, oz: ti.f64,
                    dx: ti.f64, dy: ti.f64, dz: ti.f64,
                    ds: ti.f64, s_min: ti.f64, s_max: ti.f64, flat_field: ti.f64) -> ti.f64:
    ray = make_ray(ti.Vector([ox, oy, oz], dt=ti.f64), ti.Vector([dx, dy, dz], dt=ti.f64))
    return march_uniform(field, ray, ds, s_min, s_max, flat_field)


@ti.kernel
def _hierarchical_kernel(field: ti.template(), ox: ti.f64, oy: ti.f64, oz: ti.f64,
                         dx: ti.f64, dy: ti.f64, dz: ti.f64,
                         DS: ti.f64, s_min: ti.f64, s_max: ti.f64) -> ti.f64:
    ray = make_ray(ti.Vector([ox, oy, oz], dt=ti.f64), ti.Vector([dx, dy, dz], dt=ti.f64))
    return march_hierarchical(field, ray, DS, s_min, s_max)


def integrate_along_ray(field, origin, direction, ds, s_min, s_max, flat_field=0.0):
    """Transmittance of a single ray using fixed steps of ``ds``."""
    return _uniform_kernel(field, *map(float, origin), *map(float, direction),
                           float(ds), float(s_min), float(s_max), float(flat_field))


def integrate_hierarchical(field, origin, direction, DS, s_min, s_max):
    """Transmittance of a single ray using coarse steps of ``DS`` with boundary refinement."""
    return _hierarchical_kernel(field, *map(float, origin), *map(float, direction),
                                float(DS), float(s_min), float(s_max))
