# scene.py
from dataclasses import dataclass, field
from typing import List, Sequence

import numpy as np
import taichi as ti
import yaml

from .deformation import GaussianDisplacement
from .exceptions import ConfigError

SPHERE = 0
CUBE = 1
CYLINDER = 2
LATTICE = 3


def _vec(v):
    return [float(c) for c in v]


@dataclass
class Sphere:
    center: Sequence[float] = (0.0, 0.0, 0.0)
    radius: float = 0.5
    rho: float = 1.0

    def to_yaml(self):
        return {"type": "sphere", "center": _vec(self.center),
                "radius": float(self.radius), "rho": float(self.rho)}


@dataclass
class Cube:
    """Axis aligned cube of edge length ``side``."""
    center: Sequence[float] = (0.0, 0.0, 0.0)
    side: float = 1.0
    rho: float = 1.0

    def to_yaml(self):
        return {"type": "cube", "center": _vec(self.center),
                "side": float(self.side), "rho": float(self.rho)}


@dataclass
class Cylinder:
    """Finite cylinder around the segment p0 -> p1, flat caps."""
    p0: Sequence[float]
    p1: Sequence[float]
    radius: float
    rho: float = 1.0

    def to_yaml(self):
        return {"type": "cylinder", "p0": _vec(self.p0), "p1": _vec(self.p1),
                "radius": float(self.radius), "rho": float(self.rho)}


@dataclass
class Lattice:
    """Union of struts. A point inside any strut contributes ``rho`` once."""
    struts: List[Cylinder] = field(default_factory=list)
    rho: float = 1.0

    def bounds(self):
        if not self.struts:
            return np.zeros(3), np.zeros(3)
        p = np.array([s.p0 for s in self.struts] + [s.p1 for s in self.struts], dtype=np.float64)
        r = max(s.radius for s in self.struts)
        return p.min(axis=0) - r, p.max(axis=0) + r

    def to_yaml(self):
        return {"type": "lattice", "rho": float(self.rho),
                "struts": [s.to_yaml() for s in self.struts]}


@dataclass
class ObjectCollection:
    """Objects whose densities are summed; negative ``rho`` carves material out."""
    objects: list = field(default_factory=list)

    def to_yaml(self):
        return {"type": "object_collection",
                "objects": [o.to_yaml() for o in self.objects]}


def flatten(obj):
    if isinstance(obj, ObjectCollection):
        out = []
        for o in obj.objects:
            out.extend(flatten(o))
        return out
    return [obj]


@ti.func
def inside_cylinder(p, p0, p1, radius):
    axis = p1 - p0
    t = (p - p0).dot(axis) / axis.dot(axis)
    inside = 0
    if 0.0 <= t <= 1.0:
        closest = p0 + t * axis
        if (p - closest).norm_sqr() < radius * radius:
            inside = 1
    return inside


@ti.data_oriented
class Scene:
    """An immutable density field compiled into taichi fields.

    Every object is evaluated at each sample point and the contributions are
    summed, so later negative-weight objects cancel earlier positive ones.
    The optional ``deformation`` moves the sample point before any object
    is evaluated.
    """

    def __init__(self, obj, deformation=None):
        self.root = obj
        self.objects = flatten(obj)
        self.deformation = deformation
        self.deformed = deformation is not None
        self.num_objects = len(self.objects)

        n = max(self.num_objects, 1)
        self.kind = ti.field(dtype=ti.i32, shape=n)
        self.rho = ti.field(dtype=ti.f64, shape=n)
        self.size = ti.field(dtype=ti.f64, shape=n)
        self.center = ti.Vector.field(3, dtype=ti.f64, shape=n)
        self.p0 = ti.Vector.field(3, dtype=ti.f64, shape=n)
        self.p1 = ti.Vector.field(3, dtype=ti.f64, shape=n)
        self.strut_start = ti.field(dtype=ti.i32, shape=n)
        self.strut_count = ti.field(dtype=ti.i32, shape=n)

        struts = [s for o in self.objects if isinstance(o, Lattice) for s in o.struts]
        m = max(len(struts), 1)
        self.strut_p0 = ti.Vector.field(3, dtype=ti.f64, shape=m)
        self.strut_p1 = ti.Vector.field(3, dtype=ti.f64, shape=m)
        self.strut_radius = ti.field(dtype=ti.f64, shape=m)
        self.point_density = ti.field(dtype=ti.f64, shape=())

        self.upload_to_taichi(n, m)

    def upload_to_taichi(self, n, m):
        kind = np.zeros(n, dtype=np.int32)
        rho = np.zeros(n, dtype=np.float64)
        size = np.zeros(n, dtype=np.float64)
        center = np.zeros((n, 3), dtype=np.float64)
        p0 = np.zeros((n, 3), dtype=np.float64)
        p1 = np.zeros((n, 3), dtype=np.float64)
        start = np.zeros(n, dtype=np.int32)
        count = np.zeros(n, dtype=np.int32)
        s_p0 = np.zeros((m, 3), dtype=np.float64)
        s_p1 = np.zeros((m, 3), dtype=np.float64)
        s_radius = np.zeros(m, dtype=np.float64)

        offset = 0
        for k, obj in enumerate(self.objects):
            rho[k] = obj.rho
            if isinstance(obj, Sphere):
                kind[k] = SPHERE
                center[k] = obj.center
                size[k] = obj.radius
            elif isinstance(obj, Cube):
                kind[k] = CUBE
                center[k] = obj.center
                size[k] = obj.side
            elif isinstance(obj, Cylinder):
                kind[k] = CYLINDER
                p0[k] = obj.p0
                p1[k] = obj.p1
                size[k] = obj.radius
            elif isinstance(obj, Lattice):
                kind[k] = LATTICE
                # p0/p1 hold the bounding box for lattices
                p0[k], p1[k] = obj.bounds()
                start[k] = offset
                count[k] = len(obj.struts)
                for s in obj.struts:
                    s_p0[offset] = s.p0
                    s_p1[offset] = s.p1
                    s_radius[offset] = s.radius
                    offset += 1
            else:
                raise TypeError(f"unsupported scene object: {type(obj).__name__}")

        self.kind.from_numpy(kind)
        self.rho.from_numpy(rho)
        self.size.from_numpy(size)
        self.center.from_numpy(center)
        self.p0.from_numpy(p0)
        self.p1.from_numpy(p1)
        self.strut_start.from_numpy(start)
        self.strut_count.from_numpy(count)
        self.strut_p0.from_numpy(s_p0)
        self.strut_p1.from_numpy(s_p1)
        self.strut_radius.from_numpy(s_radius)

    @ti.func
    def occupancy(self, k, p):
        hit = 0.0
        kind = self.kind[k]
        if kind == SPHERE:
            if (p - self.center[k]).norm_sqr() < self.size[k] * self.size[k]:
                hit = 1.0
        elif kind == CUBE:
            if ti.abs(p - self.center[k]).max() < 0.5 * self.size[k]:
                hit = 1.0
        elif kind == CYLINDER:
            if inside_cylinder(p, self.p0[k], self.p1[k], self.size[k]):
                hit = 1.0
        elif kind == LATTICE:
            lo = self.p0[k]
            hi = self.p1[k]
            if lo[0] <= p[0] <= hi[0] and lo[1] <= p[1] <= hi[1] and lo[2] <= p[2] <= hi[2]:
                start = self.strut_start[k]
                for s in range(start, start + self.strut_count[k]):
                    if inside_cylinder(p, self.strut_p0[s], self.strut_p1[s], self.strut_radius[s]):
                        hit = 1.0
                        break
        return hit

    @ti.func
    def density(self, p):
        q = p
        if ti.static(self.deformed):
            q = self.deformation.apply(p)
        rho = 0.0
        for k in range(self.num_objects):
            rho += self.rho[k] * self.occupancy(k, q)
        return rho

    @ti.kernel
    def _evaluate_point(self, x: ti.f64, y: ti.f64, z: ti.f64):
        # keeps the object loop nested, i.e. serial
        for _ in range(1):
            self.point_density[None] = self.density(ti.Vector([x, y, z], dt=ti.f64))

    def density_at(self, x, y, z):
        """Density at a single point, evaluated from Python scope."""
        self._evaluate_point(float(x), float(y), float(z))
        return self.point_density[None]

    def to_yaml(self):
        data = self.root.to_yaml()
        if self.deformation is not None:
            data["deformation"] = self.deformation.to_yaml()
        return data


def _object_from_yaml(data):
    kind = data.get("type")
    if kind == "sphere":
        return Sphere(center=tuple(data["center"]), radius=data["radius"], rho=data.get("rho", 1.0))
    if kind == "cube":
        return Cube(center=tuple(data["center"]), side=data["side"], rho=data.get("rho", 1.0))
    if kind == "cylinder":
        return Cylinder(p0=tuple(data["p0"]), p1=tuple(data["p1"]), radius=data["radius"],
                        rho=data.get("rho", 1.0))
    if kind == "lattice":
        return Lattice(struts=[object_from_yaml(s) for s in data.get("struts", [])],
                       rho=data.get("rho", 1.0))
    if kind == "object_collection":
        return ObjectCollection(objects=[object_from_yaml(o) for o in data.get("objects", [])])
    raise ConfigError(f"unknown scene object type: {kind!r}")


def object_from_yaml(data):
    if not isinstance(data, dict):
        raise ConfigError(f"scene object must be a mapping, got {data!r}")
    try:
        return _object_from_yaml(data)
    except KeyError as e:
        raise ConfigError(f"{data.get('type')} is missing key {e}") from e
    except (TypeError, AttributeError) as e:
        raise ConfigError(f"malformed {data.get('type')}: {e}") from e


def scene_from_yaml(data):
    data = dict(data)
    deformation = data.pop("deformation", None)
    if deformation is not None:
        if not isinstance(deformation, dict):
            raise ConfigError(f"deformation must be a mapping, got {deformation!r}")
        deformation = GaussianDisplacement.from_yaml(deformation)
    return Scene(object_from_yaml(data), deformation=deformation)


def load_scene(filename):
    try:
        with open(filename) as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"cannot read scene file {filename}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"scene file {filename} does not describe an object")
    return scene_from_yaml(data)
