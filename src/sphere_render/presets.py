# presets.py
from .deformation import GaussianDisplacement
from .lattice import make_lattice
from .scene import Cube, ObjectCollection, Scene, Sphere, load_scene


def make_object():
    """Unit cube with a sphere of radius 0.25 hollowed out of its centre."""
    return ObjectCollection(objects=[
        Cube(center=(0.0, 0.0, 0.0), side=1.0, rho=1.0),
        Sphere(center=(0.0, 0.0, 0.0), radius=0.25, rho=-1.0),
    ])


def make_sphere(radius=0.25):
    return Sphere(center=(0.0, 0.0, 0.0), radius=radius, rho=1.0)


PRESETS = {
    "cube_minus_sphere": make_object,
    "sphere": make_sphere,
    "lattice": make_lattice,
}


def build_scene(name, deform=False):
    """Scene for a preset name or a scene YAML file. Requires an initialised taichi runtime."""
    if name in PRESETS:
        deformation = GaussianDisplacement() if deform else None
        return Scene(PRESETS[name](), deformation=deformation)
    scene = load_scene(name)
    if deform and scene.deformation is None:
        scene = Scene(scene.root, deformation=GaussianDisplacement())
    return scene
