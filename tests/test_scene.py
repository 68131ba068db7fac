import numpy as np
import pytest

from sphere_render.deformation import GaussianDisplacement
from sphere_render.exceptions import ConfigError
from sphere_render.lattice import make_kelvin, make_lattice
from sphere_render.presets import make_object
from sphere_render.scene import (Cube, Cylinder, Lattice, ObjectCollection, Scene, Sphere,
                                 load_scene, scene_from_yaml)


def test_sphere_inside_and_outside():
    scene = Scene(Sphere(center=(0.0, 0.0, 0.0), radius=0.5, rho=2.0))
    assert scene.density_at(0.0, 0.0, 0.0) == 2.0
    assert scene.density_at(0.4, 0.0, 0.0) == 2.0
    assert scene.density_at(0.6, 0.0, 0.0) == 0.0


def test_far_away_points_are_empty():
    scene = Scene(make_object())
    assert scene.density_at(1e6, -1e6, 3e5) == 0.0


def test_composite_subtracts_inner_region():
    scene = Scene(ObjectCollection(objects=[
        Cube(side=1.0, rho=2.0),
        Sphere(radius=0.25, rho=-0.5),
    ]))
    assert scene.density_at(0.0, 0.0, 0.0) == pytest.approx(1.5)
    assert scene.density_at(0.4, 0.0, 0.0) == pytest.approx(2.0)
    assert scene.density_at(0.0, 0.45, 0.45) == pytest.approx(2.0)
    assert scene.density_at(0.6, 0.0, 0.0) == 0.0


def test_cube_minus_sphere_is_hollow():
    scene = Scene(make_object())
    assert scene.density_at(0.0, 0.0, 0.0) == 0.0
    assert scene.density_at(0.0, 0.0, 0.4) == 1.0
    assert scene.density_at(0.0, 0.0, 0.6) == 0.0


def test_nested_collections_are_summed():
    inner = ObjectCollection(objects=[Sphere(radius=0.5, rho=1.0)])
    scene = Scene(ObjectCollection(objects=[inner, Sphere(radius=0.5, rho=1.0)]))
    assert scene.num_objects == 2
    assert scene.density_at(0.0, 0.0, 0.0) == 2.0


def test_empty_collection_has_zero_density():
    scene = Scene(ObjectCollection())
    assert scene.density_at(0.0, 0.0, 0.0) == 0.0


def test_cylinder_caps_and_radius():
    scene = Scene(Cylinder(p0=(0.0, 0.0, 0.0), p1=(1.0, 0.0, 0.0), radius=0.1))
    assert scene.density_at(0.5, 0.05, 0.0) == 1.0
    assert scene.density_at(0.5, 0.15, 0.0) == 0.0
    assert scene.density_at(-0.05, 0.0, 0.0) == 0.0
    assert scene.density_at(1.05, 0.0, 0.0) == 0.0


def test_lattice_overlapping_struts_count_once():
    lattice = Lattice(struts=[
        Cylinder(p0=(-1.0, 0.0, 0.0), p1=(1.0, 0.0, 0.0), radius=0.1),
        Cylinder(p0=(0.0, -1.0, 0.0), p1=(0.0, 1.0, 0.0), radius=0.1),
    ])
    scene = Scene(lattice)
    assert scene.density_at(0.0, 0.0, 0.0) == 1.0
    assert scene.density_at(0.5, 0.0, 0.0) == 1.0
    assert scene.density_at(0.5, 0.5, 0.0) == 0.0


def test_kelvin_cell():
    cell = make_kelvin(0.075)
    assert len(cell.struts) == 36
    for s in cell.struts:
        assert np.linalg.norm(np.subtract(s.p1, s.p0)) == pytest.approx(np.sqrt(2.0) / 4.0)
        assert min(s.p0 + s.p1) >= 0.0
        assert max(s.p0 + s.p1) <= 1.0


def test_lattice_fits_unit_cube():
    lattice = make_lattice(radius=0.075, nx=4, ny=4, nz=4)
    assert len(lattice.struts) == 4 * 4 * 4 * 36
    assert lattice.struts[0].radius == pytest.approx(0.075 / 4)
    points = np.array([s.p0 for s in lattice.struts] + [s.p1 for s in lattice.struts])
    assert points.min() == pytest.approx(-0.5)
    assert points.max() == pytest.approx(0.5)


def test_lattice_density_on_strut():
    lattice = make_lattice(radius=0.075, nx=2, ny=2, nz=2)
    scene = Scene(lattice)
    s = lattice.struts[0]
    mid = (np.asarray(s.p0) + np.asarray(s.p1)) / 2.0
    assert scene.density_at(*mid) == 1.0
    assert scene.density_at(2.0, 2.0, 2.0) == 0.0


def test_deformation_moves_material():
    plain = Scene(Sphere(radius=0.1))
    deformed = Scene(Sphere(radius=0.1), deformation=GaussianDisplacement(amplitude=0.05, sigma=0.2))
    # sample points are pushed down by ~0.05, so material appears shifted up
    assert plain.density_at(0.0, 0.13, 0.0) == 0.0
    assert deformed.density_at(0.0, 0.13, 0.0) == 1.0


def test_yaml_round_trip(tmp_path):
    import yaml

    scene = Scene(make_object(), deformation=GaussianDisplacement())
    path = tmp_path / "object.yaml"
    path.write_text(yaml.safe_dump(scene.to_yaml()))

    loaded = load_scene(str(path))
    assert loaded.to_yaml() == scene.to_yaml()
    assert loaded.density_at(0.0, 0.0, 0.4) == scene.density_at(0.0, 0.0, 0.4)


def test_unknown_object_type():
    with pytest.raises(ConfigError):
        scene_from_yaml({"type": "torus"})


def test_missing_scene_file(tmp_path):
    with pytest.raises(ConfigError):
        load_scene(str(tmp_path / "missing.yaml"))


def test_deformed_scene_compiles_in_renderer_kernels():
    from sphere_render.integrator import integrate_hierarchical

    scene = Scene(Sphere(radius=0.1), deformation=GaussianDisplacement())
    assert scene.deformed
    assert not Scene(Sphere(radius=0.1)).deformed
    assert integrate_hierarchical(scene, (-2.0, 0.0, 0.0), (1.0, 0.0, 0.0), 0.01, 0.0, 4.0) < 1.0


def test_scene_missing_key(tmp_path):
    path = tmp_path / "s.yaml"
    path.write_text("type: sphere\nrho: 1.0\n")
    with pytest.raises(ConfigError, match="center"):
        load_scene(str(path))


def test_scene_malformed_yaml(tmp_path):
    path = tmp_path / "s.yaml"
    path.write_text("type: [sphere\n")
    with pytest.raises(ConfigError):
        load_scene(str(path))


def test_scene_wrong_value_types():
    with pytest.raises(ConfigError):
        scene_from_yaml({"type": "object_collection", "objects": [["not", "a", "mapping"]]})
    with pytest.raises(ConfigError):
        scene_from_yaml({"type": "sphere", "center": 3, "radius": 0.5})
