# lattice.py
import itertools

import numpy as np

from .scene import Cylinder, Lattice

KELVIN_EDGE = np.sqrt(2.0) / 4.0


def kelvin_vertices():
    """The 24 vertices of a truncated octahedron centred in the unit cell."""
    verts = set()
    for perm in itertools.permutations((0.0, 0.25, 0.5)):
        for signs in itertools.product((-1.0, 1.0), repeat=3):
            verts.add(tuple(0.5 + s * c for s, c in zip(signs, perm)))
    return sorted(verts)


def make_kelvin(radius):
    """Kelvin unit cell: the 36 edges of the central truncated octahedron.

    The square faces sit on the faces of the unit cell, so tiling the cell
    reproduces the full space-filling foam.
    """
    verts = np.array(kelvin_vertices())
    struts = []
    for a, b in itertools.combinations(range(len(verts)), 2):
        if np.isclose(np.linalg.norm(verts[a] - verts[b]), KELVIN_EDGE):
            struts.append(Cylinder(p0=tuple(verts[a]), p1=tuple(verts[b]), radius=radius))
    return Lattice(struts=struts)


def tessellate(cell, nx, ny, nz):
    """Tile ``cell`` over an nx * ny * nz grid and fit it into the unit cube at the origin."""
    scaler = 1.0 / max(nx, ny, nz)
    shift = np.array([0.5, 0.5, 0.5])
    struts = []
    for i in range(nx):
        for j in range(ny):
            for k in range(nz):
                offset = np.array([i, j, k], dtype=np.float64)
                for s in cell.struts:
                    p0 = (np.asarray(s.p0) + offset) * scaler - shift
                    p1 = (np.asarray(s.p1) + offset) * scaler - shift
                    struts.append(Cylinder(p0=tuple(p0), p1=tuple(p1), radius=s.radius * scaler, rho=s.rho))
    return Lattice(struts=struts, rho=cell.rho)


def make_lattice(radius=0.075, nx=4, ny=4, nz=4):
    return tessellate(make_kelvin(radius), nx, ny, nz)
