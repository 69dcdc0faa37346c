"""
Small hand-built meshes shared by the test modules.
"""

import os
import sys

import numpy as np

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from data_types.conversion import from_arrays

# Outward winding (counter-clockwise seen from outside)
CUBE_FACES = [
    [0, 3, 2, 1],  # back   (-z)
    [4, 5, 6, 7],  # front  (+z)
    [0, 1, 5, 4],  # bottom (-y)
    [3, 7, 6, 2],  # top    (+y)
    [0, 4, 7, 3],  # left   (-x)
    [1, 2, 6, 5],  # right  (+x)
]


def make_cube(size=2.0, center=(0.0, 0.0, 0.0), name="Cube", with_normals=False):
    h = size / 2.0
    corners = np.array([
        [-h, -h, -h], [h, -h, -h], [h, h, -h], [-h, h, -h],
        [-h, -h, h], [h, -h, h], [h, h, h], [-h, h, h],
    ])
    normals = corners / np.linalg.norm(corners, axis=1, keepdims=True) if with_normals else None
    return from_arrays(corners + np.asarray(center, dtype=np.float64), CUBE_FACES, name=name, normals=normals)


def make_plane_quad(size=2.0, name="Plane"):
    """Single quad in the XZ plane facing +Y."""
    h = size / 2.0
    corners = [[-h, 0.0, -h], [-h, 0.0, h], [h, 0.0, h], [h, 0.0, -h]]
    return from_arrays(corners, [[0, 1, 2, 3]], name=name)


def make_tetrahedron(name="Tetrahedron"):
    corners = [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]]
    faces = [[0, 2, 1], [0, 1, 3], [0, 3, 2], [1, 2, 3]]
    return from_arrays(corners, faces, name=name)


def make_two_quads(gap=1.0, name="Quads"):
    """Two parallel unit quads, one above the other, facing away from each other."""
    corners = [
        [0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [1.0, 0.0, 1.0], [0.0, 0.0, 1.0],
        [0.0, gap, 0.0], [1.0, gap, 0.0], [1.0, gap, 1.0], [0.0, gap, 1.0],
    ]
    return from_arrays(corners, [[0, 1, 2, 3], [4, 7, 6, 5]], name=name)
