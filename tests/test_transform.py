"""
Test script to verify affine transforms and region deformers.
"""

import os
import sys
import numpy as np
import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from data_types import EditableMesh
from transform import (
    Bend,
    Twist,
    Taper,
    apply_matrix,
    deform,
    mirror_by_axis,
    mirror_by_plane,
    mirror_by_point,
    region_factors,
    rotate,
    scale,
    translate,
    twist,
)
from validation import signed_volume
from meshes import make_cube


def _volume(mesh):
    return signed_volume(mesh, list(range(mesh.face_count)))


def test_translate():
    """Test moving the whole mesh and a vertex subset."""
    cube = make_cube()
    translate(cube, (1.0, 2.0, 3.0))
    low, high = cube.bounding_box()
    assert np.allclose(low, [0.0, 1.0, 2.0])
    assert np.allclose(high, [2.0, 3.0, 4.0])

    cube = make_cube()
    translate(cube, (0.0, 1.0, 0.0), vertex_ids=[6])
    assert np.allclose(cube.vertices[6].position, [1.0, 2.0, 1.0])
    assert np.allclose(cube.vertices[5].position, [1.0, -1.0, 1.0])

    with pytest.raises(IndexError):
        translate(cube, (0.0, 1.0, 0.0), vertex_ids=[99])


def test_rotate():
    """Test a quarter turn about the Y axis."""
    cube = make_cube()
    rotate(cube, (0.0, 1.0, 0.0), np.pi / 2)
    assert np.allclose(cube.vertices[6].position, [1.0, 1.0, -1.0])
    assert np.isclose(_volume(cube), 8.0)

    # Rotation about a pivot
    cube = make_cube()
    rotate(cube, (0.0, 0.0, 1.0), np.pi, pivot=(1.0, 0.0, 0.0))
    assert np.allclose(cube.vertices[0].position, [3.0, 1.0, -1.0])

    with pytest.raises(ValueError):
        rotate(cube, (0.0, 0.0, 0.0), 1.0)


def test_scale():
    """Test uniform and per-axis scaling."""
    cube = make_cube()
    scale(cube, 2.0)
    assert np.isclose(_volume(cube), 64.0)

    cube = make_cube()
    scale(cube, (1.0, 0.5, 1.0), pivot=(0.0, -1.0, 0.0))
    low, high = cube.bounding_box()
    assert np.allclose(low, [-1.0, -1.0, -1.0])
    assert np.allclose(high, [1.0, 0.0, 1.0])

    with pytest.raises(ValueError):
        scale(cube, (1.0, 0.0, 1.0))


def test_mirror_keeps_outward_faces():
    """Test that a mirroring matrix reverses faces so the volume stays positive."""
    cube = make_cube(with_normals=True)
    apply_matrix(cube, np.diag([-1.0, 1.0, 1.0, 1.0]))
    assert np.allclose(cube.vertices[1].position, [-1.0, -1.0, -1.0])
    assert np.isclose(_volume(cube), 8.0)
    # Vertex normals follow the mirror
    assert np.allclose(cube.vertices[1].normal, np.array([-1.0, -1.0, -1.0]) / np.sqrt(3))

    with pytest.raises(ValueError):
        apply_matrix(cube, np.eye(3))


def test_mirror_by_plane_duplicate():
    """Test mirroring a copy through an offset plane."""
    cube = make_cube()
    mirrored = mirror_by_plane(cube, (1.0, 0.0, 0.0), (2.0, 0.0, 0.0), duplicate=True)
    assert mirrored is not cube
    assert mirrored.name == "Cube_mirror"
    low, high = mirrored.bounding_box()
    assert np.allclose(low, [1.0, -1.0, -1.0])
    assert np.allclose(high, [3.0, 1.0, 1.0])
    assert np.isclose(_volume(mirrored), 8.0)
    # Source is untouched
    assert np.allclose(cube.vertices[0].position, [-1.0, -1.0, -1.0])

    with pytest.raises(ValueError):
        mirror_by_plane(cube, (0.0, 0.0, 0.0), (0.0, 0.0, 0.0))


def test_mirror_by_axis_and_point():
    """Test in-place mirroring across a coordinate axis and through a point."""
    # Test case 1: Y mirror about y = 1
    cube = make_cube()
    assert mirror_by_axis(cube, "y", center=(0.0, 1.0, 0.0)) is cube
    assert np.allclose(cube.vertices[0].position, [-1.0, 3.0, -1.0])
    assert np.isclose(_volume(cube), 8.0)

    # Test case 2: Point reflection through the origin
    cube = make_cube()
    mirror_by_point(cube, (0.0, 0.0, 0.0))
    assert np.allclose(cube.vertices[0].position, [1.0, 1.0, 1.0])
    assert np.isclose(_volume(cube), 8.0)

    with pytest.raises(ValueError):
        mirror_by_axis(cube, "w")


def test_region_factors():
    """Test region strength along the deform segment."""
    positions = np.array([[0.0, -1.0, 0.0], [0.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 2.0, 0.0]])
    factors = region_factors(positions, (0.0, -1.0, 0.0), (0.0, 1.0, 0.0))
    assert np.allclose(factors[:3], [0.0, 0.5, 1.0])
    assert np.isnan(factors[3])

    with pytest.raises(ValueError):
        region_factors(positions, (0.0, 0.0, 0.0), (0.0, 0.0, 0.0))


def test_twist():
    """Test that a twist turns the top of a cube and leaves the bottom."""
    cube = make_cube()
    deform(cube, Twist(angle=np.pi / 2, axis=(0.0, 1.0, 0.0),
                       start_point=(0.0, -1.0, 0.0), end_point=(0.0, 1.0, 0.0)))
    assert np.allclose(cube.vertices[6].position, [1.0, 1.0, -1.0])
    assert np.allclose(cube.vertices[1].position, [1.0, -1.0, -1.0])

    # Keyword helper builds the same deformer
    other = make_cube()
    twist(other, angle=np.pi / 2)
    assert np.allclose(other.positions(), cube.positions())


def test_taper():
    """Test a non-uniform taper that narrows the top of a cube."""
    cube = make_cube()
    deform(cube, Taper(factor=0.5, start_point=(0.0, -1.0, 0.0), end_point=(0.0, 1.0, 0.0),
                       uniform=False, axis=(0.0, 1.0, 0.0)))
    assert np.allclose(cube.vertices[6].position, [0.5, 1.0, 0.5])
    assert np.allclose(cube.vertices[0].position, [-1.0, -1.0, -1.0])


def test_bend():
    """Test that a bend leaves the start of its region in place."""
    cube = make_cube()
    before = cube.positions()
    deform(cube, Bend(angle=np.pi / 4))
    after = cube.positions()
    # Vertices at x = -1 sit at the start of the region
    start = before[:, 0] == -1.0
    assert np.allclose(after[start], before[start])
    assert not np.allclose(after[~start], before[~start])


def test_deform_edge_cases():
    """Test unknown deformers and empty meshes."""
    with pytest.raises(TypeError):
        deform(make_cube(), "twist")

    empty = EditableMesh()
    assert deform(empty, Twist()) is empty
    assert empty.vertex_count == 0

    with pytest.raises(ValueError):
        deform(make_cube(), Twist(axis=(0.0, 0.0, 0.0)))


if __name__ == "__main__":
    pytest.main([__file__])
