"""
Test script to verify linear, radial and grid arrays.
"""

import os
import sys
import numpy as np
import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from transform import (
    ArrayGrid,
    ArrayLinear,
    ArrayRadial,
    array,
    array_linear,
    array_radial,
    placements,
    translate,
)
from validation import signed_volume, validate_mesh, validate_geometry_integrity
from meshes import make_cube, make_plane_quad


def _volume(mesh):
    return signed_volume(mesh, list(range(mesh.face_count)))


def test_linear_array_merged():
    """Test three spaced cubes merged into one mesh."""
    cube = make_cube()
    merged = array(cube, ArrayLinear(count=3, distance=3.0))
    assert merged.name == "Cube_array"
    assert merged.vertex_count == 24
    assert merged.edge_count == 36
    assert merged.face_count == 18
    assert validate_mesh(merged).is_valid
    assert validate_geometry_integrity(merged).connected_components == 3
    assert np.isclose(_volume(merged), 24.0)

    low, high = merged.bounding_box()
    assert np.allclose(low, [-1.0, -1.0, -1.0])
    assert np.allclose(high, [7.0, 1.0, 1.0])

    # Source is untouched
    assert cube.vertex_count == 8
    assert np.allclose(cube.vertices[0].position, [-1.0, -1.0, -1.0])


def test_linear_array_separate():
    """Test that merge=False returns one mesh per copy."""
    copies = array_linear(make_cube(), merge=False, count=2, direction=(0.0, 0.0, 2.0), distance=5.0,
                          offset=(1.0, 0.0, 0.0))
    assert len(copies) == 2
    assert [c.name for c in copies] == ["Cube_0", "Cube_1"]
    assert all(c.vertex_count == 8 for c in copies)
    assert np.allclose(copies[0].vertices[0].position, [0.0, -1.0, -1.0])
    assert np.allclose(copies[1].vertices[0].position, [0.0, -1.0, 4.0])


def test_linear_array_weld():
    """Test that touching copies share their common edge after welding."""
    quads = array(make_plane_quad(), ArrayLinear(count=2, distance=2.0), weld=True)
    assert quads.vertex_count == 6
    assert quads.edge_count == 7
    assert quads.face_count == 2
    integrity = validate_geometry_integrity(quads)
    assert integrity.is_manifold
    assert integrity.connected_components == 1
    assert len(integrity.boundary_loops) == 1


def test_radial_array():
    """Test four cubes spaced a quarter turn apart around Z."""
    cube = translate(make_cube(), (3.0, 0.0, 0.0))
    ring = array_radial(cube, count=4)
    assert ring.face_count == 24
    assert np.isclose(_volume(ring), 32.0)
    low, high = ring.bounding_box()
    assert np.allclose(low, [-4.0, -4.0, -1.0])
    assert np.allclose(high, [4.0, 4.0, 1.0])

    # The second copy sits on the +Y axis
    copies = array(cube, ArrayRadial(count=4), merge=False)
    assert np.allclose(copies[1].positions().mean(axis=0), [0.0, 3.0, 0.0])

    # Half turn split into two steps
    matrices = placements(ArrayRadial(count=2, end_angle=np.pi))
    assert np.allclose(matrices[1][:3, :3] @ [1.0, 0.0, 0.0], [0.0, 1.0, 0.0])


def test_grid_array():
    """Test a 2 x 2 grid in the XY plane."""
    grid = array(make_cube(), ArrayGrid(counts=(2, 2, 1), spacing=(3.0, 3.0, 3.0)))
    assert grid.vertex_count == 32
    assert validate_geometry_integrity(grid).connected_components == 4
    low, high = grid.bounding_box()
    assert np.allclose(low, [-1.0, -1.0, -1.0])
    assert np.allclose(high, [4.0, 4.0, 1.0])


def test_array_errors():
    """Test unknown layouts and bad parameters."""
    with pytest.raises(TypeError):
        array(make_cube(), "linear")
    with pytest.raises(ValueError):
        array(make_cube(), ArrayLinear(count=0))
    with pytest.raises(ValueError):
        array(make_cube(), ArrayLinear(direction=(0.0, 0.0, 0.0)))
    with pytest.raises(ValueError):
        array(make_cube(), ArrayRadial(axis=(0.0, 0.0, 0.0)))
    with pytest.raises(ValueError):
        array(make_cube(), ArrayGrid(counts=(2, 2)))


if __name__ == "__main__":
    pytest.main([__file__])
