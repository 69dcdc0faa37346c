"""
Test script to verify conversion between EditableMesh, flat buffers and trimesh.
"""

import os
import sys
import numpy as np
import pytest
import trimesh

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from data_types.conversion import fan_triangulate, to_triangle_buffers, to_trimesh, from_arrays, from_trimesh
from validation import euler_characteristic
from meshes import make_cube


def test_fan_triangulate():
    """Test fan triangulation of a pentagon."""
    assert fan_triangulate([4, 5, 6, 7, 8]) == [(4, 5, 6), (4, 6, 7), (4, 7, 8)]
    assert fan_triangulate([0, 1, 2]) == [(0, 1, 2)]


def test_triangle_buffers_defaults():
    """Test buffer sizes and the default normal and UV."""
    cube = make_cube()
    buffers = to_triangle_buffers(cube)
    assert buffers.positions.shape == (36, 3)
    assert buffers.normals.shape == (36, 3)
    assert buffers.uvs.shape == (36, 2)
    assert np.array_equal(buffers.indices, np.arange(36))
    assert np.allclose(buffers.normals, [0.0, 1.0, 0.0])
    assert np.allclose(buffers.uvs, [0.0, 0.0])
    assert list(buffers.face_indices) == [0, 0, 1, 1, 2, 2, 3, 3, 4, 4, 5, 5]


def test_triangle_buffers_keep_vertex_normals():
    """Test that stored vertex normals are copied to every corner."""
    cube = make_cube(with_normals=True)
    buffers = to_triangle_buffers(cube)
    # First corner is vertex 0 of the back face
    assert np.allclose(buffers.normals[0], -np.ones(3) / np.sqrt(3))


def test_empty_mesh_buffers():
    """Test that an empty mesh yields empty but well-shaped buffers."""
    buffers = to_triangle_buffers(from_arrays(np.zeros((0, 3)), []))
    assert buffers.positions.shape == (0, 3)
    assert buffers.uvs.shape == (0, 2)


def test_to_trimesh():
    """Test that the exported cube is a watertight volume of 8."""
    tm = to_trimesh(make_cube())
    assert len(tm.faces) == 12
    assert tm.is_watertight
    assert np.isclose(tm.volume, 8.0)
    assert list(tm.face_attributes["source_face"][:4]) == [0, 0, 1, 1]


def test_from_trimesh_round_trip():
    """Test that a trimesh box comes back with shared edges."""
    box = trimesh.creation.box(extents=(2.0, 2.0, 2.0))
    mesh = from_trimesh(box, name="Box")
    assert mesh.name == "Box"
    assert mesh.vertex_count == 8
    assert mesh.face_count == 12
    assert mesh.edge_count == 18
    assert euler_characteristic(mesh) == 2


def test_from_arrays_materials():
    """Test that per-face materials are carried over."""
    mesh = from_arrays(
        [[0, 0, 0], [1, 0, 0], [1, 1, 0], [0, 1, 0]],
        [[0, 1, 2], [0, 2, 3]],
        material_indices=[3, 7],
    )
    assert [f.material_index for f in mesh.faces] == [3, 7]
    assert mesh.edge_count == 5


if __name__ == "__main__":
    pytest.main([__file__])
