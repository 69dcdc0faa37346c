"""
Test script to verify vertex, edge and face extrusion.
"""

import os
import sys
import numpy as np
import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from data_types import EditableMesh
from editing import extrude_vertex, extrude_vertex_with_face, extrude_edge, extrude_face
from validation import validate_mesh, validate_geometry_integrity, signed_volume
from meshes import make_cube, make_plane_quad


def test_extrude_vertex():
    """Test that a vertex extrusion adds one vertex and one edge."""
    cube = make_cube(with_normals=True)
    result = extrude_vertex(cube, 6, distance=2.0)
    assert result.success
    assert cube.vertex_count == 9
    assert cube.edge_count == 13
    assert cube.face_count == 6
    new_vertex = result.new_vertices[0]
    expected = np.ones(3) + 2.0 * np.ones(3) / np.sqrt(3)
    assert np.allclose(cube.vertices[new_vertex].position, expected)
    assert cube.edges[result.new_edges[0]].connects(6, new_vertex)


def test_extrude_vertex_explicit_direction():
    """Test extruding along a caller-supplied direction, which is normalized."""
    quad = make_plane_quad()
    result = extrude_vertex(quad, 0, distance=1.5, direction=(0.0, 0.0, -4.0))
    assert result.success
    assert np.allclose(quad.vertices[result.new_vertices[0]].position, [-1.0, 0.0, -2.5])


def test_extrude_vertex_with_face_on_boundary():
    """Test that a boundary corner gets one triangle per boundary side."""
    quad = make_plane_quad()
    result = extrude_vertex_with_face(quad, 0, distance=1.0)
    assert result.success
    assert quad.vertex_count == 5
    assert len(result.new_faces) == 2
    assert quad.face_count == 3
    integrity = validate_geometry_integrity(quad)
    assert integrity.is_manifold
    assert integrity.is_consistently_oriented


def test_extrude_edge_counts():
    """Test that an edge extrusion adds two vertices, three edges and one face."""
    quad = make_plane_quad()
    before = (quad.vertex_count, quad.edge_count, quad.face_count)
    result = extrude_edge(quad, 0, distance=1.0)
    assert result.success
    assert quad.vertex_count == before[0] + 2
    assert quad.edge_count == before[1] + 3
    assert quad.face_count == before[2] + 1
    assert result.removed_edges == [0]

    # New vertices sit one unit along the quad normal (+Y)
    for v in result.new_vertices:
        assert np.isclose(quad.vertices[v].position[1], 1.0)

    assert validate_mesh(quad).is_valid
    integrity = validate_geometry_integrity(quad)
    assert integrity.is_manifold
    assert integrity.is_consistently_oriented


def test_extrude_edge_keep_original():
    """Test that keeping the source edge leaves it in place alongside the closing edge."""
    quad = make_plane_quad()
    result = extrude_edge(quad, 0, distance=1.0, keep_original=True)
    assert result.success
    assert quad.edge_count == 8
    assert result.removed_edges == []


def test_extrude_loose_edge():
    """Test extruding an edge no face uses, which falls back to a perpendicular direction."""
    mesh = EditableMesh()
    a = mesh.add_vertex((0.0, 0.0, 0.0))
    b = mesh.add_vertex((1.0, 0.0, 0.0))
    mesh.add_edge(a, b)
    result = extrude_edge(mesh, 0, distance=1.0)
    assert result.success
    assert mesh.face_count == 1
    offset = mesh.vertices[result.new_vertices[0]].position - mesh.vertices[a].position
    assert np.isclose(np.linalg.norm(offset), 1.0)
    assert np.isclose(np.dot(offset, [1.0, 0.0, 0.0]), 0.0)


def test_extrude_face_on_cube():
    """Test that extruding the top of a cube keeps it a closed solid."""
    cube = make_cube()
    result = extrude_face(cube, 3, distance=1.0)
    assert result.success
    assert cube.vertex_count == 12
    assert cube.edge_count == 20
    assert cube.face_count == 10
    assert result.statistics["side_faces"] == 4
    assert np.allclose(cube.face_points(3)[:, 1], 2.0)

    integrity = validate_geometry_integrity(cube)
    assert integrity.is_closed
    assert integrity.is_manifold
    assert integrity.is_consistently_oriented
    assert np.isclose(signed_volume(cube, list(range(cube.face_count))), 12.0)


def test_extrude_face_scaled_keep_original():
    """Test a scaled extrusion that keeps the source face, closing a lone quad."""
    quad = make_plane_quad()
    result = extrude_face(quad, 0, distance=1.0, scale=0.5, keep_original=True)
    assert result.success
    assert quad.face_count == 6
    cap = quad.face_points(result.new_faces[-1])
    assert np.allclose(np.abs(cap[:, [0, 2]]), 0.5)
    integrity = validate_geometry_integrity(quad)
    assert integrity.is_closed
    assert integrity.is_consistently_oriented


def test_extrude_failures_leave_mesh_untouched():
    """Test invalid references and bad arguments."""
    cube = make_cube()

    # Test case 1: Missing element becomes a failed result
    result = extrude_edge(cube, 99)
    assert not result.success
    assert "99" in result.error
    assert not extrude_face(cube, 6).success
    assert not extrude_vertex(cube, -1).success

    # Test case 2: None mesh
    assert not extrude_vertex(None, 0).success

    # Test case 3: Zero direction raises and the mesh is restored
    with pytest.raises(ValueError):
        extrude_vertex(cube, 0, direction=(0.0, 0.0, 0.0))
    assert cube.vertex_count == 8
    assert cube.edge_count == 12


if __name__ == "__main__":
    pytest.main([__file__])
