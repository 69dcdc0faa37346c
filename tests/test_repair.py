"""
Test script to verify the mesh repair utilities.
"""

import os
import sys
import numpy as np
import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from data_types import Edge
from data_types.conversion import from_arrays
from validation import (
    repair_mesh,
    weld_vertices,
    remove_degenerate_faces,
    remove_duplicate_edges,
    remove_unused_elements,
    fix_winding_order,
    fix_t_junctions,
    signed_volume,
    validate_geometry_integrity,
    validate_mesh,
)
from meshes import make_cube, CUBE_FACES


def _split_cube():
    """Cube whose faces each own their four corners (24 vertices)."""
    cube = make_cube()
    positions = []
    faces = []
    for loop in CUBE_FACES:
        faces.append(list(range(len(positions), len(positions) + 4)))
        positions.extend(cube.vertices[v].position for v in loop)
    return from_arrays(positions, faces, name="SplitCube")


def test_weld_two_triangles():
    """Test welding duplicated vertices along a shared side."""
    positions = [[0, 0, 0], [1, 0, 0], [0, 1, 0], [1, 0, 0], [1, 1, 0], [0, 1, 0]]
    mesh = from_arrays(positions, [[0, 1, 2], [3, 4, 5]])
    assert mesh.edge_count == 6

    merged = weld_vertices(mesh, 1e-6)
    assert merged == 2
    assert mesh.vertex_count == 4
    assert mesh.edge_count == 5
    assert mesh.faces[1].vertices == [1, 3, 2]
    assert validate_mesh(mesh).is_valid

    result = validate_geometry_integrity(mesh)
    assert result.is_manifold
    assert result.is_consistently_oriented
    assert len(result.boundary_loops) == 1


def test_weld_nothing_to_do():
    """Test that a clean cube is left alone."""
    cube = make_cube()
    assert weld_vertices(cube) == 0
    assert cube.vertex_count == 8


def test_weld_collapses_faces():
    """Test that a face whose corners weld together is dropped."""
    positions = [[0, 0, 0], [1, 0, 0], [0, 1, 0], [0, 0, 0], [1e-8, 0, 0], [0, 0, 1]]
    mesh = from_arrays(positions, [[0, 1, 2], [3, 4, 5]])
    weld_vertices(mesh, 1e-6)
    assert mesh.face_count == 1
    assert mesh.edge_count == 3


def test_remove_degenerate_and_duplicates():
    """Test removing zero-area faces and duplicate edge records."""
    # Test case 1: Collinear triangle beside a real one
    positions = [[0, 0, 0], [1, 0, 0], [2, 0, 0], [0, 1, 0]]
    mesh = from_arrays(positions, [[0, 1, 3], [0, 1, 2]])
    assert remove_degenerate_faces(mesh) == 1
    assert mesh.face_count == 1

    # Test case 2: Duplicate edge record is folded onto the first
    cube = make_cube()
    cube.edges.append(Edge(3, 0))
    cube.faces[4].edges[3] = 12
    assert remove_duplicate_edges(cube) == 1
    assert cube.edge_count == 12
    assert cube.faces[4].edges[3] == 0
    assert validate_mesh(cube).is_valid


def test_remove_unused_elements():
    """Test dropping loose vertices and edges with renumbering."""
    cube = make_cube()
    loose = cube.add_vertex((3.0, 3.0, 3.0))
    cube.add_edge(loose, 0)
    cube.vertices.insert(0, cube.vertices[0].copy())
    for edge in cube.edges:
        edge.v1 += 1
        edge.v2 += 1
    for face in cube.faces:
        face.vertices = [v + 1 for v in face.vertices]

    vertices_removed, edges_removed = remove_unused_elements(cube)
    assert edges_removed == 1
    assert vertices_removed == 2
    assert cube.vertex_count == 8
    assert cube.edge_count == 12
    assert cube.faces[0].vertices == [0, 3, 2, 1]
    assert validate_mesh(cube).is_valid


def test_fix_winding_order():
    """Test making an inconsistently wound cube consistent and outward."""
    cube = make_cube()
    cube.faces[0].reverse()
    flipped = fix_winding_order(cube)
    assert flipped > 0
    result = validate_geometry_integrity(cube)
    assert result.is_consistently_oriented
    assert np.isclose(signed_volume(cube, list(range(cube.face_count))), 8.0)
    assert np.allclose(cube.faces[0].normal, [0.0, 0.0, -1.0])

    # Fully inverted cube is turned outward
    cube = make_cube()
    for face in cube.faces:
        face.reverse()
    assert fix_winding_order(cube) == 6
    assert np.isclose(signed_volume(cube, list(range(6))), 8.0)


def test_fix_t_junctions():
    """Test inserting a vertex that lies on a neighbour's side."""
    positions = [
        [0, 0, 0], [1, 0, 0], [1, 0, 2], [0, 0, 2],
        [2, 0, 0], [2, 0, 1], [1, 0, 1], [2, 0, 2],
    ]
    mesh = from_arrays(positions, [[0, 1, 2, 3], [1, 4, 5, 6], [6, 5, 7, 2]])
    assert validate_geometry_integrity(mesh).boundary_loops

    fixed = fix_t_junctions(mesh, 1e-6)
    assert fixed == 1
    assert mesh.faces[0].vertices == [0, 1, 6, 2, 3]
    result = validate_geometry_integrity(mesh)
    assert result.is_manifold
    assert len(result.boundary_loops) == 1
    assert result.euler_characteristic == 1

    # Second pass finds nothing
    assert fix_t_junctions(mesh, 1e-6) == 0


def test_repair_mesh_welds_split_cube():
    """Test the full repair pipeline on a cube with unshared corners."""
    mesh = _split_cube()
    assert validate_geometry_integrity(mesh).connected_components == 6

    result = repair_mesh(mesh)
    assert result.vertices_merged == 16
    assert mesh.vertex_count == 8
    assert mesh.edge_count == 12
    assert mesh.face_count == 6
    assert any("merged" in action for action in result.actions)

    integrity = validate_geometry_integrity(mesh)
    assert integrity.is_closed
    assert integrity.is_manifold
    assert integrity.genus == 0
    assert all(v.normal is not None for v in mesh.vertices)


if __name__ == "__main__":
    pytest.main([__file__])
