"""
Test script to verify structural validation, boundary loops and integrity checks.
"""

import os
import sys
import numpy as np
import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from data_types import Edge, EditableMesh
from data_types.conversion import from_arrays
from validation import (
    validate_mesh,
    validate_geometry_integrity,
    extract_boundary_loops,
    count_boundary_loops,
    boundary_pairs,
    orientation_labels,
    surface_components,
    euler_characteristic,
)
from meshes import make_cube, make_plane_quad, make_tetrahedron


def test_cube_is_valid_closed_manifold():
    """Test the integrity report of a well-formed cube."""
    result = validate_geometry_integrity(make_cube())
    assert result.is_valid
    assert result.errors == []
    assert result.is_manifold
    assert result.is_closed
    assert result.is_orientable
    assert result.is_consistently_oriented
    assert result.connected_components == 1
    assert result.boundary_loops == []
    assert result.euler_characteristic == 2
    assert result.genus == 0


def test_tetrahedron_euler():
    """Test the Euler characteristic of a tetrahedron."""
    mesh = make_tetrahedron()
    assert euler_characteristic(mesh) == 2
    assert validate_geometry_integrity(mesh).is_closed


def test_open_quad_has_one_boundary_loop():
    """Test boundary extraction on a single quad."""
    quad = make_plane_quad()
    loops = extract_boundary_loops(quad)
    assert len(loops) == 1
    # Loop follows the face winding
    loop = loops[0]
    start = loop.index(0)
    assert loop[start:] + loop[:start] == [0, 1, 2, 3]
    assert count_boundary_loops(quad) == 1
    assert len(boundary_pairs(quad)) == 4

    result = validate_geometry_integrity(quad)
    assert result.is_valid
    assert not result.is_closed
    assert result.euler_characteristic == 1
    assert result.genus == 0
    assert any("boundary loops" in w for w in result.warnings)


def test_two_separate_components():
    """Test component counting over two disjoint cubes."""
    a = make_cube()
    b = make_cube(center=(5.0, 0.0, 0.0))
    positions = np.vstack([a.positions(), b.positions()])
    faces = [f.vertices for f in a.faces] + [[v + 8 for v in f.vertices] for f in b.faces]
    mesh = from_arrays(positions, faces)
    result = validate_geometry_integrity(mesh)
    assert result.connected_components == 2
    assert result.euler_characteristic == 4
    assert result.genus == 0
    assert len(surface_components(mesh)) == 2


def _torus(major=2.0, minor=0.5, rings=6, sides=4):
    corners = []
    for i in range(rings):
        theta = 2.0 * np.pi * i / rings
        for j in range(sides):
            phi = 2.0 * np.pi * j / sides
            radius = major + minor * np.cos(phi)
            corners.append([radius * np.cos(theta), radius * np.sin(theta), minor * np.sin(phi)])
    faces = []
    for i in range(rings):
        for j in range(sides):
            a = i * sides + j
            b = ((i + 1) % rings) * sides + j
            c = ((i + 1) % rings) * sides + (j + 1) % sides
            d = i * sides + (j + 1) % sides
            faces.append([a, b, c, d])
    return from_arrays(corners, faces, name="Torus")


def _mobius_strip(columns=6, half_width=0.3):
    """Quad strip whose last quad joins the top of one end to the bottom of the other."""
    corners = []
    for i in range(columns):
        theta = 2.0 * np.pi * i / columns
        for s in (half_width, -half_width):
            radius = 1.0 + s * np.cos(theta / 2.0)
            corners.append([radius * np.cos(theta), radius * np.sin(theta), s * np.sin(theta / 2.0)])
    # Vertex 2i is on the top edge of column i, 2i + 1 on the bottom edge
    faces = [[2 * i, 2 * i + 2, 2 * i + 3, 2 * i + 1] for i in range(columns - 1)]
    last = 2 * (columns - 1)
    faces.append([last, 1, 0, last + 1])
    return from_arrays(corners, faces, name="Mobius")


def test_torus_has_genus_one():
    """Test the Euler characteristic and genus of a closed quad torus."""
    torus = _torus()
    result = validate_geometry_integrity(torus)
    assert result.is_valid
    assert result.is_closed
    assert result.is_manifold
    assert result.is_orientable
    assert result.connected_components == 1
    assert torus.vertex_count == 24
    assert torus.edge_count == 48
    assert result.euler_characteristic == 0
    assert result.genus == 1


def test_mobius_strip_is_not_orientable():
    """Test that a half-twisted strip is reported as non-orientable."""
    strip = _mobius_strip()
    result = validate_geometry_integrity(strip)
    assert not result.is_valid
    assert "Surface is not orientable" in result.errors
    assert not result.is_orientable
    assert result.is_manifold
    assert result.euler_characteristic == 0
    assert len(result.boundary_loops) == 1
    assert len(result.boundary_loops[0]) == 12
    assert result.genus is None


def test_non_manifold_edge_is_error():
    """Test that three faces on one edge are reported."""
    positions = [[0, 0, 0], [1, 0, 0], [0, 1, 0], [0, -1, 0], [0, 0, 1]]
    mesh = from_arrays(positions, [[0, 1, 2], [1, 0, 3], [0, 1, 4]])
    result = validate_geometry_integrity(mesh)
    assert not result.is_manifold
    assert not result.is_valid
    assert result.non_manifold_edges == [(0, 1)]
    assert result.genus is None


def test_inconsistent_winding_is_warning():
    """Test that one reversed cube face is flagged but not fatal."""
    cube = make_cube()
    cube.faces[0].reverse()
    labels = orientation_labels(cube)
    assert labels.orientable
    assert not labels.consistent

    result = validate_geometry_integrity(cube)
    assert result.is_valid
    assert result.is_orientable
    assert not result.is_consistently_oriented
    assert any("inconsistent" in w for w in result.warnings)


def test_validate_mesh_reports_broken_references():
    """Test structural errors from validate_mesh."""
    # Test case 1: Edge to a missing vertex
    cube = make_cube()
    cube.edges.append(Edge(0, 99))
    result = validate_mesh(cube)
    assert not result.is_valid
    assert any("missing vertex" in e for e in result.errors)

    # Test case 2: Face pointing at a missing edge
    cube = make_cube()
    cube.faces[2].edges[0] = 500
    result = validate_mesh(cube)
    assert not result.is_valid
    assert any("missing edge" in e for e in result.errors)

    # Test case 3: None mesh
    assert not validate_mesh(None).is_valid

    # Test case 4: Empty mesh only warns
    result = validate_mesh(EditableMesh())
    assert result.is_valid
    assert len(result.warnings) == 2


def test_validate_mesh_warnings():
    """Test geometric warnings from validate_mesh."""
    cube = make_cube()

    # Test case 1: Missing normal
    cube.faces[0].normal = None
    result = validate_mesh(cube)
    assert result.is_valid
    assert any("no normal" in w for w in result.warnings)
    assert not any("no normal" in w for w in validate_mesh(cube, check_normals=False).warnings)

    # Test case 2: Unused vertex
    cube.add_vertex((4.0, 4.0, 4.0))
    assert any("not used" in w for w in validate_mesh(cube).warnings)

    # Test case 3: Duplicate edge record
    cube = make_cube()
    cube.edges.append(Edge(3, 0))
    assert any("duplicates" in w for w in validate_mesh(cube).warnings)


if __name__ == "__main__":
    pytest.main([__file__])
