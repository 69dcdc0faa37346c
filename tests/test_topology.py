"""
Test script to verify edge deduplication and adjacency queries.
"""

import os
import sys
import numpy as np
import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from data_types import EditableMesh, Vertex
from topology import (
    edge_key,
    get_or_create_edge,
    build_edge_map,
    add_polygon,
    EdgeKeyCache,
    edge_faces,
    vertex_pair_faces,
    boundary_edges,
    non_manifold_edges,
    face_neighbors_in_loop,
    referenced_vertices,
    referenced_edges,
)
from meshes import make_cube, make_plane_quad


def test_edge_key_is_symmetric():
    """Test that both endpoint orders give the same key."""
    cube = make_cube()
    assert edge_key(cube, 0, 1) == edge_key(cube, 1, 0)
    assert edge_key(cube, 0, 1) != edge_key(cube, 0, 3)


def test_get_or_create_edge_is_idempotent():
    """Test that asking twice for the same pair returns one edge."""
    mesh = EditableMesh()
    a = mesh.add_vertex((0.0, 0.0, 0.0))
    b = mesh.add_vertex((1.0, 0.0, 0.0))
    edge_map = {}
    first = get_or_create_edge(mesh, a, b, edge_map)
    second = get_or_create_edge(mesh, b, a, edge_map)
    assert first == second
    assert mesh.edge_count == 1


def test_coincident_vertices_get_distinct_edges():
    """Test that duplicated vertices at the same position do not steal each other's edges."""
    mesh = EditableMesh()
    a = mesh.add_vertex((0.0, 0.0, 0.0))
    b = mesh.add_vertex((1.0, 0.0, 0.0))
    b_copy = mesh.add_vertex((1.0, 0.0, 0.0))
    edge_map = {}
    e1 = get_or_create_edge(mesh, a, b, edge_map)
    e2 = get_or_create_edge(mesh, a, b_copy, edge_map)
    assert e1 != e2
    assert mesh.edges[e2].connects(a, b_copy)
    # Repeating either request hits the cache
    assert get_or_create_edge(mesh, b_copy, a, edge_map) == e2
    assert get_or_create_edge(mesh, b, a, edge_map) == e1
    assert mesh.edge_count == 2


def test_uv_seams_and_merge_option():
    """Test that UVs split keys unless merge_uv_edges is set."""
    mesh = EditableMesh()
    mesh.add_vertex(Vertex([0.0, 0.0, 0.0], uv=[0.0, 0.0]))
    mesh.add_vertex(Vertex([1.0, 0.0, 0.0], uv=[1.0, 0.0]))
    mesh.add_vertex(Vertex([1.0, 0.0, 0.0], uv=[0.5, 0.5]))
    assert edge_key(mesh, 0, 1) != edge_key(mesh, 0, 2)
    assert edge_key(mesh, 0, 1, merge_uv_edges=True) == edge_key(mesh, 0, 2, merge_uv_edges=True)


def test_add_polygon_shares_edges():
    """Test that adjacent polygons built through one map share their common edge."""
    mesh = EditableMesh()
    for p in [(0, 0, 0), (1, 0, 0), (1, 1, 0), (0, 1, 0), (2, 0, 0), (2, 1, 0)]:
        mesh.add_vertex(p)
    edge_map = {}
    add_polygon(mesh, [0, 1, 2, 3], edge_map)
    add_polygon(mesh, [1, 4, 5, 2], edge_map)
    assert mesh.edge_count == 7
    shared = mesh.find_edge(1, 2)
    assert sorted(edge_faces(mesh)[shared]) == [0, 1]
    assert np.allclose(mesh.faces[0].normal, [0.0, 0.0, 1.0])


def test_build_edge_map_reuses_existing_edges():
    """Test that a map seeded from a mesh finds its edges."""
    cube = make_cube()
    edge_map = build_edge_map(cube)
    assert len(edge_map) == 12
    assert get_or_create_edge(cube, 6, 7, edge_map) == cube.find_edge(6, 7)
    assert cube.edge_count == 12


def test_edge_key_cache_stats():
    """Test hit and miss counting of EdgeKeyCache."""
    cube = make_cube()
    cache = EdgeKeyCache.from_mesh(cube)

    # Test case 1: Existing edges are hits
    cache.create_face_edges(cube, [0, 3, 2, 1])
    assert cache.hits == 4
    assert cache.misses == 0

    # Test case 2: A diagonal is new
    diagonal = cache.get_or_create(cube, 0, 2)
    assert cache.misses == 1
    assert cube.find_edge(2, 0) == diagonal
    stats = cache.stats()
    assert stats["size"] == 13
    assert np.isclose(stats["hit_rate"], 0.8)

    # Test case 3: Clearing resets counters
    cache.clear()
    assert cache.stats() == {"size": 0, "hits": 0, "misses": 0, "hit_rate": 0.0}


def test_adjacency_queries():
    """Test boundary, non-manifold and loop-neighbour queries."""
    # Test case 1: Closed cube has no boundary
    cube = make_cube()
    assert boundary_edges(cube) == []
    assert non_manifold_edges(cube) == []
    assert face_neighbors_in_loop(cube, 0, 0) == (1, 3)
    assert referenced_vertices(cube) == set(range(8))
    assert referenced_edges(cube) == set(range(12))

    # Test case 2: Each undirected pair is walked once in each direction
    for uses in vertex_pair_faces(cube).values():
        assert len(uses) == 2
        assert uses[0][1] != uses[1][1]

    # Test case 3: Open quad is all boundary
    quad = make_plane_quad()
    assert boundary_edges(quad) == [0, 1, 2, 3]


if __name__ == "__main__":
    pytest.main([__file__])
