"""
Edge deduplication while building or editing a mesh.

Faces that share a boundary segment must share one edge record. Edges are looked up by a
key built from the rounded endpoint positions (and UVs, unless merged), so an importer or
an editing operation can ask for "the edge between these two vertices" without scanning.
"""

from dataclasses import dataclass, field

import numpy as np

from config import Tolerances
from data_types import EditableMesh, InvalidReferenceError, Vertex
from geometry import polygon_normal


def position_key(position, precision: int = Tolerances.EDGE_KEY_PRECISION) -> tuple:
    # Adding 0.0 turns -0.0 into 0.0 so mirrored zeros share a key
    return tuple(round(float(c), precision) + 0.0 for c in position)


def vertex_key(vertex: Vertex, include_uv: bool = True,
               precision: int = Tolerances.EDGE_KEY_PRECISION) -> tuple:
    uv = ()
    if include_uv and vertex.uv is not None:
        uv = position_key(vertex.uv, precision)
    return position_key(vertex.position, precision), uv


def edge_key(mesh: EditableMesh, v1: int, v2: int, merge_uv_edges: bool = False,
             precision: int = Tolerances.EDGE_KEY_PRECISION) -> tuple:
    """
    Canonical key for the edge between vertices v1 and v2.

    The endpoint with the smaller rounded position comes first, so (v1, v2) and (v2, v1)
    produce the same key. Coincident vertices with different UVs give different keys
    unless `merge_uv_edges` is set, which keeps UV seams as separate edges.
    """
    vertex_a = mesh.get_vertex(v1)
    vertex_b = mesh.get_vertex(v2)
    if vertex_a is None:
        raise InvalidReferenceError(f"Vertex {v1} does not exist")
    if vertex_b is None:
        raise InvalidReferenceError(f"Vertex {v2} does not exist")
    key_a = vertex_key(vertex_a, not merge_uv_edges, precision)
    key_b = vertex_key(vertex_b, not merge_uv_edges, precision)
    return (key_a, key_b) if key_a <= key_b else (key_b, key_a)


def get_or_create_edge(mesh: EditableMesh, v1: int, v2: int, edge_map: dict,
                       merge_uv_edges: bool = False,
                       precision: int = Tolerances.EDGE_KEY_PRECISION) -> int:
    """
    Return the id of the edge joining v1 and v2, creating it if the map has none.

    A cached edge is only reused when it joins exactly these two vertex ids. Distinct but
    coincident vertices collide on the rounded key; they get their own edge under a key
    extended with the vertex ids.
    """
    key = edge_key(mesh, v1, v2, merge_uv_edges, precision)
    edge_id = edge_map.get(key)
    if edge_id is not None:
        edge = mesh.get_edge(edge_id)
        if edge is not None and edge.connects(v1, v2):
            return edge_id
        if not _is_stale(mesh, edge, key, merge_uv_edges, precision):
            key = key + ((min(v1, v2), max(v1, v2)),)
            edge_id = edge_map.get(key)
            edge = None if edge_id is None else mesh.get_edge(edge_id)
            if edge is not None and edge.connects(v1, v2):
                return edge_id

    edge_id = mesh.add_edge(v1, v2)
    edge_map[key] = edge_id
    return edge_id


def _is_stale(mesh: EditableMesh, edge, key: tuple, merge_uv_edges: bool, precision: int) -> bool:
    """A cached edge is stale when it was removed or rewired so its own key changed."""
    if edge is None:
        return True
    return edge_key(mesh, edge.v1, edge.v2, merge_uv_edges, precision) != key[:2]


def create_face_edges(mesh: EditableMesh, vertex_ids: list[int], edge_map: dict,
                      merge_uv_edges: bool = False) -> list[int]:
    """Edge ids for each consecutive vertex pair of a loop, wrapping around."""
    n = len(vertex_ids)
    return [
        get_or_create_edge(mesh, vertex_ids[i], vertex_ids[(i + 1) % n], edge_map, merge_uv_edges)
        for i in range(n)
    ]


def register_edge(mesh: EditableMesh, edge_map: dict, edge_id: int, merge_uv_edges: bool = False):
    """
    Record an existing edge in the map, replacing a stale entry.

    Used after an edit rewires an edge's endpoints in place.
    """
    edge = mesh.edges[edge_id]
    key = edge_key(mesh, edge.v1, edge.v2, merge_uv_edges)
    existing = edge_map.get(key)
    if existing is None or existing == edge_id:
        edge_map[key] = edge_id
        return
    current = mesh.get_edge(existing)
    if _is_stale(mesh, current, key, merge_uv_edges, Tolerances.EDGE_KEY_PRECISION):
        edge_map[key] = edge_id
    elif not current.connects(edge.v1, edge.v2):
        edge_map.setdefault(key + (edge.key(),), edge_id)
    # otherwise a parallel duplicate of a registered edge; the first one stays canonical


def build_edge_map(mesh: EditableMesh, merge_uv_edges: bool = False) -> dict:
    """Seed a key -> edge id map from the edges a mesh already has."""
    edge_map = {}
    for edge_id in range(len(mesh.edges)):
        register_edge(mesh, edge_map, edge_id, merge_uv_edges)
    return edge_map


def add_polygon(mesh: EditableMesh, vertex_ids: list[int], edge_map: dict,
                material_index: int = 0, normal=None, merge_uv_edges: bool = False) -> int:
    """
    Add a face over `vertex_ids`, sharing edges through `edge_map`.

    The cached face normal is computed from the loop when not supplied.
    """
    edge_ids = create_face_edges(mesh, vertex_ids, edge_map, merge_uv_edges)
    if normal is None:
        normal = polygon_normal(np.array([mesh.vertices[v].position for v in vertex_ids]))
    return mesh.add_face(list(vertex_ids), edge_ids, material_index, normal)


@dataclass
class EdgeKeyCache:
    """
    Caller-owned edge map with hit/miss counters.

    One cache belongs to one editing session on one mesh.
    """
    merge_uv_edges: bool = False
    precision: int = Tolerances.EDGE_KEY_PRECISION
    edge_map: dict = field(default_factory=dict)
    hits: int = 0
    misses: int = 0

    @classmethod
    def from_mesh(cls, mesh: EditableMesh, merge_uv_edges: bool = False) -> "EdgeKeyCache":
        return cls(merge_uv_edges=merge_uv_edges, edge_map=build_edge_map(mesh, merge_uv_edges))

    def get_or_create(self, mesh: EditableMesh, v1: int, v2: int) -> int:
        before = mesh.edge_count
        edge_id = get_or_create_edge(mesh, v1, v2, self.edge_map, self.merge_uv_edges, self.precision)
        if mesh.edge_count == before:
            self.hits += 1
        else:
            self.misses += 1
        return edge_id

    def create_face_edges(self, mesh: EditableMesh, vertex_ids: list[int]) -> list[int]:
        n = len(vertex_ids)
        return [self.get_or_create(mesh, vertex_ids[i], vertex_ids[(i + 1) % n]) for i in range(n)]

    def clear(self):
        self.edge_map.clear()
        self.hits = 0
        self.misses = 0

    def stats(self) -> dict:
        total = self.hits + self.misses
        return {
            "size": len(self.edge_map),
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": self.hits / total if total else 0.0,
        }
