"""
Result types and the low-level rewrites shared by the editing operations.

`split_edge` and `split_face` are the two primitives every cut is made of: the knife and
the boolean engine both reduce their work to sequences of these calls.
"""

import functools
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Optional, Sequence

import numpy as np
from loguru import logger
from numpy.typing import NDArray

from data_types import EditableMesh, InvalidReferenceError, MeshError, Vertex
from geometry import as_vector, normalize, polygon_normal
from topology import build_edge_map, get_or_create_edge, register_edge


@dataclass
class EditResult:
    success: bool
    error: Optional[str] = None
    new_vertices: list[int] = field(default_factory=list)
    new_edges: list[int] = field(default_factory=list)
    new_faces: list[int] = field(default_factory=list)
    removed_edges: list[int] = field(default_factory=list)
    statistics: dict = field(default_factory=dict)

    @classmethod
    def failure(cls, message: str) -> "EditResult":
        return cls(success=False, error=message)


@contextmanager
def atomic_edit(mesh: EditableMesh):
    """Snapshot the mesh and put it back if the block raises."""
    snapshot = mesh.snapshot()
    try:
        yield snapshot
    except Exception:
        mesh.restore(snapshot)
        raise


def edit_operation(result_type=EditResult):
    """
    Make an editing function atomic.

    A MeshError raised inside restores the mesh and becomes a failed result; any other
    exception restores and propagates.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(mesh, *args, **kwargs):
            if mesh is None or not isinstance(mesh, EditableMesh):
                return result_type.failure("Invalid mesh: mesh is None")
            try:
                with atomic_edit(mesh):
                    return func(mesh, *args, **kwargs)
            except MeshError as error:
                logger.warning(f"{func.__name__} on '{mesh.name}' failed: {error}")
                return result_type.failure(str(error))
        return wrapper
    return decorator


def require_vertex(mesh: EditableMesh, index: int) -> Vertex:
    vertex = mesh.get_vertex(index)
    if vertex is None:
        raise InvalidReferenceError(f"Vertex {index} does not exist")
    return vertex


def require_edge(mesh: EditableMesh, index: int):
    edge = mesh.get_edge(index)
    if edge is None:
        raise InvalidReferenceError(f"Edge {index} does not exist")
    return edge


def require_face(mesh: EditableMesh, index: int):
    face = mesh.get_face(index)
    if face is None:
        raise InvalidReferenceError(f"Face {index} does not exist")
    return face


def check_positive(name: str, value: float, allow_zero: bool = False):
    if value is None or not np.isfinite(value) or value < 0 or (value == 0 and not allow_zero):
        raise ValueError(f"{name} must be {'non-negative' if allow_zero else 'positive'}, got {value}")


def check_direction(direction) -> Optional[NDArray[np.float64]]:
    """Normalize an optional user direction, rejecting zero vectors."""
    if direction is None:
        return None
    unit = normalize(direction)
    if unit is None:
        raise ValueError(f"Direction must be a non-zero vector, got {direction}")
    return unit


def _lerp_optional(a, b, t):
    if a is None or b is None:
        return None
    return a + (b - a) * t


def interpolate_vertex(mesh: EditableMesh, a: int, b: int, t: float, position=None) -> Vertex:
    """New vertex between a and b, with UV/normal/color interpolated where both ends have them."""
    va = mesh.vertices[a]
    vb = mesh.vertices[b]
    if position is None:
        position = va.position + (vb.position - va.position) * t
    normal = _lerp_optional(va.normal, vb.normal, t)
    if normal is not None:
        normal = normalize(normal)
    return Vertex(
        as_vector(position),
        uv=_lerp_optional(va.uv, vb.uv, t),
        normal=normal,
        color=_lerp_optional(va.color, vb.color, t),
    )


def offset_vertex(vertex: Vertex, offset) -> Vertex:
    moved = vertex.copy()
    moved.position = vertex.position + as_vector(offset)
    return moved


def face_edge_between(mesh: EditableMesh, face_id: int, a: int, b: int) -> Optional[int]:
    """Id of the edge a face uses between loop-neighbours a and b."""
    face = mesh.faces[face_id]
    for i, (p, q) in enumerate(face.vertex_pairs()):
        if (p, q) == (a, b) or (p, q) == (b, a):
            return face.edges[i]
    return None


def walks(mesh: EditableMesh, a: int, b: int) -> list[int]:
    """Faces whose loop steps directly from a to b."""
    return [i for i, face in enumerate(mesh.faces) if (a, b) in face.vertex_pairs()]


def refresh_face_normal(mesh: EditableMesh, face_id: int):
    mesh.faces[face_id].normal = polygon_normal(mesh.face_points(face_id))


def set_face_loop(mesh: EditableMesh, face_id: int, loop: Sequence[int], edge_map: dict):
    """Rewrite a face over a new vertex loop, sharing edges through `edge_map`."""
    face = mesh.faces[face_id]
    n = len(loop)
    face.vertices = [int(v) for v in loop]
    face.edges = [get_or_create_edge(mesh, loop[i], loop[(i + 1) % n], edge_map) for i in range(n)]
    mesh.check_face(face)
    refresh_face_normal(mesh, face_id)


def split_edge(mesh: EditableMesh, edge_id: int, point=None, t: Optional[float] = None,
               edge_map: Optional[dict] = None) -> tuple[int, int]:
    """
    Insert a new vertex into an edge and into every face loop that uses the edge.

    The existing edge record keeps its id and now ends at the new vertex; a second edge is
    appended for the other half.

    Returns:
        tuple: (new vertex id, new edge id)
    """
    edge = require_edge(mesh, edge_id)
    a, b = edge.v1, edge.v2
    pa = mesh.vertices[a].position
    pb = mesh.vertices[b].position
    if t is None:
        if point is None:
            t = 0.5
        else:
            span = pb - pa
            length_sq = float(np.dot(span, span))
            t = float(np.dot(as_vector(point) - pa, span) / length_sq) if length_sq > 0 else 0.5
    new_vertex = mesh.add_vertex(interpolate_vertex(mesh, a, b, t, point))

    edge.v2 = new_vertex
    new_edge = mesh.add_edge(new_vertex, b, seam=edge.seam)

    for face in mesh.faces:
        n = len(face.edges)
        for i in range(n):
            if face.edges[i] != edge_id:
                continue
            if face.vertices[i] == a:
                halves = [edge_id, new_edge]
            else:
                halves = [new_edge, edge_id]
            face.vertices.insert(i + 1, new_vertex)
            face.edges[i:i + 1] = halves
            break

    if edge_map is not None:
        register_edge(mesh, edge_map, edge_id)
        register_edge(mesh, edge_map, new_edge)
    return new_vertex, new_edge


def split_face(mesh: EditableMesh, face_id: int, va: int, vb: int,
               interior_points: Sequence = (), edge_map: Optional[dict] = None
               ) -> Optional[tuple[int, int, list[int]]]:
    """
    Split a face in two along a chord from `va` to `vb`.

    `interior_points` are extra positions the chord passes through, in order from va to vb;
    they become new vertices shared by both halves. The first half keeps `face_id`, the
    second is appended.

    Returns:
        tuple: (face_id, new face id, new vertex ids), or None when the chord would not
        produce two proper faces (same or neighbouring corners without interior points).
    """
    face = require_face(mesh, face_id)
    loop = face.vertices
    if va not in loop or vb not in loop or va == vb:
        return None
    n = len(loop)
    i = loop.index(va)
    j = loop.index(vb)
    adjacent = (j - i) % n in (1, n - 1)
    if adjacent and not interior_points:
        return None

    if edge_map is None:
        edge_map = build_edge_map(mesh)

    chord = []
    count = len(interior_points)
    for k, point in enumerate(interior_points):
        vertex = interpolate_vertex(mesh, va, vb, (k + 1) / (count + 1), point)
        chord.append(mesh.add_vertex(vertex))

    first = [loop[(i + k) % n] for k in range((j - i) % n + 1)] + chord[::-1]
    second = [loop[(j + k) % n] for k in range((i - j) % n + 1)] + chord
    if len(first) < 3 or len(second) < 3:
        return None

    material = face.material_index
    original_normal = face.normal
    set_face_loop(mesh, face_id, first, edge_map)
    mesh.faces.append(mesh.faces[face_id].copy())
    new_face = len(mesh.faces) - 1
    set_face_loop(mesh, new_face, second, edge_map)
    mesh.faces[new_face].material_index = material
    # Keep the pre-split normal when a half is too thin to define its own
    for f in (face_id, new_face):
        if mesh.faces[f].normal is None:
            mesh.faces[f].normal = None if original_normal is None else original_normal.copy()
    return face_id, new_face, chord
