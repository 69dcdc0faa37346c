"""
Bridging: connect two edges, two vertex loops or two faces with a band of quads.
"""

import numpy as np
from loguru import logger

from data_types import EditableMesh, PreconditionError
from topology import add_polygon, build_edge_map
from .common import (
    EditResult,
    edit_operation,
    interpolate_vertex,
    require_edge,
    require_face,
    require_vertex,
    set_face_loop,
    walks,
)


def _check_segments(segments: int):
    if segments < 1:
        raise ValueError(f"segments must be at least 1, got {segments}")


def align_loops(mesh: EditableMesh, loop_a: list[int], loop_b: list[int], closed: bool = True) -> list[int]:
    """
    Reorder `loop_b` so loop_b[i] is the partner of loop_a[i].

    Every rotation (closed loops only) and both directions are tried; the ordering with the
    smallest summed partner distance wins.
    """
    points_a = np.array([mesh.vertices[v].position for v in loop_a])
    best = None
    best_cost = np.inf
    for candidate in (list(loop_b), list(loop_b[::-1])):
        shifts = range(len(candidate)) if closed else [0]
        for shift in shifts:
            ordered = candidate[shift:] + candidate[:shift]
            points_b = np.array([mesh.vertices[v].position for v in ordered])
            cost = float(np.sum(np.linalg.norm(points_a - points_b, axis=1)))
            if cost < best_cost - 1e-12:
                best_cost = cost
                best = ordered
    return best


def _rings(mesh: EditableMesh, loop_a: list[int], loop_b: list[int], segments: int) -> list[list[int]]:
    """loop_a, `segments - 1` interpolated rings, loop_b."""
    rings = [list(loop_a)]
    for k in range(1, segments):
        t = k / segments
        rings.append([mesh.add_vertex(interpolate_vertex(mesh, a, b, t)) for a, b in zip(loop_a, loop_b)])
    rings.append(list(loop_b))
    return rings


def _band_loops(rings: list[list[int]], closed: bool, flip: bool) -> list[list[int]]:
    loops = []
    n = len(rings[0])
    spans = n if closed else n - 1
    for k in range(len(rings) - 1):
        lower, upper = rings[k], rings[k + 1]
        for i in range(spans):
            j = (i + 1) % n
            quad = [lower[i], lower[j], upper[j], upper[i]]
            loops.append(quad[::-1] if flip else quad)
    return loops


def _needs_flip(mesh: EditableMesh, loop_a: list[int], loop_b: list[int]) -> bool:
    """
    Whether the band must run against the loop_a order.

    The band walks loop_a forward and loop_b backward, so it flips when an existing face
    already walks loop_a forward or loop_b backward.
    """
    a0, a1 = loop_a[0], loop_a[1]
    if walks(mesh, a0, a1):
        return True
    if walks(mesh, a1, a0):
        return False
    b0, b1 = loop_b[0], loop_b[1]
    return bool(walks(mesh, b1, b0))


@edit_operation()
def bridge_edges(mesh: EditableMesh, edge_a: int, edge_b: int, segments: int = 1) -> EditResult:
    """Connect two edges with `segments` quads."""
    _check_segments(segments)
    if edge_a == edge_b:
        raise PreconditionError("Cannot bridge an edge with itself")
    first = require_edge(mesh, edge_a)
    second = require_edge(mesh, edge_b)
    if first.has_vertex(second.v1) or first.has_vertex(second.v2):
        raise PreconditionError(f"Edges {edge_a} and {edge_b} share a vertex")

    loop_a = [first.v1, first.v2]
    loop_b = align_loops(mesh, loop_a, [second.v1, second.v2], closed=False)
    return _bridge(mesh, loop_a, loop_b, segments, closed=False)


@edit_operation()
def bridge_edge_loops(mesh: EditableMesh, loop_a: list[int], loop_b: list[int], segments: int = 1,
                      closed: bool = True) -> EditResult:
    """Connect two vertex loops of equal length with a band of quads."""
    _check_segments(segments)
    for v in list(loop_a) + list(loop_b):
        require_vertex(mesh, v)
    if len(loop_a) != len(loop_b):
        raise PreconditionError(
            f"Loops must have the same number of vertices ({len(loop_a)} != {len(loop_b)})")
    if len(loop_a) < (3 if closed else 2):
        raise PreconditionError("Loops are too short to bridge")
    if set(loop_a) & set(loop_b):
        raise PreconditionError("Loops share vertices")

    loop_b = align_loops(mesh, list(loop_a), list(loop_b), closed=closed)
    return _bridge(mesh, list(loop_a), loop_b, segments, closed=closed)


def _bridge(mesh: EditableMesh, loop_a: list[int], loop_b: list[int], segments: int,
            closed: bool) -> EditResult:
    vertex_count = mesh.vertex_count
    edge_count = mesh.edge_count
    flip = _needs_flip(mesh, loop_a, loop_b)
    edge_map = build_edge_map(mesh)
    rings = _rings(mesh, loop_a, loop_b, segments)
    new_faces = [add_polygon(mesh, loop, edge_map) for loop in _band_loops(rings, closed, flip)]
    logger.debug(f"Bridged {len(loop_a)}-vertex loops with {len(new_faces)} faces")
    return EditResult(
        success=True,
        new_vertices=list(range(vertex_count, mesh.vertex_count)),
        new_edges=list(range(edge_count, mesh.edge_count)),
        new_faces=new_faces,
    )


@edit_operation()
def bridge_faces(mesh: EditableMesh, face_a: int, face_b: int, segments: int = 1) -> EditResult:
    """
    Replace two faces with a tube joining their boundaries.

    The first two tube faces take over the ids of `face_a` and `face_b`, so no other face
    id changes.
    """
    _check_segments(segments)
    if face_a == face_b:
        raise PreconditionError("Cannot bridge a face with itself")
    first = require_face(mesh, face_a)
    second = require_face(mesh, face_b)
    if len(first.vertices) != len(second.vertices):
        raise PreconditionError(
            f"Faces must have the same number of vertices ({len(first.vertices)} != {len(second.vertices)})")
    if set(first.vertices) & set(second.vertices):
        raise PreconditionError(f"Faces {face_a} and {face_b} share vertices")

    vertex_count = mesh.vertex_count
    edge_count = mesh.edge_count
    loop_a = list(first.vertices)
    loop_b = align_loops(mesh, loop_a, list(second.vertices))
    material = first.material_index

    edge_map = build_edge_map(mesh)
    rings = _rings(mesh, loop_a, loop_b, segments)
    # face_a walked loop_a forward; the tube takes its place with the same direction
    band = _band_loops(rings, closed=True, flip=False)

    set_face_loop(mesh, face_a, band[0], edge_map)
    set_face_loop(mesh, face_b, band[1], edge_map)
    mesh.faces[face_b].material_index = material
    new_faces = [face_a, face_b]
    for loop in band[2:]:
        new_faces.append(add_polygon(mesh, loop, edge_map, material))

    return EditResult(
        success=True,
        new_vertices=list(range(vertex_count, mesh.vertex_count)),
        new_edges=list(range(edge_count, mesh.edge_count)),
        new_faces=new_faces,
    )
