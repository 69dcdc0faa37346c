"""
Bevels on edges, vertices and faces.

`bevel(mesh, target)` takes one of the target dataclasses below and dispatches on its type.
Vertices made unreachable by a bevel (the corners that were cut away) stay in the vertex
array without any face; `validation.repair.remove_unused_elements` compacts them.
"""

import functools
from dataclasses import dataclass
from typing import Optional

import numpy as np
from loguru import logger

from config import Tolerances
from data_types import EditableMesh, PreconditionError
from geometry import lerp
from topology import add_polygon, build_edge_map
from .common import (
    EditResult,
    check_positive,
    edit_operation,
    face_edge_between,
    interpolate_vertex,
    require_edge,
    require_vertex,
    set_face_loop,
    split_edge,
    walks,
)
from .inset import inset_faces


@dataclass(frozen=True)
class EdgeBevel:
    edge: int
    offset: float = Tolerances.BEVEL_OFFSET
    segments: int = 1
    profile: float = Tolerances.BEVEL_PROFILE


@dataclass(frozen=True)
class VertexBevel:
    vertex: int
    offset: float = Tolerances.BEVEL_OFFSET


@dataclass(frozen=True)
class FaceBevel:
    face: int
    offset: float = Tolerances.BEVEL_OFFSET
    depth: float = Tolerances.BEVEL_OFFSET


def bevel(mesh: EditableMesh, target) -> EditResult:
    return _bevel_target(target, mesh)


@functools.singledispatch
def _bevel_target(target, mesh: EditableMesh) -> EditResult:
    raise TypeError(f"Unknown bevel target: {type(target).__name__}")


@_bevel_target.register
def _(target: EdgeBevel, mesh: EditableMesh) -> EditResult:
    return bevel_edge(mesh, target.edge, offset=target.offset, segments=target.segments,
                      profile=target.profile)


@_bevel_target.register
def _(target: VertexBevel, mesh: EditableMesh) -> EditResult:
    return bevel_vertex(mesh, target.vertex, offset=target.offset)


@_bevel_target.register
def _(target: FaceBevel, mesh: EditableMesh) -> EditResult:
    return bevel_face(mesh, target.face, offset=target.offset, depth=target.depth)


def profile_point(start, end, corner, t: float, profile: float) -> np.ndarray:
    """
    Point on the bevel profile between `start` (t=0) and `end` (t=1).

    A quadratic curve whose control point slides from the chord midpoint (profile 0, flat)
    towards the original corner (profile 0.5) and beyond it (profile 1).
    """
    control = lerp((start + end) / 2.0, corner, 2.0 * profile)
    return (1 - t) ** 2 * start + 2 * t * (1 - t) * control + t ** 2 * end


def _slide_target(mesh: EditableMesh, face_id: int, corner: int, other: int) -> int:
    """Loop neighbour of `corner` in the face that is not `other`."""
    loop = mesh.faces[face_id].vertices
    i = loop.index(corner)
    before, after = loop[i - 1], loop[(i + 1) % len(loop)]
    return after if before == other else before


def _checked_slide(mesh: EditableMesh, corner: int, towards: int, offset: float) -> np.ndarray:
    start = mesh.vertices[corner].position
    span = mesh.vertices[towards].position - start
    length = float(np.linalg.norm(span))
    if offset >= length:
        raise PreconditionError(
            f"Bevel offset {offset} exceeds the length {length:.6g} of edge ({corner}, {towards})")
    return start + span / length * offset


def _replace_run(loop: list[int], run: list[int], replacement: list[int]) -> Optional[list[int]]:
    """Replace a cyclic run of consecutive loop entries; None if the run is absent."""
    n = len(loop)
    k = len(run)
    for start in range(n):
        if all(loop[(start + j) % n] == run[j] for j in range(k)):
            rotated = loop[start:] + loop[:start]
            return replacement + rotated[k:]
    return None


@edit_operation()
def bevel_edge(mesh: EditableMesh, edge_index: int, offset: float = Tolerances.BEVEL_OFFSET,
               segments: int = 1, profile: float = Tolerances.BEVEL_PROFILE) -> EditResult:
    """
    Replace a manifold edge by a strip of `segments` faces.

    Each endpoint slides `offset` along the neighbouring edge of both faces; the two faces
    lose the original endpoints and the strip fills the gap. Where a third face meets the
    corner it absorbs the new profile vertices, otherwise a corner face closes the hole.
    """
    check_positive("offset", offset)
    if segments < 1:
        raise ValueError(f"segments must be at least 1, got {segments}")
    edge = require_edge(mesh, edge_index)
    a, b = edge.v1, edge.v2
    forward = walks(mesh, a, b)
    backward = walks(mesh, b, a)
    if len(forward) != 1 or len(backward) != 1:
        raise PreconditionError(
            f"Edge {edge_index} must be shared by exactly two consistently wound faces to bevel")
    f1, f2 = forward[0], backward[0]

    vertex_count = mesh.vertex_count
    edge_count = mesh.edge_count
    face_count = mesh.face_count

    # Slide targets are read before any split changes the loops
    slides = {}
    for corner, other in ((a, b), (b, a)):
        for face_id in (f1, f2):
            target = _slide_target(mesh, face_id, corner, other)
            slides[(corner, face_id)] = (target, _checked_slide(mesh, corner, target, offset))

    edge_map = build_edge_map(mesh)
    moved = {}
    for (corner, face_id), (target, point) in slides.items():
        slide_edge = face_edge_between(mesh, face_id, corner, target)
        moved[(corner, face_id)], _ = split_edge(mesh, slide_edge, point, edge_map=edge_map)

    a1, a2 = moved[(a, f1)], moved[(a, f2)]
    b1, b2 = moved[(b, f1)], moved[(b, f2)]

    set_face_loop(mesh, f1, [v for v in mesh.faces[f1].vertices if v not in (a, b)], edge_map)
    set_face_loop(mesh, f2, [v for v in mesh.faces[f2].vertices if v not in (a, b)], edge_map)

    rows = {}
    for corner, start, end in ((a, a1, a2), (b, b1, b2)):
        row = [start]
        p_start = mesh.vertices[start].position
        p_end = mesh.vertices[end].position
        p_corner = mesh.vertices[corner].position
        for k in range(1, segments):
            t = k / segments
            vertex = interpolate_vertex(mesh, start, end, t,
                                        profile_point(p_start, p_end, p_corner, t, profile))
            row.append(mesh.add_vertex(vertex))
        row.append(end)
        rows[corner] = row

    material = mesh.faces[f1].material_index
    row_a, row_b = rows[a], rows[b]
    for k in range(segments):
        add_polygon(mesh, [row_b[k], row_a[k], row_a[k + 1], row_b[k + 1]], edge_map, material)

    _close_corner(mesh, a, a2, a1, row_a[::-1], [a1, a, a2] + row_a[-2:0:-1], edge_map, material)
    _close_corner(mesh, b, b1, b2, row_b, [b, b1] + row_b[1:-1] + [b2], edge_map, material)

    logger.debug(f"Bevelled edge {edge_index} with {segments} segments")
    return EditResult(
        success=True,
        new_vertices=list(range(vertex_count, mesh.vertex_count)),
        new_edges=list(range(edge_count, mesh.edge_count)),
        new_faces=list(range(face_count, mesh.face_count)),
    )


def _close_corner(mesh: EditableMesh, corner: int, enter: int, leave: int, profile_run: list[int],
                  corner_loop: list[int], edge_map: dict, material: int):
    """
    Fill the notch left at a bevelled corner.

    A face walking enter -> corner -> leave takes the profile run in place of the corner;
    otherwise a separate corner face is added.
    """
    for face_id, face in enumerate(mesh.faces):
        replaced = _replace_run(face.vertices, [enter, corner, leave], profile_run)
        if replaced is not None:
            set_face_loop(mesh, face_id, replaced, edge_map)
            return
    add_polygon(mesh, corner_loop, edge_map, material)


@edit_operation()
def bevel_vertex(mesh: EditableMesh, vertex_index: int, offset: float = Tolerances.BEVEL_OFFSET) -> EditResult:
    """
    Cut a corner off: every edge at the vertex is split `offset` away from it and the faces
    around the vertex are joined to a new cap face through those split points.
    """
    check_positive("offset", offset)
    require_vertex(mesh, vertex_index)
    around = mesh.faces_with_vertex(vertex_index)
    if not around:
        raise PreconditionError(f"Vertex {vertex_index} has no adjacent faces to bevel")

    vertex_count = mesh.vertex_count
    edge_count = mesh.edge_count

    neighbours = {}
    for face_id in around:
        loop = mesh.faces[face_id].vertices
        i = loop.index(vertex_index)
        for other in (loop[i - 1], loop[(i + 1) % len(loop)]):
            if other not in neighbours:
                neighbours[other] = (face_id, _checked_slide(mesh, vertex_index, other, offset))

    edge_map = build_edge_map(mesh)
    split_points = {}
    for other, (face_id, point) in neighbours.items():
        slide_edge = face_edge_between(mesh, face_id, vertex_index, other)
        split_points[other], _ = split_edge(mesh, slide_edge, point, edge_map=edge_map)

    # Each face now walks x_prev -> v -> x_next; the cap walks x_next -> x_prev
    successor = {}
    for face_id in around:
        loop = mesh.faces[face_id].vertices
        i = loop.index(vertex_index)
        x_prev, x_next = loop[i - 1], loop[(i + 1) % len(loop)]
        successor[x_next] = x_prev
        set_face_loop(mesh, face_id, [v for v in loop if v != vertex_index], edge_map)

    starts = set(successor) - set(successor.values())
    current = next(iter(starts)) if starts else next(iter(successor))
    cap = [current]
    while current in successor and successor[current] != cap[0] and len(cap) <= len(successor):
        current = successor[current]
        cap.append(current)
    if starts:
        # Open fan at a boundary vertex: the corner closes the cap
        cap.append(vertex_index)

    new_faces = []
    if len(cap) >= 3:
        material = mesh.faces[around[0]].material_index
        new_faces.append(add_polygon(mesh, cap, edge_map, material))

    return EditResult(
        success=True,
        new_vertices=list(range(vertex_count, mesh.vertex_count)),
        new_edges=list(range(edge_count, mesh.edge_count)),
        new_faces=new_faces,
    )


def bevel_face(mesh: EditableMesh, face_index: int, offset: float = Tolerances.BEVEL_OFFSET,
               depth: float = Tolerances.BEVEL_OFFSET) -> EditResult:
    """Inset the face by `offset` and raise the inner face by `depth` along its normal."""
    return inset_faces(mesh, [face_index], distance=offset, depth=depth)
