"""
Extrusion of vertices, edges and faces.
"""

from typing import Optional

import numpy as np
from loguru import logger
from numpy.typing import NDArray

from config import Tolerances
from data_types import EditableMesh, PreconditionError
from geometry import normalize, perpendicular_vector, polygon_centroid
from topology import add_polygon, build_edge_map, get_or_create_edge
from .common import (
    EditResult,
    check_direction,
    edit_operation,
    offset_vertex,
    require_edge,
    require_face,
    require_vertex,
)


def _average_face_normal(mesh: EditableMesh, face_ids: list[int]) -> Optional[NDArray[np.float64]]:
    normals = []
    for face_id in face_ids:
        normal = mesh.faces[face_id].normal
        if normal is None:
            normal = mesh.compute_face_normal(face_id)
        if normal is not None:
            normals.append(normal)
    if not normals:
        return None
    return normalize(np.sum(normals, axis=0))


def vertex_direction(mesh: EditableMesh, vertex_index: int) -> NDArray[np.float64]:
    """Vertex normal, else the mean of adjacent face normals, else +Y."""
    vertex = mesh.vertices[vertex_index]
    if vertex.normal is not None and normalize(vertex.normal) is not None:
        return normalize(vertex.normal)
    averaged = _average_face_normal(mesh, mesh.faces_with_vertex(vertex_index))
    return averaged if averaged is not None else np.array([0.0, 1.0, 0.0])


@edit_operation()
def extrude_vertex(mesh: EditableMesh, vertex_index: int, distance: float = Tolerances.EXTRUDE_DISTANCE,
                   direction=None) -> EditResult:
    """Duplicate a vertex offset along `direction` and join it to the original with an edge."""
    direction = check_direction(direction)
    require_vertex(mesh, vertex_index)
    if direction is None:
        direction = vertex_direction(mesh, vertex_index)

    new_vertex = mesh.add_vertex(offset_vertex(mesh.vertices[vertex_index], direction * distance))
    new_edge = get_or_create_edge(mesh, vertex_index, new_vertex, build_edge_map(mesh))
    logger.debug(f"Extruded vertex {vertex_index} to {new_vertex}")
    return EditResult(success=True, new_vertices=[new_vertex], new_edges=[new_edge])


@edit_operation()
def extrude_vertex_with_face(mesh: EditableMesh, vertex_index: int,
                             distance: float = Tolerances.EXTRUDE_DISTANCE, direction=None) -> EditResult:
    """
    Extrude a vertex and stitch a triangle to every boundary edge that touches it.

    Each triangle reverses the boundary edge's direction in its face, so the stitched
    triangles continue the surface with consistent winding. An interior vertex has no
    boundary edges and only gains the connecting edge.
    """
    direction = check_direction(direction)
    require_vertex(mesh, vertex_index)
    if direction is None:
        direction = vertex_direction(mesh, vertex_index)

    edge_map = build_edge_map(mesh)
    face_uses = {}
    for face in mesh.faces:
        for a, b in face.vertex_pairs():
            if vertex_index in (a, b):
                face_uses.setdefault(frozenset((a, b)), []).append((a, b))
    boundary_uses = [uses[0] for uses in face_uses.values() if len(uses) == 1]

    edge_count = mesh.edge_count
    new_vertex = mesh.add_vertex(offset_vertex(mesh.vertices[vertex_index], direction * distance))
    connecting = get_or_create_edge(mesh, vertex_index, new_vertex, edge_map)

    new_faces = []
    for a, b in boundary_uses:
        new_faces.append(add_polygon(mesh, [b, a, new_vertex], edge_map))

    return EditResult(
        success=True,
        new_vertices=[new_vertex],
        new_edges=[connecting] + [e for e in range(edge_count, mesh.edge_count) if e != connecting],
        new_faces=new_faces,
    )


@edit_operation()
def extrude_edge(mesh: EditableMesh, edge_index: int, distance: float = Tolerances.EXTRUDE_DISTANCE,
                 direction=None, keep_original: bool = False) -> EditResult:
    """
    Pull an edge out into a quad.

    Both endpoints are duplicated along `direction` (default: mean normal of the faces using
    the edge, or a perpendicular to the edge when it has none). The quad gets its own closing
    edge between the original endpoints; with `keep_original=False` the source edge is then
    removed and its face references are moved onto that closing edge.
    """
    direction = check_direction(direction)
    edge = require_edge(mesh, edge_index)
    v1, v2 = edge.v1, edge.v2
    p1 = mesh.vertices[v1].position
    p2 = mesh.vertices[v2].position

    using_faces = mesh.faces_with_edge(edge_index)
    if direction is None:
        direction = _average_face_normal(mesh, using_faces)
        if direction is None:
            direction = perpendicular_vector(p2 - p1)
        if direction is None:
            raise PreconditionError(f"Edge {edge_index} has zero length")

    n1 = mesh.add_vertex(offset_vertex(mesh.vertices[v1], direction * distance))
    n2 = mesh.add_vertex(offset_vertex(mesh.vertices[v2], direction * distance))

    # Wind the quad against the first face that walks v1 -> v2
    forward = False
    if using_faces:
        loop = mesh.faces[using_faces[0]].vertices
        i = loop.index(v1)
        forward = loop[(i + 1) % len(loop)] == v2
    loop = [v2, v1, n1, n2] if forward else [v1, v2, n2, n1]

    side_a = mesh.add_edge(v1, n1)
    top = mesh.add_edge(n1, n2)
    side_b = mesh.add_edge(n2, v2)
    closing = mesh.add_edge(v2, v1)
    edge_by_pair = {
        frozenset((v1, n1)): side_a,
        frozenset((n1, n2)): top,
        frozenset((n2, v2)): side_b,
        frozenset((v1, v2)): closing,
    }
    face_edges = [edge_by_pair[frozenset((loop[i], loop[(i + 1) % 4]))] for i in range(4)]
    new_face = mesh.add_face(loop, face_edges, material_index=_material_of(mesh, using_faces))
    mesh.faces[new_face].normal = mesh.compute_face_normal(new_face)
    new_edges = [side_a, top, side_b, closing]

    removed = []
    if not keep_original:
        mesh.replace_edge_references(edge_index, closing)
        mesh.remove_edge(edge_index)
        removed.append(edge_index)
        new_edges = [e - 1 if e > edge_index else e for e in new_edges]

    logger.debug(f"Extruded edge {edge_index} into face {new_face}")
    return EditResult(success=True, new_vertices=[n1, n2], new_edges=new_edges,
                      new_faces=[new_face], removed_edges=removed)


def _material_of(mesh: EditableMesh, face_ids: list[int]) -> int:
    return mesh.faces[face_ids[0]].material_index if face_ids else 0


@edit_operation()
def extrude_face(mesh: EditableMesh, face_index: int, distance: float = Tolerances.EXTRUDE_DISTANCE,
                 direction=None, scale: float = 1.0, keep_original: bool = False) -> EditResult:
    """
    Extrude a face along its normal (or `direction`), building one side quad per boundary edge.

    The face itself moves to the cap unless `keep_original` is set, in which case the source
    face stays in place with reversed winding and a new cap is added, closing a lone face
    into a prism.
    """
    direction = check_direction(direction)
    if scale <= 0:
        raise ValueError(f"scale must be positive, got {scale}")
    face = require_face(mesh, face_index)
    if direction is None:
        direction = face.normal if face.normal is not None else mesh.compute_face_normal(face_index)
        direction = None if direction is None else normalize(direction)
        if direction is None:
            raise PreconditionError(f"Face {face_index} is degenerate and has no normal")

    loop = list(face.vertices)
    offset = direction * distance
    cap_center = polygon_centroid(mesh.face_points(face_index)) + offset

    edge_map = build_edge_map(mesh)
    edge_count = mesh.edge_count
    cap = []
    for v in loop:
        moved = offset_vertex(mesh.vertices[v], offset)
        moved.position = cap_center + (moved.position - cap_center) * scale
        cap.append(mesh.add_vertex(moved))

    material = face.material_index
    new_faces = []
    n = len(loop)
    for i in range(n):
        a, b = loop[i], loop[(i + 1) % n]
        new_faces.append(add_polygon(mesh, [a, b, cap[(i + 1) % n], cap[i]], edge_map, material))

    if keep_original:
        face.reverse()
        new_faces.append(add_polygon(mesh, cap, edge_map, material))
    else:
        cap_edges = [get_or_create_edge(mesh, cap[i], cap[(i + 1) % n], edge_map) for i in range(n)]
        face.vertices = cap
        face.edges = cap_edges
        face.normal = mesh.compute_face_normal(face_index)

    return EditResult(
        success=True,
        new_vertices=cap,
        new_edges=list(range(edge_count, mesh.edge_count)),
        new_faces=new_faces,
        statistics={"side_faces": n},
    )
