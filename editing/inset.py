"""
Face inset: shrink a face inside its own boundary and fill the gap with a ring of quads.
"""

import numpy as np
from loguru import logger

from config import Tolerances
from data_types import EditableMesh, PreconditionError
from geometry import normalize, point_in_polygon, polygon_normal
from topology import add_polygon, build_edge_map
from .common import EditResult, check_positive, edit_operation, require_face, set_face_loop


def inset_points(points: np.ndarray, normal: np.ndarray, distance: float) -> np.ndarray:
    """
    Corners moved inward by `distance` from every side, using mitred joins.
    """
    n = len(points)
    inner = np.empty_like(points)
    for i in range(n):
        prev_point = points[i - 1]
        point = points[i]
        next_point = points[(i + 1) % n]
        in_before = normalize(np.cross(normal, point - prev_point))
        in_after = normalize(np.cross(normal, next_point - point))
        if in_before is None or in_after is None:
            inner[i] = point
            continue
        bisector = normalize(in_before + in_after)
        if bisector is None:
            bisector = in_before
        cos_half = max(float(np.dot(bisector, in_before)), 1e-6)
        inner[i] = point + bisector * (distance / cos_half)
    return inner


def _inset_one(mesh: EditableMesh, face_index: int, distance: float, depth: float, edge_map: dict,
               result: EditResult):
    face = require_face(mesh, face_index)
    points = mesh.face_points(face_index)
    normal = mesh.compute_face_normal(face_index)
    if normal is None:
        raise PreconditionError(f"Face {face_index} is degenerate and cannot be inset")

    inner = inset_points(points, normal, distance)
    inner_normal = polygon_normal(inner)
    # Past the inradius the inner loop turns through the face and its sides point backwards
    sides = np.roll(points, -1, axis=0) - points
    inner_sides = np.roll(inner, -1, axis=0) - inner
    flipped = np.any(np.einsum("ij,ij->i", sides, inner_sides) <= 0)
    if (inner_normal is None or flipped or np.dot(inner_normal, normal) <= 0
            or not all(point_in_polygon(p, points, normal) for p in inner)):
        raise PreconditionError(f"Inset distance {distance} is too large for face {face_index}")
    inner = inner + normal * depth

    loop = list(face.vertices)
    inner_ids = []
    for vertex_index, position in zip(loop, inner):
        vertex = mesh.vertices[vertex_index].copy()
        vertex.position = position
        inner_ids.append(mesh.add_vertex(vertex))

    material = face.material_index
    set_face_loop(mesh, face_index, inner_ids, edge_map)
    n = len(loop)
    for i in range(n):
        j = (i + 1) % n
        result.new_faces.append(add_polygon(mesh, [loop[i], loop[j], inner_ids[j], inner_ids[i]],
                                            edge_map, material))
    result.new_vertices.extend(inner_ids)


@edit_operation()
def inset_faces(mesh: EditableMesh, face_indices: list[int], distance: float = Tolerances.INSET_DISTANCE,
                depth: float = 0.0) -> EditResult:
    """
    Inset each face individually.

    The face keeps its id and becomes the inner face; one quad per side is appended.
    `depth` pushes the inner face along the face normal.
    """
    check_positive("distance", distance)
    edge_count = mesh.edge_count
    edge_map = build_edge_map(mesh)
    result = EditResult(success=True)
    for face_index in face_indices:
        _inset_one(mesh, face_index, distance, depth, edge_map, result)
    result.new_edges = list(range(edge_count, mesh.edge_count))
    logger.debug(f"Inset {len(face_indices)} faces on '{mesh.name}'")
    return result


def inset_face(mesh: EditableMesh, face_index: int, distance: float = Tolerances.INSET_DISTANCE,
               depth: float = 0.0) -> EditResult:
    return inset_faces(mesh, [face_index], distance=distance, depth=depth)
