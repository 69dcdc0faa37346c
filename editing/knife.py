"""
Knife cuts: slice faces along straight segments, polylines and circles.

A cut walks its segments in order. Every mesh edge a segment crosses is split at the
crossing (or the crossing snaps to an existing endpoint within `tolerance`), then each face
that holds two consecutive crossings is split along the chord between them. Polyline
corners that fall inside a face between two crossings become chord vertices.

Without `plane_normal` the cut must actually touch an edge in 3D (within `tolerance`).
With `plane_normal` segments and edges are compared after projecting along that normal,
which cuts through every layer of the mesh under the line.
"""

import time
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
from loguru import logger

from config import Tolerances
from data_types import EditableMesh, PreconditionError
from geometry import (
    as_vector,
    normalize,
    plane_basis,
    point_in_polygon,
    segment_intersection_3d,
    segment_intersection_projected,
)
from topology import build_edge_map
from validation import repair_mesh, validate_mesh
from .common import EditResult, check_direction, check_positive, edit_operation, split_edge, split_face


@dataclass
class KnifeResult(EditResult):
    vertices_created: int = 0
    edges_created: int = 0
    faces_split: int = 0
    validation: Optional[object] = None


@dataclass
class _Crossing:
    param: float  # position along the whole polyline (segment index + segment parameter)
    vertex: int


class _KnifeSession:
    def __init__(self, mesh: EditableMesh, tolerance: float, plane_normal, create_vertices: bool,
                 split_faces: bool):
        self.mesh = mesh
        self.tolerance = tolerance
        self.plane_normal = plane_normal
        self.create_vertices = create_vertices
        self.split_faces = split_faces
        self.edge_map = build_edge_map(mesh)
        self.created_vertices = []
        self.faces_split = 0
        self.reused_vertices = 0
        self.intersections = 0

    def cut_polyline(self, points: np.ndarray, closed: bool):
        segments = [(points[i], points[i + 1]) for i in range(len(points) - 1)]
        if closed and len(points) > 2:
            segments.append((points[-1], points[0]))

        crossings = []
        for segment_index, (start, end) in enumerate(segments):
            for crossing in self._cross_segment(segment_index, start, end):
                if not crossings or crossings[-1].vertex != crossing.vertex:
                    crossings.append(crossing)
        if closed and len(crossings) > 1 and crossings[0].vertex == crossings[-1].vertex:
            crossings.pop()

        if not self.split_faces or len(crossings) < 2:
            return

        corners = [(float(i), points[i]) for i in range(len(points))]
        total = float(len(segments))
        pairs = list(zip(crossings, crossings[1:]))
        if closed and len(crossings) > 2:
            pairs.append((crossings[-1], crossings[0]))
        for first, second in pairs:
            if second.param >= first.param:
                interior = [p for t, p in corners if first.param < t < second.param]
            else:
                # Wrapping pair of a closed path
                interior = ([p for t, p in corners if t > first.param and t < total] +
                            [p for t, p in corners if t < second.param])
            self._split_between(first.vertex, second.vertex, interior)

    def _cross_segment(self, segment_index: int, start, end) -> list[_Crossing]:
        mesh = self.mesh
        found = []
        for edge_id in range(mesh.edge_count):
            edge = mesh.edges[edge_id]
            pa = mesh.vertices[edge.v1].position
            pb = mesh.vertices[edge.v2].position
            if self.plane_normal is None:
                approach = segment_intersection_3d(start, end, pa, pb, self.tolerance)
                if approach is None:
                    continue
                s, t = approach.s, approach.t
            else:
                params = segment_intersection_projected(start, end, pa, pb, self.plane_normal)
                if params is None:
                    continue
                s, t = params
            found.append((s, edge_id, t))
        found.sort()
        self.intersections += len(found)

        crossings = []
        for s, edge_id, t in found:
            vertex = self._vertex_at(edge_id, t)
            if vertex is not None:
                crossings.append(_Crossing(segment_index + s, vertex))
        return crossings

    def _vertex_at(self, edge_id: int, t: float) -> Optional[int]:
        """Vertex at parameter t of an edge: an endpoint within tolerance, else a new split vertex."""
        mesh = self.mesh
        edge = mesh.edges[edge_id]
        pa = mesh.vertices[edge.v1].position
        pb = mesh.vertices[edge.v2].position
        point = pa + (pb - pa) * t
        if np.linalg.norm(point - pa) <= self.tolerance:
            self.reused_vertices += 1
            return edge.v1
        if np.linalg.norm(point - pb) <= self.tolerance:
            self.reused_vertices += 1
            return edge.v2
        if not self.create_vertices:
            return None
        new_vertex, _ = split_edge(mesh, edge_id, point, t, self.edge_map)
        self.created_vertices.append(new_vertex)
        return new_vertex

    def _split_between(self, u: int, w: int, interior: list):
        mesh = self.mesh
        for face_id, face in enumerate(mesh.faces):
            if u not in face.vertices or w not in face.vertices:
                continue
            normal = face.normal if face.normal is not None else mesh.compute_face_normal(face_id)
            if normal is None:
                continue
            face_points = mesh.face_points(face_id)
            chord_points = self._interior_on_face(interior, face_points[0], normal, face_points)
            if chord_points is None:
                continue
            path = [mesh.vertices[u].position] + chord_points + [mesh.vertices[w].position]
            midpoints = [(path[k] + path[k + 1]) / 2.0 for k in range(len(path) - 1)]
            if not all(point_in_polygon(m, face_points, normal) for m in midpoints):
                continue
            if split_face(mesh, face_id, u, w, chord_points, self.edge_map) is not None:
                self.faces_split += 1
                logger.debug(f"Knife split face {face_id} between vertices {u} and {w}")
                return

    def _interior_on_face(self, interior: list, origin, normal, face_points) -> Optional[list]:
        """Polyline corners moved onto the face plane, or None if any lies off the face."""
        result = []
        for point in interior:
            if self.plane_normal is not None:
                denom = float(np.dot(self.plane_normal, normal))
                if abs(denom) < Tolerances.PARALLEL_EPSILON:
                    return None
                point = point + self.plane_normal * (float(np.dot(origin - point, normal)) / denom)
            elif abs(float(np.dot(point - origin, normal))) > self.tolerance:
                return None
            if not point_in_polygon(point, face_points, normal):
                return None
            result.append(as_vector(point))
        return result


def knife_cut(mesh: EditableMesh, cut_lines: Sequence, **options) -> KnifeResult:
    """
    Cut the mesh along straight lines, each given as a (start, end) pair of 3D points.

    Options: create_vertices, split_faces, tolerance, plane_normal, validate, repair.
    A cut that crosses nothing succeeds without changing the mesh.
    """
    if cut_lines is None or len(cut_lines) == 0:
        return KnifeResult.failure("No cut lines provided")
    polylines = []
    for line in cut_lines:
        start, end = (as_vector(p) for p in line)
        polylines.append((np.array([start, end]), False))
    return _cut_polylines(mesh, polylines, **options)


@edit_operation(KnifeResult)
def _cut_polylines(mesh: EditableMesh, polylines: list, create_vertices: bool = True,
                   split_faces: bool = True, tolerance: float = Tolerances.KNIFE_TOLERANCE,
                   plane_normal=None, validate: bool = True, repair: bool = False) -> KnifeResult:
    check_positive("tolerance", tolerance)
    plane_normal = check_direction(plane_normal)
    if mesh.vertex_count == 0:
        raise PreconditionError("Invalid mesh: mesh is null or has no vertices")

    started = time.perf_counter()
    vertex_count = mesh.vertex_count
    edge_count = mesh.edge_count
    face_count = mesh.face_count

    session = _KnifeSession(mesh, tolerance, plane_normal, create_vertices, split_faces)
    for points, closed in polylines:
        session.cut_polyline(points, closed)

    result = KnifeResult(
        success=True,
        new_vertices=list(range(vertex_count, mesh.vertex_count)),
        new_edges=list(range(edge_count, mesh.edge_count)),
        new_faces=list(range(face_count, mesh.face_count)),
        vertices_created=mesh.vertex_count - vertex_count,
        edges_created=mesh.edge_count - edge_count,
        faces_split=session.faces_split,
        statistics={
            "cut_count": len(polylines),
            "intersections": session.intersections,
            "vertices_reused": session.reused_vertices,
            "processing_time": time.perf_counter() - started,
        },
    )

    if validate:
        result.validation = validate_mesh(mesh)
        if not result.validation.is_valid and repair:
            repair_mesh(mesh)
            result.validation = validate_mesh(mesh)
    elif repair:
        repair_mesh(mesh)

    logger.info(f"Knife cut on '{mesh.name}': {result.vertices_created} vertices, "
                f"{result.faces_split} faces split")
    return result


def knife_cut_line(mesh: EditableMesh, start, end, **options) -> KnifeResult:
    return knife_cut(mesh, [(start, end)], **options)


def knife_cut_path(mesh: EditableMesh, points: Sequence, closed: bool = False, **options) -> KnifeResult:
    """Cut along a polyline. Corners inside a face carry into that face's split."""
    if points is None or len(points) < 2:
        return KnifeResult.failure("Cut path needs at least 2 points")
    path = np.array([as_vector(p) for p in points])
    return _cut_polylines(mesh, [(path, closed)], **options)


def knife_cut_circle(mesh: EditableMesh, center, radius: float, normal=(0.0, 1.0, 0.0),
                     segments: int = Tolerances.KNIFE_CIRCLE_SEGMENTS, **options) -> KnifeResult:
    """Cut along a closed polygonal circle lying in the plane through `center` with `normal`."""
    check_positive("radius", radius)
    if segments < 3:
        raise ValueError(f"segments must be at least 3, got {segments}")
    if normalize(normal) is None:
        raise ValueError(f"Circle normal must be a non-zero vector, got {normal}")
    u, v = plane_basis(normal)
    angles = np.linspace(0.0, 2.0 * np.pi, segments, endpoint=False)
    points = as_vector(center) + radius * (np.outer(np.cos(angles), u) + np.outer(np.sin(angles), v))
    return knife_cut_path(mesh, list(points), closed=True, **options)
