"""
Split the faces of one mesh where the surface of another mesh passes through them.

Each face of the cutter contributes its plane. A target face that the cutter face really
crosses (both straddle each other's plane and their sections overlap on the line where the
planes meet) is split along that plane. Crossed edges are split with `split_edge`, so the
neighbouring faces receive the same vertices and the seam stays free of T-junctions.
"""

from typing import Optional

import numpy as np
from loguru import logger
from numpy.typing import NDArray
from tqdm import tqdm

from config import Tolerances
from data_types import EditableMesh
from editing import split_edge, split_face
from geometry import normalize, point_in_polygon, polygon_normal
from topology import build_edge_map
from .classification import FacePlane


def _signs(distances: NDArray[np.float64], epsilon: float) -> NDArray[np.int64]:
    return np.where(distances > epsilon, 1, np.where(distances < -epsilon, -1, 0))


def section_interval(points: NDArray[np.float64], plane_point, plane_normal, direction,
                     epsilon: float) -> Optional[tuple[float, float]]:
    """Extent, measured along `direction`, of the set where a polygon meets a plane."""
    distances = (points - plane_point) @ plane_normal
    signs = _signs(distances, epsilon)
    hits = []
    n = len(points)
    for i in range(n):
        j = (i + 1) % n
        if signs[i] == 0:
            hits.append(points[i])
        elif signs[i] * signs[j] < 0:
            t = distances[i] / (distances[i] - distances[j])
            hits.append(points[i] + (points[j] - points[i]) * t)
    if not hits:
        return None
    along = np.array(hits) @ direction
    return float(along.min()), float(along.max())


def faces_cross(points: NDArray[np.float64], normal, cutter: FacePlane, epsilon: float) -> bool:
    """Whether the cutter face passes through the interior of the polygon `points`."""
    distances = (points - cutter.points[0]) @ cutter.normal
    if not (distances.max() > epsilon and distances.min() < -epsilon):
        return False
    cutter_distances = (cutter.points - points[0]) @ normal
    if np.all(np.abs(cutter_distances) <= epsilon):
        return False
    if cutter_distances.max() < -epsilon or cutter_distances.min() > epsilon:
        return False

    direction = normalize(np.cross(normal, cutter.normal))
    if direction is None:
        return False
    first = section_interval(points, cutter.points[0], cutter.normal, direction, epsilon)
    second = section_interval(cutter.points, points[0], normal, direction, epsilon)
    if first is None or second is None:
        return False
    return min(first[1], second[1]) - max(first[0], second[0]) > epsilon


def _cut_vertices(loop: list[int], signs: NDArray[np.int64]) -> list[int]:
    """On-plane vertices where the loop passes from one side of the plane to the other."""
    n = len(loop)
    start = int(np.flatnonzero(signs)[0])
    cuts = []
    i = 0
    while i < n:
        if signs[(start + i) % n] != 0:
            i += 1
            continue
        run = []
        while i < n and signs[(start + i) % n] == 0:
            run.append((start + i) % n)
            i += 1
        before = signs[(run[0] - 1) % n]
        after = signs[(run[-1] + 1) % n]
        if before != after:
            cuts.append(loop[run[0]])
    return cuts


def split_face_by_plane(mesh: EditableMesh, face_id: int, plane_point, plane_normal,
                        epsilon: float, edge_map: dict) -> int:
    """
    Split a face into pieces lying on one side of a plane each.

    Returns:
        int: number of new faces
    """
    face = mesh.faces[face_id]
    points = mesh.face_points(face_id)
    distances = (points - plane_point) @ plane_normal
    signs = _signs(distances, epsilon)
    if not (np.any(signs > 0) and np.any(signs < 0)):
        return 0

    n = len(face.vertices)
    crossings = []
    for i, (a, b) in enumerate(face.vertex_pairs()):
        j = (i + 1) % n
        if signs[i] * signs[j] < 0:
            t = distances[i] / (distances[i] - distances[j])
            crossings.append((face.edges[i], points[i] + (points[j] - points[i]) * t))
    for edge_id, point in crossings:
        split_edge(mesh, edge_id, point=point, edge_map=edge_map)

    loop = list(mesh.faces[face_id].vertices)
    positions = mesh.face_points(face_id)
    signs = _signs((positions - plane_point) @ plane_normal, epsilon)
    cuts = _cut_vertices(loop, signs)
    if len(cuts) < 2:
        return 0

    normal = polygon_normal(positions)
    direction = normalize(np.cross(normal, plane_normal)) if normal is not None else None
    if direction is not None:
        cuts.sort(key=lambda v: float(np.dot(mesh.vertices[v].position, direction)))

    pieces = [face_id]
    created = 0
    for k in range(0, len(cuts) - 1, 2):
        u, w = cuts[k], cuts[k + 1]
        for piece in pieces:
            piece_face = mesh.faces[piece]
            if u not in piece_face.vertices or w not in piece_face.vertices:
                continue
            piece_points = mesh.face_points(piece)
            piece_normal = polygon_normal(piece_points)
            midpoint = (mesh.vertices[u].position + mesh.vertices[w].position) / 2.0
            if piece_normal is None or not point_in_polygon(midpoint, piece_points, piece_normal):
                continue
            split = split_face(mesh, piece, u, w, edge_map=edge_map)
            if split is not None:
                pieces.append(split[1])
                created += 1
            break
    return created


def split_by_surface(target: EditableMesh, cutters: list[FacePlane],
                     epsilon: float = Tolerances.BOOLEAN_SPLIT_EPSILON,
                     show_progress: bool = False, label: str = "Splitting faces") -> int:
    """
    Split every face of `target` crossed by a cutter face.

    Returns:
        int: number of faces added by the splits
    """
    edge_map = build_edge_map(target)
    created = 0
    for cutter in tqdm(cutters, desc=label, disable=not show_progress):
        # Halves produced by this cutter already lie on one side of it
        for face_id in range(target.face_count):
            points = target.face_points(face_id)
            if np.any(points.min(axis=0) > cutter.upper + epsilon) or \
                    np.any(points.max(axis=0) < cutter.lower - epsilon):
                continue
            normal = polygon_normal(points)
            if normal is None or not faces_cross(points, normal, cutter, epsilon):
                continue
            created += split_face_by_plane(target, face_id, cutter.points[0], cutter.normal,
                                           epsilon, edge_map)
    logger.debug(f"{label}: {created} faces added on '{target.name}'")
    return created
