"""
Inside/outside classification of faces against the closed surface of another mesh.

A face is sampled at one interior point. A point lying on a face of the other mesh
(within `merge_threshold`, with parallel normals) is coplanar; any other point is decided
by ray parity: rays are cast in several fixed, non-axis-aligned directions and the
majority of odd hit counts wins.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import numpy as np
from numpy.typing import NDArray

from config import Tolerances
from data_types import EditableMesh
from geometry import (
    point_in_polygon,
    polygon_centroid,
    polygon_normal,
    ray_triangles_intersection,
)

# Slightly skewed so rays do not run along the edges of axis-aligned models
RAY_DIRECTIONS = np.array([
    [0.5773, 0.5795, 0.5752],
    [-0.6437, 0.5113, 0.5693],
    [0.3106, -0.7712, 0.5558],
    [-0.4123, -0.3521, -0.8402],
    [0.8017, 0.1329, -0.5828],
])
RAY_DIRECTIONS = RAY_DIRECTIONS / np.linalg.norm(RAY_DIRECTIONS, axis=1, keepdims=True)

COPLANAR_DOT = 1.0 - 1e-3


class FaceClass(Enum):
    INSIDE = "inside"
    OUTSIDE = "outside"
    COPLANAR_SAME = "coplanar_same"
    COPLANAR_OPPOSITE = "coplanar_opposite"


@dataclass
class FacePlane:
    points: NDArray[np.float64]
    normal: NDArray[np.float64]
    lower: NDArray[np.float64]
    upper: NDArray[np.float64]


def face_planes(mesh: EditableMesh) -> list[FacePlane]:
    """Plane, corners and bounds of every face with a usable normal."""
    planes = []
    for face_id in range(mesh.face_count):
        points = mesh.face_points(face_id)
        normal = polygon_normal(points)
        if normal is None:
            continue
        planes.append(FacePlane(points, normal, points.min(axis=0), points.max(axis=0)))
    return planes


@dataclass
class SurfaceIndex:
    """Fan triangles and face planes of one mesh, prepared for repeated point queries."""
    triangles: NDArray[np.float64]
    planes: list[FacePlane]

    @classmethod
    def from_mesh(cls, mesh: EditableMesh) -> "SurfaceIndex":
        planes = face_planes(mesh)
        triangles = []
        for plane in planes:
            points = plane.points
            for i in range(1, len(points) - 1):
                triangles.append([points[0], points[i], points[i + 1]])
        triangles = np.array(triangles, dtype=np.float64).reshape(-1, 3, 3)
        return cls(triangles=triangles, planes=planes)

    @property
    def empty(self) -> bool:
        return len(self.triangles) == 0


def interior_point(points: NDArray[np.float64], normal) -> NDArray[np.float64]:
    """
    A point strictly inside a polygon.

    The centroid for convex faces; otherwise the centroid of the largest fan triangle
    that falls inside the polygon.
    """
    centroid = polygon_centroid(points)
    if normal is None or point_in_polygon(centroid, points, normal):
        return centroid
    best = None
    best_area = -1.0
    for i in range(1, len(points) - 1):
        a, b, c = points[0], points[i], points[i + 1]
        candidate = (a + b + c) / 3.0
        area = float(np.linalg.norm(np.cross(b - a, c - a)))
        if area > best_area and point_in_polygon(candidate, points, normal):
            best = candidate
            best_area = area
    return centroid if best is None else best


def ray_hit_count(surface: SurfaceIndex, origin, direction,
                  epsilon: float = Tolerances.RAY_EPSILON) -> int:
    """Distinct surface crossings along a ray. A hit on a shared edge counts once."""
    hit, distances, _, _ = ray_triangles_intersection(origin, direction, surface.triangles, epsilon)
    hits = np.sort(distances[hit])
    if len(hits) == 0:
        return 0
    return int(1 + np.count_nonzero(np.diff(hits) > epsilon * 10))


def point_in_mesh(surface: SurfaceIndex, point, ray_count: int = Tolerances.BOOLEAN_RAY_COUNT) -> bool:
    if surface.empty:
        return False
    ray_count = max(1, min(ray_count, len(RAY_DIRECTIONS)))
    odd = sum(ray_hit_count(surface, point, direction) % 2 for direction in RAY_DIRECTIONS[:ray_count])
    return odd * 2 > ray_count


def coplanar_class(surface: SurfaceIndex, point, normal,
                   merge_threshold: float = Tolerances.BOOLEAN_MERGE_THRESHOLD) -> Optional[FaceClass]:
    """COPLANAR_SAME / COPLANAR_OPPOSITE when the point lies on a parallel face of the surface."""
    for plane in surface.planes:
        if np.any(point < plane.lower - merge_threshold) or np.any(point > plane.upper + merge_threshold):
            continue
        distance = float(np.dot(point - plane.points[0], plane.normal))
        if abs(distance) > merge_threshold:
            continue
        alignment = float(np.dot(normal, plane.normal))
        if abs(alignment) < COPLANAR_DOT:
            continue
        if not point_in_polygon(point - plane.normal * distance, plane.points, plane.normal):
            continue
        return FaceClass.COPLANAR_SAME if alignment > 0 else FaceClass.COPLANAR_OPPOSITE
    return None


def classify_face(mesh: EditableMesh, face_id: int, surface: SurfaceIndex,
                  merge_threshold: float = Tolerances.BOOLEAN_MERGE_THRESHOLD,
                  ray_count: int = Tolerances.BOOLEAN_RAY_COUNT) -> FaceClass:
    points = mesh.face_points(face_id)
    normal = polygon_normal(points)
    sample = interior_point(points, normal)
    if normal is not None:
        coplanar = coplanar_class(surface, sample, normal, merge_threshold)
        if coplanar is not None:
            return coplanar
    return FaceClass.INSIDE if point_in_mesh(surface, sample, ray_count) else FaceClass.OUTSIDE


def classify_faces(mesh: EditableMesh, surface: SurfaceIndex,
                   merge_threshold: float = Tolerances.BOOLEAN_MERGE_THRESHOLD,
                   ray_count: int = Tolerances.BOOLEAN_RAY_COUNT) -> list[FaceClass]:
    return [classify_face(mesh, f, surface, merge_threshold, ray_count) for f in range(mesh.face_count)]
