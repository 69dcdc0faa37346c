"""
Intersection and containment tests.

None is returned when there is no intersection or the configuration is degenerate
(parallel segments, zero-length direction, ray lying in the triangle plane).
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np
from numpy.typing import NDArray

from config import Tolerances
from .primitives import as_vector, project_to_plane_2d


@dataclass
class SegmentApproach:
    s: float  # parameter on the first segment
    t: float  # parameter on the second segment
    point_on_first: NDArray[np.float64]
    point_on_second: NDArray[np.float64]
    distance: float


def point_in_triangle(p, a, b, c, epsilon: float = 1e-9) -> bool:
    """
    Whether p lies inside triangle abc (boundary included), assuming p is in the triangle plane.
    """
    p, a, b, c = (as_vector(x) for x in (p, a, b, c))
    v0 = c - a
    v1 = b - a
    v2 = p - a
    dot00 = np.dot(v0, v0)
    dot01 = np.dot(v0, v1)
    dot02 = np.dot(v0, v2)
    dot11 = np.dot(v1, v1)
    dot12 = np.dot(v1, v2)
    denom = dot00 * dot11 - dot01 * dot01
    if abs(denom) < Tolerances.PARALLEL_EPSILON:
        return False
    u = (dot11 * dot02 - dot01 * dot12) / denom
    v = (dot00 * dot12 - dot01 * dot02) / denom
    return u >= -epsilon and v >= -epsilon and u + v <= 1.0 + epsilon


def point_in_polygon_2d(point, polygon: NDArray[np.float64]) -> bool:
    """Even-odd crossing test for a simple 2D polygon."""
    x, y = float(point[0]), float(point[1])
    inside = False
    n = len(polygon)
    j = n - 1
    for i in range(n):
        xi, yi = polygon[i]
        xj, yj = polygon[j]
        if (yi > y) != (yj > y):
            x_cross = xi + (y - yi) * (xj - xi) / (yj - yi)
            if x < x_cross:
                inside = not inside
        j = i
    return inside


def point_in_polygon(point, polygon_points: NDArray[np.float64], normal) -> bool:
    """Containment of a 3D point in a planar polygon, tested in the polygon's plane."""
    projected = project_to_plane_2d(np.vstack([polygon_points, [point]]), polygon_points[0], normal)
    if projected is None:
        return False
    return point_in_polygon_2d(projected[-1], projected[:-1])


def closest_approach_segments(p1, p2, q1, q2) -> SegmentApproach:
    """
    Closest points between segments p1-p2 and q1-q2, with clamped parameters.
    """
    p1, p2, q1, q2 = (as_vector(x) for x in (p1, p2, q1, q2))
    d1 = p2 - p1
    d2 = q2 - q1
    r = p1 - q1
    a = np.dot(d1, d1)
    e = np.dot(d2, d2)
    f = np.dot(d2, r)
    eps = Tolerances.PARALLEL_EPSILON

    if a <= eps and e <= eps:
        s = t = 0.0
    elif a <= eps:
        s = 0.0
        t = float(np.clip(f / e, 0.0, 1.0))
    else:
        c = np.dot(d1, r)
        if e <= eps:
            t = 0.0
            s = float(np.clip(-c / a, 0.0, 1.0))
        else:
            b = np.dot(d1, d2)
            denom = a * e - b * b
            s = float(np.clip((b * f - c * e) / denom, 0.0, 1.0)) if denom > eps else 0.0
            t = (b * s + f) / e
            if t < 0.0:
                t = 0.0
                s = float(np.clip(-c / a, 0.0, 1.0))
            elif t > 1.0:
                t = 1.0
                s = float(np.clip((b - c) / a, 0.0, 1.0))
    c1 = p1 + d1 * s
    c2 = q1 + d2 * t
    return SegmentApproach(s=float(s), t=float(t), point_on_first=c1, point_on_second=c2,
                           distance=float(np.linalg.norm(c1 - c2)))


def segment_intersection_3d(p1, p2, q1, q2, tolerance: float) -> Optional[SegmentApproach]:
    """Intersection of two 3D segments that pass within `tolerance` of each other."""
    d1 = as_vector(p2) - as_vector(p1)
    d2 = as_vector(q2) - as_vector(q1)
    # Overlapping collinear segments have no single crossing point
    if np.linalg.norm(np.cross(d1, d2)) <= Tolerances.PARALLEL_EPSILON * max(1.0, np.dot(d1, d1) * np.dot(d2, d2)):
        return None
    approach = closest_approach_segments(p1, p2, q1, q2)
    if approach.distance > tolerance:
        return None
    return approach


def segment_intersection_projected(p1, p2, q1, q2, normal) -> Optional[tuple[float, float]]:
    """
    Intersection of two segments after projecting both onto the plane perpendicular to `normal`.

    Returns:
        tuple: (s, t) parameters on the first and second segment, or None
    """
    pts = project_to_plane_2d(np.array([p1, p2, q1, q2], dtype=np.float64), np.zeros(3), normal)
    if pts is None:
        return None
    a, b, c, d = pts
    r = b - a
    s_vec = d - c
    denom = r[0] * s_vec[1] - r[1] * s_vec[0]
    if abs(denom) < Tolerances.PARALLEL_EPSILON:
        return None
    diff = c - a
    s = (diff[0] * s_vec[1] - diff[1] * s_vec[0]) / denom
    t = (diff[0] * r[1] - diff[1] * r[0]) / denom
    if s < 0.0 or s > 1.0 or t < 0.0 or t > 1.0:
        return None
    return float(s), float(t)


def segment_plane_intersection(a, b, plane_point, plane_normal,
                               epsilon: float = Tolerances.PARALLEL_EPSILON) -> Optional[tuple[float, NDArray[np.float64]]]:
    """
    Crossing of segment a-b with a plane.

    Returns:
        tuple: (segment parameter t, intersection point), or None when parallel or not crossing
    """
    a = as_vector(a)
    b = as_vector(b)
    n = as_vector(plane_normal)
    direction = b - a
    denom = np.dot(n, direction)
    if abs(denom) < epsilon:
        return None
    t = float(np.dot(n, as_vector(plane_point) - a) / denom)
    if t < 0.0 or t > 1.0:
        return None
    return t, a + direction * t


def ray_triangle_intersection(origin, direction, a, b, c,
                              epsilon: float = Tolerances.RAY_EPSILON) -> Optional[float]:
    """Moller-Trumbore ray/triangle test. Returns the ray distance t > epsilon, or None."""
    origin, direction, a, b, c = (as_vector(x) for x in (origin, direction, a, b, c))
    edge1 = b - a
    edge2 = c - a
    h = np.cross(direction, edge2)
    det = np.dot(edge1, h)
    if abs(det) < epsilon:
        return None
    inv_det = 1.0 / det
    s = origin - a
    u = inv_det * np.dot(s, h)
    if u < 0.0 or u > 1.0:
        return None
    q = np.cross(s, edge1)
    v = inv_det * np.dot(direction, q)
    if v < 0.0 or u + v > 1.0:
        return None
    t = inv_det * np.dot(edge2, q)
    return float(t) if t > epsilon else None


def ray_triangles_intersection(origin, direction, triangles: NDArray[np.float64],
                               epsilon: float = Tolerances.RAY_EPSILON):
    """
    Vectorized Moller-Trumbore over a T x 3 x 3 array of triangles.

    Returns:
        tuple: (hit mask, ray distances, u, v barycentrics), each of length T.
        Distances are np.inf where the ray misses.
    """
    origin = as_vector(origin)
    direction = as_vector(direction)
    triangles = as_vector(triangles).reshape(-1, 3, 3)
    a = triangles[:, 0]
    edge1 = triangles[:, 1] - a
    edge2 = triangles[:, 2] - a
    h = np.cross(direction, edge2)
    det = np.einsum('ij,ij->i', edge1, h)
    valid = np.abs(det) >= epsilon
    inv_det = np.zeros_like(det)
    inv_det[valid] = 1.0 / det[valid]

    s = origin - a
    u = inv_det * np.einsum('ij,ij->i', s, h)
    q = np.cross(s, edge1)
    v = inv_det * (q @ direction)
    t = inv_det * np.einsum('ij,ij->i', edge2, q)

    hit = valid & (u >= 0.0) & (v >= 0.0) & (u + v <= 1.0) & (t > epsilon)
    distances = np.where(hit, t, np.inf)
    return hit, distances, u, v
