"""
Vector and polygon utilities shared by the mesh kernel.

Functions here are pure. Numerically degenerate input (zero-length vectors, collinear
polygons) yields None instead of raising so callers can decide how to react.
"""

from typing import Optional

import numpy as np
from numpy.typing import NDArray

from config import Tolerances


def as_vector(values) -> NDArray[np.float64]:
    return np.asarray(values, dtype=np.float64)


def normalize(vector, epsilon: float = Tolerances.PARALLEL_EPSILON) -> Optional[NDArray[np.float64]]:
    """Return the unit vector, or None for a (near) zero-length vector."""
    vector = as_vector(vector)
    length = np.linalg.norm(vector)
    if length <= epsilon or not np.isfinite(length):
        return None
    return vector / length


def lerp(a, b, t: float) -> NDArray[np.float64]:
    a = as_vector(a)
    return a + (as_vector(b) - a) * t


def triangle_area(p1, p2, p3) -> float:
    """Calculate the area of a 3D triangle."""
    return 0.5 * float(np.linalg.norm(np.cross(as_vector(p2) - p1, as_vector(p3) - p1)))


def newell_vector(points: NDArray[np.float64]) -> NDArray[np.float64]:
    """
    Sum of the Newell cross terms of a closed polygon.

    The direction is the polygon normal and the length is twice the polygon area,
    which holds for non-convex and slightly non-planar polygons as well.
    """
    points = as_vector(points)
    following = np.roll(points, -1, axis=0)
    return np.sum(np.cross(points, following), axis=0)


def polygon_normal(points: NDArray[np.float64]) -> Optional[NDArray[np.float64]]:
    if len(points) < 3:
        return None
    return normalize(newell_vector(points))


def polygon_area(points: NDArray[np.float64]) -> float:
    if len(points) < 3:
        return 0.0
    return 0.5 * float(np.linalg.norm(newell_vector(points)))


def polygon_centroid(points: NDArray[np.float64]) -> NDArray[np.float64]:
    """Average of the polygon corners."""
    return np.mean(as_vector(points), axis=0)


def perpendicular_vector(vector, up=(0.0, 1.0, 0.0)) -> Optional[NDArray[np.float64]]:
    """
    Unit vector perpendicular to `vector`.

    Uses `up` as the reference direction, switching to +Z when `vector` is nearly parallel to it.
    """
    direction = normalize(vector)
    if direction is None:
        return None
    reference = as_vector(up)
    if abs(np.dot(direction, reference)) > 0.9:
        reference = np.array([0.0, 0.0, 1.0])
    return normalize(np.cross(direction, reference))


def plane_basis(normal) -> Optional[tuple[NDArray[np.float64], NDArray[np.float64]]]:
    """Two orthonormal in-plane axes (u, v) with u x v == normal."""
    n = normalize(normal)
    if n is None:
        return None
    helper = np.array([1.0, 0.0, 0.0]) if abs(n[0]) < 0.9 else np.array([0.0, 1.0, 0.0])
    u = normalize(np.cross(helper, n))
    v = np.cross(n, u)
    return u, v


def project_to_plane_2d(points, origin, normal) -> Optional[NDArray[np.float64]]:
    """Express 3D points in the 2D coordinates of the plane through `origin` with `normal`."""
    basis = plane_basis(normal)
    if basis is None:
        return None
    u, v = basis
    relative = as_vector(points) - as_vector(origin)
    return np.stack([relative @ u, relative @ v], axis=-1)


def signed_distance_to_plane(points, plane_point, plane_normal) -> NDArray[np.float64]:
    return (as_vector(points) - as_vector(plane_point)) @ as_vector(plane_normal)


def closest_point_on_segment(point_q, segment_q1, segment_q2) -> tuple[NDArray[np.float64], float]:
    """
    Closest point to `point_q` on the segment q1-q2.

    Returns:
        tuple: (closest point, segment parameter t in [0, 1])
    """
    point_q = as_vector(point_q)
    segment_q1 = as_vector(segment_q1)
    segment_q2 = as_vector(segment_q2)
    l2 = np.sum((segment_q1 - segment_q2)**2)
    if l2 == 0.0:
        return segment_q1.copy(), 0.0

    t = max(0.0, min(1.0, float(np.dot(point_q - segment_q1, segment_q2 - segment_q1) / l2)))
    return segment_q1 + t * (segment_q2 - segment_q1), t


def point_to_segment_distance_3d(point_q, segment_q1, segment_q2) -> float:
    projection, _ = closest_point_on_segment(point_q, segment_q1, segment_q2)
    return float(np.linalg.norm(as_vector(point_q) - projection))


def closest_point_on_triangle(p, a, b, c) -> NDArray[np.float64]:
    """
    Closest point on triangle abc to point p, by Voronoi region tests.
    """
    p, a, b, c = (as_vector(x) for x in (p, a, b, c))
    ab = b - a
    ac = c - a
    ap = p - a
    d1 = np.dot(ab, ap)
    d2 = np.dot(ac, ap)
    if d1 <= 0.0 and d2 <= 0.0:
        return a

    bp = p - b
    d3 = np.dot(ab, bp)
    d4 = np.dot(ac, bp)
    if d3 >= 0.0 and d4 <= d3:
        return b

    vc = d1 * d4 - d3 * d2
    if vc <= 0.0 and d1 >= 0.0 and d3 <= 0.0:
        return a + ab * (d1 / (d1 - d3))

    cp = p - c
    d5 = np.dot(ab, cp)
    d6 = np.dot(ac, cp)
    if d6 >= 0.0 and d5 <= d6:
        return c

    vb = d5 * d2 - d1 * d6
    if vb <= 0.0 and d2 >= 0.0 and d6 <= 0.0:
        return a + ac * (d2 / (d2 - d6))

    va = d3 * d6 - d5 * d4
    if va <= 0.0 and (d4 - d3) >= 0.0 and (d5 - d6) >= 0.0:
        return b + (c - b) * ((d4 - d3) / ((d4 - d3) + (d5 - d6)))

    denom = va + vb + vc
    if abs(denom) < Tolerances.PARALLEL_EPSILON:
        # Degenerate triangle, fall back to the closest edge
        candidates = [closest_point_on_segment(p, s, e)[0] for s, e in ((a, b), (b, c), (c, a))]
        return min(candidates, key=lambda q: np.linalg.norm(q - p))
    v = vb / denom
    w = vc / denom
    return a + ab * v + ac * w


def rotation_matrix(axis, angle: float) -> Optional[NDArray[np.float64]]:
    """3x3 rotation about `axis` by `angle` radians (Rodrigues' formula)."""
    k = normalize(axis)
    if k is None:
        return None
    K = np.array([
        [0.0, -k[2], k[1]],
        [k[2], 0.0, -k[0]],
        [-k[1], k[0], 0.0],
    ])
    return np.eye(3) + np.sin(angle) * K + (1.0 - np.cos(angle)) * (K @ K)
