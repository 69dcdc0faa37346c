"""
Affine transforms applied to mesh vertices in place.

Every function takes an optional list of vertex ids; by default the whole mesh moves.
Vertex normals are carried through the inverse-transpose of the linear part and face
normals are recomputed afterwards.
"""

from typing import Optional, Sequence

import numpy as np
from numpy.typing import NDArray

from data_types import EditableMesh
from geometry import as_vector, normalize, rotation_matrix


def _selected(mesh: EditableMesh, vertex_ids: Optional[Sequence[int]]) -> list[int]:
    if vertex_ids is None:
        return list(range(mesh.vertex_count))
    for v in vertex_ids:
        if mesh.get_vertex(v) is None:
            raise IndexError(f"Vertex {v} does not exist")
    return list(vertex_ids)


def apply_matrix(mesh: EditableMesh, matrix, vertex_ids: Optional[Sequence[int]] = None) -> EditableMesh:
    """Apply a 4x4 homogeneous transform."""
    matrix = as_vector(matrix)
    if matrix.shape != (4, 4):
        raise ValueError(f"Expected a 4x4 matrix, got shape {matrix.shape}")
    linear = matrix[:3, :3]
    translation = matrix[:3, 3]
    determinant = np.linalg.det(linear)
    normal_matrix = np.linalg.inv(linear).T if abs(determinant) > 1e-12 else None

    for v in _selected(mesh, vertex_ids):
        vertex = mesh.vertices[v]
        vertex.position = linear @ vertex.position + translation
        if vertex.normal is not None and normal_matrix is not None:
            transformed = normalize(normal_matrix @ vertex.normal)
            if transformed is not None:
                vertex.normal = transformed

    # Mirroring transforms turn faces inside out unless the loops are reversed
    if determinant < 0 and vertex_ids is None:
        for face in mesh.faces:
            face.reverse()
    mesh.compute_face_normals()
    return mesh


def _about_pivot(linear: NDArray[np.float64], pivot) -> NDArray[np.float64]:
    pivot = np.zeros(3) if pivot is None else as_vector(pivot)
    matrix = np.eye(4)
    matrix[:3, :3] = linear
    matrix[:3, 3] = pivot - linear @ pivot
    return matrix


def translate(mesh: EditableMesh, offset, vertex_ids: Optional[Sequence[int]] = None) -> EditableMesh:
    matrix = np.eye(4)
    matrix[:3, 3] = as_vector(offset)
    return apply_matrix(mesh, matrix, vertex_ids)


def scale(mesh: EditableMesh, factors, pivot=None, vertex_ids: Optional[Sequence[int]] = None) -> EditableMesh:
    """Scale about `pivot` (default origin). `factors` is a scalar or a per-axis triple."""
    factors = np.broadcast_to(as_vector(factors), (3,))
    if np.any(factors == 0):
        raise ValueError(f"Scale factors must be non-zero, got {factors}")
    return apply_matrix(mesh, _about_pivot(np.diag(factors), pivot), vertex_ids)


def rotate(mesh: EditableMesh, axis, angle: float, pivot=None,
           vertex_ids: Optional[Sequence[int]] = None) -> EditableMesh:
    """Rotate by `angle` radians about `axis` through `pivot` (default origin)."""
    rotation = rotation_matrix(axis, angle)
    if rotation is None:
        raise ValueError(f"Rotation axis must be a non-zero vector, got {axis}")
    return apply_matrix(mesh, _about_pivot(rotation, pivot), vertex_ids)


def _reflect(mesh: EditableMesh, linear: NDArray[np.float64], pivot, duplicate: bool) -> EditableMesh:
    target = mesh.clone(name=f"{mesh.name}_mirror") if duplicate else mesh
    return apply_matrix(target, _about_pivot(linear, pivot))


def mirror_by_plane(mesh: EditableMesh, point, normal, duplicate: bool = False) -> EditableMesh:
    """
    Reflect through the plane through `point` with `normal`.

    Face loops are reversed so normals keep pointing outwards. With `duplicate` the mirrored
    copy is returned and `mesh` is left alone.
    """
    n = normalize(normal)
    if n is None:
        raise ValueError(f"Mirror plane normal must be a non-zero vector, got {normal}")
    return _reflect(mesh, np.eye(3) - 2.0 * np.outer(n, n), point, duplicate)


_AXES = {"x": 0, "y": 1, "z": 2}


def mirror_by_axis(mesh: EditableMesh, axis: str = "x", center=None, duplicate: bool = False) -> EditableMesh:
    """Negate one coordinate about `center` (default origin)."""
    if axis not in _AXES:
        raise ValueError(f"Mirror axis must be one of x, y, z, got {axis!r}")
    linear = np.eye(3)
    linear[_AXES[axis], _AXES[axis]] = -1.0
    return _reflect(mesh, linear, center, duplicate)


def mirror_by_point(mesh: EditableMesh, point, duplicate: bool = False) -> EditableMesh:
    return _reflect(mesh, -np.eye(3), point, duplicate)
