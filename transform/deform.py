"""
Region deformers: bend, twist and taper.

Each deformer acts on the vertices whose projection onto the segment start_point ->
end_point falls inside it. The effect grows linearly from nothing at start_point to full
strength at end_point; vertices outside the region are left alone.
"""

import functools
from dataclasses import dataclass
from typing import Optional

import numpy as np
from loguru import logger
from numpy.typing import NDArray

from data_types import EditableMesh
from geometry import as_vector, normalize, rotation_matrix


@dataclass(frozen=True)
class Bend:
    angle: float = np.pi / 4
    axis: tuple = (0.0, 1.0, 0.0)
    center: tuple = (0.0, 0.0, 0.0)
    start_point: tuple = (-1.0, 0.0, 0.0)
    end_point: tuple = (1.0, 0.0, 0.0)


@dataclass(frozen=True)
class Twist:
    angle: float = np.pi / 2
    axis: tuple = (0.0, 1.0, 0.0)
    center: tuple = (0.0, 0.0, 0.0)
    start_point: tuple = (0.0, -1.0, 0.0)
    end_point: tuple = (0.0, 1.0, 0.0)


@dataclass(frozen=True)
class Taper:
    factor: float = 0.5
    axis: tuple = (0.0, 1.0, 0.0)
    center: tuple = (0.0, 0.0, 0.0)
    start_point: tuple = (0.0, -1.0, 0.0)
    end_point: tuple = (0.0, 1.0, 0.0)
    # Non-uniform tapers leave the coordinate along the dominant axis unscaled
    uniform: bool = True


def region_factors(positions: NDArray[np.float64], start_point, end_point) -> NDArray[np.float64]:
    """
    Per-vertex strength in [0, 1] along start_point -> end_point, NaN outside the region.
    """
    start = as_vector(start_point)
    span = as_vector(end_point) - start
    length = float(np.linalg.norm(span))
    if length == 0:
        raise ValueError("Deform region start_point and end_point must differ")
    projection = (positions - start) @ (span / length)
    factors = projection / length
    factors[(projection < 0) | (projection > length)] = np.nan
    return factors


def _unit_axis(axis) -> NDArray[np.float64]:
    unit = normalize(axis)
    if unit is None:
        raise ValueError(f"Deform axis must be a non-zero vector, got {axis}")
    return unit


def deform(mesh: EditableMesh, operation) -> EditableMesh:
    """Deform the mesh in place with a Bend, Twist or Taper and return it."""
    if mesh.vertex_count == 0:
        return mesh
    _deform(operation, mesh)
    mesh.compute_face_normals()
    logger.debug(f"Applied {type(operation).__name__} to '{mesh.name}'")
    return mesh


@functools.singledispatch
def _deform(operation, mesh: EditableMesh):
    raise TypeError(f"Unknown deformation: {type(operation).__name__}")


def _rotate_region(mesh: EditableMesh, angle: float, axis, center, start_point, end_point):
    axis = _unit_axis(axis)
    center = as_vector(center)
    factors = region_factors(mesh.positions(), start_point, end_point)
    for vertex, factor in zip(mesh.vertices, factors):
        if np.isnan(factor):
            continue
        rotation = rotation_matrix(axis, angle * factor)
        vertex.position = rotation @ (vertex.position - center) + center
        if vertex.normal is not None:
            vertex.normal = rotation @ vertex.normal


@_deform.register
def _(operation: Bend, mesh: EditableMesh):
    _rotate_region(mesh, operation.angle, operation.axis, operation.center,
                   operation.start_point, operation.end_point)


@_deform.register
def _(operation: Twist, mesh: EditableMesh):
    _rotate_region(mesh, operation.angle, operation.axis, operation.center,
                   operation.start_point, operation.end_point)


def _taper_scale(axis: NDArray[np.float64], amount: float, uniform: bool) -> NDArray[np.float64]:
    scale = np.full(3, amount)
    if not uniform:
        dominant: Optional[int] = next((i for i in range(3) if abs(axis[i]) > 0.5), None)
        if dominant is not None:
            scale[dominant] = 1.0
    return scale


@_deform.register
def _(operation: Taper, mesh: EditableMesh):
    axis = _unit_axis(operation.axis)
    center = as_vector(operation.center)
    factors = region_factors(mesh.positions(), operation.start_point, operation.end_point)
    for vertex, factor in zip(mesh.vertices, factors):
        if np.isnan(factor):
            continue
        scale = _taper_scale(axis, 1.0 - operation.factor * factor, operation.uniform)
        vertex.position = (vertex.position - center) * scale + center


def bend(mesh: EditableMesh, **options) -> EditableMesh:
    return deform(mesh, Bend(**options))


def twist(mesh: EditableMesh, **options) -> EditableMesh:
    return deform(mesh, Twist(**options))


def taper(mesh: EditableMesh, **options) -> EditableMesh:
    return deform(mesh, Taper(**options))
