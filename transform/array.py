"""
Array modifiers: repeat a mesh along a line, around an axis or over a grid.

Each layout yields one 4x4 placement per copy. The source mesh is never changed; the copies
are either merged into one new mesh or returned as separate meshes.
"""

import functools
from dataclasses import dataclass
from typing import Union

import numpy as np
from loguru import logger
from numpy.typing import NDArray

from config import Tolerances
from data_types import EditableMesh
from geometry import as_vector, normalize, rotation_matrix
from validation import weld_vertices
from .transforms import _about_pivot, apply_matrix


@dataclass(frozen=True)
class ArrayLinear:
    count: int = 3
    distance: float = 1.0
    direction: tuple = (1.0, 0.0, 0.0)
    offset: tuple = (0.0, 0.0, 0.0)


@dataclass(frozen=True)
class ArrayRadial:
    count: int = 8
    axis: tuple = (0.0, 0.0, 1.0)
    center: tuple = (0.0, 0.0, 0.0)
    start_angle: float = 0.0
    end_angle: float = 2.0 * np.pi


@dataclass(frozen=True)
class ArrayGrid:
    counts: tuple = (3, 3, 1)
    spacing: tuple = (1.0, 1.0, 1.0)
    offset: tuple = (0.0, 0.0, 0.0)


def _check_count(name: str, count) -> int:
    if int(count) != count or count < 1:
        raise ValueError(f"{name} must be a positive integer, got {count}")
    return int(count)


def _translation(offset) -> NDArray[np.float64]:
    matrix = np.eye(4)
    matrix[:3, 3] = as_vector(offset)
    return matrix


@functools.singledispatch
def placements(operation) -> list[NDArray[np.float64]]:
    """One 4x4 transform per copy, the first copy first."""
    raise TypeError(f"Unknown array layout: {type(operation).__name__}")


@placements.register
def _(operation: ArrayLinear) -> list[NDArray[np.float64]]:
    count = _check_count("count", operation.count)
    direction = normalize(operation.direction)
    if direction is None:
        raise ValueError(f"Array direction must be a non-zero vector, got {operation.direction}")
    offset = as_vector(operation.offset)
    return [_translation(offset + direction * operation.distance * i) for i in range(count)]


@placements.register
def _(operation: ArrayRadial) -> list[NDArray[np.float64]]:
    count = _check_count("count", operation.count)
    step = (operation.end_angle - operation.start_angle) / count
    result = []
    for i in range(count):
        rotation = rotation_matrix(operation.axis, operation.start_angle + step * i)
        if rotation is None:
            raise ValueError(f"Array axis must be a non-zero vector, got {operation.axis}")
        result.append(_about_pivot(rotation, operation.center))
    return result


@placements.register
def _(operation: ArrayGrid) -> list[NDArray[np.float64]]:
    if len(operation.counts) != 3 or len(operation.spacing) != 3:
        raise ValueError("Grid counts and spacing need one entry per axis")
    count_x, count_y, count_z = (_check_count("counts", c) for c in operation.counts)
    spacing = as_vector(operation.spacing)
    offset = as_vector(operation.offset)
    return [_translation(offset + spacing * (x, y, z))
            for x in range(count_x) for y in range(count_y) for z in range(count_z)]


def append_mesh(target: EditableMesh, source: EditableMesh) -> EditableMesh:
    """Copy every record of `source` onto the end of `target`, shifting ids."""
    vertex_offset = target.vertex_count
    edge_offset = target.edge_count
    target.vertices.extend(v.copy() for v in source.vertices)
    for edge in source.edges:
        copied = edge.copy()
        copied.v1 += vertex_offset
        copied.v2 += vertex_offset
        target.edges.append(copied)
    for face in source.faces:
        copied = face.copy()
        copied.vertices = [v + vertex_offset for v in face.vertices]
        copied.edges = [e + edge_offset for e in face.edges]
        target.faces.append(copied)
    return target


def array(mesh: EditableMesh, operation, merge: bool = True, weld: bool = False,
          weld_threshold: float = Tolerances.WELD_THRESHOLD) -> Union[EditableMesh, list[EditableMesh]]:
    """
    Repeat `mesh` with an ArrayLinear, ArrayRadial or ArrayGrid layout.

    Args:
        merge: return a single mesh holding every copy instead of one mesh per copy.
        weld: merge coincident vertices where neighbouring copies touch (merged output only).

    Returns:
        EditableMesh or list: new mesh(es); `mesh` itself is left untouched.
    """
    copies = []
    for i, matrix in enumerate(placements(operation)):
        copies.append(apply_matrix(mesh.clone(name=f"{mesh.name}_{i}"), matrix))
    logger.debug(f"{type(operation).__name__} made {len(copies)} copies of '{mesh.name}'")
    if not merge:
        return copies

    merged = EditableMesh(name=f"{mesh.name}_array")
    for copy in copies:
        append_mesh(merged, copy)
    if weld:
        welded = weld_vertices(merged, weld_threshold)
        logger.debug(f"Welded {welded} vertices across array copies")
    return merged


def array_linear(mesh: EditableMesh, merge: bool = True, weld: bool = False, **options):
    return array(mesh, ArrayLinear(**options), merge=merge, weld=weld)


def array_radial(mesh: EditableMesh, merge: bool = True, weld: bool = False, **options):
    return array(mesh, ArrayRadial(**options), merge=merge, weld=weld)


def array_grid(mesh: EditableMesh, merge: bool = True, weld: bool = False, **options):
    return array(mesh, ArrayGrid(**options), merge=merge, weld=weld)
