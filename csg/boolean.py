"""
Boolean combination (union, difference, intersection) of two polygon meshes.

Both inputs are copied and split against each other's surface, every piece is classified
as inside, outside or coplanar with the other mesh, and the pieces the operation keeps are
stitched into a new mesh whose seam vertices are welded at `merge_threshold`.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

import numpy as np
from loguru import logger

from config import Tolerances
from data_types import EditableMesh
from topology import EdgeKeyCache, vertex_pair_faces
from validation import (
    GeometryIntegrityResult,
    fix_t_junctions,
    remove_degenerate_faces,
    remove_unused_elements,
    repair_mesh,
    validate_geometry_integrity,
    weld_vertices,
)
from .classification import FaceClass, SurfaceIndex, classify_faces, face_planes
from .splitting import split_by_surface


class BooleanOperation(Enum):
    UNION = "union"
    DIFFERENCE = "difference"
    INTERSECTION = "intersection"


@dataclass
class BooleanResult:
    success: bool
    mesh: Optional[EditableMesh] = None
    error: Optional[str] = None
    validation: Optional[GeometryIntegrityResult] = None
    statistics: dict = field(default_factory=dict)

    @property
    def warnings(self) -> list[str]:
        return self.statistics.get("warnings", [])


# Which classified pieces survive, and whether B's survivors are turned inside out
_KEEP_A = {
    BooleanOperation.UNION: {FaceClass.OUTSIDE, FaceClass.COPLANAR_SAME},
    BooleanOperation.INTERSECTION: {FaceClass.INSIDE, FaceClass.COPLANAR_SAME},
    BooleanOperation.DIFFERENCE: {FaceClass.OUTSIDE, FaceClass.COPLANAR_OPPOSITE},
}
_KEEP_B = {
    BooleanOperation.UNION: {FaceClass.OUTSIDE},
    BooleanOperation.INTERSECTION: {FaceClass.INSIDE},
    BooleanOperation.DIFFERENCE: {FaceClass.INSIDE},
}


def _bounds_overlap(a: EditableMesh, b: EditableMesh, margin: float) -> bool:
    low_a, high_a = a.bounding_box()
    low_b, high_b = b.bounding_box()
    return bool(np.all(low_a <= high_b + margin) and np.all(low_b <= high_a + margin))


def _is_closed(mesh: EditableMesh) -> bool:
    uses = vertex_pair_faces(mesh)
    return bool(uses) and all(len(u) == 2 for u in uses.values())


def _has_geometry(mesh: EditableMesh) -> bool:
    return mesh.vertex_count > 0 and mesh.face_count > 0


def _copy_faces(source: EditableMesh, face_ids: list[int], target: EditableMesh, cache: EdgeKeyCache,
                flip: bool, preserve_materials: bool):
    """Append faces of `source` to `target`, copying the vertices they use."""
    mapping = {}
    for face_id in face_ids:
        face = source.faces[face_id]
        loop = []
        for v in face.vertices:
            if v not in mapping:
                vertex = source.vertices[v].copy()
                if flip and vertex.normal is not None:
                    vertex.normal = -vertex.normal
                mapping[v] = target.add_vertex(vertex)
            loop.append(mapping[v])
        if flip:
            loop.reverse()
        edges = cache.create_face_edges(target, loop)
        target.add_face(loop, edges, material_index=face.material_index if preserve_materials else 0)


def _empty_input_result(mesh_a: EditableMesh, mesh_b: EditableMesh, operation: BooleanOperation,
                        name: str, started: float) -> BooleanResult:
    """Identity rules when one side (or both) has no geometry."""
    a_present = _has_geometry(mesh_a)
    b_present = _has_geometry(mesh_b)
    if operation is BooleanOperation.UNION and a_present:
        mesh = mesh_a.clone(name)
    elif operation is BooleanOperation.UNION and b_present:
        mesh = mesh_b.clone(name)
    elif operation is BooleanOperation.DIFFERENCE and a_present:
        mesh = mesh_a.clone(name)
    else:
        mesh = EditableMesh(name=name)
    side = "both meshes are" if not (a_present or b_present) else \
        f"mesh '{mesh_b.name if not b_present else mesh_a.name}' is"
    message = f"Boolean {operation.value}: {side} empty"
    logger.warning(message)
    return BooleanResult(
        success=True,
        mesh=mesh,
        statistics={
            "output_vertices": mesh.vertex_count,
            "output_faces": mesh.face_count,
            "processing_time": time.perf_counter() - started,
            "warnings": [message],
        },
    )


def boolean_operation(mesh_a: EditableMesh, mesh_b: EditableMesh, operation,
                      validate: bool = True, repair: bool = True,
                      tolerance: float = Tolerances.BOOLEAN_SPLIT_EPSILON,
                      merge_threshold: float = Tolerances.BOOLEAN_MERGE_THRESHOLD,
                      preserve_materials: bool = True,
                      ray_count: int = Tolerances.BOOLEAN_RAY_COUNT,
                      show_progress: bool = False) -> BooleanResult:
    """
    Combine two meshes. Neither input is modified.

    Args:
        operation: a BooleanOperation or its name ("union", "difference", "intersection")
        tolerance: distance under which a vertex counts as lying on a splitting plane
        merge_threshold: weld distance for seam vertices, also the on-surface distance for
            coplanar classification
        repair: run `repair_mesh` on the result when validation reports errors

    Returns:
        BooleanResult: the result mesh is named "{A.name}_{operation}_{B.name}"
    """
    if mesh_a is None or mesh_b is None:
        return BooleanResult(success=False, error="Boolean operation requires two meshes")
    operation = BooleanOperation(operation)
    if tolerance <= 0 or merge_threshold <= 0:
        raise ValueError("tolerance and merge_threshold must be positive")

    started = time.perf_counter()
    name = f"{mesh_a.name}_{operation.value}_{mesh_b.name}"
    if not (_has_geometry(mesh_a) and _has_geometry(mesh_b)):
        return _empty_input_result(mesh_a, mesh_b, operation, name, started)

    warnings = []
    both_closed = _is_closed(mesh_a) and _is_closed(mesh_b)
    work_a = mesh_a.clone()
    work_b = mesh_b.clone()
    planes_a = face_planes(mesh_a)
    planes_b = face_planes(mesh_b)

    split_a = split_by_surface(work_a, planes_b, tolerance, show_progress, f"Splitting {mesh_a.name}")
    split_b = split_by_surface(work_b, planes_a, tolerance, show_progress, f"Splitting {mesh_b.name}")

    classes_a = classify_faces(work_a, SurfaceIndex.from_mesh(mesh_b), merge_threshold, ray_count)
    classes_b = classify_faces(work_b, SurfaceIndex.from_mesh(mesh_a), merge_threshold, ray_count)
    touching = any(c in (FaceClass.COPLANAR_SAME, FaceClass.COPLANAR_OPPOSITE) for c in classes_a)
    # A shell nested wholly inside the other needs no intersection
    nested = (all(c is FaceClass.INSIDE for c in classes_a)
              or all(c is FaceClass.INSIDE for c in classes_b))
    if (split_a == 0 and split_b == 0 and not touching and not nested
            and _bounds_overlap(mesh_a, mesh_b, merge_threshold)):
        warnings.append("Bounding boxes overlap but no intersecting faces were found")

    keep_a = [f for f, c in enumerate(classes_a) if c in _KEEP_A[operation]]
    keep_b = [f for f, c in enumerate(classes_b) if c in _KEEP_B[operation]]

    result = EditableMesh(name=name)
    cache = EdgeKeyCache()
    _copy_faces(work_a, keep_a, result, cache, flip=False, preserve_materials=preserve_materials)
    _copy_faces(work_b, keep_b, result, cache, flip=operation is BooleanOperation.DIFFERENCE,
                preserve_materials=preserve_materials)

    face_count = result.face_count
    welded = weld_vertices(result, merge_threshold)
    collapsed = face_count - result.face_count
    degenerate = remove_degenerate_faces(result)
    t_junctions = fix_t_junctions(result, merge_threshold)
    remove_unused_elements(result)
    result.compute_face_normals()
    if collapsed + degenerate:
        warnings.append(f"{collapsed + degenerate} faces collapsed while welding at {merge_threshold}")
    if both_closed and result.face_count and not _is_closed(result):
        warnings.append("Result is open although both inputs were closed")

    statistics = {
        "input_vertices_a": mesh_a.vertex_count,
        "input_faces_a": mesh_a.face_count,
        "input_vertices_b": mesh_b.vertex_count,
        "input_faces_b": mesh_b.face_count,
        "faces_split_a": split_a,
        "faces_split_b": split_b,
        "vertices_welded": welded,
        "t_junctions_fixed": t_junctions,
    }
    for side, classes in (("a", classes_a), ("b", classes_b)):
        statistics[f"{side}_inside"] = sum(c is FaceClass.INSIDE for c in classes)
        statistics[f"{side}_outside"] = sum(c is FaceClass.OUTSIDE for c in classes)
        statistics[f"{side}_coplanar"] = sum(
            c in (FaceClass.COPLANAR_SAME, FaceClass.COPLANAR_OPPOSITE) for c in classes)

    validation = None
    if validate:
        validation = validate_geometry_integrity(result)
        if not validation.is_valid and repair:
            repair_mesh(result, merge_threshold=merge_threshold)
            validation = validate_geometry_integrity(result)

    statistics.update({
        "output_vertices": result.vertex_count,
        "output_edges": result.edge_count,
        "output_faces": result.face_count,
        "processing_time": time.perf_counter() - started,
        "warnings": warnings,
    })
    for message in warnings:
        logger.warning(f"Boolean {operation.value} '{name}': {message}")
    logger.info(f"Boolean {operation.value} '{name}': {result.face_count} faces, "
                f"{result.vertex_count} vertices in {statistics['processing_time']:.3f}s")
    return BooleanResult(success=True, mesh=result, validation=validation, statistics=statistics)


def boolean_union(mesh_a: EditableMesh, mesh_b: EditableMesh, **options) -> BooleanResult:
    return boolean_operation(mesh_a, mesh_b, BooleanOperation.UNION, **options)


def boolean_difference(mesh_a: EditableMesh, mesh_b: EditableMesh, **options) -> BooleanResult:
    """A minus B: B's surface inside A closes the cavity, turned inside out."""
    return boolean_operation(mesh_a, mesh_b, BooleanOperation.DIFFERENCE, **options)


def boolean_intersection(mesh_a: EditableMesh, mesh_b: EditableMesh, **options) -> BooleanResult:
    return boolean_operation(mesh_a, mesh_b, BooleanOperation.INTERSECTION, **options)
