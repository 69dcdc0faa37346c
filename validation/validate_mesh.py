"""
Structural validation of an EditableMesh.

Broken references and malformed faces are errors. Degenerate geometry, missing or
non-unit normals and winding that disagrees with the stored normal are warnings.
"""

from dataclasses import dataclass, field

import numpy as np

from config import Tolerances
from data_types import EditableMesh
from geometry import polygon_area
from topology import referenced_edges, referenced_vertices


@dataclass
class ValidationResult:
    is_valid: bool = True
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def error(self, message: str):
        self.errors.append(message)
        self.is_valid = False

    def warn(self, message: str):
        self.warnings.append(message)


def validate_mesh(mesh: EditableMesh, check_normals: bool = True, check_winding: bool = True,
                  check_unused: bool = True) -> ValidationResult:
    result = ValidationResult()
    if mesh is None:
        result.error("Mesh is None")
        return result
    if not mesh.vertices:
        result.warn("Mesh has no vertices")
    if not mesh.faces:
        result.warn("Mesh has no faces")

    vertex_count = mesh.vertex_count
    edge_count = mesh.edge_count

    for i, vertex in enumerate(mesh.vertices):
        if not np.all(np.isfinite(vertex.position)):
            result.error(f"Vertex {i} has a non-finite position")

    seen_pairs = {}
    for i, edge in enumerate(mesh.edges):
        if not (0 <= edge.v1 < vertex_count and 0 <= edge.v2 < vertex_count):
            result.error(f"Edge {i} references a missing vertex ({edge.v1}, {edge.v2})")
            continue
        if edge.v1 == edge.v2:
            result.error(f"Edge {i} is degenerate: both endpoints are vertex {edge.v1}")
            continue
        length = np.linalg.norm(mesh.vertices[edge.v1].position - mesh.vertices[edge.v2].position)
        if length < Tolerances.DEGENERATE_LENGTH:
            result.warn(f"Edge {i} has near-zero length")
        pair = edge.key()
        if pair in seen_pairs:
            result.warn(f"Edge {i} duplicates edge {seen_pairs[pair]}")
        else:
            seen_pairs[pair] = i

    for i, face in enumerate(mesh.faces):
        _validate_face(mesh, i, face, vertex_count, edge_count, result, check_normals, check_winding)

    if check_unused and mesh.faces:
        used_vertices = referenced_vertices(mesh)
        used_edges = referenced_edges(mesh)
        unused_vertices = vertex_count - len(used_vertices & set(range(vertex_count)))
        unused_edges = edge_count - len(used_edges & set(range(edge_count)))
        if unused_vertices:
            result.warn(f"{unused_vertices} vertices are not used by any face")
        if unused_edges:
            result.warn(f"{unused_edges} edges are not used by any face")
    return result


def _validate_face(mesh, i, face, vertex_count, edge_count, result, check_normals, check_winding):
    n = len(face.vertices)
    if n < 3:
        result.error(f"Face {i} has only {n} vertices")
        return
    if n != len(face.edges):
        result.error(f"Face {i} has {n} vertices but {len(face.edges)} edges")
        return
    if any(not 0 <= v < vertex_count for v in face.vertices):
        result.error(f"Face {i} references a missing vertex")
        return
    if any(not 0 <= e < edge_count for e in face.edges):
        result.error(f"Face {i} references a missing edge")
        return
    for k, (a, b) in enumerate(face.vertex_pairs()):
        if not mesh.edges[face.edges[k]].connects(a, b):
            result.error(f"Face {i} edge {face.edges[k]} does not join vertices {a} and {b}")
    if len(set(face.vertices)) != n:
        result.warn(f"Face {i} repeats a vertex")

    points = mesh.face_points(i)
    if polygon_area(points) < Tolerances.DEGENERATE_AREA:
        result.warn(f"Face {i} has near-zero area")

    if not check_normals:
        return
    if face.normal is None:
        result.warn(f"Face {i} has no normal")
        return
    length = float(np.linalg.norm(face.normal))
    if abs(length - 1.0) > Tolerances.NORMAL_UNIT_TOLERANCE:
        result.warn(f"Face {i} normal is not unit length ({length:.4f})")
    if check_winding:
        winding = np.cross(points[1] - points[0], points[2] - points[1])
        if float(np.dot(winding, face.normal)) < 0:
            result.warn(f"Face {i} winding disagrees with its normal")
