"""
Loop cuts: insert edge loops across rings of quads.

Starting from one edge, the ring is found by stepping across each quad to the opposite
edge and on into the neighbouring face, in both directions. A walk ends where the quads run out
or where it comes back to the start edge. Every ring edge is split `cuts` times at
even spacing and every quad of the ring is split along chords joining matching cut
vertices on its two ring edges.
"""

import time
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
from loguru import logger

from data_types import EditableMesh, PreconditionError
from topology import build_edge_map, edge_faces
from validation import repair_mesh, validate_mesh
from .common import EditResult, edit_operation, require_edge, split_edge, split_face


@dataclass
class LoopCutResult(EditResult):
    loops_cut: int = 0
    vertices_created: int = 0
    edges_created: int = 0
    faces_created: int = 0
    validation: Optional[object] = None


@dataclass
class _RingStep:
    face_id: int
    entry: int
    exit: int
    # True when exit.v1 is the corner next to entry.v1
    aligned: bool


def _walk(mesh: EditableMesh, faces_of: dict, face_id: int, edge_id: int, start: int,
          visited: set) -> tuple[list[_RingStep], bool]:
    steps = []
    while face_id not in visited:
        face = mesh.faces[face_id]
        if len(face.vertices) != 4:
            break
        i = face.edges.index(edge_id)
        opposite = face.edges[(i + 2) % 4]
        first = mesh.edges[edge_id].v1
        near = face.vertices[(i + 3) % 4] if face.vertices[i] == first else face.vertices[(i + 2) % 4]
        steps.append(_RingStep(face_id, edge_id, opposite, near == mesh.edges[opposite].v1))
        visited.add(face_id)
        if opposite == start:
            return steps, True
        following = [f for f in faces_of.get(opposite, []) if f != face_id]
        if not following:
            break
        face_id, edge_id = following[0], opposite
    return steps, False


def find_edge_ring(mesh: EditableMesh, edge_id: int) -> tuple[list[_RingStep], bool]:
    """
    Quads crossed by the edge ring through `edge_id`.

    Returns:
        tuple: (ring steps, whether the ring closes on itself)
    """
    require_edge(mesh, edge_id)
    faces_of = edge_faces(mesh)
    quads = [f for f in faces_of.get(edge_id, []) if len(mesh.faces[f].vertices) == 4]
    if not quads:
        raise PreconditionError(f"Edge {edge_id} has no quad faces to cut through")

    visited = set()
    forward, closed = _walk(mesh, faces_of, quads[0], edge_id, edge_id, visited)
    if closed or len(quads) < 2:
        return forward, closed
    backward, _ = _walk(mesh, faces_of, quads[1], edge_id, edge_id, visited)
    return forward + backward, False


def _split_ring_edge(mesh: EditableMesh, edge_id: int, cuts: int, edge_map: dict) -> list[int]:
    """Split an edge `cuts` times at even spacing; cut vertices ordered from its first vertex."""
    edge = mesh.edges[edge_id]
    start = mesh.vertices[edge.v1].position.copy()
    span = mesh.vertices[edge.v2].position - start
    created = []
    tail = edge_id
    for j in range(1, cuts + 1):
        vertex, tail = split_edge(mesh, tail, point=start + span * (j / (cuts + 1)), edge_map=edge_map)
        created.append(vertex)
    return created


def _split_quad(mesh: EditableMesh, face_id: int, chords: list[tuple[int, int]], edge_map: dict):
    pieces = [face_id]
    for u, w in chords:
        target = next((f for f in pieces
                       if u in mesh.faces[f].vertices and w in mesh.faces[f].vertices), None)
        if target is None:
            raise PreconditionError(f"Face {face_id} lost the cut between vertices {u} and {w}")
        split = split_face(mesh, target, u, w, edge_map=edge_map)
        if split is None:
            raise PreconditionError(f"Cannot split face {target} between vertices {u} and {w}")
        pieces.append(split[1])


def _smooth(mesh: EditableMesh, vertex_ids: Sequence[int], factor: float):
    """One simultaneous Laplacian step of the given vertices towards their neighbours."""
    targets = {}
    for v in vertex_ids:
        neighbors = mesh.vertex_neighbors(v)
        if neighbors:
            average = np.mean([mesh.vertices[n].position for n in neighbors], axis=0)
            targets[v] = mesh.vertices[v].position + (average - mesh.vertices[v].position) * factor
    for v, position in targets.items():
        mesh.vertices[v].position = position


def _cut_ring(mesh: EditableMesh, edge_id: int, cuts: int, edge_map: dict) -> bool:
    steps, closed = find_edge_ring(mesh, edge_id)
    ring_edges = [steps[0].entry] + [step.exit for step in steps]
    cut_vertices = {}
    for ring_edge in ring_edges:
        if ring_edge not in cut_vertices:
            cut_vertices[ring_edge] = _split_ring_edge(mesh, ring_edge, cuts, edge_map)

    for step in steps:
        near = cut_vertices[step.entry]
        far = cut_vertices[step.exit]
        if not step.aligned:
            far = far[::-1]
        _split_quad(mesh, step.face_id, list(zip(near, far)), edge_map)
    logger.debug(f"Loop cut from edge {edge_id}: {len(steps)} quads, closed={closed}")
    return closed


@edit_operation(LoopCutResult)
def _cut_loops(mesh: EditableMesh, edge_indices: list, cuts: int = 1, smoothing: float = 0.0,
               validate: bool = True, repair: bool = False) -> LoopCutResult:
    if not isinstance(cuts, (int, np.integer)) or cuts < 1:
        raise ValueError(f"Number of cuts must be at least 1, got {cuts}")
    if not 0.0 <= smoothing <= 1.0:
        raise ValueError(f"smoothing must be in [0, 1], got {smoothing}")

    started = time.perf_counter()
    vertex_count = mesh.vertex_count
    edge_count = mesh.edge_count
    face_count = mesh.face_count
    edge_map = build_edge_map(mesh)

    closed_loops = 0
    for edge_id in edge_indices:
        closed_loops += int(_cut_ring(mesh, edge_id, cuts, edge_map))

    new_vertices = list(range(vertex_count, mesh.vertex_count))
    if smoothing > 0:
        _smooth(mesh, new_vertices, smoothing)
        mesh.compute_face_normals()

    result = LoopCutResult(
        success=True,
        new_vertices=new_vertices,
        new_edges=list(range(edge_count, mesh.edge_count)),
        new_faces=list(range(face_count, mesh.face_count)),
        loops_cut=len(edge_indices),
        vertices_created=mesh.vertex_count - vertex_count,
        edges_created=mesh.edge_count - edge_count,
        faces_created=mesh.face_count - face_count,
        statistics={
            "input_vertices": vertex_count,
            "input_faces": face_count,
            "output_vertices": mesh.vertex_count,
            "output_faces": mesh.face_count,
            "closed_loops": closed_loops,
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

    logger.info(f"Loop cut on '{mesh.name}': {result.loops_cut} loops, "
                f"{result.vertices_created} vertices, {result.faces_created} faces")
    return result


def cut_edge_loop(mesh: EditableMesh, edge_index: int, cuts: int = 1, **options) -> LoopCutResult:
    """
    Cut `cuts` parallel loops across the edge ring through `edge_index`.

    Options: smoothing (0..1 pull of the new vertices towards their neighbours), validate,
    repair.
    """
    return _cut_loops(mesh, [edge_index], cuts=cuts, **options)


def cut_multiple_loops(mesh: EditableMesh, edge_indices: Sequence[int], **options) -> LoopCutResult:
    """Cut one ring per start edge, in order. Edge ids refer to the mesh as it stands when called."""
    if edge_indices is None or len(edge_indices) == 0:
        return LoopCutResult.failure("No edge indices provided")
    return _cut_loops(mesh, list(edge_indices), **options)
