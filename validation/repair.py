"""
Repair utilities. Every function here may compact the mesh and renumber ids.
"""

from dataclasses import dataclass, field

import networkx as nx
import numpy as np
from loguru import logger
from scipy.spatial import cKDTree

from config import Tolerances
from data_types import EditableMesh
from geometry import polygon_area
from topology import get_or_create_edge, referenced_edges, vertex_pair_faces
from .integrity import orientation_labels


@dataclass
class RepairResult:
    vertices_merged: int = 0
    degenerate_faces_removed: int = 0
    duplicate_edges_removed: int = 0
    unused_vertices_removed: int = 0
    unused_edges_removed: int = 0
    faces_flipped: int = 0
    t_junctions_fixed: int = 0
    actions: list[str] = field(default_factory=list)


def rebuild_edges(mesh: EditableMesh):
    """
    Recreate the edge array from the face loops.

    Edges nobody uses are dropped; seam flags survive by vertex pair.
    """
    seams = {edge.key() for edge in mesh.edges if edge.seam and edge.v1 != edge.v2}
    mesh.edges = []
    edge_map = {}
    for face in mesh.faces:
        n = len(face.vertices)
        face.edges = [get_or_create_edge(mesh, face.vertices[i], face.vertices[(i + 1) % n], edge_map)
                      for i in range(n)]
    for edge in mesh.edges:
        edge.seam = edge.key() in seams


def _clean_loop(loop: list[int]) -> list[int]:
    """Drop consecutive repeats (including the wrap-around pair)."""
    cleaned = []
    for v in loop:
        if not cleaned or cleaned[-1] != v:
            cleaned.append(v)
    while len(cleaned) > 1 and cleaned[0] == cleaned[-1]:
        cleaned.pop()
    return cleaned


def _remap_vertices(mesh: EditableMesh, mapping: np.ndarray, keep: np.ndarray):
    """Apply old->new vertex ids, keeping only vertices flagged in `keep`."""
    mesh.vertices = [v for v, k in zip(mesh.vertices, keep) if k]
    for edge in mesh.edges:
        edge.v1 = int(mapping[edge.v1])
        edge.v2 = int(mapping[edge.v2])
    for face in mesh.faces:
        face.vertices = [int(mapping[v]) for v in face.vertices]


def weld_vertices(mesh: EditableMesh, threshold: float = Tolerances.WELD_THRESHOLD) -> int:
    """
    Merge vertices closer than `threshold`; each cluster keeps its lowest id.

    Faces that collapse below three distinct vertices are removed and the edges rebuilt.
    Returns the number of vertices merged away.
    """
    if mesh.vertex_count < 2:
        return 0
    tree = cKDTree(mesh.positions())
    pairs = tree.query_pairs(threshold)
    if not pairs:
        return 0

    graph = nx.Graph()
    graph.add_edges_from(pairs)
    representative = np.arange(mesh.vertex_count)
    for cluster in nx.connected_components(graph):
        root = min(cluster)
        for v in cluster:
            representative[v] = root

    keep = representative == np.arange(mesh.vertex_count)
    new_ids = np.cumsum(keep) - 1
    mapping = new_ids[representative]
    merged = int(mesh.vertex_count - keep.sum())
    _remap_vertices(mesh, mapping, keep)

    faces = []
    for face in mesh.faces:
        loop = _clean_loop(face.vertices)
        if len(set(loop)) >= 3 and len(loop) == len(set(loop)):
            face.vertices = loop
            faces.append(face)
    mesh.faces = faces
    rebuild_edges(mesh)
    logger.debug(f"Welded {merged} vertices on '{mesh.name}' at threshold {threshold}")
    return merged


def remove_degenerate_faces(mesh: EditableMesh, area_threshold: float = Tolerances.DEGENERATE_AREA) -> int:
    before = mesh.face_count
    kept = []
    for i, face in enumerate(mesh.faces):
        if len(set(face.vertices)) < 3:
            continue
        if polygon_area(mesh.face_points(i)) < area_threshold:
            continue
        kept.append(face)
    mesh.faces = kept
    return before - mesh.face_count


def remove_duplicate_edges(mesh: EditableMesh) -> int:
    """Collapse edges over the same vertex pair onto the first one, and drop degenerate edges."""
    canonical = {}
    mapping = {}
    kept = []
    for i, edge in enumerate(mesh.edges):
        if edge.v1 == edge.v2:
            mapping[i] = None
            continue
        key = edge.key()
        if key in canonical:
            mapping[i] = canonical[key]
            continue
        canonical[key] = len(kept)
        mapping[i] = len(kept)
        kept.append(edge)

    removed = mesh.edge_count - len(kept)
    if not removed:
        return 0
    mesh.edges = kept
    broken = False
    for face in mesh.faces:
        remapped = [mapping.get(e) for e in face.edges]
        if any(e is None for e in remapped):
            broken = True
        face.edges = remapped
    if broken:
        rebuild_edges(mesh)
    return removed


def remove_unused_elements(mesh: EditableMesh) -> tuple[int, int]:
    """
    Drop edges no face uses, then vertices nothing uses, renumbering what remains.

    Returns:
        tuple: (vertices removed, edges removed)
    """
    used_edges = sorted(referenced_edges(mesh))
    edge_mapping = {old: new for new, old in enumerate(used_edges)}
    edges_removed = mesh.edge_count - len(used_edges)
    mesh.edges = [mesh.edges[e] for e in used_edges]
    for face in mesh.faces:
        face.edges = [edge_mapping[e] for e in face.edges]

    keep = np.zeros(mesh.vertex_count, dtype=bool)
    for face in mesh.faces:
        keep[face.vertices] = True
    for edge in mesh.edges:
        keep[[edge.v1, edge.v2]] = True
    vertices_removed = int(mesh.vertex_count - keep.sum())
    if vertices_removed:
        mapping = np.cumsum(keep) - 1
        _remap_vertices(mesh, mapping, keep)
    return vertices_removed, edges_removed


def signed_volume(mesh: EditableMesh, face_ids: list[int]) -> float:
    """Signed volume enclosed by the given faces (positive when they wind outward)."""
    volume = 0.0
    for face_id in face_ids:
        points = mesh.face_points(face_id)
        for i in range(1, len(points) - 1):
            volume += float(np.dot(points[0], np.cross(points[i], points[i + 1])))
    return volume / 6.0


def fix_winding_order(mesh: EditableMesh) -> int:
    """
    Make winding consistent inside every component, outward-facing for closed components.

    Returns the number of faces reversed. Non-orientable components are left as traversed.
    """
    labels = orientation_labels(mesh)
    flipped = 0
    for face_id, flip in labels.flips.items():
        if flip:
            mesh.faces[face_id].reverse()
            flipped += 1

    boundary = _boundary_face_set(mesh)
    for component in labels.components:
        if any(f in boundary for f in component):
            continue
        if signed_volume(mesh, component) < 0:
            for face_id in component:
                mesh.faces[face_id].reverse()
            flipped += len(component)
    if flipped:
        recalculate_normals(mesh)
    return flipped


def _boundary_face_set(mesh: EditableMesh) -> set[int]:
    return {uses[0][0] for uses in vertex_pair_faces(mesh).values() if len(uses) == 1}


def recalculate_normals(mesh: EditableMesh):
    mesh.compute_face_normals()
    mesh.compute_vertex_normals()


def fix_t_junctions(mesh: EditableMesh, tolerance: float = Tolerances.T_JUNCTION_TOLERANCE) -> int:
    """
    Insert vertices that lie on the interior of a face side into that face's loop.

    Returns the number of insertions. Edges are rebuilt when anything changed.
    """
    positions = mesh.positions()
    used = sorted({v for face in mesh.faces for v in face.vertices})
    if not used:
        return 0
    used = np.array(used)
    used_positions = positions[used]
    tree = cKDTree(used_positions)

    inserted = 0
    for face in mesh.faces:
        new_loop = []
        for a, b in face.vertex_pairs():
            new_loop.append(a)
            pa, pb = positions[a], positions[b]
            span = pb - pa
            length = float(np.linalg.norm(span))
            if length <= tolerance:
                continue
            candidates = tree.query_ball_point((pa + pb) / 2.0, length / 2.0 + tolerance)
            on_side = []
            for k in candidates:
                v = int(used[k])
                if v in (a, b) or v in face.vertices:
                    continue
                t = float(np.dot(positions[v] - pa, span) / (length * length))
                if t * length <= tolerance or (1.0 - t) * length <= tolerance:
                    continue
                if np.linalg.norm(pa + span * t - positions[v]) <= tolerance:
                    on_side.append((t, v))
            for _, v in sorted(on_side):
                new_loop.append(v)
                inserted += 1
        face.vertices = new_loop
    if inserted:
        rebuild_edges(mesh)
        logger.debug(f"Fixed {inserted} T-junctions on '{mesh.name}'")
    return inserted


def repair_mesh(mesh: EditableMesh, merge_threshold: float = Tolerances.WELD_THRESHOLD,
                weld: bool = True, remove_degenerate: bool = True, remove_duplicates: bool = True,
                remove_unused: bool = True, fix_winding: bool = True,
                recalculate: bool = True) -> RepairResult:
    result = RepairResult()
    if weld:
        result.vertices_merged = weld_vertices(mesh, merge_threshold)
        if result.vertices_merged:
            result.actions.append(f"merged {result.vertices_merged} vertices")
    if remove_degenerate:
        result.degenerate_faces_removed = remove_degenerate_faces(mesh)
        if result.degenerate_faces_removed:
            result.actions.append(f"removed {result.degenerate_faces_removed} degenerate faces")
    if remove_duplicates:
        result.duplicate_edges_removed = remove_duplicate_edges(mesh)
        if result.duplicate_edges_removed:
            result.actions.append(f"removed {result.duplicate_edges_removed} duplicate edges")
    if remove_unused:
        result.unused_vertices_removed, result.unused_edges_removed = remove_unused_elements(mesh)
        if result.unused_vertices_removed or result.unused_edges_removed:
            result.actions.append(f"removed {result.unused_vertices_removed} unused vertices and "
                                  f"{result.unused_edges_removed} unused edges")
    if fix_winding:
        result.faces_flipped = fix_winding_order(mesh)
        if result.faces_flipped:
            result.actions.append(f"reversed {result.faces_flipped} faces")
    if recalculate:
        recalculate_normals(mesh)
    logger.info(f"Repaired '{mesh.name}': {', '.join(result.actions) or 'nothing to do'}")
    return result
