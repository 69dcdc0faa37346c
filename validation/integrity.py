"""
Topological integrity: manifoldness, closedness, orientability, components, boundary
loops, Euler characteristic and genus.

Adjacency is taken from the face loops (undirected vertex pairs), so duplicated edge
records do not hide a shared boundary.
"""

from dataclasses import dataclass, field
from itertools import combinations
from typing import Optional

import networkx as nx

from data_types import EditableMesh
from topology import referenced_vertices, vertex_pair_faces
from .boundary_loops import extract_boundary_loops
from .validate_mesh import ValidationResult, validate_mesh


@dataclass
class GeometryIntegrityResult(ValidationResult):
    is_manifold: bool = True
    is_closed: bool = False
    is_orientable: bool = True
    is_consistently_oriented: bool = True
    connected_components: int = 0
    boundary_loops: list[list[int]] = field(default_factory=list)
    euler_characteristic: int = 0
    genus: Optional[int] = None
    non_manifold_edges: list[tuple[int, int]] = field(default_factory=list)
    boundary_edges: list[tuple[int, int]] = field(default_factory=list)


@dataclass
class OrientationLabels:
    flips: dict[int, int]  # face id -> 1 if it must be reversed to agree with its component root
    components: list[list[int]]
    orientable: bool
    consistent: bool


def face_adjacency_graph(mesh: EditableMesh) -> nx.Graph:
    """
    Faces as nodes, joined when they share a manifold vertex pair.

    Each graph edge carries `parity`: 0 when the two faces walk the shared pair in opposite
    directions (consistent winding), 1 when they walk it the same way.
    """
    graph = nx.Graph()
    graph.add_nodes_from(range(mesh.face_count))
    for pair, uses in vertex_pair_faces(mesh).items():
        if len(uses) != 2:
            continue
        (f, forward_f), (g, forward_g) = uses
        if f == g:
            continue
        graph.add_edge(f, g, parity=int(forward_f == forward_g))
    return graph


def orientation_labels(mesh: EditableMesh) -> OrientationLabels:
    """
    Two-colour every face by breadth-first traversal of the face adjacency graph.

    A face's colour says whether it must be reversed to agree with the first face of its
    component. Reaching a face with both colours means the surface is non-orientable.
    """
    graph = face_adjacency_graph(mesh)
    flips = {}
    orientable = True
    consistent = True
    components = []
    for component in nx.connected_components(graph):
        root = min(component)
        components.append(sorted(component))
        flips[root] = 0
        for parent, child in nx.bfs_edges(graph, root):
            flips[child] = flips[parent] ^ graph.edges[parent, child]["parity"]
        for f, g, parity in graph.subgraph(component).edges(data="parity"):
            if parity:
                consistent = False
            if flips[f] ^ flips[g] != parity:
                orientable = False
    return OrientationLabels(flips=flips, components=components, orientable=orientable,
                             consistent=consistent and orientable)


def surface_components(mesh: EditableMesh) -> list[list[int]]:
    """Faces grouped by connectivity through any shared vertex pair (manifold or not)."""
    graph = nx.Graph()
    graph.add_nodes_from(range(mesh.face_count))
    for uses in vertex_pair_faces(mesh).values():
        graph.add_edges_from(combinations([f for f, _ in uses], 2))
    return [sorted(c) for c in nx.connected_components(graph)]


def euler_characteristic(mesh: EditableMesh) -> int:
    """V - E + F over the vertices and vertex pairs that faces actually use."""
    return len(referenced_vertices(mesh)) - len(vertex_pair_faces(mesh)) + mesh.face_count


def validate_geometry_integrity(mesh: EditableMesh) -> GeometryIntegrityResult:
    base = validate_mesh(mesh)
    result = GeometryIntegrityResult(is_valid=base.is_valid, errors=list(base.errors),
                                     warnings=list(base.warnings))
    if mesh is None or not base.is_valid:
        result.is_manifold = False
        result.is_orientable = False
        result.is_consistently_oriented = False
        return result

    pair_uses = vertex_pair_faces(mesh)
    result.non_manifold_edges = sorted(p for p, uses in pair_uses.items() if len(uses) > 2)
    result.boundary_edges = sorted(p for p, uses in pair_uses.items() if len(uses) == 1)
    result.is_manifold = not result.non_manifold_edges
    result.is_closed = bool(mesh.faces) and not result.boundary_edges
    if result.non_manifold_edges:
        result.error(f"{len(result.non_manifold_edges)} edges are shared by more than two faces")

    labels = orientation_labels(mesh)
    result.is_orientable = labels.orientable
    result.is_consistently_oriented = labels.consistent
    if not labels.orientable:
        result.error("Surface is not orientable")
    elif not labels.consistent:
        result.warn("Face winding is inconsistent between neighbouring faces")

    components = surface_components(mesh)
    result.connected_components = len(components)
    result.boundary_loops = extract_boundary_loops(mesh)
    if result.boundary_loops:
        result.warn(f"Mesh is open with {len(result.boundary_loops)} boundary loops")

    chi = euler_characteristic(mesh)
    result.euler_characteristic = chi
    if result.is_manifold and result.is_orientable and mesh.faces:
        # Per component: genus = (2 - chi - boundary loops) / 2, summed
        doubled = 2 * len(components) - chi - len(result.boundary_loops)
        if doubled >= 0 and doubled % 2 == 0:
            result.genus = doubled // 2
    return result
