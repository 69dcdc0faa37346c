"""
Adjacency lookups derived from face loops.

All lookups are recomputed on demand; nothing is cached on the mesh.
"""

from collections import defaultdict

from data_types import EditableMesh


def edge_faces(mesh: EditableMesh) -> dict[int, list[int]]:
    """Edge id -> ids of the faces whose loop uses it."""
    result = defaultdict(list)
    for face_id, face in enumerate(mesh.faces):
        for edge_id in face.edges:
            result[edge_id].append(face_id)
    return dict(result)


def vertex_pair_faces(mesh: EditableMesh) -> dict[tuple[int, int], list[tuple[int, bool]]]:
    """
    Undirected vertex pair -> list of (face id, forward) uses.

    `forward` is True when the face walks the pair from the smaller vertex id to the larger.
    """
    result = defaultdict(list)
    for face_id, face in enumerate(mesh.faces):
        for a, b in face.vertex_pairs():
            key = (a, b) if a < b else (b, a)
            result[key].append((face_id, a < b))
    return dict(result)


def boundary_edges(mesh: EditableMesh) -> list[int]:
    """Edges used by exactly one face."""
    return sorted(e for e, faces in edge_faces(mesh).items() if len(faces) == 1)


def non_manifold_edges(mesh: EditableMesh) -> list[int]:
    return sorted(e for e, faces in edge_faces(mesh).items() if len(faces) > 2)


def faces_around_vertex(mesh: EditableMesh, vertex_index: int) -> list[int]:
    return mesh.faces_with_vertex(vertex_index)


def face_neighbors_in_loop(mesh: EditableMesh, face_id: int, vertex_index: int) -> tuple[int, int]:
    """(previous, next) vertex of `vertex_index` in the loop of `face_id`."""
    loop = mesh.faces[face_id].vertices
    i = loop.index(vertex_index)
    return loop[i - 1], loop[(i + 1) % len(loop)]


def referenced_vertices(mesh: EditableMesh) -> set[int]:
    return {v for face in mesh.faces for v in face.vertices}


def referenced_edges(mesh: EditableMesh) -> set[int]:
    return {e for face in mesh.faces for e in face.edges}
