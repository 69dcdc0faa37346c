"""
Conversion between EditableMesh and flat arrays / trimesh objects.

Export fans every face from its first vertex. Import routes every face through the edge
key map so re-imported meshes share edges between adjacent faces.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np
import trimesh
from numpy.typing import NDArray

from config import DEFAULT_NORMAL, DEFAULT_UV
from topology import add_polygon
from .mesh import EditableMesh, Vertex


@dataclass
class TriangleBuffers:
    positions: NDArray[np.float64]  # (3T) x 3, one row per triangle corner
    normals: NDArray[np.float64]  # (3T) x 3
    uvs: NDArray[np.float64]  # (3T) x 2
    indices: NDArray[np.int64]  # 3T sequential corner indices
    material_indices: NDArray[np.int64]  # T, material of the source face
    face_indices: NDArray[np.int64]  # T, id of the source face


def fan_triangulate(loop: list[int]) -> list[tuple[int, int, int]]:
    """Triangles (loop[0], loop[i], loop[i + 1]) covering a convex-or-star-shaped polygon."""
    return [(loop[0], loop[i], loop[i + 1]) for i in range(1, len(loop) - 1)]


def to_triangle_buffers(mesh: EditableMesh) -> TriangleBuffers:
    """
    Non-indexed triangle buffers for a renderer.

    Vertices without a normal get (0, 1, 0), vertices without a UV get (0, 0).
    """
    positions = []
    normals = []
    uvs = []
    materials = []
    face_ids = []
    for face_id, face in enumerate(mesh.faces):
        for triangle in fan_triangulate(face.vertices):
            for vertex_index in triangle:
                vertex = mesh.vertices[vertex_index]
                positions.append(vertex.position)
                normals.append(vertex.normal if vertex.normal is not None else DEFAULT_NORMAL)
                uvs.append(vertex.uv if vertex.uv is not None else DEFAULT_UV)
            materials.append(face.material_index)
            face_ids.append(face_id)

    corner_count = len(positions)
    return TriangleBuffers(
        positions=np.array(positions, dtype=np.float64).reshape(-1, 3),
        normals=np.array(normals, dtype=np.float64).reshape(-1, 3),
        uvs=np.array(uvs, dtype=np.float64).reshape(-1, 2),
        indices=np.arange(corner_count, dtype=np.int64),
        material_indices=np.array(materials, dtype=np.int64),
        face_indices=np.array(face_ids, dtype=np.int64),
    )


def to_trimesh(mesh: EditableMesh) -> trimesh.Trimesh:
    """
    Indexed triangle mesh sharing the EditableMesh vertex ids.

    The source face id and material of every triangle are kept as face attributes.
    """
    triangles = []
    materials = []
    source_faces = []
    for face_id, face in enumerate(mesh.faces):
        for triangle in fan_triangulate(face.vertices):
            triangles.append(triangle)
            materials.append(face.material_index)
            source_faces.append(face_id)

    return trimesh.Trimesh(
        vertices=mesh.positions(),
        faces=np.array(triangles, dtype=np.int64).reshape(-1, 3),
        face_attributes={
            "material_index": np.array(materials, dtype=np.int64),
            "source_face": np.array(source_faces, dtype=np.int64),
        },
        metadata={"name": mesh.name},
        process=False,
    )


def from_arrays(vertices, faces, name: str = "Mesh", uvs: Optional[NDArray[np.float64]] = None,
                normals: Optional[NDArray[np.float64]] = None,
                material_indices: Optional[list[int]] = None,
                merge_uv_edges: bool = False) -> EditableMesh:
    """
    Build an EditableMesh from a vertex array and a list of face loops (any sizes).
    """
    vertices = np.asarray(vertices, dtype=np.float64).reshape(-1, 3)
    mesh = EditableMesh(name=name)
    for i, position in enumerate(vertices):
        mesh.add_vertex(Vertex(
            position,
            uv=None if uvs is None else uvs[i],
            normal=None if normals is None else normals[i],
        ))

    edge_map = {}
    for face_id, loop in enumerate(faces):
        material = 0 if material_indices is None else int(material_indices[face_id])
        add_polygon(mesh, [int(v) for v in loop], edge_map, material_index=material,
                    merge_uv_edges=merge_uv_edges)
    return mesh


def from_trimesh(tm: trimesh.Trimesh, name: Optional[str] = None) -> EditableMesh:
    uvs = getattr(tm.visual, "uv", None)
    if uvs is not None and len(uvs) != len(tm.vertices):
        uvs = None
    if name is None:
        name = tm.metadata.get("name", "Mesh")
    materials = None
    if "material_index" in tm.face_attributes:
        materials = tm.face_attributes["material_index"]
    return from_arrays(tm.vertices, tm.faces, name=name, uvs=uvs, material_indices=materials)
