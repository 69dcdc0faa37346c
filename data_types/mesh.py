import copy
from dataclasses import dataclass, field
from typing import Iterator, Optional, Union

import numpy as np
from numpy.typing import NDArray

from geometry import polygon_normal, polygon_area
from .errors import InvalidReferenceError, TopologyError


def _optional_array(values, size: int) -> Optional[NDArray[np.float64]]:
    if values is None:
        return None
    array = np.asarray(values, dtype=np.float64).reshape(-1)
    if array.shape[0] != size:
        raise ValueError(f"Expected {size} components, got {array.shape[0]}")
    return array


@dataclass
class Vertex:
    position: NDArray[np.float64]  # 3 coordinates
    uv: Optional[NDArray[np.float64]] = None  # 2 texture coordinates
    normal: Optional[NDArray[np.float64]] = None  # 3 components
    color: Optional[NDArray[np.float64]] = None  # RGB

    def __post_init__(self):
        self.position = _optional_array(self.position, 3)
        self.uv = _optional_array(self.uv, 2)
        self.normal = _optional_array(self.normal, 3)
        self.color = _optional_array(self.color, 3)

    @property
    def x(self) -> float:
        return float(self.position[0])

    @property
    def y(self) -> float:
        return float(self.position[1])

    @property
    def z(self) -> float:
        return float(self.position[2])

    def copy(self) -> "Vertex":
        return Vertex(
            position=self.position.copy(),
            uv=None if self.uv is None else self.uv.copy(),
            normal=None if self.normal is None else self.normal.copy(),
            color=None if self.color is None else self.color.copy(),
        )


@dataclass
class Edge:
    v1: int
    v2: int
    seam: bool = False  # UV seam marker, carried through edits untouched

    def has_vertex(self, vertex_index: int) -> bool:
        return self.v1 == vertex_index or self.v2 == vertex_index

    def other_vertex(self, vertex_index: int) -> Optional[int]:
        if self.v1 == vertex_index:
            return self.v2
        if self.v2 == vertex_index:
            return self.v1
        return None

    def connects(self, a: int, b: int) -> bool:
        return (self.v1 == a and self.v2 == b) or (self.v1 == b and self.v2 == a)

    def key(self) -> tuple[int, int]:
        """Unordered vertex pair, smaller id first."""
        return (self.v1, self.v2) if self.v1 < self.v2 else (self.v2, self.v1)

    def copy(self) -> "Edge":
        return Edge(self.v1, self.v2, self.seam)


@dataclass
class Face:
    vertices: list[int]  # ordered loop, winding gives the normal by the right-hand rule
    edges: list[int]  # edges[i] joins vertices[i] and vertices[(i + 1) % n]
    material_index: int = 0
    normal: Optional[NDArray[np.float64]] = None

    def __post_init__(self):
        self.vertices = [int(v) for v in self.vertices]
        self.edges = [int(e) for e in self.edges]
        self.normal = _optional_array(self.normal, 3)

    def __len__(self) -> int:
        return len(self.vertices)

    def is_valid(self) -> bool:
        return len(self.vertices) >= 3 and len(self.vertices) == len(self.edges)

    def vertex_pairs(self) -> list[tuple[int, int]]:
        """Consecutive (vertices[i], vertices[i + 1]) pairs, wrapping around."""
        n = len(self.vertices)
        return [(self.vertices[i], self.vertices[(i + 1) % n]) for i in range(n)]

    def index_of(self, vertex_index: int) -> int:
        return self.vertices.index(vertex_index)

    def reverse(self):
        """Flip winding in place, keeping edges[i] aligned with the reversed vertex pairs."""
        n = len(self.vertices)
        self.vertices = self.vertices[::-1]
        # Pair i of the reversed loop is pair n - 2 - i of the original
        self.edges = [self.edges[(n - 2 - i) % n] for i in range(n)]
        if self.normal is not None:
            self.normal = -self.normal

    def copy(self) -> "Face":
        return Face(list(self.vertices), list(self.edges), self.material_index,
                    None if self.normal is None else self.normal.copy())


@dataclass
class MeshSnapshot:
    vertices: list[Vertex]
    edges: list[Edge]
    faces: list[Face]


@dataclass
class EditableMesh:
    """
    Mutable polygon mesh stored as three index-addressed arrays.

    Edges and faces refer to vertices (and faces to edges) only by integer id. Ids follow
    insertion order and are never renumbered implicitly; the explicit `remove_*` methods
    shift higher ids down and remap every reference.
    """
    name: str = "Mesh"
    vertices: list[Vertex] = field(default_factory=list, repr=False)
    edges: list[Edge] = field(default_factory=list, repr=False)
    faces: list[Face] = field(default_factory=list, repr=False)

    # Construction

    def add_vertex(self, position: Union[Vertex, NDArray[np.float64], tuple], uv=None, normal=None,
                   color=None) -> int:
        if isinstance(position, Vertex):
            vertex = position
        else:
            vertex = Vertex(position, uv=uv, normal=normal, color=color)
        if not np.all(np.isfinite(vertex.position)):
            raise ValueError(f"Vertex position must be finite, got {vertex.position}")
        self.vertices.append(vertex)
        return len(self.vertices) - 1

    def add_edge(self, v1: Union[Edge, int], v2: Optional[int] = None, seam: bool = False) -> int:
        edge = v1 if isinstance(v1, Edge) else Edge(int(v1), int(v2), seam)
        self._check_vertex(edge.v1)
        self._check_vertex(edge.v2)
        if edge.v1 == edge.v2:
            raise TopologyError(f"Degenerate edge: both endpoints are vertex {edge.v1}")
        self.edges.append(edge)
        return len(self.edges) - 1

    def add_face(self, vertices: Union[Face, list[int]], edges: Optional[list[int]] = None,
                 material_index: int = 0, normal=None) -> int:
        face = vertices if isinstance(vertices, Face) else Face(list(vertices), list(edges or []),
                                                                material_index, normal)
        self.check_face(face)
        self.faces.append(face)
        return len(self.faces) - 1

    def check_face(self, face: Face):
        """Raise unless `face` satisfies every face invariant against this mesh."""
        if len(face.vertices) < 3:
            raise TopologyError(f"Face needs at least 3 vertices, got {len(face.vertices)}")
        if len(face.vertices) != len(face.edges):
            raise TopologyError(
                f"Face has {len(face.vertices)} vertices but {len(face.edges)} edges")
        for v in face.vertices:
            self._check_vertex(v)
        for i, (a, b) in enumerate(face.vertex_pairs()):
            edge = self.get_edge(face.edges[i])
            if edge is None:
                raise InvalidReferenceError(f"Edge {face.edges[i]} does not exist")
            if not edge.connects(a, b):
                raise TopologyError(
                    f"Edge {face.edges[i]} ({edge.v1}, {edge.v2}) does not connect vertices {a} and {b}")

    def _check_vertex(self, index: int):
        if not 0 <= index < len(self.vertices):
            raise InvalidReferenceError(f"Vertex {index} does not exist")

    # Queries

    def get_vertex(self, index: int) -> Optional[Vertex]:
        return self.vertices[index] if 0 <= index < len(self.vertices) else None

    def get_edge(self, index: int) -> Optional[Edge]:
        return self.edges[index] if 0 <= index < len(self.edges) else None

    def get_face(self, index: int) -> Optional[Face]:
        return self.faces[index] if 0 <= index < len(self.faces) else None

    @property
    def vertex_count(self) -> int:
        return len(self.vertices)

    @property
    def edge_count(self) -> int:
        return len(self.edges)

    @property
    def face_count(self) -> int:
        return len(self.faces)

    def is_empty(self) -> bool:
        return not self.vertices or not self.faces

    def iter_vertices(self) -> Iterator[tuple[int, Vertex]]:
        return enumerate(self.vertices)

    def iter_edges(self) -> Iterator[tuple[int, Edge]]:
        return enumerate(self.edges)

    def iter_faces(self) -> Iterator[tuple[int, Face]]:
        return enumerate(self.faces)

    def positions(self) -> NDArray[np.float64]:
        if not self.vertices:
            return np.zeros((0, 3))
        return np.array([v.position for v in self.vertices])

    def face_points(self, face_index: int) -> NDArray[np.float64]:
        return np.array([self.vertices[v].position for v in self.faces[face_index].vertices])

    def bounding_box(self) -> Optional[tuple[NDArray[np.float64], NDArray[np.float64]]]:
        if not self.vertices:
            return None
        positions = self.positions()
        return positions.min(axis=0), positions.max(axis=0)

    def find_edge(self, a: int, b: int) -> Optional[int]:
        for i, edge in enumerate(self.edges):
            if edge.connects(a, b):
                return i
        return None

    def faces_with_vertex(self, vertex_index: int) -> list[int]:
        return [i for i, face in enumerate(self.faces) if vertex_index in face.vertices]

    def faces_with_edge(self, edge_index: int) -> list[int]:
        return [i for i, face in enumerate(self.faces) if edge_index in face.edges]

    def vertex_neighbors(self, vertex_index: int) -> list[int]:
        """Vertices joined to `vertex_index` by an edge, in edge order."""
        neighbors = []
        for edge in self.edges:
            other = edge.other_vertex(vertex_index)
            if other is not None and other not in neighbors:
                neighbors.append(other)
        return neighbors

    def face_area(self, face_index: int) -> float:
        return polygon_area(self.face_points(face_index))

    def compute_face_normal(self, face_index: int) -> Optional[NDArray[np.float64]]:
        return polygon_normal(self.face_points(face_index))

    def compute_face_normals(self):
        """Cache the Newell normal on every face. Degenerate faces keep a None normal."""
        for i, face in enumerate(self.faces):
            face.normal = self.compute_face_normal(i)

    def compute_vertex_normals(self):
        """Area-weighted average of adjacent face normals, stored on each vertex."""
        accumulated = np.zeros((len(self.vertices), 3))
        for i, face in enumerate(self.faces):
            normal = self.compute_face_normal(i)
            if normal is None:
                continue
            weight = self.face_area(i)
            for v in face.vertices:
                accumulated[v] += normal * weight
        for i, vertex in enumerate(self.vertices):
            length = np.linalg.norm(accumulated[i])
            if length > 0.0:
                vertex.normal = accumulated[i] / length

    # Removal (explicit compaction of one record)

    def remove_vertex(self, index: int) -> bool:
        if self.get_vertex(index) is None:
            return False
        if any(e.has_vertex(index) for e in self.edges) or any(index in f.vertices for f in self.faces):
            raise TopologyError(f"Vertex {index} is still referenced")
        del self.vertices[index]
        for edge in self.edges:
            if edge.v1 > index:
                edge.v1 -= 1
            if edge.v2 > index:
                edge.v2 -= 1
        for face in self.faces:
            face.vertices = [v - 1 if v > index else v for v in face.vertices]
        return True

    def remove_edge(self, index: int) -> bool:
        if self.get_edge(index) is None:
            return False
        if any(index in f.edges for f in self.faces):
            raise TopologyError(f"Edge {index} is still referenced by a face")
        del self.edges[index]
        for face in self.faces:
            face.edges = [e - 1 if e > index else e for e in face.edges]
        return True

    def remove_face(self, index: int) -> bool:
        if self.get_face(index) is None:
            return False
        del self.faces[index]
        return True

    def replace_edge_references(self, old_index: int, new_index: int) -> int:
        """Point every face reference to `old_index` at `new_index`. Returns the number replaced."""
        replaced = 0
        for face in self.faces:
            for i, e in enumerate(face.edges):
                if e == old_index:
                    face.edges[i] = new_index
                    replaced += 1
        return replaced

    # Copies

    def clone(self, name: Optional[str] = None) -> "EditableMesh":
        return EditableMesh(
            name=self.name if name is None else name,
            vertices=[v.copy() for v in self.vertices],
            edges=[e.copy() for e in self.edges],
            faces=[f.copy() for f in self.faces],
        )

    def snapshot(self) -> MeshSnapshot:
        return MeshSnapshot(
            vertices=copy.deepcopy(self.vertices),
            edges=copy.deepcopy(self.edges),
            faces=copy.deepcopy(self.faces),
        )

    def restore(self, snapshot: MeshSnapshot):
        self.vertices = snapshot.vertices
        self.edges = snapshot.edges
        self.faces = snapshot.faces
