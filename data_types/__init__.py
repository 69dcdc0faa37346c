from .errors import MeshError, InvalidReferenceError, TopologyError, PreconditionError
from .mesh import Vertex, Edge, Face, EditableMesh, MeshSnapshot
