import trimesh
import numpy as np
import networkx as nx

from data_types import EditableMesh


def get_connected_components(edges):
    """
    Helper function to get connected components of a graph.
    Returns the number of connected components and a list of the vertex pairs in each component.
    """
    graph = nx.Graph()
    graph.add_edges_from(edges)

    connected_components = list(nx.connected_components(graph))

    component_edges = []
    for component in connected_components:
        component_edges.append(list(graph.subgraph(component).edges()))

    return len(connected_components), component_edges


def directed_face_pairs(mesh: EditableMesh) -> np.ndarray:
    """P x 2 array of every (a, b) step of every face loop, in face winding order."""
    pairs = [pair for face in mesh.faces for pair in face.vertex_pairs()]
    return np.array(pairs, dtype=np.int64).reshape(-1, 2)


def boundary_pairs(mesh: EditableMesh) -> np.ndarray:
    """
    Directed vertex pairs used by exactly one face.
    The direction follows the winding of the face that uses them.
    """
    directed = directed_face_pairs(mesh)
    if len(directed) == 0:
        return directed
    undirected = np.sort(directed, axis=1)
    unique_rows = np.asarray(trimesh.grouping.group_rows(undirected, require_count=1), dtype=np.int64)
    return directed[unique_rows.reshape(-1)]


def extract_boundary_loops(mesh: EditableMesh) -> list[list[int]]:
    """
    Ordered vertex cycles formed by chaining the boundary pairs.

    Loops follow the winding of the faces along them. A boundary component that does not
    close (only possible around non-manifold geometry) is returned as an open chain.
    """
    pairs = boundary_pairs(mesh)
    if len(pairs) == 0:
        return []

    _, component_edges = get_connected_components(pairs.tolist())
    directed = nx.DiGraph()
    directed.add_edges_from(pairs.tolist())

    loops = []
    for edges in component_edges:
        nodes = {v for edge in edges for v in edge}
        sub = directed.subgraph(nodes)
        if nx.is_eulerian(sub):
            circuit = list(nx.eulerian_circuit(sub))
            loops.append([int(a) for a, _ in circuit])
        else:
            start = min(sub.nodes, key=lambda v: (sub.in_degree(v), v))
            loops.append([int(v) for v in nx.dfs_preorder_nodes(sub, start)])
    return loops


def count_boundary_loops(mesh: EditableMesh) -> int:
    pairs = boundary_pairs(mesh)
    if len(pairs) == 0:
        return 0
    num_comp, _ = get_connected_components(pairs.tolist())
    return num_comp
