from .edge_key import (
    position_key,
    vertex_key,
    edge_key,
    get_or_create_edge,
    create_face_edges,
    build_edge_map,
    register_edge,
    add_polygon,
    EdgeKeyCache,
)
from .queries import (
    edge_faces,
    vertex_pair_faces,
    boundary_edges,
    non_manifold_edges,
    faces_around_vertex,
    face_neighbors_in_loop,
    referenced_vertices,
    referenced_edges,
)
