from .validate_mesh import ValidationResult, validate_mesh
from .boundary_loops import extract_boundary_loops, count_boundary_loops, boundary_pairs
from .integrity import (
    GeometryIntegrityResult,
    OrientationLabels,
    validate_geometry_integrity,
    orientation_labels,
    face_adjacency_graph,
    surface_components,
    euler_characteristic,
)
from .repair import (
    RepairResult,
    repair_mesh,
    weld_vertices,
    rebuild_edges,
    remove_degenerate_faces,
    remove_duplicate_edges,
    remove_unused_elements,
    fix_winding_order,
    recalculate_normals,
    fix_t_junctions,
    signed_volume,
)
