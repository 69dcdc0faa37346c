from .common import EditResult, atomic_edit, edit_operation, split_edge, split_face, set_face_loop
from .extrude import extrude_vertex, extrude_vertex_with_face, extrude_edge, extrude_face
from .knife import KnifeResult, knife_cut, knife_cut_line, knife_cut_path, knife_cut_circle
from .inset import inset_face, inset_faces
from .bevel import EdgeBevel, VertexBevel, FaceBevel, bevel, bevel_edge, bevel_vertex, bevel_face
from .bridge import bridge_edges, bridge_edge_loops, bridge_faces
from .loop_cut import LoopCutResult, cut_edge_loop, cut_multiple_loops
