from .classification import (
    FaceClass,
    FacePlane,
    SurfaceIndex,
    face_planes,
    interior_point,
    point_in_mesh,
    classify_face,
    classify_faces,
)
from .splitting import faces_cross, split_face_by_plane, split_by_surface
from .boolean import (
    BooleanOperation,
    BooleanResult,
    boolean_operation,
    boolean_union,
    boolean_difference,
    boolean_intersection,
)
