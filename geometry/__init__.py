from .primitives import (
    as_vector,
    normalize,
    lerp,
    triangle_area,
    newell_vector,
    polygon_normal,
    polygon_area,
    polygon_centroid,
    perpendicular_vector,
    plane_basis,
    project_to_plane_2d,
    signed_distance_to_plane,
    closest_point_on_segment,
    point_to_segment_distance_3d,
    closest_point_on_triangle,
    rotation_matrix,
)
from .intersections import (
    SegmentApproach,
    point_in_triangle,
    point_in_polygon_2d,
    point_in_polygon,
    closest_approach_segments,
    segment_intersection_3d,
    segment_intersection_projected,
    segment_plane_intersection,
    ray_triangle_intersection,
    ray_triangles_intersection,
)
