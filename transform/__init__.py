from .transforms import translate, scale, rotate, apply_matrix, mirror_by_plane, mirror_by_axis, mirror_by_point
from .deform import Bend, Twist, Taper, deform, bend, twist, taper, region_factors
from .array import (
    ArrayLinear,
    ArrayRadial,
    ArrayGrid,
    array,
    array_linear,
    array_radial,
    array_grid,
    append_mesh,
    placements,
)
