"""
Numeric defaults shared by the mesh kernel.

Operations take these as keyword defaults so a caller can override any of them per call.
"""


class Tolerances:
    # Decimal places used when rounding positions/UVs into edge keys
    EDGE_KEY_PRECISION = 6

    # Knife cut: distance at which a cut snaps to an existing vertex
    KNIFE_TOLERANCE = 1e-6
    KNIFE_CIRCLE_SEGMENTS = 32

    # Boolean engine
    BOOLEAN_SPLIT_EPSILON = 1e-6
    BOOLEAN_MERGE_THRESHOLD = 1e-3
    BOOLEAN_RAY_COUNT = 3

    # Validation
    NORMAL_UNIT_TOLERANCE = 1e-3
    DEGENERATE_AREA = 1e-10
    DEGENERATE_LENGTH = 1e-10

    # Geometry primitives
    PARALLEL_EPSILON = 1e-12
    RAY_EPSILON = 1e-9

    # Editing defaults
    INSET_DISTANCE = 0.1
    BEVEL_OFFSET = 0.1
    BEVEL_PROFILE = 0.5
    EXTRUDE_DISTANCE = 1.0

    # Repair
    WELD_THRESHOLD = 1e-6
    T_JUNCTION_TOLERANCE = 1e-6


DEFAULT_NORMAL = (0.0, 1.0, 0.0)
DEFAULT_UV = (0.0, 0.0)
