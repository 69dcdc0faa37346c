from .tolerances import Tolerances, DEFAULT_NORMAL, DEFAULT_UV
