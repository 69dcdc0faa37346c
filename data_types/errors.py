class MeshError(Exception):
    """Base class for mesh kernel errors."""


class InvalidReferenceError(MeshError, IndexError):
    """A vertex, edge or face id that does not exist in the mesh."""


class TopologyError(MeshError, ValueError):
    """A record that would break a topology invariant (degenerate edge, mismatched face edges)."""


class PreconditionError(MeshError, ValueError):
    """An operation was asked to run on input it cannot handle."""
