"""
Sketcher - Fehlerklassen
"""


class SketchSolverError(Exception):
    """Base class for errors raised by the sketch solving core."""
    pass


class PrimitiveReferenceError(SketchSolverError, KeyError):
    """Raised when a constraint or element refers to a primitive id that extraction did not produce."""

    def __init__(self, kind: str, primitive_id: str, owner: str = ""):
        self.kind = kind
        self.primitive_id = primitive_id
        self.owner = owner
        super().__init__(kind, primitive_id)

    def __str__(self):
        where = f" (referenced by {self.owner})" if self.owner else ""
        return f"{self.kind} not found: {self.primitive_id}{where}"


class UnknownElementError(SketchSolverError, ValueError):
    """Raised for element dictionaries with an unknown 'type'."""
    pass
