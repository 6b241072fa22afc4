"""
Error taxonomy for polyunion.

All errors derive from ``PolyUnionError`` (itself a ``ValueError``) so callers
can catch the whole family at once. Errors raised while executing a batch
carry the index of the failing row in ``row``.
"""

from typing import Optional


class PolyUnionError(ValueError):
    """Base class for all polyunion errors."""

    def __init__(self, message: str, row: Optional[int] = None):
        super().__init__(message)
        self.row = row

    def with_row(self, row: int) -> "PolyUnionError":
        self.row = row
        return self

    def __str__(self) -> str:
        msg = super().__str__()
        if self.row is not None:
            return f"{msg} (row {self.row})"
        return msg


class FormatError(PolyUnionError):
    """Input does not match the Array(Array(Array(Tuple(Float64, Float64)))) shape."""


class GeometryValidityError(PolyUnionError):
    """A ring is degenerate, self-intersecting or outside the coordinate domain."""


class PoleContainmentError(GeometryValidityError):
    """A geographic ring contains or touches a pole."""


class NumericError(PolyUnionError):
    """A coordinate is NaN or infinite."""


class AlgorithmInternalError(PolyUnionError):
    """The union topology could not be reconstructed. This is a bug."""


# Faults confined to one row; a batch may replace such rows with null.
ROW_ERRORS = (GeometryValidityError, NumericError)


__all__ = [
    "AlgorithmInternalError",
    "FormatError",
    "GeometryValidityError",
    "NumericError",
    "PoleContainmentError",
    "PolyUnionError",
    "ROW_ERRORS",
]
