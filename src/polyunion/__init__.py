"""
polyunion: Boolean union of multi-polygon columns

This package computes the union of two multi-polygons row by row over
columnar batches, either on the Euclidean plane or on the sphere with
great-circle edges.
"""

from typing import Any

from .codec import decode_multipolygon, encode_multipolygon
from .config import UnionConfig, configure, get_config, reset_config
from .errors import (
    AlgorithmInternalError,
    FormatError,
    GeometryValidityError,
    NumericError,
    PoleContainmentError,
    PolyUnionError,
)
from .functions import (
    Constant,
    FunctionRegistry,
    PolygonsUnion,
    default_registry,
    polygons_union_cartesian,
    polygons_union_geographic,
)
from .geometry.planar import PlanarPrimitives, planar_union
from .geometry.spherical import SphericalPrimitives, spherical_union
from .model import MultiPolygon, Polygon, open_ring
from .orientation import correct


def area(geometry: Any, domain: str = "cartesian") -> float:
    """
    Area of a multi-polygon: outer rings add, holes subtract.

    Planar areas are in squared coordinate units, geographic areas in
    steradians. Accepts an encoded row or a ``MultiPolygon``.
    """
    if domain == "cartesian":
        prims = PlanarPrimitives()
    elif domain == "geographic":
        prims = SphericalPrimitives()
    else:
        raise ValueError(f"domain must be 'cartesian' or 'geographic', got {domain!r}")
    if not isinstance(geometry, MultiPolygon):
        geometry = decode_multipolygon(geometry)
    total = 0.0
    for polygon in geometry.polygons:
        total += abs(prims.signed_area(prims.to_work(open_ring(polygon.outer))))
        for hole in polygon.holes:
            total -= abs(prims.signed_area(prims.to_work(open_ring(hole))))
    return total


__version__ = "0.1.0"
__all__ = [
    # Entry points
    "polygons_union_cartesian", "polygons_union_geographic", "planar_union", "spherical_union",
    # Function objects
    "PolygonsUnion", "Constant", "FunctionRegistry", "default_registry",
    # Geometry model and codec
    "MultiPolygon", "Polygon", "decode_multipolygon", "encode_multipolygon", "correct", "area",
    # Primitives
    "PlanarPrimitives", "SphericalPrimitives",
    # Configuration
    "UnionConfig", "get_config", "configure", "reset_config",
    # Errors
    "PolyUnionError", "FormatError", "GeometryValidityError", "PoleContainmentError",
    "NumericError", "AlgorithmInternalError",
]
