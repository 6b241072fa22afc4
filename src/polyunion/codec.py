"""
Row codec between the nested coordinate representation and ``MultiPolygon``.

A row is ``Array(Array(Array(Tuple(Float64, Float64))))``: polygons, then
rings (outer first, holes after), then coordinate pairs.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from typing import Any

import numpy as np

from .errors import FormatError, NumericError
from .model import MultiPolygon, Point, Polygon, Ring, close_ring

_PAIR_KEYS = (("x", "y"), ("lon", "lat"), ("0", "1"))


def _is_sequence(value: Any) -> bool:
    if isinstance(value, np.ndarray):
        return True
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


def _decode_pair(value: Any, where: str) -> Point:
    if isinstance(value, Mapping):
        for kx, ky in _PAIR_KEYS:
            if kx in value and ky in value and len(value) == 2:
                value = (value[kx], value[ky])
                break
        else:
            value = tuple(value.values())
    if not _is_sequence(value) or len(value) != 2:
        raise FormatError(f"{where}: expected a coordinate pair, got {value!r}")
    try:
        x = float(value[0])
        y = float(value[1])
    except (TypeError, ValueError) as exc:
        raise FormatError(f"{where}: coordinates must be numeric, got {value!r}") from exc
    if not (math.isfinite(x) and math.isfinite(y)):
        raise NumericError(f"{where}: coordinate is not finite: ({x}, {y})")
    return (x, y)


def _decode_ring(value: Any, where: str) -> Ring:
    if not _is_sequence(value):
        raise FormatError(f"{where}: expected a sequence of coordinate pairs, got {type(value).__name__}")
    return [_decode_pair(p, f"{where}, point {k}") for k, p in enumerate(value)]


def decode_multipolygon(row: Any) -> MultiPolygon:
    """Decode one row into a MultiPolygon; ``None`` and ``[]`` are empty."""
    if row is None:
        return MultiPolygon()
    if not _is_sequence(row):
        raise FormatError(f"expected a sequence of polygons, got {type(row).__name__}")
    polygons = []
    for i, poly in enumerate(row):
        if not _is_sequence(poly):
            raise FormatError(f"polygon {i}: expected a sequence of rings, got {type(poly).__name__}")
        if len(poly) == 0:
            raise FormatError(f"polygon {i}: has no outer ring")
        rings = [_decode_ring(r, f"polygon {i}, ring {j}") for j, r in enumerate(poly)]
        polygons.append(Polygon(outer=rings[0], holes=rings[1:]))
    return MultiPolygon(polygons)


def encode_multipolygon(geometry: MultiPolygon) -> list[list[list[Point]]]:
    """Encode a MultiPolygon as nested lists with closed rings."""
    return [
        [[(float(x), float(y)) for x, y in close_ring(ring)] for ring in polygon.rings]
        for polygon in geometry.polygons
    ]


__all__ = ["decode_multipolygon", "encode_multipolygon"]
