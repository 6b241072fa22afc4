"""
Ring cleanup and orientation ahead of the union engines.

Outer rings come out counter-clockwise and holes clockwise, as measured by
the signed area of the active primitives strategy. Degenerate rings are
dropped, or rejected in strict mode.
"""

from __future__ import annotations

from typing import Optional, Sequence

from .errors import GeometryValidityError
from .geometry.overlay import segment_intersections, sweep_pairs
from .logging import logger
from .model import MultiPolygon, Point, Polygon, Ring, close_ring, open_ring


def _dedupe(ring: Sequence[Point]) -> Ring:
    points: Ring = []
    for p in open_ring(list(ring)):
        if not points or points[-1] != p:
            points.append(p)
    while len(points) > 1 and points[0] == points[-1]:
        points.pop()
    return points


def _check_simple(points: Ring, work: list, prims, eps: float) -> None:
    """Raise if the ring touches or crosses itself."""
    if len(set(points)) != len(points):
        raise GeometryValidityError("ring repeats a vertex")
    n = len(work)
    segments = [(work[i], work[(i + 1) % n]) for i in range(n)]
    for i, j in sweep_pairs(prims, segments, eps):
        (a0, a1), (b0, b1) = segments[i], segments[j]
        if segment_intersections(prims, a0, a1, b0, b1, eps):
            raise GeometryValidityError(f"ring edges {min(i, j)} and {max(i, j)} intersect")


def _correct_ring(ring: Sequence[Point], prims, eps: float, *, hole: bool,
                  strict: bool) -> Optional[Ring]:
    points = _dedupe(ring)
    prims.validate_ring(points)
    kind = "hole" if hole else "outer ring"
    if len(points) < 3:
        if strict:
            raise GeometryValidityError(f"{kind} has {len(points)} distinct points, need at least 3")
        logger.debug(f"dropping {kind} with {len(points)} distinct points")
        return None

    work = prims.to_work(points)
    area = prims.signed_area(work)
    perimeter = sum(prims.length(a, b) for a, b in zip(work, [*work[1:], work[0]]))
    if abs(area) <= eps * perimeter:
        if strict:
            raise GeometryValidityError(f"{kind} has zero area")
        logger.debug(f"dropping zero-area {kind}")
        return None
    if strict:
        _check_simple(points, work, prims, eps)

    if (area < 0.0) != hole:
        points.reverse()
    return close_ring(points)


def correct(geometry: MultiPolygon, prims, *, strict: bool = False) -> MultiPolygon:
    """
    Return a cleaned copy of ``geometry``.

    Every ring is closed with consecutive duplicates removed. Rings with
    fewer than 3 distinct points or no area are dropped; dropping an outer
    ring drops its holes with it. The strategy's domain checks run on every
    ring and raise on violations regardless of ``strict``.
    """
    eps = prims.tolerance(list(geometry.rings()))
    polygons = []
    for polygon in geometry.polygons:
        outer = _correct_ring(polygon.outer, prims, eps, hole=False, strict=strict)
        holes = [_correct_ring(h, prims, eps, hole=True, strict=strict) for h in polygon.holes]
        if outer is None:
            continue
        polygons.append(Polygon(outer=outer, holes=[h for h in holes if h is not None]))
    return MultiPolygon(polygons)


__all__ = ["correct"]
