"""Euclidean primitives and the planar union engine."""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np
import torch
from torch import Tensor

from ..model import MultiPolygon, Point
from ..orientation import correct
from .overlay import union

Work = tuple[float, float]


def _planar_point_in_polygon(
    points_xy: Tensor,
    polygon_xy: Tensor,
) -> Tensor:
    """
    Even-odd rule for a simple planar polygon.

    points_xy: [M, 2]
    polygon_xy: [N, 2] (open ring)
    returns: [M] bool
    """
    x = points_xy[:, 0].unsqueeze(1)
    y = points_xy[:, 1].unsqueeze(1)

    xi = polygon_xy[:, 0].unsqueeze(0)
    yi = polygon_xy[:, 1].unsqueeze(0)
    xj = torch.roll(xi, shifts=-1, dims=1)
    yj = torch.roll(yi, shifts=-1, dims=1)

    # Half-open in y so a ray through a vertex counts once.
    y_between = (yi > y) != (yj > y)
    dy = torch.where(y_between, yj - yi, torch.ones_like(yj - yi))
    x_inter = (xj - xi) * (y - yi) / dy + xi
    crossings = y_between & (x < x_inter)
    return (crossings.to(torch.int64).sum(dim=1) % 2) == 1


def _signed_area_2d(xy: np.ndarray) -> float:
    x = xy[:, 0]
    y = xy[:, 1]
    return 0.5 * float(np.sum(x * np.roll(y, -1) - y * np.roll(x, -1)))


class PlanarPrimitives:
    """
    Distance, orientation and intersection primitives on the Euclidean plane.

    Working coordinates are the input (x, y) pairs themselves.
    """

    name = "cartesian"

    def __init__(self, tolerance: float = 1e-9):
        self.relative_tolerance = float(tolerance)

    def tolerance(self, rings: Sequence[Sequence[Point]]) -> float:
        """Snap distance scaled to the largest coordinate magnitude."""
        scale = 1.0
        for ring in rings:
            for x, y in ring:
                scale = max(scale, abs(x), abs(y))
        return self.relative_tolerance * scale

    def validate_ring(self, ring: Sequence[Point]) -> None:
        pass

    def prepare_ring(self, ring: list[Point]) -> list[Point]:
        return ring

    def check_cycle(self, ring: Sequence[Work]) -> None:
        pass

    def to_work(self, points: Sequence[Point]) -> list[Work]:
        return [(float(x), float(y)) for x, y in points]

    def from_work(self, w: Work, ref: Point) -> Point:
        return w

    def length(self, a: Work, b: Work) -> float:
        return math.hypot(b[0] - a[0], b[1] - a[1])

    def side(self, a: Work, b: Work, p: Work) -> float:
        """Signed distance of ``p`` from the line ``a -> b``; positive on the left."""
        dx = b[0] - a[0]
        dy = b[1] - a[1]
        norm = math.hypot(dx, dy)
        if norm == 0.0:
            return math.hypot(p[0] - a[0], p[1] - a[1])
        return (dx * (p[1] - a[1]) - dy * (p[0] - a[0])) / norm

    def param(self, a: Work, b: Work, p: Work) -> float:
        """Position of ``p`` projected on ``a -> b``, in length units from ``a``."""
        dx = b[0] - a[0]
        dy = b[1] - a[1]
        norm = math.hypot(dx, dy)
        if norm == 0.0:
            return 0.0
        return ((p[0] - a[0]) * dx + (p[1] - a[1]) * dy) / norm

    def crossing(self, a0: Work, a1: Work, b0: Work, b1: Work, eps: float) -> Work | None:
        """Proper crossing point of two segments, or None."""
        d0 = self.side(b0, b1, a0)
        d1 = self.side(b0, b1, a1)
        if not ((d0 > eps and d1 < -eps) or (d0 < -eps and d1 > eps)):
            return None
        e0 = self.side(a0, a1, b0)
        e1 = self.side(a0, a1, b1)
        if not ((e0 > eps and e1 < -eps) or (e0 < -eps and e1 > eps)):
            return None
        t = d0 / (d0 - d1)
        return (a0[0] + t * (a1[0] - a0[0]), a0[1] + t * (a1[1] - a0[1]))

    def angle(self, origin: Work, toward: Work) -> float:
        return math.atan2(toward[1] - origin[1], toward[0] - origin[0])

    def midpoint(self, a: Work, b: Work) -> Work:
        return (0.5 * (a[0] + b[0]), 0.5 * (a[1] + b[1]))

    def envelope(self, a: Work, b: Work, eps: float) -> tuple[Work, Work]:
        return (
            (min(a[0], b[0]) - eps, min(a[1], b[1]) - eps),
            (max(a[0], b[0]) + eps, max(a[1], b[1]) + eps),
        )

    def signed_area(self, ring: Sequence[Work]) -> float:
        """Shoelace area of an open ring; counter-clockwise is positive."""
        if len(ring) < 3:
            return 0.0
        return _signed_area_2d(np.asarray(ring, dtype=np.float64))

    def contains(self, points: Sequence[Work], ring: Sequence[Work]) -> list[bool]:
        """Strict point-in-ring for points known not to lie on the ring."""
        if not points:
            return []
        pts = torch.as_tensor(points, dtype=torch.float64).reshape(-1, 2)
        poly = torch.as_tensor(ring, dtype=torch.float64).reshape(-1, 2)
        return _planar_point_in_polygon(pts, poly).tolist()


def planar_union(first: MultiPolygon, second: MultiPolygon, *, tolerance: float = 1e-9,
                 strict: bool = False) -> MultiPolygon:
    """Union of two multi-polygons with Euclidean semantics."""
    prims = PlanarPrimitives(tolerance)
    return union(correct(first, prims, strict=strict), correct(second, prims, strict=strict), prims)


__all__ = ["PlanarPrimitives", "planar_union"]
