"""Spherical primitives (great-circle edges) and the spherical union engine."""

from __future__ import annotations

import math
from typing import Sequence

import torch
from torch import Tensor

from ..errors import GeometryValidityError, PoleContainmentError
from ..model import MultiPolygon, Point
from ..orientation import correct
from .overlay import union

Vec = tuple[float, float, float]

# Vertices closer than this to a pole (degrees of latitude) count as on the pole.
POLE_MARGIN_DEG = 1e-9


def _cross(a: Vec, b: Vec) -> Vec:
    return (a[1] * b[2] - a[2] * b[1], a[2] * b[0] - a[0] * b[2], a[0] * b[1] - a[1] * b[0])


def _dot(a: Vec, b: Vec) -> float:
    return a[0] * b[0] + a[1] * b[1] + a[2] * b[2]


def _norm(a: Vec) -> float:
    return math.sqrt(_dot(a, a))


def _unit(a: Vec) -> Vec:
    n = _norm(a)
    return (a[0] / n, a[1] / n, a[2] / n)


def wrap_delta(deg: float) -> float:
    """Wrap a longitude difference into (-180, 180]."""
    d = math.fmod(deg, 360.0)
    if d > 180.0:
        d -= 360.0
    elif d <= -180.0:
        d += 360.0
    return d


def lonlat_to_unit_xyz(lon_deg: Tensor | Sequence[float], lat_deg: Tensor | Sequence[float]) -> Tensor:
    """Convert longitude/latitude in degrees to unit Cartesian vectors [..., 3]."""
    lon = torch.deg2rad(torch.as_tensor(lon_deg, dtype=torch.float64))
    lat = torch.deg2rad(torch.as_tensor(lat_deg, dtype=torch.float64))
    lon, lat = torch.broadcast_tensors(lon, lat)
    cos_lat = torch.cos(lat)
    return torch.stack((cos_lat * torch.cos(lon), cos_lat * torch.sin(lon), torch.sin(lat)), dim=-1)


def unit_xyz_to_lonlat(vectors: Tensor) -> tuple[Tensor, Tensor]:
    """Convert unit vectors [..., 3] to longitude in (-180, 180] and latitude, in degrees."""
    if vectors.shape[-1] != 3:
        raise ValueError("vectors must have last dimension size 3")
    x, y, z = vectors[..., 0], vectors[..., 1], vectors[..., 2]
    lon = torch.rad2deg(torch.atan2(y, x))
    lat = torch.rad2deg(torch.atan2(z, torch.hypot(x, y)))
    return lon, lat


def _signed_area_triangle(a: Tensor, b: Tensor, c: Tensor) -> Tensor:
    det = (a * torch.cross(b, c, dim=-1)).sum(dim=-1)
    den = 1.0 + (a * b).sum(dim=-1) + (b * c).sum(dim=-1) + (c * a).sum(dim=-1)
    return 2.0 * torch.atan2(det, den)


def _make_tangent_basis(center: Vec) -> tuple[Vec, Vec]:
    ref = (0.0, 0.0, 1.0)
    if abs(_dot(ref, center)) > 0.9:
        ref = (1.0, 0.0, 0.0)
    e1 = _unit(_cross(ref, center))
    e2 = _cross(center, e1)
    return e1, e2


def _longitude_winding(lon_deg: Tensor) -> Tensor:
    dlon = torch.roll(lon_deg, shifts=-1) - lon_deg
    dlon = torch.remainder(dlon + 180.0, 360.0) - 180.0
    return dlon.sum()


class SphericalPrimitives:
    """
    Primitives on the unit sphere with great-circle arc edges.

    Working coordinates are unit vectors, so the longitude seam needs no
    special treatment inside the overlay; edges crossing it still get an
    explicit seam vertex before intersection testing, which result
    simplification drops again unless it is a corner. Rings must not contain
    or touch a pole.
    """

    name = "geographic"

    def __init__(self, tolerance: float = 1e-11):
        self._tolerance = float(tolerance)

    def tolerance(self, rings: Sequence[Sequence[Point]]) -> float:
        return self._tolerance

    # -- domain checks ----------------------------------------------------

    def validate_ring(self, ring: Sequence[Point]) -> None:
        """Reject latitudes out of range, pole vertices, and pole-enclosing rings."""
        for lon, lat in ring:
            if lat < -90.0 or lat > 90.0:
                raise GeometryValidityError(f"latitude {lat} outside [-90, 90]")
            if abs(lat) >= 90.0 - POLE_MARGIN_DEG:
                raise PoleContainmentError(f"vertex ({lon}, {lat}) lies on a pole")
        if len(ring) < 2:
            return
        lon = torch.as_tensor([p[0] for p in ring], dtype=torch.float64)
        dlon = torch.remainder(torch.roll(lon, shifts=-1) - lon + 180.0, 360.0) - 180.0
        if bool((dlon.abs() >= 180.0 - POLE_MARGIN_DEG).any()):
            raise PoleContainmentError("edge spans 180 degrees of longitude and passes over a pole")
        if abs(float(dlon.sum())) > 180.0:
            raise PoleContainmentError("ring encloses a pole")

    def check_cycle(self, ring: Sequence[Vec]) -> None:
        """Faces of the subdivision may not wrap around a pole either."""
        v = torch.as_tensor(ring, dtype=torch.float64).reshape(-1, 3)
        lon = torch.rad2deg(torch.atan2(v[:, 1], v[:, 0]))
        if abs(float(_longitude_winding(lon))) > 180.0:
            raise PoleContainmentError("union encloses a pole")

    def prepare_ring(self, ring: list[Point]) -> list[Point]:
        """Insert a vertex where an edge crosses the 180 degree meridian."""
        out: list[Point] = []
        for p, q in zip(ring, [*ring[1:], *ring[:1]]):
            out.append(p)
            lp = wrap_delta(p[0])
            lq = wrap_delta(q[0])
            if abs(abs(lp) - 180.0) < POLE_MARGIN_DEG or abs(abs(lq) - 180.0) < POLE_MARGIN_DEG:
                continue
            if abs(lq - lp) > 180.0:
                seam_lon = p[0] + wrap_delta(180.0 - lp)
                out.append((seam_lon, self._latitude_at(p, q, 180.0)))
        return out

    def _latitude_at(self, p: Point, q: Point, lon_deg: float) -> float:
        a, b = self.to_work([p, q])
        n = _cross(a, b)
        lam = math.radians(lon_deg)
        num = -(n[0] * math.cos(lam) + n[1] * math.sin(lam))
        if n[2] == 0.0:
            return 0.0
        return math.degrees(math.atan(num / n[2]))

    # -- coordinates ------------------------------------------------------

    def to_work(self, points: Sequence[Point]) -> list[Vec]:
        if not points:
            return []
        xyz = lonlat_to_unit_xyz([p[0] for p in points], [p[1] for p in points])
        return [tuple(v) for v in xyz.tolist()]

    def from_work(self, w: Vec, ref: Point) -> Point:
        """Longitude/latitude of ``w``; on the seam the sign follows ``ref``."""
        lon, lat = unit_xyz_to_lonlat(torch.as_tensor(w, dtype=torch.float64))
        lon = float(lon)
        if abs(abs(lon) - 180.0) < POLE_MARGIN_DEG:
            lon = -180.0 if wrap_delta(ref[0]) < 0.0 else 180.0
        return (lon, float(lat))

    # -- arcs -------------------------------------------------------------

    def length(self, a: Vec, b: Vec) -> float:
        return math.atan2(_norm(_cross(a, b)), _dot(a, b))

    def side(self, a: Vec, b: Vec, p: Vec) -> float:
        """Sine of the angular distance of ``p`` from the great circle ``a -> b``; positive on the left."""
        n = _cross(a, b)
        norm = _norm(n)
        if norm == 0.0:
            return self.length(a, p)
        return _dot(p, n) / norm

    def param(self, a: Vec, b: Vec, p: Vec) -> float:
        """Signed angle from ``a`` toward ``b`` of the projection of ``p``."""
        n = _cross(a, b)
        norm = _norm(n)
        if norm == 0.0:
            return 0.0
        n = (n[0] / norm, n[1] / norm, n[2] / norm)
        return math.atan2(_dot(_cross(a, p), n), _dot(a, p))

    def crossing(self, a0: Vec, a1: Vec, b0: Vec, b1: Vec, eps: float) -> Vec | None:
        """Proper crossing of two minor arcs, or None."""
        d0 = self.side(b0, b1, a0)
        d1 = self.side(b0, b1, a1)
        if not ((d0 > eps and d1 < -eps) or (d0 < -eps and d1 > eps)):
            return None
        e0 = self.side(a0, a1, b0)
        e1 = self.side(a0, a1, b1)
        if not ((e0 > eps and e1 < -eps) or (e0 < -eps and e1 > eps)):
            return None
        p = _cross(_cross(a0, a1), _cross(b0, b1))
        if _norm(p) == 0.0:
            return None
        x = _unit(p)
        # Of the two antipodal candidates keep the one on arc a.
        if _dot(x, (a0[0] + a1[0], a0[1] + a1[1], a0[2] + a1[2])) < 0.0:
            x = (-x[0], -x[1], -x[2])
        if _dot(x, (b0[0] + b1[0], b0[1] + b1[1], b0[2] + b1[2])) <= 0.0:
            return None
        return x

    def angle(self, origin: Vec, toward: Vec) -> float:
        """Direction of ``toward`` seen from ``origin``, counter-clockwise from outside the sphere."""
        e1, e2 = _make_tangent_basis(origin)
        return math.atan2(_dot(toward, e2), _dot(toward, e1))

    def midpoint(self, a: Vec, b: Vec) -> Vec:
        return _unit((a[0] + b[0], a[1] + b[1], a[2] + b[2]))

    def envelope(self, a: Vec, b: Vec, eps: float) -> tuple[Vec, Vec]:
        # The arc bulges away from its chord by at most 1 - cos(theta / 2).
        pad = 1.0 - math.cos(0.5 * self.length(a, b)) + eps
        return (
            tuple(min(x, y) - pad for x, y in zip(a, b)),
            tuple(max(x, y) + pad for x, y in zip(a, b)),
        )

    # -- rings ------------------------------------------------------------

    def signed_area(self, ring: Sequence[Vec]) -> float:
        """
        Spherical excess of an open ring in steradians; counter-clockwise seen
        from outside the sphere is positive.

        Triangles fan out from the pole on the far side of the ring, which
        the ring never contains.
        """
        if len(ring) < 3:
            return 0.0
        v = torch.as_tensor(ring, dtype=torch.float64).reshape(-1, 3)
        apex_z = -1.0 if float(v[:, 2].mean()) >= 0.0 else 1.0
        apex = torch.tensor([0.0, 0.0, apex_z], dtype=torch.float64).expand_as(v)
        return float(_signed_area_triangle(apex, v, torch.roll(v, shifts=-1, dims=0)).sum())

    def contains(self, points: Sequence[Vec], ring: Sequence[Vec]) -> list[bool]:
        """
        Strict point-in-ring by casting each point's meridian to the north pole.

        Edges count when they straddle the point's longitude (half-open) and
        cross the meridian north of the point.
        """
        if not points:
            return []
        p = torch.as_tensor(points, dtype=torch.float64).reshape(-1, 3)
        a = torch.as_tensor(ring, dtype=torch.float64).reshape(-1, 3)
        b = torch.roll(a, shifts=-1, dims=0)

        lon_p = torch.atan2(p[:, 1], p[:, 0]).unsqueeze(1)
        lat_p = torch.atan2(p[:, 2], torch.hypot(p[:, 0], p[:, 1])).unsqueeze(1)
        lon_a = torch.atan2(a[:, 1], a[:, 0]).unsqueeze(0)
        lon_b = torch.atan2(b[:, 1], b[:, 0]).unsqueeze(0)

        rel_a = torch.remainder(lon_a - lon_p + math.pi, 2.0 * math.pi) - math.pi
        rel_b = torch.remainder(lon_b - lon_p + math.pi, 2.0 * math.pi) - math.pi
        straddle = ((rel_a > 0.0) != (rel_b > 0.0)) & ((rel_b - rel_a).abs() < math.pi)

        n = torch.cross(a, b, dim=-1).unsqueeze(0)
        num = -(n[..., 0] * torch.cos(lon_p) + n[..., 1] * torch.sin(lon_p))
        nz = torch.where(n[..., 2] == 0.0, torch.full_like(n[..., 2], 1e-300), n[..., 2])
        lat_cross = torch.atan(num / nz)
        crossings = straddle & (lat_cross > lat_p)
        return ((crossings.to(torch.int64).sum(dim=1) % 2) == 1).tolist()


def spherical_union(first: MultiPolygon, second: MultiPolygon, *, tolerance: float = 1e-11,
                    strict: bool = False) -> MultiPolygon:
    """Union of two multi-polygons in longitude/latitude degrees with great-circle edges."""
    prims = SphericalPrimitives(tolerance)
    return union(correct(first, prims, strict=strict), correct(second, prims, strict=strict), prims)


__all__ = [
    "SphericalPrimitives",
    "lonlat_to_unit_xyz",
    "spherical_union",
    "unit_xyz_to_lonlat",
    "wrap_delta",
]
