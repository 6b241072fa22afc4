"""Turn raw union boundary rings into a canonical MultiPolygon."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from ..errors import AlgorithmInternalError
from ..logging import logger
from ..model import MultiPolygon, Polygon, close_ring


@dataclass
class _Ring:
    work: list
    out: list
    area: float
    probe: Any


def _simplify(work: list, out: list, prims, eps: float) -> tuple[list, list]:
    """Drop repeated vertices and vertices within ``eps`` of the line through their neighbours."""
    work, out = list(work), list(out)
    changed = True
    while changed and len(work) >= 3:
        changed = False
        i = 0
        while i < len(work) and len(work) >= 3:
            a, b, c = work[i - 1], work[i], work[(i + 1) % len(work)]
            if a == b or abs(prims.side(a, c, b)) <= eps:
                del work[i]
                del out[i]
                changed = True
            else:
                i += 1
    return work, out


def _perimeter(work: Sequence, prims) -> float:
    return sum(prims.length(a, b) for a, b in zip(work, [*work[1:], work[0]]))


def _canonical(points: list) -> list:
    """Rotate a ring to start at its smallest vertex, then close it."""
    start = min(range(len(points)), key=lambda k: points[k])
    return close_ring(points[start:] + points[:start])


def assemble(rings: Sequence[tuple[list, list]], prims, eps: float) -> MultiPolygon:
    """
    Build polygons from boundary rings traced with the union on their left.

    Nesting depth decides the role of a ring: even depth is an outer
    boundary, odd depth a hole. Orientation must agree with that parity.
    """
    kept: list[_Ring] = []
    for work, out in rings:
        # Midpoints of subdivision edges never lie on another result ring.
        probe = prims.midpoint(work[0], work[1]) if len(work) >= 2 else None
        work, out = _simplify(work, out, prims, eps)
        if len(work) < 3:
            continue
        area = prims.signed_area(work)
        if abs(area) <= eps * _perimeter(work, prims):
            logger.debug(f"dropping zero-area ring with {len(work)} vertices")
            continue
        kept.append(_Ring(work, out, area, probe))

    probes = [r.probe for r in kept]
    inside = [prims.contains(probes, r.work) for r in kept]
    depth = [sum(inside[j][i] for j in range(len(kept)) if j != i) for i in range(len(kept))]

    shells: dict[int, list[int]] = {}
    holes: list[int] = []
    for i, ring in enumerate(kept):
        is_shell = depth[i] % 2 == 0
        if is_shell != (ring.area > 0):
            raise AlgorithmInternalError(
                f"ring at nesting depth {depth[i]} has signed area {ring.area:.3g}"
            )
        if is_shell:
            shells[i] = []
        else:
            holes.append(i)

    for i in holes:
        owners = [j for j in shells if inside[j][i] and depth[j] == depth[i] - 1]
        if not owners:
            raise AlgorithmInternalError(f"hole at nesting depth {depth[i]} has no enclosing shell")
        owner = min(owners, key=lambda j: (kept[j].area, j))
        shells[owner].append(i)

    polygons = [
        Polygon(
            outer=_canonical(kept[i].out),
            holes=sorted(_canonical(kept[h].out) for h in hole_ids),
        )
        for i, hole_ids in shells.items()
    ]
    polygons.sort(key=lambda p: p.outer[0])
    return MultiPolygon(polygons)


__all__ = ["assemble"]
