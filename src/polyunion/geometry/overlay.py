"""
Boolean union of two multi-polygons over a planar subdivision.

The subdivision lives in flat arenas addressed by integers:

- nodes: working coordinates plus output coordinates, snapped within the
  tolerance through a hash grid,
- edges: undirected node pairs ``(u, v)`` with ``u < v`` carrying one integer
  winding weight per operand,
- half-edges: ``2 * e`` runs ``u -> v`` along edge ``e``, ``2 * e + 1`` runs
  back,
- cycles: closed half-edge walks, each one bounding a face on its left.

Faces are classified by winding numbers. Crossing half-edge ``h`` from its
left face to its right face subtracts the weight of ``h`` for each operand, so
windings propagate exactly across each connected component. Components that
sit inside a face of another component take that face's windings, found with
a point-in-ring test.

All geometry goes through a primitives object (planar or spherical), so the
same code runs in both coordinate domains.
"""

from __future__ import annotations

import itertools
import math
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Sequence

from ..errors import AlgorithmInternalError
from ..logging import log_timing, logger
from ..model import MultiPolygon, open_ring
from .result import assemble

Work = tuple[float, ...]


class NodeIndex:
    """Node arena with tolerance snapping on a hash grid of cell size ``eps``."""

    def __init__(self, eps: float):
        self.eps = eps
        self.work: list[Work] = []
        self.out: list[Any] = []
        self._cells: dict[tuple[int, ...], list[int]] = {}

    def _cell(self, w: Work) -> tuple[int, ...]:
        return tuple(math.floor(c / self.eps) for c in w)

    def add(self, w: Work, out: Any) -> int:
        cell = self._cell(w)
        for offset in itertools.product((-1, 0, 1), repeat=len(cell)):
            key = tuple(c + o for c, o in zip(cell, offset))
            for node in self._cells.get(key, ()):
                if max(abs(a - b) for a, b in zip(self.work[node], w)) <= self.eps:
                    return node
        node = len(self.work)
        self.work.append(w)
        self.out.append(out)
        self._cells.setdefault(cell, []).append(node)
        return node

    def __len__(self) -> int:
        return len(self.work)


@dataclass
class _Segment:
    start: int
    end: int
    operand: int
    splits: list[int] = field(default_factory=list)


def on_segment(prims, a: Work, b: Work, p: Work, eps: float) -> bool:
    """True when ``p`` lies within ``eps`` of the open segment ``a -> b``."""
    if abs(prims.side(a, b, p)) > eps:
        return False
    t = prims.param(a, b, p)
    return eps < t < prims.length(a, b) - eps


def segment_intersections(prims, a0: Work, a1: Work, b0: Work, b1: Work, eps: float) -> list[Work]:
    """
    Points where two segments meet, endpoints excluded.

    Endpoints of one segment lying on the other are reported as they are, so
    collinear overlaps come back as their two inner endpoints and are never
    treated as crossings.
    """
    points = [p for p in (b0, b1) if on_segment(prims, a0, a1, p, eps)]
    points += [p for p in (a0, a1) if on_segment(prims, b0, b1, p, eps)]
    if points:
        return points
    x = prims.crossing(a0, a1, b0, b1, eps)
    return [] if x is None else [x]


def _overlaps(box_a, box_b) -> bool:
    (lo_a, hi_a), (lo_b, hi_b) = box_a, box_b
    return all(la <= hb and lb <= ha for la, ha, lb, hb in zip(lo_a, hi_a, lo_b, hi_b))


def sweep_pairs(prims, segments: Sequence[tuple[Work, Work]], eps: float):
    """
    Yield index pairs of segments whose envelopes overlap.

    Segments enter the sweep in lexicographic order of their lower envelope
    corner, so the pair order is reproducible.
    """
    boxes = [prims.envelope(a, b, eps) for a, b in segments]
    order = sorted(range(len(segments)), key=lambda i: (boxes[i][0], i))
    active: list[int] = []
    for i in order:
        lo = boxes[i][0][0]
        active = [j for j in active if boxes[j][1][0] >= lo]
        for j in active:
            if _overlaps(boxes[i], boxes[j]):
                yield j, i
        active.append(i)


class Subdivision:
    """Planar subdivision of the combined edges of two operands."""

    def __init__(self, prims, eps: float):
        self.prims = prims
        self.eps = eps
        self.nodes = NodeIndex(eps)
        self.segments: list[_Segment] = []
        self.edges: list[tuple[int, int, int, int]] = []

    # -- construction -----------------------------------------------------

    def add_operand(self, geometry: MultiPolygon, operand: int) -> None:
        for ring in geometry.rings():
            points = self.prims.prepare_ring(open_ring(ring))
            work = self.prims.to_work(points)
            ids = [self.nodes.add(w, p) for w, p in zip(work, points)]
            for u, v in zip(ids, ids[1:] + ids[:1]):
                if u != v:
                    self.segments.append(_Segment(u, v, operand))

    def split_segments(self) -> None:
        W = self.nodes.work
        ends = [(W[s.start], W[s.end]) for s in self.segments]
        for i, j in sweep_pairs(self.prims, ends, self.eps):
            si, sj = self.segments[i], self.segments[j]
            hits = segment_intersections(self.prims, W[si.start], W[si.end], W[sj.start], W[sj.end], self.eps)
            for w in hits:
                node = self.nodes.add(w, self.prims.from_work(w, self.nodes.out[si.start]))
                si.splits.append(node)
                sj.splits.append(node)

    def build_edges(self) -> None:
        """Cut segments at their split nodes and merge coincident pieces."""
        W = self.nodes.work
        weights: dict[tuple[int, int], list[int]] = {}
        for s in self.segments:
            a, b = W[s.start], W[s.end]
            inner = {n for n in s.splits if n not in (s.start, s.end)}
            chain = [s.start, *sorted(inner, key=lambda n: (self.prims.param(a, b, W[n]), n)), s.end]
            for u, v in zip(chain, chain[1:]):
                if u == v:
                    continue
                key, sign = ((u, v), 1) if u < v else ((v, u), -1)
                weights.setdefault(key, [0, 0])[s.operand] += sign
        # Edges whose weights cancel separate two faces of equal winding.
        self.edges = [(u, v, wa, wb) for (u, v), (wa, wb) in weights.items() if wa or wb]

    # -- half-edge topology -----------------------------------------------

    def origin(self, h: int) -> int:
        edge = self.edges[h >> 1]
        return edge[1] if h & 1 else edge[0]

    def delta(self, h: int) -> tuple[int, int]:
        """Winding on the left of ``h`` minus winding on its right, per operand."""
        _, _, wa, wb = self.edges[h >> 1]
        return (-wa, -wb) if h & 1 else (wa, wb)

    def link(self) -> None:
        W = self.nodes.work
        outgoing: list[list[int]] = [[] for _ in range(len(self.nodes))]
        for e, (u, v, _, _) in enumerate(self.edges):
            outgoing[u].append(2 * e)
            outgoing[v].append(2 * e + 1)
        position = [0] * (2 * len(self.edges))
        for node, hs in enumerate(outgoing):
            here = W[node]
            hs.sort(key=lambda h: (self.prims.angle(here, W[self.origin(h ^ 1)]), W[self.origin(h ^ 1)]))
            for k, h in enumerate(hs):
                position[h] = k
        # Face on the left: leave v by the edge just clockwise of the way back.
        self.next_half = [0] * (2 * len(self.edges))
        for h in range(2 * len(self.edges)):
            twin = h ^ 1
            around = outgoing[self.origin(twin)]
            self.next_half[h] = around[(position[twin] - 1) % len(around)]
        self.outgoing = outgoing

    def trace_cycles(self) -> None:
        n_half = 2 * len(self.edges)
        self.cycle_of = [-1] * n_half
        self.cycles: list[list[int]] = []
        for h in range(n_half):
            if self.cycle_of[h] != -1:
                continue
            cid = len(self.cycles)
            walk = []
            g = h
            while self.cycle_of[g] == -1:
                self.cycle_of[g] = cid
                walk.append(g)
                g = self.next_half[g]
            if g != h:
                raise AlgorithmInternalError("half-edge walk did not close on itself")
            self.cycles.append(walk)
        W = self.nodes.work
        self.cycle_rings = [[W[self.origin(g)] for g in walk] for walk in self.cycles]
        for ring in self.cycle_rings:
            self.prims.check_cycle(ring)
        self.cycle_area = [self.prims.signed_area(ring) for ring in self.cycle_rings]

    # -- classification ---------------------------------------------------

    def _components(self) -> dict[int, list[int]]:
        parent = list(range(len(self.nodes)))

        def find(x: int) -> int:
            while parent[x] != x:
                parent[x] = parent[parent[x]]
                x = parent[x]
            return x

        for u, v, _, _ in self.edges:
            ru, rv = find(u), find(v)
            if ru != rv:
                parent[max(ru, rv)] = min(ru, rv)
        groups: dict[int, list[int]] = {}
        for cid, walk in enumerate(self.cycles):
            groups.setdefault(find(self.origin(walk[0])), []).append(cid)
        return groups

    def classify(self) -> None:
        """Assign (winding A, winding B) to the face left of every cycle."""
        groups = self._components()
        outer = {root: min(cids, key=lambda c: (self.cycle_area[c], c)) for root, cids in groups.items()}
        order = sorted(groups, key=lambda r: (self.cycle_area[outer[r]], self.cycle_rings[outer[r]][0]))

        self.winding: list[tuple[int, int] | None] = [None] * len(self.cycles)
        bounded: list[int] = []
        for root in order:
            oc = outer[root]
            probe = self.cycle_rings[oc][0]
            enclosing = [c for c in bounded if self.prims.contains([probe], self.cycle_rings[c])[0]]
            if enclosing:
                parent = min(enclosing, key=lambda c: (self.cycle_area[c], c))
                self.winding[oc] = self.winding[parent]
            else:
                self.winding[oc] = (0, 0)
            queue = deque([oc])
            while queue:
                c = queue.popleft()
                wa, wb = self.winding[c]
                for h in self.cycles[c]:
                    da, db = self.delta(h)
                    expected = (wa - da, wb - db)
                    other = self.cycle_of[h ^ 1]
                    if self.winding[other] is None:
                        self.winding[other] = expected
                        queue.append(other)
                    elif self.winding[other] != expected:
                        raise AlgorithmInternalError(
                            f"inconsistent face windings {self.winding[other]} != {expected}"
                        )
            bounded.extend(c for c in groups[root] if c != oc)

    # -- result -----------------------------------------------------------

    def boundary_rings(self) -> list[list[int]]:
        """
        Node loops separating faces inside the union from faces outside it.

        A chain that comes back to a node it already passed is cut there, so
        a union pinched at a vertex yields one loop per side of the pinch.
        """
        inside = [wa > 0 or wb > 0 for wa, wb in self.winding]
        n_half = 2 * len(self.edges)
        boundary = [inside[self.cycle_of[h]] and not inside[self.cycle_of[h ^ 1]] for h in range(n_half)]
        used = [False] * n_half
        rings = []
        for h in range(n_half):
            if not boundary[h] or used[h]:
                continue
            ring: list[int] = []
            position: dict[int, int] = {}
            g = h
            while not used[g]:
                used[g] = True
                node = self.origin(g)
                if node in position:
                    start = position[node]
                    loop = ring[start:]
                    for n in loop:
                        del position[n]
                    del ring[start:]
                    rings.append(loop)
                position[node] = len(ring)
                ring.append(node)
                g = self.next_half[g]
                # Rotate clockwise around the node until leaving the union.
                for _ in range(len(self.outgoing[self.origin(g)])):
                    if boundary[g]:
                        break
                    g = self.next_half[g ^ 1]
                else:
                    raise AlgorithmInternalError("no boundary edge leaves a boundary node")
            if g != h:
                raise AlgorithmInternalError("union boundary ring did not close")
            rings.append(ring)
        return rings


def _same_geometry(first: MultiPolygon, second: MultiPolygon) -> bool:
    return first.polygons == second.polygons


@log_timing("union")
def union(first: MultiPolygon, second: MultiPolygon, prims, eps: float | None = None) -> MultiPolygon:
    """
    Union of two normalized multi-polygons.

    Inputs must already be corrected (closed rings, outer rings
    counter-clockwise, holes clockwise).
    """
    if first.is_empty:
        return second
    if second.is_empty or _same_geometry(first, second):
        return first
    if eps is None:
        eps = prims.tolerance([*first.rings(), *second.rings()])

    sub = Subdivision(prims, eps)
    sub.add_operand(first, 0)
    sub.add_operand(second, 1)
    sub.split_segments()
    sub.build_edges()
    if not sub.edges:
        return MultiPolygon()
    sub.link()
    sub.trace_cycles()
    sub.classify()
    rings = sub.boundary_rings()
    logger.debug(
        f"{prims.name} overlay: {len(sub.nodes)} nodes, {len(sub.edges)} edges, "
        f"{len(sub.cycles)} faces, {len(rings)} result rings"
    )

    W, out = sub.nodes.work, sub.nodes.out
    return assemble(
        [([W[n] for n in ring], [out[n] for n in ring]) for ring in rings],
        prims,
        eps,
    )


__all__ = ["NodeIndex", "Subdivision", "on_segment", "segment_intersections", "sweep_pairs", "union"]
