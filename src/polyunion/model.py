"""In-memory multi-polygon model shared by the codec, normalizers and engines."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator

Point = tuple[float, float]
Ring = list[Point]


@dataclass
class Polygon:
    """One outer ring plus an ordered list of hole rings."""

    outer: Ring
    holes: list[Ring] = field(default_factory=list)

    @property
    def rings(self) -> list[Ring]:
        return [self.outer, *self.holes]


@dataclass
class MultiPolygon:
    """A set of polygons; an empty list is the empty geometry."""

    polygons: list[Polygon] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.polygons)

    def __iter__(self) -> Iterator[Polygon]:
        return iter(self.polygons)

    @property
    def is_empty(self) -> bool:
        return len(self.polygons) == 0

    def rings(self) -> Iterator[Ring]:
        for polygon in self.polygons:
            yield from polygon.rings


def open_ring(ring: Ring) -> Ring:
    """Drop the closing point of a closed ring."""
    if len(ring) > 1 and ring[0] == ring[-1]:
        return list(ring[:-1])
    return list(ring)


def close_ring(ring: Ring) -> Ring:
    if ring and ring[0] != ring[-1]:
        return [*ring, ring[0]]
    return list(ring)


__all__ = ["MultiPolygon", "Point", "Polygon", "Ring", "close_ring", "open_ring"]
