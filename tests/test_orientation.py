import pytest

from polyunion.errors import GeometryValidityError, PoleContainmentError
from polyunion.geometry.planar import PlanarPrimitives
from polyunion.geometry.spherical import SphericalPrimitives
from polyunion.model import MultiPolygon, Polygon, open_ring
from polyunion.orientation import correct

PLANAR = PlanarPrimitives()


def _area(ring, prims=PLANAR) -> float:
    return prims.signed_area(prims.to_work(open_ring(ring)))


def _single(outer, holes=()) -> MultiPolygon:
    return MultiPolygon([Polygon(outer=list(outer), holes=[list(h) for h in holes])])


def test_outer_becomes_ccw_and_holes_cw() -> None:
    outer_cw = [(0, 0), (0, 4), (4, 4), (4, 0)]
    hole_ccw = [(1, 1), (3, 1), (3, 3), (1, 3)]
    fixed = correct(_single(outer_cw, [hole_ccw]), PLANAR)
    polygon = fixed.polygons[0]
    assert _area(polygon.outer) == pytest.approx(16.0)
    assert _area(polygon.holes[0]) == pytest.approx(-4.0)
    assert polygon.outer[0] == polygon.outer[-1]
    assert polygon.holes[0][0] == polygon.holes[0][-1]


def test_input_is_not_modified() -> None:
    outer = [(0, 0), (0, 1), (1, 1), (1, 0)]
    geometry = _single(outer)
    correct(geometry, PLANAR)
    assert geometry.polygons[0].outer == outer


def test_duplicate_points_are_removed() -> None:
    ring = [(0, 0), (0, 0), (1, 0), (1, 1), (1, 1), (0, 1), (0, 0)]
    fixed = correct(_single(ring), PLANAR)
    assert fixed.polygons[0].outer == [(0, 0), (1, 0), (1, 1), (0, 1), (0, 0)]


def test_degenerate_outer_drops_polygon() -> None:
    geometry = MultiPolygon([
        Polygon(outer=[(0, 0), (1, 0), (2, 0)], holes=[[(0.2, 0.1), (0.4, 0.1), (0.3, 0.2)]]),
        Polygon(outer=[(5, 5), (6, 5), (6, 6)]),
    ])
    fixed = correct(geometry, PLANAR)
    assert len(fixed) == 1
    assert fixed.polygons[0].outer[0] == (5, 5)


def test_degenerate_hole_is_dropped() -> None:
    fixed = correct(_single([(0, 0), (4, 0), (4, 4), (0, 4)], [[(1, 1), (2, 2)]]), PLANAR)
    assert fixed.polygons[0].holes == []


@pytest.mark.parametrize(
    "ring",
    [
        [(0, 0), (1, 0)],
        [(0, 0), (1, 1), (2, 2), (0, 0)],
    ],
)
def test_strict_mode_rejects_degenerate_rings(ring) -> None:
    with pytest.raises(GeometryValidityError):
        correct(_single(ring), PLANAR, strict=True)


def test_strict_mode_rejects_crossing_edges() -> None:
    bowtie = [(0, 0), (4, 4), (4, 0), (0, 2)]
    assert len(correct(_single(bowtie), PLANAR)) == 1
    with pytest.raises(GeometryValidityError, match="intersect"):
        correct(_single(bowtie), PLANAR, strict=True)


def test_strict_mode_rejects_touching_ring() -> None:
    figure_eight = [(0, 0), (2, 0), (1, 1), (2, 2), (0, 2), (1, 1)]
    with pytest.raises(GeometryValidityError, match="repeats"):
        correct(_single(figure_eight), PLANAR, strict=True)


def test_geographic_checks_run_without_strict() -> None:
    sphere = SphericalPrimitives()
    with pytest.raises(GeometryValidityError, match="latitude"):
        correct(_single([(0, 0), (10, 0), (10, 95)]), sphere)
    with pytest.raises(PoleContainmentError):
        correct(_single([(0, 80), (90, 80), (180, 80), (-90, 80)]), sphere)


def test_geographic_orientation_uses_spherical_area() -> None:
    sphere = SphericalPrimitives()
    fixed = correct(_single([(0, 0), (0, 10), (10, 10), (10, 0)]), sphere)
    assert _area(fixed.polygons[0].outer, sphere) > 0.0
