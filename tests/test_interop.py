import pytest

from polyunion.config import UnionConfig
from polyunion.errors import FormatError
from polyunion.functions import Constant, PolygonsUnion
from polyunion.interop import (
    column_from_arrow,
    column_to_arrow,
    is_arrow_column,
    is_multipolygon_type,
    multipolygon_type,
)

SQUARE = [[[0.0, 0.0], [2.0, 0.0], [2.0, 2.0], [0.0, 2.0], [0.0, 0.0]]]
SHIFTED = [[[1.0, 1.0], [3.0, 1.0], [3.0, 3.0], [1.0, 3.0], [1.0, 1.0]]]


def test_multipolygon_type():
    pa = pytest.importorskip("pyarrow")
    t = multipolygon_type()
    assert t == pa.list_(pa.list_(pa.list_(pa.list_(pa.float64(), 2))))
    assert is_multipolygon_type(t)

    point = pa.struct([("x", pa.float64()), ("y", pa.float64())])
    assert is_multipolygon_type(pa.list_(pa.list_(pa.list_(point))))
    assert not is_multipolygon_type(pa.list_(pa.list_(pa.float64())))
    assert not is_multipolygon_type(pa.list_(pa.list_(pa.list_(pa.list_(pa.float32(), 2)))))
    assert not is_multipolygon_type("list")


def test_column_round_trip_with_nulls():
    pa = pytest.importorskip("pyarrow")
    arr = pa.array([[SQUARE], None, []], type=multipolygon_type())
    assert is_arrow_column(arr)
    assert not is_arrow_column([[SQUARE]])

    rows = column_from_arrow(arr)
    assert rows[0][0][0][1] == (2.0, 0.0)
    assert rows[1] is None
    assert rows[2] == []

    back = column_to_arrow(rows)
    assert back.type == multipolygon_type()
    assert back.to_pylist() == arr.to_pylist()


def test_struct_points_become_tuples():
    pa = pytest.importorskip("pyarrow")
    point = pa.struct([("x", pa.float64()), ("y", pa.float64())])
    t = pa.list_(pa.list_(pa.list_(point)))
    ring = [{"x": x, "y": y} for x, y in SQUARE[0]]
    rows = column_from_arrow(pa.chunked_array([pa.array([[[ring]]], type=t)]))
    assert rows[0][0][0][:2] == [(0.0, 0.0), (2.0, 0.0)]


def test_execute_with_arrow_columns():
    pa = pytest.importorskip("pyarrow")
    fn = PolygonsUnion("cartesian", UnionConfig())
    first = pa.array([[SQUARE], [SQUARE]], type=multipolygon_type())
    out = fn.execute(first, Constant([SHIFTED]))
    assert isinstance(out, pa.Array)
    assert out.type == fn.return_type
    assert len(out.to_pylist()[0][0][0]) == 9


def test_execute_checks_arrow_types():
    pa = pytest.importorskip("pyarrow")
    fn = PolygonsUnion("geographic", UnionConfig())
    good = pa.array([[SQUARE]], type=multipolygon_type())
    bad = pa.array([[1.0, 2.0]], type=pa.list_(pa.float64()))
    with pytest.raises(FormatError, match="argument 2 of function polygonsUnionGeographic"):
        fn.execute(good, bad)
    with pytest.raises(FormatError, match="argument 1"):
        fn.check_input_type([bad.type, good.type])
    fn.check_input_type([good.type, good.type])
