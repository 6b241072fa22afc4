from __future__ import annotations

from typing import TYPE_CHECKING, Any, List, Optional

if TYPE_CHECKING:
    import pyarrow as pa


def _pyarrow():
    try:
        import pyarrow as pa
    except ImportError:
        raise ImportError("PyArrow is required for Arrow column conversion.")
    return pa


def multipolygon_type() -> pa.DataType:
    """
    Arrow type of a multi-polygon column.

    Returns:
        pa.DataType: ``list<list<list<fixed_size_list<double, 2>>>>``.
    """
    pa = _pyarrow()
    point = pa.list_(pa.float64(), 2)
    return pa.list_(pa.list_(pa.list_(point)))


def _is_point_type(pa, t) -> bool:
    if pa.types.is_fixed_size_list(t):
        return t.list_size == 2 and pa.types.is_float64(t.value_type)
    if pa.types.is_struct(t):
        return t.num_fields == 2 and all(pa.types.is_float64(t.field(i).type) for i in range(2))
    return False


def is_multipolygon_type(t: Any) -> bool:
    """True for the multi-polygon list type, with either a fixed-size-list or a struct point."""
    pa = _pyarrow()
    if not isinstance(t, pa.DataType):
        return False
    for _ in range(3):
        if not pa.types.is_list(t):
            return False
        t = t.value_type
    return _is_point_type(pa, t)


def is_arrow_column(value: Any) -> bool:
    """True for pyarrow arrays and chunked arrays, without importing pyarrow."""
    return type(value).__module__.startswith("pyarrow") and hasattr(value, "to_pylist")


def _pair(p: Any) -> Any:
    if isinstance(p, dict):
        return tuple(p.values())
    if isinstance(p, list):
        return tuple(p)
    return p


def column_from_arrow(array: Any) -> List[Optional[list]]:
    """
    Convert an Arrow array or chunked array of multi-polygons into Python rows.

    Null rows become ``None``; points come back as ``(x, y)`` tuples whether
    the column stores them as fixed-size lists or structs.
    """
    rows = []
    for row in array.to_pylist():
        if row is None:
            rows.append(None)
            continue
        rows.append([
            None if poly is None else [
                None if ring is None else [_pair(p) for p in ring]
                for ring in poly
            ]
            for poly in row
        ])
    return rows


def column_to_arrow(rows: List[Optional[list]]) -> pa.Array:
    """
    Convert encoded rows into an Arrow array of ``multipolygon_type()``.

    ``None`` rows become nulls.
    """
    pa = _pyarrow()
    values = [
        None if row is None else [[[list(p) for p in ring] for ring in poly] for poly in row]
        for row in rows
    ]
    return pa.array(values, type=multipolygon_type())


__all__ = [
    "column_from_arrow",
    "column_to_arrow",
    "is_arrow_column",
    "is_multipolygon_type",
    "multipolygon_type",
]
