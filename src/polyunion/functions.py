"""
Function objects that apply the union row by row over two columns.

A column is a list of rows, an Arrow array, or a ``Constant`` holding one
row for the whole batch. Large batches are spread over a worker pool and
rows land in row-indexed slots, so the output order always matches the input.

The overlay is pure Python and holds the GIL, so the default thread pool
does not run rows on several cores at once. Set
``executor="process"`` to run rows in worker processes instead; the rows are
then pickled to the workers and each worker imports polyunion once.
"""

import copy
import multiprocessing
import time
from concurrent.futures import ProcessPoolExecutor, ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional, Sequence

from . import interop
from .codec import decode_multipolygon, encode_multipolygon
from .config import UnionConfig, get_config
from .errors import ROW_ERRORS, FormatError, PolyUnionError
from .geometry.planar import planar_union
from .geometry.spherical import spherical_union
from .logging import log_batch_summary, log_errors, log_row_failure, logger
from .model import MultiPolygon


class Constant:
    """A single row used for every row of the batch."""

    def __init__(self, value: Any):
        self.value = value

    def __repr__(self) -> str:
        return f"Constant({self.value!r})"


def _planar(first: MultiPolygon, second: MultiPolygon, config: UnionConfig) -> MultiPolygon:
    return planar_union(first, second, tolerance=config.tolerance, strict=config.strict)


def _geographic(first: MultiPolygon, second: MultiPolygon, config: UnionConfig) -> MultiPolygon:
    return spherical_union(first, second, tolerance=config.spherical_tolerance, strict=config.strict)


_DOMAINS: Dict[str, tuple] = {
    "cartesian": ("polygonsUnionCartesian", _planar),
    "geographic": ("polygonsUnionGeographic", _geographic),
}


def _as_geometry(value: Any) -> MultiPolygon:
    if isinstance(value, MultiPolygon):
        return value
    return decode_multipolygon(value)


class PolygonsUnion:
    """Union of two multi-polygon columns in one coordinate domain."""

    num_arguments = 2

    def __init__(self, domain: str = "cartesian", config: Optional[UnionConfig] = None):
        if domain not in _DOMAINS:
            raise ValueError(f"domain must be one of {sorted(_DOMAINS)}, got {domain!r}")
        self.domain = domain
        self.name, self._engine = _DOMAINS[domain]
        self._config = config

    @property
    def config(self) -> UnionConfig:
        return self._config if self._config is not None else get_config()

    @property
    def return_type(self):
        return interop.multipolygon_type()

    def __repr__(self) -> str:
        return f"PolygonsUnion(name={self.name!r})"

    def _check_argument(self, position: int, arg_type: Any) -> None:
        if not interop.is_multipolygon_type(arg_type):
            raise FormatError(
                f"argument {position} of function {self.name} must be "
                f"Array(Array(Array(Tuple(Float64, Float64)))), got {arg_type}"
            )

    @log_errors
    def check_input_type(self, types: Sequence[Any]) -> None:
        """Validate the declared argument types once, before any row runs."""
        if len(types) != self.num_arguments:
            raise FormatError(
                f"function {self.name} takes {self.num_arguments} arguments, got {len(types)}"
            )
        for position, arg_type in enumerate(types, start=1):
            self._check_argument(position, arg_type)

    def execute_row(self, first: Any, second: Any) -> List:
        """Union of one pair of rows, encoded."""
        return self._union(_as_geometry(first), _as_geometry(second), self.config)

    def _union(self, first: MultiPolygon, second: MultiPolygon, config: UnionConfig) -> List:
        return encode_multipolygon(self._engine(first, second, config))

    def __call__(self, *args: Any, num_rows: Optional[int] = None):
        if len(args) != self.num_arguments:
            raise FormatError(
                f"function {self.name} takes {self.num_arguments} arguments, got {len(args)}"
            )
        return self.execute(args[0], args[1], num_rows=num_rows)

    def execute(self, first: Any, second: Any, num_rows: Optional[int] = None):
        """
        Apply the union over a batch.

        Args:
            first: Column of rows, Arrow array or ``Constant``.
            second: Column of rows, Arrow array or ``Constant``.
            num_rows: Batch length; required when both arguments are constants.

        Returns:
            A list of encoded rows, or an Arrow array if any input was one.

        Raises:
            PolyUnionError: The first failing row, with ``row`` set.
        """
        config = self.config
        start = time.perf_counter()
        arrow = False
        args = []
        for position, arg in enumerate((first, second), start=1):
            if interop.is_arrow_column(arg):
                self._check_argument(position, arg.type)
                arrow = True
                arg = interop.column_from_arrow(arg)
            args.append(arg)

        num_rows = self._batch_length(args, num_rows)
        if all(isinstance(a, Constant) for a in args):
            row = self._run_row(0, lambda: self._union(
                _as_geometry(args[0].value), _as_geometry(args[1].value), config), config)
            rows = [copy.deepcopy(row) for _ in range(num_rows)]
        else:
            rows = self._execute_columns(args, num_rows, config)

        log_batch_summary(self.name, num_rows, (time.perf_counter() - start) * 1000,
                          workers=self._workers(num_rows, config))
        return interop.column_to_arrow(rows) if arrow else rows

    def _batch_length(self, args: List[Any], num_rows: Optional[int]) -> int:
        lengths = {len(a) for a in args if not isinstance(a, Constant)}
        if len(lengths) > 1:
            raise FormatError(f"function {self.name}: argument columns differ in length {sorted(lengths)}")
        if lengths:
            length = lengths.pop()
            if num_rows is not None and num_rows != length:
                raise FormatError(f"function {self.name}: num_rows={num_rows} but columns have {length} rows")
            return length
        if num_rows is None:
            raise FormatError(f"function {self.name}: num_rows is required when both arguments are constants")
        if num_rows < 0:
            raise ValueError(f"num_rows must be >= 0, got {num_rows}")
        return num_rows

    @staticmethod
    def _workers(num_rows: int, config: UnionConfig) -> int:
        if config.num_workers > 1 and num_rows >= config.parallel_threshold:
            return config.num_workers
        return 1

    def _run_row(self, row: int, compute: Callable[[], List], config: UnionConfig) -> Optional[List]:
        try:
            return compute()
        except PolyUnionError as e:
            e.with_row(row)
            if config.on_error == "null" and isinstance(e, ROW_ERRORS):
                log_row_failure(self.name, row, e)
                return None
            raise

    def _execute_columns(self, args: List[Any], num_rows: int, config: UnionConfig) -> List[Optional[List]]:
        # Constants are decoded once; their errors are not tied to a row.
        values = []
        for arg in args:
            if isinstance(arg, Constant):
                geometry = _as_geometry(arg.value)
                values.append(lambda i, g=geometry: g)
            else:
                values.append(lambda i, col=arg: col[i])
        value_a, value_b = values

        def task(i: int) -> Optional[List]:
            return self._run_row(
                i, lambda: self._union(_as_geometry(value_a(i)), _as_geometry(value_b(i)), config), config)

        slots: List[Optional[List]] = [None] * num_rows
        workers = self._workers(num_rows, config)
        if workers == 1:
            for i in range(num_rows):
                slots[i] = task(i)
            return slots

        logger.debug(f"{self.name}: dispatching {num_rows} rows to {workers} {config.executor} workers")
        if config.executor == "process":
            context = multiprocessing.get_context("spawn")
            executor = ProcessPoolExecutor(max_workers=workers, mp_context=context)
        else:
            executor = ThreadPoolExecutor(max_workers=workers)
        with executor:
            if config.executor == "process":
                futures = [executor.submit(_process_row, self.domain, config, i, value_a(i), value_b(i))
                           for i in range(num_rows)]
            else:
                futures = [executor.submit(task, i) for i in range(num_rows)]
            try:
                for i, future in enumerate(futures):
                    slots[i] = future.result()
            except BaseException:
                for future in futures:
                    future.cancel()
                raise
        return slots


def _process_row(domain: str, config: UnionConfig, row: int, first: Any, second: Any) -> Optional[List]:
    """One row of a batch, run in a worker process."""
    fn = PolygonsUnion(domain, config)
    return fn._run_row(row, lambda: fn._union(_as_geometry(first), _as_geometry(second), config), config)


class FunctionRegistry:
    """Named function objects."""

    def __init__(self):
        self._functions: Dict[str, PolygonsUnion] = {}

    def register(self, function: PolygonsUnion, replace: bool = False) -> PolygonsUnion:
        if function.name in self._functions and not replace:
            raise ValueError(f"function {function.name} is already registered")
        self._functions[function.name] = function
        return function

    def get(self, name: str) -> PolygonsUnion:
        try:
            return self._functions[name]
        except KeyError:
            raise KeyError(f"unknown function {name!r}; registered: {self.names()}") from None

    def names(self) -> List[str]:
        return sorted(self._functions)

    def __contains__(self, name: str) -> bool:
        return name in self._functions


default_registry = FunctionRegistry()
default_registry.register(PolygonsUnion("cartesian"))
default_registry.register(PolygonsUnion("geographic"))


def _function(domain: str, overrides: Dict[str, Any]) -> PolygonsUnion:
    if not overrides:
        return PolygonsUnion(domain)
    return PolygonsUnion(domain, get_config().replace(**overrides))


def polygons_union_cartesian(first: Any, second: Any, num_rows: Optional[int] = None, **overrides):
    """Planar union over two columns; keyword overrides adjust the configuration."""
    return _function("cartesian", overrides).execute(first, second, num_rows=num_rows)


def polygons_union_geographic(first: Any, second: Any, num_rows: Optional[int] = None, **overrides):
    """Great-circle union over two columns of longitude/latitude rows."""
    return _function("geographic", overrides).execute(first, second, num_rows=num_rows)


__all__ = [
    "Constant",
    "FunctionRegistry",
    "PolygonsUnion",
    "default_registry",
    "polygons_union_cartesian",
    "polygons_union_geographic",
]
