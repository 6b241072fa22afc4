import logging

import pytest

from polyunion.errors import AlgorithmInternalError, FormatError, GeometryValidityError
from polyunion.functions import PolygonsUnion
from polyunion.logging import log_batch_summary, log_errors, log_timing, logger, set_log_level


@pytest.fixture(autouse=True)
def restore_level():
    level = logger.level
    yield
    logger.setLevel(level)


def test_set_log_level() -> None:
    set_log_level("debug")
    assert logger.level == logging.DEBUG
    set_log_level(logging.WARNING)
    assert logger.level == logging.WARNING
    with pytest.raises(ValueError, match="bogus"):
        set_log_level("bogus")


def test_log_errors_reraises(caplog) -> None:
    @log_errors
    def fails():
        raise FormatError("bad input")

    with caplog.at_level(logging.ERROR, logger="polyunion"):
        with pytest.raises(FormatError):
            fails()
    assert "fails rejected its input: bad input" in caplog.text


def test_argument_count_failure_is_logged(caplog) -> None:
    with caplog.at_level(logging.ERROR, logger="polyunion"):
        with pytest.raises(FormatError):
            PolygonsUnion("cartesian").check_input_type([])
    assert "PolygonsUnion.check_input_type" in caplog.text


def test_row_faults_are_timed_at_debug(caplog) -> None:
    @log_timing("stage")
    def invalid():
        raise GeometryValidityError("ring is degenerate")

    @log_timing("stage")
    def broken():
        raise AlgorithmInternalError("ring did not close")

    with caplog.at_level(logging.DEBUG, logger="polyunion"):
        with pytest.raises(GeometryValidityError):
            invalid()
        with pytest.raises(AlgorithmInternalError):
            broken()
    levels = [(r.levelno, r.getMessage().split(":")[1].strip()) for r in caplog.records]
    assert levels == [
        (logging.DEBUG, "GeometryValidityError"),
        (logging.ERROR, "AlgorithmInternalError"),
    ]


def test_batch_summary_at_debug(caplog) -> None:
    set_log_level("DEBUG")
    with caplog.at_level(logging.DEBUG, logger="polyunion"):
        log_batch_summary("polygonsUnionCartesian", 10, 1.5, workers=2)
    assert "10 rows in 1.50ms using 2 worker(s)" in caplog.text
