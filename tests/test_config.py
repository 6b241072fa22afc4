"""
Test runtime configuration.
"""

import pytest

from polyunion import config as config_module
from polyunion.config import UnionConfig, configure, get_config, reset_config

_ENV = (
    "POLYUNION_TOLERANCE",
    "POLYUNION_SPHERICAL_TOLERANCE",
    "POLYUNION_STRICT",
    "POLYUNION_ON_ERROR",
    "POLYUNION_NUM_WORKERS",
    "POLYUNION_PARALLEL_THRESHOLD",
    "POLYUNION_EXECUTOR",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch):
    for name in _ENV:
        monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()


class TestUnionConfig:
    """Test configuration values and validation."""

    def test_defaults(self):
        cfg = UnionConfig()
        assert cfg.tolerance == 1e-9
        assert cfg.spherical_tolerance == 1e-11
        assert cfg.strict is False
        assert cfg.on_error == "raise"
        assert cfg.num_workers == 1
        assert cfg.parallel_threshold == 64
        assert cfg.executor == "thread"

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"tolerance": 0.0},
            {"spherical_tolerance": -1.0},
            {"on_error": "ignore"},
            {"num_workers": 0},
            {"parallel_threshold": 0},
            {"executor": "fork"},
        ],
    )
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            UnionConfig(**kwargs)

    def test_replace_keeps_other_fields(self):
        cfg = UnionConfig(strict=True).replace(num_workers=3)
        assert cfg.strict is True
        assert cfg.num_workers == 3
        assert "num_workers=3" in repr(cfg)

    def test_environment(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("POLYUNION_TOLERANCE", "1e-6")
        monkeypatch.setenv("POLYUNION_STRICT", "yes")
        monkeypatch.setenv("POLYUNION_ON_ERROR", " NULL ")
        monkeypatch.setenv("POLYUNION_NUM_WORKERS", "3")
        monkeypatch.setenv("POLYUNION_PARALLEL_THRESHOLD", "10")
        monkeypatch.setenv("POLYUNION_EXECUTOR", "Process")
        cfg = UnionConfig.for_environment()
        assert cfg.tolerance == 1e-6
        assert cfg.strict is True
        assert cfg.on_error == "null"
        assert cfg.num_workers == 3
        assert cfg.parallel_threshold == 10
        assert cfg.executor == "process"

    def test_environment_rejects_bad_flag(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("POLYUNION_STRICT", "maybe")
        with pytest.raises(ValueError, match="POLYUNION_STRICT"):
            UnionConfig.for_environment()

    def test_default_workers_follow_cpu_count(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr(config_module.psutil, "cpu_count", lambda logical=True: 32)
        assert UnionConfig.for_environment().num_workers == 8
        monkeypatch.setattr(config_module.psutil, "cpu_count", lambda logical=True: None)
        assert UnionConfig.for_environment().num_workers == 1


def test_configure_and_reset(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("POLYUNION_NUM_WORKERS", "2")
    assert get_config().num_workers == 2
    assert get_config() is get_config()

    cfg = configure(on_error="null")
    assert cfg.on_error == "null"
    assert cfg.num_workers == 2
    assert get_config() is cfg

    reset_config()
    assert get_config().on_error == "raise"
