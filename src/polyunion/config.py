"""
Runtime configuration for polyunion.

Settings come from explicit arguments or from ``POLYUNION_*`` environment
variables, with the default worker count derived from the host.
"""

import os
from typing import Any, Dict, Optional

import psutil

_ON_ERROR_CHOICES = ("raise", "null")
_EXECUTOR_CHOICES = ("thread", "process")
_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


class UnionConfig:
    """Tolerances, validation mode and scheduling for union execution."""

    def __init__(self, tolerance: float = 1e-9, spherical_tolerance: float = 1e-11,
                 strict: bool = False, on_error: str = "raise",
                 num_workers: int = 1, parallel_threshold: int = 64,
                 executor: str = "thread"):
        if not tolerance > 0.0:
            raise ValueError(f"tolerance must be positive, got {tolerance}")
        if not spherical_tolerance > 0.0:
            raise ValueError(f"spherical_tolerance must be positive, got {spherical_tolerance}")
        if on_error not in _ON_ERROR_CHOICES:
            raise ValueError(f"on_error must be one of {_ON_ERROR_CHOICES}, got {on_error!r}")
        if num_workers < 1:
            raise ValueError(f"num_workers must be >= 1, got {num_workers}")
        if parallel_threshold < 1:
            raise ValueError(f"parallel_threshold must be >= 1, got {parallel_threshold}")
        if executor not in _EXECUTOR_CHOICES:
            raise ValueError(f"executor must be one of {_EXECUTOR_CHOICES}, got {executor!r}")
        self.tolerance = float(tolerance)
        self.spherical_tolerance = float(spherical_tolerance)
        self.strict = bool(strict)
        self.on_error = on_error
        self.num_workers = int(num_workers)
        self.parallel_threshold = int(parallel_threshold)
        self.executor = executor

    @classmethod
    def for_environment(cls) -> 'UnionConfig':
        """Build a configuration from ``POLYUNION_*`` environment variables."""
        env = os.environ
        kwargs: Dict[str, Any] = {
            'num_workers': cls._default_workers(),
        }
        if 'POLYUNION_TOLERANCE' in env:
            kwargs['tolerance'] = float(env['POLYUNION_TOLERANCE'])
        if 'POLYUNION_SPHERICAL_TOLERANCE' in env:
            kwargs['spherical_tolerance'] = float(env['POLYUNION_SPHERICAL_TOLERANCE'])
        if 'POLYUNION_STRICT' in env:
            kwargs['strict'] = cls._parse_bool('POLYUNION_STRICT', env['POLYUNION_STRICT'])
        if 'POLYUNION_ON_ERROR' in env:
            kwargs['on_error'] = env['POLYUNION_ON_ERROR'].strip().lower()
        if 'POLYUNION_NUM_WORKERS' in env:
            kwargs['num_workers'] = int(env['POLYUNION_NUM_WORKERS'])
        if 'POLYUNION_PARALLEL_THRESHOLD' in env:
            kwargs['parallel_threshold'] = int(env['POLYUNION_PARALLEL_THRESHOLD'])
        if 'POLYUNION_EXECUTOR' in env:
            kwargs['executor'] = env['POLYUNION_EXECUTOR'].strip().lower()
        return cls(**kwargs)

    @staticmethod
    def _default_workers() -> int:
        """Physical cores, capped so small hosts stay single-threaded."""
        cores = psutil.cpu_count(logical=False) or psutil.cpu_count() or 1
        return max(1, min(int(cores), 8))

    @staticmethod
    def _parse_bool(name: str, value: str) -> bool:
        lowered = value.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
        raise ValueError(f"{name} must be a boolean flag, got {value!r}")

    def replace(self, **overrides) -> 'UnionConfig':
        values = self.to_dict()
        values.update(overrides)
        return UnionConfig(**values)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'tolerance': self.tolerance,
            'spherical_tolerance': self.spherical_tolerance,
            'strict': self.strict,
            'on_error': self.on_error,
            'num_workers': self.num_workers,
            'parallel_threshold': self.parallel_threshold,
            'executor': self.executor,
        }

    def __repr__(self) -> str:
        fields = ", ".join(f"{k}={v!r}" for k, v in self.to_dict().items())
        return f"UnionConfig({fields})"


_config: Optional[UnionConfig] = None


def get_config() -> UnionConfig:
    """Return the process-wide configuration, reading the environment once."""
    global _config
    if _config is None:
        _config = UnionConfig.for_environment()
    return _config


def configure(**overrides) -> UnionConfig:
    """Override selected settings of the process-wide configuration."""
    global _config
    _config = get_config().replace(**overrides)
    return _config


def reset_config() -> None:
    """Forget overrides; the next ``get_config`` re-reads the environment."""
    global _config
    _config = None
