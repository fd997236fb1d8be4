"""
Runtime defaults for wireframe label generation.

Values can be overridden via environment variables so that batch jobs and
the CLI share one source of tuning.
"""

from __future__ import annotations

from dataclasses import dataclass
import math
import os


ENV_UV_CHANNEL = "WIRELABEL_UV_CHANNEL"
ENV_ANGLE_CUTOFF_DEG = "WIRELABEL_ANGLE_CUTOFF_DEG"
ENV_SOLVER_TIMEOUT_SECONDS = "WIRELABEL_SOLVER_TIMEOUT_SECONDS"

MIN_UV_CHANNEL = 0
MAX_UV_CHANNEL = 7


@dataclass(frozen=True)
class RuntimeDefaults:
    uv_channel: int
    angle_cutoff_degrees: float
    solver_timeout_seconds: float


def _read_int_env(
    env_name: str,
    default: int,
    *,
    min_value: int | None = None,
    max_value: int | None = None,
) -> int:
    raw = os.environ.get(env_name)
    if raw is None:
        return default
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return default

    if min_value is not None and value < min_value:
        return default
    if max_value is not None and value > max_value:
        return default
    return value


def _read_float_env(
    env_name: str,
    default: float,
    *,
    min_value: float | None = None,
    max_value: float | None = None,
    exclusive_min: bool = False,
) -> float:
    raw = os.environ.get(env_name)
    if raw is None:
        return default
    try:
        value = float(str(raw).strip())
    except (TypeError, ValueError):
        return default

    if not math.isfinite(value):
        return default
    if min_value is not None:
        if value < min_value or (exclusive_min and value == min_value):
            return default
    if max_value is not None and value > max_value:
        return default
    return value


def load_runtime_defaults() -> RuntimeDefaults:
    return RuntimeDefaults(
        uv_channel=_read_int_env(ENV_UV_CHANNEL, 3, min_value=MIN_UV_CHANNEL, max_value=MAX_UV_CHANNEL),
        angle_cutoff_degrees=_read_float_env(ENV_ANGLE_CUTOFF_DEG, 45.0, min_value=0.0, max_value=90.0),
        solver_timeout_seconds=_read_float_env(
            ENV_SOLVER_TIMEOUT_SECONDS,
            60.0,
            min_value=0.0,
            exclusive_min=True,
        ),
    )


DEFAULTS = load_runtime_defaults()
