"""
Logging helpers.

Labeling runs are usually batch jobs over many assets, so logs go to a stable
file location by default.

The labeling core never logs non-fatal diagnostics directly: topology, cycle
and fallback code hand plain strings to a warning sink (`WarningSink`). A
labeling pass collects them with `WarningCollector`, which keeps the messages
for the result and forwards each one to a logger or a caller-supplied sink.
Region diagnostics start with `region_label`, so a warning in a log file can
be traced back to the triangles of the mesh.
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Callable, Optional

_LOG_ONCE_KEYS: set[str] = set()
_LOG_ONCE_LOCK = threading.Lock()

ENV_LOG_LEVEL = "WIRELABEL_LOG_LEVEL"

WarningSink = Callable[[str], None]


def default_log_dir() -> Path:
    if os.name == "nt":
        base = os.environ.get("LOCALAPPDATA") or os.environ.get("APPDATA") or str(Path.home())
        return Path(base) / "WireLabel" / "logs"

    xdg_state_home = os.environ.get("XDG_STATE_HOME")
    if xdg_state_home:
        return Path(xdg_state_home) / "wirelabel" / "logs"

    return Path.home() / ".local" / "state" / "wirelabel" / "logs"


def _parse_log_level(level: str | int) -> int:
    if isinstance(level, int):
        return int(level)
    value = str(level).strip().upper()
    if not value:
        return logging.INFO
    return int(getattr(logging, value, logging.INFO))


def setup_logging(
    *,
    log_level: str | int = "INFO",
    log_dir: Optional[str | Path] = None,
    filename: str = "wirelabel.log",
) -> Optional[Path]:
    """
    Send labeling logs to a UTF-8 file and return its path.

    `WIRELABEL_LOG_LEVEL` overrides `log_level`. Calling this again reuses the
    file handler already on the root logger. Returns None when the log file
    cannot be created; labeling still runs, only without a log file.
    """
    root = logging.getLogger()

    for handler in root.handlers:
        if isinstance(handler, logging.FileHandler):
            try:
                return Path(handler.baseFilename)
            except Exception:
                return None

    level = _parse_log_level(os.environ.get(ENV_LOG_LEVEL) or log_level)
    root.setLevel(level)

    resolved_dir = Path(log_dir) if log_dir is not None else default_log_dir()
    try:
        resolved_dir.mkdir(parents=True, exist_ok=True)
    except Exception:
        return None

    log_path = resolved_dir / filename

    fmt = "%(asctime)s.%(msecs)03d %(levelname)s [%(name)s] %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"

    try:
        file_handler = logging.FileHandler(str(log_path), encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(fmt=fmt, datefmt=datefmt))
        root.addHandler(file_handler)
    except Exception:
        return None

    logging.captureWarnings(True)
    root.info("Wirelabel logging to %s (level=%s)", log_path, logging.getLevelName(level))
    return log_path


def format_exception_message(prefix: str, message: str, *, log_path: Optional[Path]) -> str:
    if log_path is None:
        return f"{prefix}\n\n{message}"
    return f"{prefix}\n\n{message}\n\n(log file: {log_path})"


def log_once(
    logger: logging.Logger,
    key: str,
    level: int,
    msg: str,
    *args,
    exc_info: bool | BaseException | None = None,
) -> bool:
    """
    Logs at most once per process for the given key.

    Loader fallbacks repeat for every file of a batch; only the first is kept.
    """
    k = str(key)
    with _LOG_ONCE_LOCK:
        if k in _LOG_ONCE_KEYS:
            return False
        _LOG_ONCE_KEYS.add(k)

    logger.log(level, msg, *args, exc_info=exc_info)
    return True


def region_label(first_triangle: int, n_triangles: int) -> str:
    """Name of a shared-edge region in warnings and log lines."""
    return f"region(first_triangle={int(first_triangle)}, triangles={int(n_triangles)})"


def warning_sink(logger: logging.Logger, *, prefix: str = "") -> WarningSink:
    """Return a warning sink that forwards messages to `logger` at WARNING."""

    def _sink(message: str) -> None:
        if prefix:
            logger.warning("%s: %s", prefix, message)
        else:
            logger.warning("%s", message)

    return _sink


class WarningCollector:
    """
    Warning sink for one labeling pass.

    Every message is kept in `messages` and passed on to `forward`, or to
    `logger` at WARNING when no sink is given.
    """

    def __init__(self, forward: Optional[WarningSink] = None, *, logger: Optional[logging.Logger] = None):
        self.messages: list[str] = []
        self._forward = forward or warning_sink(logger or logging.getLogger("wirelabel"))

    def __call__(self, message: str) -> None:
        message = str(message)
        self.messages.append(message)
        self._forward(message)
