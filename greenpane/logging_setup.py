"""File logging for greenpane commands.

Every command writes to one shared ``<home>/logs/debug.log``; the service name
in each line tells the writers apart. The rotating handler is safe for several
processes appending at once.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from concurrent_log_handler import ConcurrentRotatingFileHandler

LOG_LEVEL_NAMES = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET")
FALLBACK_LOG_LEVEL = logging.INFO
LOG_RELATIVE_PATH = Path("logs") / "debug.log"
LOG_ROTATE_BYTES = 25 * 1024 * 1024
LOG_ROTATE_BACKUPS = 4

# Loggers the offer workflow writes to; they follow the configured level even
# when the root logger has been changed by the embedding process.
GREENPANE_LOGGERS = (
    "greenpane.config",
    "greenpane.manager",
    "greenpane.offers",
    "greenpane.sage",
    "greenpane.venues",
)


def resolve_log_level(log_level: str | int | None) -> int:
    """Map a config value such as ``"debug"`` to a ``logging`` level.

    Unknown names fall back to INFO rather than failing the command.
    """
    if isinstance(log_level, int) and not isinstance(log_level, bool):
        return log_level
    name = str(log_level or "").strip().upper()
    if name not in LOG_LEVEL_NAMES:
        return FALLBACK_LOG_LEVEL
    return logging.getLevelName(name)


def log_file_path(home_dir: str | Path) -> Path:
    return (Path(home_dir).expanduser() / LOG_RELATIVE_PATH).resolve()


def _line_format(service_name: str) -> logging.Formatter:
    return logging.Formatter(
        fmt=f"%(asctime)s.%(msecs)03d {service_name} %(name)s: %(levelname)-8s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


class FileLogging:
    """Attach one rotating file handler per process and keep levels in step.

    ``configure`` may be called for every command; the handler is created on
    the first call only, later calls just re-apply the level.
    """

    def __init__(self, service_name: str) -> None:
        self.service_name = service_name
        self.handler: ConcurrentRotatingFileHandler | None = None

    @property
    def active(self) -> bool:
        return self.handler is not None

    def configure(self, home_dir: str | Path, *, log_level: str | int | None) -> int:
        level = resolve_log_level(log_level)
        if self.handler is None:
            path = log_file_path(home_dir)
            path.parent.mkdir(parents=True, exist_ok=True)
            handler = ConcurrentRotatingFileHandler(
                os.fspath(path),
                "a",
                maxBytes=LOG_ROTATE_BYTES,
                backupCount=LOG_ROTATE_BACKUPS,
                use_gzip=False,
            )
            handler.setFormatter(_line_format(self.service_name))
            logging.getLogger().addHandler(handler)
            self.handler = handler
        self.handler.setLevel(level)
        logging.getLogger().setLevel(level)
        for name in GREENPANE_LOGGERS:
            logging.getLogger(name).setLevel(level)
        return level

    def close(self) -> None:
        if self.handler is None:
            return
        logging.getLogger().removeHandler(self.handler)
        self.handler.close()
        self.handler = None
