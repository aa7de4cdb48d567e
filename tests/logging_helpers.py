from __future__ import annotations

import logging

from concurrent_log_handler import ConcurrentRotatingFileHandler


def reset_concurrent_log_handlers(*, module) -> None:
    """Drop file handlers left by a CLI run so the next test starts clean."""
    file_logging = getattr(module, "_file_logging", None)
    if file_logging is not None:
        file_logging.close()
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if isinstance(handler, ConcurrentRotatingFileHandler):
            root_logger.removeHandler(handler)
            handler.close()
