"""
Logging Setup

Configures the root logger and aligns uvicorn's loggers with it so every
module's `logging.getLogger(__name__)` ends up in the same stream.
"""

import logging
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str = "INFO", handler: Optional[logging.Handler] = None):
    """Attach a single formatted handler to root and uvicorn loggers."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    if handler is None:
        handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.setLevel(log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    if not any(isinstance(h, type(handler)) for h in root_logger.handlers):
        root_logger.addHandler(handler)

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uv_logger = logging.getLogger(name)
        uv_logger.setLevel(log_level)
        uv_logger.handlers = []
        uv_logger.propagate = True

    # Quiet chatty drivers
    logging.getLogger("pymongo").setLevel(logging.WARNING)

    return handler
