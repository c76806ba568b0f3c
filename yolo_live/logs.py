"""
Logging setup.
"""

from __future__ import annotations

import logging
import os
from typing import List, Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def setup_logging(log_level: str = "INFO", log_path: Optional[str] = None) -> None:
    level = str(log_level).upper()
    if level not in LOG_LEVELS:
        raise ValueError(f"Unknown log level: {log_level!r} (expected one of {LOG_LEVELS})")

    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_path:
        log_dir = os.path.dirname(log_path)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir)
        handlers.append(logging.FileHandler(log_path))

    logging.basicConfig(
        level=getattr(logging, level),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )
