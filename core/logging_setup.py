"""
Logging Setup
=============

Console handler plus an optional file handler on the root logger. Modules
log through ``logging.getLogger(__name__)``.
"""

import logging
import os
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """
    Configure the root logger once.

    Args:
        level: Level name ("DEBUG", "INFO", ...)
        log_file: Optional path; parent directories are created

    Returns:
        The root logger
    """
    root = logging.getLogger()
    root.setLevel(level.upper())

    if getattr(root, "_weather_pipeline_configured", False):
        return root

    formatter = logging.Formatter(LOG_FORMAT)

    sh = logging.StreamHandler()
    sh.setFormatter(formatter)
    root.addHandler(sh)

    if log_file:
        directory = os.path.dirname(log_file)
        if directory:
            os.makedirs(directory, exist_ok=True)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setFormatter(formatter)
        root.addHandler(fh)

    root._weather_pipeline_configured = True
    return root
