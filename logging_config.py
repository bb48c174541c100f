"""Logging setup for scripts and embedding applications."""

from __future__ import annotations

import logging
import sys

import config


def setup_logging() -> None:
    """Attach a stdout handler (and a file handler when LOG_FILE is set) to the root logger."""

    log_level = getattr(logging, config.LOG_LEVEL.upper(), logging.INFO)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.addHandler(console_handler)

    if config.LOG_FILE:
        file_handler = logging.FileHandler(config.LOG_FILE)
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # The HTTP stack under supabase-py is chatty at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)
