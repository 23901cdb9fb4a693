"""Loguru sinks for CLI runs."""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

from deskhost.config.loader import get_data_dir

VERBOSE_FORMAT = "<dim>{time:HH:mm:ss.SSS}</dim> | <level>{level: <8}</level> | <level>{message}</level>"


def log_file_path(name: str) -> Path:
    return get_data_dir() / "logs" / f"{name}.log"


def configure_cli_logging(*, verbose: bool = False, log_name: str | None = None) -> Path | None:
    """
    Swap loguru's default sink for the CLI ones.

    stderr gets WARNING and above, or everything at DEBUG with `verbose`. With
    `log_name` a rotating file under ~/.deskhost/logs/ is added; its path is returned.
    """
    logger.remove()
    if verbose:
        logger.add(sys.stderr, level="DEBUG", format=VERBOSE_FORMAT)
    else:
        logger.add(sys.stderr, level="WARNING")
    if not log_name:
        return None
    path = log_file_path(log_name)
    path.parent.mkdir(parents=True, exist_ok=True)
    logger.add(
        str(path),
        level="DEBUG" if verbose else "INFO",
        rotation="10 MB",
        retention=5,
        enqueue=True,
        encoding="utf-8",
    )
    return path
