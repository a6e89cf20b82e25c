"""
Logging Setup
Configures loguru sinks for applications that use the package.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional, Union

from loguru import logger


def setup_logging(log_level: str = "INFO", log_file: Optional[Union[str, Path]] = None) -> None:
    """
    Route package logs to stderr and, optionally, a rotating file.

    The package logger is disabled on import; calling this enables it.

    Parameters
    ----------
    log_level : str, default="INFO"
        Minimum level for all sinks. "DEBUG" shows every executed and
        blocked trade.
    log_file : str or Path, optional
        Path of a log file to add. Parent directories are created.
    """
    logger.remove()

    stderr_format = (
        "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{module}</cyan> | "
        "{message}"
    )

    logger.add(sys.stderr, format=stderr_format, level=log_level, colorize=True)

    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_path,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {module} | {message}",
            level=log_level,
            rotation="10 MB",
            retention="7 days",
            colorize=False,
        )

    logger.enable("powerhodl")
    logger.info(f"Logging initialized at {log_level} level")


__all__ = ['setup_logging']
