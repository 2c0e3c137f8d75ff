"""
Logging Configuration.

Sets up file logging for the loader to capture discovery, per-file rejects
and merge summaries.
"""

from __future__ import annotations

import logging
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.logging import RichHandler

PACKAGE_LOGGER = "ccdstage"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def get_log_file_path(log_dir: Path | str = "logs") -> Path:
    """
    Get the path to the current log file.

    Parameters
    ----------
    log_dir : Path or str
        Directory containing log files (default: "logs")

    Returns
    -------
    Path
        Path to today's log file
    """
    return Path(log_dir) / f"ccdstage_{datetime.now().strftime('%Y%m%d')}.log"


def setup_logging(log_dir: Path | str = "logs", verbose: bool = False) -> Path:
    """
    Set up logging for the ccdstage package.

    Parameters
    ----------
    log_dir : Path or str
        Directory for log files (default: "logs")
    verbose : bool
        Also echo INFO and above to the terminal through rich

    Returns
    -------
    Path
        Path to the current log file

    Notes
    -----
    - Creates rotating log files (max 10 MB, keeps 5 backups)
    - Log format: timestamp | level | module | message
    - Calling it again replaces the handlers it installed earlier
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = get_log_file_path(log_dir)

    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        if getattr(handler, "_ccdstage", False):
            logger.removeHandler(handler)
            handler.close()

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,  # 10 MB
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT))
    file_handler._ccdstage = True
    logger.addHandler(file_handler)

    if verbose:
        console_handler = RichHandler(show_path=False, markup=False)
        console_handler.setLevel(logging.INFO)
        console_handler._ccdstage = True
        logger.addHandler(console_handler)

    logger.setLevel(logging.DEBUG)
    logger.info("=" * 60)
    logger.info("ccdstage session started")
    return log_file


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a ccdstage module.

    Parameters
    ----------
    name : str
        Module name (e.g., 'ccdstage.core.loader')
    """
    return logging.getLogger(name)
