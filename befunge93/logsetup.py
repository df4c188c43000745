"""
Logger setup shared by the bf93 front ends.

Console output goes through rich's RichHandler; a log file, when asked for,
captures everything at DEBUG with the long format. Library modules only
call logging.getLogger(__name__) and never attach handlers themselves.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

FILE_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(funcName)s:%(lineno)d | %(message)s"
FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"


def verbosity_to_level(verbose: int) -> int:
    """-v count to console level: 0 WARNING, 1 INFO, 2+ DEBUG."""
    if verbose <= 0:
        return logging.WARNING
    if verbose == 1:
        return logging.INFO
    return logging.DEBUG


def setup_logging(
    name: str = "befunge93",
    console_level: int = logging.WARNING,
    log_file: Optional[Union[str, Path]] = None,
    console: Optional[Console] = None,
) -> logging.Logger:
    """Configure and return the `name` logger.

    Calling it again replaces the handlers it installed before, so a CLI
    can be invoked repeatedly in one process (tests do this).
    """
    logger = logging.getLogger(name)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    ch = RichHandler(
        level=console_level,
        console=console or Console(stderr=True),
        show_time=True,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    ch.setLevel(console_level)
    logger.addHandler(ch)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(str(log_path), encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=FILE_DATEFMT))
        logger.addHandler(fh)
        logger.debug("Log file: %s", log_path)

    return logger
