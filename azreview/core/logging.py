"""
Logging Configuration Module
============================

One place to configure how azreview logs.

Scanners run on worker threads, so output from different resource groups
and services interleaves. At DEBUG the console lines carry the worker
thread name, and the log file always does. The Azure SDK logs each HTTP
request and each credential it tries; those loggers stay at WARNING
whatever level the application runs at.

Functions
---------
setup_logging
    Install the console and optional file handlers on the root logger.
LogContext
    Run a block with one logger at a different level.

Example
-------
>>> import logging
>>> from azreview.core.logging import LogContext, setup_logging
>>> setup_logging(level="DEBUG", log_file="azreview.log")
>>> with LogContext(logging.getLogger("azure.identity"), "ERROR"):
...     client.validate_credentials()
"""

from __future__ import annotations

import logging
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

CONSOLE_FORMAT = "%(message)s"
CONSOLE_DEBUG_FORMAT = "[%(threadName)s] %(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(threadName)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# The Azure SDK logs every HTTP request at INFO
NOISY_LOGGERS = (
    "azure",
    "azure.core.pipeline.policies.http_logging_policy",
    "azure.identity",
    "msal",
    "urllib3",
)


def _to_level(level: Union[str, int]) -> int:
    """Turn ``"debug"``, ``"INFO"`` or ``logging.INFO`` into a level number."""
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level}")
    return value


def _console_handler(console: Console, level: int, rich_tracebacks: bool) -> logging.Handler:
    handler = RichHandler(
        console=console,
        show_path=False,
        rich_tracebacks=rich_tracebacks,
        tracebacks_show_locals=False,
        markup=False,
    )
    handler.setLevel(level)
    fmt = CONSOLE_DEBUG_FORMAT if level <= logging.DEBUG else CONSOLE_FORMAT
    handler.setFormatter(logging.Formatter(fmt))
    return handler


def _file_handler(path: str, level: int) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
    return handler


def setup_logging(
    level: Union[str, int] = "INFO",
    log_file: Optional[str] = None,
    rich_tracebacks: bool = True,
    console: Optional[Console] = None,
) -> None:
    """
    Configure the root logger for a CLI run.

    Parameters
    ----------
    level : str or int, default="INFO"
        Level name (case-insensitive) or number.
    log_file : str, optional
        Also append records to this file.
    rich_tracebacks : bool, default=True
        Render exception tracebacks with Rich.
    console : Console, optional
        Console for the handler. Defaults to a new one on stderr so that
        report tables on stdout stay clean.

    Raises
    ------
    ValueError
        If ``level`` is not a known level name.

    Notes
    -----
    Handlers installed by an earlier call are closed and replaced.
    """
    level = _to_level(level)

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(level)

    root.addHandler(
        _console_handler(console or Console(stderr=True), level, rich_tracebacks)
    )
    if log_file:
        root.addHandler(_file_handler(log_file, level))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root.debug(f"Logging at {logging.getLevelName(level)}, file={log_file or 'None'}")


class LogContext:
    """
    Temporarily run a logger at another level.

    The previous level is restored on exit, also when the block raises.

    Parameters
    ----------
    logger : logging.Logger
        Logger to adjust.
    level : str or int
        Level while inside the block.
    """

    def __init__(self, logger: logging.Logger, level: Union[str, int]) -> None:
        self.logger = logger
        self.level = _to_level(level)
        self._saved: Optional[int] = None

    def __enter__(self) -> logging.Logger:
        self._saved = self.logger.level
        self.logger.setLevel(self.level)
        return self.logger

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._saved is not None:
            self.logger.setLevel(self._saved)
