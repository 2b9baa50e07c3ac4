"""
Configures loggers for scripts that use this library.  The library itself only writes to module loggers and never adds
handlers unless :func:`init_logging` is called.

:author: Doug Skrypa
"""

from __future__ import annotations

import logging
import sys
from logging import Handler, Logger, Filter, LogRecord
from pathlib import Path
from typing import Union, Optional, Callable, Iterable

from .utils import enable_http_debug_logging

__all__ = ['init_logging', 'ENTRY_FMT_DETAILED', 'create_filter']

ENTRY_FMT_DETAILED = '%(asctime)s %(levelname)s %(threadName)s %(name)s %(lineno)d %(message)s'
DATE_FMT = '%Y-%m-%d %H:%M:%S %Z'

PathLike = Union[Path, str]
Verbosity = Union[int, bool, None]


def init_logging(
    verbosity: Verbosity = 0,
    *,
    log_path: PathLike | None = None,
    names: Optional[Iterable[Optional[str]]] = None,
    entry_fmt: str = None,
    date_fmt: str = None,
    file_lvl: int = logging.DEBUG,
    replace_handlers: bool = True,
    http_debugging: bool = False,
) -> Optional[Path]:
    """
    Configures stream handlers for stdout and stderr so that logs with level logging.INFO and below are sent to stdout
    and logs with level logging.WARNING and above are sent to stderr.  If a log_path is provided, then a file handler
    will be added as well.

    The verbosity argument affects the log level that is set for stdout:
    - 0: 20 = logging.INFO (default)
    - 1: 11
    - 2: 10 = logging.DEBUG
    - 3+: lower levels, with detailed log entry formatting

    :param verbosity: Higher values increase stdout output verbosity
    :param log_path: The path where logs should be written, or None (default) to prevent logging to file
    :param names: The names of the loggers for which handlers should be configured.  Defaults to ``__main__`` and this
      package.  Include None to configure the root logger.
    :param entry_fmt: The stream handler `log message format
      <https://docs.python.org/3/library/logging.html#logrecord-attributes>`_.  Defaults to ``'%(message)s'`` when
      verbosity < 3, otherwise :data:`ENTRY_FMT_DETAILED` is used.
    :param date_fmt: The datetime format to use for timestamps
    :param file_lvl: The minimum log level that should be written to the log file, if configured
    :param replace_handlers: Remove any existing handlers on loggers before adding handlers to them
    :param http_debugging: Enable HTTP request debug logging
    :return: The path to which logs are being written, or None if no file handler was configured.
    """
    verbosity = int(verbosity or 0)
    date_fmt = date_fmt or DATE_FMT
    entry_fmt = entry_fmt or (ENTRY_FMT_DETAILED if verbosity > 2 else '%(message)s')
    if names is None:
        names = ['__main__', __name__.split('.')[0]]
    if http_debugging:
        names = [*names, 'http.client', 'urllib3']

    loggers = [logging.getLogger(name) for name in names]
    for logger in loggers:
        if replace_handlers:
            for handler in list(logger.handlers):
                logger.removeHandler(handler)
        logger.setLevel(logging.NOTSET)

    root_logger = logging.getLogger()
    if root_logger not in loggers:
        root_logger.setLevel(logging.NOTSET)                # Default is 30 / WARNING

    _add_stream_handlers(loggers, verbosity, logging.Formatter(entry_fmt, date_fmt))
    if log_path is not None:
        log_path = Path(log_path).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding='utf-8')
        file_handler.setLevel(file_lvl)
        file_handler.setFormatter(logging.Formatter(ENTRY_FMT_DETAILED, date_fmt))
        for logger in loggers:
            logger.addHandler(file_handler)

    logging.captureWarnings(True)
    if http_debugging:
        enable_http_debug_logging()
    return log_path


def _add_stream_handlers(loggers: Iterable[Logger], verbosity: int, formatter: logging.Formatter):
    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setLevel(logging.DEBUG + 2 - verbosity if verbosity else logging.INFO)
    stdout_handler.addFilter(create_filter(lambda r: r.levelno < logging.WARNING))
    stdout_handler.name = 'stdout'

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(logging.INFO)
    stderr_handler.addFilter(create_filter(lambda r: r.levelno >= logging.WARNING))
    stderr_handler.name = 'stderr'

    stream_handlers: tuple[Handler, ...] = (stdout_handler, stderr_handler)
    for handler in stream_handlers:
        handler.setFormatter(formatter)
    for logger in loggers:
        for handler in stream_handlers:
            logger.addHandler(handler)


def create_filter(filter_fn: Callable[[LogRecord], bool]) -> Filter:
    class CustomFilter(Filter):
        def filter(self, record):
            return filter_fn(record)

    return CustomFilter()
