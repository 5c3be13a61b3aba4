# tree_pricing/utils/logger.py
"""Logging utilities for tree_pricing package.

Every module logs through ``get_logger(__name__)``, which places the
logger under the ``tree_pricing`` root so that one call to
``configure_logging`` controls the whole package. Records may carry a
``context`` mapping (rendered as ``key=value`` pairs) and a ``duration``
in seconds; ``AnalysisLoggerAdapter`` binds context such as the model
name to every record and times analysis steps.
"""

import logging
import logging.handlers
import sys
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Union

from .exceptions import FileOperationError

ROOT_LOGGER_NAME = 'tree_pricing'

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_lock = threading.Lock()
_configured = False


def _as_level(level: Union[str, int]) -> int:
    if isinstance(level, str):
        return logging.getLevelName(level.upper())
    return level


class TreePricingFormatter(logging.Formatter):
    """Standard line format followed by the record's context and duration.

    Example output::

        2026-03-01 10:12:03 INFO     tree_pricing.explainability.interaction: H-statistics done [model=gbm pairs=15] (4.215s)
    """

    def __init__(self, include_context: bool = True) -> None:
        super().__init__(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
        self.include_context = include_context

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)

        context = getattr(record, 'context', None)
        if self.include_context and context:
            pairs = " ".join(f"{key}={value}" for key, value in context.items())
            line = f"{line} [{pairs}]"

        duration = getattr(record, 'duration', None)
        if duration is not None:
            line = f"{line} ({duration:.3f}s)"
        return line


class AnalysisLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that attaches bound context to every record.

    Example:
        >>> log = get_logger(__name__, model='gbm')
        >>> with log.track("ICE sweep", feature='ageph'):
        ...     run_sweep()
    """

    def process(self, msg: str, kwargs: Dict[str, Any]):
        extra = dict(kwargs.get('extra') or {})
        extra['context'] = {**self.extra, **extra.get('context', {})}
        kwargs['extra'] = extra
        return msg, kwargs

    def bind(self, **context: Any) -> "AnalysisLoggerAdapter":
        """New adapter with ``context`` added to the bound context."""
        return AnalysisLoggerAdapter(self.logger, {**self.extra, **context})

    @contextmanager
    def track(self, step: str, **context: Any) -> Iterator[Dict[str, float]]:
        """Log the start (DEBUG) and completion (INFO) of an analysis step.

        Yields:
            Dictionary whose ``duration`` is filled in when the step ends
        """
        timing = {'duration': 0.0}
        self.debug(f"{step} started", extra={'context': context})
        start = time.perf_counter()
        yield timing
        timing['duration'] = time.perf_counter() - start
        self.info(f"{step} done", extra={'context': context, 'duration': timing['duration']})


def configure_logging(
    level: Union[str, int] = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
    max_file_size: int = 10 * 1024 * 1024,
    backup_count: int = 5,
    include_context: bool = True,
    include_console: bool = True,
    force: bool = False
) -> None:
    """Configure handlers of the package root logger.

    Only the first call takes effect unless ``force`` is set.

    Args:
        level: Logging level name or number
        log_file: Optional path of a rotating log file
        max_file_size: Size in bytes at which the log file rotates
        backup_count: Number of rotated files to keep
        include_context: Render record context after the message
        include_console: Log to standard output
        force: Replace an existing configuration

    Raises:
        FileOperationError: If the log file cannot be opened

    Example:
        >>> configure_logging(level="DEBUG", log_file="logs/pricing.log", force=True)
    """
    global _configured

    with _lock:
        if _configured and not force:
            return

        level = _as_level(level)
        root_logger = logging.getLogger(ROOT_LOGGER_NAME)
        root_logger.setLevel(level)
        root_logger.handlers.clear()

        formatter = TreePricingFormatter(include_context=include_context)
        handlers = []
        if include_console:
            handlers.append(logging.StreamHandler(sys.stdout))

        if log_file:
            log_path = Path(log_file)
            try:
                log_path.parent.mkdir(parents=True, exist_ok=True)
                handlers.append(logging.handlers.RotatingFileHandler(
                    log_path, maxBytes=max_file_size, backupCount=backup_count, encoding='utf-8'
                ))
            except OSError as e:
                raise FileOperationError(
                    f"Cannot open log file {log_path}",
                    error_code="LOG_FILE_SETUP_FAILED",
                    context={'log_file': str(log_path), 'error': str(e)}
                ) from e

        for handler in handlers:
            handler.setLevel(level)
            handler.setFormatter(formatter)
            root_logger.addHandler(handler)

        _configured = True


def reset_logging() -> None:
    """Remove package handlers so the next ``configure_logging`` applies."""
    global _configured

    with _lock:
        root_logger = logging.getLogger(ROOT_LOGGER_NAME)
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
            handler.close()
        root_logger.setLevel(logging.NOTSET)
        _configured = False


def get_logger(name: str, **context: Any) -> Union[logging.Logger, AnalysisLoggerAdapter]:
    """Logger under the package root.

    Args:
        name: Logger name (typically __name__)
        **context: Context bound to every record; when given an
            ``AnalysisLoggerAdapter`` is returned

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Partial dependence sweep started")
    """
    if not _configured:
        configure_logging()

    if name == '__main__':
        name = f'{ROOT_LOGGER_NAME}.main'
    elif name != ROOT_LOGGER_NAME and not name.startswith(f'{ROOT_LOGGER_NAME}.'):
        name = f'{ROOT_LOGGER_NAME}.{name}'

    logger = logging.getLogger(name)
    if context:
        return AnalysisLoggerAdapter(logger, context)
    return logger


def set_log_level(level: Union[str, int]) -> None:
    """Change the level of the package root logger and its handlers."""
    level = _as_level(level)
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(level)
    for handler in root_logger.handlers:
        handler.setLevel(level)


@contextmanager
def temporary_log_level(level: Union[str, int]) -> Iterator[None]:
    """Run a block with a different package log level.

    Example:
        >>> with temporary_log_level("DEBUG"):
        ...     h_statistic(model, sample, ('ageph', 'bm'))
    """
    original = logging.getLogger(ROOT_LOGGER_NAME).level
    set_log_level(level)
    try:
        yield
    finally:
        set_log_level(original)
