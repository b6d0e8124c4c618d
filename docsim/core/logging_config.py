"""
Logging for analysis runs.

Records are emitted as one JSON object per line carrying the run context
(request id, stage, sizes, timings). Components get a class-scoped
logger through ``LoggerMixin`` and time their pipeline operations with
``log_operation``.
"""

import json
import logging
import logging.handlers
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

# Extra record attributes copied into structured log entries.
CONTEXT_FIELDS = (
    'operation',
    'request_id',
    'stage',
    'documents',
    'sentences',
    'pairs',
    'workers',
    'duration_ms',
)

PLAIN_FORMAT = '%(asctime)s %(levelname)-8s %(name)s [%(funcName)s:%(lineno)d] %(message)s'


class StructuredFormatter(logging.Formatter):
    """Formats a record as a single JSON line with its run context."""

    def format(self, record):
        timestamp = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry = {
            'timestamp': timestamp.isoformat(timespec='milliseconds').replace('+00:00', 'Z'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'source': f"{record.module}.{record.funcName}:{record.lineno}",
        }
        entry.update({field: getattr(record, field) for field in CONTEXT_FIELDS if hasattr(record, field)})

        if record.exc_info:
            entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, separators=(',', ':'), default=str)


class AnalysisLogging:
    """
    Root logger setup for the analyzer.

    Console output goes to stderr so stdout stays free for reports and
    JSON results. File output, when enabled, goes to ``analysis.log``
    (everything at the configured level) and ``errors.log`` (warnings and
    above), both size-rotated.
    """

    def __init__(self,
                 log_level: str = "INFO",
                 log_dir: str = "logs",
                 max_file_size: int = 10 * 1024 * 1024,
                 backup_count: int = 5,
                 enable_console: bool = True,
                 enable_file: bool = True,
                 structured_logging: bool = True):
        """
        Args:
            log_level: Level name, e.g. ``INFO`` or ``debug``
            log_dir: Directory for the rotating log files
            max_file_size: Rotation size of each file in bytes
            backup_count: Rotated files kept per log
            enable_console: Log to stderr
            enable_file: Log to ``log_dir``
            structured_logging: JSON lines instead of plain text
        """
        level = logging.getLevelName(str(log_level).upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {log_level}")

        self.level = level
        self.log_dir = Path(log_dir)
        self.max_file_size = max_file_size
        self.backup_count = backup_count
        self.enable_console = enable_console
        self.enable_file = enable_file
        self.formatter = StructuredFormatter() if structured_logging else logging.Formatter(PLAIN_FORMAT)

        self._install()

    def _rotating_file(self, filename: str, level: int) -> logging.Handler:
        handler = logging.handlers.RotatingFileHandler(
            self.log_dir / filename,
            maxBytes=self.max_file_size,
            backupCount=self.backup_count,
            encoding='utf-8'
        )
        handler.setLevel(level)
        return handler

    def _handlers(self) -> Iterator[logging.Handler]:
        if self.enable_console:
            console = logging.StreamHandler(sys.stderr)
            console.setLevel(self.level)
            yield console

        if self.enable_file:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            yield self._rotating_file("analysis.log", self.level)
            yield self._rotating_file("errors.log", logging.WARNING)

    def _install(self):
        root = logging.getLogger()
        for handler in root.handlers[:]:
            root.removeHandler(handler)
        root.setLevel(self.level)

        for handler in self._handlers():
            handler.setFormatter(self.formatter)
            root.addHandler(handler)


class LoggerMixin:
    """Gives a class a logger named ``<module>.<ClassName>``."""

    @property
    def logger(self) -> logging.Logger:
        if not hasattr(self, '_logger'):
            cls = type(self)
            self._logger = get_logger(f"{cls.__module__}.{cls.__name__}")
        return self._logger

    def log_operation(self, operation: str, **context):
        """
        Time a pipeline operation.

        Usage::

            with self.log_operation("vectorize_sentences", documents=3) as op:
                ...
                op.extra["sentences"] = total
        """
        return OperationLogger(self.logger, dict(context, operation=operation))


class OperationLogger:
    """
    Context manager that logs the start, end and duration of an operation.

    Context added to ``extra`` inside the block is included in the
    completion record. Exceptions are logged and propagate.
    """

    def __init__(self, logger: logging.Logger, extra: dict):
        self.logger = logger
        self.extra = extra
        self.start_time: Optional[float] = None

    @property
    def elapsed_ms(self) -> float:
        if self.start_time is None:
            return 0.0
        return (time.perf_counter() - self.start_time) * 1000.0

    def __enter__(self):
        self.start_time = time.perf_counter()
        self.logger.debug(f"Starting operation: {self.extra['operation']}", extra=self.extra)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.extra['duration_ms'] = round(self.elapsed_ms, 3)
        operation = self.extra['operation']

        if exc_type is None:
            self.logger.info(f"Completed operation: {operation}", extra=self.extra)
        else:
            self.logger.error(f"Failed operation: {operation}: {exc_val}", extra=self.extra)
        return False


_active_logging: Optional[AnalysisLogging] = None


def setup_logging(log_level: str = "INFO",
                  log_dir: str = "logs",
                  structured_logging: bool = True,
                  **kwargs) -> AnalysisLogging:
    """
    Configure root logging for the process.

    Only applications (the CLI) should call this; the engine itself never
    touches handlers. Extra keyword arguments go to ``AnalysisLogging``.
    """
    global _active_logging
    _active_logging = AnalysisLogging(
        log_level=log_level,
        log_dir=log_dir,
        structured_logging=structured_logging,
        **kwargs
    )
    return _active_logging


def get_logger(name: str) -> logging.Logger:
    """
    Module-level logger lookup.

    Never touches handlers: records propagate to whatever the root logger
    has, so importing the engine as a library leaves the host
    application's logging alone.
    """
    return logging.getLogger(name)
