"""
Structured Logging Framework

structlog configuration for the dynamic DNS server. Every record, whether it
comes from a structlog logger or from a standard library logger in the core
modules, goes through one processor chain and is rendered by the root
logger's handlers:
- stdout, as console text or JSON depending on ``logging.format``
- optionally a size-rotated file, always JSON
"""

import logging
import logging.handlers
import sys
import traceback
from pathlib import Path
from typing import Any, List, Optional

import structlog

from ..config.schema import LoggingConfig

SHARED_PROCESSORS: List[Any] = [
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
]


class StructuredLogger:
    """Owns the root logger handlers installed for one logging configuration."""

    def __init__(self, config: LoggingConfig):
        self.config = config
        self.logger = None
        self._configured = False
        self._handlers: List[logging.Handler] = []

    def _get_processors(self) -> List[Any]:
        """Processor chain for stdout, renderer last."""
        if self.config.format == "json":
            renderer = structlog.processors.JSONRenderer()
        else:
            renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
        return SHARED_PROCESSORS + [renderer]

    def configure(self) -> None:
        """Install the handlers and point structlog at the standard library."""
        if self._configured:
            return

        level = logging.getLevelName(self.config.level.upper())
        root_logger = logging.getLogger()
        root_logger.handlers.clear()
        root_logger.setLevel(level)

        self._install(
            logging.StreamHandler(sys.stdout), self._get_processors()[-1], level
        )

        if self.config.file:
            log_path = Path(self.config.file)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            rotating = logging.handlers.RotatingFileHandler(
                log_path,
                maxBytes=self.config.max_size_mb * 1024 * 1024,
                backupCount=self.config.backup_count,
                encoding="utf-8",
            )
            self._install(rotating, structlog.processors.JSONRenderer(), level)

        structlog.configure(
            processors=SHARED_PROCESSORS
            + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
            wrapper_class=structlog.stdlib.BoundLogger,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )

        self._configured = True
        self.logger = structlog.get_logger("dyndns")

    def _install(self, handler: logging.Handler, renderer: Any, level: int) -> None:
        handler.setLevel(level)
        handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processor=renderer, foreign_pre_chain=SHARED_PROCESSORS
            )
        )
        logging.getLogger().addHandler(handler)
        self._handlers.append(handler)

    def close(self) -> None:
        """Flush and detach the handlers added by configure."""
        root_logger = logging.getLogger()
        for handler in self._handlers:
            root_logger.removeHandler(handler)
            handler.close()
        self._handlers = []

    def get_logger(self, name: str = "dyndns") -> structlog.stdlib.BoundLogger:
        if not self._configured:
            self.configure()
        return structlog.get_logger(name)


_logger_instance: Optional[StructuredLogger] = None


def setup_logging(config: LoggingConfig) -> StructuredLogger:
    """Configure process-wide logging, replacing any earlier configuration."""
    global _logger_instance
    if _logger_instance is not None:
        _logger_instance.close()
    _logger_instance = StructuredLogger(config)
    _logger_instance.configure()
    return _logger_instance


def shutdown_logging() -> None:
    """Detach the handlers installed by setup_logging."""
    global _logger_instance
    if _logger_instance is not None:
        _logger_instance.close()
        _logger_instance = None


def get_logger(name: str = "dyndns") -> structlog.stdlib.BoundLogger:
    """Get a structured logger.

    Raises:
        RuntimeError: If setup_logging() has not been called
    """
    if _logger_instance is None:
        raise RuntimeError("Logging not configured. Call setup_logging() first.")

    return _logger_instance.get_logger(name)


def log_exception(
    logger: structlog.stdlib.BoundLogger, message: str, exc: Optional[BaseException] = None
) -> None:
    """Log an error with the exception type, message and formatted traceback.

    Uses the exception currently being handled when ``exc`` is None.
    """
    exc = exc if exc is not None else sys.exc_info()[1]
    if exc is None:
        logger.error(message)
        return

    logger.error(
        message,
        exception_type=type(exc).__name__,
        exception_message=str(exc),
        traceback="".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
    )
