"""
Logging utilities for structured logging
"""

import logging
import json
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

_RESERVED_ATTRS = frozenset((
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname',
    'filename', 'module', 'lineno', 'funcName', 'created',
    'msecs', 'relativeCreated', 'thread', 'threadName',
    'processName', 'process', 'getMessage', 'exc_info',
    'exc_text', 'stack_info', 'taskName', 'message', 'asctime',
))


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging"""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON"""
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno
        }

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Add extra fields from record
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value

        return json.dumps(log_data, ensure_ascii=False, default=str)


class SleepTimerFilter(logging.Filter):
    """Filter for sleep timer specific logging"""

    def filter(self, record: logging.LogRecord) -> bool:
        """Filter log records"""
        # Group timer fields so JSON consumers can pick them up in one place
        if hasattr(record, 'timer_state'):
            record.timer_context = {
                "timer_state": record.timer_state,
                "remaining_s": getattr(record, 'remaining_s', None),
            }

        return True


def setup_logging(log_level: str = "INFO", log_format: str = "text",
                  log_file: Optional[str] = None) -> None:
    """
    Setup structured logging for the sleep timer service.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log format ("json", "text" or "simple")
        log_file: Optional log file path
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # Clear existing handlers
    root_logger.handlers.clear()

    if log_format.lower() == "json":
        formatter = JSONFormatter()
    elif log_format.lower() == "simple":
        formatter = logging.Formatter(
            '%(asctime)s %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(SleepTimerFilter())
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        file_handler.addFilter(SleepTimerFilter())
        root_logger.addHandler(file_handler)

    # python-mpd2 logs every command at DEBUG
    logging.getLogger('mpd').setLevel(logging.WARNING)
    logging.getLogger('uvicorn.access').setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get logger with sleep timer context.

    Args:
        name: Logger name

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def log_state_change(logger: logging.Logger, old_state: str, new_state: str,
                     **kwargs) -> None:
    """
    Log timer state changes.

    Args:
        logger: Logger instance
        old_state: Previous state
        new_state: New state
        **kwargs: Additional context
    """
    logger.info(
        f"Timer state change: {old_state} -> {new_state}",
        extra={
            "event_type": "state_change",
            "old_state": old_state,
            "new_state": new_state,
            "timer_state": new_state,
            **kwargs
        }
    )


def log_fade_step(logger: logging.Logger, volume: int, step: int, total: int) -> None:
    """Log a single volume step of the fade (debug level)"""
    logger.debug(
        f"Fade step {step}/{total}: volume {volume}",
        extra={
            "event_type": "fade_step",
            "volume": volume,
            "step": step,
            "total_steps": total
        }
    )


def log_error(logger: logging.Logger, operation: str, error: Exception,
              context: Optional[Dict[str, Any]] = None) -> None:
    """
    Log errors with context.

    Args:
        logger: Logger instance
        operation: What was being attempted
        error: Exception that occurred
        context: Additional context
    """
    logger.error(
        f"{operation} failed: {error}",
        extra={
            "event_type": "error",
            "operation": operation,
            "error_type": type(error).__name__,
            "error_message": str(error),
            "context": context or {}
        },
        exc_info=logger.isEnabledFor(logging.DEBUG)
    )


def log_metrics(logger: logging.Logger, operation: str, metrics: Dict[str, Any]) -> None:
    """
    Log performance metrics.

    Args:
        logger: Logger instance
        operation: Operation the metrics belong to
        metrics: Metrics data
    """
    logger.info(
        f"Metrics for {operation}",
        extra={
            "event_type": "metrics",
            "operation": operation,
            "metrics": metrics
        }
    )
