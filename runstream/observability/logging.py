"""
Structured logging utility for runs.

This module provides a consistent logging interface for the run controller
and its collaborators, ensuring structured log lines with standard fields
like run_id, thread_id and step_id.
"""

import logging
import time
import uuid
from contextlib import contextmanager
from typing import Any, Dict, Optional

from ..config.settings import Settings, get_settings


def configure_logging(settings: Optional[Settings] = None) -> logging.Logger:
    """Apply the configured level to the package logger.

    Handlers are left to the host application.
    """
    settings = settings or get_settings()
    logger = logging.getLogger("runstream")
    logger.setLevel(settings.log_level)
    return logger


class RunLogger:
    """Structured logger bound to one run."""

    def __init__(self, run_id: str, component: str = "run"):
        """
        Initialize logger for a specific run.

        Args:
            run_id: Identifier of the run every line is tagged with
            component: Logger suffix (e.g., "run", "graph")
        """
        self.run_id = run_id
        self.logger = logging.getLogger(f"runstream.{component}")

    def _format_message(self, message: str, **kwargs) -> str:
        """Format message with structured fields."""
        fields = [f"run_id={self.run_id}"]

        for key, value in kwargs.items():
            if value is not None:
                fields.append(f"{key}={value}")

        return f"[{' '.join(fields)}] {message}"

    def debug(self, message: str, **kwargs):
        self.logger.debug(self._format_message(message, **kwargs))

    def info(self, message: str, **kwargs):
        self.logger.info(self._format_message(message, **kwargs))

    def warning(self, message: str, **kwargs):
        self.logger.warning(self._format_message(message, **kwargs))

    def error(self, message: str, error: Optional[BaseException] = None, **kwargs):
        """Log error message with structured fields."""
        if error:
            kwargs['error_type'] = type(error).__name__
            kwargs['error_msg'] = str(error)

        self.logger.error(self._format_message(message, **kwargs))

    @contextmanager
    def track_run(self, thread_id: Optional[str] = None, trace_id: Optional[str] = None):
        """
        Context manager to track run timing and log start, completion and failure.

        Args:
            thread_id: Conversation thread the run belongs to
            trace_id: Optional trace ID (generated if not provided)

        Yields:
            Dict with run metadata including trace_id
        """
        if trace_id is None:
            trace_id = str(uuid.uuid4())[:8]

        start_time = time.time()
        self.debug("Starting run", thread_id=thread_id, trace_id=trace_id)

        metadata = {
            'run_id': self.run_id,
            'thread_id': thread_id,
            'trace_id': trace_id,
            'start_time': start_time
        }

        try:
            yield metadata

            duration = time.time() - start_time
            self.info(
                "Completed run",
                thread_id=thread_id,
                trace_id=trace_id,
                duration_ms=int(duration * 1000)
            )

        except Exception as e:
            duration = time.time() - start_time
            self.error(
                "Failed run",
                thread_id=thread_id,
                trace_id=trace_id,
                duration_ms=int(duration * 1000),
                error=e
            )
            raise

    def log_usage(self, usage: Dict[str, Any], model: Optional[str] = None):
        """Log token usage information for one model invocation."""
        cache_info = usage.get('input_token_details') or {}
        try:
            cache_read = int(cache_info.get('cache_read') or 0)
        except (TypeError, ValueError):
            cache_read = 0

        self.info(
            "Token usage",
            model=model,
            input_tokens=usage.get('input_tokens', 0),
            output_tokens=usage.get('output_tokens', 0),
            total_tokens=usage.get('total_tokens', 0),
            cache_read_tokens=cache_read if cache_read > 0 else None
        )
