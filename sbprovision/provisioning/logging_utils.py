"""
Structured Logging for Provisioning Operations

Thin wrapper around stdlib logging that attaches entity context as
structured extra fields.

Author: sbprovision Contributors
Date: 2026-10-19
"""

import logging
import time
from functools import wraps
from typing import Optional

from .exceptions import ProvisioningError, TransportError


class StructuredLogger:
    """Structured logger carrying entity context in ``extra`` fields."""

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def _log(self, level: int, message: str, **kwargs) -> None:
        """Log with extra context fields."""
        extra = {k: v for k, v in kwargs.items() if v is not None}
        self.logger.log(level, message, extra=extra)

    def debug(self, message: str, **kwargs) -> None:
        self._log(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs) -> None:
        self._log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs) -> None:
        self._log(logging.WARNING, message, **kwargs)

    def error(self, message: str, exc_info: bool = False, **kwargs) -> None:
        extra = {k: v for k, v in kwargs.items() if v is not None}
        self.logger.error(message, exc_info=exc_info, extra=extra)

    def log_operation(
        self,
        operation: str,
        entity_type: str,
        entity_name: str,
        namespace: Optional[str] = None,
        **kwargs
    ) -> None:
        """Log an entity operation."""
        self.info(
            f"{operation}: {entity_type}/{entity_name}",
            operation=operation,
            entity_type=entity_type,
            entity_name=entity_name,
            namespace=namespace,
            **kwargs
        )

    def log_state_transition(
        self,
        entity_type: str,
        entity_name: str,
        from_state: str,
        to_state: str,
        **kwargs
    ) -> None:
        """Log a step of a guarded operation."""
        self.debug(
            f"{entity_type}/{entity_name}: {from_state} -> {to_state}",
            operation="state_transition",
            entity_type=entity_type,
            entity_name=entity_name,
            from_state=from_state,
            to_state=to_state,
            **kwargs
        )


def track_operation_time(logger: StructuredLogger, operation: str):
    """Decorator to log the duration of a provisioning operation."""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            start_time = time.monotonic()
            try:
                result = func(*args, **kwargs)
            except ProvisioningError as e:
                duration_ms = (time.monotonic() - start_time) * 1000
                log = logger.warning if isinstance(e, TransportError) else logger.info
                log(
                    f"Operation not completed: {operation}",
                    operation=operation,
                    duration_ms=round(duration_ms, 2),
                    error_type=type(e).__name__,
                    error_code=e.error_code,
                    error_message=str(e)
                )
                raise
            except Exception as e:
                duration_ms = (time.monotonic() - start_time) * 1000
                logger.error(
                    f"Operation failed: {operation}",
                    operation=operation,
                    duration_ms=round(duration_ms, 2),
                    error_type=type(e).__name__,
                    error_message=str(e)
                )
                raise
            duration_ms = (time.monotonic() - start_time) * 1000
            logger.debug(
                f"Operation completed: {operation}",
                operation=operation,
                duration_ms=round(duration_ms, 2)
            )
            return result
        return wrapper
    return decorator
