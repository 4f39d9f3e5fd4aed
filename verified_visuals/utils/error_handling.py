"""
Lightweight error logging helpers.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator

import structlog

_logger = structlog.get_logger(__name__)


def log_exception(context: str, exc: BaseException, **fields: Any) -> None:
    """Log an exception with context at warning level."""
    _logger.warning(context, error=str(exc), error_type=type(exc).__name__, **fields)


@contextmanager
def safely(
    context: str,
    *,
    non_fatal: bool = False,
    **fields: Any
) -> Iterator[None]:
    """Context manager that logs and re-raises by default.

    Set non_fatal=True to swallow after logging.
    """
    try:
        yield
    except Exception as exc:
        log_exception(context, exc, **fields)
        if not non_fatal:
            raise


__all__ = ["log_exception", "safely"]
