"""Structured logging setup for the Verified Visuals service.

structlog events and stdlib records (uvicorn, httpx, google-genai) both end
up in one root handler whose ``ProcessorFormatter`` renders JSON, or a
console layout when ``LOG_PRETTY=1``. Contextvars are merged into every
line, so logs emitted during a pipeline run carry ``request_id``/``run_id``.

Modules call ``structlog.get_logger(__name__)`` and never reconfigure.
"""

from __future__ import annotations

import logging
import os
from typing import Dict, Optional

import structlog
from structlog.contextvars import bind_contextvars

__all__ = [
    "configure_logging",
    "bind_request_context",
]


def _pick_renderer():
    pretty = os.getenv("LOG_PRETTY", "0").lower() in {"1", "true", "yes"}
    if pretty:
        return structlog.dev.ConsoleRenderer()
    return structlog.processors.JSONRenderer()


def configure_logging(force: bool = False) -> None:  # noqa: D401
    """Install the structlog pipeline and root handler once per process.

    Args:
        force: Reconfigure even when already configured (tests switching
               renderer or level).
    """

    if getattr(structlog, "_vv_configured", False) and not force:  # type: ignore[attr-defined]
        return

    level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)
    timestamper = structlog.processors.TimeStamper(fmt="iso")

    pre_chain = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        timestamper,
    ]

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=pre_chain,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            _pick_renderer(),
        ],
    )

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    root.addHandler(handler)
    root.setLevel(level)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *pre_chain,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    setattr(structlog, "_vv_configured", True)  # type: ignore[attr-defined]


def bind_request_context(
    request_id: Optional[str] = None,
    run_id: Optional[int] = None,
) -> None:
    """Bind correlation IDs for every log line that follows in this context."""
    payload: Dict[str, object] = {}
    if request_id:
        payload["request_id"] = request_id
    if run_id is not None:
        payload["run_id"] = run_id
    if payload:
        bind_contextvars(**payload)
