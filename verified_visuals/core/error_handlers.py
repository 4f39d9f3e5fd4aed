"""
Error handlers for the Verified Visuals API
"""

import structlog
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = structlog.get_logger(__name__)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
):
    """Handle validation errors with detailed messages"""
    error_messages = []
    for error in exc.errors():
        field = ".".join(str(x) for x in error["loc"][1:])  # Skip 'body'
        msg = error["msg"]
        if field == "topic" and error["type"] == "string_too_short":
            error_messages.append("Topic must not be empty")
        elif field == "topic" and error["type"] == "string_too_long":
            error_messages.append(msg.replace("String", "Topic"))
        elif field == "audience":
            error_messages.append("audience must be one of the listed audience values")
        else:
            error_messages.append(f"{field}: {msg}" if field else msg)

    return JSONResponse(
        status_code=422,
        content={
            "error": "Validation Error",
            "detail": error_messages,
            "expected_format": {
                "topic": "research topic (1-500 chars)",
                "audience": "see GET /reports/audiences (optional, default: General Public)",
            },
            "request_id": getattr(request.state, "request_id", "unknown"),
        },
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions"""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": "HTTP Error",
            "detail": exc.detail,
            "status_code": exc.status_code,
            "request_id": getattr(request.state, "request_id", "unknown"),
        },
    )


async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions"""
    logger.error(
        "Unhandled exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        request_id=getattr(request.state, "request_id", "unknown"),
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal Server Error",
            "detail": "An unexpected error occurred",
            "request_id": getattr(request.state, "request_id", "unknown"),
        },
    )
