"""
Error Taxonomy & Global Error Handling

This module defines the exceptions raised by the external service clients
and the FastAPI handlers that turn them into HTTP responses.

Taxonomy
--------
- ConfigurationError : a required credential or namespace is missing.
  Raised before any network call is attempted.
- UpstreamError      : an external service answered with a failure status
  (or could not be reached). Carries the raw response body.
- ProtocolError      : an external service answered with success but the
  payload did not have the expected shape.

Clients never recover from these locally. Retry policy belongs to callers.
"""

from __future__ import annotations

import logging
from typing import Dict, Any, Optional

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger("slackrag.errors")


# ---------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------

class SlackRagError(RuntimeError):
    """Base class for all service errors."""


class ConfigurationError(SlackRagError):
    """Raised when a required credential or namespace is not configured."""


class UpstreamError(SlackRagError):
    """
    Raised when an external service responds with a non-success status.

    Attributes
    ----------
    status_code : Optional[int]
        HTTP status returned by the service, or None for transport failures.

    body : Optional[str]
        Raw response body, kept for diagnostics.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ProtocolError(SlackRagError):
    """Raised when a successful response is missing the expected fields."""


# ---------------------------------------------------------------------
# Public Exception Handlers
# ---------------------------------------------------------------------

def _error_response(status_code: int, error: str, detail: str) -> JSONResponse:
    payload: Dict[str, Any] = {
        "error": error,
        "detail": detail,
    }
    return JSONResponse(status_code=status_code, content=payload)


async def configuration_error_handler(
    request: Request,
    exc: ConfigurationError,
) -> JSONResponse:
    """
    Map a missing credential to 503 Service Unavailable.

    The message names the missing setting only, never its value.
    """
    logger.error(
        "Configuration error during request %s %s: %s",
        request.method,
        request.url.path,
        exc,
    )
    return _error_response(503, "configuration_error", str(exc))


async def upstream_error_handler(
    request: Request,
    exc: SlackRagError,
) -> JSONResponse:
    """
    Map UpstreamError and ProtocolError to 502 Bad Gateway.

    The upstream body is logged but not returned to the client.
    """
    logger.error(
        "Upstream failure during request %s %s: %s (status=%s, body=%r)",
        request.method,
        request.url.path,
        exc,
        getattr(exc, "status_code", None),
        getattr(exc, "body", None),
    )
    return _error_response(502, "upstream_error", "An external service request failed.")


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """
    Catch-all handler for uncaught exceptions.

    Behavior
    --------
    - Logs the full exception stack trace for internal diagnostics.
    - Returns a generic 500 error to the client with no internal details.
    """
    logger.exception(
        "Unhandled exception during request: %s %s",
        request.method,
        request.url.path,
        exc_info=exc,
    )
    return _error_response(500, "internal_server_error", "Internal server error")
