"""
Error Taxonomy and Global Error Handling

This module defines the exception hierarchy used across the CV query engine
and the FastAPI exception handlers that map it onto HTTP responses.

Design Goals
------------
- Configuration and validation failures are rejected before any embedding
  or model call is made
- Never leak internal exception details to clients
- Always return deterministic, machine-readable error responses
- Log full stack traces internally for debugging
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger("cv.errors")


# ---------------------------------------------------------------------
# Exception Hierarchy
# ---------------------------------------------------------------------

class CVAgentError(Exception):
    """Base class for all errors raised by the query engine."""


class ConfigurationError(CVAgentError):
    """Required credentials or connection strings are missing."""


class InvalidRequestError(CVAgentError):
    """
    Malformed input: bad message shape, nothing left after adaptation,
    or tool arguments that violate the tool schema.
    """

    def __init__(self, message: str, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.details = details


class RetrievalError(CVAgentError):
    """An embedding or vector-store call failed."""


class EmbeddingError(RetrievalError):
    """Raised when embedding generation fails."""


class VectorStoreError(RetrievalError):
    """Raised when the vector store cannot be queried."""


class ProviderError(CVAgentError):
    """Upstream language-model provider failure (rate limit, outage, bad key)."""


class AgentTimeoutError(CVAgentError):
    """The request's wall-clock budget elapsed before the model finished."""


# ---------------------------------------------------------------------
# Response Helpers
# ---------------------------------------------------------------------

def _error_payload(error: str, detail: Any) -> Dict[str, Any]:
    return {"error": error, "detail": detail}


# ---------------------------------------------------------------------
# Public Exception Handlers
# ---------------------------------------------------------------------

async def configuration_error_handler(
    request: Request,
    exc: ConfigurationError,
) -> JSONResponse:
    """
    Map ConfigurationError to a generic 500.

    The names of the missing variables are logged but never returned.
    """
    logger.error(
        "Configuration error during request %s %s: %s",
        request.method,
        request.url.path,
        exc,
    )
    return JSONResponse(
        status_code=500,
        content=_error_payload("configuration_error", "Missing required configuration"),
    )


async def invalid_request_handler(
    request: Request,
    exc: InvalidRequestError,
) -> JSONResponse:
    """Map InvalidRequestError to a 400 carrying the validation details."""
    detail = exc.details if exc.details is not None else str(exc)
    return JSONResponse(
        status_code=400,
        content=_error_payload("invalid_request", detail),
    )


async def request_validation_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """
    Route FastAPI's body validation failures through the same 400 envelope
    used for InvalidRequestError.
    """
    return JSONResponse(
        status_code=400,
        content=_error_payload("invalid_request", _jsonable_errors(exc)),
    )


async def provider_error_handler(
    request: Request,
    exc: ProviderError,
) -> JSONResponse:
    """Map provider failures raised before streaming started to a 502."""
    logger.error(
        "Provider error during request %s %s: %s",
        request.method,
        request.url.path,
        exc,
    )
    return JSONResponse(
        status_code=502,
        content=_error_payload("provider_error", "Upstream model provider failed"),
    )


async def retrieval_error_handler(
    request: Request,
    exc: RetrievalError,
) -> JSONResponse:
    """Map a failed embedding or vector-store call on a direct search to a 502."""
    logger.error(
        "Retrieval failed during request %s %s: %s",
        request.method,
        request.url.path,
        exc,
    )
    return JSONResponse(
        status_code=502,
        content=_error_payload("retrieval_failed", "Search backend unavailable"),
    )


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
    - Ensures consistent error response format across the entire API.

    Parameters
    ----------
    request : Request
        The incoming HTTP request that triggered the exception.

    exc : Exception
        The uncaught exception instance.

    Returns
    -------
    JSONResponse
        A JSON 500 response with a minimal error payload.
    """

    # Log full traceback internally (never returned to client)
    logger.exception(
        "Unhandled exception during request: %s %s",
        request.method,
        request.url.path,
        exc_info=exc,
    )

    return JSONResponse(
        status_code=500,
        content=_error_payload("internal_server_error", "Internal server error"),
    )


def _jsonable_errors(exc: RequestValidationError) -> list:
    # ctx may hold exception instances which are not JSON serializable
    errors = []
    for err in exc.errors():
        errors.append({k: v for k, v in err.items() if k in ("loc", "msg", "type")})
    return errors
