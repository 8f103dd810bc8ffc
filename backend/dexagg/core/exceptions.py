"""Custom exceptions and exception handling for the HTTP layer."""

from __future__ import annotations

import uuid
from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .logging import get_logger

logger = get_logger(__name__)


class AggregatorError(Exception):
    """Base exception for the quote aggregator."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        error_code: str = "UNKNOWN_ERROR",
        details: Optional[Dict[str, Any]] = None,
        trace_id: Optional[str] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.trace_id = trace_id or str(uuid.uuid4())
        super().__init__(self.message)


class ConfigurationError(AggregatorError):
    """Raised when there's a configuration issue."""

    pass


class NotFoundError(AggregatorError):
    """Raised when a pool, pair or token is absent."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("error_code", "NOT_FOUND")
        super().__init__(message, **kwargs)


class ChainQueryError(AggregatorError):
    """Raised when a call against the chain node fails."""

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("error_code", "CHAIN_QUERY_ERROR")
        super().__init__(message, **kwargs)


class TransientNetworkError(ChainQueryError):
    """Timeouts, connection failures and non-200 responses from the node."""

    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("error_code", "TRANSIENT_NETWORK_ERROR")
        super().__init__(message, **kwargs)


class ContractCallError(ChainQueryError):
    """JSON-RPC error objects, reverts and undecodable return data."""

    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("error_code", "CONTRACT_CALL_ERROR")
        super().__init__(message, **kwargs)


class FormatError(AggregatorError):
    """Raised when numeric or address input is malformed."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("error_code", "FORMAT_ERROR")
        super().__init__(message, **kwargs)


class TokenMetadataError(AggregatorError):
    """Raised when a request names a token whose metadata cannot be resolved."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("error_code", "TOKEN_METADATA_ERROR")
        super().__init__(message, **kwargs)


class DeadlineExceeded(AggregatorError):
    """Raised when the caller deadline fires before every protocol finished."""

    status_code = status.HTTP_504_GATEWAY_TIMEOUT

    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("error_code", "DEADLINE_EXCEEDED")
        super().__init__(message, **kwargs)


class CacheError(AggregatorError):
    """Raised when the token metadata cache backend fails."""

    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("error_code", "CACHE_ERROR")
        super().__init__(message, **kwargs)


async def aggregator_exception_handler(request: Request, exc: AggregatorError) -> JSONResponse:
    """
    Render AggregatorError subclasses as structured JSON responses.

    Args:
        request: FastAPI request object
        exc: Exception that was raised

    Returns:
        JSON response with error details and trace ID
    """
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        f"Application error: {exc.message}",
        extra={
            "extra_data": {
                "error_code": exc.error_code,
                "trace_id": exc.trace_id,
                "method": request.method,
                "path": request.url.path,
                "details": exc.details,
            }
        },
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.message,
            "error_code": exc.error_code,
            "trace_id": exc.trace_id,
        },
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render request validation failures as 400 with the same body shape."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    if location:
        message = f"{location}: {message}"
    trace_id = str(uuid.uuid4())

    logger.warning(
        f"Invalid request format: {message}",
        extra={
            "extra_data": {
                "trace_id": trace_id,
                "method": request.method,
                "path": request.url.path,
                "field": location or None,
            }
        },
    )

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": f"Invalid request format: {message}",
            "error_code": "INVALID_REQUEST",
            "trace_id": trace_id,
        },
    )
