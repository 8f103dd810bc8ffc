"""
Core dependencies for FastAPI dependency injection.

Provides API key authentication and access to the shared services created
by the application lifespan.
"""
from __future__ import annotations

import hmac
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status

from ..services.aggregator import QuoteAggregator
from ..services.token_metadata import TokenMetadataService
from .logging import get_logger
from .settings import Settings, get_settings

logger = get_logger(__name__)


def verify_api_key(
    x_api_key: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
) -> bool:
    """
    Verify the API key sent in the ``x-api-key`` header.

    Args:
        x_api_key: API key from request header
        settings: Application settings holding the expected key

    Returns:
        True if valid, raises HTTPException otherwise

    Raises:
        HTTPException: If the API key is missing or does not match
    """
    if not x_api_key:
        logger.warning("API key required but not provided")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing API key",
        )

    if not hmac.compare_digest(x_api_key.encode(), settings.api_key.encode()):
        logger.warning(
            "Invalid API key provided",
            extra={"extra_data": {"provided_length": len(x_api_key)}},
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
        )

    return True


def get_aggregator(request: Request) -> QuoteAggregator:
    """Shared quote aggregator created at startup."""
    aggregator = getattr(request.app.state, "aggregator", None)
    if aggregator is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Quote aggregator not initialized",
        )
    return aggregator


def get_token_metadata_service(request: Request) -> TokenMetadataService:
    """Shared token metadata service created at startup."""
    service = getattr(request.app.state, "token_metadata", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Token metadata service not initialized",
        )
    return service


__all__ = [
    "verify_api_key",
    "get_aggregator",
    "get_token_metadata_service",
]
