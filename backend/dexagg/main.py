"""
DEX Quote Aggregator - FastAPI application.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from .api.routes import router
from .chains.evm_client import EvmClient
from .chains.rpc_client import RpcClient
from .core.exceptions import (
    AggregatorError,
    aggregator_exception_handler,
    validation_exception_handler,
)
from .core.logging import cleanup_logging, setup_logging
from .core.settings import Settings, get_settings
from .services.aggregator import QuoteAggregator
from .services.token_metadata import RedisMetadataCache, TokenMetadataService


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Settings to build the app from; defaults to the global instance
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        # --- Startup ---
        setup_logging(
            log_level=settings.log_level,
            debug=settings.debug,
            log_to_file=settings.log_to_file,
            log_dir=settings.log_dir,
        )
        log = logging.getLogger("dexagg.main")

        app.state.started_at = datetime.now(timezone.utc)
        app.state.rpc_client = RpcClient(settings.node_url, timeout_seconds=settings.rpc_timeout_seconds)
        app.state.evm_client = EvmClient(app.state.rpc_client)
        app.state.metadata_cache = RedisMetadataCache.from_url(
            settings.redis_url, password=settings.redis_password
        )
        app.state.token_metadata = TokenMetadataService(
            app.state.evm_client, app.state.metadata_cache
        )
        app.state.aggregator = QuoteAggregator(
            app.state.evm_client,
            protocol_timeout_seconds=settings.protocol_timeout_seconds,
            default_deadline_seconds=settings.route_request_timeout_seconds,
        )

        log.info(
            f"Starting {settings.app_name}",
            extra={
                "extra_data": {
                    "environment": settings.environment,
                    "port": settings.port,
                    "debug": settings.debug,
                }
            },
        )

        try:
            yield
        finally:
            # --- Shutdown ---
            uptime = (datetime.now(timezone.utc) - app.state.started_at).total_seconds()
            log.info(
                f"Shutting down {settings.app_name}",
                extra={"extra_data": {"uptime_sec": uptime}},
            )

            try:
                await app.state.metadata_cache.close()
            except Exception as e:
                log.error(f"Error closing Redis connection: {e}")

            try:
                await app.state.rpc_client.close()
            except Exception as e:
                log.error(f"Error closing RPC client: {e}")

            cleanup_logging()

    app = FastAPI(
        title=settings.app_name,
        description="Best-rate quotes across Uniswap V3 style DEX protocols",
        version=settings.version,
        debug=settings.debug,
        lifespan=lifespan,
    )

    allow_all = "*" in settings.cors_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_origins,
        allow_credentials=not allow_all,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        max_age=600,
    )

    app.add_exception_handler(AggregatorError, aggregator_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    app.include_router(router)

    return app


app = create_app()

__all__ = ["app", "create_app"]
