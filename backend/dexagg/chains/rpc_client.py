"""
JSON-RPC transport to a single EVM node.
"""
from __future__ import annotations

import itertools
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

import httpx
from httpx import AsyncClient

from ..core.exceptions import ContractCallError, TransientNetworkError
from ..core.logging import get_logger

logger = get_logger(__name__)


class ProviderStatus(Enum):
    """RPC provider status."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    FAILED = "failed"


@dataclass
class ProviderMetrics:
    """RPC provider performance metrics."""
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    avg_response_time_ms: float = 0.0
    last_success_time: float = 0.0
    status: ProviderStatus = ProviderStatus.HEALTHY


class RpcClient:
    """
    JSON-RPC client for one node URL.

    Requests are not retried; a failure surfaces immediately as
    TransientNetworkError (transport, timeout, HTTP status) or
    ContractCallError (JSON-RPC error object). Cancelling the awaiting task
    aborts the in-flight HTTP request.
    """

    def __init__(
        self,
        url: str,
        timeout_seconds: float = 10.0,
        client: Optional[AsyncClient] = None,
    ) -> None:
        self.url = url
        self.timeout_seconds = timeout_seconds
        self.metrics = ProviderMetrics()
        self._client = client
        self._owns_client = client is None
        self._ids = itertools.count(1)

    @property
    def client(self) -> AsyncClient:
        if self._client is None:
            self._client = AsyncClient(
                timeout=httpx.Timeout(self.timeout_seconds, connect=min(self.timeout_seconds, 5.0)),
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
                headers={"User-Agent": "dex-quote-aggregator/1.0.0"},
            )
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
        logger.info("RPC client closed")

    async def make_request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """
        Make a single JSON-RPC request.

        Args:
            method: RPC method name
            params: RPC parameters

        Returns:
            The ``result`` member of the response

        Raises:
            TransientNetworkError: On timeout, connection failure or HTTP error
            ContractCallError: When the node answers with an error object
        """
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params or [],
            "id": next(self._ids),
        }
        start_time = time.monotonic()

        try:
            response = await self.client.post(self.url, json=payload)
        except httpx.TimeoutException as e:
            self._record_failure()
            raise TransientNetworkError(
                f"RPC {method} timed out", details={"method": method}
            ) from e
        except httpx.HTTPError as e:
            self._record_failure()
            raise TransientNetworkError(
                f"RPC {method} failed: {e}", details={"method": method}
            ) from e

        if response.status_code != 200:
            self._record_failure()
            raise TransientNetworkError(
                f"RPC {method} returned HTTP {response.status_code}",
                details={"method": method, "status_code": response.status_code},
            )

        try:
            data = response.json()
        except ValueError as e:
            self._record_failure()
            raise TransientNetworkError(
                f"RPC {method} returned invalid JSON", details={"method": method}
            ) from e

        if not isinstance(data, dict):
            self._record_failure()
            raise ContractCallError(
                f"RPC {method} returned a non-object response",
                details={"method": method, "response_type": type(data).__name__},
            )

        # A well-formed error object means the node is reachable
        self._record_success((time.monotonic() - start_time) * 1000)

        if data.get("error") is not None:
            error = data["error"]
            message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            logger.debug(
                f"RPC error for {method}: {message}",
                extra={"extra_data": {"method": method, "rpc_error": error}},
            )
            raise ContractCallError(
                f"RPC error: {message}", details={"method": method, "rpc_error": error}
            )

        return data.get("result")

    async def eth_call(self, to: str, data: str, block: str = "latest") -> str:
        """Execute ``eth_call`` and return the hex-encoded return data."""
        result = await self.make_request("eth_call", [{"to": to, "data": data}, block])
        if not isinstance(result, str):
            raise ContractCallError(
                "eth_call returned non-hex result", details={"to": to, "result": result}
            )
        return result

    def _record_success(self, response_time_ms: float) -> None:
        metrics = self.metrics
        metrics.total_requests += 1
        metrics.successful_requests += 1
        metrics.last_success_time = time.time()
        if metrics.avg_response_time_ms == 0:
            metrics.avg_response_time_ms = response_time_ms
        else:
            # Exponential moving average
            metrics.avg_response_time_ms = 0.8 * metrics.avg_response_time_ms + 0.2 * response_time_ms
        metrics.status = ProviderStatus.HEALTHY

    def _record_failure(self) -> None:
        metrics = self.metrics
        metrics.total_requests += 1
        metrics.failed_requests += 1
        failure_rate = metrics.failed_requests / metrics.total_requests
        if failure_rate > 0.5:
            metrics.status = ProviderStatus.FAILED
        elif failure_rate > 0.2:
            metrics.status = ProviderStatus.DEGRADED

    def get_health_status(self) -> Dict[str, Any]:
        """Snapshot of provider metrics for the health endpoint."""
        metrics = self.metrics
        success_rate = 0.0
        if metrics.total_requests > 0:
            success_rate = metrics.successful_requests / metrics.total_requests
        return {
            "status": metrics.status.value,
            "total_requests": metrics.total_requests,
            "success_rate": round(success_rate, 3),
            "avg_response_time_ms": round(metrics.avg_response_time_ms, 2),
        }
