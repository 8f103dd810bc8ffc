"""
Multi-protocol quote aggregation.

Fans out one task per fork-compatible protocol, walks each protocol's fee
tiers sequentially, and ranks every successful quote by output amount.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Union

from ..chains.base import ChainQuery
from ..core.exceptions import AggregatorError, DeadlineExceeded, FormatError
from ..core.logging import get_logger
from ..dex.protocols import ProtocolConfig, ProtocolRegistry, protocol_registry
from ..dex.units import to_decimal_string

logger = get_logger(__name__)

DEFAULT_PROTOCOL_TIMEOUT_SECONDS = 5.0
MAX_UINT256 = 2**256 - 1


@dataclass(frozen=True)
class RouteQuote:
    """A single quote from a specific protocol and pool."""

    protocol: str
    pool_address: str
    fee: int
    token_in: str
    token_out: str
    amount_in: str
    amount_out: str
    # Comparison key only; never serialized
    amount_out_raw: int = field(default=0, compare=False)

    def to_dict(self) -> dict:
        return {
            "protocol": self.protocol,
            "poolAddress": self.pool_address,
            "fee": self.fee,
            "tokenIn": self.token_in,
            "tokenOut": self.token_out,
            "amountIn": self.amount_in,
            "amountOut": self.amount_out,
        }


# Zero-value marker returned as best route when nothing was found
EMPTY_ROUTE = RouteQuote(
    protocol="",
    pool_address="",
    fee=0,
    token_in="",
    token_out="",
    amount_in="",
    amount_out="",
    amount_out_raw=0,
)


@dataclass(frozen=True)
class AggregatorResult:
    best_route: RouteQuote
    all_routes: List[RouteQuote]

    @property
    def has_route(self) -> bool:
        return bool(self.all_routes)


class SkipReason(str, Enum):
    POOL_NOT_FOUND = "pool_not_found"
    POOL_LOOKUP_FAILED = "pool_lookup_failed"
    QUOTE_FAILED = "quote_failed"


@dataclass(frozen=True)
class Recorded:
    route: RouteQuote


@dataclass(frozen=True)
class Skipped:
    protocol: str
    fee_tier: int
    reason: SkipReason
    error: Optional[str] = None


FeeTierOutcome = Union[Recorded, Skipped]


@dataclass(frozen=True)
class QuoteRequest:
    """Per-call parameters threaded through every protocol task."""

    token_in: str
    token_out: str
    amount_in: int
    decimals_in: int
    decimals_out: int
    symbol_in: str
    symbol_out: str


def rank_routes(routes: List[RouteQuote]) -> List[RouteQuote]:
    """Sort descending by raw output; equal outputs keep discovery order."""
    return sorted(routes, key=lambda route: route.amount_out_raw, reverse=True)


class QuoteAggregator:
    """
    Finds the best single-pool route across fork-compatible protocols.

    Holds no per-request state; concurrent calls do not interfere.
    """

    def __init__(
        self,
        chain: ChainQuery,
        registry: Optional[ProtocolRegistry] = None,
        protocol_timeout_seconds: float = DEFAULT_PROTOCOL_TIMEOUT_SECONDS,
        default_deadline_seconds: Optional[float] = None,
    ) -> None:
        self.chain = chain
        self.registry = registry or protocol_registry
        self.protocol_timeout_seconds = protocol_timeout_seconds
        self.default_deadline_seconds = default_deadline_seconds

    async def find_best_route(
        self,
        token_in: str,
        token_out: str,
        amount_in: int,
        decimals_in: int,
        decimals_out: int,
        symbol_in: str,
        symbol_out: str,
        deadline: Optional[float] = None,
    ) -> AggregatorResult:
        """
        Find the best route for a swap across all supported protocols.

        Args:
            token_in: Input token address
            token_out: Output token address
            amount_in: Input amount in smallest units
            decimals_in: Input token decimals
            decimals_out: Output token decimals
            symbol_in: Input token symbol (display only)
            symbol_out: Output token symbol (display only)
            deadline: Seconds the whole call may take (None waits for every
                protocol's own timeout)

        Returns:
            Best route plus every route, sorted by output amount

        Raises:
            DeadlineExceeded: If the deadline fires before all protocols finish
            FormatError: If the amount or decimals are invalid
        """
        request = QuoteRequest(
            token_in=token_in,
            token_out=token_out,
            amount_in=amount_in,
            decimals_in=decimals_in,
            decimals_out=decimals_out,
            symbol_in=symbol_in,
            symbol_out=symbol_out,
        )
        # Validates amount and decimals before any network call
        amount_in_str = to_decimal_string(amount_in, decimals_in)
        to_decimal_string(0, decimals_out)
        if amount_in > MAX_UINT256:
            raise FormatError(
                "Amount exceeds the uint256 range",
                details={"amount_in": str(amount_in)},
            )

        protocols = self.registry.list_fork_compatible_protocols()
        if not protocols:
            logger.info("No fork-compatible protocols configured")
            return AggregatorResult(best_route=EMPTY_ROUTE, all_routes=[])

        if deadline is None:
            deadline = self.default_deadline_seconds

        loop = asyncio.get_running_loop()
        expires_at = None if deadline is None else loop.time() + deadline

        tasks = [
            asyncio.create_task(
                self._query_protocol(protocol, request, amount_in_str, expires_at),
                name=f"quote:{protocol.key}",
            )
            for protocol in protocols
        ]

        try:
            # gather returns per-protocol lists in protocol order
            per_protocol = await asyncio.wait_for(asyncio.gather(*tasks), timeout=deadline)
        except (asyncio.TimeoutError, DeadlineExceeded) as e:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.warning(
                f"Route search exceeded deadline of {deadline}s",
                extra={
                    "extra_data": {
                        "token_in": token_in,
                        "token_out": token_out,
                        "deadline_seconds": deadline,
                        "protocols": [p.key for p in protocols],
                    }
                },
            )
            raise DeadlineExceeded(
                f"Route search did not finish within {deadline}s",
                details={"deadline_seconds": deadline},
            ) from e

        all_routes = rank_routes([route for routes in per_protocol for route in routes])
        best_route = all_routes[0] if all_routes else EMPTY_ROUTE

        logger.info(
            f"Found {len(all_routes)} routes across {len(protocols)} protocols",
            extra={
                "extra_data": {
                    "token_in": token_in,
                    "token_out": token_out,
                    "amount_in": str(amount_in),
                    "route_count": len(all_routes),
                    "best_protocol": best_route.protocol or None,
                    "best_amount_out": best_route.amount_out or None,
                }
            },
        )
        return AggregatorResult(best_route=best_route, all_routes=all_routes)

    async def _query_protocol(
        self,
        protocol: ProtocolConfig,
        request: QuoteRequest,
        amount_in_str: str,
        expires_at: Optional[float],
    ) -> List[RouteQuote]:
        """
        Collect routes for one protocol within its sub-deadline.

        Never raises for chain failures: a protocol that cannot be reached
        contributes whatever it recorded before failing, usually nothing.
        When the caller deadline is shorter than the protocol timeout, running
        out of time is the caller's deadline firing and raises DeadlineExceeded.
        """
        recorded: List[RouteQuote] = []
        timeout = self.protocol_timeout_seconds
        caller_bound = False
        if expires_at is not None:
            remaining = max(0.0, expires_at - asyncio.get_running_loop().time())
            if remaining <= timeout:
                timeout = remaining
                caller_bound = True

        try:
            await asyncio.wait_for(
                self._walk_fee_tiers(protocol, request, amount_in_str, recorded),
                timeout=timeout,
            )
        except asyncio.TimeoutError as e:
            if caller_bound:
                raise DeadlineExceeded(
                    f"{protocol.name} still running at the caller deadline",
                    details={"protocol": protocol.name},
                ) from e
            logger.warning(
                f"{protocol.name} did not answer within {timeout:.2f}s",
                extra={
                    "extra_data": {
                        "protocol": protocol.name,
                        "timeout_seconds": timeout,
                        "routes_recorded": len(recorded),
                    }
                },
            )
        except AggregatorError as e:
            logger.error(
                f"Error getting quotes from {protocol.name}: {e}",
                extra={"extra_data": {"protocol": protocol.name, "error_code": e.error_code}},
            )
        except Exception as e:
            logger.error(
                f"Unexpected error getting quotes from {protocol.name}: {e}",
                extra={"extra_data": {"protocol": protocol.name, "error_type": type(e).__name__}},
                exc_info=True,
            )
        return list(recorded)

    async def _walk_fee_tiers(
        self,
        protocol: ProtocolConfig,
        request: QuoteRequest,
        amount_in_str: str,
        recorded: List[RouteQuote],
    ) -> None:
        for fee_tier in protocol.fee_tiers:
            outcome = await self._query_fee_tier(protocol, fee_tier, request, amount_in_str)
            if isinstance(outcome, Recorded):
                recorded.append(outcome.route)

    async def _query_fee_tier(
        self,
        protocol: ProtocolConfig,
        fee_tier: int,
        request: QuoteRequest,
        amount_in_str: str,
    ) -> FeeTierOutcome:
        """Look up the pool for one fee tier and quote through it."""
        try:
            pool_address = await self.chain.get_pool_address(
                protocol.factory_address, request.token_in, request.token_out, fee_tier
            )
        except Exception as e:
            # A zero pool address and a failed lookup both skip the tier, but
            # they are tagged apart so node problems stay visible in the logs
            return self._skip(protocol, fee_tier, SkipReason.POOL_LOOKUP_FAILED, e)

        if pool_address is None:
            return self._skip(protocol, fee_tier, SkipReason.POOL_NOT_FOUND)

        try:
            amount_out = await self.chain.quote_exact_input_single(
                protocol.router_address,
                request.token_in,
                request.token_out,
                fee_tier,
                request.amount_in,
            )
        except Exception as e:
            return self._skip(protocol, fee_tier, SkipReason.QUOTE_FAILED, e)

        route = RouteQuote(
            protocol=protocol.name,
            pool_address=pool_address,
            fee=fee_tier,
            token_in=request.symbol_in,
            token_out=request.symbol_out,
            amount_in=amount_in_str,
            amount_out=to_decimal_string(amount_out, request.decimals_out),
            amount_out_raw=amount_out,
        )
        logger.debug(
            f"{protocol.name} fee {fee_tier}: {route.amount_out} {request.symbol_out}",
            extra={
                "extra_data": {
                    "protocol": protocol.name,
                    "fee_tier": fee_tier,
                    "pool_address": pool_address,
                    "amount_out": route.amount_out,
                }
            },
        )
        return Recorded(route)

    def _skip(
        self,
        protocol: ProtocolConfig,
        fee_tier: int,
        reason: SkipReason,
        error: Optional[Exception] = None,
    ) -> Skipped:
        log = logger.debug if reason is SkipReason.POOL_NOT_FOUND else logger.info
        log(
            f"Skipping {protocol.name} fee {fee_tier}: {reason.value}",
            extra={
                "extra_data": {
                    "protocol": protocol.name,
                    "fee_tier": fee_tier,
                    "reason": reason.value,
                    "error": str(error) if error else None,
                }
            },
            # Traceback only for errors outside the chain-layer hierarchy
            exc_info=error if error is not None and not isinstance(error, AggregatorError) else None,
        )
        return Skipped(
            protocol=protocol.name,
            fee_tier=fee_tier,
            reason=reason,
            error=str(error) if error else None,
        )
