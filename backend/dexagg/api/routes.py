"""
HTTP routes for route finding and token metadata.
"""
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, ConfigDict, Field

from ..chains.base import TokenMetadata
from ..chains.evm_client import to_checksum
from ..core.dependencies import get_aggregator, get_token_metadata_service, verify_api_key
from ..core.exceptions import ChainQueryError, FormatError, NotFoundError, TokenMetadataError
from ..core.logging import get_logger
from ..core.settings import Settings, get_settings
from ..dex.protocols import protocol_registry
from ..services.aggregator import QuoteAggregator, RouteQuote
from ..services.token_metadata import TokenMetadataService

logger = get_logger(__name__)

router = APIRouter(tags=["aggregator"])


class RouteModel(BaseModel):
    """Public shape of a single route; field names are camelCase on the wire."""

    model_config = ConfigDict(populate_by_name=True)

    protocol: str
    pool_address: str = Field(alias="poolAddress")
    fee: int
    token_in: str = Field(alias="tokenIn")
    token_out: str = Field(alias="tokenOut")
    amount_in: str = Field(alias="amountIn")
    amount_out: str = Field(alias="amountOut")

    @classmethod
    def from_route(cls, route: RouteQuote) -> "RouteModel":
        return cls(**route.to_dict())


class BestRouteResponse(BaseModel):
    result: RouteModel


class AllRoutesResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    best_route: RouteModel = Field(alias="bestRoute")
    all_routes: List[RouteModel] = Field(alias="allRoutes")


class TokenRequest(BaseModel):
    address: str


class TokenMetadataModel(BaseModel):
    address: str
    name: str
    symbol: str
    decimals: int

    @classmethod
    def from_metadata(cls, metadata: TokenMetadata) -> "TokenMetadataModel":
        return cls(**metadata.to_dict())


class TokenResponse(BaseModel):
    message: str
    token: TokenMetadataModel


def parse_raw_amount(value: str) -> int:
    """Parse a base-10 raw token amount."""
    text = value.strip()
    if not text or not (text.isascii() and text.isdigit()):
        raise FormatError("Invalid amount parameter", details={"amount": value})
    return int(text)


async def _resolve_token(
    service: TokenMetadataService, address: str, label: str
) -> TokenMetadata:
    try:
        metadata, _ = await service.get_token_metadata(address)
    except ChainQueryError as e:
        raise TokenMetadataError(
            f"Failed to get {label} metadata: {e.message}",
            details={"token_address": address},
        ) from e
    return metadata


@router.get("/")
async def root() -> dict:
    return {"message": "Hello, World!"}


@router.get("/protocols")
async def list_protocols() -> dict:
    """Every protocol key in the registry, queried or not."""
    return {"protocols": protocol_registry.supported_protocols()}


@router.get("/protocols/{name}")
async def get_protocol(name: str) -> dict:
    """Configuration of one protocol, by key or display name."""
    protocol = protocol_registry.lookup(name)
    if protocol is None:
        raise NotFoundError(f"Unknown protocol: {name}", details={"protocol": name})
    return {
        "key": protocol.key,
        "name": protocol.name,
        "factoryAddress": protocol.factory_address,
        "quoterAddress": protocol.router_address,
        "feeTiers": list(protocol.fee_tiers),
        "queried": protocol.is_uniswap_fork,
    }


@router.get(
    "/pairs",
    response_model=None,
    responses={200: {"model": AllRoutesResponse}},
)
async def find_routes(
    tokena: Optional[str] = Query(None, description="Input token address"),
    tokenb: Optional[str] = Query(None, description="Output token address"),
    amount: Optional[str] = Query(None, description="Input amount in the token's smallest unit"),
    show_all: bool = Query(False, alias="all", description="Return every route, not just the best"),
    aggregator: QuoteAggregator = Depends(get_aggregator),
    metadata_service: TokenMetadataService = Depends(get_token_metadata_service),
    settings: Settings = Depends(get_settings),
) -> dict:
    """
    Find the best route for swapping ``amount`` of tokena into tokenb.

    Returns ``{"result": route}``, or with ``all=true`` the best route plus
    every route sorted by output amount. An empty route is returned when no
    protocol has a pool for the pair.
    """
    if not tokena:
        raise FormatError("Missing required parameter: tokena")
    if not tokenb:
        raise FormatError("Missing required parameter: tokenb")

    token_a = to_checksum(tokena)
    token_b = to_checksum(tokenb)
    amount_in = parse_raw_amount(amount) if amount is not None else settings.default_amount_in

    metadata_a = await _resolve_token(metadata_service, token_a, "tokenA")
    metadata_b = await _resolve_token(metadata_service, token_b, "tokenB")

    logger.info(
        f"Route request {metadata_a.symbol} -> {metadata_b.symbol}",
        extra={
            "extra_data": {
                "token_in": token_a,
                "token_out": token_b,
                "amount_in": str(amount_in),
                "decimals_in": metadata_a.decimals,
                "decimals_out": metadata_b.decimals,
                "all_routes": show_all,
            }
        },
    )

    result = await aggregator.find_best_route(
        token_a,
        token_b,
        amount_in,
        metadata_a.decimals,
        metadata_b.decimals,
        metadata_a.symbol,
        metadata_b.symbol,
        deadline=settings.route_request_timeout_seconds,
    )

    best = RouteModel.from_route(result.best_route)
    if show_all:
        return AllRoutesResponse(
            best_route=best,
            all_routes=[RouteModel.from_route(route) for route in result.all_routes],
        ).model_dump(by_alias=True)
    return BestRouteResponse(result=best).model_dump(by_alias=True)


@router.post("/token", response_model=TokenResponse, dependencies=[Depends(verify_api_key)])
async def register_token(
    token_request: TokenRequest,
    metadata_service: TokenMetadataService = Depends(get_token_metadata_service),
) -> TokenResponse:
    """Return cached token metadata, or fetch it from the chain and cache it."""
    address = to_checksum(token_request.address)
    try:
        metadata, from_cache = await metadata_service.get_token_metadata(address)
    except ChainQueryError as e:
        raise TokenMetadataError(
            f"Failed to fetch token metadata: {e.message}",
            details={"token_address": address},
        ) from e

    message = (
        "Token metadata retrieved from cache"
        if from_cache
        else "Token metadata fetched and saved"
    )
    return TokenResponse(message=message, token=TokenMetadataModel.from_metadata(metadata))


@router.get("/health")
async def health_check(request: Request) -> dict:
    """Liveness plus RPC provider metrics."""
    evm_client = getattr(request.app.state, "evm_client", None)
    return {
        "status": "OK",
        "service": request.app.title,
        "protocols": len(protocol_registry.supported_protocols()),
        "queried_protocols": len(protocol_registry.list_fork_compatible_protocols()),
        "chain": evm_client.get_health_status() if evm_client is not None else None,
    }
