"""
Shared fixtures: an in-process chain double and small protocol tables.
"""
from __future__ import annotations

import asyncio
from typing import Dict, List, Optional, Tuple, Union

import pytest

from dexagg.chains.base import TokenMetadata
from dexagg.core.exceptions import ContractCallError
from dexagg.dex.protocols import ProtocolConfig, ProtocolRegistry

USDC = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
WBTC = "0x2260FAC5E5542a773Aa44fBCfeDf7C193bc2C599"


def make_protocol(
    key: str,
    fee_tiers: Tuple[int, ...] = (3000,),
    is_uniswap_fork: bool = True,
) -> ProtocolConfig:
    return ProtocolConfig(
        key=key,
        name=key.title(),
        factory_address=f"factory-{key}",
        router_address=f"router-{key}",
        fee_tiers=fee_tiers,
        is_uniswap_fork=is_uniswap_fork,
    )


def make_registry(*protocols: ProtocolConfig) -> ProtocolRegistry:
    return ProtocolRegistry({p.key: p for p in protocols})


class FakeChain:
    """
    Scriptable ChainQuery.

    ``pools`` maps (factory, fee) to a pool address, None, or an exception.
    ``quotes`` maps (router, fee) to a raw amount or an exception.
    ``delays`` maps (router, fee) to seconds slept before quoting.
    """

    def __init__(self) -> None:
        self.pools: Dict[Tuple[str, int], Union[str, None, Exception]] = {}
        self.quotes: Dict[Tuple[str, int], Union[int, Exception]] = {}
        self.delays: Dict[Tuple[str, int], float] = {}
        self.metadata: Dict[str, TokenMetadata] = {}
        self.calls: List[Tuple[str, str, int]] = []

    def add_route(self, protocol: ProtocolConfig, fee: int, amount_out: int) -> None:
        self.pools[(protocol.factory_address, fee)] = f"pool-{protocol.key}-{fee}"
        self.quotes[(protocol.router_address, fee)] = amount_out

    async def get_pool_address(
        self, factory_address: str, token_a: str, token_b: str, fee_tier: int
    ) -> Optional[str]:
        self.calls.append(("getPool", factory_address, fee_tier))
        value = self.pools.get((factory_address, fee_tier))
        if isinstance(value, Exception):
            raise value
        return value

    async def pool_exists(
        self, factory_address: str, token_a: str, token_b: str, fee_tier: int
    ) -> bool:
        return await self.get_pool_address(factory_address, token_a, token_b, fee_tier) is not None

    async def quote_exact_input_single(
        self, quoter_address: str, token_in: str, token_out: str, fee_tier: int, amount_in: int
    ) -> int:
        self.calls.append(("quote", quoter_address, fee_tier))
        delay = self.delays.get((quoter_address, fee_tier))
        if delay:
            await asyncio.sleep(delay)
        value = self.quotes.get((quoter_address, fee_tier))
        if value is None:
            raise ContractCallError("execution reverted")
        if isinstance(value, Exception):
            raise value
        return value

    async def get_token_metadata(self, token_address: str) -> TokenMetadata:
        self.calls.append(("metadata", token_address, 0))
        metadata = self.metadata.get(token_address)
        if metadata is None:
            raise ContractCallError(f"no contract at {token_address}")
        return metadata


@pytest.fixture
def chain() -> FakeChain:
    return FakeChain()


@pytest.fixture
def usdc() -> TokenMetadata:
    return TokenMetadata(address=USDC, name="USD Coin", symbol="USDC", decimals=6)


@pytest.fixture
def wbtc() -> TokenMetadata:
    return TokenMetadata(address=WBTC, name="Wrapped BTC", symbol="WBTC", decimals=8)
