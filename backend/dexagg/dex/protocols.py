"""
DEX protocol registry.

Static table of the protocols the aggregator knows about. Adding a protocol
means adding an entry to ``PROTOCOLS``; nothing here is discovered at runtime.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple


@dataclass(frozen=True)
class ProtocolConfig:
    """DEX protocol configuration."""

    key: str
    name: str
    factory_address: str
    router_address: str
    fee_tiers: Tuple[int, ...]
    # Exposes a Uniswap V3 style quoteExactInputSingle(fee tier) interface
    is_uniswap_fork: bool


PROTOCOLS: Dict[str, ProtocolConfig] = {
    "uniswapv3": ProtocolConfig(
        key="uniswapv3",
        name="Uniswap V3",
        factory_address="0x961235a9020b05c44df1026d956d1f4d78014276",
        router_address="0x4c4eabd5fb1d1a7234a48692551eaecff8194ca7",
        fee_tiers=(500, 3000, 10000),
        is_uniswap_fork=True,
    ),
    "uniswapv2": ProtocolConfig(
        key="uniswapv2",
        name="Uniswap V2",
        factory_address="0x961235a9020b05c44df1026d956d1f4d78014276",
        router_address="0x3ae6d8a282d67893e17aa70ebffb33ee5aa65893",
        fee_tiers=(30,),  # fixed 0.3%
        is_uniswap_fork=False,
    ),
    "sushiswapv3": ProtocolConfig(
        key="sushiswapv3",
        name="Sushiswap V3",
        factory_address="0xBACeb8eC6b9355Dfc0269C18bac9d6E2Bdc29C4F",
        router_address="0x8A21F6768C1f8075791D08546Bd61770d3F8a48F",
        fee_tiers=(100, 500, 3000, 10000),
        is_uniswap_fork=True,
    ),
    "pancakeswapv3": ProtocolConfig(
        key="pancakeswapv3",
        name="PancakeSwap V3",
        factory_address="0x0BFbCF9fa4f9C56B0F40a671Ad40E0805A091865",
        router_address="0x13f4EA83D0bd40E75C8222255bc855a974568Dd4",
        fee_tiers=(100, 500, 2500, 10000),
        is_uniswap_fork=True,
    ),
    "tayaswap": ProtocolConfig(
        key="tayaswap",
        name="Tayaswap V3",
        factory_address="0xf3fd5503fb2bb5f5a7ae713e621ac5c50f191fb3",
        router_address="0x4ba4be2fb69e2aa059a551ce5d609ef5818dd72f",
        fee_tiers=(100, 500, 2500, 10000),
        is_uniswap_fork=True,
    ),
    "reactor": ProtocolConfig(
        key="reactor",
        name="Reactor V3",
        factory_address="0xf3fd5503fb2bb5f5a7ae713e621ac5c50f191fb3",
        router_address="0x4ba4be2fb69e2aa059a551ce5d609ef5818dd72f",
        fee_tiers=(100, 500, 2500, 10000),
        is_uniswap_fork=True,
    ),
    "naddotfun": ProtocolConfig(
        key="naddotfun",
        name="Naddotfun",  # uniswap v2 fork
        factory_address="0x13eD0D5e1567684D964469cCbA8A977CDA580827",
        router_address="0x3ae6d8a282d67893e17aa70ebffb33ee5aa65893",
        fee_tiers=(30,),
        is_uniswap_fork=False,
    ),
}


class ProtocolRegistry:
    """
    Read-only view over a protocol table.

    The aggregator takes a registry instance rather than the module table so
    tests can supply their own protocols.
    """

    def __init__(self, protocols: Optional[Dict[str, ProtocolConfig]] = None) -> None:
        self._protocols: Dict[str, ProtocolConfig] = dict(
            PROTOCOLS if protocols is None else protocols
        )

    def supported_protocols(self) -> List[str]:
        """Return every protocol key in table order."""
        return list(self._protocols)

    def lookup(self, name: str) -> Optional[ProtocolConfig]:
        """
        Find a protocol by table key or display name.

        Args:
            name: Key such as ``"uniswapv3"`` or name such as ``"Uniswap V3"``

        Returns:
            Matching configuration or None
        """
        wanted = name.strip().lower()
        protocol = self._protocols.get(wanted)
        if protocol is not None:
            return protocol
        for candidate in self._protocols.values():
            if candidate.name.lower() == wanted:
                return candidate
        return None

    def list_fork_compatible_protocols(self) -> List[ProtocolConfig]:
        """Return protocols exposing the fee-tier quoter interface, in table order."""
        return [p for p in self._protocols.values() if p.is_uniswap_fork]


# Global registry over the static table
protocol_registry = ProtocolRegistry()
