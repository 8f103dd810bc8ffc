"""
Token pair bookkeeping keyed by an order-independent pair key.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from ..core.logging import get_logger

logger = get_logger(__name__)

PAIR_KEY_SEPARATOR = "-"


@dataclass(frozen=True)
class ERC20Token:
    """Token identity plus display metadata; use same_token() to compare identity."""

    address: str
    symbol: str = ""
    decimals: int = 18
    name: str = ""

    def same_token(self, other: "ERC20Token") -> bool:
        return self.address.lower() == other.address.lower()


@dataclass(frozen=True)
class TokenPair:
    token0: ERC20Token
    token1: ERC20Token


@dataclass(frozen=True)
class ProtocolPair:
    """A protocol contract that trades a given pair."""

    protocol_name: str
    contract_address: str
    pair: TokenPair


def pair_key(address0: str, address1: str) -> str:
    """
    Build the canonical key for an unordered pair of token addresses.

    Addresses are lower-cased first so checksummed and plain hex spellings of
    the same token produce the same key.
    """
    a, b = address0.lower(), address1.lower()
    if a < b:
        return a + PAIR_KEY_SEPARATOR + b
    return b + PAIR_KEY_SEPARATOR + a


class PairRegistry:
    """In-memory registry of token pairs and the protocols trading them."""

    def __init__(self) -> None:
        self.pairs: Dict[str, TokenPair] = {}
        self.protocol_pairs: Dict[str, List[ProtocolPair]] = {}

    def add_pair(self, token0: ERC20Token, token1: ERC20Token) -> None:
        self.pairs[pair_key(token0.address, token1.address)] = TokenPair(token0, token1)

    def get_pair(self, address0: str, address1: str) -> Optional[TokenPair]:
        return self.pairs.get(pair_key(address0, address1))

    def add_protocol_pair(
        self,
        protocol_name: str,
        contract_address: str,
        pair: TokenPair,
    ) -> ProtocolPair:
        """Register a protocol contract for a pair, ignoring exact duplicates."""
        key = pair_key(pair.token0.address, pair.token1.address)
        protocol_pair = ProtocolPair(protocol_name, contract_address, pair)
        entries = self.protocol_pairs.setdefault(key, [])
        if protocol_pair not in entries:
            entries.append(protocol_pair)
            logger.debug(
                f"Registered {protocol_name} for pair {key}",
                extra={"extra_data": {"pair": key, "contract": contract_address}},
            )
        return protocol_pair

    def get_protocol_pairs(self, address0: str, address1: str) -> List[ProtocolPair]:
        return list(self.protocol_pairs.get(pair_key(address0, address1), []))

    def find_protocols_for_pair(self, address0: str, address1: str) -> List[str]:
        """Names of every protocol registered for the pair, first-registered first."""
        names: List[str] = []
        for entry in self.get_protocol_pairs(address0, address1):
            if entry.protocol_name not in names:
                names.append(entry.protocol_name)
        return names
