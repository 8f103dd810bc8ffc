from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Protocol


@dataclass(frozen=True)
class TokenMetadata:
    address: str
    name: str
    symbol: str
    decimals: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TokenMetadata":
        return cls(
            address=str(data["address"]),
            name=str(data.get("name", "")),
            symbol=str(data.get("symbol", "")),
            decimals=int(data["decimals"]),
        )


class ChainQuery(Protocol):
    """Contract calls the aggregator and metadata service depend on."""

    async def get_pool_address(
        self, factory_address: str, token_a: str, token_b: str, fee_tier: int
    ) -> Optional[str]:
        ...

    async def pool_exists(
        self, factory_address: str, token_a: str, token_b: str, fee_tier: int
    ) -> bool:
        ...

    async def quote_exact_input_single(
        self, quoter_address: str, token_in: str, token_out: str, fee_tier: int, amount_in: int
    ) -> int:
        ...

    async def get_token_metadata(self, token_address: str) -> TokenMetadata:
        ...
