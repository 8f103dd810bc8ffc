"""
EVM client for factory, quoter and ERC-20 metadata calls.
"""
from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional, Sequence

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from web3 import Web3

from ..core.exceptions import ContractCallError, FormatError
from ..core.logging import get_logger
from .base import TokenMetadata
from .rpc_client import RpcClient

logger = get_logger(__name__)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

GET_POOL_SIGNATURE = "getPool(address,address,uint24)"
QUOTE_EXACT_INPUT_SINGLE_SIGNATURE = (
    "quoteExactInputSingle(address,address,uint24,uint256,uint160)"
)
NAME_SIGNATURE = "name()"
SYMBOL_SIGNATURE = "symbol()"
DECIMALS_SIGNATURE = "decimals()"


def function_selector(signature: str) -> bytes:
    """First four bytes of the keccak hash of a function signature."""
    return bytes(Web3.keccak(text=signature)[:4])


def encode_call(signature: str, arg_types: Sequence[str] = (), args: Sequence[Any] = ()) -> str:
    """Build hex calldata for ``signature`` with ABI-encoded arguments."""
    return "0x" + (function_selector(signature) + encode(list(arg_types), list(args))).hex()


def to_checksum(address: str) -> str:
    """
    Validate and checksum an address.

    Raises:
        FormatError: If the value is not a 20-byte hex address
    """
    if not isinstance(address, str) or not Web3.is_address(address):
        raise FormatError(f"Invalid address: {address!r}")
    return Web3.to_checksum_address(address)


def _hex_to_bytes(result: str) -> bytes:
    text = result[2:] if result.startswith(("0x", "0X")) else result
    try:
        return bytes.fromhex(text)
    except ValueError as e:
        raise ContractCallError(f"Non-hex return data: {result[:66]}") from e


def _decode_single(type_str: str, result: str) -> Any:
    raw = _hex_to_bytes(result)
    if not raw:
        raise ContractCallError(f"Empty return data for {type_str}")
    try:
        return decode([type_str], raw)[0]
    except (DecodingError, ValueError, OverflowError) as e:
        raise ContractCallError(f"Cannot decode {type_str} return data") from e


def _decode_text(result: str) -> str:
    """Decode an ABI string, falling back to the legacy bytes32 encoding."""
    raw = _hex_to_bytes(result)
    if not raw:
        raise ContractCallError("Empty return data for string")
    try:
        return decode(["string"], raw)[0]
    except (DecodingError, ValueError, OverflowError, UnicodeDecodeError):
        pass
    if len(raw) == 32:
        return raw.rstrip(b"\x00").decode("utf-8", errors="replace")
    raise ContractCallError("Cannot decode string return data")


class EvmClient:
    """
    Contract-level queries against one EVM node.

    Every method is a single ``eth_call`` round trip with no retry; callers
    bound the time spent with their own timeouts.
    """

    def __init__(self, rpc: RpcClient) -> None:
        self.rpc = rpc

    async def get_pool_address(
        self,
        factory_address: str,
        token_a: str,
        token_b: str,
        fee_tier: int,
    ) -> Optional[str]:
        """
        Ask a V3-style factory for the pool of a pair at a fee tier.

        Returns:
            Checksummed pool address, or None when the factory returns the
            zero address
        """
        data = encode_call(
            GET_POOL_SIGNATURE,
            ["address", "address", "uint24"],
            [to_checksum(token_a), to_checksum(token_b), fee_tier],
        )
        result = await self.rpc.eth_call(to_checksum(factory_address), data)
        pool = Web3.to_checksum_address(_decode_single("address", result))
        if pool == ZERO_ADDRESS:
            return None
        return pool

    async def pool_exists(
        self,
        factory_address: str,
        token_a: str,
        token_b: str,
        fee_tier: int,
    ) -> bool:
        return await self.get_pool_address(factory_address, token_a, token_b, fee_tier) is not None

    async def quote_exact_input_single(
        self,
        quoter_address: str,
        token_in: str,
        token_out: str,
        fee_tier: int,
        amount_in: int,
    ) -> int:
        """
        Quote an exact-input swap through a single pool.

        Returns:
            Raw output amount in the output token's smallest unit
        """
        data = encode_call(
            QUOTE_EXACT_INPUT_SINGLE_SIGNATURE,
            ["address", "address", "uint24", "uint256", "uint160"],
            [to_checksum(token_in), to_checksum(token_out), fee_tier, amount_in, 0],
        )
        result = await self.rpc.eth_call(to_checksum(quoter_address), data)
        # QuoterV2 returns extra words after amountOut; only the first matters
        raw = _hex_to_bytes(result)
        if len(raw) < 32:
            raise ContractCallError(
                "Quoter returned no amount",
                details={"quoter": quoter_address, "fee_tier": fee_tier},
            )
        return int.from_bytes(raw[:32], "big")

    async def get_token_metadata(self, token_address: str) -> TokenMetadata:
        """
        Fetch ERC-20 name, symbol and decimals in parallel.

        Raises:
            FormatError: If the address is malformed
            ChainQueryError: If any of the three calls fails
        """
        address = to_checksum(token_address)
        name_result, symbol_result, decimals_result = await asyncio.gather(
            self.rpc.eth_call(address, encode_call(NAME_SIGNATURE)),
            self.rpc.eth_call(address, encode_call(SYMBOL_SIGNATURE)),
            self.rpc.eth_call(address, encode_call(DECIMALS_SIGNATURE)),
        )
        decimals = _decode_single("uint256", decimals_result)
        if decimals > 255:
            raise ContractCallError(
                f"Token {address} reports invalid decimals {decimals}",
                details={"token_address": address},
            )

        metadata = TokenMetadata(
            address=address,
            name=_decode_text(name_result),
            symbol=_decode_text(symbol_result),
            decimals=decimals,
        )
        logger.debug(
            f"Token metadata fetched for {address}: {metadata.symbol}",
            extra={"extra_data": {"token_address": address, "decimals": decimals}},
        )
        return metadata

    def get_health_status(self) -> Dict[str, Any]:
        return {"rpc": self.rpc.get_health_status()}
