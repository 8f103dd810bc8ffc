"""
Token metadata service with a cache-first lookup.
"""
from __future__ import annotations

import json
from typing import Dict, Optional, Protocol, Tuple

import redis.asyncio as redis
from redis.exceptions import RedisError

from ..chains.base import ChainQuery, TokenMetadata
from ..chains.evm_client import to_checksum
from ..core.exceptions import CacheError
from ..core.logging import get_logger

logger = get_logger(__name__)

CACHE_KEY_PREFIX = "token:"


class MetadataCache(Protocol):
    async def get(self, address: str) -> Optional[TokenMetadata]:
        ...

    async def put(self, metadata: TokenMetadata) -> None:
        ...


def cache_key(address: str) -> str:
    return CACHE_KEY_PREFIX + address


class RedisMetadataCache:
    """
    Redis-backed metadata store.

    Entries are JSON documents under ``token:<checksummed address>`` with no
    expiry; a hit is trusted indefinitely.
    """

    def __init__(self, client: "redis.Redis") -> None:
        self.client = client

    @classmethod
    def from_url(cls, url: str, password: Optional[str] = None) -> "RedisMetadataCache":
        return cls(redis.from_url(url, password=password or None, decode_responses=True))

    async def get(self, address: str) -> Optional[TokenMetadata]:
        try:
            data = await self.client.get(cache_key(address))
        except RedisError as e:
            raise CacheError(f"Failed to get token metadata from Redis: {e}") from e
        if data is None:
            return None
        try:
            return TokenMetadata.from_dict(json.loads(data))
        except (ValueError, KeyError, TypeError) as e:
            raise CacheError(f"Failed to unmarshal token metadata for {address}") from e

    async def put(self, metadata: TokenMetadata) -> None:
        try:
            await self.client.set(cache_key(metadata.address), json.dumps(metadata.to_dict()))
        except RedisError as e:
            raise CacheError(f"Failed to save token metadata to Redis: {e}") from e

    async def ping(self) -> bool:
        try:
            return bool(await self.client.ping())
        except RedisError:
            return False

    async def close(self) -> None:
        await self.client.aclose()


class InMemoryMetadataCache:
    """Process-local cache used in development and tests."""

    def __init__(self) -> None:
        self._entries: Dict[str, TokenMetadata] = {}

    async def get(self, address: str) -> Optional[TokenMetadata]:
        return self._entries.get(address)

    async def put(self, metadata: TokenMetadata) -> None:
        self._entries[metadata.address] = metadata


class TokenMetadataService:
    """
    Resolves ERC-20 metadata from the cache, falling back to the chain.

    Cache failures never fail a lookup: a broken read is treated as a miss
    and a broken write is logged.
    """

    def __init__(self, chain: ChainQuery, cache: MetadataCache) -> None:
        self.chain = chain
        self.cache = cache

    async def get_token_metadata(self, token_address: str) -> Tuple[TokenMetadata, bool]:
        """
        Get metadata for a token.

        Args:
            token_address: Token contract address in any hex casing

        Returns:
            (metadata, from_cache)

        Raises:
            FormatError: If the address is malformed
            ChainQueryError: If the cache misses and the chain lookup fails
        """
        address = to_checksum(token_address)

        try:
            cached = await self.cache.get(address)
        except CacheError as e:
            logger.warning(
                f"Error checking cache for token: {e}",
                extra={"extra_data": {"token_address": address}},
            )
            cached = None

        if cached is not None:
            logger.debug(f"Metadata cache hit: {address}")
            return cached, True

        metadata = await self.chain.get_token_metadata(address)

        try:
            await self.cache.put(metadata)
        except CacheError as e:
            logger.warning(
                f"Failed to save token metadata: {e}",
                extra={"extra_data": {"token_address": address}},
            )

        logger.info(
            f"Token metadata retrieved: {metadata.symbol}",
            extra={
                "extra_data": {
                    "token_address": address,
                    "symbol": metadata.symbol,
                    "decimals": metadata.decimals,
                }
            },
        )
        return metadata, False
