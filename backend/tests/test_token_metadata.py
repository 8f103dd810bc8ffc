"""
Tests for the cache-first token metadata service.
"""
from __future__ import annotations

import json
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from dexagg.chains.base import TokenMetadata
from dexagg.core.exceptions import CacheError, ContractCallError, FormatError
from dexagg.services.token_metadata import (
    InMemoryMetadataCache,
    RedisMetadataCache,
    TokenMetadataService,
    cache_key,
)

from .conftest import USDC


class BrokenCache:
    async def get(self, address):
        raise CacheError("redis down")

    async def put(self, metadata):
        raise CacheError("redis down")


class TestTokenMetadataService:
    """Cache-first lookup behaviour."""

    @pytest.mark.asyncio
    async def test_miss_fetches_and_saves(self, chain, usdc):
        chain.metadata[USDC] = usdc
        cache = InMemoryMetadataCache()
        service = TokenMetadataService(chain, cache)

        metadata, from_cache = await service.get_token_metadata(USDC.lower())

        assert metadata == usdc
        assert from_cache is False
        assert await cache.get(USDC) == usdc

    @pytest.mark.asyncio
    async def test_hit_skips_chain(self, chain, usdc):
        cache = InMemoryMetadataCache()
        await cache.put(usdc)
        service = TokenMetadataService(chain, cache)

        metadata, from_cache = await service.get_token_metadata(USDC)

        assert metadata == usdc
        assert from_cache is True
        assert chain.calls == []

    @pytest.mark.asyncio
    async def test_cache_failures_are_not_fatal(self, chain, usdc):
        chain.metadata[USDC] = usdc
        service = TokenMetadataService(chain, BrokenCache())

        metadata, from_cache = await service.get_token_metadata(USDC)

        assert metadata == usdc
        assert from_cache is False

    @pytest.mark.asyncio
    async def test_chain_failure_propagates(self, chain):
        service = TokenMetadataService(chain, InMemoryMetadataCache())
        with pytest.raises(ContractCallError):
            await service.get_token_metadata(USDC)

    @pytest.mark.asyncio
    async def test_invalid_address(self, chain):
        service = TokenMetadataService(chain, InMemoryMetadataCache())
        with pytest.raises(FormatError):
            await service.get_token_metadata("0xnope")
        assert chain.calls == []


class TestRedisMetadataCache:
    """Redis serialization and error mapping against a mocked client."""

    @pytest.fixture
    def client(self):
        return AsyncMock()

    @pytest.mark.asyncio
    async def test_put_stores_json_without_expiry(self, client, usdc):
        cache = RedisMetadataCache(client)
        await cache.put(usdc)

        client.set.assert_awaited_once()
        key, value = client.set.await_args.args
        assert key == f"token:{USDC}" == cache_key(USDC)
        assert json.loads(value) == {
            "address": USDC,
            "name": "USD Coin",
            "symbol": "USDC",
            "decimals": 6,
        }
        assert client.set.await_args.kwargs == {}

    @pytest.mark.asyncio
    async def test_get_round_trips(self, client, usdc):
        client.get.return_value = json.dumps(usdc.to_dict())
        cache = RedisMetadataCache(client)

        assert await cache.get(USDC) == usdc
        client.get.assert_awaited_once_with(f"token:{USDC}")

    @pytest.mark.asyncio
    async def test_get_missing(self, client):
        client.get.return_value = None
        assert await RedisMetadataCache(client).get(USDC) is None

    @pytest.mark.asyncio
    async def test_corrupt_entry(self, client):
        client.get.return_value = "{not json"
        with pytest.raises(CacheError):
            await RedisMetadataCache(client).get(USDC)

    @pytest.mark.asyncio
    async def test_redis_errors_become_cache_errors(self, client, usdc):
        client.get.side_effect = RedisConnectionError("refused")
        client.set.side_effect = RedisConnectionError("refused")
        cache = RedisMetadataCache(client)

        with pytest.raises(CacheError):
            await cache.get(USDC)
        with pytest.raises(CacheError):
            await cache.put(usdc)

    @pytest.mark.asyncio
    async def test_ping_reports_failure(self, client):
        client.ping.side_effect = RedisConnectionError("refused")
        assert await RedisMetadataCache(client).ping() is False


def test_metadata_from_dict_coerces_types():
    metadata = TokenMetadata.from_dict({"address": USDC, "symbol": "USDC", "decimals": "6"})
    assert metadata.decimals == 6
    assert metadata.name == ""
