"""
Tests for the protocol table and registry.
"""
from __future__ import annotations

from dexagg.dex.protocols import PROTOCOLS, ProtocolRegistry, protocol_registry

from .conftest import make_protocol, make_registry


class TestProtocolRegistry:
    """Protocol listing and lookup."""

    def test_supported_protocols_lists_every_key_in_table_order(self):
        assert protocol_registry.supported_protocols() == list(PROTOCOLS)
        assert protocol_registry.supported_protocols()[0] == "uniswapv3"

    def test_fork_compatible_excludes_v2_style_protocols(self):
        keys = [p.key for p in protocol_registry.list_fork_compatible_protocols()]
        assert "uniswapv2" not in keys
        assert "naddotfun" not in keys
        assert keys == ["uniswapv3", "sushiswapv3", "pancakeswapv3", "tayaswap", "reactor"]

    def test_lookup_by_key_and_display_name(self):
        assert protocol_registry.lookup("uniswapv3").name == "Uniswap V3"
        assert protocol_registry.lookup("PancakeSwap V3").key == "pancakeswapv3"
        assert protocol_registry.lookup("  SUSHISWAPV3 ").key == "sushiswapv3"
        assert protocol_registry.lookup("curve") is None

    def test_fee_tiers_are_known_values(self):
        assert PROTOCOLS["uniswapv3"].fee_tiers == (500, 3000, 10000)
        assert PROTOCOLS["sushiswapv3"].fee_tiers == (100, 500, 3000, 10000)
        assert PROTOCOLS["pancakeswapv3"].fee_tiers == (100, 500, 2500, 10000)

    def test_custom_table(self):
        registry = make_registry(
            make_protocol("alpha"),
            make_protocol("beta", is_uniswap_fork=False),
        )
        assert registry.supported_protocols() == ["alpha", "beta"]
        assert [p.key for p in registry.list_fork_compatible_protocols()] == ["alpha"]

    def test_empty_table(self):
        registry = ProtocolRegistry({})
        assert registry.supported_protocols() == []
        assert registry.list_fork_compatible_protocols() == []
