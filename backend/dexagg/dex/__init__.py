"""
DEX protocol table, token pairs and amount formatting.
"""
from .protocols import PROTOCOLS, ProtocolConfig, ProtocolRegistry, protocol_registry
from .units import to_decimal_string, to_raw_amount

__all__ = [
    "PROTOCOLS",
    "ProtocolConfig",
    "ProtocolRegistry",
    "protocol_registry",
    "to_decimal_string",
    "to_raw_amount",
]
