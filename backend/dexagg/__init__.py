"""DEX quote aggregator."""

__version__ = "1.0.0"
