"""Aggregation and token metadata services."""
