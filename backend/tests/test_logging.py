"""
Tests for structured log formatting.
"""
from __future__ import annotations

import json
import logging

from dexagg.core.logging import StructuredFormatter


def format_record(**extra) -> dict:
    record = logging.LogRecord("dexagg.test", logging.INFO, __file__, 1, "hello %s", ("world",), None)
    for name, value in extra.items():
        setattr(record, name, value)
    return json.loads(StructuredFormatter().format(record))


def test_message_and_context_fields():
    data = format_record(protocol="Uniswap V3", fee_tier=500)
    assert data["message"] == "hello world"
    assert data["level"] == "INFO"
    assert data["protocol"] == "Uniswap V3"
    assert data["fee_tier"] == 500


def test_extra_data_merged_and_secrets_redacted():
    data = format_record(
        extra_data={"token_address": "0xabc", "api_key": "hunter2", "redis_password": "pw", "route_count": 3}
    )
    assert data["token_address"] == "0xabc"
    assert data["route_count"] == 3
    assert data["api_key"] == "[REDACTED]"
    assert data["redis_password"] == "[REDACTED]"
