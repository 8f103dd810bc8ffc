"""
Conversion between raw on-chain token amounts and human-readable decimals.

Raw amounts are integers in the token's smallest unit. Decimal strings are
plain base-10 numerals without exponent, sign or grouping characters.
"""
from __future__ import annotations

from typing import Optional

from ..core.exceptions import FormatError

MAX_DECIMALS = 255


def _check_decimals(decimals: int) -> None:
    if isinstance(decimals, bool) or not isinstance(decimals, int):
        raise FormatError(f"Decimals must be an integer, got {decimals!r}")
    if not 0 <= decimals <= MAX_DECIMALS:
        raise FormatError(f"Decimals must be between 0 and {MAX_DECIMALS}, got {decimals}")


def to_decimal_string(raw_amount: Optional[int], decimals: int) -> str:
    """
    Render a raw token amount as a human-readable decimal string.

    The fractional part is zero-padded to ``decimals`` digits and then has its
    trailing zeros trimmed; an empty fractional part drops the decimal point.

    Args:
        raw_amount: Amount in smallest units (``None`` renders as ``"0"``)
        decimals: Token decimals

    Returns:
        Decimal string such as ``"0.999999"`` or ``"1"``

    Raises:
        FormatError: If the amount is negative or decimals are out of range
    """
    _check_decimals(decimals)
    if raw_amount is None:
        return "0"
    if raw_amount < 0:
        raise FormatError(f"Raw amount must be non-negative, got {raw_amount}")

    integer_part, fractional_part = divmod(raw_amount, 10 ** decimals)
    if decimals == 0:
        return str(integer_part)

    fraction = str(fractional_part).zfill(decimals).rstrip("0")
    if fraction:
        return f"{integer_part}.{fraction}"
    return str(integer_part)


def to_raw_amount(amount: str, decimals: int) -> int:
    """
    Parse a human-readable decimal string into a raw token amount.

    Fractional digits beyond ``decimals`` are truncated, not rounded.

    Args:
        amount: Decimal string such as ``"1.5"``
        decimals: Token decimals

    Returns:
        Amount in smallest units

    Raises:
        FormatError: If either segment is not a base-10 numeral
    """
    _check_decimals(decimals)
    if not isinstance(amount, str):
        raise FormatError(f"Amount must be a string, got {type(amount).__name__}")
    text = amount.strip()
    integer_text, _, fraction_text = text.partition(".")

    if integer_text == "":
        if fraction_text == "":
            raise FormatError(f"Invalid amount: {amount!r}")
        integer_text = "0"

    if not (integer_text.isascii() and integer_text.isdigit()):
        raise FormatError(f"Invalid integer part: {integer_text!r}")
    if fraction_text and not (fraction_text.isascii() and fraction_text.isdigit()):
        raise FormatError(f"Invalid fractional part: {fraction_text!r}")

    fraction_text = fraction_text[:decimals].ljust(decimals, "0")
    return int(integer_text) * 10 ** decimals + (int(fraction_text) if fraction_text else 0)
