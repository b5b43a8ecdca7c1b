"""
Decimal <-> raw token unit conversions.

Always driven by the token descriptor's decimals. Amounts that need more
precision than the token supports are rejected rather than rounded, and
amounts that do not fit a uint256 are rejected outright.
"""

from decimal import (
    MAX_EMAX,
    MAX_PREC,
    MIN_EMIN,
    Decimal,
    DecimalException,
    Inexact,
    localcontext,
)

from app.services.blockchain.token_registry import TokenDescriptor

MAX_UINT256 = 2**256 - 1


class AmountPrecisionError(ValueError):
    """Amount has more fractional digits than the token supports."""


class AmountRangeError(ValueError):
    """Amount does not fit the contract's uint256 arguments."""


def _scale(value: Decimal, places: int) -> Decimal:
    """Shift the decimal point by places; never rounds."""
    with localcontext() as ctx:
        ctx.prec = MAX_PREC
        ctx.Emax = MAX_EMAX
        ctx.Emin = MIN_EMIN
        ctx.traps[Inexact] = True
        return value.scaleb(places)


def to_units(amount: Decimal, token: TokenDescriptor) -> int:
    """
    Convert a decimal amount into raw token units.

    Args:
        amount: Human amount (e.g. Decimal("12.5"))
        token: Token descriptor

    Returns:
        Integer units (e.g. 12_500_000 for 6 decimals)

    Raises:
        AmountPrecisionError: If amount is not exact at token precision
        AmountRangeError: If amount is negative or exceeds uint256
    """
    try:
        scaled = _scale(amount, token.decimals)
    except DecimalException as e:
        raise AmountRangeError(f"{amount} is out of range for {token.symbol}") from e

    if scaled != scaled.to_integral_value():
        raise AmountPrecisionError(
            f"{amount} has more than {token.decimals} decimals for {token.symbol}"
        )
    # uint256 has 78 decimal digits
    if scaled < 0 or scaled.adjusted() >= 78 or int(scaled) > MAX_UINT256:
        raise AmountRangeError(f"{amount} {token.symbol} exceeds the uint256 range")
    return int(scaled)


def from_units(units: int, token: TokenDescriptor) -> Decimal:
    """Convert raw token units into a decimal amount (exact)."""
    return _scale(Decimal(int(units)), -token.decimals)


def format_units(units: int, decimals: int) -> str:
    """
    Render raw units as a plain decimal string.

    Examples:
        >>> format_units(12_500_000, 6)
        '12.5'
        >>> format_units(0, 6)
        '0'
    """
    value = _scale(Decimal(int(units)), -decimals)
    text = f"{value:f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"
