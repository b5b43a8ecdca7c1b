"""Address and amount validation utilities."""

from decimal import Decimal, InvalidOperation

from loguru import logger
from web3 import Web3

from app.config.constants import ZERO_ADDRESS


def validate_wallet_address(address: str) -> tuple[bool, str | None]:
    """
    Validate an EVM wallet address.

    Args:
        address: Wallet address to validate

    Returns:
        Tuple of (is_valid, error_message)
        - (True, None) if valid
        - (False, error_message) if invalid

    Examples:
        >>> validate_wallet_address("0x1234567890123456789012345678901234567890")
        (True, None)
        >>> validate_wallet_address("invalid")
        (False, 'Address must start with 0x')
    """
    if not address or not isinstance(address, str):
        return False, "Address is empty"

    address = address.strip()

    if not address:
        return False, "Address is empty"

    if not address.startswith("0x"):
        return False, "Address must start with 0x"

    if len(address) != 42:
        return False, "Address must be 42 characters"

    # Validate hex format
    try:
        int(address[2:], 16)
    except ValueError:
        return False, "Invalid address format"

    try:
        Web3.to_checksum_address(address)
        return True, None
    except (ValueError, TypeError) as e:
        logger.debug(f"Address validation failed for {address}: {e}")
        return False, "Invalid address format"


def is_valid_address(address: str) -> bool:
    """
    Check address format.

    Args:
        address: Wallet address

    Returns:
        True if valid
    """
    is_valid, _ = validate_wallet_address(address)
    return is_valid


def is_zero_address(address: str | None) -> bool:
    """Check for the zero address (no referrer / unset)."""
    return bool(address) and address.lower() == ZERO_ADDRESS


def normalize_address(address: str) -> str:
    """
    Normalize address to checksum format.

    Args:
        address: Wallet address

    Returns:
        Checksummed address

    Raises:
        ValueError: If invalid address
    """
    is_valid, error = validate_wallet_address(address)
    if not is_valid:
        raise ValueError(error)
    return Web3.to_checksum_address(address.strip())


def same_address(a: str | None, b: str | None) -> bool:
    """Case-insensitive address comparison."""
    if not a or not b:
        return False
    return a.strip().lower() == b.strip().lower()


def parse_amount(value: object) -> Decimal | None:
    """
    Parse user-supplied amount into Decimal.

    Floats go through str() to avoid binary float artefacts.

    Args:
        value: Raw amount (str, int, float or Decimal)

    Returns:
        Decimal amount or None if unparseable / not finite
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    return amount

