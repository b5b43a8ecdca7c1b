"""Unit tests for validation utilities."""

from decimal import Decimal

import pytest

from app.utils.security import mask_address, mask_tx_hash
from app.utils.validation import (
    is_valid_address,
    is_zero_address,
    normalize_address,
    parse_amount,
    same_address,
    validate_wallet_address,
)


class TestWalletAddressValidation:
    """Tests for EVM address validation."""

    def test_empty_address_invalid(self):
        """Empty address should be invalid."""
        assert validate_wallet_address("") == (False, "Address is empty")

    def test_short_address_invalid(self):
        """Short address should be invalid."""
        assert not is_valid_address("0x1234")

    def test_no_0x_prefix_invalid(self):
        """Address without 0x prefix should be invalid."""
        assert validate_wallet_address("1" * 40) == (False, "Address must start with 0x")

    def test_invalid_hex_characters(self):
        """Address with non-hex characters should be invalid."""
        assert not is_valid_address("0x" + "z" * 40)

    def test_too_long_address(self):
        """Address longer than 42 characters should be invalid."""
        assert not is_valid_address("0x" + "1" * 41)

    @pytest.mark.parametrize(
        "address",
        [
            "0x742d35Cc6634C0532925a3b844Bc9e7595f0bEb0",
            "0x0000000000000000000000000000000000000000",
            "0xffffffffffffffffffffffffffffffffffffffff",
        ],
    )
    def test_valid_addresses(self, address):
        """Various valid address formats should pass."""
        assert is_valid_address(address)


class TestAddressHelpers:
    """Tests for normalization and comparison helpers."""

    def test_normalize_returns_checksum(self):
        """Lower-case input comes back checksummed."""
        address = "0x036cbd53842c5426634e7929541ec2318f3dcf7e"
        assert normalize_address(address) == "0x036CbD53842c5426634e7929541eC2318f3dCF7e"

    def test_normalize_strips_whitespace(self):
        """Surrounding whitespace is ignored."""
        assert normalize_address("  0x" + "11" * 20 + " ") == "0x" + "11" * 20

    def test_normalize_invalid_raises(self):
        """Malformed address raises ValueError."""
        with pytest.raises(ValueError):
            normalize_address("not-an-address")

    def test_same_address_ignores_case(self):
        """Comparison is case-insensitive."""
        assert same_address("0xABCDEF" + "0" * 34, "0xabcdef" + "0" * 34)

    def test_same_address_none(self):
        """Missing side never matches."""
        assert not same_address(None, "0x" + "11" * 20)

    def test_zero_address(self):
        """Zero address is detected."""
        assert is_zero_address("0x" + "0" * 40)
        assert not is_zero_address("0x" + "11" * 20)
        assert not is_zero_address(None)


class TestParseAmount:
    """Tests for user amount parsing."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("12.5", Decimal("12.5")),
            (10, Decimal("10")),
            (0.1, Decimal("0.1")),
            (Decimal("3.000001"), Decimal("3.000001")),
            (" 7 ", Decimal("7")),
        ],
    )
    def test_valid_amounts(self, raw, expected):
        """Strings, ints, floats and Decimals are accepted."""
        assert parse_amount(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "abc", "NaN", "Infinity", True])
    def test_invalid_amounts(self, raw):
        """Unparseable or non-finite values yield None."""
        assert parse_amount(raw) is None


class TestMasking:
    """Log masking helpers."""

    def test_mask_address(self):
        assert mask_address("0x1234567890abcdef1234567890abcdef12345678") == "0x1234...5678"

    def test_mask_tx_hash(self):
        assert mask_tx_hash("0x" + "ab" * 32) == "0xabababab...ababab"
