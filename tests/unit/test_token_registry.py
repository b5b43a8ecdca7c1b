"""Unit tests for token registry and wallet sessions."""

import pytest
from eth_account import Account

from app.config.constants import UNKNOWN_TOKEN_SYMBOL
from app.config.settings import settings
from app.services.blockchain.session import WalletSession, connect_session
from app.services.blockchain.token_registry import TokenDescriptor, TokenRegistry
from tests.fakes import SENDER

TEST_KEY = "0x" + "4c" * 32


class TestTokenRegistry:
    """Tests for TokenRegistry lookups."""

    def test_default_is_first_token(self, registry):
        """USDC is registered first and is the default."""
        assert registry.default.symbol == "USDC"
        assert [t.symbol for t in registry.all()] == ["USDC", "USDT"]

    def test_by_symbol_case_insensitive(self, registry):
        assert registry.by_symbol("usdt").symbol == "USDT"
        assert registry.by_symbol(" USDC ").symbol == "USDC"

    def test_by_symbol_unknown(self, registry):
        assert registry.by_symbol("DAI") is None
        assert registry.by_symbol(None) is None

    def test_by_address_case_insensitive(self, registry):
        """Address lookup ignores checksum casing."""
        token = registry.by_address(settings.usdc_contract_address.lower())
        assert token is not None
        assert token.symbol == "USDC"

    def test_symbol_for_unknown_address(self, registry):
        """Unknown token addresses get the placeholder symbol."""
        assert registry.symbol_for("0x" + "99" * 20) == UNKNOWN_TOKEN_SYMBOL

    def test_descriptor_checksums_address(self):
        token = TokenDescriptor(
            symbol="USDT",
            address="0xfad636016e34182822db5c4a4e9b887aa4b8c8b8",
            decimals=6,
        )
        assert token.address != token.address.lower()
        assert token.address.lower() == "0xfad636016e34182822db5c4a4e9b887aa4b8c8b8"

    @pytest.mark.parametrize("decimals", [-1, 19])
    def test_descriptor_rejects_bad_decimals(self, decimals):
        with pytest.raises(ValueError):
            TokenDescriptor(symbol="BAD", address="0x" + "aa" * 20, decimals=decimals)

    def test_empty_registry_rejected(self):
        with pytest.raises(ValueError):
            TokenRegistry([])


class TestWalletSession:
    """Tests for session connection."""

    def test_address_only_session(self):
        """Bare address: node-managed signing, capability from caller."""
        session = connect_session(address=SENDER.lower(), supports_atomic_batch=True)
        assert session.address == SENDER
        assert session.supports_atomic_batch
        assert not session.signs_locally

    def test_private_key_session_is_eoa(self):
        """Local key gives a sequential-path EOA session."""
        session = connect_session(private_key=TEST_KEY, supports_atomic_batch=True)
        assert session.signs_locally
        assert not session.supports_atomic_batch
        assert session.address == Account.from_key(TEST_KEY).address

    def test_mismatched_address_and_key(self):
        with pytest.raises(ValueError):
            connect_session(address=SENDER, private_key=TEST_KEY)

    def test_nothing_configured(self):
        with pytest.raises(ValueError):
            connect_session()

    def test_signer_must_match_address(self):
        signer = Account.from_key(TEST_KEY)
        with pytest.raises(ValueError):
            WalletSession(address=SENDER, signer=signer)
