"""
Token registry.

Static set of stablecoins the client knows about. The remittance contract
keeps its own list (supportedStablecoins); a token can be known here and
still be rejected there.
"""

from dataclasses import dataclass

from eth_utils import to_checksum_address

from app.config.constants import UNKNOWN_TOKEN_SYMBOL


@dataclass(frozen=True)
class TokenDescriptor:
    """ERC-20 token known to the client."""

    symbol: str
    address: str
    decimals: int
    name: str = ""

    def __post_init__(self) -> None:
        if not 0 <= self.decimals <= 18:
            raise ValueError(
                f"Token {self.symbol}: decimals must be in [0, 18], got {self.decimals}"
            )
        object.__setattr__(self, "address", to_checksum_address(self.address))


class TokenRegistry:
    """Lookup of token descriptors by symbol and by address."""

    def __init__(self, tokens: list[TokenDescriptor]) -> None:
        """
        Initialize registry.

        Args:
            tokens: Known tokens; the first one is the default token
        """
        if not tokens:
            raise ValueError("Token registry requires at least one token")
        self._tokens = list(tokens)
        self._by_symbol = {t.symbol.upper(): t for t in self._tokens}
        self._by_address = {t.address.lower(): t for t in self._tokens}

    @property
    def default(self) -> TokenDescriptor:
        """Default token (used for aggregate totals)."""
        return self._tokens[0]

    def all(self) -> list[TokenDescriptor]:
        """All known tokens in registration order."""
        return list(self._tokens)

    def by_symbol(self, symbol: str | None) -> TokenDescriptor | None:
        """Resolve token by symbol (case-insensitive)."""
        if not symbol:
            return None
        return self._by_symbol.get(symbol.strip().upper())

    def by_address(self, address: str | None) -> TokenDescriptor | None:
        """Resolve token by contract address (case-insensitive)."""
        if not address:
            return None
        return self._by_address.get(address.lower())

    def symbol_for(self, address: str | None) -> str:
        """Display symbol for a token address; unknown tokens get a placeholder."""
        token = self.by_address(address)
        return token.symbol if token else UNKNOWN_TOKEN_SYMBOL


def build_token_registry(settings) -> TokenRegistry:
    """
    Build the registry from settings.

    Args:
        settings: Application settings

    Returns:
        TokenRegistry with USDC and USDT
    """
    return TokenRegistry([
        TokenDescriptor(
            symbol="USDC",
            name="USD Coin",
            address=settings.usdc_contract_address,
            decimals=6,
        ),
        TokenDescriptor(
            symbol="USDT",
            name="Tether USD",
            address=settings.usdt_contract_address,
            decimals=6,
        ),
    ])
