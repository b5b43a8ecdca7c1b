"""
Wallet session.

Explicit account context passed to every write. Capabilities are decided
once, when the session is connected, and never re-derived per call.
"""

from dataclasses import dataclass, field

from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_utils import to_checksum_address


@dataclass(frozen=True)
class WalletSession:
    """
    Active wallet/account for submissions.

    Attributes:
        address: Checksummed account address
        supports_atomic_batch: Account accepts wallet_sendCalls bundles
        signer: Local signer; None means the wallet behind the RPC signs
    """

    address: str
    supports_atomic_batch: bool = False
    signer: LocalAccount | None = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "address", to_checksum_address(self.address))
        if self.signer is not None and self.signer.address != self.address:
            raise ValueError("Signer address does not match session address")

    @property
    def signs_locally(self) -> bool:
        """True when transactions are signed in-process."""
        return self.signer is not None


def connect_session(
    address: str | None = None,
    private_key: str | None = None,
    supports_atomic_batch: bool = False,
) -> WalletSession:
    """
    Create a session at connect time.

    Args:
        address: Account address (required when no private key)
        private_key: Local signing key (EOA)
        supports_atomic_batch: Capability reported by the wallet

    Returns:
        WalletSession

    Raises:
        ValueError: If neither address nor key given
    """
    if private_key:
        signer = Account.from_key(private_key)
        if address and to_checksum_address(address) != signer.address:
            raise ValueError("wallet_address does not match wallet_private_key")
        # A locally signing key is an EOA; it cannot submit bundles
        return WalletSession(address=signer.address, signer=signer)

    if not address:
        raise ValueError("Wallet session requires an address or a private key")

    return WalletSession(
        address=address,
        supports_atomic_batch=supports_atomic_batch,
    )
