"""
Blockchain services module.

Chain access for the remittance core: contract reads and writes, bundles,
event logs, the static token registry and the wallet session.
"""

from .chain_client import BatchStatus, ChainClient, Receipt
from .constants import ERC20_ABI, REMITTANCE_ABI
from .error_classifier import classify_provider_error
from .session import WalletSession, connect_session
from .token_registry import TokenDescriptor, TokenRegistry, build_token_registry


__all__ = [
    "BatchStatus",
    "ChainClient",
    "Receipt",
    "ERC20_ABI",
    "REMITTANCE_ABI",
    "classify_provider_error",
    "WalletSession",
    "connect_session",
    "TokenDescriptor",
    "TokenRegistry",
    "build_token_registry",
]
