"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

from typing import Literal

from loguru import logger
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.config.constants import (
    ACCOUNT_CACHE_TTL_SECONDS,
    BASE_SEPOLIA_CHAIN_ID,
    DEFAULT_REMITTANCE_CONTRACT_ADDRESS,
    DEFAULT_RPC_URL,
    RECEIPT_POLL_INTERVAL_SECONDS,
    RECEIPT_TIMEOUT_SECONDS,
    USDC_CONTRACT_ADDRESS,
    USDT_CONTRACT_ADDRESS,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Chain
    rpc_url: str = DEFAULT_RPC_URL
    chain_id: int = Field(
        default=BASE_SEPOLIA_CHAIN_ID,
        gt=0,
        description="Target chain id (single chain only)",
    )
    remittance_contract_address: str = DEFAULT_REMITTANCE_CONTRACT_ADDRESS

    # Stablecoins accepted by the remittance contract
    usdc_contract_address: str = USDC_CONTRACT_ADDRESS
    usdt_contract_address: str = USDT_CONTRACT_ADDRESS

    # Wallet session used by the HTTP surface.
    # A private key gives a locally signing EOA; a bare address means the
    # node/wallet behind rpc_url manages the account (eth_sendTransaction).
    wallet_private_key: str | None = None
    wallet_address: str | None = None
    wallet_supports_atomic_batch: bool = Field(
        default=False,
        description="Wallet accepts wallet_sendCalls bundles (smart account)",
    )

    # Submission
    receipt_timeout_seconds: float = Field(
        default=RECEIPT_TIMEOUT_SECONDS,
        gt=0,
        description="Max wait for a receipt between sequential calls",
    )
    receipt_poll_interval: float = Field(
        default=RECEIPT_POLL_INTERVAL_SECONDS,
        gt=0,
        description="Receipt polling interval in seconds",
    )
    single_transfer_approval: Literal["principal", "principal_plus_fee"] = Field(
        default="principal",
        description="Approval sizing for single transfers",
    )

    # Caching / history
    account_cache_ttl_seconds: float = Field(
        default=ACCOUNT_CACHE_TTL_SECONDS,
        gt=0,
        description="Expiry of cached account state and history pages",
    )
    history_from_block: int = Field(
        default=0,
        ge=0,
        description="First block scanned for TransferInitiated logs",
    )

    # HTTP API
    api_host: str = "0.0.0.0"
    api_port: int = Field(
        default=8080, ge=1, le=65535, description="HTTP API server port"
    )

    # Redis (contacts store)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str | None = None
    redis_db: int = 0

    # Application
    environment: str = "production"
    debug: bool = False
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator(
        "remittance_contract_address",
        "usdc_contract_address",
        "usdt_contract_address",
    )
    @classmethod
    def validate_contract_address(cls, v: str) -> str:
        """Validate contract address format."""
        v = v.strip()
        if not v.startswith("0x") or len(v) != 42:
            raise ValueError("contract address must be 0x-prefixed and 42 characters")
        try:
            int(v[2:], 16)
        except ValueError as e:
            raise ValueError("contract address must be valid hex") from e
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize log level name."""
        level = v.upper()
        if level not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @model_validator(mode="after")
    def validate_production(self) -> "Settings":
        """Validate production-specific requirements."""
        if self.environment == "production":
            if self.debug:
                raise ValueError(
                    "DEBUG must be False in production environment. "
                    "Set DEBUG=false in your .env file."
                )
            if self.wallet_private_key and "your_" in self.wallet_private_key.lower():
                logger.warning(
                    "WALLET_PRIVATE_KEY appears to be a placeholder. "
                    "Withdrawals through the API will fail to sign."
                )
        return self


# Global settings instance
settings = Settings()
