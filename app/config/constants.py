"""
Application constants.

Centralized constants for the application.
"""

# ========================================================================
# CHAIN CONSTANTS
# ========================================================================

# Base Sepolia (single target chain)
BASE_SEPOLIA_CHAIN_ID = 84532
DEFAULT_RPC_URL = "https://sepolia.base.org"
BLOCK_EXPLORER_URL = "https://sepolia.basescan.org"
BLOCK_EXPLORER_TX_URL = "https://sepolia.basescan.org/tx"  # append /{tx_hash}

# Remittance contract deployment
DEFAULT_REMITTANCE_CONTRACT_ADDRESS = "0x3a5b97549f62c5218b8Ac01F239ff8e86F69edE4"

# Stablecoins on Base Sepolia
USDC_CONTRACT_ADDRESS = "0x036CbD53842c5426634e7929541eC2318f3dCF7e"
USDT_CONTRACT_ADDRESS = "0xfad636016e34182822db5c4a4e9b887aa4b8c8b8"

# Zero address - used as "no referrer" marker on registration
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# ========================================================================
# TIMEOUTS & RETRIES
# ========================================================================

BLOCKCHAIN_TIMEOUT = 30.0  # Standard RPC read timeout
BLOCKCHAIN_READ_RETRIES = 2  # Attempts for idempotent reads
RECEIPT_TIMEOUT_SECONDS = 120.0  # 2 minutes between sequential calls
RECEIPT_POLL_INTERVAL_SECONDS = 2.0

# wallet_getCallsStatus polling
BATCH_STATUS_MAX_ATTEMPTS = 30
BATCH_STATUS_INTERVAL_SECONDS = 2.0

# ========================================================================
# CACHE & HISTORY
# ========================================================================

ACCOUNT_CACHE_TTL_SECONDS = 300.0  # 5 minutes

HISTORY_DEFAULT_COUNT = 10
HISTORY_MIN_COUNT = 1
HISTORY_MAX_COUNT = 100

UNKNOWN_TOKEN_SYMBOL = "UNKNOWN"

# ========================================================================
# REWARDS
# ========================================================================

# Tier thresholds by total transferred volume (USD)
TIER_SILVER_THRESHOLD = 10_000
TIER_GOLD_THRESHOLD = 50_000

REFERRAL_CODE_PREFIX = "REF-"

# ========================================================================
# COUNTRIES
# ========================================================================

SUPPORTED_COUNTRIES = [
    {"code": "NG", "name": "Nigeria", "currency": "NGN", "rate": 1550},
    {"code": "KE", "name": "Kenya", "currency": "KES", "rate": 130},
    {"code": "GH", "name": "Ghana", "currency": "GHS", "rate": 12.5},
    {"code": "IN", "name": "India", "currency": "INR", "rate": 83.5},
    {"code": "PH", "name": "Philippines", "currency": "PHP", "rate": 56.2},
    {"code": "BD", "name": "Bangladesh", "currency": "BDT", "rate": 109.5},
    {"code": "PK", "name": "Pakistan", "currency": "PKR", "rate": 278.5},
    {"code": "UG", "name": "Uganda", "currency": "UGX", "rate": 3850},
    {"code": "TZ", "name": "Tanzania", "currency": "TZS", "rate": 2550},
    {"code": "ZA", "name": "South Africa", "currency": "ZAR", "rate": 18.5},
]

# ========================================================================
# CLIENT-LOCAL STORAGE
# ========================================================================

CONTACTS_STORAGE_KEY = "saved_contacts"
RECIPIENTS_STORAGE_KEY = "recipients"
