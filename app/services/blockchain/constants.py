"""
Blockchain constants.

This module contains contract ABIs used by the chain client:
- Remittance contract ABI (calls and the TransferInitiated event)
- ERC-20 ABI (approve, allowance, balanceOf)
"""

REMITTANCE_ABI = [
    {
        "name": "registerUser",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [{"name": "_referrer", "type": "address"}],
        "outputs": [],
    },
    {
        "name": "initiateTransfer",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "_recipient", "type": "address"},
            {"name": "_amount", "type": "uint256"},
            {"name": "_recipientCountry", "type": "string"},
            {"name": "_token", "type": "address"},
        ],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "name": "batchTransfer",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "_recipients", "type": "address[]"},
            {"name": "_amounts", "type": "uint256[]"},
            {"name": "_token", "type": "address"},
        ],
        "outputs": [],
    },
    {
        "name": "withdrawCashback",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [],
        "outputs": [],
    },
    {
        "name": "withdrawReferralRewards",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [],
        "outputs": [],
    },
    {
        "name": "calculateFee",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "_amount", "type": "uint256"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "name": "supportedStablecoins",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "", "type": "address"}],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "name": "getUser",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "_user", "type": "address"}],
        "outputs": [
            {
                "name": "",
                "type": "tuple",
                "components": [
                    {"name": "isRegistered", "type": "bool"},
                    {"name": "referrer", "type": "address"},
                    {"name": "totalTransferred", "type": "uint256"},
                    {"name": "totalReceived", "type": "uint256"},
                    {"name": "cashbackEarned", "type": "uint256"},
                    {"name": "referralRewards", "type": "uint256"},
                    {"name": "referralCount", "type": "uint256"},
                    {"name": "lastActivity", "type": "uint256"},
                ],
            }
        ],
    },
    {
        "name": "getUserTransactionIds",
        "type": "function",
        "stateMutability": "view",
        "inputs": [
            {"name": "_user", "type": "address"},
            {"name": "_start", "type": "uint256"},
            {"name": "_count", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "uint256[]"}],
    },
    {
        "name": "getTransaction",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "_txId", "type": "uint256"}],
        "outputs": [
            {
                "name": "",
                "type": "tuple",
                "components": [
                    {"name": "sender", "type": "address"},
                    {"name": "recipient", "type": "address"},
                    {"name": "amount", "type": "uint256"},
                    {"name": "fee", "type": "uint256"},
                    {"name": "cashback", "type": "uint256"},
                    {"name": "timestamp", "type": "uint256"},
                    {"name": "country", "type": "string"},
                    {"name": "token", "type": "address"},
                    {"name": "groupId", "type": "uint256"},
                    {"name": "completed", "type": "bool"},
                ],
            }
        ],
    },
    {
        "anonymous": False,
        "name": "TransferInitiated",
        "type": "event",
        "inputs": [
            {"indexed": False, "name": "txId", "type": "uint256"},
            {"indexed": True, "name": "sender", "type": "address"},
            {"indexed": True, "name": "recipient", "type": "address"},
            {"indexed": False, "name": "amount", "type": "uint256"},
            {"indexed": False, "name": "fee", "type": "uint256"},
            {"indexed": False, "name": "cashback", "type": "uint256"},
            {"indexed": False, "name": "country", "type": "string"},
            {"indexed": False, "name": "token", "type": "address"},
            {"indexed": False, "name": "groupId", "type": "uint256"},
        ],
    },
]

# ERC-20 standard functions used by the transfer protocol
ERC20_ABI = [
    {
        "constant": False,
        "inputs": [
            {"name": "_spender", "type": "address"},
            {"name": "_value", "type": "uint256"},
        ],
        "name": "approve",
        "outputs": [{"name": "", "type": "bool"}],
        "type": "function",
    },
    {
        "constant": True,
        "inputs": [
            {"name": "_owner", "type": "address"},
            {"name": "_spender", "type": "address"},
        ],
        "name": "allowance",
        "outputs": [{"name": "", "type": "uint256"}],
        "type": "function",
    },
    {
        "constant": True,
        "inputs": [{"name": "_owner", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "balance", "type": "uint256"}],
        "type": "function",
    },
]

# EIP-5792 bundle format version for wallet_sendCalls
WALLET_SEND_CALLS_VERSION = "2.0.0"

# Gas limit buffer for locally signed transactions
GAS_LIMIT_MULTIPLIER = 1.2
