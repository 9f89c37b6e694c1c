"""
chains/ - Blockchain interaction layer.

Modules:
- providers: JSON-RPC provider management with failover
- wallet: Local transaction signer
- transactions: Sign, broadcast and confirm contract calls
"""

from chains.providers import (
    RPCProvider,
    RPCResponse,
    RPCStats,
    ProviderRegistry,
)
from chains.transactions import TransactionOutcome, TransactionSender
from chains.wallet import Wallet

__all__ = [
    # Providers
    "RPCProvider",
    "RPCResponse",
    "RPCStats",
    "ProviderRegistry",
    # Signing
    "Wallet",
    "TransactionOutcome",
    "TransactionSender",
]
