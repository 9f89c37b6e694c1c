"""
bridge/ - Cross-chain token bridge (outbound leg only).
"""

from bridge.token_bridge import (
    TokenBridgeClient,
    encode_approve,
    encode_transfer_tokens,
    generate_nonce,
    recipient_bytes32,
)

__all__ = [
    "TokenBridgeClient",
    "encode_approve",
    "encode_transfer_tokens",
    "generate_nonce",
    "recipient_bytes32",
]
