"""
bridge/token_bridge.py - Wormhole Token Bridge, source-chain side.

Only the outbound leg lives here: approve the bridge, then transferTokens.
Redeeming on the destination chain (fetching the signed VAA and submitting
it) is a manual follow-up.
"""

import secrets

from chains.abi import encode_address, encode_bytes32, encode_call, encode_uint
from chains.transactions import TransactionSender
from core.constants import GAS_LIMIT_APPROVE, GAS_LIMIT_BRIDGE_TRANSFER, MAX_BRIDGE_NONCE
from core.exceptions import (
    BridgeApprovalFailed,
    BridgeTransferFailed,
    InfraError,
    TransactionReverted,
)
from core.logging import get_logger

logger = get_logger(__name__)


# =============================================================================
# ABI ENCODING
# =============================================================================

# keccak256("approve(address,uint256)")[:4]
SELECTOR_APPROVE = "095ea7b3"

# keccak256("transferTokens(address,uint256,uint16,bytes32,uint256,uint32)")[:4]
SELECTOR_TRANSFER_TOKENS = "0f5287b0"

MAX_BRIDGE_CHAIN_ID = 2**16 - 1


def recipient_bytes32(address: str) -> str:
    """
    Left-pad a 20-byte address to the 32-byte form Wormhole expects.

    0xAbC...123 -> 0x000000000000000000000000abc...123
    """
    return "0x" + encode_address(address)


def generate_nonce() -> int:
    """Fresh uint32 nonce for one transfer."""
    return secrets.randbelow(MAX_BRIDGE_NONCE + 1)


def encode_approve(spender: str, amount: int) -> str:
    """Encode ERC20 approve(spender, amount)."""
    return encode_call(SELECTOR_APPROVE, encode_address(spender), encode_uint(amount))


def encode_transfer_tokens(
    token: str,
    amount: int,
    recipient_chain: int,
    recipient: str,
    nonce: int,
    arbiter_fee: int = 0,
) -> str:
    """
    Encode transferTokens(token, amount, recipientChain, recipient, arbiterFee, nonce).

    recipient_chain is a uint16 Wormhole chain id; nonce is uint32.
    """
    if not 0 <= recipient_chain <= MAX_BRIDGE_CHAIN_ID:
        raise ValueError(f"Bridge chain id out of uint16 range: {recipient_chain}")
    if not 0 <= nonce <= MAX_BRIDGE_NONCE:
        raise ValueError(f"Nonce out of uint32 range: {nonce}")
    return encode_call(
        SELECTOR_TRANSFER_TOKENS,
        encode_address(token),
        encode_uint(amount),
        encode_uint(recipient_chain),
        encode_bytes32(recipient),
        encode_uint(arbiter_fee),
        encode_uint(nonce),
    )


# =============================================================================
# CLIENT
# =============================================================================

class TokenBridgeClient:
    """
    BridgeClient for a Wormhole Token Bridge contract.

    Usage:
        client = TokenBridgeClient(sender, bridge_address)
        await client.approve(token, bridge_address, amount)
        tx_hash = await client.transfer(token, amount, 5, recipient_bytes32(addr), generate_nonce())
    """

    def __init__(self, sender: TransactionSender, bridge_address: str):
        self.sender = sender
        self.bridge_address = bridge_address

    async def approve(self, token: str, spender: str, amount: int) -> str:
        """
        Grant spender allowance over amount of token; waits for confirmation.

        Raises:
            BridgeApprovalFailed
        """
        logger.info(
            f"Approving bridge contract ({spender}) to spend {amount} tokens",
            extra={"context": {"token": token}},
        )
        try:
            outcome = await self.sender.send(
                to=token,
                data=encode_approve(spender, amount),
                gas_limit=GAS_LIMIT_APPROVE,
            )
        except TransactionReverted as e:
            raise BridgeApprovalFailed(f"Approval reverted: {e.message}", tx_hash=e.tx_hash)
        except InfraError as e:
            raise BridgeApprovalFailed(f"Approval submission failed: {e.message}", details=e.details)
        return outcome.tx_hash

    async def transfer(
        self,
        token: str,
        amount: int,
        dest_chain_id: int,
        recipient_bytes32: str,
        nonce: int,
    ) -> str:
        """
        Initiate the bridge transfer; waits for confirmation.

        Raises:
            BridgeTransferFailed
        """
        logger.info(
            f"Initiating bridge transfer to chain ID {dest_chain_id}",
            extra={"context": {"token": token, "amount": amount, "nonce": nonce}},
        )
        try:
            data = encode_transfer_tokens(token, amount, dest_chain_id, recipient_bytes32, nonce)
            outcome = await self.sender.send(
                to=self.bridge_address,
                data=data,
                gas_limit=GAS_LIMIT_BRIDGE_TRANSFER,
            )
        except ValueError as e:
            raise BridgeTransferFailed(f"Invalid bridge transfer: {e}")
        except TransactionReverted as e:
            raise BridgeTransferFailed(f"Bridge transfer reverted: {e.message}", tx_hash=e.tx_hash)
        except InfraError as e:
            raise BridgeTransferFailed(f"Bridge transfer submission failed: {e.message}", details=e.details)
        return outcome.tx_hash
