"""
chains/transactions.py - Sign, broadcast and confirm contract calls.

Every call waits for its receipt before returning, so callers observe
on-chain confirmation (or a revert) before issuing the next step.
"""

from dataclasses import dataclass

from chains.providers import RPCProvider
from chains.wallet import Wallet
from core.constants import DEFAULT_RECEIPT_POLL_SECONDS
from core.exceptions import TransactionReverted
from core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class TransactionOutcome:
    """A mined, successful transaction."""
    tx_hash: str
    block_number: int
    gas_used: int


class TransactionSender:
    """
    Sends transactions from one wallet on one chain.

    Gas limits are fixed per call kind; gas price is whatever the node
    reports at submission time.
    """

    def __init__(
        self,
        provider: RPCProvider,
        wallet: Wallet,
        poll_interval: float = DEFAULT_RECEIPT_POLL_SECONDS,
    ):
        self.provider = provider
        self.wallet = wallet
        self.poll_interval = poll_interval

    @property
    def address(self) -> str:
        return self.wallet.address

    async def send(self, to: str, data: str, gas_limit: int, value: int = 0) -> TransactionOutcome:
        """
        Submit a call and wait for it to be mined.

        Raises:
            InfraError: submission or polling failed at the RPC level
            TransactionReverted: mined with status 0
        """
        nonce = await self.provider.get_transaction_count(self.wallet.address)
        gas_price = await self.provider.get_gas_price()

        raw_tx = self.wallet.sign({
            "to": to,
            "data": data,
            "value": value,
            "gas": gas_limit,
            "gasPrice": gas_price,
            "nonce": nonce,
        })
        tx_hash = await self.provider.send_raw_transaction(raw_tx)

        logger.info(
            "Transaction submitted",
            extra={"context": {"tx_hash": tx_hash, "to": to, "nonce": nonce}},
        )

        receipt = await self.provider.wait_for_receipt(tx_hash, poll_interval=self.poll_interval)
        status = int(receipt.get("status", "0x0"), 16)
        block_number = int(receipt.get("blockNumber") or "0x0", 16)
        gas_used = int(receipt.get("gasUsed") or "0x0", 16)

        if status != 1:
            raise TransactionReverted(
                f"Transaction {tx_hash} reverted",
                tx_hash=tx_hash,
                details={"block_number": block_number},
            )

        logger.info(
            "Transaction confirmed",
            extra={"context": {"tx_hash": tx_hash, "block_number": block_number, "gas_used": gas_used}},
        )
        return TransactionOutcome(tx_hash=tx_hash, block_number=block_number, gas_used=gas_used)
