"""
chains/wallet.py - Local signer for one chain.

Key custody stays with eth-account; this wrapper only binds an account to a
chain id and returns raw signed transactions as hex.
"""

from typing import Any

from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_utils import to_checksum_address, to_hex


class Wallet:
    """
    Signer bound to a single EVM chain.

    Usage:
        wallet = Wallet.from_private_key(os.environ["PRIVATE_KEY"], chain_id=1)
        raw = wallet.sign(tx)
    """

    def __init__(self, account: LocalAccount, chain_id: int):
        self._account = account
        self.chain_id = chain_id

    @classmethod
    def from_private_key(cls, private_key: str, chain_id: int) -> "Wallet":
        return cls(Account.from_key(private_key), chain_id)

    @property
    def address(self) -> str:
        return self._account.address

    def sign(self, tx: dict[str, Any]) -> str:
        """Sign a legacy transaction dict. Returns 0x-prefixed raw bytes."""
        tx = {**tx, "chainId": self.chain_id}
        if tx.get("to"):
            tx["to"] = to_checksum_address(tx["to"])
        signed = self._account.sign_transaction(tx)
        return to_hex(signed.raw_transaction)

    def __repr__(self) -> str:
        return f"Wallet(address={self.address}, chain_id={self.chain_id})"
