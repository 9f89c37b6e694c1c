# PATH: core/interfaces.py
"""
Collaborator interfaces consumed by the engine.

INTERFACE CONTRACT:
===================
  PriceOracle.quote(amount_in, token_in, token_out) -> PriceQuote
    - never raises; failures come back as an unavailable quote
  SwapClient.swap(router, amount_in, min_amount_out, path, recipient, deadline) -> tx_hash
    - raises SwapFailed
  SwapClient.received_amount(tx_hash, token, recipient) -> int | None
    - what a confirmed swap credited to recipient; None if unknown
  BridgeClient.approve(token, spender, amount) -> tx_hash
    - raises BridgeApprovalFailed
  BridgeClient.transfer(token, amount, dest_chain_id, recipient_bytes32, nonce) -> tx_hash
    - raises BridgeTransferFailed
All returned tx hashes are for confirmed (mined, status 1) transactions.
===================
"""

from typing import Protocol

from core.models import PriceQuote


class PriceOracle(Protocol):
    chain_name: str

    async def quote(self, amount_in: int, token_in: str, token_out: str) -> PriceQuote: ...


class SwapClient(Protocol):
    async def swap(
        self,
        router: str,
        amount_in: int,
        min_amount_out: int,
        path: list[str],
        recipient: str,
        deadline: int,
    ) -> str: ...

    async def received_amount(self, tx_hash: str, token: str, recipient: str) -> int | None: ...


class BridgeClient(Protocol):
    async def approve(self, token: str, spender: str, amount: int) -> str: ...

    async def transfer(
        self,
        token: str,
        amount: int,
        dest_chain_id: int,
        recipient_bytes32: str,
        nonce: int,
    ) -> str: ...
