"""
dex/router.py - Uniswap V2-style router: quoting and swapping.

Quoting goes through getAmountsOut (a view call, so it includes pool-depth
slippage for the requested size). Swapping goes through
swapExactTokensForTokens and waits for the receipt.
"""

import time

from chains.abi import (
    decode_uint_array,
    sum_transfers_to,
    encode_address,
    encode_address_array,
    encode_call,
    encode_uint,
)
from chains.providers import RPCProvider
from chains.transactions import TransactionSender
from core.constants import GAS_LIMIT_SWAP
from core.exceptions import InfraError, QuoteError, SwapFailed, TransactionReverted
from core.logging import get_logger
from core.models import PriceQuote

logger = get_logger(__name__)


# =============================================================================
# ABI ENCODING (Uniswap V2 Router02)
# =============================================================================

# keccak256("getAmountsOut(uint256,address[])")[:4]
SELECTOR_GET_AMOUNTS_OUT = "d06ca61f"

# keccak256("swapExactTokensForTokens(uint256,uint256,address[],address,uint256)")[:4]
SELECTOR_SWAP_EXACT_TOKENS_FOR_TOKENS = "38ed1739"


def encode_get_amounts_out(amount_in: int, path: list[str]) -> str:
    """
    Encode getAmountsOut(uint256 amountIn, address[] path).

    Head: amountIn, offset of path (2 words = 0x40). Tail: path.
    """
    return encode_call(
        SELECTOR_GET_AMOUNTS_OUT,
        encode_uint(amount_in),
        encode_uint(2 * 32),
        tail=encode_address_array(path),
    )


def encode_swap_exact_tokens_for_tokens(
    amount_in: int,
    amount_out_min: int,
    path: list[str],
    recipient: str,
    deadline: int,
) -> str:
    """
    Encode swapExactTokensForTokens(amountIn, amountOutMin, path, to, deadline).

    Head has 5 words; path lives in the tail at offset 0xa0.
    """
    return encode_call(
        SELECTOR_SWAP_EXACT_TOKENS_FOR_TOKENS,
        encode_uint(amount_in),
        encode_uint(amount_out_min),
        encode_uint(5 * 32),
        encode_address(recipient),
        encode_uint(deadline),
        tail=encode_address_array(path),
    )


def decode_amounts_out(hex_result: str) -> int:
    """
    Decode getAmountsOut response and return the final output amount.

    Raises:
        QuoteError: empty or malformed response
    """
    if not hex_result or hex_result == "0x":
        raise QuoteError("Empty getAmountsOut response")
    try:
        amounts = decode_uint_array(hex_result)
    except ValueError as e:
        raise QuoteError(
            f"Malformed getAmountsOut response: {e}",
            details={"raw": hex_result[:100]},
        )
    if len(amounts) < 2:
        raise QuoteError(
            "getAmountsOut returned fewer than 2 amounts",
            details={"amounts": amounts},
        )
    return amounts[-1]


# =============================================================================
# ORACLE
# =============================================================================

class UniswapV2Oracle:
    """
    PriceOracle backed by a V2 router's getAmountsOut.

    Usage:
        oracle = UniswapV2Oracle(provider, router_address, chain_name="ethereum")
        quote = await oracle.quote(amount_in, usdc, weth)
        if quote.available: ...
    """

    def __init__(self, provider: RPCProvider, router_address: str, chain_name: str):
        self.provider = provider
        self.router_address = router_address
        self.chain_name = chain_name

    async def quote(self, amount_in: int, token_in: str, token_out: str) -> PriceQuote:
        """Quote a two-token swap. Never raises."""
        if amount_in <= 0:
            return self._unavailable(amount_in, token_in, token_out, "amount_in must be positive")
        if token_in.lower() == token_out.lower():
            return self._unavailable(amount_in, token_in, token_out, "token_in equals token_out")

        try:
            call_data = encode_get_amounts_out(amount_in, [token_in, token_out])
            start_ms = int(time.time() * 1000)
            response = await self.provider.eth_call(to=self.router_address, data=call_data)
            latency_ms = int(time.time() * 1000) - start_ms
            amount_out = decode_amounts_out(response.result)
        except (InfraError, QuoteError, ValueError) as e:
            return self._unavailable(amount_in, token_in, token_out, str(e))

        logger.debug(
            f"Quote on {self.chain_name}: {amount_in} -> {amount_out}",
            extra={"context": {
                "chain": self.chain_name,
                "token_in": token_in,
                "token_out": token_out,
                "latency_ms": latency_ms,
            }},
        )
        return PriceQuote(
            chain=self.chain_name,
            amount_in=amount_in,
            token_in=token_in,
            token_out=token_out,
            amount_out=amount_out,
        )

    def _unavailable(self, amount_in: int, token_in: str, token_out: str, reason: str) -> PriceQuote:
        logger.warning(
            f"Failed to get price from DEX at {self.router_address}: {reason}",
            extra={"context": {"chain": self.chain_name, "router": self.router_address}},
        )
        return PriceQuote.unavailable(self.chain_name, amount_in, token_in, token_out, reason)


# =============================================================================
# SWAP CLIENT
# =============================================================================

class RouterSwapClient:
    """SwapClient submitting swapExactTokensForTokens through a TransactionSender."""

    def __init__(self, sender: TransactionSender, gas_limit: int = GAS_LIMIT_SWAP):
        self.sender = sender
        self.gas_limit = gas_limit

    async def swap(
        self,
        router: str,
        amount_in: int,
        min_amount_out: int,
        path: list[str],
        recipient: str,
        deadline: int,
    ) -> str:
        """
        Swap and wait for confirmation.

        Raises:
            SwapFailed: submission failed, tx reverted (incl. deadline expiry)
        """
        data = encode_swap_exact_tokens_for_tokens(amount_in, min_amount_out, path, recipient, deadline)
        try:
            outcome = await self.sender.send(to=router, data=data, gas_limit=self.gas_limit)
        except TransactionReverted as e:
            raise SwapFailed(f"Swap reverted: {e.message}", tx_hash=e.tx_hash)
        except InfraError as e:
            raise SwapFailed(f"Swap submission failed: {e.message}", details=e.details)
        return outcome.tx_hash

    async def received_amount(self, tx_hash: str, token: str, recipient: str) -> int | None:
        """
        Amount of token the swap credited to recipient, from the receipt's
        Transfer logs. None when the receipt cannot be read or holds no
        matching Transfer.
        """
        try:
            receipt = await self.sender.provider.get_transaction_receipt(tx_hash)
        except InfraError as e:
            logger.warning(
                f"Could not read swap receipt {tx_hash}: {e.message}",
                extra={"context": {"tx_hash": tx_hash}},
            )
            return None
        if not receipt:
            return None
        try:
            return sum_transfers_to(receipt.get("logs") or [], token, recipient)
        except ValueError as e:
            logger.warning(
                f"Malformed Transfer log in {tx_hash}: {e}",
                extra={"context": {"tx_hash": tx_hash}},
            )
            return None
