"""
dex/ - AMM venue access.

Modules:
- router: Uniswap V2-style router oracle and swap client
"""

from dex.router import (
    RouterSwapClient,
    UniswapV2Oracle,
    decode_amounts_out,
    encode_get_amounts_out,
    encode_swap_exact_tokens_for_tokens,
)

__all__ = [
    "RouterSwapClient",
    "UniswapV2Oracle",
    "decode_amounts_out",
    "encode_get_amounts_out",
    "encode_swap_exact_tokens_for_tokens",
]
