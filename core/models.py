# PATH: core/models.py
"""
Core data models for XARB.

ChainProfile and TradeSettings are loaded once and never mutated.
PriceQuote is produced per cycle. TradePlan is created by the evaluator,
consumed exactly once by the executor, then discarded.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional, TYPE_CHECKING
from uuid import uuid4

from core.constants import (
    DEFAULT_ESTIMATED_FIXED_COST,
    DEFAULT_POLLING_INTERVAL_SECONDS,
    DEFAULT_SLIPPAGE_TOLERANCE_BPS,
    DEFAULT_STABLECOIN_DECIMALS,
    DEFAULT_SWAP_DEADLINE_SECONDS,
    DEFAULT_TARGET_DECIMALS,
)
from core.exceptions import OracleUnavailable
from core.time import now_ms

if TYPE_CHECKING:
    from chains.wallet import Wallet


@dataclass(frozen=True)
class ChainProfile:
    """One chain's venue, bridge and signer."""
    name: str
    chain_id: int
    router_address: str
    stablecoin_address: str
    bridge_address: str
    bridge_chain_id: int  # Bridge network id (Wormhole uint16), not the EVM chain id
    stablecoin_decimals: int = DEFAULT_STABLECOIN_DECIMALS
    target_decimals: int = DEFAULT_TARGET_DECIMALS
    target_token_address: Optional[str] = None  # Overrides TradeSettings.target_token_address
    wallet: Optional["Wallet"] = field(default=None, compare=False, repr=False)

    @property
    def wallet_address(self) -> Optional[str]:
        return self.wallet.address if self.wallet is not None else None


@dataclass(frozen=True)
class TradeSettings:
    """Global trade settings."""
    target_token_address: str
    trade_amount: Decimal  # Quote currency (USD)
    profit_threshold_percent: Decimal
    estimated_fixed_cost: Decimal = DEFAULT_ESTIMATED_FIXED_COST
    slippage_tolerance_bps: int = DEFAULT_SLIPPAGE_TOLERANCE_BPS
    swap_deadline_seconds: int = DEFAULT_SWAP_DEADLINE_SECONDS
    polling_interval_seconds: int = DEFAULT_POLLING_INTERVAL_SECONDS

    def __post_init__(self):
        if self.trade_amount <= 0:
            raise ValueError(f"trade_amount must be positive, got {self.trade_amount}")
        if not 0 <= self.slippage_tolerance_bps <= 10_000:
            raise ValueError(f"slippage_tolerance_bps out of range: {self.slippage_tolerance_bps}")
        if self.swap_deadline_seconds <= 0:
            raise ValueError("swap_deadline_seconds must be positive")


@dataclass(frozen=True)
class PriceQuote:
    """
    Output of one oracle call.

    amount_out is None when the venue could not be priced.
    """
    chain: str
    amount_in: int
    token_in: str
    token_out: str
    amount_out: Optional[int] = None
    reason: Optional[str] = None
    timestamp_ms: int = field(default_factory=now_ms)

    @property
    def available(self) -> bool:
        return self.amount_out is not None

    def require(self) -> int:
        """amount_out, or OracleUnavailable if the venue could not be priced."""
        if self.amount_out is None:
            raise OracleUnavailable(
                f"No quote on {self.chain}: {self.reason or 'unknown'}",
                details={"chain": self.chain, "token_in": self.token_in, "token_out": self.token_out},
            )
        return self.amount_out

    @classmethod
    def unavailable(
        cls,
        chain: str,
        amount_in: int,
        token_in: str,
        token_out: str,
        reason: str,
    ) -> "PriceQuote":
        return cls(
            chain=chain,
            amount_in=amount_in,
            token_in=token_in,
            token_out=token_out,
            amount_out=None,
            reason=reason,
        )


@dataclass(frozen=True)
class BridgeTarget:
    """Where the bridge leg goes."""
    chain_id: int  # Destination bridge network id
    bridge_address: str  # Bridge contract on the buy chain


@dataclass(frozen=True)
class TradePlan:
    """A fully-specified buy -> bridge plan."""
    buy_chain: ChainProfile
    sell_chain: ChainProfile
    source_token: str
    dest_token: str
    amount_in: int
    expected_amount_out: int
    bridge_target: BridgeTarget
    expected_revenue: Decimal
    net_profit: Decimal
    profit_percent: Decimal
    plan_id: str = field(default_factory=lambda: f"plan_{uuid4().hex[:12]}")
    created_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    def __post_init__(self):
        if self.amount_in <= 0:
            raise ValueError(f"amount_in must be positive, got {self.amount_in}")
        if self.expected_amount_out <= 0:
            raise ValueError(f"expected_amount_out must be positive, got {self.expected_amount_out}")

    @property
    def direction(self) -> str:
        return f"{self.buy_chain.name} -> {self.sell_chain.name}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "plan_id": self.plan_id,
            "direction": self.direction,
            "buy_chain": self.buy_chain.name,
            "sell_chain": self.sell_chain.name,
            "source_token": self.source_token,
            "dest_token": self.dest_token,
            "amount_in": str(self.amount_in),
            "expected_amount_out": str(self.expected_amount_out),
            "bridge_target": {
                "chain_id": self.bridge_target.chain_id,
                "bridge_address": self.bridge_target.bridge_address,
            },
            "expected_revenue": str(self.expected_revenue),
            "net_profit": str(self.net_profit),
            "profit_percent": str(self.profit_percent),
            "created_at": self.created_at,
        }
