# PATH: execution/executor.py
"""
XARB trade executor.

TRADE EXECUTION CONTRACT:
=========================

execute(plan) -> ExecutionResult
  Precondition: caller holds the ExecutionGuard.
  Steps (each awaited to on-chain confirmation before the next):
    1. swap      amount_in source -> dest on the buy chain router,
                 min_out = expected * (1 - slippage_bps/10000),
                 deadline = now + swap_deadline_seconds
    2. approve   bridge contract over the dest token amount the swap
                 credited to the wallet (receipt Transfer logs; the
                 quoted expected_amount_out if the receipt has none)
    3. transfer  bridge that amount to the sell chain's bridge network,
                 recipient = own wallet as bytes32, fresh uint32 nonce
  Outcome:
    AWAITING_MANUAL_REDEMPTION with bridge_tx_hash, or
    FAILED with error_code; funds_at_risk=True when the swap committed.
  The guard is released exactly once on every path.
=========================
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from bridge.token_bridge import generate_nonce, recipient_bytes32
from core.constants import ErrorCode, EventKind, ExecutionState
from core.events import EventSink
from core.exceptions import (
    BridgeApprovalFailed,
    BridgeTransferFailed,
    ExecutionError,
    SwapFailed,
)
from core.interfaces import BridgeClient, SwapClient
from core.logging import get_logger
from core.math import apply_slippage
from core.models import TradePlan, TradeSettings
from core.time import swap_deadline
from execution.guard import ExecutionGuard
from execution.state_machine import StateTransition, TradeStateMachine

logger = get_logger(__name__)


@dataclass
class ChainClients:
    """Transaction clients for one chain."""
    swap: SwapClient
    bridge: BridgeClient


@dataclass
class ExecutionResult:
    """Result of one trade execution."""
    trade_id: str
    state: ExecutionState
    direction: str = ""
    tx_hashes: Dict[str, str] = field(default_factory=dict)
    bridge_tx_hash: Optional[str] = None
    bridged_amount: Optional[int] = None  # Dest token base units approved and bridged
    error_code: Optional[ErrorCode] = None
    error_message: Optional[str] = None
    funds_at_risk: bool = False
    history: List[StateTransition] = field(default_factory=list)

    @property
    def is_success(self) -> bool:
        return self.state == ExecutionState.AWAITING_MANUAL_REDEMPTION

    def to_dict(self) -> Dict[str, Any]:
        return {
            "trade_id": self.trade_id,
            "state": self.state.value,
            "is_success": self.is_success,
            "direction": self.direction,
            "tx_hashes": dict(self.tx_hashes),
            "bridge_tx_hash": self.bridge_tx_hash,
            "bridged_amount": str(self.bridged_amount) if self.bridged_amount is not None else None,
            "error_code": self.error_code.value if self.error_code else None,
            "error_message": self.error_message,
            "funds_at_risk": self.funds_at_risk,
            "history": [t.to_dict() for t in self.history],
        }


class TradeExecutor:
    """
    Drives a TradePlan through swap -> approve -> bridge.

    No step is cancelled once submitted and nothing is retried: a failure
    after the swap is surfaced for the operator and left as is.
    """

    def __init__(
        self,
        guard: ExecutionGuard,
        clients: Dict[str, ChainClients],
        settings: TradeSettings,
        events: EventSink,
        nonce_factory: Callable[[], int] = generate_nonce,
    ):
        self.guard = guard
        self.clients = clients
        self.settings = settings
        self.events = events
        self.nonce_factory = nonce_factory
        self.current: Optional[TradeStateMachine] = None

    async def execute(self, plan: TradePlan) -> ExecutionResult:
        """Run the plan to a terminal state and release the guard."""
        if not self.guard.held:
            raise RuntimeError("TradeExecutor entered without holding the execution guard")

        sm = TradeStateMachine(trade_id=plan.plan_id)
        self.current = sm
        result = ExecutionResult(trade_id=plan.plan_id, state=sm.state, direction=plan.direction)

        try:
            await self._run(plan, sm, result)
        except ExecutionError as e:
            self._fail(plan, sm, result, e)
        except Exception as e:
            logger.error(
                f"Unexpected error during trade execution: {e}",
                extra={"context": {"trade_id": plan.plan_id, "state": sm.state.value}},
                exc_info=True,
            )
            self._fail(plan, sm, result, self._classify(sm, result, e))
        finally:
            result.state = sm.state
            result.history = list(sm.history)
            self.guard.exit()

        return result

    async def _run(self, plan: TradePlan, sm: TradeStateMachine, result: ExecutionResult) -> None:
        buy = plan.buy_chain
        clients = self.clients.get(buy.name)
        if clients is None:
            raise SwapFailed(f"No transaction clients configured for {buy.name}")
        wallet_address = buy.wallet_address
        if wallet_address is None:
            raise SwapFailed(f"No wallet configured for {buy.name}")

        # Step 1: buy the target token on the cheaper chain
        min_amount_out = apply_slippage(plan.expected_amount_out, self.settings.slippage_tolerance_bps)
        deadline = swap_deadline(self.settings.swap_deadline_seconds)
        sm.transition_to(
            ExecutionState.SWAPPING,
            metadata={"min_amount_out": min_amount_out, "deadline": deadline},
        )
        self.events.emit(EventKind.INFO, f"Executing buy order on {buy.name}...")
        swap_tx = await clients.swap.swap(
            router=buy.router_address,
            amount_in=plan.amount_in,
            min_amount_out=min_amount_out,
            path=[plan.source_token, plan.dest_token],
            recipient=wallet_address,
            deadline=deadline,
        )
        result.tx_hashes["swap"] = swap_tx
        sm.transition_to(ExecutionState.APPROVING_BRIDGE, metadata={"swap_tx": swap_tx})
        self.events.emit(EventKind.INFO, f"Buy transaction successful! Tx: {swap_tx}")

        # Step 2: allow the bridge to pull what the swap delivered
        amount = await self._received_amount(clients, plan, swap_tx, wallet_address)
        result.bridged_amount = amount
        bridge_address = plan.bridge_target.bridge_address
        approve_tx = await clients.bridge.approve(
            token=plan.dest_token,
            spender=bridge_address,
            amount=amount,
        )
        result.tx_hashes["approve"] = approve_tx
        self.events.emit(EventKind.INFO, f"Approval successful. Tx: {approve_tx}")

        # Step 3: send to our own address on the sell chain
        nonce = self.nonce_factory()
        recipient = recipient_bytes32(plan.sell_chain.wallet_address or wallet_address)
        sm.transition_to(ExecutionState.BRIDGE_INITIATING, metadata={"approve_tx": approve_tx, "nonce": nonce})
        bridge_tx = await clients.bridge.transfer(
            token=plan.dest_token,
            amount=amount,
            dest_chain_id=plan.bridge_target.chain_id,
            recipient_bytes32=recipient,
            nonce=nonce,
        )
        result.tx_hashes["bridge"] = bridge_tx
        result.bridge_tx_hash = bridge_tx
        sm.transition_to(ExecutionState.AWAITING_MANUAL_REDEMPTION, metadata={"bridge_tx": bridge_tx})

        self._report_manual_redemption(plan, bridge_tx)

    async def _received_amount(
        self,
        clients: ChainClients,
        plan: TradePlan,
        swap_tx: str,
        wallet_address: str,
    ) -> int:
        received = await clients.swap.received_amount(swap_tx, plan.dest_token, wallet_address)
        if not received:
            logger.warning(
                "No Transfer to the wallet in the swap receipt; using the quoted amount",
                extra={"context": {"trade_id": plan.plan_id, "swap_tx": swap_tx}},
            )
            return plan.expected_amount_out
        if received != plan.expected_amount_out:
            logger.info(
                "Swap filled away from the quote",
                extra={"context": {
                    "trade_id": plan.plan_id,
                    "expected": plan.expected_amount_out,
                    "received": received,
                }},
            )
        return received

    def _report_manual_redemption(self, plan: TradePlan, bridge_tx: str) -> None:
        logger.info(
            "Trade sequence initiated",
            extra={"context": {"trade_id": plan.plan_id, "bridge_tx": bridge_tx, "direction": plan.direction}},
        )
        self.events.emit(EventKind.INFO, f"Bridge transfer initiated successfully! Tx: {bridge_tx}")
        self.events.emit(EventKind.INFO, "--- TRADE SEQUENCE INITIATED ---")
        self.events.emit(EventKind.WARN, "Next Steps (Manual):")
        self.events.emit(
            EventKind.WARN,
            f"1. Use the bridge Tx hash ({bridge_tx}) to fetch the signed VAA from a Wormhole explorer.",
        )
        self.events.emit(
            EventKind.WARN,
            f"2. Submit the VAA to the token bridge on {plan.sell_chain.name} to redeem the tokens.",
        )
        self.events.emit(EventKind.WARN, f"3. Execute the sell order on {plan.sell_chain.name}.")

    def _fail(
        self,
        plan: TradePlan,
        sm: TradeStateMachine,
        result: ExecutionResult,
        error: ExecutionError,
    ) -> None:
        failed_in = sm.state
        if sm.is_success:
            # Bridge transfer already submitted; nothing to fail
            logger.warning(
                f"Error after bridge transfer was initiated: {error.message}",
                extra={"context": {"trade_id": plan.plan_id, "bridge_tx": result.bridge_tx_hash}},
            )
            return
        if not sm.is_terminal:
            sm.transition_to(ExecutionState.FAILED, reason=error.message, metadata={"code": error.code.value})

        result.error_code = error.code
        result.error_message = error.message
        result.funds_at_risk = error.funds_at_risk
        if error.tx_hash:
            result.tx_hashes.setdefault("failed", error.tx_hash)

        context = {
            "trade_id": plan.plan_id,
            "failed_in": failed_in.value,
            "code": error.code.value,
            "funds_at_risk": error.funds_at_risk,
            "tx_hashes": dict(result.tx_hashes),
        }

        if error.funds_at_risk:
            logger.error(f"Partial execution: {error.message}", extra={"context": context})
            self.events.emit(
                EventKind.ERROR,
                f"PARTIAL EXECUTION on {plan.buy_chain.name}: {error.message}. "
                f"Swapped {result.bridged_amount or plan.expected_amount_out} units of {plan.dest_token} are in the wallet "
                f"but NOT bridged. Operator attention required.",
            )
        else:
            logger.error(f"Trade aborted: {error.message}", extra={"context": context})
            self.events.emit(
                EventKind.ERROR,
                f"Trade aborted before any funds moved on {plan.buy_chain.name}: {error.message}",
            )

    @staticmethod
    def _classify(sm: TradeStateMachine, result: ExecutionResult, error: Exception) -> ExecutionError:
        """
        Map an unexpected exception to the failure kind of the step it hit.

        Once the swap has a confirmed tx the failure is partial, whatever
        state the machine reached.
        """
        message = f"{type(error).__name__}: {error}"
        if sm.state == ExecutionState.BRIDGE_INITIATING:
            return BridgeTransferFailed(message)
        if sm.state == ExecutionState.APPROVING_BRIDGE or sm.swap_committed or "swap" in result.tx_hashes:
            return BridgeApprovalFailed(message)
        return SwapFailed(message)

