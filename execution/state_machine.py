# PATH: execution/state_machine.py
"""
XARB execution state machine.

EXECUTION STATE CONTRACT:
=========================

States (ExecutionState):
  IDLE                        -> plan admitted, nothing submitted
  SWAPPING                    -> buy-leg swap submitted, awaiting receipt
  APPROVING_BRIDGE            -> bridge allowance submitted, awaiting receipt
  BRIDGE_INITIATING           -> bridge transfer submitted, awaiting receipt
  AWAITING_MANUAL_REDEMPTION  -> bridge confirmed; redemption is manual
  FAILED                      -> aborted

Transitions:
  IDLE              -> SWAPPING | FAILED (pre-flight)
  SWAPPING          -> APPROVING_BRIDGE | FAILED
  APPROVING_BRIDGE  -> BRIDGE_INITIATING | FAILED
  BRIDGE_INITIATING -> AWAITING_MANUAL_REDEMPTION | FAILED

AWAITING_MANUAL_REDEMPTION and FAILED are terminal. A FAILED reached from
APPROVING_BRIDGE or BRIDGE_INITIATING means the swap committed and the
tokens sit unbridged.
=========================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from core.constants import ErrorCode, ExecutionState
from core.exceptions import XarbError


VALID_TRANSITIONS: Dict[ExecutionState, List[ExecutionState]] = {
    ExecutionState.IDLE: [ExecutionState.SWAPPING, ExecutionState.FAILED],
    ExecutionState.SWAPPING: [ExecutionState.APPROVING_BRIDGE, ExecutionState.FAILED],
    ExecutionState.APPROVING_BRIDGE: [ExecutionState.BRIDGE_INITIATING, ExecutionState.FAILED],
    ExecutionState.BRIDGE_INITIATING: [
        ExecutionState.AWAITING_MANUAL_REDEMPTION,
        ExecutionState.FAILED,
    ],
    ExecutionState.AWAITING_MANUAL_REDEMPTION: [],  # Terminal state
    ExecutionState.FAILED: [],  # Terminal state
}


@dataclass
class StateTransition:
    """Record of a state transition."""
    from_state: ExecutionState
    to_state: ExecutionState
    timestamp: str = ""
    reason: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.timestamp:
            self.timestamp = datetime.now(timezone.utc).isoformat()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from_state": self.from_state.value,
            "to_state": self.to_state.value,
            "timestamp": self.timestamp,
            "reason": self.reason,
            "metadata": self.metadata,
        }


class InvalidTransitionError(XarbError):
    """Raised when an invalid state transition is attempted."""

    default_code = ErrorCode.INVALID_TRANSITION


@dataclass
class TradeStateMachine:
    """
    State machine for one trade execution.

    Tracks current state and transition history.
    """
    trade_id: str
    state: ExecutionState = ExecutionState.IDLE
    history: List[StateTransition] = field(default_factory=list)
    created_at: str = ""

    def __post_init__(self):
        if not self.created_at:
            self.created_at = datetime.now(timezone.utc).isoformat()

    def can_transition_to(self, new_state: ExecutionState) -> bool:
        return new_state in VALID_TRANSITIONS.get(self.state, [])

    def transition_to(
        self,
        new_state: ExecutionState,
        reason: str = "",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> StateTransition:
        """
        Transition to a new state.

        Raises InvalidTransitionError if transition is not valid.
        """
        if not self.can_transition_to(new_state):
            raise InvalidTransitionError(
                f"Cannot transition from {self.state.value} to {new_state.value}. "
                f"Valid transitions: {[s.value for s in VALID_TRANSITIONS.get(self.state, [])]}"
            )

        transition = StateTransition(
            from_state=self.state,
            to_state=new_state,
            reason=reason,
            metadata=metadata or {},
        )

        self.history.append(transition)
        self.state = new_state

        return transition

    @property
    def is_terminal(self) -> bool:
        return len(VALID_TRANSITIONS.get(self.state, [])) == 0

    @property
    def is_success(self) -> bool:
        return self.state == ExecutionState.AWAITING_MANUAL_REDEMPTION

    @property
    def swap_committed(self) -> bool:
        """True once the buy-leg swap has been confirmed."""
        return any(t.to_state == ExecutionState.APPROVING_BRIDGE for t in self.history)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "trade_id": self.trade_id,
            "state": self.state.value,
            "is_terminal": self.is_terminal,
            "is_success": self.is_success,
            "created_at": self.created_at,
            "history": [t.to_dict() for t in self.history],
        }
