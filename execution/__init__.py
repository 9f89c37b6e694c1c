# PATH: execution/__init__.py
"""
XARB Execution Layer.

This module contains the execution layer components:
- guard: single-flight admission
- state_machine: trade state machine with transitions
- executor: swap -> approve -> bridge driver
"""

from execution.guard import ExecutionGuard
from execution.state_machine import (
    TradeStateMachine,
    StateTransition,
    InvalidTransitionError,
    VALID_TRANSITIONS,
)
from execution.executor import (
    ChainClients,
    ExecutionResult,
    TradeExecutor,
)

__all__ = [
    # Guard
    "ExecutionGuard",
    # State machine
    "TradeStateMachine",
    "StateTransition",
    "InvalidTransitionError",
    "VALID_TRANSITIONS",
    # Executor
    "ChainClients",
    "ExecutionResult",
    "TradeExecutor",
]
