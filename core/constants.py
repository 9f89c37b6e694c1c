# PATH: core/constants.py
"""
Constants for XARB.

Contains enums, defaults, and configuration constants.
"""

from decimal import Decimal
from enum import Enum
from typing import Final

# Trade defaults
DEFAULT_ESTIMATED_FIXED_COST: Final[Decimal] = Decimal("75")  # Gas + bridge fees, quote currency
DEFAULT_SLIPPAGE_TOLERANCE_BPS: Final[int] = 100  # 1%
DEFAULT_SWAP_DEADLINE_SECONDS: Final[int] = 60 * 20  # 20 minutes
DEFAULT_POLLING_INTERVAL_SECONDS: Final[int] = 30

# Decimals
DEFAULT_STABLECOIN_DECIMALS: Final[int] = 6  # USDC
DEFAULT_TARGET_DECIMALS: Final[int] = 18  # WETH

# Fixed gas limits (no estimation)
GAS_LIMIT_SWAP: Final[int] = 250_000
GAS_LIMIT_APPROVE: Final[int] = 100_000
GAS_LIMIT_BRIDGE_TRANSFER: Final[int] = 300_000

# Receipt polling
DEFAULT_RECEIPT_POLL_SECONDS: Final[float] = 2.0

# Wormhole nonce is uint32
MAX_BRIDGE_NONCE: Final[int] = 2**32 - 1

BPS_DENOMINATOR: Final[int] = 10_000


class ErrorCode(str, Enum):
    """Error codes carried by every XARB exception."""
    # Oracle
    ORACLE_UNAVAILABLE = "ORACLE_UNAVAILABLE"
    QUOTE_REVERT = "QUOTE_REVERT"

    # Infrastructure
    INFRA_RPC_ERROR = "INFRA_RPC_ERROR"
    INFRA_TIMEOUT = "INFRA_TIMEOUT"

    # Execution
    SWAP_FAILED = "SWAP_FAILED"
    BRIDGE_APPROVAL_FAILED = "BRIDGE_APPROVAL_FAILED"
    BRIDGE_TRANSFER_FAILED = "BRIDGE_TRANSFER_FAILED"
    TX_REVERTED = "TX_REVERTED"
    INVALID_TRANSITION = "INVALID_TRANSITION"

    # Configuration
    CONFIG_MISSING = "CONFIG_MISSING"
    CONFIG_INVALID = "CONFIG_INVALID"

    UNKNOWN = "UNKNOWN"


class ExecutionState(str, Enum):
    """States of one admitted trade execution."""
    IDLE = "IDLE"
    SWAPPING = "SWAPPING"
    APPROVING_BRIDGE = "APPROVING_BRIDGE"
    BRIDGE_INITIATING = "BRIDGE_INITIATING"
    AWAITING_MANUAL_REDEMPTION = "AWAITING_MANUAL_REDEMPTION"
    FAILED = "FAILED"


class EventKind(str, Enum):
    """Kinds of human-readable status events."""
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    OPPORTUNITY = "opportunity"


class CycleOutcome(str, Enum):
    """How a single evaluate/execute cycle ended."""
    SKIPPED_BUSY = "SKIPPED_BUSY"
    NO_OPPORTUNITY = "NO_OPPORTUNITY"
    EXECUTED = "EXECUTED"
    EXECUTION_FAILED = "EXECUTION_FAILED"
    MONITOR_ONLY = "MONITOR_ONLY"
    ERROR = "ERROR"
