"""
core - Core utilities and models for XARB.

This package contains:
- models.py: Data models (ChainProfile, TradeSettings, PriceQuote, TradePlan)
- constants.py: Enums and defaults
- exceptions.py: Typed exceptions with error codes
- events.py: Status events and sinks
- interfaces.py: Oracle / swap / bridge collaborator protocols
- math.py: Decimal and base-unit helpers (no float)
- time.py: Timestamps and swap deadlines
- logging.py: Structured JSON logging
"""

from core.constants import (
    CycleOutcome,
    ErrorCode,
    EventKind,
    ExecutionState,
)
from core.exceptions import (
    BridgeApprovalFailed,
    BridgeTransferFailed,
    ConfigurationInvalid,
    ConfigurationMissing,
    ExecutionError,
    InfraError,
    OracleUnavailable,
    PartialExecutionError,
    QuoteError,
    SwapFailed,
    TransactionReverted,
    XarbError,
)
from core.logging import get_logger, setup_logging
from core.models import (
    BridgeTarget,
    ChainProfile,
    PriceQuote,
    TradePlan,
    TradeSettings,
)

__all__ = [
    # Constants
    "CycleOutcome",
    "ErrorCode",
    "EventKind",
    "ExecutionState",
    # Exceptions
    "BridgeApprovalFailed",
    "BridgeTransferFailed",
    "ConfigurationInvalid",
    "ConfigurationMissing",
    "ExecutionError",
    "InfraError",
    "OracleUnavailable",
    "PartialExecutionError",
    "QuoteError",
    "SwapFailed",
    "TransactionReverted",
    "XarbError",
    # Logging
    "get_logger",
    "setup_logging",
    # Models
    "BridgeTarget",
    "ChainProfile",
    "PriceQuote",
    "TradePlan",
    "TradeSettings",
]
