# PATH: core/exceptions.py
"""
Typed exceptions for XARB.

Every error carries an ErrorCode. Bridge failures are partial-execution
errors: the swap has already committed and funds sit unbridged.
"""

from typing import Optional

from core.constants import ErrorCode


class XarbError(Exception):
    """Base exception for XARB."""

    default_code: ErrorCode = ErrorCode.UNKNOWN

    def __init__(
        self,
        message: str = "",
        code: Optional[ErrorCode] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}

    def __str__(self):
        return f"[{self.code.value}] {self.message}"


class ConfigurationMissing(XarbError):
    """Required configuration is absent. Fatal at startup."""

    default_code = ErrorCode.CONFIG_MISSING

    def __init__(self, message: str, missing: Optional[list[str]] = None):
        super().__init__(message, details={"missing": missing or []})
        self.missing = missing or []


class ConfigurationInvalid(XarbError):
    """Configuration value present but unusable."""

    default_code = ErrorCode.CONFIG_INVALID


class InfraError(XarbError):
    """Infrastructure-related errors (RPC, timeouts)."""

    default_code = ErrorCode.INFRA_RPC_ERROR


class QuoteError(XarbError):
    """Quote call reverted or returned garbage."""

    default_code = ErrorCode.QUOTE_REVERT


class OracleUnavailable(XarbError):
    """A venue could not be priced this cycle."""

    default_code = ErrorCode.ORACLE_UNAVAILABLE


class TransactionReverted(XarbError):
    """Transaction was mined with status 0."""

    default_code = ErrorCode.TX_REVERTED

    def __init__(self, message: str, tx_hash: str, details: Optional[dict] = None):
        super().__init__(message, details={"tx_hash": tx_hash, **(details or {})})
        self.tx_hash = tx_hash


class ExecutionError(XarbError):
    """A trade step failed."""

    funds_at_risk: bool = False

    def __init__(
        self,
        message: str,
        tx_hash: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details=details)
        self.tx_hash = tx_hash


class SwapFailed(ExecutionError):
    """Buy-leg swap failed. Nothing irreversible has happened yet."""

    default_code = ErrorCode.SWAP_FAILED


class PartialExecutionError(ExecutionError):
    """Failure after the swap committed: tokens are swapped but not bridged."""

    funds_at_risk = True


class BridgeApprovalFailed(PartialExecutionError):
    """Bridge allowance could not be granted."""

    default_code = ErrorCode.BRIDGE_APPROVAL_FAILED


class BridgeTransferFailed(PartialExecutionError):
    """Bridge transfer was not confirmed."""

    default_code = ErrorCode.BRIDGE_TRANSFER_FAILED
