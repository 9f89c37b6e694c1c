# PATH: tests/unit/test_error_codes.py
"""
Unit tests for the ErrorCode contract.

Ensures every ErrorCode.X referenced in the codebase exists in the enum and
every exception class carries a code.
"""

import re
import unittest
from pathlib import Path
from typing import Set

from core.constants import ErrorCode
from core import exceptions as exc

PROJECT_ROOT = Path(__file__).parent.parent.parent
SCAN_PACKAGES = ["core", "chains", "dex", "bridge", "execution", "strategy", "config", "server"]
ERRORCODE_PATTERN = re.compile(r"ErrorCode\.([A-Z_]+)")


class TestErrorCodeContract(unittest.TestCase):

    def find_errorcode_usages(self, filepath: Path) -> Set[str]:
        return set(ERRORCODE_PATTERN.findall(filepath.read_text(encoding="utf-8")))

    def test_all_used_codes_exist(self):
        valid = {code.name for code in ErrorCode}
        invalid = []
        for package in SCAN_PACKAGES:
            for filepath in (PROJECT_ROOT / package).rglob("*.py"):
                for name in self.find_errorcode_usages(filepath) - valid:
                    invalid.append(f"{filepath.relative_to(PROJECT_ROOT)}: ErrorCode.{name}")

        self.assertEqual(invalid, [], f"Unknown ErrorCode members: {invalid}")


class TestExceptionCodes(unittest.TestCase):

    EXPECTED = {
        exc.ConfigurationMissing: ErrorCode.CONFIG_MISSING,
        exc.ConfigurationInvalid: ErrorCode.CONFIG_INVALID,
        exc.InfraError: ErrorCode.INFRA_RPC_ERROR,
        exc.QuoteError: ErrorCode.QUOTE_REVERT,
        exc.OracleUnavailable: ErrorCode.ORACLE_UNAVAILABLE,
        exc.SwapFailed: ErrorCode.SWAP_FAILED,
        exc.BridgeApprovalFailed: ErrorCode.BRIDGE_APPROVAL_FAILED,
        exc.BridgeTransferFailed: ErrorCode.BRIDGE_TRANSFER_FAILED,
    }

    def test_default_codes(self):
        for cls, code in self.EXPECTED.items():
            with self.subTest(cls=cls.__name__):
                self.assertEqual(cls("x").code, code)

    def test_reverted_code(self):
        self.assertEqual(exc.TransactionReverted("x", tx_hash="0x1").code, ErrorCode.TX_REVERTED)

    def test_explicit_code_wins(self):
        error = exc.InfraError("slow", code=ErrorCode.INFRA_TIMEOUT)
        self.assertEqual(error.code, ErrorCode.INFRA_TIMEOUT)
        self.assertEqual(str(error), "[INFRA_TIMEOUT] slow")

    def test_funds_at_risk_only_after_swap(self):
        self.assertFalse(exc.SwapFailed("x").funds_at_risk)
        self.assertTrue(exc.BridgeApprovalFailed("x").funds_at_risk)
        self.assertTrue(exc.BridgeTransferFailed("x").funds_at_risk)
        self.assertTrue(issubclass(exc.BridgeTransferFailed, exc.PartialExecutionError))

    def test_configuration_missing_lists_keys(self):
        error = exc.ConfigurationMissing("missing", missing=["PRIVATE_KEY"])
        self.assertEqual(error.missing, ["PRIVATE_KEY"])
        self.assertEqual(error.details, {"missing": ["PRIVATE_KEY"]})


if __name__ == "__main__":
    unittest.main()
