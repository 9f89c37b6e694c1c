# PATH: tests/conftest.py
"""
Pytest configuration and fixtures for XARB tests.
"""

import sys
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Tuple

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from core.constants import EventKind  # noqa: E402
from core.events import PriceSnapshot, StatusSnapshot  # noqa: E402
from core.models import ChainProfile, TradeSettings  # noqa: E402

# Well-known throwaway dev key (Hardhat/Anvil account #0)
TEST_PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
TEST_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"

USDC_A = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
USDC_B = "0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174"
WETH = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"
ROUTER_A = "0x7a250d5630B4cF539739dF2C5dAcb4c659F2488D"
ROUTER_B = "0xa5E0829CaCEd8fFDD4De3c43696c57F7D7A678ff"
BRIDGE_A = "0x3ee18B2214AFF97000D974cf647E7C347E8fa585"
BRIDGE_B = "0x5a58505a96D1dbf8dF91cB21B54419FC36e93fdE"


def pytest_configure(config):
    """Configure pytest."""
    # Add custom markers
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )


class RecordingSink:
    """EventSink that keeps everything it is given."""

    def __init__(self):
        self.events: List[Tuple[EventKind, str]] = []
        self.prices: List[PriceSnapshot] = []
        self.statuses: List[StatusSnapshot] = []

    def emit(self, kind, message: str) -> None:
        self.events.append((EventKind(kind), message))

    def publish_prices(self, snapshot: PriceSnapshot) -> None:
        self.prices.append(snapshot)

    def publish_status(self, snapshot: StatusSnapshot) -> None:
        self.statuses.append(snapshot)

    def messages(self, kind: EventKind) -> List[str]:
        return [m for k, m in self.events if k == kind]


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def chain_a() -> ChainProfile:
    return ChainProfile(
        name="ethereum",
        chain_id=1,
        router_address=ROUTER_A,
        stablecoin_address=USDC_A,
        bridge_address=BRIDGE_A,
        bridge_chain_id=2,
    )


@pytest.fixture
def chain_b() -> ChainProfile:
    return ChainProfile(
        name="polygon",
        chain_id=137,
        router_address=ROUTER_B,
        stablecoin_address=USDC_B,
        bridge_address=BRIDGE_B,
        bridge_chain_id=5,
    )


@pytest.fixture
def settings() -> TradeSettings:
    return TradeSettings(
        target_token_address=WETH,
        trade_amount=Decimal("1000"),
        profit_threshold_percent=Decimal("2"),
        estimated_fixed_cost=Decimal("75"),
    )


def make_raw_config(**overrides: Any) -> Dict[str, Any]:
    """Minimal valid YAML document as a dict."""
    config = {
        "chains": {
            "chain_a": {
                "name": "ethereum",
                "chain_id": 1,
                "rpc_urls": ["${CHAIN_A_RPC_URL}"],
                "router_address": ROUTER_A,
                "stablecoin_address": USDC_A,
                "bridge_address": BRIDGE_A,
                "bridge_chain_id": 2,
            },
            "chain_b": {
                "name": "polygon",
                "chain_id": 137,
                "rpc_urls": ["${CHAIN_B_RPC_URL}"],
                "router_address": ROUTER_B,
                "stablecoin_address": USDC_B,
                "bridge_address": BRIDGE_B,
                "bridge_chain_id": 5,
            },
        },
        "trade_settings": {
            "target_token_address": WETH,
            "trade_amount": "1000",
            "profit_threshold_percent": "2",
        },
    }
    config.update(overrides)
    return config
