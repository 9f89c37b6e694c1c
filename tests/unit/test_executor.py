"""
tests/unit/test_executor.py - TradeExecutor tests.

Critical properties:
- swap failure never touches the bridge client
- transfer happens only after approve confirmed
- bridge failures are flagged funds_at_risk
- the guard is released exactly once on every path
"""

from dataclasses import replace
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import TEST_ADDRESS, USDC_A, WETH, RecordingSink
from bridge.token_bridge import recipient_bytes32
from core.constants import ErrorCode, EventKind, ExecutionState
from core.exceptions import BridgeApprovalFailed, BridgeTransferFailed, SwapFailed
from core.models import BridgeTarget, TradePlan
from execution.executor import ChainClients, TradeExecutor
from execution.guard import ExecutionGuard

ONE_WETH = 10**18


@pytest.fixture
def wallet():
    return MagicMock(address=TEST_ADDRESS)


@pytest.fixture
def plan(chain_a, chain_b, wallet):
    return TradePlan(
        buy_chain=replace(chain_a, wallet=wallet),
        sell_chain=replace(chain_b, wallet=wallet),
        source_token=USDC_A,
        dest_token=WETH,
        amount_in=1000 * 10**6,
        expected_amount_out=ONE_WETH,
        bridge_target=BridgeTarget(chain_id=chain_b.bridge_chain_id, bridge_address=chain_a.bridge_address),
        expected_revenue=Decimal("1100"),
        net_profit=Decimal("25"),
        profit_percent=Decimal("2.5"),
    )


@pytest.fixture
def swap_client():
    client = MagicMock()
    client.swap = AsyncMock(return_value="0xswap")
    client.received_amount = AsyncMock(return_value=ONE_WETH)
    return client


@pytest.fixture
def bridge_client():
    client = MagicMock()
    client.approve = AsyncMock(return_value="0xapprove")
    client.transfer = AsyncMock(return_value="0xbridge")
    return client


@pytest.fixture
def guard():
    guard = ExecutionGuard()
    assert guard.try_enter()
    return guard


@pytest.fixture
def executor(guard, swap_client, bridge_client, settings, sink):
    return TradeExecutor(
        guard=guard,
        clients={"ethereum": ChainClients(swap=swap_client, bridge=bridge_client)},
        settings=settings,
        events=sink,
        nonce_factory=lambda: 42,
    )


class TestHappyPath:

    @pytest.mark.asyncio
    async def test_reaches_awaiting_manual_redemption(self, executor, plan, guard, sink):
        result = await executor.execute(plan)

        assert result.is_success
        assert result.state == ExecutionState.AWAITING_MANUAL_REDEMPTION
        assert result.bridge_tx_hash == "0xbridge"
        assert result.tx_hashes == {"swap": "0xswap", "approve": "0xapprove", "bridge": "0xbridge"}
        assert result.error_code is None
        assert not result.funds_at_risk
        assert [t.to_state for t in result.history] == [
            ExecutionState.SWAPPING,
            ExecutionState.APPROVING_BRIDGE,
            ExecutionState.BRIDGE_INITIATING,
            ExecutionState.AWAITING_MANUAL_REDEMPTION,
        ]
        assert not guard.held

    @pytest.mark.asyncio
    async def test_swap_arguments(self, executor, plan, swap_client, chain_a):
        await executor.execute(plan)

        kwargs = swap_client.swap.await_args.kwargs
        assert kwargs["router"] == chain_a.router_address
        assert kwargs["amount_in"] == 1000 * 10**6
        # 1% slippage
        assert kwargs["min_amount_out"] == ONE_WETH * 99 // 100
        assert kwargs["path"] == [USDC_A, WETH]
        assert kwargs["recipient"] == TEST_ADDRESS
        assert kwargs["deadline"] > 0

    @pytest.mark.asyncio
    async def test_bridge_arguments(self, executor, plan, bridge_client, chain_a, chain_b):
        await executor.execute(plan)

        bridge_client.approve.assert_awaited_once_with(
            token=WETH, spender=chain_a.bridge_address, amount=ONE_WETH,
        )
        bridge_client.transfer.assert_awaited_once_with(
            token=WETH,
            amount=ONE_WETH,
            dest_chain_id=chain_b.bridge_chain_id,
            recipient_bytes32=recipient_bytes32(TEST_ADDRESS),
            nonce=42,
        )

    @pytest.mark.asyncio
    async def test_emits_manual_follow_up_steps(self, executor, plan, sink):
        await executor.execute(plan)

        warnings = sink.messages(EventKind.WARN)
        assert warnings[0] == "Next Steps (Manual):"
        assert any("0xbridge" in w and "VAA" in w for w in warnings)
        assert any("redeem" in w for w in warnings)
        assert any("sell order" in w for w in warnings)


class TestReceivedAmount:

    @pytest.mark.asyncio
    async def test_bridges_what_the_swap_delivered(self, executor, plan, swap_client, bridge_client):
        received = ONE_WETH - 10**15
        swap_client.received_amount.return_value = received

        result = await executor.execute(plan)

        swap_client.received_amount.assert_awaited_once_with("0xswap", WETH, TEST_ADDRESS)
        assert bridge_client.approve.await_args.kwargs["amount"] == received
        assert bridge_client.transfer.await_args.kwargs["amount"] == received
        assert result.bridged_amount == received
        assert result.to_dict()["bridged_amount"] == str(received)

    @pytest.mark.asyncio
    async def test_falls_back_to_quote_without_transfer_log(self, executor, plan, swap_client, bridge_client):
        swap_client.received_amount.return_value = None

        result = await executor.execute(plan)

        assert result.is_success
        assert bridge_client.transfer.await_args.kwargs["amount"] == ONE_WETH
        assert result.bridged_amount == ONE_WETH

    @pytest.mark.asyncio
    async def test_receipt_error_is_partial(self, executor, plan, swap_client, bridge_client):
        swap_client.received_amount.side_effect = RuntimeError("receipt lookup failed")

        result = await executor.execute(plan)

        assert result.error_code == ErrorCode.BRIDGE_APPROVAL_FAILED
        assert result.funds_at_risk is True
        bridge_client.approve.assert_not_awaited()


class TestSwapFailure:

    @pytest.mark.asyncio
    async def test_swap_failure_never_touches_bridge(self, executor, plan, swap_client, bridge_client, guard):
        swap_client.swap.side_effect = SwapFailed("Swap reverted: deadline", tx_hash="0xdead")

        result = await executor.execute(plan)

        assert result.state == ExecutionState.FAILED
        assert result.error_code == ErrorCode.SWAP_FAILED
        assert result.funds_at_risk is False
        assert result.tx_hashes == {"failed": "0xdead"}
        bridge_client.approve.assert_not_awaited()
        bridge_client.transfer.assert_not_awaited()
        assert not guard.held

    @pytest.mark.asyncio
    async def test_unexpected_error_in_swap_is_swap_failure(self, executor, plan, swap_client, bridge_client):
        swap_client.swap.side_effect = KeyError("boom")

        result = await executor.execute(plan)

        assert result.error_code == ErrorCode.SWAP_FAILED
        bridge_client.approve.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_wallet_fails_before_swap(self, executor, plan, swap_client, guard):
        plan = replace(plan, buy_chain=replace(plan.buy_chain, wallet=None))

        result = await executor.execute(plan)

        assert result.error_code == ErrorCode.SWAP_FAILED
        assert [t.to_state for t in result.history] == [ExecutionState.FAILED]
        swap_client.swap.assert_not_awaited()
        assert not guard.held

    @pytest.mark.asyncio
    async def test_abort_message(self, executor, plan, swap_client, sink):
        swap_client.swap.side_effect = SwapFailed("no liquidity")
        await executor.execute(plan)

        [error] = sink.messages(EventKind.ERROR)
        assert error.startswith("Trade aborted before any funds moved on ethereum")


class TestBridgeFailure:

    @pytest.mark.asyncio
    async def test_approval_failure_is_partial(self, executor, plan, bridge_client, guard, sink):
        bridge_client.approve.side_effect = BridgeApprovalFailed("Approval reverted")

        result = await executor.execute(plan)

        assert result.state == ExecutionState.FAILED
        assert result.error_code == ErrorCode.BRIDGE_APPROVAL_FAILED
        assert result.funds_at_risk is True
        assert result.tx_hashes["swap"] == "0xswap"
        bridge_client.transfer.assert_not_awaited()
        assert not guard.held
        [error] = sink.messages(EventKind.ERROR)
        assert "PARTIAL EXECUTION" in error

    @pytest.mark.asyncio
    async def test_transfer_failure_only_after_approve(self, executor, plan, bridge_client, guard):
        order = []
        bridge_client.approve.side_effect = lambda **kw: order.append("approve") or "0xapprove"

        def _transfer(**kw):
            order.append("transfer")
            raise BridgeTransferFailed("Bridge transfer reverted", tx_hash="0xbad")

        bridge_client.transfer.side_effect = _transfer

        result = await executor.execute(plan)

        assert order == ["approve", "transfer"]
        assert result.error_code == ErrorCode.BRIDGE_TRANSFER_FAILED
        assert result.funds_at_risk is True
        assert result.bridge_tx_hash is None
        assert [t.to_state for t in result.history][-2:] == [
            ExecutionState.BRIDGE_INITIATING,
            ExecutionState.FAILED,
        ]
        assert not guard.held

    @pytest.mark.asyncio
    async def test_unexpected_error_during_transfer_is_transfer_failure(self, executor, plan, bridge_client):
        bridge_client.transfer.side_effect = RuntimeError("socket closed")

        result = await executor.execute(plan)

        assert result.error_code == ErrorCode.BRIDGE_TRANSFER_FAILED
        assert result.funds_at_risk is True


class FailingSink(RecordingSink):
    """Raises when asked to emit a message starting with the given prefix."""

    def __init__(self, prefix: str):
        super().__init__()
        self.prefix = prefix

    def emit(self, kind, message: str) -> None:
        if message.startswith(self.prefix):
            raise RuntimeError("sink unavailable")
        super().emit(kind, message)


class TestErrorsBetweenSteps:

    def make_executor(self, guard, swap_client, bridge_client, settings, sink):
        return TradeExecutor(
            guard, {"ethereum": ChainClients(swap_client, bridge_client)}, settings, sink,
            nonce_factory=lambda: 42,
        )

    @pytest.mark.asyncio
    async def test_error_after_confirmed_swap_is_partial(self, guard, swap_client, bridge_client, settings, plan):
        sink = FailingSink("Buy transaction successful")
        executor = self.make_executor(guard, swap_client, bridge_client, settings, sink)

        result = await executor.execute(plan)

        assert result.state == ExecutionState.FAILED
        assert result.error_code == ErrorCode.BRIDGE_APPROVAL_FAILED
        assert result.funds_at_risk is True
        assert result.tx_hashes["swap"] == "0xswap"
        bridge_client.approve.assert_not_awaited()
        [error] = sink.messages(EventKind.ERROR)
        assert "PARTIAL EXECUTION" in error
        assert not guard.held

    @pytest.mark.asyncio
    async def test_error_after_bridge_keeps_success(self, guard, swap_client, bridge_client, settings, plan):
        sink = FailingSink("--- TRADE SEQUENCE INITIATED ---")
        executor = self.make_executor(guard, swap_client, bridge_client, settings, sink)

        result = await executor.execute(plan)

        assert result.is_success
        assert result.bridge_tx_hash == "0xbridge"
        assert result.error_code is None
        assert not result.funds_at_risk
        assert sink.messages(EventKind.ERROR) == []
        assert not guard.held


class TestGuardContract:

    @pytest.mark.asyncio
    async def test_requires_held_guard(self, swap_client, bridge_client, settings, sink, plan):
        guard = ExecutionGuard()
        executor = TradeExecutor(
            guard, {"ethereum": ChainClients(swap_client, bridge_client)}, settings, sink,
        )
        with pytest.raises(RuntimeError):
            await executor.execute(plan)
        swap_client.swap.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_result_to_dict(self, executor, plan):
        result = await executor.execute(plan)
        data = result.to_dict()

        assert data["state"] == "AWAITING_MANUAL_REDEMPTION"
        assert data["direction"] == "ethereum -> polygon"
        assert len(data["history"]) == 4
