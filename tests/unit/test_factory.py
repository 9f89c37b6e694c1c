"""
tests/unit/test_factory.py - Runtime wiring and the CLI entry point.
"""

import logging

import pytest
from click.testing import CliRunner

from conftest import TEST_ADDRESS, TEST_PRIVATE_KEY
from config import AppConfig
from core.events import BroadcastEventSink
from dex.router import UniswapV2Oracle
from strategy.factory import build_runtime
from strategy.jobs.run_bot import main


@pytest.fixture
def app_config(chain_a, chain_b, settings):
    return AppConfig(
        chain_a=chain_a,
        chain_b=chain_b,
        settings=settings,
        rpc_urls={"ethereum": ["https://eth.test"], "polygon": ["https://polygon.test"]},
        private_key=TEST_PRIVATE_KEY,
    )


def _close_all_handlers():
    for handler in logging.root.handlers[:]:
        handler.close()
        logging.root.removeHandler(handler)


class TestBuildRuntime:

    @pytest.mark.asyncio
    async def test_with_key_attaches_wallets(self, app_config):
        runtime = build_runtime(app_config)

        engine = runtime.engine
        assert not engine.monitor_only
        assert engine.chain_a.wallet_address == TEST_ADDRESS
        assert engine.chain_b.wallet.chain_id == 137
        assert set(engine.executor.clients) == {"ethereum", "polygon"}
        assert engine.executor.guard is runtime.guard
        assert isinstance(engine.evaluator.oracles["polygon"], UniswapV2Oracle)
        assert sorted(runtime.providers.chain_ids) == [1, 137]

        await runtime.close()

    @pytest.mark.asyncio
    async def test_monitor_only_skips_signing(self, app_config):
        events = BroadcastEventSink()
        runtime = build_runtime(app_config, events=events, monitor_only=True)

        assert runtime.engine.monitor_only
        assert runtime.engine.executor is None
        assert runtime.engine.chain_a.wallet is None
        assert runtime.events is events

        await runtime.close()

    @pytest.mark.asyncio
    async def test_no_key_means_monitor_only(self, chain_a, chain_b, settings):
        config = AppConfig(
            chain_a=chain_a,
            chain_b=chain_b,
            settings=settings,
            rpc_urls={"ethereum": ["https://eth.test"], "polygon": ["https://polygon.test"]},
        )
        runtime = build_runtime(config)

        assert runtime.engine.monitor_only
        await runtime.close()


class TestCli:

    def teardown_method(self):
        _close_all_handlers()

    def test_missing_config_exits_1(self, tmp_path):
        runner = CliRunner()
        result = runner.invoke(main, ["--config", str(tmp_path / "nope.yaml"), "--once", "--no-serve"])

        assert result.exit_code == 1

    def test_help(self):
        result = CliRunner().invoke(main, ["--help"])

        assert result.exit_code == 0
        assert "--monitor-only" in result.output
