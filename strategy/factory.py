"""
strategy/factory.py - Build a runnable engine from configuration.

Wires, per chain: RPCProvider -> UniswapV2Oracle, and when a key is
present Wallet -> TransactionSender -> RouterSwapClient / TokenBridgeClient.
"""

from dataclasses import dataclass, replace
from typing import Dict, Optional

from bridge.token_bridge import TokenBridgeClient
from chains.providers import ProviderRegistry
from chains.transactions import TransactionSender
from chains.wallet import Wallet
from config import AppConfig
from core.events import BroadcastEventSink
from core.interfaces import PriceOracle
from core.logging import get_logger
from core.models import ChainProfile
from dex.router import RouterSwapClient, UniswapV2Oracle
from execution.executor import ChainClients, TradeExecutor
from execution.guard import ExecutionGuard
from strategy.engine import ArbitrageEngine
from strategy.evaluator import OpportunityEvaluator

logger = get_logger(__name__)


@dataclass
class BotRuntime:
    """Live objects for one bot process."""
    engine: ArbitrageEngine
    events: BroadcastEventSink
    guard: ExecutionGuard
    providers: ProviderRegistry

    async def close(self) -> None:
        await self.providers.close_all()


def build_runtime(
    config: AppConfig,
    events: Optional[BroadcastEventSink] = None,
    monitor_only: bool = False,
) -> BotRuntime:
    events = events or BroadcastEventSink()
    guard = ExecutionGuard()
    providers = ProviderRegistry()
    execute = not monitor_only and config.private_key is not None

    oracles: Dict[str, PriceOracle] = {}
    clients: Dict[str, ChainClients] = {}
    profiles: Dict[str, ChainProfile] = {}

    for chain in config.chains:
        provider = providers.register(chain.chain_id, config.rpc_urls[chain.name])
        oracles[chain.name] = UniswapV2Oracle(provider, chain.router_address, chain.name)

        if execute:
            wallet = Wallet.from_private_key(config.private_key, chain.chain_id)
            chain = replace(chain, wallet=wallet)
            sender = TransactionSender(provider, wallet)
            clients[chain.name] = ChainClients(
                swap=RouterSwapClient(sender),
                bridge=TokenBridgeClient(sender, chain.bridge_address),
            )
        profiles[chain.name] = chain

    executor = None
    if execute:
        executor = TradeExecutor(guard, clients, config.settings, events)

    engine = ArbitrageEngine(
        chain_a=profiles[config.chain_a.name],
        chain_b=profiles[config.chain_b.name],
        settings=config.settings,
        evaluator=OpportunityEvaluator(oracles, events),
        executor=executor,
        guard=guard,
        events=events,
        monitor_only=not execute,
    )

    logger.info(
        "Runtime built",
        extra={"context": {
            "chains": [c.name for c in config.chains],
            "monitor_only": engine.monitor_only,
            "wallet": profiles[config.chain_a.name].wallet_address,
        }},
    )
    return BotRuntime(engine=engine, events=events, guard=guard, providers=providers)
