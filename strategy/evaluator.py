"""
strategy/evaluator.py - Cross-chain opportunity evaluation.

EVALUATION CONTRACT:
====================
  evaluate(chain_a, chain_b, settings) -> TradePlan | None

  1. amount_in = trade_amount in each chain's stablecoin base units
  2. forward quotes stablecoin -> target on both chains (concurrently);
     any unavailable -> None, no reverse quote
  3. more target out = cheaper chain = buy chain; equal -> None
  4. reverse quote target -> stablecoin on the sell chain for the buy
     chain's output; unavailable -> None
  5. net = revenue - trade_amount - estimated_fixed_cost
     percent = 100 * net / trade_amount
  6. percent > threshold -> TradePlan, else None

The sell-leg quote is taken before the buy executes, so realized profit
can differ from the estimate.
====================
"""

import asyncio
from decimal import Decimal
from typing import Mapping, Optional

from core.constants import EventKind
from core.events import ChainPrice, EventSink, PriceSnapshot
from core.interfaces import PriceOracle
from core.logging import get_logger
from core.math import format_amount, from_base_units, percent_of, to_base_units
from core.models import BridgeTarget, ChainProfile, PriceQuote, TradePlan, TradeSettings

logger = get_logger(__name__)


def target_token_for(chain: ChainProfile, settings: TradeSettings) -> str:
    """Target token address on a chain (per-chain override or global)."""
    return chain.target_token_address or settings.target_token_address


class OpportunityEvaluator:
    """
    Turns two venue quotes into a TradePlan or nothing.

    Usage:
        evaluator = OpportunityEvaluator({"ethereum": oracle_a, "polygon": oracle_b}, events)
        plan = await evaluator.evaluate(chain_a, chain_b, settings)
    """

    def __init__(self, oracles: Mapping[str, PriceOracle], events: EventSink):
        self.oracles = oracles
        self.events = events

    def _oracle(self, chain: ChainProfile) -> PriceOracle:
        try:
            return self.oracles[chain.name]
        except KeyError:
            raise KeyError(f"No price oracle registered for chain {chain.name}")

    async def evaluate(
        self,
        chain_a: ChainProfile,
        chain_b: ChainProfile,
        settings: TradeSettings,
    ) -> Optional[TradePlan]:
        amount_in_a = to_base_units(settings.trade_amount, chain_a.stablecoin_decimals)
        amount_in_b = to_base_units(settings.trade_amount, chain_b.stablecoin_decimals)
        target_a = target_token_for(chain_a, settings)
        target_b = target_token_for(chain_b, settings)

        quote_a, quote_b = await asyncio.gather(
            self._oracle(chain_a).quote(amount_in_a, chain_a.stablecoin_address, target_a),
            self._oracle(chain_b).quote(amount_in_b, chain_b.stablecoin_address, target_b),
        )

        self.events.publish_prices(PriceSnapshot(
            chain_a=ChainPrice(chain_a.name, _human_out(quote_a, chain_a)),
            chain_b=ChainPrice(chain_b.name, _human_out(quote_b, chain_b)),
        ))

        if not quote_a.available or not quote_b.available:
            self.events.emit(
                EventKind.WARN,
                "Could not retrieve prices from one or both DEXs. Skipping this check.",
            )
            return None

        out_a = from_base_units(quote_a.require(), chain_a.target_decimals)
        out_b = from_base_units(quote_b.require(), chain_b.target_decimals)
        self.events.emit(EventKind.INFO, f"{chain_a.name}: {settings.trade_amount} USD => {out_a} target")
        self.events.emit(EventKind.INFO, f"{chain_b.name}: {settings.trade_amount} USD => {out_b} target")

        if out_a == out_b:
            self.events.emit(EventKind.INFO, "Prices are equal on both chains. No edge this cycle.")
            return None

        if out_a > out_b:
            buy, sell, buy_quote, bought = chain_a, chain_b, quote_a, out_a
        else:
            buy, sell, buy_quote, bought = chain_b, chain_a, quote_b, out_b

        sell_target = target_token_for(sell, settings)
        sell_amount = to_base_units(bought, sell.target_decimals)
        sell_quote = await self._oracle(sell).quote(sell_amount, sell_target, sell.stablecoin_address)
        if not sell_quote.available:
            self.events.emit(
                EventKind.WARN,
                f"Could not retrieve sell-side price on {sell.name}. Skipping this check.",
            )
            return None

        revenue = from_base_units(sell_quote.require(), sell.stablecoin_decimals)
        gross_profit = revenue - settings.trade_amount
        net_profit = gross_profit - settings.estimated_fixed_cost
        profit_percent = percent_of(net_profit, settings.trade_amount)
        description = f"Buy on {buy.name}, Sell on {sell.name}"

        logger.info(
            "Opportunity evaluated",
            extra={"context": {
                "direction": f"{buy.name}->{sell.name}",
                "revenue": str(revenue),
                "net_profit": str(net_profit),
                "profit_percent": str(profit_percent),
            }},
        )

        if profit_percent <= settings.profit_threshold_percent:
            if net_profit > 0:
                self.events.emit(
                    EventKind.INFO,
                    f"Potential Profit Found: ${format_amount(net_profit)} "
                    f"({format_amount(profit_percent)}%) | {description} "
                    f"| below threshold of {settings.profit_threshold_percent}%",
                )
            else:
                self.events.emit(EventKind.INFO, "No profitable opportunity found this cycle.")
            return None

        plan = TradePlan(
            buy_chain=buy,
            sell_chain=sell,
            source_token=buy.stablecoin_address,
            dest_token=target_token_for(buy, settings),
            amount_in=buy_quote.amount_in,
            expected_amount_out=buy_quote.amount_out,
            bridge_target=BridgeTarget(chain_id=sell.bridge_chain_id, bridge_address=buy.bridge_address),
            expected_revenue=revenue,
            net_profit=net_profit,
            profit_percent=profit_percent,
        )
        self.events.emit(
            EventKind.OPPORTUNITY,
            f"PROFITABLE OPPORTUNITY DETECTED! Threshold: >{settings.profit_threshold_percent}%. "
            f"Found: {format_amount(profit_percent)}% (${format_amount(net_profit)}) | {description}",
        )
        return plan


def _human_out(quote: PriceQuote, chain: ChainProfile) -> Optional[Decimal]:
    if not quote.available:
        return None
    return from_base_units(quote.amount_out, chain.target_decimals)
