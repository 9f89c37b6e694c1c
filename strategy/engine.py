"""
strategy/engine.py - One evaluate/execute cycle.

CYCLE CONTRACT:
===============
  run_cycle() -> CycleResult, never raises

  guard busy          -> SKIPPED_BUSY, zero oracle calls
  no plan             -> NO_OPPORTUNITY
  plan, monitor-only  -> MONITOR_ONLY (nothing submitted)
  plan, executed      -> EXECUTED | EXECUTION_FAILED
  unexpected error    -> ERROR (logged + error event)

The guard is taken before evaluation and held until the executor reaches
a terminal state. Once execute() is entered the executor owns the release.
===============
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from core.constants import CycleOutcome, EventKind
from core.events import EventSink, StatusSnapshot
from core.logging import get_logger
from core.models import ChainProfile, TradePlan, TradeSettings
from core.time import now_iso
from execution.executor import ExecutionResult, TradeExecutor
from execution.guard import ExecutionGuard
from strategy.evaluator import OpportunityEvaluator

logger = get_logger(__name__)

STATUS_CHECKING = StatusSnapshot("Checking for opportunities", busy=True)
STATUS_EXECUTING = StatusSnapshot("Executing trade", busy=True)
STATUS_IDLE = StatusSnapshot("Idle", busy=False)


@dataclass
class CycleResult:
    """Outcome of one run_cycle() call."""
    outcome: CycleOutcome
    plan: Optional[TradePlan] = None
    execution: Optional[ExecutionResult] = None
    error: Optional[str] = None
    finished_at: str = field(default_factory=now_iso)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "outcome": self.outcome.value,
            "plan": self.plan.to_dict() if self.plan else None,
            "execution": self.execution.to_dict() if self.execution else None,
            "error": self.error,
            "finished_at": self.finished_at,
        }


class ArbitrageEngine:
    """
    Glues evaluator, guard and executor together for one pair of chains.

    executor may be None (monitor-only); plans are then reported and dropped.
    """

    def __init__(
        self,
        chain_a: ChainProfile,
        chain_b: ChainProfile,
        settings: TradeSettings,
        evaluator: OpportunityEvaluator,
        executor: Optional[TradeExecutor],
        guard: ExecutionGuard,
        events: EventSink,
        monitor_only: bool = False,
    ):
        self.chain_a = chain_a
        self.chain_b = chain_b
        self.settings = settings
        self.evaluator = evaluator
        self.executor = executor
        self.guard = guard
        self.events = events
        self.monitor_only = monitor_only or executor is None
        self.cycles_run = 0
        self.last_result: Optional[CycleResult] = None

    @property
    def busy(self) -> bool:
        return self.guard.held

    async def run_cycle(self) -> CycleResult:
        if not self.guard.try_enter():
            logger.info("Cycle skipped: execution in progress")
            self.events.emit(EventKind.INFO, "Execution in progress, skipping this check.")
            return self._finish(CycleResult(CycleOutcome.SKIPPED_BUSY))

        handed_off = False
        self.cycles_run += 1
        try:
            self.events.publish_status(STATUS_CHECKING)
            self.events.emit(EventKind.INFO, "Checking for arbitrage opportunities...")

            plan = await self.evaluator.evaluate(self.chain_a, self.chain_b, self.settings)
            if plan is None:
                return self._finish(CycleResult(CycleOutcome.NO_OPPORTUNITY))

            if self.monitor_only:
                self.events.emit(
                    EventKind.INFO,
                    f"Monitor-only mode: not executing {plan.direction} ({plan.plan_id}).",
                )
                return self._finish(CycleResult(CycleOutcome.MONITOR_ONLY, plan=plan))

            self.events.publish_status(STATUS_EXECUTING)
            handed_off = True
            execution = await self.executor.execute(plan)
            outcome = CycleOutcome.EXECUTED if execution.is_success else CycleOutcome.EXECUTION_FAILED
            return self._finish(CycleResult(outcome, plan=plan, execution=execution))

        except Exception as e:
            logger.error(
                f"Cycle error: {e}",
                extra={"context": {"cycle": self.cycles_run}},
                exc_info=True,
            )
            self.events.emit(EventKind.ERROR, f"An error occurred during the check: {e}")
            return self._finish(CycleResult(CycleOutcome.ERROR, error=str(e)))

        finally:
            if not handed_off:
                self.guard.exit()
            self.events.publish_status(STATUS_IDLE)

    def _finish(self, result: CycleResult) -> CycleResult:
        self.last_result = result
        logger.debug(
            "Cycle finished",
            extra={"context": {"outcome": result.outcome.value, "cycle": self.cycles_run}},
        )
        return result
