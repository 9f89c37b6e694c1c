# PATH: strategy/__init__.py
"""Strategy package for XARB: evaluation, cycle engine and scheduling."""

from strategy.engine import ArbitrageEngine, CycleResult
from strategy.evaluator import OpportunityEvaluator
from strategy.scheduler import Scheduler

__all__ = [
    "ArbitrageEngine",
    "CycleResult",
    "OpportunityEvaluator",
    "Scheduler",
]
