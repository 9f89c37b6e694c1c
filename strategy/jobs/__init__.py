# PATH: strategy/jobs/__init__.py
"""
Strategy jobs package.

Available entry points:
    python -m strategy.jobs.run_bot         # Cross-chain bot (scheduler + UI server)

NOTE: This __init__.py intentionally does NOT import run_bot to avoid
pulling in the web stack when importing the package:

    from strategy.jobs.run_bot import main
"""

__all__: list[str] = []
