#!/usr/bin/env python3
"""
strategy/jobs/run_bot.py - CLI entrypoint for the cross-chain bot.

Usage:
    python -m strategy.jobs.run_bot --config config/default.yaml
    python -m strategy.jobs.run_bot --monitor-only --once
    python -m strategy.jobs.run_bot --serve --port 3000
"""

import asyncio
import signal
import sys
from typing import Optional

import click
import uvicorn

from config import DEFAULT_CONFIG_PATH, load_config
from core.exceptions import ConfigurationInvalid, ConfigurationMissing
from core.logging import get_logger, set_global_context, setup_logging
from strategy.factory import BotRuntime, build_runtime
from strategy.scheduler import Scheduler

logger = get_logger("xarb.bot")

SERVICE_VERSION = "0.1.0"


async def run_once(runtime: BotRuntime) -> None:
    try:
        result = await runtime.engine.run_cycle()
        logger.info("Single cycle finished", extra={"context": result.to_dict()})
    finally:
        await runtime.close()


async def run_forever(
    runtime: BotRuntime,
    interval: float,
    serve: bool,
    host: str,
    port: int,
) -> None:
    scheduler = Scheduler(runtime.engine.run_cycle, interval, runtime.events)
    stop = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows: fall back to KeyboardInterrupt
            pass

    server: Optional[uvicorn.Server] = None
    server_task: Optional[asyncio.Task] = None
    if serve:
        # Imported here so monitor runs don't pull in the web stack
        from server.app import create_app

        app = create_app(runtime.engine, scheduler, runtime.providers)
        server = uvicorn.Server(uvicorn.Config(app, host=host, port=port, log_config=None))
        # Signals are handled above
        server.install_signal_handlers = lambda: None
        server_task = asyncio.create_task(server.serve())
        logger.info("UI server listening", extra={"context": {"host": host, "port": port}})

    await scheduler.start()
    try:
        await stop.wait()
        logger.info("Shutdown requested")
    finally:
        await scheduler.stop()
        if server is not None and server_task is not None:
            server.should_exit = True
            await server_task
        await runtime.close()


@click.command()
@click.option("--config", "-c", "config_path", type=click.Path(), default=str(DEFAULT_CONFIG_PATH),
              help="YAML configuration file")
@click.option("--interval", "-i", type=float, default=None,
              help="Polling interval in seconds (overrides trade_settings.polling_interval_seconds)")
@click.option("--log-level", "-l", default="INFO", type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]))
@click.option("--json-logs/--no-json-logs", default=False)
@click.option("--log-file", type=click.Path(), default=None, help="Also write JSON logs to this file")
@click.option("--monitor-only", is_flag=True, help="Evaluate only; never submit transactions")
@click.option("--serve/--no-serve", default=True, help="Run the WebSocket UI server")
@click.option("--host", default="127.0.0.1")
@click.option("--port", "-p", default=3000, type=int)
@click.option("--once", is_flag=True, help="Run a single cycle and exit")
def main(
    config_path: str,
    interval: Optional[float],
    log_level: str,
    json_logs: bool,
    log_file: Optional[str],
    monitor_only: bool,
    serve: bool,
    host: str,
    port: int,
    once: bool,
) -> None:
    """XARB - Cross-chain AMM arbitrage bot."""
    setup_logging(level=log_level, json_output=json_logs, log_file=log_file)
    set_global_context(service="xarb-bot", version=SERVICE_VERSION)

    try:
        config = load_config(config_path, require_private_key=not monitor_only)
    except (ConfigurationMissing, ConfigurationInvalid) as e:
        logger.error(f"Configuration error: {e}", extra={"context": e.details})
        sys.exit(1)

    runtime = build_runtime(config, monitor_only=monitor_only)
    poll_seconds = interval if interval is not None else config.settings.polling_interval_seconds

    logger.info(
        "Starting Cross-Chain Arbitrage Bot",
        extra={"context": {
            "chains": [c.name for c in config.chains],
            "interval_seconds": poll_seconds,
            "monitor_only": runtime.engine.monitor_only,
            "serve": serve and not once,
            "once": once,
        }},
    )

    try:
        if once:
            asyncio.run(run_once(runtime))
        else:
            asyncio.run(run_forever(runtime, poll_seconds, serve, host, port))
    except KeyboardInterrupt:
        logger.info("Bot interrupted")
    except Exception as e:
        logger.error(f"Bot error: {e}", exc_info=True)
        sys.exit(1)

    logger.info("Bot stopped")


if __name__ == "__main__":
    main()
