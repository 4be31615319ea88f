"""PipWatch — application entry point.

Boots the FastAPI internal server and provides the CLI entry point for the
serve, monitor and generate modes.
"""

import logging
from typing import Optional

from fastapi import FastAPI

from pipwatch.api.routers import router

app = FastAPI(title="PipWatch Internal API", version="0.1.0")
app.include_router(router)

logger = logging.getLogger("pipwatch")


@app.get("/health")
async def health():
    """Liveness check."""
    return {"status": "ok"}


def configure_app(
    target: FastAPI,
    signal_repo,
    outcome_repo,
    scheduler=None,
    engine=None,
) -> FastAPI:
    """Attach runtime dependencies to ``target.state``.

    Args:
        target: The FastAPI application (``pipwatch.main.app`` in production).
        signal_repo: A ``SignalRepo`` (or duck-type for tests).
        outcome_repo: An ``OutcomeRepo`` (or duck-type for tests).
        scheduler: The ``MonitorScheduler`` receiving price events.
        engine: The ``SignalEngine``, reported on ``/status``.
    """
    target.state.signal_repo = signal_repo
    target.state.outcome_repo = outcome_repo
    target.state.scheduler = scheduler
    target.state.engine = engine
    return target


# ── CLI ──────────────────────────────────────────────────────────────────


def _run_cli(argv: Optional[list[str]] = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate mode."""
    import argparse
    import asyncio

    from pipwatch.config import load_config
    from pipwatch.engine import SignalEngine
    from pipwatch.feed.oanda_client import OandaClient
    from pipwatch.monitor.outcome_monitor import OutcomeMonitor
    from pipwatch.monitor.scheduler import MonitorScheduler
    from pipwatch.repos.db import init_db
    from pipwatch.repos.outcome_repo import OutcomeRepo
    from pipwatch.repos.signal_repo import SignalRepo

    parser = argparse.ArgumentParser(description="PipWatch forex signal service")
    parser.add_argument(
        "--mode",
        choices=["serve", "monitor", "generate"],
        default="serve",
        help="serve: API + monitor + generator; monitor: API + monitor; "
        "generate: generator only (default: serve)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="With --mode generate, run a single cycle and exit",
    )
    parser.add_argument("--port", type=int, help="API port (overrides API_PORT)")
    args = parser.parse_args(argv)

    config = load_config()

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    init_db(config.db_path)

    feed = OandaClient(config)
    signal_repo = SignalRepo(config.db_path)
    outcome_repo = OutcomeRepo(config.db_path)
    engine = SignalEngine(config=config, feed=feed, signal_repo=signal_repo)

    if args.mode == "generate":
        asyncio.run(_run_generator(engine, once=args.once))
        return

    monitor = OutcomeMonitor(signal_repo, outcome_repo)
    scheduler = MonitorScheduler(
        monitor,
        price_source=feed,
        interval_seconds=config.monitor_interval_seconds,
    )
    configure_app(
        app,
        signal_repo=signal_repo,
        outcome_repo=outcome_repo,
        scheduler=scheduler,
        engine=engine if args.mode == "serve" else None,
    )
    asyncio.run(
        _run_service(
            scheduler,
            engine if args.mode == "serve" else None,
            port=args.port or config.api_port,
        )
    )


async def _run_generator(engine, once: bool = False) -> None:
    """Run the generation loop without the API server."""
    if once:
        result = await engine.run_once()
        logger.info("Generation cycle: %s", result)
        return
    logger.info("Starting PipWatch generator (no API).")
    await engine.run()
    logger.info("PipWatch generator stopped.")


async def _run_service(scheduler, engine=None, port: int = 8080) -> None:
    """Start the API server, the monitor scheduler and optionally the generator."""
    import asyncio

    import uvicorn

    uvi_config = uvicorn.Config(
        app,
        host="0.0.0.0",
        port=port,
        log_level="info",
    )
    server = uvicorn.Server(uvi_config)

    await scheduler.start()
    engine_task = asyncio.create_task(engine.run()) if engine is not None else None
    logger.info("PipWatch API available at http://localhost:%d", port)

    try:
        await server.serve()
    finally:
        logger.info("Shutting down, waiting for in-flight work to finish.")
        if engine is not None:
            engine.stop()
        await scheduler.stop()
        if engine_task is not None:
            await engine_task
    logger.info("PipWatch stopped.")


if __name__ == "__main__":
    _run_cli()
