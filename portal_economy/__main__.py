"""
Portal Economy - headless entry point
=====================================

``python -m portal_economy`` boots an engine from the environment and keeps
the passive-income ticker running until interrupted (Ctrl+C / SIGTERM).

Bootstrap
---------
- Logging
- ConfigManager (balance YAML)
- Engine wiring from Config
- Graceful shutdown
"""

import asyncio
import signal
import sys

from portal_economy.core.config.config import Config
from portal_economy.core.config.manager import ConfigManager
from portal_economy.core.logging.logger import get_logger, setup_logging, shutdown_logging
from portal_economy.engine import EconomyEngine, build_engine
from portal_economy.modules.shared.constants import EVENT_PERSISTENCE_FAILED

logger = get_logger("portal_economy")


async def _report_persistence_failure(payload: dict) -> None:
    logger.warning("Progress is not being saved", extra={"error": payload.get("error")})


async def main() -> None:
    logger.info("========== PORTAL ECONOMY START ==========", extra=Config.get_config_summary())

    ConfigManager.initialize()
    engine: EconomyEngine = build_engine()
    engine.event_bus.subscribe(EVENT_PERSISTENCE_FAILED, _report_persistence_failure)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            logger.debug("Signal handlers not supported on this platform")

    try:
        snapshot = await engine.start()
        logger.info(
            "Engine running",
            extra={
                "coins": snapshot.coins,
                "level": snapshot.level,
                "generation_rate": engine.generation_rate(),
            },
        )
        await stop.wait()
    finally:
        await engine.shutdown()
        logger.info("========== SHUTDOWN COMPLETE ==========")


def run() -> None:
    setup_logging()
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Stopped via keyboard interrupt.")
    except Exception as exc:
        logger.critical(f"Fatal error: {exc}", exc_info=True)
        sys.exit(1)
    finally:
        shutdown_logging()


if __name__ == "__main__":
    run()
