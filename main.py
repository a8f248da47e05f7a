"""Main entry point for the validator monitor."""

import argparse
import asyncio
import os

import structlog

from validator_monitoring.config import DEFAULT_CONFIG_PATH, MonitoringConfig, load_config
from validator_monitoring.errors import ConfigError
from validator_monitoring.logging_setup import configure_logging
from validator_monitoring.scheduler import MonitorCoordinator

logger = structlog.get_logger(__name__)


async def run(config: MonitoringConfig, once: bool = False) -> int:
    coordinator = MonitorCoordinator(config)
    if once:
        try:
            await coordinator.run_once()
        finally:
            await coordinator.stop()
        return 0

    await coordinator.run_forever()
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Validator fleet monitor")
    parser.add_argument(
        "--config",
        default=os.getenv("VALIDATOR_MONITORING_CONFIG", DEFAULT_CONFIG_PATH),
        help="Path to YAML config",
    )
    parser.add_argument("--once", action="store_true", help="Run one cycle of every monitor and exit")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (INFO, DEBUG, ...); overrides the config file",
    )
    args = parser.parse_args()

    try:
        config = load_config(args.config)
    except ConfigError as e:
        configure_logging(args.log_level or "INFO")
        logger.error("Failed to load configuration", error=str(e))
        return 2

    configure_logging(args.log_level or config.log_level, config.log_format)
    logger.info("Starting validator monitor", validators=len(config.nodes), once=bool(args.once))

    try:
        return asyncio.run(run(config, once=bool(args.once)))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
