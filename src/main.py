"""Service Entry Point.

Loads configuration, wires the long-lived components (dedup store,
destination registry, pipeline, liveness server) and runs the scheduler
until SIGTERM/SIGINT.
"""

import logging
import os
import sys

from src.core.config import Config, validate_config
from src.pipeline import NotificationPipeline
from src.registry import DestinationRegistry
from src.scheduler import Scheduler
from src.shell.config_loader import load_config, load_config_from_env
from src.shell.firestore_client import FirestoreConfig, FirestoreDestinationStore
from src.shell.health_server import HealthServer


# Configure logging
log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def get_config() -> Config:
    """Load configuration from file or environment."""
    config_path = os.environ.get("CONFIG_PATH")

    if config_path:
        return load_config(config_path)
    elif os.environ.get("DISCORD_BOT_TOKEN"):
        # Simple env-based config
        return load_config_from_env()
    else:
        # Try default config path
        return load_config()


def build_registry(config: Config) -> DestinationRegistry:
    """Create the Firestore-backed destination registry (not yet connected)."""
    store = FirestoreDestinationStore(
        FirestoreConfig(
            database=config.firestore_database,
            collection=config.firestore_collection,
            timeout=config.firestore_timeout_seconds,
        )
    )
    return DestinationRegistry(store, config.reconnect)


def build_pipeline(config: Config, registry: DestinationRegistry) -> NotificationPipeline:
    return NotificationPipeline(config, registry)


def run_service(config: Config | None = None) -> int:
    """Run until interrupted.

    Returns:
        Process exit code
    """
    config = config or get_config()

    validation = validate_config(config)
    for warning in validation.warnings:
        logger.warning("Config %s: %s", warning.field, warning.message)
    if not validation.valid:
        for error in validation.critical_errors:
            logger.error("Config %s: %s", error.field, error.message)
        return 1

    registry = build_registry(config)
    if not registry.connect():
        logger.warning("Starting without destination store; will keep retrying")

    pipeline = build_pipeline(config, registry)

    health = None
    if config.health_port:
        health = HealthServer(config.health_port)
        try:
            health.start()
        except OSError:
            logger.exception("Could not start health server on port %d", config.health_port)
            health = None

    def tick() -> None:
        result = pipeline.run_tick()
        if result.success:
            logger.info("Tick completed: %s", result.summary)
        else:
            logger.warning("Tick completed with errors: %s (%s)", result.summary, result.errors)

    scheduler = Scheduler(config.polling_interval_seconds, tick)
    scheduler.install_signal_handlers()

    try:
        scheduler.run_forever()
    finally:
        if health is not None:
            health.stop()
        registry.close()
        logger.info("Shutdown complete")

    return 0


if __name__ == "__main__":
    sys.exit(run_service())
