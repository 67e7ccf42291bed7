"""Configuration Loader - Imperative Shell.

This module handles loading configuration from YAML files and
environment variables. All I/O is contained here.

Models (Config, RegionProfile, ...) are defined in src/core/config.py
to avoid information leakage between layers.
"""

import logging
import os
from dataclasses import replace
from pathlib import Path
from typing import Any

import yaml

from src.core.config import (
    Config,
    DedupConfig,
    MagnitudeThresholds,
    ReconnectPolicy,
    RegionProfile,
    ScoringConfig,
)
from src.core.geo import BoundingBox, GeoPoint, NeighborCountry
from src.shell.secret_manager_client import SecretManagerClient, SecretManagerConfig


logger = logging.getLogger(__name__)


def _get_secret_manager_client() -> SecretManagerClient | None:
    """Create a Secret Manager client when GCP_PROJECT is set.

    Returns None for local development.
    """
    project_id = os.environ.get("GCP_PROJECT")
    if project_id:
        return SecretManagerClient(SecretManagerConfig(project_id=project_id))
    return None


def _resolve_value(value: Any, secret_client: SecretManagerClient | None = None) -> Any:
    """Resolve a value that may be a secret or env var placeholder.

    Args:
        value: Value to resolve (may be ${...})
        secret_client: Client for resolving secrets

    Returns:
        Resolved value; non-strings pass through
    """
    if not isinstance(value, str):
        return value

    if secret_client:
        return secret_client.resolve(value)

    # No secret client - only handle env vars
    if value.startswith("${") and value.endswith("}"):
        var_spec = value[2:-1]
        if not var_spec.startswith("secret:"):
            env_value = os.environ.get(var_spec)
            if env_value:
                return env_value
            logger.warning("Environment variable %s not set", var_spec)
        else:
            logger.warning("Cannot resolve %s without GCP_PROJECT", value)

    return value


def _parse_bounds(data: dict[str, Any]) -> BoundingBox:
    """Parse a bounding box from config data."""
    return BoundingBox(
        min_latitude=float(data["min_latitude"]),
        max_latitude=float(data["max_latitude"]),
        min_longitude=float(data["min_longitude"]),
        max_longitude=float(data["max_longitude"]),
    )


def _parse_anchor(data: dict[str, Any]) -> GeoPoint:
    return GeoPoint(
        name=data.get("name", "Anchor"),
        latitude=float(data["latitude"]),
        longitude=float(data["longitude"]),
    )


def _parse_neighbor(data: dict[str, Any]) -> NeighborCountry:
    """Parse a neighbor country; the name itself is always a keyword."""
    name = data["name"]
    keywords = tuple(str(k).lower() for k in data.get("keywords", []))
    if name.lower() not in keywords:
        keywords = (name.lower(),) + keywords
    return NeighborCountry(name=name, keywords=keywords)


def _parse_region(data: dict[str, Any]) -> RegionProfile:
    """Parse the region profile, keeping defaults for omitted keys."""
    kwargs: dict[str, Any] = {}

    if "anchor" in data:
        kwargs["anchor"] = _parse_anchor(data["anchor"])
    for key in ("primary_bounds", "extended_bounds", "continental_bounds"):
        if key in data:
            kwargs[key] = _parse_bounds(data[key])
    if "neighbors" in data:
        kwargs["neighbors"] = tuple(_parse_neighbor(n) for n in data["neighbors"])
    if "primary_radius_km" in data:
        kwargs["primary_radius_km"] = float(data["primary_radius_km"])
    for key in ("primary_label", "neighbor_label", "extended_label"):
        if key in data:
            kwargs[key] = str(data[key])

    return replace(RegionProfile(), **kwargs)


def _parse_steps(data: list[Any]) -> tuple[tuple[float, int], ...]:
    """Parse [[threshold, penalty], ...] pairs."""
    return tuple((float(threshold), int(penalty)) for threshold, penalty in data)


def _parse_scoring(data: dict[str, Any]) -> ScoringConfig:
    defaults = ScoringConfig()
    return ScoringConfig(
        baseline=int(data.get("baseline", defaults.baseline)),
        magnitude_steps=(
            _parse_steps(data["magnitude_steps"])
            if "magnitude_steps" in data else defaults.magnitude_steps
        ),
        primary_adjustment=int(data.get("primary_adjustment", defaults.primary_adjustment)),
        neighbor_adjustment=int(data.get("neighbor_adjustment", defaults.neighbor_adjustment)),
        distance_steps=(
            _parse_steps(data["distance_steps"])
            if "distance_steps" in data else defaults.distance_steps
        ),
    )


def _parse_thresholds(data: dict[str, Any]) -> MagnitudeThresholds:
    defaults = MagnitudeThresholds()
    return MagnitudeThresholds(
        global_min=float(data.get("global", defaults.global_min)),
        primary_min=float(data.get("primary", defaults.primary_min)),
        extended_min=float(data.get("extended", defaults.extended_min)),
        continental_min=float(data.get("continental", defaults.continental_min)),
    )


def _parse_dedup(data: dict[str, Any]) -> DedupConfig:
    defaults = DedupConfig()
    return DedupConfig(
        max_size=int(data.get("max_size", defaults.max_size)),
        keep_size=int(data.get("keep_size", defaults.keep_size)),
    )


def _parse_reconnect(data: dict[str, Any]) -> ReconnectPolicy:
    defaults = ReconnectPolicy()
    return ReconnectPolicy(
        backoff_seconds=float(data.get("backoff_seconds", defaults.backoff_seconds)),
        max_queue_depth=int(data.get("max_queue_depth", defaults.max_queue_depth)),
    )


def load_config_from_dict(data: dict[str, Any]) -> Config:
    """Load configuration from a dictionary.

    This is a pure-ish function (only placeholder expansion has side effects).

    Args:
        data: Configuration dictionary

    Returns:
        Parsed Config object
    """
    secret_client = _get_secret_manager_client()
    defaults = Config()

    feeds = data.get("feeds", {})
    discord = data.get("discord", {})
    firestore = data.get("firestore", {})

    min_ingest = feeds.get("min_magnitude", defaults.min_ingest_magnitude)

    return Config(
        polling_interval_seconds=int(
            data.get("polling_interval_seconds", defaults.polling_interval_seconds)
        ),
        fetch_timeout_seconds=float(
            feeds.get("timeout_seconds", defaults.fetch_timeout_seconds)
        ),
        feed_endpoints=list(feeds.get("endpoints", defaults.feed_endpoints)),
        recent_events_endpoint=feeds.get("recent_events_endpoint", defaults.recent_events_endpoint),
        min_ingest_magnitude=float(min_ingest) if min_ingest is not None else None,
        region=_parse_region(data.get("region", {})),
        scoring=_parse_scoring(data.get("scoring", {})),
        thresholds=_parse_thresholds(data.get("thresholds", {})),
        dedup=_parse_dedup(data.get("dedup", {})),
        reconnect=_parse_reconnect(data.get("reconnect", {})),
        discord_bot_token=_resolve_value(discord.get("bot_token"), secret_client),
        webhook_url=_resolve_value(discord.get("webhook_url"), secret_client),
        dispatch_workers=int(discord.get("dispatch_workers", defaults.dispatch_workers)),
        firestore_database=firestore.get("database"),
        firestore_collection=firestore.get("collection", defaults.firestore_collection),
        firestore_timeout_seconds=float(
            firestore.get("timeout_seconds", defaults.firestore_timeout_seconds)
        ),
        health_port=int(data.get("health_port", defaults.health_port)),
        display_utc_offset_hours=float(
            data.get("display_utc_offset_hours", defaults.display_utc_offset_hours)
        ),
    )


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from a YAML file.

    This method performs file I/O.

    Args:
        config_path: Path to YAML config file.
                    If None, uses CONFIG_PATH env var or default.

    Returns:
        Parsed Config object (from the environment if the file is missing)

    Raises:
        yaml.YAMLError: If config file is invalid YAML
    """
    if config_path is None:
        config_path = os.environ.get("CONFIG_PATH", "config/config.yaml")

    path = Path(config_path)

    logger.info("Loading configuration from %s", path)

    if not path.exists():
        logger.warning("Config file not found: %s, using environment", path)
        return load_config_from_env()

    with open(path, "r") as f:
        data = yaml.safe_load(f)

    if data is None:
        logger.warning("Config file is empty, using environment")
        return load_config_from_env()

    config = load_config_from_dict(data)

    logger.info(
        "Loaded config: %d feeds, poll every %ds, anchor %s",
        len(config.feed_endpoints),
        config.polling_interval_seconds,
        config.region.anchor.name,
    )

    return config


def load_config_from_env() -> Config:
    """Load configuration from environment variables.

    Useful for simple deployments without a YAML file.

    Environment variables:
        DISCORD_BOT_TOKEN: Bot token (or secret "discord-bot-token" in Secret Manager)
        DISCORD_WEBHOOK_URL: Optional webhook receiving every new event
        POLL_INTERVAL_SECONDS: Pipeline interval
        FETCH_TIMEOUT_SECONDS: Per-request feed timeout
        FIRESTORE_DATABASE: Firestore database name
        HEALTH_PORT: Liveness server port (0 disables it)

    Returns:
        Config object from environment
    """
    secret_client = _get_secret_manager_client()
    defaults = Config()

    bot_token = None
    if secret_client:
        bot_token = secret_client.get_secret_or_env("discord-bot-token", "DISCORD_BOT_TOKEN")
    else:
        bot_token = os.environ.get("DISCORD_BOT_TOKEN")

    if not bot_token:
        logger.warning("DISCORD_BOT_TOKEN not set and no secret found")

    return Config(
        polling_interval_seconds=int(
            os.environ.get("POLL_INTERVAL_SECONDS", defaults.polling_interval_seconds)
        ),
        fetch_timeout_seconds=float(
            os.environ.get("FETCH_TIMEOUT_SECONDS", defaults.fetch_timeout_seconds)
        ),
        discord_bot_token=bot_token,
        webhook_url=os.environ.get("DISCORD_WEBHOOK_URL") or None,
        firestore_database=os.environ.get("FIRESTORE_DATABASE") or None,
        health_port=int(os.environ.get("HEALTH_PORT", defaults.health_port)),
    )
