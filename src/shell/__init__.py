"""Imperative Shell - I/O and side effects.

This module contains all code that interacts with external systems:
- USGS feed client (HTTP)
- Discord client (HTTP)
- Firestore destination store (database)
- Configuration loading (environment/files)
- Liveness server

Keep this layer thin and simple. All business logic should be in core.
"""

from src.shell.usgs_client import USGSFeedClient
from src.shell.discord_client import DiscordClient
from src.shell.firestore_client import FirestoreDestinationStore
from src.shell.config_loader import load_config, Config

__all__ = [
    "USGSFeedClient",
    "DiscordClient",
    "FirestoreDestinationStore",
    "load_config",
    "Config",
]
