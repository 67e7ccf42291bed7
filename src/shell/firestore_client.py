"""Firestore Client - Imperative Shell.

This module persists destination records in Google Cloud Firestore, one
document per community, keyed by community ID.

Unlike the delivery clients, errors are raised to the caller: the
destination registry owns the outage policy (cached reads, queued writes).
"""

import logging
from dataclasses import dataclass
from typing import Any

from google.cloud import firestore

from src.core.destination import Destination, destination_from_record


logger = logging.getLogger(__name__)


# Default collection name for destination records
DEFAULT_COLLECTION = "destinations"

# Per-call deadline for Firestore requests (seconds)
DEFAULT_TIMEOUT = 10.0


@dataclass
class FirestoreConfig:
    """Configuration for Firestore client.

    Attributes:
        project_id: GCP project ID (None for default)
        database: Firestore database name (None for default database)
        collection: Firestore collection name
        timeout: Per-call timeout in seconds
    """
    project_id: str | None = None
    database: str | None = None
    collection: str = DEFAULT_COLLECTION
    timeout: float = DEFAULT_TIMEOUT


class FirestoreDestinationStore:
    """Key-value store of destinations backed by Firestore.

    This is part of the imperative shell - it handles database I/O.

    Document structure (ID = community_id):
    {
        "community_id": "...",
        "channel_id": "...",
        "channel_name": "...",
        "community_name": "...",
        "focus_region": "global",
        "min_magnitude": null,
        "updated_at": <timestamp>
    }
    """

    def __init__(self, config: FirestoreConfig | None = None) -> None:
        """Initialize Firestore store.

        Args:
            config: Firestore configuration
        """
        self.config = config or FirestoreConfig()
        self._client: firestore.Client | None = None

    @property
    def client(self) -> firestore.Client:
        """Lazy initialization of Firestore client."""
        if self._client is None:
            kwargs = {}
            if self.config.project_id:
                kwargs["project"] = self.config.project_id
            if self.config.database:
                kwargs["database"] = self.config.database
            self._client = firestore.Client(**kwargs)
        return self._client

    def _collection(self) -> Any:
        return self.client.collection(self.config.collection)

    def ping(self) -> None:
        """Verify the store is reachable.

        Raises:
            Exception: Any client or transport error
        """
        # A bounded read is the cheapest round trip Firestore offers
        list(self._collection().limit(1).stream(timeout=self.config.timeout))

    def get_all(self) -> dict[str, Destination]:
        """Read every destination record.

        This method performs database I/O.

        Returns:
            Mapping of community ID to Destination
        """
        destinations: dict[str, Destination] = {}

        for doc in self._collection().stream(timeout=self.config.timeout):
            data = doc.to_dict() or {}
            data.setdefault("community_id", doc.id)
            destination = destination_from_record(data)
            if destination is None:
                logger.warning("Skipping malformed destination document %s", doc.id)
                continue
            destinations[destination.community_id] = destination

        logger.info("Fetched %d destinations from Firestore", len(destinations))
        return destinations

    def upsert(self, destination: Destination) -> None:
        """Create or replace a destination record.

        This method performs database I/O.
        """
        self._collection().document(destination.community_id).set(
            destination.to_record(),
            timeout=self.config.timeout,
        )
        logger.info(
            "Saved destination for community %s (channel %s)",
            destination.community_id,
            destination.channel_id,
        )

    def delete(self, community_id: str) -> None:
        """Delete a destination record. Deleting a missing record is a no-op.

        This method performs database I/O.
        """
        self._collection().document(community_id).delete(timeout=self.config.timeout)
        logger.info("Removed destination for community %s", community_id)

    def close(self) -> None:
        """Release the underlying client."""
        if self._client is not None:
            self._client.close()
            self._client = None
