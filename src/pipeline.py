"""Notification Pipeline - Wires Functional Core and Imperative Shell.

This module coordinates one polling tick: fetch the feeds, drop events
already seen, classify the rest, and fan them out to every destination
whose focus region and magnitude threshold they pass.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import timedelta, timezone
from enum import Enum

from src.core.classification import Notification, build_notification, order_by_urgency
from src.core.config import Config
from src.core.dedup import DedupStore
from src.core.destination import Destination
from src.core.event import SeismicEvent, filter_by_magnitude
from src.core.formatter import format_discord_message, format_event_summary
from src.core.rules import make_dispatch_decisions
from src.registry import DestinationRegistry
from src.shell.discord_client import DiscordClient
from src.shell.usgs_client import FetchResult, USGSFeedClient


logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    FILTERING = "filtering"
    DISPATCHING = "dispatching"


@dataclass
class DeliveryResult:
    """Result of delivering one notification to one target.

    Attributes:
        notification: The notification delivered
        target: Destination community ID, or "webhook"
        success: Whether delivery succeeded
        error: Error message if failed
    """
    notification: Notification
    target: str
    success: bool
    error: str | None = None


@dataclass
class TickResult:
    """Result of one pipeline tick.

    Attributes:
        endpoints_ok: Feed endpoints that returned a document
        endpoints_failed: Feed endpoints that failed
        events_fetched: Events merged across successful endpoints
        events_new: Events not seen in earlier ticks
        deliveries_sent: Successful deliveries
        deliveries_failed: Failed deliveries
        errors: Tick-level errors
    """
    endpoints_ok: int = 0
    endpoints_failed: int = 0
    events_fetched: int = 0
    events_new: int = 0
    deliveries_sent: list[DeliveryResult] = field(default_factory=list)
    deliveries_failed: list[DeliveryResult] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Returns True if no tick-level errors occurred."""
        return len(self.errors) == 0

    @property
    def summary(self) -> str:
        """Human-readable summary of the tick."""
        return (
            f"Fetched {self.events_fetched} events "
            f"({self.endpoints_ok} feeds ok, {self.endpoints_failed} failed), "
            f"{self.events_new} new, "
            f"{len(self.deliveries_sent)} deliveries sent, "
            f"{len(self.deliveries_failed)} failed"
        )


def merge_fetch_results(results: list[FetchResult]) -> list[SeismicEvent]:
    """Concatenate events from successful fetches, in endpoint order.

    Duplicates across endpoints are kept; the dedup store resolves them.
    """
    events: list[SeismicEvent] = []
    for result in results:
        if result.success:
            events.extend(result.events)
    return events


class NotificationPipeline:
    """Runs fetch, filter, classify and dispatch for each tick.

    This class wires together:
    - USGS feed client (fetches event snapshots)
    - Dedup store (drops events already handled)
    - Core functions (classification, focus rules, formatting)
    - Destination registry (who receives what)
    - Discord client (delivery)
    """

    def __init__(
        self,
        config: Config,
        registry: DestinationRegistry,
        fetcher: USGSFeedClient | None = None,
        discord: DiscordClient | None = None,
        dedup: DedupStore | None = None,
    ) -> None:
        """Initialize pipeline with its collaborators.

        Args:
            config: Application configuration
            registry: Destination registry (owned by the caller)
            fetcher: Feed client (created if not provided)
            discord: Delivery client (created if not provided)
            dedup: Dedup store (created if not provided)
        """
        self.config = config
        self.registry = registry
        self.fetcher = fetcher or USGSFeedClient(
            endpoints=config.feed_endpoints,
            timeout=config.fetch_timeout_seconds,
        )
        self.discord = discord or DiscordClient(bot_token=config.discord_bot_token)
        self.dedup = dedup or DedupStore(
            max_size=config.dedup.max_size,
            keep_size=config.dedup.keep_size,
        )
        self.display_tz = timezone(timedelta(hours=config.display_utc_offset_hours))
        self.state = PipelineState.IDLE

    def _fetch(self, result: TickResult) -> list[SeismicEvent] | None:
        """Fetch every endpoint. Returns None if all of them failed."""
        fetches = self.fetcher.fetch_all(
            self.config.feed_endpoints,
            self.config.fetch_timeout_seconds,
        )
        result.endpoints_ok = sum(1 for f in fetches if f.success)
        result.endpoints_failed = len(fetches) - result.endpoints_ok

        for failed in (f for f in fetches if not f.success):
            logger.warning("Feed %s failed: %s", failed.endpoint, failed.error)

        if result.endpoints_ok == 0:
            return None

        events = merge_fetch_results(fetches)
        result.events_fetched = len(events)
        return events

    def _deliver(self, notification: Notification, destination: Destination) -> DeliveryResult:
        """Render and deliver to one destination. Never raises."""
        try:
            payload = format_discord_message(notification, self.config.region, self.display_tz)
            response = self.discord.send_channel_message(destination.channel_id, payload)
        except Exception as e:
            logger.exception(
                "Unexpected error delivering %s to %s",
                notification.event.id,
                destination.community_id,
            )
            return DeliveryResult(
                notification=notification,
                target=destination.community_id,
                success=False,
                error=str(e),
            )

        return DeliveryResult(
            notification=notification,
            target=destination.community_id,
            success=response.success,
            error=response.error,
        )

    def _deliver_webhook(self, notification: Notification) -> DeliveryResult:
        try:
            payload = format_discord_message(notification, self.config.region, self.display_tz)
            response = self.discord.send_webhook(self.config.webhook_url, payload)
        except Exception as e:
            logger.exception("Unexpected error posting %s to webhook", notification.event.id)
            return DeliveryResult(notification, "webhook", False, str(e))

        return DeliveryResult(notification, "webhook", response.success, response.error)

    def _dispatch(
        self,
        notifications: list[Notification],
        destinations: list[Destination],
        result: TickResult,
    ) -> None:
        """Deliver notifications in order; each one fans out concurrently."""
        decisions = make_dispatch_decisions(
            notifications,
            destinations,
            self.config.thresholds,
            self.config.region,
        )
        targets_by_event = {d.notification.event.id: d.destinations for d in decisions}

        with ThreadPoolExecutor(
            max_workers=self.config.dispatch_workers,
            thread_name_prefix="dispatch",
        ) as executor:
            for notification in notifications:
                targets = targets_by_event.get(notification.event.id, [])
                futures = [
                    executor.submit(self._deliver, notification, destination)
                    for destination in targets
                ]
                if self.config.webhook_enabled:
                    futures.append(executor.submit(self._deliver_webhook, notification))

                if not futures:
                    logger.debug(
                        "No destinations for %s",
                        format_event_summary(notification, self.display_tz),
                    )
                    continue

                # Finish this event before starting the next, less urgent one
                for future in futures:
                    delivery = future.result()
                    if delivery.success:
                        result.deliveries_sent.append(delivery)
                        logger.info(
                            "Delivered %s to %s",
                            format_event_summary(notification, self.display_tz),
                            delivery.target,
                        )
                    else:
                        result.deliveries_failed.append(delivery)
                        logger.error(
                            "Failed to deliver %s to %s: %s",
                            notification.event.id,
                            delivery.target,
                            delivery.error,
                        )

    def run_tick(self) -> TickResult:
        """Run one complete polling cycle.

        1. Fetch all feed endpoints concurrently
        2. Drop events below the ingest floor and events seen before
        3. Classify and order by urgency
        4. Deliver to each matching destination (and the webhook)

        Returns:
            TickResult with details of what happened
        """
        result = TickResult()

        try:
            self.state = PipelineState.FETCHING
            events = self._fetch(result)
            if events is None:
                error_msg = "All feed endpoints failed"
                logger.error(error_msg)
                result.errors.append(error_msg)
                return result

            self.state = PipelineState.FILTERING
            candidates = filter_by_magnitude(events, self.config.min_ingest_magnitude)
            new_events = self.dedup.filter_new(candidates)
            result.events_new = len(new_events)

            logger.info(
                "%d new events (of %d fetched)",
                len(new_events),
                len(events),
            )

            if not new_events:
                return result

            notifications = order_by_urgency([
                build_notification(e, self.config.region, self.config.scoring)
                for e in new_events
            ])

            self.state = PipelineState.DISPATCHING
            destinations = list(self.registry.get_all().values())
            logger.info("Dispatching to %d registered destinations", len(destinations))

            self._dispatch(notifications, destinations, result)
            return result
        finally:
            self.state = PipelineState.IDLE
