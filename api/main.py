"""Seismic Alert API - FastAPI command surface.

Lets a community point alerts at a channel, stop alerts, and query the
latest events. Deployed next to (or inside) the polling service and shares
its destination registry.
"""

import logging
import os
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import timedelta, timezone
from typing import Any

import uvicorn
from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel, Field

from src.commands import (
    DEFAULT_RECENT_COUNT,
    MAX_RECENT_COUNT,
    MIN_RECENT_COUNT,
    RECENT_EVENT_REGIONS,
    FeedUnavailableError,
    parse_focus_region,
    recent_events,
    remove_destination,
    setup_destination,
)
from src.core.config import Config
from src.core.formatter import format_recent_events_message
from src.registry import DestinationRegistry
from src.shell.discord_client import DiscordClient
from src.shell.usgs_client import USGSFeedClient


logger = logging.getLogger(__name__)


@dataclass
class ApiServices:
    """Collaborators the routes depend on."""
    config: Config
    registry: DestinationRegistry
    discord: DiscordClient
    fetcher: USGSFeedClient


# ===== Request Models =====

class DestinationRequest(BaseModel):
    channel_name: str = Field(min_length=1, max_length=100)
    focus_region: str | None = None
    community_name: str = ""
    min_magnitude: float | None = Field(default=None, ge=0, le=10)


def _build_services() -> ApiServices:
    # Imported here so that tests injecting services do not need Firestore
    from src.main import build_registry, get_config

    config = get_config()
    registry = build_registry(config)
    registry.connect()
    return ApiServices(
        config=config,
        registry=registry,
        discord=DiscordClient(bot_token=config.discord_bot_token),
        fetcher=USGSFeedClient(timeout=config.fetch_timeout_seconds),
    )


def create_app(services: ApiServices | None = None) -> FastAPI:
    """Build the API app.

    Args:
        services: Pre-built collaborators; built from configuration at
            startup when omitted
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = services is None
        app.state.services = services or _build_services()
        try:
            yield
        finally:
            if owned:
                app.state.services.registry.close()

    app = FastAPI(
        title="Seismic Alert API",
        description="Configure earthquake alert destinations and query recent events",
        version="1.0.0",
        lifespan=lifespan,
    )

    def _services() -> ApiServices:
        return app.state.services

    @app.put("/communities/{community_id}/destination")
    def put_destination(community_id: str, body: DestinationRequest) -> dict[str, Any]:
        svc = _services()
        try:
            result = setup_destination(
                svc.registry,
                svc.discord,
                community_id,
                body.channel_name,
                focus_region=body.focus_region,
                community_name=body.community_name,
                min_magnitude=body.min_magnitude,
            )
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

        destination = result.destination
        return {
            "community_id": destination.community_id,
            "channel_id": destination.channel_id,
            "channel_name": destination.channel_name,
            "focus_region": destination.focus_region.value,
            "min_magnitude": destination.min_magnitude,
            "created_channel": result.created_channel,
            "persisted": result.persisted,
            "message": result.message,
        }

    @app.delete("/communities/{community_id}/destination")
    def delete_destination(community_id: str) -> dict[str, Any]:
        try:
            result = remove_destination(_services().registry, community_id)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

        return {
            "community_id": result.community_id,
            "persisted": result.persisted,
            "message": result.message,
        }

    @app.get("/events/recent")
    def get_recent_events(
        count: int = Query(default=DEFAULT_RECENT_COUNT, ge=MIN_RECENT_COUNT, le=MAX_RECENT_COUNT),
        region: str = Query(default="global"),
    ) -> dict[str, Any]:
        svc = _services()
        try:
            focus = parse_focus_region(region, RECENT_EVENT_REGIONS)
            notifications = recent_events(
                svc.fetcher,
                svc.config.recent_events_endpoint,
                count=count,
                region=region,
                profile=svc.config.region,
                scoring=svc.config.scoring,
            )
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except FeedUnavailableError as e:
            logger.error("Recent events query failed: %s", str(e))
            raise HTTPException(status_code=502, detail="Failed to fetch earthquake data")

        tz = timezone(timedelta(hours=svc.config.display_utc_offset_hours))
        return {
            "region": focus.value,
            "count": len(notifications),
            "events": [
                {
                    "id": n.event.id,
                    "magnitude": n.event.magnitude,
                    "place": n.event.place,
                    "time": n.event.occurred_at.isoformat(),
                    "latitude": n.event.latitude,
                    "longitude": n.event.longitude,
                    "depth_km": n.event.depth_km,
                    "distance_km": round(n.distance_km, 1),
                    "region_tag": n.region_tag.value,
                    "url": n.event.details_url,
                }
                for n in notifications
            ],
            "message": format_recent_events_message(
                notifications, focus, count, svc.config.region, tz,
            ),
        }

    @app.get("/health")
    def health_check() -> dict[str, Any]:
        registry = _services().registry
        return {
            "status": "healthy",
            "store_connected": registry.connected,
            "pending_writes": registry.pending_count(),
        }

    return app


app = create_app()


def main() -> None:
    host = os.getenv("API_HOST", "0.0.0.0")
    port = int(os.getenv("API_PORT", "8000"))
    uvicorn.run("api.main:app", host=host, port=port, reload=False)


if __name__ == "__main__":
    main()
