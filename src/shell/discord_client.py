"""Discord Client - Imperative Shell.

This module handles HTTP communication with the Discord REST API and
incoming webhooks. All I/O is contained here; message formatting is in
the core module.
"""

import logging
from dataclasses import dataclass
from typing import Any

import requests


logger = logging.getLogger(__name__)


DISCORD_API_BASE = "https://discord.com/api/v10"

# Default timeout for Discord requests (seconds)
DEFAULT_TIMEOUT = 10

# Discord channel types
GUILD_TEXT = 0

# Permission bit for VIEW_CHANNEL
VIEW_CHANNEL = 1 << 10


@dataclass
class DiscordResponse:
    """Response from a Discord request.

    Attributes:
        success: Whether the request succeeded
        status_code: HTTP status code (0 if no response)
        error: Error message if failed
        data: Decoded JSON body, when present
    """
    success: bool
    status_code: int
    error: str | None = None
    data: Any = None


@dataclass(frozen=True)
class TextChannel:
    """A text channel in a community."""
    id: str
    name: str


class DiscordClient:
    """Client for delivering messages to Discord.

    This is part of the imperative shell - it handles HTTP I/O. Transport
    errors are returned as failed DiscordResponse objects, never raised.
    """

    def __init__(
        self,
        bot_token: str | None = None,
        timeout: int = DEFAULT_TIMEOUT,
        base_url: str = DISCORD_API_BASE,
    ) -> None:
        """Initialize Discord client.

        Args:
            bot_token: Bot token for channel APIs (webhooks do not need it)
            timeout: Request timeout in seconds
            base_url: API base URL
        """
        self.bot_token = bot_token
        self.timeout = timeout
        self.base_url = base_url.rstrip("/")

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.bot_token:
            headers["Authorization"] = f"Bot {self.bot_token}"
        return headers

    def _request(
        self,
        method: str,
        url: str,
        payload: dict[str, Any] | None = None,
        authenticated: bool = True,
    ) -> DiscordResponse:
        """Perform one HTTP request and wrap the outcome.

        This method performs HTTP I/O.
        """
        if authenticated and not self.bot_token:
            return DiscordResponse(
                success=False,
                status_code=0,
                error="Discord bot token not configured",
            )

        headers = self._headers() if authenticated else {"Content-Type": "application/json"}

        try:
            response = requests.request(
                method,
                url,
                json=payload,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.Timeout:
            logger.error("Discord request timed out: %s %s", method, url)
            return DiscordResponse(
                success=False,
                status_code=0,
                error="Request timed out",
            )
        except requests.RequestException as e:
            logger.error("Discord request failed: %s", str(e))
            return DiscordResponse(
                success=False,
                status_code=0,
                error=str(e),
            )

        if 200 <= response.status_code < 300:
            data = None
            if response.content:
                try:
                    data = response.json()
                except ValueError:
                    data = None
            return DiscordResponse(
                success=True,
                status_code=response.status_code,
                data=data,
            )

        error_text = response.text
        logger.warning(
            "Discord returned non-2xx: %d - %s",
            response.status_code,
            error_text,
        )
        return DiscordResponse(
            success=False,
            status_code=response.status_code,
            error=error_text or f"HTTP {response.status_code}",
        )

    def send_channel_message(
        self,
        channel_id: str,
        payload: dict[str, Any],
    ) -> DiscordResponse:
        """Post a message to a channel with the bot token.

        Args:
            channel_id: Target channel ID
            payload: Message payload (from formatter)

        Returns:
            DiscordResponse indicating success or failure
        """
        logger.info("Sending message to Discord channel %s", channel_id)
        return self._request(
            "POST",
            f"{self.base_url}/channels/{channel_id}/messages",
            payload,
        )

    def send_webhook(
        self,
        webhook_url: str,
        payload: dict[str, Any],
    ) -> DiscordResponse:
        """Post a message to an incoming webhook.

        Args:
            webhook_url: Discord webhook URL
            payload: Message payload (from formatter)

        Returns:
            DiscordResponse indicating success or failure
        """
        logger.info("Sending message to Discord webhook")
        return self._request("POST", webhook_url, payload, authenticated=False)

    def list_text_channels(self, guild_id: str) -> list[TextChannel]:
        """List a community's text channels.

        Returns an empty list when the request fails.
        """
        response = self._request("GET", f"{self.base_url}/guilds/{guild_id}/channels")
        if not response.success or not isinstance(response.data, list):
            return []

        return [
            TextChannel(id=str(ch["id"]), name=ch.get("name", ""))
            for ch in response.data
            if isinstance(ch, dict) and ch.get("type") == GUILD_TEXT and "id" in ch
        ]

    def find_text_channel(self, guild_id: str, name: str) -> TextChannel | None:
        """Find a text channel by exact name."""
        for channel in self.list_text_channels(guild_id):
            if channel.name == name:
                return channel
        return None

    def create_text_channel(self, guild_id: str, name: str) -> TextChannel | None:
        """Create a text channel visible to everyone in the community.

        Returns None when creation fails (e.g. missing permissions).
        """
        payload = {
            "name": name,
            "type": GUILD_TEXT,
            "permission_overwrites": [
                # The @everyone role shares the guild's ID
                {"id": guild_id, "type": 0, "allow": str(VIEW_CHANNEL)},
            ],
        }
        response = self._request(
            "POST",
            f"{self.base_url}/guilds/{guild_id}/channels",
            payload,
        )
        if not response.success or not isinstance(response.data, dict) or "id" not in response.data:
            logger.error(
                "Failed to create channel #%s in guild %s: %s",
                name,
                guild_id,
                response.error,
            )
            return None

        return TextChannel(
            id=str(response.data["id"]),
            name=response.data.get("name", name),
        )
