"""Tests for the Discord client.

Uses the `responses` library to mock HTTP requests.
"""

import json

import pytest
import requests
import responses

from src.shell.discord_client import (
    DISCORD_API_BASE,
    GUILD_TEXT,
    DiscordClient,
    TextChannel,
)


WEBHOOK_URL = "https://discord.com/api/webhooks/123/abc"
PAYLOAD = {"content": "test", "embeds": []}


class TestSendChannelMessage:
    """Tests for DiscordClient.send_channel_message()."""

    @responses.activate
    def test_success(self):
        responses.add(
            responses.POST,
            f"{DISCORD_API_BASE}/channels/42/messages",
            json={"id": "999"},
            status=200,
        )

        result = DiscordClient(bot_token="tok").send_channel_message("42", PAYLOAD)

        assert result.success is True
        assert result.data == {"id": "999"}

    @responses.activate
    def test_sends_bot_authorization(self):
        responses.add(responses.POST, f"{DISCORD_API_BASE}/channels/42/messages", json={}, status=200)

        DiscordClient(bot_token="tok").send_channel_message("42", PAYLOAD)

        request = responses.calls[0].request
        assert request.headers["Authorization"] == "Bot tok"
        assert json.loads(request.body) == PAYLOAD

    def test_missing_token_fails_without_request(self):
        result = DiscordClient().send_channel_message("42", PAYLOAD)

        assert result.success is False
        assert result.status_code == 0
        assert "token" in result.error

    @responses.activate
    def test_forbidden_returns_failure(self):
        responses.add(
            responses.POST,
            f"{DISCORD_API_BASE}/channels/42/messages",
            body='{"message": "Missing Access"}',
            status=403,
        )

        result = DiscordClient(bot_token="tok").send_channel_message("42", PAYLOAD)

        assert result.success is False
        assert result.status_code == 403
        assert "Missing Access" in result.error

    @responses.activate
    def test_timeout_returns_failure(self):
        responses.add(
            responses.POST,
            f"{DISCORD_API_BASE}/channels/42/messages",
            body=requests.Timeout("slow"),
        )

        result = DiscordClient(bot_token="tok").send_channel_message("42", PAYLOAD)

        assert result.success is False
        assert result.error == "Request timed out"


class TestSendWebhook:
    """Tests for DiscordClient.send_webhook()."""

    @responses.activate
    def test_no_content_is_success(self):
        responses.add(responses.POST, WEBHOOK_URL, status=204)

        result = DiscordClient().send_webhook(WEBHOOK_URL, PAYLOAD)

        assert result.success is True
        assert result.status_code == 204

    @responses.activate
    def test_webhook_is_not_authenticated(self):
        responses.add(responses.POST, WEBHOOK_URL, status=204)

        DiscordClient(bot_token="tok").send_webhook(WEBHOOK_URL, PAYLOAD)

        assert "Authorization" not in responses.calls[0].request.headers

    @responses.activate
    def test_network_error(self):
        responses.add(responses.POST, WEBHOOK_URL, body=requests.ConnectionError("down"))

        result = DiscordClient().send_webhook(WEBHOOK_URL, PAYLOAD)

        assert result.success is False
        assert "down" in result.error


class TestChannels:
    """Tests for channel lookup and creation."""

    @responses.activate
    def test_find_text_channel(self):
        responses.add(
            responses.GET,
            f"{DISCORD_API_BASE}/guilds/g1/channels",
            json=[
                {"id": "1", "name": "general", "type": GUILD_TEXT},
                {"id": "2", "name": "alerts", "type": 2},
                {"id": "3", "name": "alerts", "type": GUILD_TEXT},
            ],
            status=200,
        )

        channel = DiscordClient(bot_token="tok").find_text_channel("g1", "alerts")

        assert channel == TextChannel(id="3", name="alerts")

    @responses.activate
    def test_find_returns_none_on_failure(self):
        responses.add(responses.GET, f"{DISCORD_API_BASE}/guilds/g1/channels", status=500)

        assert DiscordClient(bot_token="tok").find_text_channel("g1", "alerts") is None

    @responses.activate
    def test_create_text_channel(self):
        responses.add(
            responses.POST,
            f"{DISCORD_API_BASE}/guilds/g1/channels",
            json={"id": "77", "name": "quake-alerts", "type": GUILD_TEXT},
            status=201,
        )

        channel = DiscordClient(bot_token="tok").create_text_channel("g1", "quake-alerts")

        assert channel == TextChannel(id="77", name="quake-alerts")
        body = json.loads(responses.calls[0].request.body)
        assert body["type"] == GUILD_TEXT
        assert body["permission_overwrites"][0]["id"] == "g1"

    @responses.activate
    def test_create_without_permission_returns_none(self):
        responses.add(responses.POST, f"{DISCORD_API_BASE}/guilds/g1/channels", status=403)

        assert DiscordClient(bot_token="tok").create_text_channel("g1", "x") is None
