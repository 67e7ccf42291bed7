"""Secret Manager Client - Imperative Shell.

This module resolves credentials such as the Discord bot token from Google
Cloud Secret Manager, with environment variables as a local fallback.
"""

import logging
import os
import re
from dataclasses import dataclass

from google.cloud import secretmanager


logger = logging.getLogger(__name__)


# ${NAME} for environment variables, ${secret:name} or ${secret:name:version}
PLACEHOLDER_PATTERN = re.compile(r"^\$\{(?:(secret):)?([^}:]+)(?::([^}]+))?\}$")


@dataclass
class SecretManagerConfig:
    """Configuration for Secret Manager client.

    Attributes:
        project_id: GCP project ID (None for default)
    """
    project_id: str | None = None


class SecretManagerClient:
    """Client for reading secrets from Google Cloud Secret Manager.

    This is part of the imperative shell - it handles secret I/O.
    """

    def __init__(self, config: SecretManagerConfig | None = None) -> None:
        self.config = config or SecretManagerConfig()
        self._client: secretmanager.SecretManagerServiceClient | None = None

    @property
    def client(self) -> secretmanager.SecretManagerServiceClient:
        """Lazy initialization of Secret Manager client."""
        if self._client is None:
            self._client = secretmanager.SecretManagerServiceClient()
        return self._client

    def get_secret(
        self,
        secret_name: str,
        version: str = "latest",
    ) -> str | None:
        """Fetch a secret value from Secret Manager.

        This method performs I/O.

        Args:
            secret_name: Name of the secret (not the full resource path)
            version: Version of the secret (default: "latest")

        Returns:
            Secret value as string, or None if unavailable
        """
        if not self.config.project_id:
            logger.error("No project ID configured for Secret Manager")
            return None

        name = f"projects/{self.config.project_id}/secrets/{secret_name}/versions/{version}"

        try:
            response = self.client.access_secret_version(request={"name": name})
        except Exception as e:
            logger.error("Failed to fetch secret %s: %s", secret_name, str(e))
            return None

        logger.info("Fetched secret: %s", secret_name)
        return response.payload.data.decode("UTF-8")

    def get_secret_or_env(self, secret_name: str, env_var_name: str) -> str | None:
        """Try Secret Manager first, then an environment variable.

        Useful for local development where Secret Manager is unavailable.
        """
        secret_value = self.get_secret(secret_name)
        if secret_value:
            return secret_value

        env_value = os.environ.get(env_var_name)
        if env_value:
            logger.info("Using environment variable %s (Secret Manager unavailable)", env_var_name)
            return env_value

        return None

    def resolve(self, value: str) -> str:
        """Expand a ${...} placeholder.

        Supported forms:
            ${DISCORD_BOT_TOKEN}              environment variable
            ${secret:discord-bot-token}       latest secret version
            ${secret:discord-bot-token:3}     pinned secret version

        Values that are not placeholders are returned unchanged, as are
        placeholders that cannot be resolved (so validation can flag them).
        """
        match = PLACEHOLDER_PATTERN.match(value)
        if not match:
            return value

        is_secret, name, version = match.groups()

        if is_secret:
            secret_value = self.get_secret(name, version or "latest")
            if secret_value is not None:
                return secret_value
            logger.warning("Secret %s could not be resolved", name)
            return value

        env_value = os.environ.get(name)
        if env_value:
            return env_value
        logger.warning("Environment variable %s not set", name)
        return value
