"""
Configuration constants and connection settings for the plugin audit.
"""

from dataclasses import dataclass
from typing import FrozenSet, Optional
import os

from mm_plugin_audit.errors import ConfigError


# Plugin IDs shipped inside the Mattermost server distribution.
BUNDLED_PLUGINS: FrozenSet[str] = frozenset({
    "mattermost-ai",                                # mattermost-plugin-agents
    "focalboard",                                   # mattermost-plugin-boards
    "com.mattermost.calls",                         # mattermost-plugin-calls
    "com.mattermost.plugin-channel-export",         # mattermost-plugin-channel-export
    "github",                                       # mattermost-plugin-github
    "com.github.manland.mattermost-plugin-gitlab",  # mattermost-plugin-gitlab
    "jira",                                         # mattermost-plugin-jira
    "com.mattermost.mattermost-plugin-metrics",     # mattermost-plugin-metrics
    "com.mattermost.mscalendar",                    # mattermost-plugin-mscalendar
    "com.mattermost.msteamsmeetings",               # mattermost-plugin-msteams-meetings
    "playbooks",                                    # mattermost-plugin-playbooks
    "mattermost-plugin-servicenow",                 # mattermost-plugin-servicenow
    "com.mattermost.user-survey",                   # mattermost-plugin-user-survey
    "zoom",                                         # mattermost-plugin-zoom
})

# Homepage URL markers for plugins maintained by Mattermost outside the Marketplace.
MATTERMOST_ORG_MARKER = "github.com/mattermost/"
COMMUNITY_ORG_MARKER = "github.com/mattermost-community/"

API_PREFIX = "/api/v4"

OUTPUT_FORMATS = ["table", "csv", "json"]


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ConfigError(f"error: {name} must be an integer, got {value!r}.", e) from e


@dataclass
class AuditConfig:
    """Connection and network settings for a single audit run."""

    url: str = ""
    token: str = ""
    username: str = ""
    password: str = ""

    # Network settings
    network_timeout: int = 30
    network_retries: int = 3

    # Marketplace proxy paging
    marketplace_per_page: int = 200

    @classmethod
    def from_env(cls) -> "AuditConfig":
        """Create configuration from environment variables."""
        return cls(
            url=os.getenv("MM_URL", ""),
            token=os.getenv("MM_TOKEN", ""),
            username=os.getenv("MM_USERNAME", ""),
            password=os.getenv("MM_PASSWORD", ""),
            network_timeout=_env_int("MM_AUDIT_TIMEOUT", 30),
            network_retries=_env_int("MM_AUDIT_RETRIES", 3),
        )

    @property
    def server_url(self) -> str:
        """Server URL without trailing slashes."""
        return self.url.rstrip("/")

    @property
    def auth_method(self) -> Optional[str]:
        """Return "token", "password" or None when no credentials are set."""
        if self.token:
            return "token"
        if self.username:
            return "password"
        return None

    def api_url(self, path: str) -> str:
        """Build an API v4 URL for the given endpoint path."""
        return f"{self.server_url}{API_PREFIX}/{path.lstrip('/')}"
