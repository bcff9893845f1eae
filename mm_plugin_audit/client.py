"""
Mattermost REST API client for retrieving plugin data.
"""

from typing import Any, Dict, List, Optional, Type

import requests
from requests.adapters import HTTPAdapter

from mm_plugin_audit.common import logger
from mm_plugin_audit.config import AuditConfig
from mm_plugin_audit.errors import APIError, AuditError, ConfigError, MarketplaceError
from mm_plugin_audit.models import InstalledPlugin, MarketplacePlugin, PluginStatus


def classify_api_error(
    server_url: str,
    status_code: Optional[int],
    cause: Optional[BaseException] = None,
    fallback: Type[AuditError] = APIError,
) -> AuditError:
    """
    Map a failed API call to an audit error.

    Args:
        server_url: Server URL for the message, may be empty
        status_code: HTTP status code, or None if no response was received
        cause: Underlying exception
        fallback: Error class for failures that are not auth problems

    Returns:
        ConfigError for 401/403, otherwise an instance of ``fallback``
    """
    if status_code is not None:
        if status_code == 401:
            return ConfigError("error: authentication failed. Check your token or credentials.", cause)
        if status_code == 403:
            return ConfigError(
                "error: permission denied. This operation requires a System Administrator account.",
                cause,
            )
        if status_code == 404:
            return fallback(f"error: API endpoint not found on {server_url}. Check the server URL.", cause)
        if status_code >= 500:
            return fallback(
                f"error: the Mattermost server returned an unexpected error (HTTP {status_code}). "
                "Check server logs for details.",
                cause,
            )

    if server_url:
        return fallback(
            f"error: unable to connect to {server_url}. Check the URL and network connectivity.",
            cause,
        )
    return fallback("error: unexpected API error.", cause)


def _manifest_to_plugin(manifest: Dict[str, Any], status: PluginStatus) -> InstalledPlugin:
    return InstalledPlugin(
        plugin_id=manifest.get("id", ""),
        name=manifest.get("name", ""),
        version=manifest.get("version", ""),
        homepage_url=manifest.get("homepage_url") or "",
        status=status,
        has_server=manifest.get("server") is not None,
        has_webapp=manifest.get("webapp") is not None,
    )


class MattermostClient:
    """Authenticated client for the Mattermost API v4."""

    def __init__(self, config: AuditConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()
        if session is None:
            adapter = HTTPAdapter(max_retries=config.network_retries)
            self.session.mount("http://", adapter)
            self.session.mount("https://", adapter)
        self.session.headers.update({"Accept": "application/json"})
        if config.token:
            self.set_token(config.token)

    @classmethod
    def connect(cls, config: AuditConfig, session: Optional[requests.Session] = None) -> "MattermostClient":
        """
        Create a client and authenticate.

        Token auth is validated with a test call; username auth logs in with
        the configured password.
        """
        client = cls(config, session)

        if config.auth_method == "token":
            client._request("GET", "plugins", error_url=config.server_url)
            return client

        if config.auth_method == "password":
            client.login(config.username, config.password)
            return client

        raise ConfigError(
            "error: authentication required. Use --token (or MM_TOKEN) for token auth, "
            "or --username (or MM_USERNAME) for password auth."
        )

    def set_token(self, token: str) -> None:
        self.session.headers["Authorization"] = f"Bearer {token}"

    def login(self, username: str, password: str) -> None:
        """Log in with username and password and store the session token."""
        response = self._request(
            "POST",
            "users/login",
            json={"login_id": username, "password": password},
            error_url=self.config.server_url,
        )
        token = response.headers.get("Token")
        if not token:
            raise APIError("error: login succeeded but the server returned no session token.")
        self.set_token(token)
        logger.debug(f"Logged in as {username}")

    def _request(
        self,
        method: str,
        path: str,
        error_url: str = "",
        error_class: Type[AuditError] = APIError,
        **kwargs,
    ) -> requests.Response:
        url = self.config.api_url(path)
        logger.debug(f"{method} {url}")
        try:
            response = self.session.request(
                method, url, timeout=self.config.network_timeout, **kwargs
            )
            response.raise_for_status()
        except requests.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else None
            raise classify_api_error(error_url, status_code, e, error_class) from e
        except requests.RequestException as e:
            raise classify_api_error(error_url, None, e, error_class) from e
        return response

    def _get_json(
        self,
        path: str,
        expected: type,
        error_class: Type[AuditError] = APIError,
        **kwargs,
    ) -> Any:
        """GET a JSON document, treating null as an empty value of the expected type."""
        response = self._request("GET", path, error_class=error_class, **kwargs)
        try:
            data = response.json()
        except ValueError as e:
            raise error_class(f"error: unexpected response from {response.url}.", e) from e
        if data is None:
            return expected()
        if not isinstance(data, expected):
            raise error_class(f"error: unexpected response from {response.url}.")
        return data

    def get_plugins(self) -> List[InstalledPlugin]:
        """Retrieve all installed plugins, active and inactive."""
        data = self._get_json("plugins", dict)

        plugins: List[InstalledPlugin] = []
        for key, status in (("active", PluginStatus.ENABLED), ("inactive", PluginStatus.DISABLED)):
            manifests = data.get(key) or []
            if not isinstance(manifests, list) or not all(isinstance(m, dict) for m in manifests):
                raise APIError(f"error: unexpected response from {self.config.api_url('plugins')}.")
            plugins.extend(_manifest_to_plugin(m, status) for m in manifests)
        return plugins

    def get_marketplace_plugins(self) -> Dict[str, MarketplacePlugin]:
        """Fetch the Marketplace catalogue through the server's proxy endpoint."""
        result: Dict[str, MarketplacePlugin] = {}
        per_page = self.config.marketplace_per_page

        page = 0
        while True:
            try:
                plugins = self._get_json(
                    "plugins/marketplace",
                    list,
                    params={"page": page, "per_page": per_page},
                    error_class=MarketplaceError,
                )
                if not all(isinstance(p, dict) for p in plugins):
                    raise MarketplaceError("error: unexpected response from the Marketplace proxy.")
            except MarketplaceError as e:
                raise MarketplaceError(
                    "error: unable to fetch the Marketplace catalogue. "
                    "The server may not have access to the Marketplace (air-gapped deployment).",
                    e.cause or e,
                ) from e
            logger.debug(f"Marketplace page {page}: {len(plugins)} plugin(s)")

            for p in plugins:
                manifest = p.get("manifest")
                if isinstance(manifest, dict) and manifest:
                    result[manifest.get("id", "")] = MarketplacePlugin(
                        version=manifest.get("version", ""),
                        homepage_url=p.get("homepage_url") or "",
                    )

            if len(plugins) < per_page:
                break
            page += 1

        return result
