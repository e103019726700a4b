from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from .models import ApiCredentials

# --------------------------------
# Settings

PLUGIN_NAME = "JetEmail for WordPress"
PLUGIN_SLUG = "jetemail-wordpress"
PLUGIN_BASENAME = "jetemail-wordpress/jetemail-wordpress.php"
PLUGIN_VERSION = "1.0.1"
PLUGIN_AUTHOR = '<a href="https://jetemail.com">JetEmail</a>'
PLUGIN_AUTHOR_PROFILE = "https://github.com/jetemail"
PLUGIN_ICONS = {
    "1x": "https://ps.w.org/jetemail-wordpress/assets/icon-128x128.png",
    "2x": "https://ps.w.org/jetemail-wordpress/assets/icon-256x256.png",
}

# JetEmail transactional API
MAIL_API_BASE = "https://api.jetemail.com"
MAIL_TIMEOUT_SECONDS = 30.0
MAIL_SUCCESS_STATUS = 201

# GitHub release source
REPO_API_BASE = "https://api.github.com/repos/jetemail/jetemail-wordpress"
REPO_HTML_URL = "https://github.com/jetemail/jetemail-wordpress"
RAW_CONTENT_BASE = "https://raw.githubusercontent.com/jetemail/jetemail-wordpress"
GITHUB_ACCEPT = "application/vnd.github.v3+json"
RELEASE_TIMEOUT_SECONDS = 10.0

# Responses from the release API are kept this long
CACHE_TTL_SECONDS = 12 * 60 * 60
CACHE_KEY_PREFIX = "jetemail_wp_updater"

# Floors reported to the update manager
REQUIRES_HOST_VERSION = "5.0"
REQUIRES_PHP_VERSION = "7.2"

# Identity presented in the User-Agent header
DEFAULT_CLIENT_ID = "WordPress"
DEFAULT_HOST_VERSION = "6.5"

# Host option keys
OPTION_API_KEY = "jetemail_wp_api_key"
OPTION_FROM_EMAIL = "jetemail_wp_from_email"
OPTION_FROM_NAME = "jetemail_wp_from_name"
OPTION_AUTO_UPDATE = "jetemail_wp_auto_update"
# --------------------------------

_TRUTHY = {"1", "true", "yes", "on"}


class SettingsStore(Protocol):
    def get(self, key: str, default: Any = None) -> Any: ...


def parse_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if not text:
        return default
    return text in _TRUTHY


@dataclass
class Settings:
    api_key: str = ""
    from_email: Optional[str] = None
    from_name: Optional[str] = None
    auto_update: bool = True
    mail_api_base: str = MAIL_API_BASE
    repo_api_base: str = REPO_API_BASE
    repo_html_url: str = REPO_HTML_URL
    raw_content_base: str = RAW_CONTENT_BASE
    client_id: str = DEFAULT_CLIENT_ID
    host_version: str = DEFAULT_HOST_VERSION
    plugin_slug: str = PLUGIN_SLUG
    plugin_basename: str = PLUGIN_BASENAME
    current_version: str = PLUGIN_VERSION

    def credentials(self) -> ApiCredentials:
        return ApiCredentials(
            api_key=self.api_key,
            from_email=self.from_email,
            from_name=self.from_name,
        )

    @property
    def user_agent(self) -> str:
        return f"{self.client_id}/{self.host_version}"

    @staticmethod
    def from_env() -> "Settings":
        """Build settings from JETEMAIL_* environment variables.

        The API key may be absent; the relay reports that as not configured
        at send time rather than refusing to start.
        """

        def optional(name: str) -> str | None:
            value = os.getenv(name)
            if value is None or not value.strip():
                return None
            return value.strip()

        def optional_with_default(name: str, default: str) -> str:
            value = optional(name)
            return default if value is None else value

        return Settings(
            api_key=optional_with_default("JETEMAIL_API_KEY", ""),
            from_email=optional("JETEMAIL_FROM_EMAIL"),
            from_name=optional("JETEMAIL_FROM_NAME"),
            auto_update=parse_bool(os.getenv("JETEMAIL_AUTO_UPDATE"), True),
            mail_api_base=optional_with_default("JETEMAIL_API_BASE", MAIL_API_BASE),
            repo_api_base=optional_with_default("JETEMAIL_REPO_API_BASE", REPO_API_BASE),
            repo_html_url=optional_with_default("JETEMAIL_REPO_URL", REPO_HTML_URL),
            raw_content_base=optional_with_default("JETEMAIL_RAW_CONTENT_BASE", RAW_CONTENT_BASE),
            host_version=optional_with_default("JETEMAIL_HOST_VERSION", DEFAULT_HOST_VERSION),
            current_version=optional_with_default("JETEMAIL_CURRENT_VERSION", PLUGIN_VERSION),
        )

    @staticmethod
    def from_store(store: SettingsStore, host_version: str = DEFAULT_HOST_VERSION) -> "Settings":
        """Build settings from the host's persisted options."""

        def text(key: str) -> str | None:
            value = store.get(key, None)
            if value is None or not str(value).strip():
                return None
            return str(value).strip()

        return Settings(
            api_key=text(OPTION_API_KEY) or "",
            from_email=text(OPTION_FROM_EMAIL),
            from_name=text(OPTION_FROM_NAME),
            auto_update=parse_bool(store.get(OPTION_AUTO_UPDATE, True), True),
            host_version=host_version,
        )
