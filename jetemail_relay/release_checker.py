from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol

import httpx

from .cache import ResponseCache
from .config import (
    GITHUB_ACCEPT,
    PLUGIN_AUTHOR,
    PLUGIN_AUTHOR_PROFILE,
    PLUGIN_ICONS,
    PLUGIN_NAME,
    RELEASE_TIMEOUT_SECONDS,
    REQUIRES_HOST_VERSION,
    REQUIRES_PHP_VERSION,
    Settings,
)
from .markdown import parse_readme_sections, render_markdown
from .models import (
    NoUpdateRecord,
    PluginInformation,
    ReadmeSections,
    ReleaseAsset,
    ReleaseInfo,
    RepositoryInfo,
    UpdateDescriptor,
)
from .versioning import is_newer, strip_tag_prefix

logger = logging.getLogger(__name__)

NO_CHANGELOG = "No changelog available."
ARCHIVE_EXTENSION = ".zip"


class ReleaseCheckError(Exception):
    """Raised when release metadata cannot be obtained."""


class ReleaseParseError(ReleaseCheckError):
    """Raised when a release payload is malformed or missing required fields."""


class UpdateSource(Protocol):
    def build_update_descriptor(self, current_version: str) -> Optional[UpdateDescriptor]: ...


class ReleaseChecker:
    """
    Polls the GitHub release API for the plugin and builds update records.

    Network, status and parse problems are logged and reported as "nothing
    available"; no method here raises into the caller for them.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        client: httpx.Client | None = None,
        cache: ResponseCache | None = None,
    ):
        self._settings = settings
        self._cache = cache if cache is not None else ResponseCache()
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=RELEASE_TIMEOUT_SECONDS)
        self._headers = {"Accept": GITHUB_ACCEPT, "User-Agent": settings.user_agent}

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    @property
    def latest_release_url(self) -> str:
        return f"{self._settings.repo_api_base.rstrip('/')}/releases/latest"

    @property
    def readme_url(self) -> str:
        return f"{self._settings.raw_content_base.rstrip('/')}/main/README.md"

    # -- fetching --------------------------------------------------------

    def fetch_latest_release(self) -> Optional[ReleaseInfo]:
        data = self._api_request(self.latest_release_url)
        if data is None:
            logger.warning("Failed to get GitHub release info")
            return None
        try:
            release = parse_release(data)
        except ReleaseParseError as exc:
            logger.warning("Ignoring malformed release payload: %s", exc)
            return None
        logger.info("Latest GitHub release: tag=%s version=%s", release.tag, release.version)
        return release

    def fetch_repository(self) -> Optional[RepositoryInfo]:
        data = self._api_request(self._settings.repo_api_base)
        if data is None:
            return None
        return parse_repository(data)

    def fetch_readme(self) -> Optional[str]:
        try:
            response = self._client.get(self.readme_url, timeout=RELEASE_TIMEOUT_SECONDS)
        except httpx.RequestError as exc:
            logger.warning("README request failed: %s", exc)
            return None
        if response.status_code != 200:
            logger.warning("README request returned status %s", response.status_code)
            return None
        return response.text

    def _api_request(self, url: str) -> Optional[Dict[str, Any]]:
        cached = self._cache.get(url)
        if cached is not None:
            logger.debug("Using cached response for %s", url)
            return cached

        try:
            response = self._client.get(url, headers=self._headers, timeout=RELEASE_TIMEOUT_SECONDS)
        except httpx.RequestError as exc:
            logger.warning("GitHub API Error: %s", exc)
            return None

        if response.status_code != 200:
            logger.warning("GitHub API Error: Unexpected response code %s", response.status_code)
            logger.debug("GitHub API Response: %s", response.text)
            return None

        try:
            data = response.json()
        except ValueError as exc:
            logger.warning("GitHub API returned invalid JSON for %s: %s", url, exc)
            return None
        if not isinstance(data, dict):
            logger.warning("GitHub API returned %s instead of an object for %s", type(data).__name__, url)
            return None

        self._cache.set(url, data)
        return data

    # -- derived records -------------------------------------------------

    def resolve_download_url(self, release: ReleaseInfo) -> str:
        for asset in release.assets:
            if asset.name.lower().endswith(ARCHIVE_EXTENSION) and asset.download_url:
                return asset.download_url
        logger.info("Release %s has no %s asset; using tag archive", release.tag, ARCHIVE_EXTENSION)
        return f"{self._settings.repo_html_url.rstrip('/')}/archive/refs/tags/{release.tag}{ARCHIVE_EXTENSION}"

    def changelog_html(self, release: ReleaseInfo) -> str:
        if release.body and release.body.strip():
            return render_markdown(release.body)
        return NO_CHANGELOG

    def readme_sections(self) -> Optional[ReadmeSections]:
        content = self.fetch_readme()
        if content is None:
            return None
        return parse_readme_sections(content)

    def build_update_descriptor(self, current_version: str) -> Optional[UpdateDescriptor]:
        release = self.fetch_latest_release()
        if release is None:
            return None
        if not is_newer(release.version, current_version):
            logger.info("No update needed. Current: %s, Remote: %s", current_version, release.version)
            return None

        logger.info("New version available: %s (current %s)", release.version, current_version)
        readme = self.readme_sections() or ReadmeSections()
        body = release.body.strip() if release.body else ""
        return UpdateDescriptor(
            slug=self._settings.plugin_slug,
            plugin=self._settings.plugin_basename,
            current_version=current_version,
            available_version=release.version,
            url=release.html_url,
            download_url=self.resolve_download_url(release),
            tested_against=self._settings.host_version,
            requires_min=REQUIRES_HOST_VERSION,
            requires_php_min=REQUIRES_PHP_VERSION,
            description_html=render_markdown(body) if body else readme.description,
            changelog_html=self.changelog_html(release),
            installation_html=readme.installation,
            icons=dict(PLUGIN_ICONS),
        )

    def check_update(self, current_version: str) -> UpdateDescriptor | NoUpdateRecord:
        descriptor = self.build_update_descriptor(current_version)
        if descriptor is not None:
            return descriptor
        return no_update_record(self._settings, current_version)

    def plugin_info(self, slug: str) -> Optional[PluginInformation]:
        if slug != self._settings.plugin_slug:
            return None
        repository = self.fetch_repository()
        if repository is None:
            return None

        release = self.fetch_latest_release()
        download_link = self.resolve_download_url(release) if release else None
        changelog = self.changelog_html(release) if release else NO_CHANGELOG

        readme = self.readme_sections()
        if readme is not None:
            sections = {
                "description": readme.description or "",
                "installation": readme.installation or "",
                "changelog": changelog,
            }
        else:
            sections = {"description": repository.description or "", "changelog": changelog}

        return PluginInformation(
            name=PLUGIN_NAME,
            slug=self._settings.plugin_slug,
            version=release.version if release else None,
            tested=self._settings.host_version,
            requires=REQUIRES_HOST_VERSION,
            requires_php=REQUIRES_PHP_VERSION,
            author=PLUGIN_AUTHOR,
            author_profile=PLUGIN_AUTHOR_PROFILE,
            download_link=download_link,
            trunk=download_link,
            last_updated=format_published_at(release.published_at if release else None),
            sections=sections,
        )

    def purge_cache(self, action: str = "update", kind: str = "plugin") -> int:
        if action != "update" or kind != "plugin":
            return 0
        return self._cache.purge()


def no_update_record(settings: Settings, current_version: str) -> NoUpdateRecord:
    return NoUpdateRecord(
        slug=settings.plugin_slug,
        plugin=settings.plugin_basename,
        current_version=current_version,
        available_version=current_version,
        url=settings.repo_api_base,
        tested_against=settings.host_version,
    )


def parse_release(data: Dict[str, Any]) -> ReleaseInfo:
    tag = data.get("tag_name")
    if not isinstance(tag, str) or not tag.strip():
        raise ReleaseParseError("release payload has no tag_name")
    tag = tag.strip()

    assets: List[ReleaseAsset] = []
    raw_assets = data.get("assets")
    if isinstance(raw_assets, list):
        for raw in raw_assets:
            if not isinstance(raw, dict):
                continue
            name = _optional_str(raw, "name")
            url = _optional_str(raw, "browser_download_url")
            if name and url:
                assets.append(ReleaseAsset(name=name, download_url=url))

    return ReleaseInfo(
        tag=tag,
        version=strip_tag_prefix(tag),
        html_url=_optional_str(data, "html_url"),
        published_at=_optional_str(data, "published_at"),
        body=_optional_str(data, "body"),
        assets=tuple(assets),
        zipball_url=_optional_str(data, "zipball_url"),
    )


def parse_repository(data: Dict[str, Any]) -> RepositoryInfo:
    return RepositoryInfo(
        full_name=_optional_str(data, "full_name") or "",
        description=_optional_str(data, "description"),
        html_url=_optional_str(data, "html_url"),
    )


def format_published_at(value: Optional[str]) -> str:
    if not value:
        return ""
    normalized = value.replace("Z", "+00:00") if value.endswith("Z") else value
    try:
        published = datetime.fromisoformat(normalized)
    except ValueError:
        logger.warning("Invalid published_at format: %s", value)
        return ""
    if published.tzinfo is not None:
        published = published.astimezone(timezone.utc)
    return published.strftime("%Y-%m-%d %H:%M:%S")


def _optional_str(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    return value if isinstance(value, str) else None
