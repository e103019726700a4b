from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class OutboundMessage:
    from_address: str
    from_name: str
    to: Tuple[str, ...]
    subject: str
    body: str
    is_html: bool = False


@dataclass(frozen=True)
class ApiCredentials:
    api_key: str
    from_email: Optional[str] = None
    from_name: Optional[str] = None

    def is_configured(self) -> bool:
        return bool(self.api_key and self.api_key.strip())


@dataclass(frozen=True)
class ReleaseAsset:
    name: str
    download_url: str


@dataclass(frozen=True)
class ReleaseInfo:
    tag: str
    version: str  # tag without its leading "v"
    html_url: Optional[str] = None
    published_at: Optional[str] = None
    body: Optional[str] = None  # markdown changelog
    assets: Tuple[ReleaseAsset, ...] = ()
    zipball_url: Optional[str] = None


@dataclass(frozen=True)
class RepositoryInfo:
    full_name: str
    description: Optional[str] = None
    html_url: Optional[str] = None


@dataclass(frozen=True)
class ReadmeSections:
    description: Optional[str] = None
    installation: Optional[str] = None


@dataclass(frozen=True)
class UpdateDescriptor:
    slug: str
    plugin: str
    current_version: str
    available_version: str
    url: Optional[str]
    download_url: str
    tested_against: str
    requires_min: str
    requires_php_min: str
    description_html: Optional[str] = None
    changelog_html: Optional[str] = None
    installation_html: Optional[str] = None
    icons: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class NoUpdateRecord:
    slug: str
    plugin: str
    current_version: str
    available_version: str  # always equal to current_version
    url: str
    tested_against: str
    download_url: str = ""


@dataclass(frozen=True)
class PluginInformation:
    name: str
    slug: str
    version: Optional[str]
    tested: str
    requires: str
    requires_php: str
    author: str
    author_profile: str
    download_link: Optional[str]
    trunk: Optional[str]
    last_updated: str
    sections: Dict[str, str] = field(default_factory=dict)
