from __future__ import annotations

from typing import Any, Dict, List

import httpx
import pytest

from jetemail_relay.cache import ResponseCache
from jetemail_relay.config import Settings
from jetemail_relay.models import NoUpdateRecord, ReleaseAsset, ReleaseInfo, UpdateDescriptor
from jetemail_relay.release_checker import (
    NO_CHANGELOG,
    ReleaseChecker,
    ReleaseParseError,
    format_published_at,
    parse_release,
)

API = "https://api.test/repos/jetemail/jetemail-wordpress"
RAW = "https://raw.test/jetemail/jetemail-wordpress"
LATEST = f"{API}/releases/latest"
README_URL = f"{RAW}/main/README.md"


def _settings() -> Settings:
    return Settings(
        repo_api_base=API,
        repo_html_url="https://github.com/jetemail/jetemail-wordpress",
        raw_content_base=RAW,
        host_version="6.5",
    )


def _release_payload(tag: str = "v2.3.0", assets: List[Dict[str, Any]] | None = None) -> Dict[str, Any]:
    return {
        "tag_name": tag,
        "html_url": f"https://github.com/jetemail/jetemail-wordpress/releases/tag/{tag}",
        "published_at": "2024-05-01T12:30:00Z",
        "body": "## Changes\n- Fixed **from** header",
        "zipball_url": f"{API}/zipball/{tag}",
        "assets": assets
        if assets is not None
        else [{"name": "jetemail-wordpress.zip", "browser_download_url": "https://dl.test/jetemail-wordpress.zip"}],
    }


class FakeGitHub:
    """Serves canned responses per URL and records every request."""

    def __init__(self, routes: Dict[str, httpx.Response]):
        self.routes = routes
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.routes.get(str(request.url), httpx.Response(404))

    def count(self, url: str) -> int:
        return len([r for r in self.requests if str(r.url) == url])

    def checker(self, cache: ResponseCache | None = None) -> ReleaseChecker:
        client = httpx.Client(transport=httpx.MockTransport(self))
        return ReleaseChecker(_settings(), client=client, cache=cache if cache is not None else ResponseCache())


def _github(tag: str = "v2.3.0", **kwargs) -> FakeGitHub:
    return FakeGitHub({LATEST: httpx.Response(200, json=_release_payload(tag, **kwargs))})


def test_fetch_latest_release_parses_payload_and_sends_headers():
    github = _github()
    release = github.checker().fetch_latest_release()

    assert release is not None
    assert release.tag == "v2.3.0"
    assert release.version == "2.3.0"
    assert release.assets == (
        ReleaseAsset(name="jetemail-wordpress.zip", download_url="https://dl.test/jetemail-wordpress.zip"),
    )
    request = github.requests[0]
    assert request.headers["Accept"] == "application/vnd.github.v3+json"
    assert request.headers["User-Agent"] == "WordPress/6.5"


def test_tag_without_leading_v_passes_through():
    release = _github(tag="2.3.0").checker().fetch_latest_release()
    assert release is not None
    assert release.version == "2.3.0"


@pytest.mark.parametrize("status", [403, 404, 500])
def test_fetch_latest_release_returns_none_on_error_status(status: int):
    github = FakeGitHub({LATEST: httpx.Response(status, text="nope")})
    assert github.checker().fetch_latest_release() is None


def test_fetch_latest_release_returns_none_on_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    client = httpx.Client(transport=httpx.MockTransport(handler))
    checker = ReleaseChecker(_settings(), client=client)
    assert checker.fetch_latest_release() is None
    assert checker.build_update_descriptor("1.0.0") is None


def test_fetch_latest_release_returns_none_on_malformed_json():
    github = FakeGitHub({LATEST: httpx.Response(200, text="{not json")})
    assert github.checker().fetch_latest_release() is None


def test_fetch_latest_release_returns_none_without_tag_name():
    github = FakeGitHub({LATEST: httpx.Response(200, json={"html_url": "x"})})
    assert github.checker().fetch_latest_release() is None


def test_parse_release_rejects_missing_tag_and_tolerates_bad_fields():
    with pytest.raises(ReleaseParseError):
        parse_release({"tag_name": 12})
    release = parse_release({"tag_name": "v1.0.0", "body": None, "assets": "bogus"})
    assert release.body is None
    assert release.assets == ()


def test_cache_serves_second_fetch_and_purge_forces_refetch():
    github = _github()
    checker = github.checker()

    checker.fetch_latest_release()
    checker.fetch_latest_release()
    assert github.count(LATEST) == 1

    assert checker.purge_cache("update", "plugin") == 1
    checker.fetch_latest_release()
    assert github.count(LATEST) == 2


def test_purge_ignores_other_upgrader_events():
    github = _github()
    checker = github.checker()
    checker.fetch_latest_release()
    assert checker.purge_cache("install", "plugin") == 0
    assert checker.purge_cache("update", "theme") == 0
    checker.fetch_latest_release()
    assert github.count(LATEST) == 1


def test_cache_is_shared_between_checkers():
    github = _github()
    cache = ResponseCache()
    github.checker(cache).fetch_latest_release()
    github.checker(cache).fetch_latest_release()
    assert github.count(LATEST) == 1


def test_resolve_download_url_prefers_zip_asset():
    release = ReleaseInfo(
        tag="v2.0.0",
        version="2.0.0",
        assets=(
            ReleaseAsset(name="notes.txt", download_url="https://dl.test/notes.txt"),
            ReleaseAsset(name="plugin-v2.zip", download_url="https://dl.test/plugin-v2.zip"),
        ),
    )
    assert FakeGitHub({}).checker().resolve_download_url(release) == "https://dl.test/plugin-v2.zip"


def test_resolve_download_url_falls_back_to_tag_archive():
    release = ReleaseInfo(
        tag="v2.3.0",
        version="2.3.0",
        assets=(ReleaseAsset(name="notes.txt", download_url="https://dl.test/notes.txt"),),
    )
    url = FakeGitHub({}).checker().resolve_download_url(release)
    assert url == "https://github.com/jetemail/jetemail-wordpress/archive/refs/tags/v2.3.0.zip"
    assert "v2.3.0" in url


@pytest.mark.parametrize(
    ("current", "tag"),
    [("1.0.0", "v1.0.1"), ("1.0.1", "v1.1.0"), ("1.9.9", "v2.0.0"), ("2.3.9", "v2.3.10")],
)
def test_build_update_descriptor_when_release_is_newer(current: str, tag: str):
    descriptor = _github(tag=tag).checker().build_update_descriptor(current)

    assert isinstance(descriptor, UpdateDescriptor)
    assert descriptor.available_version == tag[1:]
    assert descriptor.current_version == current
    assert descriptor.download_url == "https://dl.test/jetemail-wordpress.zip"
    assert descriptor.requires_min == "5.0"
    assert descriptor.requires_php_min == "7.2"
    assert descriptor.tested_against == "6.5"
    assert descriptor.changelog_html == "<h2>Changes</h2>\n<ul><li>Fixed <strong>from</strong> header</li></ul>"
    assert descriptor.description_html == descriptor.changelog_html


@pytest.mark.parametrize(("current", "tag"), [("2.3.0", "v2.3.0"), ("2.4.0", "v2.3.0")])
def test_build_update_descriptor_is_none_when_not_newer(current: str, tag: str):
    assert _github(tag=tag).checker().build_update_descriptor(current) is None


def test_build_update_descriptor_reads_installation_from_readme():
    github = _github()
    github.routes[README_URL] = httpx.Response(200, text="# Plugin\nAbout.\n\n## Installation\n- unzip\n")
    descriptor = github.checker().build_update_descriptor("1.0.0")
    assert descriptor is not None
    assert descriptor.installation_html == "<ul><li>unzip</li></ul>"


def test_check_update_emits_no_update_record_when_current():
    record = _github(tag="v1.0.1").checker().check_update("1.0.1")
    assert isinstance(record, NoUpdateRecord)
    assert record.available_version == "1.0.1"
    assert record.download_url == ""


def test_changelog_placeholder_when_body_is_empty():
    release = ReleaseInfo(tag="v1.0.0", version="1.0.0", body="  ")
    assert FakeGitHub({}).checker().changelog_html(release) == NO_CHANGELOG


def test_plugin_info_combines_repository_release_and_readme():
    github = _github()
    github.routes[API] = httpx.Response(200, json={"full_name": "jetemail/jetemail-wordpress", "description": "Repo"})
    github.routes[README_URL] = httpx.Response(
        200, text="# JetEmail\nTransactional email.\n\n## Installation\nUpload it.\n"
    )
    info = github.checker().plugin_info("jetemail-wordpress")

    assert info is not None
    assert info.version == "2.3.0"
    assert info.download_link == "https://dl.test/jetemail-wordpress.zip"
    assert info.last_updated == "2024-05-01 12:30:00"
    assert info.sections["description"] == "Transactional email."
    assert info.sections["installation"] == "Upload it."
    assert info.sections["changelog"].startswith("<h2>Changes</h2>")


def test_plugin_info_falls_back_to_repository_description():
    github = _github()
    github.routes[API] = httpx.Response(200, json={"full_name": "jetemail/jetemail-wordpress", "description": "Repo"})
    info = github.checker().plugin_info("jetemail-wordpress")
    assert info is not None
    assert info.sections == {"description": "Repo", "changelog": info.sections["changelog"]}


def test_plugin_info_ignores_other_slugs_and_missing_repository():
    github = _github()
    checker = github.checker()
    assert checker.plugin_info("other-plugin") is None
    assert checker.plugin_info("jetemail-wordpress") is None
    assert github.requests and all(str(r.url) == API for r in github.requests)


def test_format_published_at():
    assert format_published_at("2024-05-01T12:30:00Z") == "2024-05-01 12:30:00"
    assert format_published_at("yesterday") == ""
    assert format_published_at(None) == ""
