"""Adapters between the host platform's extension points and the relay/checker.

Each class here is driven directly by the host layer; none of them registers
itself anywhere.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

from .config import Settings
from .mailer import MailTransport, RelayError
from .models import NoUpdateRecord, OutboundMessage, PluginInformation, UpdateDescriptor
from .release_checker import UpdateSource, no_update_record

logger = logging.getLogger(__name__)

PLUGIN_INFORMATION_ACTION = "plugin_information"


class MailInterceptionPoint(Protocol):
    def outbound_message(self) -> OutboundMessage: ...

    def skip_default_transport(self) -> None: ...


class UpdateManagerSink(Protocol):
    def report_update(self, plugin: str, descriptor: UpdateDescriptor) -> None: ...

    def report_no_update(self, plugin: str, record: NoUpdateRecord) -> None: ...


class PluginInfoSource(Protocol):
    def plugin_info(self, slug: str) -> Optional[PluginInformation]: ...


class CachePurger(Protocol):
    def purge_cache(self, action: str, kind: str) -> int: ...


class MailInterceptor:
    """Takes over delivery of one intercepted send.

    The default transport is disabled before relaying, so a failed relay is
    terminal for that send.
    """

    def __init__(self, transport: MailTransport):
        self._transport = transport

    def handle(self, point: MailInterceptionPoint) -> bool:
        message = point.outbound_message()
        point.skip_default_transport()
        try:
            self._transport.send(message)
        except RelayError as exc:
            logger.error("Relay via %s failed for %r: %s", self._transport.provider, message.subject, exc)
            return False
        return True


class UpdateCheckHook:
    """Answers the host's periodic update check for the running version in settings."""

    def __init__(self, source: UpdateSource, settings: Settings):
        self._source = source
        self._settings = settings

    def run(self, sink: UpdateManagerSink) -> Optional[UpdateDescriptor]:
        current = self._settings.current_version
        plugin = self._settings.plugin_basename
        descriptor = self._source.build_update_descriptor(current)
        if descriptor is not None:
            sink.report_update(plugin, descriptor)
            return descriptor
        logger.info("No update for %s; reporting %s as current", plugin, current)
        sink.report_no_update(plugin, no_update_record(self._settings, current))
        return None


class PluginInfoHook:
    def __init__(self, source: PluginInfoSource, slug: str):
        self._source = source
        self._slug = slug

    def handle(self, action: str, slug: str, default: Any = None) -> Any:
        if action != PLUGIN_INFORMATION_ACTION or slug != self._slug:
            return default
        info = self._source.plugin_info(slug)
        return info if info is not None else default


class CachePurgeHook:
    def __init__(self, purger: CachePurger):
        self._purger = purger

    def handle(self, action: str, kind: str) -> int:
        return self._purger.purge_cache(action, kind)


class AutoUpdatePolicy:
    def __init__(self, settings: Settings):
        self._settings = settings

    def should_auto_update(self, item_slug: Optional[str], default: bool) -> bool:
        if item_slug is None or item_slug != self._settings.plugin_slug:
            return default
        return self._settings.auto_update

    def setting_label(self, plugin_basename: str, default: str) -> str:
        if plugin_basename != self._settings.plugin_basename:
            return default
        return "Auto-updates enabled" if self._settings.auto_update else "Auto-updates disabled"
