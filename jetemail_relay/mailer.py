from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol

import httpx

from .config import MAIL_API_BASE, MAIL_SUCCESS_STATUS, MAIL_TIMEOUT_SECONDS
from .models import ApiCredentials, OutboundMessage

logger = logging.getLogger(__name__)

BODY_EXCERPT_CHARS = 200


class RelayError(Exception):
    """Raised when the relay could not deliver a message."""


class NotConfiguredError(RelayError):
    """Raised when no API key is configured."""


class InvalidMessageError(RelayError):
    """Raised when the message cannot be relayed as built (e.g. no recipients)."""


class RelayTransportError(RelayError):
    """Raised when the mail API is unreachable (DNS/connect/timeout)."""


class RelayRejectedError(RelayError):
    """Raised when the mail API answers with anything but 201."""

    def __init__(self, status_code: int, body_excerpt: str):
        super().__init__(f"JetEmail API returned status {status_code}: {body_excerpt}")
        self.status_code = status_code
        self.body_excerpt = body_excerpt


class MailTransport(Protocol):
    provider: str

    def send(self, message: OutboundMessage) -> None: ...


def format_sender(address: str, name: Optional[str]) -> str:
    if name and name.strip():
        return f"{name.strip()} <{address}>"
    return address


def build_payload(message: OutboundMessage, credentials: ApiCredentials) -> Dict[str, Any]:
    address = (message.from_address or credentials.from_email or "").strip()
    if not address:
        raise InvalidMessageError("Message has no sender address and no default sender is configured.")
    name = message.from_name or credentials.from_name
    payload: Dict[str, Any] = {
        "from": format_sender(address, name),
        "to": ",".join(message.to),
        "subject": message.subject,
    }
    if message.is_html:
        payload["html"] = message.body
    else:
        payload["text"] = message.body
    return payload


class JetEmailMailer:
    provider = "jetemail"

    def __init__(
        self,
        credentials: ApiCredentials,
        *,
        api_base: str = MAIL_API_BASE,
        client: httpx.Client | None = None,
        timeout: float = MAIL_TIMEOUT_SECONDS,
    ):
        self._credentials = credentials
        self._endpoint = f"{api_base.rstrip('/')}/email"
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout)
        self._timeout = timeout

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def send(self, message: OutboundMessage) -> None:
        if not self._credentials.is_configured():
            logger.error("JetEmail API Error: No API key configured")
            raise NotConfiguredError("No JetEmail API key configured.")
        if not message.to:
            logger.error("JetEmail API Error: message %r has no recipients", message.subject)
            raise InvalidMessageError("Message has no recipients.")

        try:
            payload = build_payload(message, self._credentials)
        except InvalidMessageError as exc:
            logger.error("JetEmail API Error: %s", exc)
            raise
        headers = {
            "Authorization": f"Bearer {self._credentials.api_key.strip()}",
            "Content-Type": "application/json",
        }
        try:
            response = self._client.post(self._endpoint, json=payload, headers=headers, timeout=self._timeout)
        except httpx.RequestError as exc:
            logger.error("JetEmail API Error: %s", exc)
            raise RelayTransportError(f"JetEmail request failed: {exc}") from exc

        if response.status_code != MAIL_SUCCESS_STATUS:
            excerpt = response.text[:BODY_EXCERPT_CHARS]
            logger.error("JetEmail API Error: Unexpected response code %s: %s", response.status_code, excerpt)
            raise RelayRejectedError(response.status_code, excerpt)

        logger.info("Mail relayed to %s recipient(s) with status %s", len(message.to), response.status_code)
