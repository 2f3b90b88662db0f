"""
Channel adapter contract.

An adapter turns a generic Message into one outbound call for its channel
type and interprets the response. Remote rejections come back as a failed
DeliveryOutcome; transport errors (connection refused, TLS, timeouts)
propagate and are classified by the delivery runner.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

import httpx

from notify_hub.errors import AdapterFailure
from notify_hub.schemas.channel import ChannelConfig, ChannelType
from notify_hub.schemas.message import Message

LEVEL_PREFIXES = {
    "info": "ℹ️ [INFO]",
    "warning": "⚠️ [WARNING]",
    "critical": "🚨 [CRITICAL]",
}


def level_prefix(level: str) -> str:
    return LEVEL_PREFIXES.get(level.lower(), f"[{level.upper()}]")


def format_text(message: Message) -> str:
    """Plain-text rendering shared by the chat-bot channels."""
    lines = [f"{level_prefix(message.level)} {message.title}"]
    if message.content:
        lines += ["", message.content]
    footer = message.timestamp.strftime("%Y-%m-%d %H:%M:%S %Z").strip()
    if message.source:
        footer = f"{message.source} · {footer}"
    lines += ["", footer]
    return "\n".join(lines)


@dataclass
class DeliveryOutcome:
    success: bool
    diagnostic: str = ""
    retryable: bool = False

    @classmethod
    def ok(cls, diagnostic: str = "ok") -> "DeliveryOutcome":
        return cls(success=True, diagnostic=diagnostic)

    @classmethod
    def from_failure(cls, failure: AdapterFailure) -> "DeliveryOutcome":
        return cls(success=False, diagnostic=failure.diagnostic, retryable=failure.retryable)


class ChannelAdapter(ABC):
    channel_type: ChannelType

    async def deliver(self, message: Message, config: ChannelConfig) -> DeliveryOutcome:
        """Deliver one message. Only the fields of ``config``'s own variant are read."""
        try:
            detail = await self._send(message, config)
        except AdapterFailure as e:
            return DeliveryOutcome.from_failure(e)
        return DeliveryOutcome.ok(detail or "ok")

    @abstractmethod
    async def _send(self, message: Message, config: ChannelConfig) -> str | None:
        """Perform the call; raise AdapterFailure when the remote rejects it."""


class HttpChannelAdapter(ChannelAdapter):
    """Adapters that talk HTTP share one httpx client owned by the app."""

    def __init__(self, http: httpx.AsyncClient):
        self._http = http

    @staticmethod
    def check_status(resp: httpx.Response):
        if resp.is_success:
            return
        body = resp.text[:200]
        retryable = resp.status_code >= 500 or resp.status_code == 429
        diagnostic = f"HTTP {resp.status_code}: {body}" if body else f"HTTP {resp.status_code}"
        raise AdapterFailure(diagnostic, retryable=retryable)

    def json_body(self, resp: httpx.Response) -> dict:
        """Return the JSON object of a 2xx response, or raise AdapterFailure."""
        self.check_status(resp)
        try:
            data = resp.json()
        except ValueError:
            raise AdapterFailure(f"non-JSON response: {resp.text[:200]}") from None
        if not isinstance(data, dict):
            raise AdapterFailure(f"unexpected response: {resp.text[:200]}")
        return data
