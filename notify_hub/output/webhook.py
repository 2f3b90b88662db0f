"""Generic webhook output: the message itself, as JSON."""

import httpx
import structlog

from notify_hub.output.base import HttpChannelAdapter
from notify_hub.schemas.channel import ChannelType, WebhookConfig
from notify_hub.schemas.message import Message

logger = structlog.get_logger()

DEFAULT_HEADERS = {"Content-Type": "application/json"}


class WebhookAdapter(HttpChannelAdapter):
    channel_type = ChannelType.WEBHOOK

    async def _send(self, message: Message, config: WebhookConfig) -> str:
        headers = httpx.Headers(DEFAULT_HEADERS)
        headers.update(config.webhook_headers)
        resp = await self._http.request(
            config.webhook_method,
            config.webhook_url,
            headers=headers,
            content=message.model_dump_json(),
        )
        self.check_status(resp)

        logger.info(
            "output.webhook.sent",
            channel=config.name,
            method=config.webhook_method,
            status=resp.status_code,
        )
        return f"HTTP {resp.status_code}"
