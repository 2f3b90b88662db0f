"""WeChat Work output: group robot webhook (no signing)."""

import structlog

from notify_hub.errors import AdapterFailure
from notify_hub.output.base import HttpChannelAdapter, format_text
from notify_hub.schemas.channel import ChannelType, WeChatConfig
from notify_hub.schemas.message import Message

logger = structlog.get_logger()

# Robot markdown messages are capped at 4096 bytes
MAX_CONTENT_BYTES = 4096


class WeChatAdapter(HttpChannelAdapter):
    channel_type = ChannelType.WECHAT

    @staticmethod
    def build_payload(message: Message) -> dict:
        text = format_text(message)
        encoded = text.encode("utf-8")
        if len(encoded) > MAX_CONTENT_BYTES:
            text = encoded[: MAX_CONTENT_BYTES - 3].decode("utf-8", errors="ignore") + "..."
        return {"msgtype": "markdown", "markdown": {"content": text}}

    async def _send(self, message: Message, config: WeChatConfig) -> str:
        resp = await self._http.post(config.wechat_webhook, json=self.build_payload(message))
        data = self.json_body(resp)
        if data.get("errcode") != 0:
            logger.error("output.wechat.rejected", channel=config.name, detail=data)
            raise AdapterFailure(f"wechat error {data.get('errcode')}: {data.get('errmsg')}")

        logger.info("output.wechat.sent", channel=config.name, target=config.wechat_webhook[:60])
        return data.get("errmsg") or "ok"
