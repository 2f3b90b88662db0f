"""
DingTalk output: group robot webhook.

Signed robots expect ``timestamp`` (ms) and ``sign`` query parameters, where
sign = base64(HMAC-SHA256(key=secret, msg="{timestamp}\\n{secret}")).
"""

import base64
import hashlib
import hmac
import time

import httpx
import structlog

from notify_hub.errors import AdapterFailure
from notify_hub.output.base import HttpChannelAdapter, format_text, level_prefix
from notify_hub.schemas.channel import ChannelType, DingTalkConfig
from notify_hub.schemas.message import Message

logger = structlog.get_logger()


def dingtalk_sign(secret: str, timestamp_ms: int) -> str:
    string_to_sign = f"{timestamp_ms}\n{secret}"
    hmac_code = hmac.new(
        secret.encode("utf-8"), string_to_sign.encode("utf-8"), digestmod=hashlib.sha256
    ).digest()
    return base64.b64encode(hmac_code).decode("utf-8")


class DingTalkAdapter(HttpChannelAdapter):
    channel_type = ChannelType.DINGTALK

    @staticmethod
    def build_payload(message: Message) -> dict:
        title = f"{level_prefix(message.level)} {message.title}"
        return {
            "msgtype": "markdown",
            "markdown": {"title": title, "text": format_text(message).replace("\n", "\n\n")},
        }

    @staticmethod
    def sign_params(config: DingTalkConfig) -> dict | None:
        if not config.dingtalk_secret:
            return None
        timestamp_ms = int(time.time() * 1000)
        return {"timestamp": str(timestamp_ms), "sign": dingtalk_sign(config.dingtalk_secret, timestamp_ms)}

    async def _send(self, message: Message, config: DingTalkConfig) -> str:
        # Sign params join the webhook's own access_token, never replace it
        url = httpx.URL(config.dingtalk_webhook).copy_merge_params(self.sign_params(config) or {})
        resp = await self._http.post(url, json=self.build_payload(message))
        data = self.json_body(resp)
        if data.get("errcode") != 0:
            logger.error("output.dingtalk.rejected", channel=config.name, detail=data)
            raise AdapterFailure(f"dingtalk error {data.get('errcode')}: {data.get('errmsg')}")

        logger.info("output.dingtalk.sent", channel=config.name, target=config.dingtalk_webhook[:60])
        return data.get("errmsg") or "ok"
