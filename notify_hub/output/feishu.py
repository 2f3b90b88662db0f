"""
Feishu output: group robot incoming webhook.

With a secret configured the robot requires ``timestamp`` + ``sign`` in the
body, where sign = base64(HMAC-SHA256(key="{timestamp}\\n{secret}", msg="")).
"""

import base64
import hashlib
import hmac
import time

import structlog

from notify_hub.errors import AdapterFailure
from notify_hub.output.base import HttpChannelAdapter, format_text
from notify_hub.schemas.channel import ChannelType, FeishuConfig
from notify_hub.schemas.message import Message

logger = structlog.get_logger()


def feishu_sign(secret: str, timestamp: int) -> str:
    string_to_sign = f"{timestamp}\n{secret}"
    hmac_code = hmac.new(string_to_sign.encode("utf-8"), digestmod=hashlib.sha256).digest()
    return base64.b64encode(hmac_code).decode("utf-8")


class FeishuAdapter(HttpChannelAdapter):
    channel_type = ChannelType.FEISHU

    def build_payload(self, message: Message, config: FeishuConfig) -> dict:
        payload = {"msg_type": "text", "content": {"text": format_text(message)}}
        if config.feishu_secret:
            timestamp = int(time.time())
            payload["timestamp"] = str(timestamp)
            payload["sign"] = feishu_sign(config.feishu_secret, timestamp)
        return payload

    async def _send(self, message: Message, config: FeishuConfig) -> str:
        resp = await self._http.post(config.feishu_webhook, json=self.build_payload(message, config))
        data = self.json_body(resp)

        # New robots answer {"code": 0}, legacy ones {"StatusCode": 0}
        if data.get("code") != 0 and data.get("StatusCode") != 0:
            logger.error("output.feishu.rejected", channel=config.name, detail=data)
            code = data.get("code", data.get("StatusCode"))
            raise AdapterFailure(f"feishu error {code}: {data.get('msg') or data.get('StatusMessage')}")

        logger.info("output.feishu.sent", channel=config.name, target=config.feishu_webhook[:60])
        return data.get("msg") or "ok"
