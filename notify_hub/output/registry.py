"""
Adapter registry: channel type -> adapter.

The dispatch engine and the config tester only ever look adapters up here,
so a new channel type needs an adapter and a registration, nothing else.
"""

import httpx

from notify_hub.errors import InvalidConfig
from notify_hub.output.base import ChannelAdapter
from notify_hub.output.dingtalk import DingTalkAdapter
from notify_hub.output.feishu import FeishuAdapter
from notify_hub.output.mail import EmailAdapter
from notify_hub.output.webhook import WebhookAdapter
from notify_hub.output.wechat import WeChatAdapter
from notify_hub.schemas.channel import ChannelType


class AdapterRegistry:
    def __init__(self, adapters: dict[ChannelType, ChannelAdapter] | None = None):
        self._adapters: dict[ChannelType, ChannelAdapter] = dict(adapters or {})

    def register(self, adapter: ChannelAdapter, channel_type: ChannelType | None = None):
        self._adapters[ChannelType(channel_type or adapter.channel_type)] = adapter

    def get(self, channel_type: str | ChannelType) -> ChannelAdapter:
        try:
            return self._adapters[ChannelType(channel_type)]
        except (KeyError, ValueError):
            raise InvalidConfig(f"type: no adapter registered for '{channel_type}'") from None


def build_default_registry(http: httpx.AsyncClient, smtp_timeout: float = 10.0) -> AdapterRegistry:
    registry = AdapterRegistry()
    registry.register(DingTalkAdapter(http))
    registry.register(FeishuAdapter(http))
    registry.register(WeChatAdapter(http))
    registry.register(EmailAdapter(timeout=smtp_timeout))
    registry.register(WebhookAdapter(http))
    return registry
