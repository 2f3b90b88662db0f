from sqlalchemy import JSON, Boolean, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from notify_hub.db.base import Base, TimestampMixin
from notify_hub.schemas.channel import ChannelConfig, parse_channel_config


class NotifyChannel(Base, TimestampMixin):
    __tablename__ = "notify_channels"
    __table_args__ = (UniqueConstraint("name", "type", name="uq_notify_channels_name_type"),)

    # Integer key keeps list order == insertion order
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100))
    type: Mapped[str] = mapped_column(String(20))  # dingtalk/feishu/wechat/email/webhook
    enabled: Mapped[bool] = mapped_column(Boolean, default=True)

    # Variant-specific fields: {dingtalk_webhook, dingtalk_secret} / {smtp_host, ...}
    settings: Mapped[dict] = mapped_column(JSON().with_variant(JSONB, "postgresql"), default=dict)

    @classmethod
    def from_config(cls, config: ChannelConfig) -> "NotifyChannel":
        return cls(
            name=config.name,
            type=config.type,
            enabled=config.enabled,
            settings=config.settings_payload(),
        )

    def to_config(self) -> ChannelConfig:
        return parse_channel_config(
            {**self.settings, "name": self.name, "type": self.type, "enabled": self.enabled}
        )
