import uuid
from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from notify_hub.db.base import Base
from notify_hub.schemas.message import DeliveryResult, HistoryRecord, Message


class DeliveryRecord(Base):
    """Append-only: one row per (message, channel) delivery attempt."""

    __tablename__ = "notify_history"
    __table_args__ = (Index("ix_notify_history_attempted_at", "attempted_at", "id"),)

    # Autoincrement id breaks timestamp ties by insertion order
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    message_id: Mapped[uuid.UUID] = mapped_column(Uuid, index=True)
    level: Mapped[str] = mapped_column(String(20))
    title: Mapped[str] = mapped_column(String(200))
    content: Mapped[str] = mapped_column(Text, default="")
    source: Mapped[str] = mapped_column(String(100), default="")
    message_timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    channel_name: Mapped[str] = mapped_column(String(100))
    channel_type: Mapped[str] = mapped_column(String(20))
    status: Mapped[str] = mapped_column(String(20))  # success/failed
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    attempted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    @classmethod
    def from_result(cls, message: Message, result: DeliveryResult) -> "DeliveryRecord":
        return cls(
            message_id=message.id,
            level=message.level,
            title=message.title,
            content=message.content,
            source=message.source,
            message_timestamp=message.timestamp,
            channel_name=result.channel_name,
            channel_type=result.channel_type,
            status=result.status.value,
            error=result.error,
            attempted_at=result.timestamp,
        )

    def to_message(self) -> Message:
        return Message(
            id=self.message_id,
            level=self.level,
            title=self.title,
            content=self.content,
            source=self.source,
            timestamp=self.message_timestamp,
        )

    def to_result(self) -> DeliveryResult:
        return DeliveryResult(
            channel_name=self.channel_name,
            channel_type=self.channel_type,
            status=self.status,
            error=self.error,
            timestamp=self.attempted_at,
        )

    def to_record(self) -> HistoryRecord:
        return HistoryRecord(
            id=str(self.id),
            message=self.to_message(),
            type=self.channel_type,
            channel_name=self.channel_name,
            status=self.status,
            error=self.error,
            timestamp=self.attempted_at,
        )
