import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, model_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Message(BaseModel):
    """The unit of notification. Immutable once created."""

    model_config = {"frozen": True}

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    level: str = "info"  # info / warning / critical, free-form
    title: str
    content: str = ""
    source: str = ""
    timestamp: datetime = Field(default_factory=_utcnow)


class DeliveryStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


class DeliveryResult(BaseModel):
    """Outcome of delivering one message through one channel."""

    model_config = {"frozen": True}

    channel_name: str
    channel_type: str
    status: DeliveryStatus
    error: str | None = None
    timestamp: datetime = Field(default_factory=_utcnow)

    @model_validator(mode="after")
    def _error_iff_failed(self) -> "DeliveryResult":
        if self.status == DeliveryStatus.FAILED and not self.error:
            raise ValueError("failed result requires an error")
        if self.status == DeliveryStatus.SUCCESS and self.error:
            raise ValueError("successful result must not carry an error")
        return self

    @classmethod
    def succeeded(cls, channel_name: str, channel_type: str) -> "DeliveryResult":
        return cls(channel_name=channel_name, channel_type=channel_type, status=DeliveryStatus.SUCCESS)

    @classmethod
    def failed(cls, channel_name: str, channel_type: str, error: str) -> "DeliveryResult":
        return cls(
            channel_name=channel_name,
            channel_type=channel_type,
            status=DeliveryStatus.FAILED,
            error=error or "unknown error",
        )

    @property
    def is_success(self) -> bool:
        return self.status == DeliveryStatus.SUCCESS


class DispatchReport(BaseModel):
    message: Message
    results: list[DeliveryResult] = Field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.is_success)

    @property
    def failed(self) -> int:
        return len(self.results) - self.succeeded


class SendRequest(BaseModel):
    level: str = Field(default="info", max_length=20)
    title: str = Field(min_length=1, max_length=200)
    content: str = ""
    source: str = Field(default="", max_length=100)

    def to_message(self) -> Message:
        return Message(level=self.level, title=self.title, content=self.content, source=self.source)


class HistoryRecord(BaseModel):
    """One delivery attempt of one message through one channel."""

    id: str
    message: Message
    type: str
    channel_name: str
    status: DeliveryStatus
    error: str | None = None
    timestamp: datetime


class MessageHistory(BaseModel):
    """A message together with every delivery result recorded for it."""

    message: Message
    results: list[DeliveryResult]
