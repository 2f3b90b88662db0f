"""
Channel configuration models.

A channel config is a tagged union discriminated by ``type``. Each variant
carries only the fields of its own channel; fields belonging to another
variant are dropped on parse, so stale data never reaches an adapter.
Wire field names match what the admin UI sends (``dingtalk_webhook``,
``smtp_host``, ...).
"""

from enum import Enum
from typing import Annotated, Any, Literal, Mapping, Union
from urllib.parse import urlparse

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
    model_validator,
)

from notify_hub.errors import InvalidConfig

SECRET_MASK = "******"


class ChannelType(str, Enum):
    DINGTALK = "dingtalk"
    FEISHU = "feishu"
    WECHAT = "wechat"
    EMAIL = "email"
    WEBHOOK = "webhook"


CHANNEL_TYPE_CATALOG = [
    {"id": ChannelType.DINGTALK.value, "name": "DingTalk", "description": "DingTalk group robot webhook, optional signing secret"},
    {"id": ChannelType.FEISHU.value, "name": "Feishu", "description": "Feishu / Lark group robot webhook, optional signing secret"},
    {"id": ChannelType.WECHAT.value, "name": "WeChat Work", "description": "WeChat Work group robot webhook"},
    {"id": ChannelType.EMAIL.value, "name": "Email", "description": "Email over SMTP to one or more recipients"},
    {"id": ChannelType.WEBHOOK.value, "name": "Webhook", "description": "Generic HTTP webhook receiving the message as JSON"},
]


def _check_http_url(value: str) -> str:
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("must be an http(s) URL")
    return value


HttpUrlStr = Annotated[str, Field(min_length=1), AfterValidator(_check_http_url)]


class _ChannelBase(BaseModel):
    model_config = {"extra": "ignore", "frozen": True}

    name: str = Field(min_length=1, max_length=100)
    enabled: bool = True

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @property
    def key(self) -> tuple[str, str]:
        """Identity of a config: (name, type)."""
        return self.name, self.type

    def settings_payload(self) -> dict[str, Any]:
        """Variant-specific fields only, as stored in the settings column."""
        return self.model_dump(mode="json", exclude={"name", "type", "enabled"})


class DingTalkConfig(_ChannelBase):
    type: Literal["dingtalk"] = "dingtalk"
    dingtalk_webhook: HttpUrlStr
    dingtalk_secret: str | None = None


class FeishuConfig(_ChannelBase):
    type: Literal["feishu"] = "feishu"
    feishu_webhook: HttpUrlStr
    feishu_secret: str | None = None


class WeChatConfig(_ChannelBase):
    type: Literal["wechat"] = "wechat"
    wechat_webhook: HttpUrlStr


class EmailConfig(_ChannelBase):
    type: Literal["email"] = "email"
    smtp_host: str = Field(min_length=1)
    smtp_port: int = Field(ge=1, le=65535)
    smtp_user: str | None = None
    smtp_password: str | None = None
    smtp_from: str | None = None
    smtp_tls: bool | None = None  # None: decide by port (465 SSL, 587 STARTTLS)
    email_to: list[str] = Field(min_length=1)

    @field_validator("email_to")
    @classmethod
    def _check_recipients(cls, v: list[str]) -> list[str]:
        recipients = [addr.strip() for addr in v]
        bad = [addr for addr in recipients if "@" not in addr]
        if bad:
            raise ValueError(f"invalid email address: {', '.join(bad)}")
        return recipients

    @model_validator(mode="after")
    def _check_sender(self) -> "EmailConfig":
        if not (self.smtp_from or self.smtp_user):
            raise ValueError("smtp_from is required when smtp_user is empty")
        return self

    @property
    def sender(self) -> str:
        return self.smtp_from or self.smtp_user


def _upper(value: Any) -> Any:
    return value.upper() if isinstance(value, str) else value


class WebhookConfig(_ChannelBase):
    type: Literal["webhook"] = "webhook"
    webhook_url: HttpUrlStr
    webhook_method: Annotated[Literal["POST", "PUT", "PATCH"], BeforeValidator(_upper)] = "POST"
    webhook_headers: dict[str, str] = Field(default_factory=dict)


ChannelConfig = Annotated[
    Union[DingTalkConfig, FeishuConfig, WeChatConfig, EmailConfig, WebhookConfig],
    Field(discriminator="type"),
]

# Fields shown masked in API responses, each with the destination fields it
# is bound to. A masked value is only restored while the destination matches.
SECRET_FIELDS = {
    "dingtalk_secret": ("dingtalk_webhook",),
    "feishu_secret": ("feishu_webhook",),
    "smtp_password": ("smtp_host", "smtp_port", "smtp_user"),
}
HEADER_DESTINATION = ("webhook_url",)
SECRET_HEADER_MARKERS = ("authorization", "token", "key", "secret", "password", "cookie")

_config_adapter = TypeAdapter(ChannelConfig)


def is_secret_header(name: str) -> bool:
    lowered = name.lower()
    return any(marker in lowered for marker in SECRET_HEADER_MARKERS)


def _describe_error(exc: ValidationError) -> str:
    err = exc.errors()[0]
    if err["type"] in ("union_tag_invalid", "union_tag_not_found"):
        supported = ", ".join(t.value for t in ChannelType)
        return f"type: must be one of {supported}"
    # loc[0] is the variant tag for discriminated unions
    path = ".".join(str(part) for part in err["loc"][1:]) or "config"
    msg = err["msg"].removeprefix("Value error, ")
    return f"{path}: {msg}"


def parse_channel_config(data: Mapping[str, Any] | BaseModel) -> ChannelConfig:
    """Validate raw data into a config variant, raising InvalidConfig."""
    if isinstance(data, _ChannelBase):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump()
    data = dict(data)
    if isinstance(data.get("type"), ChannelType):
        data["type"] = data["type"].value
    try:
        return _config_adapter.validate_python(data)
    except ValidationError as e:
        raise InvalidConfig(_describe_error(e)) from e


def dump_channel_config(config: ChannelConfig, mask_secrets: bool = False) -> dict[str, Any]:
    data = config.model_dump(mode="json")
    if mask_secrets:
        for field in SECRET_FIELDS:
            if data.get(field):
                data[field] = SECRET_MASK
        if data.get("webhook_headers"):
            data["webhook_headers"] = {
                name: SECRET_MASK if is_secret_header(name) else value
                for name, value in data["webhook_headers"].items()
            }
    return data


def has_masked_secrets(data: Mapping[str, Any]) -> bool:
    if any(data.get(field) == SECRET_MASK for field in SECRET_FIELDS):
        return True
    headers = data.get("webhook_headers")
    return isinstance(headers, Mapping) and SECRET_MASK in headers.values()


def _normalized(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value).strip()


def _check_destination(data: Mapping[str, Any], existing: ChannelConfig, field: str, bound: tuple[str, ...]):
    changed = [f for f in bound if _normalized(data.get(f)) != _normalized(getattr(existing, f, None))]
    if changed:
        raise InvalidConfig(f"{field}: re-enter the secret when changing {', '.join(changed)}")


def restore_masked_secrets(data: Mapping[str, Any], existing: ChannelConfig) -> dict[str, Any]:
    """Replace masked secret values in ``data`` with the stored ones.

    Raises InvalidConfig when a masked secret would go to a destination other
    than the stored one.
    """
    restored = dict(data)
    for field, bound in SECRET_FIELDS.items():
        if restored.get(field) == SECRET_MASK:
            _check_destination(restored, existing, field, bound)
            restored[field] = getattr(existing, field, None)

    headers = restored.get("webhook_headers")
    if isinstance(headers, Mapping) and SECRET_MASK in headers.values():
        stored = {name.lower(): value for name, value in getattr(existing, "webhook_headers", {}).items()}
        headers = dict(headers)
        for name, value in headers.items():
            if value != SECRET_MASK:
                continue
            _check_destination(restored, existing, f"webhook_headers.{name}", HEADER_DESTINATION)
            if name.lower() not in stored:
                raise InvalidConfig(f"webhook_headers.{name}: no stored value to keep")
            headers[name] = stored[name.lower()]
        restored["webhook_headers"] = headers
    return restored


class EnableRequest(BaseModel):
    name: str
    type: ChannelType
    enabled: bool


class ChannelTypeOut(BaseModel):
    id: str
    name: str
    description: str


class TestResult(BaseModel):
    success: bool
    message: str
