"""
Email output over SMTP.

smtplib is blocking, so each session runs in a worker thread. Delivery is
all-or-nothing: if any recipient is refused, the whole attempt is failed and
the diagnostic lists the refused addresses.
"""

import asyncio
import smtplib
import ssl
from email.message import EmailMessage

import structlog

from notify_hub.errors import AdapterFailure
from notify_hub.output.base import ChannelAdapter, level_prefix
from notify_hub.schemas.channel import ChannelType, EmailConfig
from notify_hub.schemas.message import Message

logger = structlog.get_logger()

SMTP_SSL_PORT = 465
SMTP_SUBMISSION_PORT = 587


def resolve_tls_mode(config: EmailConfig) -> str:
    """Return "ssl" (implicit TLS), "starttls" or "plain"."""
    if config.smtp_tls is None:
        if config.smtp_port == SMTP_SSL_PORT:
            return "ssl"
        if config.smtp_port == SMTP_SUBMISSION_PORT:
            return "starttls"
        return "plain"
    if not config.smtp_tls:
        return "plain"
    return "ssl" if config.smtp_port == SMTP_SSL_PORT else "starttls"


def build_email(message: Message, config: EmailConfig) -> EmailMessage:
    msg = EmailMessage()
    msg["Subject"] = f"{level_prefix(message.level)} {message.title}"
    msg["From"] = config.sender
    msg["To"] = ", ".join(config.email_to)

    body = message.content or message.title
    footer = f"Source: {message.source or '-'}\nTime: {message.timestamp.isoformat()}"
    msg.set_content(f"{body}\n\n--\n{footer}\n")
    return msg


class EmailAdapter(ChannelAdapter):
    channel_type = ChannelType.EMAIL

    def __init__(self, timeout: float = 10.0):
        self._timeout = timeout

    def _open(self, config: EmailConfig) -> smtplib.SMTP:
        mode = resolve_tls_mode(config)
        if mode == "ssl":
            return smtplib.SMTP_SSL(
                config.smtp_host,
                config.smtp_port,
                timeout=self._timeout,
                context=ssl.create_default_context(),
            )
        server = smtplib.SMTP(config.smtp_host, config.smtp_port, timeout=self._timeout)
        if mode == "starttls":
            server.starttls(context=ssl.create_default_context())
        return server

    def _send_blocking(self, message: Message, config: EmailConfig) -> dict:
        email = build_email(message, config)
        try:
            with self._open(config) as server:
                if config.smtp_user:
                    server.login(config.smtp_user, config.smtp_password or "")
                return server.send_message(email, from_addr=config.sender, to_addrs=config.email_to)
        except smtplib.SMTPAuthenticationError as e:
            raise AdapterFailure(f"SMTP authentication failed: {e.smtp_code} {_decode(e.smtp_error)}") from e
        except smtplib.SMTPRecipientsRefused as e:
            raise AdapterFailure(f"rejected recipients: {', '.join(sorted(e.recipients))}") from e
        except smtplib.SMTPSenderRefused as e:
            raise AdapterFailure(f"sender refused: {e.sender} {_decode(e.smtp_error)}") from e

    async def _send(self, message: Message, config: EmailConfig) -> str:
        refused = await asyncio.to_thread(self._send_blocking, message, config)
        if refused:
            logger.warning("output.email.partially_refused", channel=config.name, refused=list(refused))
            raise AdapterFailure(f"rejected recipients: {', '.join(sorted(refused))}")

        logger.info("output.email.sent", channel=config.name, recipients=len(config.email_to))
        return f"sent to {len(config.email_to)} recipient(s)"


def _decode(value) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)
