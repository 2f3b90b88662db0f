"""
Delivery runner: one adapter, one config, under the delivery policy.

Every attempt is bounded by its own timeout. Retryable failures (timeouts,
transport errors, HTTP 5xx/429) are retried with exponential backoff;
explicit rejections are returned immediately.
"""

import asyncio
import smtplib
from dataclasses import dataclass

import httpx
import structlog
from tenacity import AsyncRetrying, retry_if_result, stop_after_attempt, wait_exponential

from notify_hub.errors import AdapterFailure, DeliveryTimeout
from notify_hub.output.base import ChannelAdapter, DeliveryOutcome
from notify_hub.schemas.channel import ChannelConfig
from notify_hub.schemas.message import Message

logger = structlog.get_logger()

# TimeoutError first: it is also an OSError
TIMEOUT_ERRORS = (TimeoutError, httpx.TimeoutException)
TRANSPORT_ERRORS = (httpx.HTTPError, smtplib.SMTPException, OSError)


@dataclass(frozen=True)
class DeliveryPolicy:
    timeout: float = 10.0  # per attempt
    attempts: int = 1
    backoff: float = 1.0
    max_backoff: float = 10.0


async def deliver_once(
    adapter: ChannelAdapter, message: Message, config: ChannelConfig, timeout: float
) -> DeliveryOutcome:
    try:
        return await asyncio.wait_for(adapter.deliver(message, config), timeout)
    except TIMEOUT_ERRORS:
        return DeliveryOutcome.from_failure(DeliveryTimeout())
    except TRANSPORT_ERRORS as e:
        detail = f"{type(e).__name__}: {e}" if str(e) else type(e).__name__
        failure = AdapterFailure(detail, retryable=True)
        return DeliveryOutcome.from_failure(failure)


def _should_retry(outcome: DeliveryOutcome) -> bool:
    return not outcome.success and outcome.retryable


async def deliver(
    adapter: ChannelAdapter,
    message: Message,
    config: ChannelConfig,
    policy: DeliveryPolicy = DeliveryPolicy(),
) -> DeliveryOutcome:
    """Run the adapter until it succeeds, fails for good, or attempts run out."""
    log = logger.bind(channel=config.name, type=config.type, message_id=str(message.id))

    def _log_retry(retry_state):
        outcome = retry_state.outcome.result()
        log.warning(
            "delivery.retry",
            attempt=retry_state.attempt_number,
            diagnostic=outcome.diagnostic,
            sleep=retry_state.next_action.sleep,
        )

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max(policy.attempts, 1)),
        wait=wait_exponential(multiplier=policy.backoff, max=policy.max_backoff),
        retry=retry_if_result(_should_retry),
        before_sleep=_log_retry,
        # Attempts exhausted: hand back the last failed outcome
        retry_error_callback=lambda retry_state: retry_state.outcome.result(),
    )
    return await retrying(deliver_once, adapter, message, config, policy.timeout)
