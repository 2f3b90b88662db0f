"""
Config tester: pre-save dry run of one channel config.

Validates the config, then sends one synthetic message through the matching
adapter. Touches neither the store nor the history.
"""

from dataclasses import replace
from typing import Any, Mapping

import structlog

from notify_hub.dispatch.runner import DeliveryPolicy, deliver
from notify_hub.errors import InvalidConfig
from notify_hub.output.registry import AdapterRegistry
from notify_hub.schemas.channel import ChannelConfig, TestResult, parse_channel_config
from notify_hub.schemas.message import Message

logger = structlog.get_logger()

TEST_TITLE = "Notification channel test"
TEST_CONTENT = "This is a test message. If you can read it, the channel is configured correctly."
TEST_SOURCE = "notify-hub"


def build_test_message() -> Message:
    return Message(level="info", title=TEST_TITLE, content=TEST_CONTENT, source=TEST_SOURCE)


class ConfigTester:
    def __init__(self, registry: AdapterRegistry, policy: DeliveryPolicy = DeliveryPolicy()):
        self._registry = registry
        # A test is a single attempt: the user is waiting on the answer
        self._policy = replace(policy, attempts=1)

    async def test(self, config: ChannelConfig | Mapping[str, Any]) -> TestResult:
        try:
            config = parse_channel_config(config)
            adapter = self._registry.get(config.type)
        except InvalidConfig as e:
            logger.info("tester.invalid_config", detail=e.message)
            return TestResult(success=False, message=e.message)

        log = logger.bind(channel=config.name, type=config.type)
        try:
            outcome = await deliver(adapter, build_test_message(), config, self._policy)
        except Exception as e:
            log.exception("tester.adapter_crashed")
            return TestResult(success=False, message=f"{type(e).__name__}: {e}")

        if outcome.success:
            log.info("tester.passed")
            return TestResult(success=True, message=f"Test notification delivered ({outcome.diagnostic})")

        log.warning("tester.failed", diagnostic=outcome.diagnostic)
        return TestResult(success=False, message=outcome.diagnostic)
