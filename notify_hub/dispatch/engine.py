"""
Dispatch engine: fan a message out to every enabled channel.

Flow:
1. Snapshot enabled configs from the store
2. One task per channel, each running its adapter under the delivery policy
3. Append each result to history as soon as it is known
4. Join; channels still in flight at cancellation/deadline are recorded
   as failed with "cancelled"
"""

import asyncio

import structlog

from notify_hub.dispatch.runner import DeliveryPolicy, deliver
from notify_hub.errors import Cancelled, InvalidConfig
from notify_hub.output.registry import AdapterRegistry
from notify_hub.schemas.channel import ChannelConfig
from notify_hub.schemas.message import DeliveryResult, DispatchReport, Message
from notify_hub.store.config_store import ChannelConfigStore
from notify_hub.store.history import HistoryRecorder

logger = structlog.get_logger()


class DispatchEngine:
    def __init__(
        self,
        store: ChannelConfigStore,
        registry: AdapterRegistry,
        history: HistoryRecorder,
        policy: DeliveryPolicy = DeliveryPolicy(),
    ):
        self._store = store
        self._registry = registry
        self._history = history
        self._policy = policy

    async def send(self, message: Message, timeout: float | None = None) -> DispatchReport:
        """Deliver ``message`` to all enabled channels.

        Adapter failures end up in the report and in history, never as an
        exception. Only infrastructure errors (store, history) propagate.
        ``timeout`` bounds the whole fan-out; per-attempt timeouts come from
        the delivery policy.
        """
        log = logger.bind(message_id=str(message.id), level=message.level)

        configs = [cfg for cfg in await self._store.list_configs() if cfg.enabled]
        if not configs:
            log.warning("dispatch.no_enabled_channels")
            return DispatchReport(message=message)

        completed: dict[tuple[str, str], DeliveryResult] = {}
        tasks = {
            asyncio.create_task(
                self._deliver_channel(message, cfg, completed),
                name=f"notify-{cfg.type}-{cfg.name}",
            ): cfg
            for cfg in configs
        }
        log.info("dispatch.started", channels=len(tasks))

        try:
            _, pending = await asyncio.wait(tasks, timeout=timeout)
        except asyncio.CancelledError:
            log.warning("dispatch.cancelled")
            await self._abort(message, tasks, completed)
            raise

        if pending:
            log.warning("dispatch.deadline_exceeded", pending=len(pending))
            await self._abort(message, {t: tasks[t] for t in pending}, completed)

        results = []
        for task, cfg in tasks.items():
            if task.cancelled():
                results.append(completed[cfg.key])
            else:
                # Re-raises infrastructure errors such as a failed history write
                results.append(task.result())

        report = DispatchReport(message=message, results=results)
        log.info("dispatch.completed", succeeded=report.succeeded, failed=report.failed)
        return report

    async def _deliver_channel(
        self,
        message: Message,
        config: ChannelConfig,
        completed: dict[tuple[str, str], DeliveryResult],
    ) -> DeliveryResult:
        log = logger.bind(message_id=str(message.id), channel=config.name, type=config.type)
        try:
            adapter = self._registry.get(config.type)
            outcome = await deliver(adapter, message, config, self._policy)
        except InvalidConfig as e:
            result = DeliveryResult.failed(config.name, config.type, e.message)
        except Exception as e:
            # Adapter bug: record it, never let it take other channels down
            log.exception("dispatch.adapter_crashed")
            result = DeliveryResult.failed(config.name, config.type, f"{type(e).__name__}: {e}")
        else:
            if outcome.success:
                result = DeliveryResult.succeeded(config.name, config.type)
            else:
                result = DeliveryResult.failed(config.name, config.type, outcome.diagnostic)

        if result.is_success:
            log.info("dispatch.delivered")
        else:
            log.warning("dispatch.delivery_failed", error=result.error)

        completed[config.key] = result
        # A finished delivery is recorded even if we get cancelled meanwhile
        await asyncio.shield(self._history.append(message, [result]))
        return result

    async def _abort(
        self,
        message: Message,
        tasks: dict[asyncio.Task, ChannelConfig],
        completed: dict[tuple[str, str], DeliveryResult],
    ):
        """Cancel in-flight deliveries and record them as cancelled."""
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        for cfg in tasks.values():
            if cfg.key in completed:
                continue
            result = DeliveryResult.failed(cfg.name, cfg.type, Cancelled().message)
            completed[cfg.key] = result
            await self._history.append(message, [result])
