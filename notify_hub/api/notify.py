import uuid
from typing import Any

import structlog
from fastapi import APIRouter, Body, Depends, Query

from notify_hub.api.deps import get_dispatcher, get_history, get_store, get_tester
from notify_hub.config import settings
from notify_hub.dispatch.engine import DispatchEngine
from notify_hub.dispatch.tester import ConfigTester
from notify_hub.errors import InvalidConfig, NotFound
from notify_hub.schemas.channel import (
    ChannelTypeOut,
    EnableRequest,
    TestResult,
    dump_channel_config,
    has_masked_secrets,
    restore_masked_secrets,
)
from notify_hub.schemas.message import HistoryRecord, MessageHistory, SendRequest
from notify_hub.store.config_store import ChannelConfigStore
from notify_hub.store.history import HistoryRecorder

router = APIRouter(prefix="/notify", tags=["notify"])
logger = structlog.get_logger()


@router.get("/configs")
async def list_configs(store: ChannelConfigStore = Depends(get_store)) -> list[dict[str, Any]]:
    """List channel configs, secrets masked."""
    configs = await store.list_configs()
    return [dump_channel_config(cfg, mask_secrets=True) for cfg in configs]


@router.post("/configs")
async def add_config(
    payload: dict[str, Any] = Body(...),
    store: ChannelConfigStore = Depends(get_store),
) -> None:
    await store.add(payload)


@router.put("/configs")
async def update_config(
    payload: dict[str, Any] = Body(...),
    store: ChannelConfigStore = Depends(get_store),
) -> None:
    """Full replace. Masked secrets echoed back by the UI keep their stored value."""
    payload = await _restore_secrets(payload, store)
    await store.update(payload)


@router.delete("/configs")
async def delete_config(
    name: str = Query(...),
    channel_type: str = Query(..., alias="type"),
    store: ChannelConfigStore = Depends(get_store),
) -> None:
    await store.delete(name, channel_type)


@router.post("/configs/enable")
async def enable_config(
    req: EnableRequest,
    store: ChannelConfigStore = Depends(get_store),
) -> None:
    await store.set_enabled(req.name, req.type, req.enabled)


@router.post("/test", response_model=TestResult)
async def test_config(
    payload: dict[str, Any] = Body(...),
    store: ChannelConfigStore = Depends(get_store),
    tester: ConfigTester = Depends(get_tester),
):
    """Dry-run a config (saved or not) by sending a test message through it."""
    try:
        payload = await _restore_secrets(payload, store)
    except InvalidConfig as e:
        return TestResult(success=False, message=e.message)
    return await tester.test(payload)


@router.post("/send")
async def send_notification(
    req: SendRequest,
    dispatcher: DispatchEngine = Depends(get_dispatcher),
) -> None:
    """Dispatch a message to all enabled channels. Outcomes go to history."""
    report = await dispatcher.send(req.to_message(), timeout=settings.NOTIFY_DISPATCH_TIMEOUT)
    logger.info(
        "api.notification_sent",
        message_id=str(report.message.id),
        succeeded=report.succeeded,
        failed=report.failed,
    )


@router.get("/history", response_model=list[HistoryRecord])
async def list_history(
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
    history: HistoryRecorder = Depends(get_history),
):
    return await history.list_history(page=page, limit=limit)


@router.get("/history/{message_id}", response_model=MessageHistory)
async def get_message_history(
    message_id: uuid.UUID,
    history: HistoryRecorder = Depends(get_history),
):
    return await history.for_message(message_id)


@router.get("/types", response_model=list[ChannelTypeOut])
async def list_types(store: ChannelConfigStore = Depends(get_store)):
    return store.supported_types()


async def _restore_secrets(payload: dict[str, Any], store: ChannelConfigStore) -> dict[str, Any]:
    if not has_masked_secrets(payload):
        return payload
    try:
        existing = await store.get(str(payload.get("name", "")), str(payload.get("type", "")))
    except (NotFound, InvalidConfig):
        return payload
    return restore_masked_secrets(payload, existing)
