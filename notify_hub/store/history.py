"""
Append-only delivery history.

Records are never updated or deleted here; retention is someone else's job.
"""

import uuid
from typing import Sequence

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from notify_hub.errors import NotFound
from notify_hub.models.delivery_record import DeliveryRecord
from notify_hub.schemas.message import DeliveryResult, HistoryRecord, Message, MessageHistory

logger = structlog.get_logger()

DEFAULT_LIMIT = 50
MAX_LIMIT = 500


class HistoryRecorder:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        default_limit: int = DEFAULT_LIMIT,
        max_limit: int = MAX_LIMIT,
    ):
        self._session_factory = session_factory
        self.default_limit = default_limit
        self.max_limit = max_limit

    async def append(self, message: Message, results: Sequence[DeliveryResult]):
        if not results:
            return
        async with self._session_factory() as db:
            db.add_all([DeliveryRecord.from_result(message, r) for r in results])
            await db.commit()
        logger.debug("history.appended", message_id=str(message.id), count=len(results))

    async def list_history(self, page: int = 1, limit: int | None = None) -> list[HistoryRecord]:
        """Newest first by attempt time; ties go to the later insert."""
        page = max(page, 1)
        if limit is None or limit < 1:
            limit = self.default_limit
        limit = min(limit, self.max_limit)

        async with self._session_factory() as db:
            result = await db.execute(
                select(DeliveryRecord)
                .order_by(DeliveryRecord.attempted_at.desc(), DeliveryRecord.id.desc())
                .offset((page - 1) * limit)
                .limit(limit)
            )
            return [row.to_record() for row in result.scalars().all()]

    async def for_message(self, message_id: uuid.UUID) -> MessageHistory:
        """Rebuild the message + results view of one dispatch."""
        async with self._session_factory() as db:
            result = await db.execute(
                select(DeliveryRecord)
                .where(DeliveryRecord.message_id == message_id)
                .order_by(DeliveryRecord.attempted_at, DeliveryRecord.id)
            )
            rows = result.scalars().all()

        if not rows:
            raise NotFound(f"No history for message {message_id}")
        return MessageHistory(
            message=rows[0].to_message(),
            results=[row.to_result() for row in rows],
        )
