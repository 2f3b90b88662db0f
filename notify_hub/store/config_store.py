"""
Channel config store backed by SQLAlchemy.

Writers (add/update/set_enabled/delete) serialize on one asyncio.Lock.
Readers never take it, so a dispatch snapshot is never held up by an
in-flight write, and no lock is held across network calls.
"""

import asyncio
from typing import Any, Mapping

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from notify_hub.errors import DuplicateConfig, InvalidConfig, NotFound
from notify_hub.models.channel_config import NotifyChannel
from notify_hub.schemas.channel import (
    CHANNEL_TYPE_CATALOG,
    ChannelConfig,
    ChannelType,
    parse_channel_config,
)

logger = structlog.get_logger()


def _normalize_type(channel_type: str | ChannelType) -> str:
    try:
        return ChannelType(channel_type).value
    except ValueError:
        raise InvalidConfig(f"type: unsupported channel type '{channel_type}'") from None


class ChannelConfigStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory
        self._write_lock = asyncio.Lock()

    @staticmethod
    def supported_types() -> list[dict[str, str]]:
        return [dict(entry) for entry in CHANNEL_TYPE_CATALOG]

    async def list_configs(self) -> list[ChannelConfig]:
        """All configs in insertion order. Each call returns a fresh snapshot."""
        async with self._session_factory() as db:
            result = await db.execute(select(NotifyChannel).order_by(NotifyChannel.id))
            return [row.to_config() for row in result.scalars().all()]

    async def get(self, name: str, channel_type: str | ChannelType) -> ChannelConfig:
        async with self._session_factory() as db:
            row = await self._find(db, name, _normalize_type(channel_type))
            return row.to_config()

    async def add(self, config: ChannelConfig | Mapping[str, Any]) -> ChannelConfig:
        config = parse_channel_config(config)
        async with self._write_lock, self._session_factory() as db:
            if await self._find_or_none(db, config.name, config.type):
                raise DuplicateConfig(config.name, config.type)
            db.add(NotifyChannel.from_config(config))
            try:
                await db.commit()
            except IntegrityError:
                # Lost a race against another process sharing the database
                await db.rollback()
                raise DuplicateConfig(config.name, config.type) from None

        logger.info("store.config_added", name=config.name, type=config.type)
        return config

    async def update(self, config: ChannelConfig | Mapping[str, Any]) -> ChannelConfig:
        """Full replace of the config keyed by (name, type)."""
        config = parse_channel_config(config)
        async with self._write_lock, self._session_factory() as db:
            row = await self._find(db, config.name, config.type)
            row.enabled = config.enabled
            row.settings = config.settings_payload()
            await db.commit()

        logger.info("store.config_updated", name=config.name, type=config.type)
        return config

    async def set_enabled(self, name: str, channel_type: str | ChannelType, enabled: bool):
        channel_type = _normalize_type(channel_type)
        async with self._write_lock, self._session_factory() as db:
            row = await self._find(db, name, channel_type)
            row.enabled = enabled
            await db.commit()

        logger.info("store.config_toggled", name=name, type=channel_type, enabled=enabled)

    async def delete(self, name: str, channel_type: str | ChannelType):
        channel_type = _normalize_type(channel_type)
        async with self._write_lock, self._session_factory() as db:
            row = await self._find(db, name, channel_type)
            await db.delete(row)
            await db.commit()

        logger.info("store.config_deleted", name=name, type=channel_type)

    @staticmethod
    async def _find_or_none(db: AsyncSession, name: str, channel_type: str) -> NotifyChannel | None:
        result = await db.execute(
            select(NotifyChannel).where(
                NotifyChannel.name == name,
                NotifyChannel.type == channel_type,
            )
        )
        return result.scalar_one_or_none()

    async def _find(self, db: AsyncSession, name: str, channel_type: str) -> NotifyChannel:
        """Fetch a config row, or raise NotFound."""
        row = await self._find_or_none(db, name, channel_type)
        if row is None:
            raise NotFound(f"Channel config '{name}' of type '{channel_type}' not found")
        return row
