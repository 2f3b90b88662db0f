"""Seed channel configs from a JSON file (a list of config objects)."""

import asyncio
import json
import sys
from pathlib import Path

from notify_hub.config import settings
from notify_hub.db.session import create_session_factory, create_tables
from notify_hub.errors import DuplicateConfig, InvalidConfig
from notify_hub.store.config_store import ChannelConfigStore


async def seed(path: Path):
    engine, session_factory = create_session_factory(settings.DATABASE_URL)
    await create_tables(engine)
    store = ChannelConfigStore(session_factory)

    for entry in json.loads(path.read_text()):
        try:
            config = await store.add(entry)
            print(f"Added {config.type} channel: {config.name}")
        except DuplicateConfig as e:
            print(f"Skipped, already exists: {e.name} ({e.channel_type})")
        except InvalidConfig as e:
            print(f"Invalid config {entry.get('name')!r}: {e.message}")

    await engine.dispose()


if __name__ == "__main__":
    if len(sys.argv) != 2:
        sys.exit("usage: python -m scripts.seed channels.json")
    asyncio.run(seed(Path(sys.argv[1])))
