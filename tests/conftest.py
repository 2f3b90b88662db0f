import pytest

from notify_hub.db.session import create_session_factory, create_tables
from notify_hub.output.registry import AdapterRegistry
from notify_hub.schemas.channel import ChannelType, parse_channel_config
from notify_hub.store.config_store import ChannelConfigStore
from notify_hub.store.history import HistoryRecorder
from tests.fakes import FakeAdapter


@pytest.fixture
async def session_factory(tmp_path):
    engine, factory = create_session_factory(f"sqlite+aiosqlite:///{tmp_path / 'notify.db'}")
    await create_tables(engine)
    yield factory
    await engine.dispose()


@pytest.fixture
def store(session_factory):
    return ChannelConfigStore(session_factory)


@pytest.fixture
def history(session_factory):
    return HistoryRecorder(session_factory)


@pytest.fixture
def fake_adapters():
    return {channel_type: FakeAdapter(channel_type) for channel_type in ChannelType}


@pytest.fixture
def registry(fake_adapters):
    return AdapterRegistry(fake_adapters)


@pytest.fixture
def dingtalk_config():
    return parse_channel_config(
        {
            "name": "ops-dingtalk",
            "type": "dingtalk",
            "dingtalk_webhook": "https://oapi.dingtalk.com/robot/send?access_token=abc",
            "dingtalk_secret": "SECabc",
        }
    )


@pytest.fixture
def email_config():
    return parse_channel_config(
        {
            "name": "oncall-mail",
            "type": "email",
            "smtp_host": "smtp.example.com",
            "smtp_port": 465,
            "smtp_user": "alerts@example.com",
            "smtp_password": "hunter2",
            "email_to": ["a@example.com", "b@example.com"],
        }
    )


@pytest.fixture
def webhook_config():
    return parse_channel_config(
        {
            "name": "pager",
            "type": "webhook",
            "webhook_url": "https://hooks.example.com/notify",
            "webhook_headers": {"Authorization": "Bearer t0k3n"},
        }
    )
