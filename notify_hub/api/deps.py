from fastapi import Request

from notify_hub.dispatch.engine import DispatchEngine
from notify_hub.dispatch.tester import ConfigTester
from notify_hub.store.config_store import ChannelConfigStore
from notify_hub.store.history import HistoryRecorder


# Services are wired onto app.state at startup (see main.init_services)

def get_store(request: Request) -> ChannelConfigStore:
    return request.app.state.config_store


def get_history(request: Request) -> HistoryRecorder:
    return request.app.state.history


def get_dispatcher(request: Request) -> DispatchEngine:
    return request.app.state.dispatcher


def get_tester(request: Request) -> ConfigTester:
    return request.app.state.tester
