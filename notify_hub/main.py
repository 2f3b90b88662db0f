from contextlib import asynccontextmanager

import httpx
import structlog
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from notify_hub.api.notify import router as notify_router
from notify_hub.config import Settings, settings
from notify_hub.db.session import create_session_factory, create_tables
from notify_hub.dispatch.engine import DispatchEngine
from notify_hub.dispatch.runner import DeliveryPolicy
from notify_hub.dispatch.tester import ConfigTester
from notify_hub.errors import NotifyError
from notify_hub.middleware.error_handler import (
    global_exception_handler,
    notify_error_handler,
    validation_error_handler,
)
from notify_hub.middleware.logging import LoggingMiddleware
from notify_hub.output.registry import AdapterRegistry, build_default_registry
from notify_hub.store.config_store import ChannelConfigStore
from notify_hub.store.history import HistoryRecorder


logger = structlog.get_logger()


def configure_logging():
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            (
                structlog.dev.ConsoleRenderer()
                if settings.APP_ENV == "development"
                else structlog.processors.JSONRenderer()
            ),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def delivery_policy(config: Settings) -> DeliveryPolicy:
    return DeliveryPolicy(
        timeout=config.NOTIFY_DELIVERY_TIMEOUT,
        attempts=config.NOTIFY_RETRY_ATTEMPTS,
        backoff=config.NOTIFY_RETRY_BACKOFF,
        max_backoff=config.NOTIFY_RETRY_MAX_BACKOFF,
    )


def init_services(
    app: FastAPI,
    session_factory: async_sessionmaker[AsyncSession],
    registry: AdapterRegistry,
    config: Settings = settings,
):
    """Wire store, history, dispatcher and tester onto app.state."""
    policy = delivery_policy(config)
    store = ChannelConfigStore(session_factory)
    history = HistoryRecorder(
        session_factory,
        default_limit=config.NOTIFY_HISTORY_DEFAULT_LIMIT,
        max_limit=config.NOTIFY_HISTORY_MAX_LIMIT,
    )
    app.state.config_store = store
    app.state.history = history
    app.state.dispatcher = DispatchEngine(store, registry, history, policy)
    app.state.tester = ConfigTester(registry, policy)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    logger.info("app.startup", env=settings.APP_ENV)

    engine, session_factory = create_session_factory(settings.DATABASE_URL, pool_pre_ping=True)
    if settings.DB_AUTO_CREATE:
        await create_tables(engine)

    http = httpx.AsyncClient(timeout=settings.NOTIFY_DELIVERY_TIMEOUT)
    registry = build_default_registry(http, smtp_timeout=settings.NOTIFY_DELIVERY_TIMEOUT)
    init_services(app, session_factory, registry)

    yield

    # Shutdown
    await http.aclose()
    await engine.dispose()
    logger.info("app.shutdown")


app = FastAPI(title="Notify Hub", lifespan=lifespan)

# Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(LoggingMiddleware)

# Exception handlers
app.add_exception_handler(NotifyError, notify_error_handler)
app.add_exception_handler(RequestValidationError, validation_error_handler)
app.add_exception_handler(Exception, global_exception_handler)

# Routes
app.include_router(notify_router)


@app.get("/health")
async def health():
    return {"status": "ok"}
