# accountshop/core/context.py
"""
Explicit application context.

Every long-lived collaborator (change feed, services, key-value stores)
is constructed once in `build_context()` at process start and attached to
`app.state.context`. Routers reach it through the dependencies below.
"""
import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from fastapi import Request
from sqlalchemy.engine import Engine

from accountshop.core.auth import SessionGuard
from accountshop.core.config import Settings
from accountshop.core.kv_store import KeyValueStore, MemoryKeyValueStore, SqlKeyValueStore
from accountshop.repositories.event_log_repo import EventLogRepository
from accountshop.repositories.product_repo import ProductRepository
from accountshop.schemas.product import ProductRead
from accountshop.services.analytics_service import VisitAggregator
from accountshop.services.change_feed import ChangeFeed
from accountshop.services.image_service import ImageService
from accountshop.services.product_service import ProductService
from accountshop.services.stats_service import StatsService


@dataclass
class AppContext:
    settings: Settings
    engine: Engine
    feed: ChangeFeed[ProductRead]
    products: ProductService
    visits: VisitAggregator
    stats: StatsService
    persistent_store: KeyValueStore
    session_store: KeyValueStore
    clock: Callable[[], datetime] | None = field(default=None)
    sleep: Callable[[float], Awaitable[object]] = field(default=asyncio.sleep)

    def session_guard(self, session_id: str) -> SessionGuard:
        return SessionGuard(
            self.session_store,
            session_id,
            timeout=timedelta(seconds=self.settings.SESSION_TIMEOUT_SECONDS),
            clock=self.clock,
        )


def build_context(
    settings: Settings,
    engine: Engine,
    clock: Callable[[], datetime] | None = None,
    sleep: Callable[[float], Awaitable[object]] | None = None,
) -> AppContext:
    persistent_store = SqlKeyValueStore(engine)
    feed: ChangeFeed[ProductRead] = ChangeFeed()
    repo = ProductRepository()

    visits = VisitAggregator(
        EventLogRepository(persistent_store, capacity=settings.EVENT_LOG_CAPACITY),
        tz=settings.TIMEZONE,
        retention_days=settings.EVENT_RETENTION_DAYS,
        clock=clock,
    )
    products = ProductService(
        repo,
        feed,
        ImageService(
            max_image_bytes=settings.MAX_IMAGE_BYTES,
            max_document_bytes=settings.MAX_DOCUMENT_BYTES,
        ),
        storage_strategy=settings.IMAGE_STORAGE_STRATEGY,
        max_images=settings.MAX_IMAGES,
        whatsapp_number=settings.WHATSAPP_NUMBER,
    )

    return AppContext(
        settings=settings,
        engine=engine,
        feed=feed,
        products=products,
        visits=visits,
        stats=StatsService(repo, visits),
        persistent_store=persistent_store,
        session_store=MemoryKeyValueStore(),
        clock=clock,
        sleep=sleep or asyncio.sleep,
    )


# ----- FastAPI dependencies -----


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def get_product_service(request: Request) -> ProductService:
    return get_context(request).products


def get_visit_aggregator(request: Request) -> VisitAggregator:
    return get_context(request).visits


def get_stats_service(request: Request) -> StatsService:
    return get_context(request).stats
