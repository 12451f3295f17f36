# accountshop/main.py
from contextlib import asynccontextmanager
import logging

from fastapi.middleware.cors import CORSMiddleware
from fastapi import FastAPI

from accountshop.core.config import get_settings
from accountshop.core.context import build_context
from accountshop.database import create_db_and_tables, engine

# Import models so SQLModel metadata is populated before create_all()
from accountshop.models import kv_entry as _kv_models  # noqa: F401
from accountshop.models import product as _product_models  # noqa: F401

# Routers
from accountshop.routers.admin_session import router as admin_session_router
from accountshop.routers.admin_stats import router as admin_stats_router
from accountshop.routers.analytics import router as analytics_router
from accountshop.routers.preferences import router as preferences_router
from accountshop.routers.products import router as products_router

settings = get_settings()

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("uvicorn")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
      - Verify DB connectivity and create tables.
      - Run the analytics retention sweep (drop events older than 30 days).

    Shutdown:
      - No special cleanup needed for sync engine.
    """
    logger.info("🔄 Startup: Connecting to database...")
    try:
        create_db_and_tables()
        logger.info("✅ Startup: DB connection OK, tables verified.")
    except Exception as e:
        logger.error(f"❌ Startup: DB connection FAILED: {e}")
        raise
    app.state.context.visits.purge_older_than_30_days()
    yield


app = FastAPI(
    title=settings.PROJECT_NAME,
    version="0.1.0",
    lifespan=lifespan,
)

# Long-lived collaborators, built once per process.
app.state.context = build_context(settings, engine)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Versioned API prefix, e.g. /api/v1
app.include_router(products_router, prefix=settings.API_V1_STR)
app.include_router(analytics_router, prefix=settings.API_V1_STR)
app.include_router(admin_session_router, prefix=settings.API_V1_STR)
app.include_router(admin_stats_router, prefix=settings.API_V1_STR)
app.include_router(preferences_router, prefix=settings.API_V1_STR)


@app.get("/")
def root():
    """Health check endpoint (also the public entry point)."""
    return {"status": "ok", "service": "accountshop-backend"}
