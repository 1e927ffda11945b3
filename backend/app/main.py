"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from app.config import get_settings
from app.exceptions import register_exception_handlers
from app.logging_config import configure_logging
from app.models.base import engine, AsyncSessionLocal, Base
from app.models import application, user  # noqa: F401  register tables
from app.api import router as api_router
from app.routes.auth import router as auth_router
from app.routes.web import router as web_router
from app.services.session_store import build_session_store

configure_logging()
logger = logging.getLogger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    logger.info("Starting %s...", settings.app_name)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables verified")
    yield
    logger.info("Shutting down...")
    await app.state.session_store.close()
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    description="Personal job application tracker with Google sign-in",
    version="0.1.0",
    lifespan=lifespan,
)

app.state.session_store = build_session_store(settings)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include auth routes (provider redirect + callback)
app.include_router(auth_router)

# Include API routers
app.include_router(api_router)

# Include web routes (HTML pages)
app.include_router(web_router)


@app.get("/health")
async def health_check():
    return {"status": "healthy", "app": settings.app_name}


@app.get("/health/detailed")
async def detailed_health_check(request: Request):
    checks = {}

    # Database
    try:
        async with AsyncSessionLocal() as session:
            result = await session.execute(text("SELECT 1"))
            result.scalar()
            checks["database"] = {"ok": True}
    except Exception as e:
        logger.warning("Database health check failed: %s", e)
        checks["database"] = {"ok": False}

    # Session store
    try:
        ok = await request.app.state.session_store.ping()
        checks["session_store"] = {"ok": bool(ok)}
    except Exception as e:
        logger.warning("Session store health check failed: %s", e)
        checks["session_store"] = {"ok": False}

    all_ok = all(check.get("ok", False) for check in checks.values())
    status = "healthy" if all_ok else "degraded"

    return {
        "status": status,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": checks,
    }
