"""FastAPI main application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from portal.core.config import settings
from portal.core.middleware import setup_middleware
from portal.core.exceptions import PortalError
from portal.core.permissions import default_matrix
from portal.adapters import realtime_provider
from portal.db.session import get_db

from portal.api.auth import router as auth_router
from portal.api.admin import router as admin_router
from portal.api.projects import router as projects_router
from portal.api.tasks import router as tasks_router
from portal.api.notifications import router as notifications_router
from portal.api.realtime import router as realtime_router, ws_router

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("barangay_portal")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("Starting %s", settings.APP_NAME)
    default_matrix.validate()
    logger.info("Permission matrix validated")

    if await realtime_provider.health_check():
        logger.info("Redis connected")
    else:
        logger.warning("Redis not available; real-time delivery will fail")

    yield

    logger.info("Shutting down %s", settings.APP_NAME)


app = FastAPI(
    title="Barangay Portal API",
    description="Role-based access, activity trail and notification delivery for barangay officials",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Middleware
setup_middleware(app)


@app.exception_handler(PortalError)
async def portal_exception_handler(request: Request, exc: PortalError):
    content = {"detail": exc.message}
    if exc.code:
        content["code"] = exc.code
    return JSONResponse(status_code=exc.status_code, content=content)


# Register routers
app.include_router(auth_router, prefix="/api")
app.include_router(admin_router, prefix="/api")
app.include_router(projects_router, prefix="/api")
app.include_router(tasks_router, prefix="/api")
app.include_router(notifications_router, prefix="/api")
app.include_router(realtime_router, prefix="/api")
app.include_router(ws_router)


@app.get("/")
async def root():
    return {
        "name": settings.APP_NAME,
        "version": "0.1.0",
        "docs": "/docs",
    }


@app.get("/api/health")
async def health(db: Session = Depends(get_db)):
    """Database and Redis health."""
    db_ok = True
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Database health check failed")
        db_ok = False
    redis_ok = await realtime_provider.health_check()
    return {
        "database": "ok" if db_ok else "error",
        "redis": "ok" if redis_ok else "error",
        "status": "healthy" if db_ok and redis_ok else "degraded",
    }
