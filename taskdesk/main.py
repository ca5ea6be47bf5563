"""
Taskdesk - Main Application Entry Point

FastAPI application serving the task tracker API and the live
notification socket.
"""

import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from .database import close_database, get_database, init_database
from .database.repositories import get_user_repository
from .exceptions import TaskdeskError
from .middleware.rate_limit import setup_rate_limiting
from .realtime import get_presence_registry
from .utils.background_tasks import active_task_count, drain_background_tasks
from .web import routers

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

logger = logging.getLogger(__name__)

SERVICE_NAME = "Taskdesk"
VERSION = "1.0.0"


async def bootstrap_admin() -> None:
    """Create the configured administrator if it does not exist yet."""
    if not (settings.admin_email and settings.admin_password):
        return

    try:
        await get_user_repository().ensure_admin(
            email=settings.admin_email,
            password=settings.admin_password,
            name=settings.admin_name,
        )
    except TaskdeskError as e:
        logger.error(f"Bootstrap administrator not created: {e.message}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown."""
    # Startup
    logger.info(f"Starting {SERVICE_NAME} ({settings.environment})...")

    if await init_database():
        logger.info("Database initialized")
        await bootstrap_admin()
    else:
        logger.warning("Database not configured or failed to initialize")

    yield

    # Shutdown
    logger.info(f"Shutting down {SERVICE_NAME}...")

    await drain_background_tasks()

    try:
        await close_database()
    except Exception as e:
        logger.warning(f"Failed to close database during shutdown: {e}")

    logger.info("Shutdown complete")


# Create FastAPI app
app = FastAPI(
    title=SERVICE_NAME,
    description="Project and task tracker with role-based access and live assignment notifications",
    version=VERSION,
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_rate_limiting(app)

for router in routers:
    app.include_router(router)


@app.get("/")
async def root():
    """Root endpoint - health check."""
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": VERSION
    }


@app.get("/health")
async def health_check():
    """Detailed health check endpoint."""
    db_health = {"status": "not_configured"}
    try:
        db_health = await get_database().health_check()
    except Exception as e:
        logger.warning(f"Health check could not reach database: {e}")
        db_health = {"status": "error"}

    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": {
            "database": db_health.get("status", "unknown"),
            "live_connections": get_presence_registry().count(),
            "background_tasks": active_task_count(),
        }
    }


# Error handlers
@app.exception_handler(TaskdeskError)
async def taskdesk_exception_handler(request: Request, exc: TaskdeskError):
    """Application errors carry their own status and message."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"status": "failed", "message": exc.message}
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed input: 400 with one message per offending field."""
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path"))
        message = error.get("msg", "Invalid value")
        messages.append(f"{location}: {message}" if location else message)

    return JSONResponse(
        status_code=400,
        content={"status": "failed", "message": messages}
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"status": "failed", "message": "Internal server error"}
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "taskdesk.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
