"""
CounselChat Relay - Main Application Entry Point

Realtime server for the counseling platform:
- Socket.IO presence, chat relay and notifications
- First-contact bookkeeping for student/counselor pairs
- Health, readiness and metrics endpoints
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator

from fastapi import FastAPI, Request, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
import uvicorn

from counselchat import __version__
from counselchat.core.asgi_router import create_composite_asgi_app
from counselchat.core.config import get_settings, is_development
from counselchat.core.database import init_database, close_database, health_check as db_health_check
from counselchat.core.logging_config import setup_logging
from counselchat.api.v1.counselors import router as counselors_router
from counselchat.api.v1.presence import router as presence_router
from counselchat.websocket.server import get_relay_hub, socket_app

# Configure logging
setup_logging()
logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan management"""
    logger.info("Starting CounselChat relay...")

    await init_database()
    hub = get_relay_hub()

    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Socket.IO path: /{settings.socketio_path}/")
    logger.info(f"Strict payload validation: {settings.strict_payload_validation}")
    logger.info(f"Targeted chat delivery: {settings.targeted_chat_delivery}")

    yield

    logger.info("Shutting down CounselChat relay...")
    await hub.drain()
    await close_database()


# Create FastAPI application
app = FastAPI(
    title="CounselChat Relay",
    description="Realtime presence and chat relay for students and counselors",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if is_development() else None,
    redoc_url="/redoc" if is_development() else None,
)

# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

# API Routes
app.include_router(presence_router)  # Already has /api/v1/presence prefix
app.include_router(counselors_router)  # Already has /api/v1/counselors prefix


@app.get("/health")
async def health_check():
    """Health check endpoint for load balancer and Kubernetes"""
    try:
        db_health = await db_health_check()
        is_healthy = db_health.get("status") == "healthy"

        return {
            "status": "healthy" if is_healthy else "degraded",
            "service": "counselchat-relay",
            "version": __version__,
            "environment": settings.environment,
            "database": db_health,
            "online": get_relay_hub().online_counts(),
        }
    except Exception as e:
        logger.error(f"Health check failed: {e}", exc_info=True)
        return {
            "status": "unhealthy",
            "service": "counselchat-relay",
            "version": __version__,
            "error": "Health check failed",
            "database": {"status": "failed"}
        }


@app.get("/ready")
async def ready_check():
    """Kubernetes readiness probe endpoint"""
    return {
        "status": "ready",
        "service": "counselchat-relay",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint"""
    hub = get_relay_hub()
    return Response(
        content=hub.metrics.render(hub.online_counts()),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Custom HTTP exception handler"""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "message": exc.detail,
                "code": exc.status_code,
                "type": "http_error"
            },
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """General exception handler for unhandled errors"""
    logger.error(f"Unhandled error: {str(exc)}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "message": "Internal server error",
                "code": 500,
                "type": "internal_error"
            },
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
    )


# Composite ASGI application: Socket.IO + FastAPI in one process
composite_app = create_composite_asgi_app(app, socket_app, settings.socketio_path)


def run() -> None:
    """Run the relay with uvicorn"""
    uvicorn.run(
        "counselchat.main:composite_app",
        host=settings.host,
        port=settings.port,
        reload=is_development(),
        log_level=settings.log_level.lower(),
        access_log=True,
    )


if __name__ == "__main__":
    run()
