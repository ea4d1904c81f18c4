from fastapi import FastAPI, Request
from contextlib import asynccontextmanager
from starlette.responses import JSONResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware
from app.api import diagnostics, leads, locations, quotes
from app.core.config import settings
from app.core.redis import init_redis, close_redis, get_redis
from app.core.metrics import request_count, request_duration, redis_connected, get_metrics_text
from app.services.diagnostics import DiagnosticsBuffer
from app.services.locations import LocationIndex, LRUCache
from app.services.webhook import WebhookDispatcher
import time
import logging

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


class MetricsMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()

        try:
            response = await call_next(request)
            duration = time.time() - start_time

            request_count.labels(
                method=request.method,
                endpoint=request.url.path,
                status=response.status_code
            ).inc()

            request_duration.labels(
                method=request.method,
                endpoint=request.url.path
            ).observe(duration)

            return response
        except Exception:
            duration = time.time() - start_time
            request_count.labels(
                method=request.method,
                endpoint=request.url.path,
                status=500
            ).inc()
            request_duration.labels(
                method=request.method,
                endpoint=request.url.path
            ).observe(duration)
            raise


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting...")

    logger.info("Initializing Redis connection...")
    try:
        await init_redis()
        redis_connected.set(1)
        logger.info("Redis connected")
    except Exception as e:
        logger.error(f"Redis connection failed, caching and rate limiting disabled: {e}")
        redis_connected.set(0)

    app.state.diagnostics = DiagnosticsBuffer(settings.DIAGNOSTICS_BUFFER_SIZE)
    app.state.dispatcher = WebhookDispatcher(app.state.diagnostics)
    app.state.locations = LocationIndex.from_file(
        settings.LOCATION_DATA_PATH, LRUCache(settings.LOCATION_CACHE_SIZE)
    )

    yield

    logger.info("Application shutting down...")
    await app.state.dispatcher.drain()
    await close_redis()
    redis_connected.set(0)
    logger.info("Shutdown complete")


app = FastAPI(
    title=settings.API_TITLE,
    description=settings.API_DESCRIPTION,
    version=settings.API_VERSION,
    lifespan=lifespan
)

app.add_middleware(MetricsMiddleware)

app.include_router(quotes.router)
app.include_router(leads.router)
app.include_router(diagnostics.router)
app.include_router(locations.router)


@app.get("/metrics", tags=["monitoring"])
async def metrics():
    return Response(
        content=get_metrics_text(),
        media_type="text/plain; version=0.0.4; charset=utf-8"
    )


@app.get("/health", tags=["monitoring"])
async def health_check(request: Request):
    redis = get_redis()
    diagnostics_buffer = getattr(request.app.state, "diagnostics", None)
    webhook_issues = diagnostics_buffer.health().has_issues if diagnostics_buffer else False

    return {
        "status": "degraded" if webhook_issues else "healthy",
        "service": settings.API_TITLE,
        "version": settings.API_VERSION,
        "dependencies": {
            "redis": "connected" if redis is not None else "disconnected",
            "webhooks": "failing" if webhook_issues else "ok",
        }
    }


@app.get("/readiness", tags=["monitoring"])
async def readiness_check():
    if get_redis() is None:
        return JSONResponse(
            status_code=503,
            content={"ready": False, "reason": "Redis not available"}
        )

    return {
        "ready": True,
        "service": settings.API_TITLE
    }


@app.get("/", tags=["root"])
async def root():
    return {
        "message": settings.API_TITLE,
        "version": settings.API_VERSION,
        "docs": "/docs",
        "health": "/health",
        "metrics": "/metrics"
    }
