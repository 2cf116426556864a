"""
main.py — FastAPI Application Factory
======================================
Site Race: turn-based construction project race.

Usage:
    # Development mode (hot-reload)
    uvicorn sitesim.main:app --reload

    # Or directly
    python -m sitesim.main

    # Production mode
    uvicorn sitesim.main:app --host 0.0.0.0 --port 8000

The factory takes an optional store so tests can run against a fresh
in-memory store per app.
"""

import asyncio
import contextlib
import logging
import time
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from sitesim.apps.room.service import RoomService
from sitesim.apps.ws.service import ConnectionManager
from sitesim.core.config import Settings, get_settings
from sitesim.core.database import RoomStore, build_store
from sitesim.core.errors import register_error_handlers
from sitesim.engine import catalog

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # ═══════════════════════════════════════════════════
    # STARTUP
    # ═══════════════════════════════════════════════════
    settings: Settings = app.state.settings
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info(f"🚀 Starting {settings.APP_NAME} v{settings.VERSION}")
    logger.info(f"📍 Environment: {settings.ENV}")
    logger.info(f"🗄️  Room store: {'In-Memory' if settings.USE_IN_MEMORY_DB else 'Redis'}")

    # load and validate static data
    catalog.get_activities()
    catalog.get_cards()

    sweeper = None
    if settings.ROOM_SWEEP_INTERVAL_SECONDS > 0:
        service: RoomService = app.state.room_service
        sweeper = asyncio.create_task(service.run_sweeper(settings.ROOM_SWEEP_INTERVAL_SECONDS))

    yield

    # ═══════════════════════════════════════════════════
    # SHUTDOWN
    # ═══════════════════════════════════════════════════
    if sweeper is not None:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper
    await app.state.room_service.store.close()
    logger.info("👋 Shutting down gracefully...")


def create_app(settings: Settings | None = None, store: RoomStore | None = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.VERSION,
        description="Multiplayer construction project race: dice, cards, activities and budgets",
        debug=settings.DEBUG,
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )

    connections = ConnectionManager()
    app.state.settings = settings
    app.state.connections = connections
    app.state.room_service = RoomService(
        store=store or build_store(settings),
        connections=connections,
        idle_ttl=timedelta(minutes=settings.ROOM_IDLE_TTL_MINUTES),
    )

    # ═══════════════════════════════════════════════════
    # CORS Middleware
    # ═══════════════════════════════════════════════════
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=settings.CORS_CREDENTIALS,
        allow_methods=settings.CORS_METHODS,
        allow_headers=settings.CORS_HEADERS,
    )

    @app.middleware("http")
    async def add_process_time_header(request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        response.headers["X-Process-Time"] = f"{time.time() - start_time:.4f}s"
        return response

    register_error_handlers(app)

    # ═══════════════════════════════════════════════════
    # System Endpoints
    # ═══════════════════════════════════════════════════
    @app.get("/health", tags=["system"])
    def health_check():
        return {
            "status": "ok",
            "app": settings.APP_NAME,
            "version": settings.VERSION,
            "environment": settings.ENV,
            "db_mode": "in-memory" if settings.USE_IN_MEMORY_DB else "redis",
        }

    # ═══════════════════════════════════════════════════
    # Routers
    # ═══════════════════════════════════════════════════
    from sitesim.apps.room.router import router as room_router
    from sitesim.apps.ws.router import router as ws_router

    app.include_router(room_router)
    app.include_router(ws_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()

    uvicorn.run(
        "sitesim.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info" if settings.DEBUG else "warning",
    )
