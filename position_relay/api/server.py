"""
Relay Server
============
FastAPI application wiring the registry, router and connection lifecycle
behind one WebSocket endpoint, plus liveness endpoints.

Run with:
    python -m position_relay
    uvicorn position_relay.api.server:app --port 3000
"""

import time
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, Request, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from ..core.logger import StructuredLogger
from ..infrastructure.config.config_loader import get_settings_from_working_directory
from ..infrastructure.config.settings import AppSettings
from .broadcast_router import BroadcastRouter
from .response_envelope import json_error, json_ok
from .websocket.lifecycle import ConnectionLifecycle, ParticipantRegistry


def create_app(settings: Optional[AppSettings] = None) -> FastAPI:
    """Creates the relay FastAPI application."""

    # 1. Initialize Dependencies
    settings = settings or get_settings_from_working_directory()
    logger = StructuredLogger("PositionRelay", settings.logging)

    registry = ParticipantRegistry.from_settings(settings.relay, logger=logger)
    router = BroadcastRouter(registry, logger=logger)
    lifecycle = ConnectionLifecycle(registry, router, settings.relay, logger=logger)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.start_time = time.time()
        logger.info("relay_server.started", {
            "host": settings.server.host,
            "port": settings.server.port,
            "websocket_path": settings.server.websocket_path,
            "version": settings.version
        })

        yield

        logger.info("relay_server.shutting_down", {
            "active_connections": lifecycle.active_connections,
            "participants": registry.size()
        })
        await lifecycle.shutdown()
        registry.clear_all()
        logger.info("relay_server.shutdown_complete")

    app = FastAPI(title=settings.app_name, version=settings.version, debug=settings.debug, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.server.cors_origins,
        allow_credentials=False,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    # 2. Store components for endpoints and tests
    app.state.settings = settings
    app.state.registry = registry
    app.state.broadcast_router = router
    app.state.connection_lifecycle = lifecycle
    app.state.start_time = time.time()

    # 3. Health endpoints
    @app.get("/ping")
    async def ping():
        """Liveness probe with the current participant count"""
        return {
            "status": "online",
            "players": registry.size(),
            "version": settings.version
        }

    @app.get("/health")
    async def health(_: Request):
        """Liveness probe with registry, router and connection statistics"""
        try:
            return json_ok({
                "status": "healthy",
                "participants": registry.size(),
                "uptime": time.time() - app.state.start_time,
                "version": settings.version,
                "server_time": datetime.now().isoformat(),
                "registry": registry.get_stats(),
                "broadcast": router.get_stats(),
                "connections": lifecycle.get_stats()
            })
        except Exception as e:
            logger.error("relay_server.health_failed", {
                "error": str(e),
                "error_type": type(e).__name__
            }, exc_info=True)
            return json_error("health_error", f"Health check failed: {e}", status=503)

    # 4. WebSocket endpoint
    @app.websocket(settings.server.websocket_path)
    async def websocket_endpoint(websocket: WebSocket):
        await websocket.accept()
        await lifecycle.handle_client_connection(websocket)

    return app


app = create_app()
