"""FastAPI application exposing the Wordpix challenge engine."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from _01_engine.config import GameConfig
from _01_engine.exceptions import GameError
from _03_ui.api import challenges_router, credits_router
from _03_ui.core.container import Services, build_services, set_services

logger = logging.getLogger(__name__)


def create_app(services: Services | None = None, config: GameConfig | None = None) -> FastAPI:
    """Build the app around ``services`` (assembled from ``config`` if omitted)."""
    if services is None:
        services = build_services(config)
    set_services(services)

    app = FastAPI(title="Wordpix", version="0.1.0")
    app.state.services = services

    @app.exception_handler(GameError)
    async def handle_game_error(request: Request, exc: GameError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        fields = sorted({".".join(str(part) for part in err.get("loc", ())[1:]) for err in exc.errors()})
        return JSONResponse(
            status_code=400,
            content={"error": "Missing required fields", "code": "validation_error", "fields": fields},
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error", "code": "internal_error"})

    @app.get("/api/health")
    def api_health() -> dict:
        return {"status": "ok"}

    app.include_router(challenges_router)
    app.include_router(credits_router)

    return app


__all__ = ["create_app"]
