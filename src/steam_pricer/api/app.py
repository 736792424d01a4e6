"""FastAPI application factory."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from steam_pricer.api.deps import AppState, api_key_middleware
from steam_pricer.api.routes import router
from steam_pricer.api.schemas import ErrorResponse
from steam_pricer.core.config import PricerConfig, load_config
from steam_pricer.core.exceptions import ConfigError, InventoryError, PricerError
from steam_pricer.service import PricingService


def error_status(exc: PricerError) -> int:
    """HTTP status for a domain error: upstream inventory 502, bad config 400."""
    if isinstance(exc, InventoryError):
        return 502
    if isinstance(exc, ConfigError):
        return 400
    return 500


def create_app(config: PricerConfig | None = None) -> FastAPI:
    """Build the API around one PricingService.

    The service is created when the app starts and closed on shutdown, so a
    queue drain in progress is cancelled with the server. Without an explicit
    config, load_config() resolves one from the environment.
    """
    import steam_pricer

    config = config or load_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        service = await PricingService.create(config)
        app.state.app_state = AppState(config=config, service=service)
        try:
            yield
        finally:
            await service.close()

    app = FastAPI(
        title="Steam Pricer API",
        description="Rate-limited market pricing for inventories",
        version=steam_pricer.__version__,
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    if config.api.api_key:
        app.middleware("http")(api_key_middleware)

    app.include_router(router, prefix="/api")

    @app.exception_handler(PricerError)
    async def pricer_error_handler(request: Request, exc: PricerError) -> JSONResponse:
        body = ErrorResponse(error=type(exc).__name__, detail=str(exc))
        return JSONResponse(status_code=error_status(exc), content=body.model_dump())

    return app
