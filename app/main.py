from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse

from backend.calc_engine.config.config_manager import ConfigManager
from backend.calc_engine.config.settings import AppSettings, load_settings
from backend.calc_engine.utils.logging_utils import setup_logging
from backend.core.commission_engine import Clock, CommissionEngine, IdFactory
from backend.core.errors import CommissionError

from .core.plan_registry import PlanRegistry
from .routers.commissions import router as commissions_router

log = logging.getLogger("app")


def create_app(
    settings: Optional[AppSettings] = None,
    id_factory: Optional[IdFactory] = None,
    clock: Optional[Clock] = None,
) -> FastAPI:
    """
    Build the API application.

    Without explicit settings the YAML configuration is read from
    ``COMMISSION_CONFIG_PATH`` (default ``config/settings.yaml``).
    """
    if settings is None:
        settings = load_settings(ConfigManager.from_env())

    setup_logging(settings.logging.level, settings.logging.file, settings.logging.json_format)

    app = FastAPI(title="Commission Dashboard API", version="1.0.0")

    # CORS for the dashboard front-end
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.engine = CommissionEngine(settings.engine, id_factory=id_factory, clock=clock)
    app.state.plan_registry = PlanRegistry(id_factory=id_factory, clock=clock)
    app.state.plan_registry.load(settings.plans)

    app.include_router(commissions_router)

    @app.exception_handler(CommissionError)
    async def _commission_error(request: Request, exc: CommissionError):
        log.warning("Unhandled commission error on %s: %s", request.url.path, exc)
        return JSONResponse({"detail": str(exc)}, status_code=400)

    @app.exception_handler(RequestValidationError)
    async def _validation(request: Request, exc: RequestValidationError):
        return JSONResponse(
            {"detail": "Invalid request body", "errors": jsonable_errors(exc)},
            status_code=422,
        )

    @app.get("/", include_in_schema=False)
    def root() -> RedirectResponse:
        """Redirect to Swagger UI for convenience."""
        return RedirectResponse(url="/docs")

    @app.get("/health", summary="Lightweight health check")
    def health() -> dict:
        return {"status": "ok", "plans": len(app.state.plan_registry.list())}

    log.info("Commission API ready with %d configured plans", len(app.state.plan_registry.list()))
    return app


def jsonable_errors(exc: RequestValidationError) -> list:
    # ctx may carry exception instances, which are not JSON serializable
    return [
        {key: value for key, value in error.items() if key != "ctx"}
        for error in exc.errors()
    ]
