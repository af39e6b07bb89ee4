"""ASGI application factory.

Serve with `uvicorn --factory community_ai.main:create_app`.
"""
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.trustedhost import TrustedHostMiddleware

from community_ai.config import FEATURES, Settings, load_settings
from community_ai.errors import GenerationFailure, InvalidParameters
from community_ai.logging_config import setup_logging
from community_ai.routers import ai, chat
from community_ai.services.container import ServiceContainer, build_services

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, services: Optional[ServiceContainer] = None) -> FastAPI:
    settings = settings or (services.settings if services else load_settings())
    setup_logging(settings.log_level)
    services = services or build_services(settings)

    app = FastAPI(title="Community AI Service", version="0.1.0")
    app.state.services = services

    allow_any_origin = len(settings.cors_origins) == 1 and settings.cors_origins[0] == "*"
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        # Browsers reject wildcard CORS with credentials enabled.
        allow_credentials=not allow_any_origin,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    if not (len(settings.trusted_hosts) == 1 and settings.trusted_hosts[0] == "*"):
        app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.trusted_hosts)

    @app.exception_handler(InvalidParameters)
    async def invalid_parameters_handler(request: Request, exc: InvalidParameters):
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(GenerationFailure)
    async def generation_failure_handler(request: Request, exc: GenerationFailure):
        logger.error("Generation failed on %s after %s: %r", request.url.path, exc.attempts, exc.cause)
        return JSONResponse(status_code=502, content={"error": "AI generation failed. Please try again."})

    app.include_router(ai.router)
    app.include_router(chat.router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.get("/ready")
    def ready():
        configured = services.gateway.configured_backends
        return {
            "status": "ready" if configured else "degraded",
            "backends": {name: name in configured for name in ("primary", "fallback")},
            "features": {name: settings.feature_enabled(name) for name in FEATURES},
        }

    return app
