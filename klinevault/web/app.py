"""
FastAPI application stub.

No functional routes exist yet; the app wires CORS and the API error
handler so routes can be added without touching the plumbing.
"""

from __future__ import annotations

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from klinevault import __version__
from klinevault.core.config import KlineVaultSettings
from klinevault.web.errors import ApiError, api_error_handler

router = APIRouter()


def create_app(settings: KlineVaultSettings | None = None) -> FastAPI:
    """Create the FastAPI application instance."""

    settings = settings or KlineVaultSettings()
    app = FastAPI(title="klinevault", version=__version__)
    app.state.settings = settings

    if settings.api.cors_origin:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=[settings.api.cors_origin],
            allow_credentials=True,
            allow_methods=["GET", "POST", "PATCH", "DELETE"],
            allow_headers=["Authorization", "Accept", "Content-Type"],
        )

    app.include_router(router)
    app.add_exception_handler(ApiError, api_error_handler)
    return app


def serve(settings: KlineVaultSettings) -> None:
    """Run the API with uvicorn until interrupted."""

    import uvicorn

    uvicorn.run(
        create_app(settings),
        host=settings.api.host,
        port=settings.api.port,
        log_level=settings.logging.level.lower(),
    )


__all__ = ["create_app", "router", "serve"]
