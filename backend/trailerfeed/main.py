from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
import logging
from typing import Optional

from trailerfeed.core.config import settings
from trailerfeed.core.database import init_db
from trailerfeed.dependencies import Services, build_services
from trailerfeed.services.tmdb_client import (
    ProviderError,
    ProviderNetworkError,
    ProviderRequestError,
    ProviderUnauthorizedError,
)
from trailerfeed.utils.logger import logger as app_logger

from trailerfeed.api import comments, favorites, feed, preferences, status

logger = logging.getLogger(__name__)


def create_app(services: Optional[Services] = None, create_tables: bool = True) -> FastAPI:
    app = FastAPI(title="TrailerFeed API", version="1.0.0")
    app.state.services = services or build_services(settings)

    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(feed.router, prefix="/api", tags=["Feed"])
    app.include_router(preferences.router, prefix="/api/preferences", tags=["Preferences"])
    app.include_router(favorites.router, prefix="/api/favorites", tags=["Favorites"])
    app.include_router(comments.router, prefix="/api/comments", tags=["Comments"])
    app.include_router(status.router, prefix="/api/status", tags=["Status"])

    @app.exception_handler(ProviderError)
    async def provider_error_handler(request: Request, exc: ProviderError):
        # Batch-source failures: the client shows a retry affordance
        if isinstance(exc, ProviderNetworkError):
            status_code = 503
        else:
            status_code = 502
        body = {"detail": str(exc), "kind": exc.kind, "retryable": not isinstance(exc, ProviderUnauthorizedError)}
        if isinstance(exc, ProviderRequestError):
            body["provider_status"] = exc.status
        logger.warning(f"Provider error on {request.url.path}: {exc}")
        return JSONResponse(status_code=status_code, content=body)

    @app.on_event("startup")
    async def startup_event():
        if create_tables:
            init_db()
        await app.state.services.startup()
        app_logger.info("TrailerFeed started")

    @app.on_event("shutdown")
    async def shutdown_event():
        await app.state.services.shutdown()

    return app


app = create_app()
