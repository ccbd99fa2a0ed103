"""FastAPI application factory."""

import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from estate_listings.config import Settings
from estate_listings.db import PropertyStorage
from estate_listings.listings import ListingService
from estate_listings.logging import bind_request_context, configure_logging, get_logger
from estate_listings.utils.media_store import MediaStore
from estate_listings.web.auth import SessionResolver, admin_token_resolver

logger = get_logger(__name__)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind a request id to every log event emitted while handling a request."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]
        bind_request_context(request_id=request_id, path=request.url.path)
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


def create_app(
    settings: Settings | None = None,
    *,
    session_resolver: SessionResolver | None = None,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        settings: Application settings. Loaded from env if not provided.
        session_resolver: Maps a request to a Session. Defaults to the
            admin bearer-token resolver.
    """
    if settings is None:
        settings = Settings()

    configure_logging(json_output=settings.json_logs, level=settings.log_level)

    storage = PropertyStorage(settings.database_path)
    media = MediaStore(settings.resolved_media_dir)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await storage.initialize()
        app.state.storage = storage
        app.state.media = media
        app.state.settings = settings
        app.state.listings = ListingService(storage, media)
        app.state.session_resolver = session_resolver or admin_token_resolver(settings)
        logger.info(
            "web_server_started",
            database=settings.database_path,
            media_dir=settings.resolved_media_dir,
        )

        yield

        await storage.close()
        logger.info("web_server_stopped")

    app = FastAPI(title="Estate Listings", lifespan=lifespan)

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestContextMiddleware)

    from estate_listings.web.routes import router

    app.include_router(router)

    return app
