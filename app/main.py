"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from app.config import get_settings
from app.session import clear_sessions
from core.errors import (
    ApiError,
    AuthError,
    CryptoUnavailableError,
    PartialPublishError,
    ValidationError,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle hook."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Playlist Energy Sorter ready at %s", settings.base_url)
    yield
    clear_sessions()
    logger.info("Sessions cleared, shutting down")


app = FastAPI(
    title="Playlist Energy Sorter",
    version="0.1.0",
    lifespan=lifespan,
)

# Signed cookie; holds only the session id.
app.add_middleware(
    SessionMiddleware,
    secret_key=get_settings().secret_key,
    max_age=None,  # browser-session cookie
)


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------

@app.exception_handler(ValidationError)
async def _validation_error(request: Request, exc: ValidationError):
    return JSONResponse({"detail": str(exc)}, status_code=400)


@app.exception_handler(AuthError)
async def _auth_error(request: Request, exc: AuthError):
    return JSONResponse(
        {"detail": f"Spotify auth error: {exc}", "error": exc.error},
        status_code=401,
    )


@app.exception_handler(ApiError)
async def _api_error(request: Request, exc: ApiError):
    return JSONResponse(
        {"detail": str(exc), "status": exc.status, "status_text": exc.status_text},
        status_code=502,
    )


@app.exception_handler(PartialPublishError)
async def _partial_publish(request: Request, exc: PartialPublishError):
    return JSONResponse(
        {
            "detail": str(exc),
            "playlist_id": exc.playlist_id,
            "appended_batches": exc.appended_batches,
            "total_batches": exc.total_batches,
        },
        status_code=502,
    )


@app.exception_handler(CryptoUnavailableError)
async def _crypto_unavailable(request: Request, exc: CryptoUnavailableError):
    logger.error("Crypto primitive unavailable: %s", exc)
    return JSONResponse({"detail": str(exc)}, status_code=500)


# Routers
from app.routes_auth import router as auth_router  # noqa: E402
from app.routes_sorter import router as sorter_router  # noqa: E402

app.include_router(auth_router)
app.include_router(sorter_router)


@app.get("/")
async def index():
    """Entry points for a client UI."""
    return JSONResponse(
        {
            "name": app.title,
            "login": "/login",
            "playlists": "/playlists",
            "order": "/order",
        }
    )


@app.get("/health")
async def health():
    """Simple health-check endpoint."""
    return JSONResponse({"status": "ok", "version": app.version})
