"""
FastAPI Application Factory & Configuration.

This module initializes the pagesync HTTP application. It is responsible for:
1.  **Collaborators**: one broadcast hub, page/menu/template/landing stores,
    media store and snapshot store per application instance
    (``app.state.pagesync``). Every hub update is relayed to the snapshot
    medium, so `pagesync watch` in another process sees API changes.
2.  **Middleware Setup**: CORS so a builder frontend on another origin can call us.
3.  **Exception Handling**: map the error taxonomy onto HTTP status codes.
4.  **Routing**: pages, menus, templates, landings, media, preview and health;
    uploaded files are served under ``/uploads``. API docs are off in prod.
5.  **Lifecycle**: the hub is closed on shutdown.

Status mapping
--------------
- ``MalformedDocument`` / ``MediaRejected`` (``ValueError``) → 400
- ``SlugConflict`` → 409
- ``QuotaExceeded`` → 507
- other ``SnapshotError`` (serialization) → 500
- validation failures are returned by the routes themselves as 422
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from pagesync import __version__
from pagesync.api.media_store import MediaStore
from pagesync.api.routers import landings, media, menus, pages, preview, templates
from pagesync.api.state import AppState
from pagesync.api.stores import LandingStore, MenuStore, PageStore, TemplateStore
from pagesync.core.broadcast.hub import BroadcastHub
from pagesync.core.broadcast.transport import SnapshotTransport
from pagesync.core.errors import QuotaExceeded, SlugConflict, SnapshotError
from pagesync.core.settings import get_logger, load_settings
from pagesync.core.snapshot.medium import FileMedium, StorageMedium
from pagesync.core.snapshot.store import SnapshotStore

logger = get_logger("pagesync.api")


def _build_state(medium: StorageMedium | None, media_store: MediaStore | None) -> AppState:
    cfg = load_settings()
    hub = BroadcastHub(name="api")
    snapshots = SnapshotStore(medium if medium is not None else FileMedium(), context="api")
    relay = SnapshotTransport(snapshots)
    hub.add_signal_listener(relay.send)
    return AppState(
        hub=hub,
        pages=PageStore(),
        menus=MenuStore(),
        templates=TemplateStore(),
        landings=LandingStore(),
        media=media_store if media_store is not None else MediaStore(),
        snapshots=snapshots,
        preview_key=cfg.preview_key,
        relay=relay,
    )


def create_app(
    *,
    medium: StorageMedium | None = None,
    media_store: MediaStore | None = None,
) -> FastAPI:
    """
    Construct and configure the pagesync FastAPI application.

    Parameters
    ----------
    medium:
        Snapshot medium; defaults to a :class:`FileMedium` in the configured
        ``snapshot_dir``. Tests pass a :class:`MemoryMedium`.
    media_store:
        Upload collaborator; defaults to the configured ``upload_dir``.
    """
    cfg = load_settings()
    state = _build_state(medium, media_store)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("pagesync API starting (env=%s)", load_settings().environment)
        yield
        state.hub.close()
        logger.info("pagesync API stopped")

    app = FastAPI(
        title="pagesync API",
        description="Page documents, menus, media and live preview snapshots",
        version=__version__,
        docs_url=None if cfg.is_prod else "/docs",
        redoc_url=None if cfg.is_prod else "/redoc",
        lifespan=lifespan,
    )
    app.state.pagesync = state

    # -----------------------------------------------------------------------
    # Middleware
    # -----------------------------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production, restrict this to specific domains.
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -----------------------------------------------------------------------
    # Exception Handlers
    # -----------------------------------------------------------------------
    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        """Malformed documents and rejected uploads are client errors."""
        return JSONResponse(status_code=400, content={"error": "Bad Request", "detail": str(exc)})

    @app.exception_handler(SlugConflict)
    async def slug_conflict_handler(request: Request, exc: SlugConflict) -> JSONResponse:
        return JSONResponse(status_code=409, content={"error": "Conflict", "detail": str(exc)})

    @app.exception_handler(SnapshotError)
    async def snapshot_error_handler(request: Request, exc: SnapshotError) -> JSONResponse:
        logger.error("snapshot failure on %s: %s", request.url.path, exc)
        if isinstance(exc, QuotaExceeded):
            return JSONResponse(
                status_code=507, content={"error": "Insufficient Storage", "detail": str(exc)}
            )
        return JSONResponse(
            status_code=500, content={"error": "Internal Server Error", "detail": str(exc)}
        )

    # -----------------------------------------------------------------------
    # Routes
    # -----------------------------------------------------------------------
    app.include_router(pages.router)
    app.include_router(menus.router)
    app.include_router(media.router)
    app.include_router(templates.router)
    app.include_router(landings.router)
    app.include_router(preview.router)

    state.media.base_dir.mkdir(parents=True, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=state.media.base_dir), name="uploads")

    @app.get("/health", tags=["System"])
    async def health_check() -> dict[str, str]:
        """Simple liveness check."""
        return {
            "status": "ok",
            "environment": load_settings().environment,
            "version": __version__,
        }

    return app


__all__ = ["create_app"]
