"""FastAPI application assembly.

Hidden design decisions:
- Collaborators (store, blob store, provider adapter) live on ``app.state``
  and are injected into routes, so tests can swap any of them
- The store is connected for the lifetime of the app
- Every error leaves the API as ``{"error": ...}`` JSON
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from .. import __version__
from ..blobs import BlobStore, FilesystemBlobStore
from ..config import Settings, load_settings
from ..llm import BackendRegistry, ProviderAdapter
from ..store import ChatStore, create_chat_store
from .routes import characters, chat, conversations, messages, uploads

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    store: ChatStore | None = None,
    blobs: BlobStore | None = None,
    adapter: ProviderAdapter | None = None,
) -> FastAPI:
    """Build the API application.

    Args:
        settings: Process settings (loaded from the environment when omitted)
        store: Chat store; built from settings when omitted
        blobs: Blob store; a filesystem store under ``settings.upload_dir`` when omitted
        adapter: Provider adapter; built from a settings-derived registry when omitted

    Returns:
        Configured FastAPI app
    """
    settings = settings or load_settings()

    if store is None:
        store = create_chat_store(settings.store_backend, path=settings.db_path)
    if blobs is None:
        blobs = FilesystemBlobStore(settings.upload_dir)
    if adapter is None:
        adapter = ProviderAdapter(BackendRegistry.from_settings(settings))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await store.connect()
        logger.info("Store backend '%s' connected", store.backend_type)
        try:
            yield
        finally:
            await store.disconnect()

    app = FastAPI(title="charachat", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.blobs = blobs
    app.state.adapter = adapter

    @app.exception_handler(HTTPException)
    async def http_error(request: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in exc.errors())
        return JSONResponse(status_code=400, content={"error": f"Missing or invalid fields: {fields}"})

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    for module in (chat, messages, conversations, characters, uploads):
        app.include_router(module.router)

    return app
