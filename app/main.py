import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .auth.auth import router as auth_router
from .auth.errors import HandshakeError, StoreError, UpstreamExchangeError, to_json
from .auth.handshake import OAuthHandshake
from .auth.state_store import StateStore, build_state_store
from .config import Settings, get_settings
from .utils.logging import configure_logging, logger

def _log_unhandled(loop: asyncio.AbstractEventLoop, context: dict) -> None:
    # fire-and-forget failures are logged, never fatal
    logger.error("Unhandled async error: %s", context.get("message"), exc_info=context.get("exception"))

async def handshake_error_handler(request: Request, exc: HandshakeError):
    if isinstance(exc, (UpstreamExchangeError, StoreError)):
        return JSONResponse(to_json(exc), status_code=exc.status_code)
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)

async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return JSONResponse({"error": "Route not found"}, status_code=404)
    if exc.status_code == 405:
        return JSONResponse({"error": "Method not supported"}, status_code=405)
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code)

async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unexpected error on %s", request.url.path)
    return JSONResponse(to_json(exc), status_code=500)

def create_app(settings: Settings | None = None, state_store: StateStore | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)
    store = state_store or build_state_store(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        asyncio.get_running_loop().set_exception_handler(_log_unhandled)
        logger.info("Storefront OAuth service up (env=%s, state backend=%s)", settings.ENV, store.backend)
        yield
        await store.aclose()

    app = FastAPI(title="Storefront OAuth Install Handshake",
                  description="Shopify app install (OAuth authorization code) endpoints",
        version="0.1.0",
        docs_url="/docs",          # Swagger UI
        redoc_url="/redoc",        # ReDoc
        openapi_url="/openapi.json",
        lifespan=lifespan)

    app.state.settings = settings
    app.state.handshake = OAuthHandshake(settings, store)

    app.add_exception_handler(HandshakeError, handshake_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)

    app.include_router(auth_router)

    @app.get("/health")
    def health():
        return {"ok": True}

    @app.post("/{path:path}", include_in_schema=False)
    async def not_supported(path: str):
        return JSONResponse({"error": "Method not supported"}, status_code=405)

    # the POST catch-all would otherwise turn unknown GETs into 405s
    @app.get("/{path:path}", include_in_schema=False)
    async def not_found(path: str):
        return JSONResponse({"error": "Route not found"}, status_code=404)

    return app
