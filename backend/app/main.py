"""
FastAPI application entry point.
"""

import logging
import re
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from backend.app.api import analyze, profile, usage
from backend.app.core.config import Settings, get_settings
from backend.app.core.database import db
from backend.app.core.errors import FitCheckError
from backend.app.core.rate_limit import EXPOSED_HEADERS

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    settings: Settings = app.state.settings

    if settings.storage_backend == "postgres":
        await db.connect(settings)
        # Ensure schema exists (idempotent)
        try:
            from backend.app.storage.postgres import init_schema
            async with db.connection() as conn:
                await init_schema(conn)
        except Exception:
            # Don't crash the app on schema init errors; surface them in logs.
            logger.exception("Schema init failed")
    else:
        logger.info("Using in-memory storage (profiles and usage are not persisted)")

    yield

    if settings.storage_backend == "postgres":
        await db.disconnect()


def _validation_details(exc: RequestValidationError):
    details = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        details.append({"field": ".".join(loc) or "body", "message": err.get("msg", "")})
    return details


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Create and configure the FastAPI app."""
    settings = settings or get_settings()
    configure_logging(settings)

    # Allow browser extensions (Chrome/Edge) to call the API directly.
    # We keep the standard web origins allowlist, and add a regex for extension origins.
    _extension_origin_re = re.compile(r"^chrome-extension://[a-z0-9_-]+$", re.IGNORECASE)
    allowed_origins = settings.cors_origins_list

    def _is_allowed_origin(origin: Optional[str]) -> bool:
        if not origin:
            return False
        if origin in allowed_origins:
            return True
        return bool(_extension_origin_re.match(origin))

    def _with_cors(request: Request, response: JSONResponse) -> JSONResponse:
        origin = request.headers.get("origin")
        if _is_allowed_origin(origin):
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Access-Control-Allow-Credentials"] = "true"
            response.headers["Access-Control-Expose-Headers"] = ", ".join(EXPOSED_HEADERS)
        return response

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        description="Job-fit assessment and cover letter API for the FitCheck extension",
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.dependency_overrides[get_settings] = lambda: settings

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_origin_regex=_extension_origin_re.pattern,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=EXPOSED_HEADERS,
    )

    # Exception handlers to ensure CORS headers are always sent
    @app.exception_handler(FitCheckError)
    async def fitcheck_exception_handler(request: Request, exc: FitCheckError):
        if exc.status_code >= 500:
            logger.warning("%s on %s %s", type(exc).__name__, request.method, request.url.path)
        response = JSONResponse(
            status_code=exc.status_code,
            content=exc.to_body(),
            headers=exc.headers,
        )
        return _with_cors(request, response)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        response = JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )
        return _with_cors(request, response)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        response = JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid request body", "details": _validation_details(exc)},
        )
        return _with_cors(request, response)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        response = JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
        )
        return _with_cors(request, response)

    # Routes
    app.include_router(analyze.router, prefix=settings.api_prefix)
    app.include_router(usage.router, prefix=settings.api_prefix)
    app.include_router(profile.router, prefix=settings.api_prefix)

    @app.get("/")
    async def root():
        return {
            "name": settings.app_name,
            "version": "1.0.0",
            "docs": "/docs",
        }

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("backend.app.main:app", host="0.0.0.0", port=8000, reload=True)
