"""
BizChat API: FastAPI Application

Messaging, stories, social feed and a local marketplace with an admin
back-office. Sign-in is by one-time code over WhatsApp or email.
"""
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi import HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from config import settings
from domain.responses import StandardErrorResponse
from routes import (
    admin,
    auth,
    calls,
    cart,
    chats,
    content,
    features,
    health,
    marketplace,
    notifications,
    orders,
    social,
    stories,
    uploads,
    users,
    verification,
)

# ── Logging ─────────────────────────────────────────────────────────

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

BACKEND_DIR = os.path.dirname(os.path.abspath(__file__))


def _migrations_path() -> str:
    if os.path.isabs(settings.migrations_dir):
        return settings.migrations_dir
    return os.path.join(BACKEND_DIR, settings.migrations_dir)


# ── Lifespan ────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: validate settings, create tables, migrate, seed. Shutdown: stop the blocking worker pool."""
    # data/ holds the SQLite file and the JSON config files
    os.makedirs("data", exist_ok=True)

    settings.validate_production_settings()

    from database import async_session, engine, init_db
    from services import feature_service, marketplace_service
    from services.email_config_manager import email_config_manager
    from services.migration_runner import run_migrations

    await init_db()
    logger.info("Database initialized")

    summary = await run_migrations(engine, _migrations_path())
    logger.info(
        f"Migrations: {summary['files']} files, {summary['executed']} executed, {summary['skipped']} skipped"
    )

    async with async_session() as db:
        added_features = await feature_service.seed_default_features(db)
        added_categories = await marketplace_service.seed_vendor_categories(db)
        await db.commit()
    if added_features or added_categories:
        logger.info(f"Seeded {added_features} feature flags, {added_categories} vendor categories")

    email_config_manager.ensure()

    yield  # app runs here

    from services.async_executor import shutdown_executor
    shutdown_executor()
    logger.info("Shutting down")


# ── App Factory ─────────────────────────────────────────────────────

app = FastAPI(
    title="BizChat API",
    description="Messaging, social feed and local marketplace backend",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routes ──────────────────────────────────────────────────────────

_error_responses = {
    400: {"model": StandardErrorResponse},
    401: {"model": StandardErrorResponse},
    403: {"model": StandardErrorResponse},
    404: {"model": StandardErrorResponse},
    409: {"model": StandardErrorResponse},
    429: {"model": StandardErrorResponse},
}

app.include_router(health.router)
for _module in (
    auth,
    users,
    chats,
    stories,
    social,
    notifications,
    features,
    calls,
    marketplace,
    cart,
    orders,
    verification,
    content,
    uploads,
    admin,
):
    app.include_router(_module.router, responses=_error_responses)
app.include_router(auth.dev_router)

# ── Static Files (uploads) ─────────────────────────────────────────

os.makedirs(settings.upload_dir, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=settings.upload_dir), name="uploads")

# ── Exception Handlers ──────────────────────────────────────────────


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """
    Catch-all for unhandled exceptions.

    Raw exception details never reach clients; the traceback is logged.
    """
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": {
                "code": "internal_server_error",
                "message": "Internal server error",
            },
        },
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc: HTTPException):
    """
    Wrap HTTPException payloads in the standard error envelope.

    DomainError subclasses carry their own message/details and derive the
    error code from the class name (NotFoundError -> "notfound").
    """
    if hasattr(exc, "message") and hasattr(exc, "details"):
        error_code = exc.__class__.__name__.replace("Error", "").lower()
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "success": False,
                "error": {
                    "code": error_code,
                    "message": exc.message,
                    "details": exc.details,
                },
            },
            headers=getattr(exc, "headers", None),
        )

    detail = exc.detail
    message = detail if isinstance(detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": {
                "code": "http_error",
                "message": message,
                "details": detail if not isinstance(detail, str) else None,
            },
        },
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request, exc: RequestValidationError):
    """Body/query validation failures use the same envelope (422)."""
    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "error": {
                "code": "request_validation",
                "message": "Request validation failed",
                "details": {"errors": jsonable_encoder(exc.errors())},
            },
        },
    )


# ── Entrypoint ──────────────────────────────────────────────────────

if __name__ == "__main__":
    import uvicorn
    port = int(os.environ.get("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port, log_level="info")
