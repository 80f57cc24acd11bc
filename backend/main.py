"""
Soulbound Token Registry — FastAPI Application

Non-fungible tokens that are bound to the wallet they were minted to until
the registry admin releases them.
"""
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi import HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from domain.errors import DomainError
from domain.responses import error_code_for, error_response
from routes import auth, health, registry

# ── Logging ─────────────────────────────────────────────────────────

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan ────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: create DB tables and the registry row (when an admin is configured)."""
    # Ensure data/ directory exists for SQLite
    os.makedirs("data", exist_ok=True)

    settings.validate_production_settings()

    from database import init_db, dispose_db, async_session, transaction
    await init_db()
    logger.info("Database initialized")

    if settings.registry_admin_wallet:
        from services import registry_service
        async with async_session() as db:
            async with transaction(db):
                state = await registry_service.init_registry(
                    db,
                    admin_wallet=settings.registry_admin_wallet,
                    base_uri=settings.registry_base_uri,
                    name=settings.registry_name,
                    symbol=settings.registry_symbol,
                )
        if state.admin_wallet != settings.registry_admin_wallet:
            logger.warning(
                "REGISTRY_ADMIN_WALLET differs from the stored admin; "
                "the stored admin stays in charge (use /registry/admin/transfer)"
            )

    yield  # app runs here

    await dispose_db()
    logger.info("Shutting down")


# ── App Factory ─────────────────────────────────────────────────────

app = FastAPI(
    title="Soulbound Token Registry API",
    description="Non-transferable NFTs bound to their owner until released by the registry admin",
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

app.include_router(health.router)
app.include_router(auth.router)
app.include_router(registry.router)


# ── Exception Handlers ──────────────────────────────────────────────

@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """
    Catch-all for unhandled exceptions.

    Never return raw exception details to clients; the traceback is logged.
    """
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content=error_response("internal_server_error", "Internal server error"),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc: HTTPException):
    """
    Standardize HTTPException responses.

    DomainError subclasses carry a message and details; their class name
    becomes the error code.
    """
    if isinstance(exc, DomainError):
        return JSONResponse(
            status_code=exc.status_code,
            content=error_response(error_code_for(exc), exc.message, exc.details),
            headers=exc.headers,
        )

    detail = exc.detail
    message = detail if isinstance(detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(
            "http_error",
            message,
            detail if not isinstance(detail, str) else None,
        ),
        headers=exc.headers,
    )


# ── Entrypoint ──────────────────────────────────────────────────────

if __name__ == "__main__":
    import uvicorn
    port = int(os.environ.get("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port, log_level="info")
