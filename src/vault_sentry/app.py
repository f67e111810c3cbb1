"""FastAPI application factory for Vault Sentry."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from vault_sentry.common.config import get_settings
from vault_sentry.common.exceptions import VaultError
from vault_sentry.common.logging import setup_logging
from vault_sentry.common.schemas import ErrorResponse, HealthResponse

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        from vault_sentry.deps import get_db, get_sector_registry
        db = get_db()
        await db.init()
        await db.create_all()
        async with db.get_session() as session:
            await get_sector_registry().get_settings(session)
        logger.info("Vault Sentry started (%s)", settings.environment)
        yield
        # Shutdown
        await db.close()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(VaultError)
    async def vault_error_handler(request: Request, exc: VaultError):
        if exc.status_code >= 500:
            logger.warning("%s %s refused: %s", request.method, request.url.path, exc.code)
        body = ErrorResponse(error=exc.message, message=exc.message, code=exc.code)
        return JSONResponse(status_code=exc.status_code, content=body.model_dump())

    @app.get("/health", response_model=HealthResponse)
    async def health():
        return HealthResponse(version=settings.api_version)

    # Mount routers
    from vault_sentry.identity.router import router as identity_router
    from vault_sentry.grants.router import router as grants_router
    from vault_sentry.workflow.router import router as workflow_router
    from vault_sentry.files.router import router as files_router
    from vault_sentry.honeypot.router import router as honeypot_router
    from vault_sentry.audit.router import router as audit_router
    from vault_sentry.admin.router import router as admin_router

    prefix = settings.api_prefix
    app.include_router(identity_router, prefix=prefix, tags=["identity"])
    app.include_router(grants_router, prefix=prefix, tags=["grants"])
    app.include_router(workflow_router, prefix=prefix, tags=["workflow"])
    app.include_router(files_router, prefix=prefix, tags=["files"])
    app.include_router(honeypot_router, prefix=prefix, tags=["honeypot"])
    app.include_router(audit_router, prefix=prefix, tags=["audit"])
    app.include_router(admin_router, prefix=prefix, tags=["admin"])

    return app
