"""Identity API router: register, login, migrate."""

from urllib.parse import urlsplit

from fastapi import APIRouter, Request

from vault_sentry.common.schemas import OkResponse
from vault_sentry.identity.schemas import (
    LoginRequest,
    LoginResponse,
    MigrateRequest,
    RegisterRequest,
    RegisterResponse,
)

router = APIRouter()


def _get_service():
    from vault_sentry.deps import get_identity_service
    return get_identity_service()


def _get_db():
    from vault_sentry.deps import get_db
    return get_db()


def origin_host(request: Request) -> str:
    """Host the request claims to come from: Origin header, else Host."""
    origin = request.headers.get("origin")
    if origin:
        return urlsplit(origin).hostname or ""
    host = request.headers.get("host", "")
    return urlsplit(f"//{host}").hostname or ""


@router.post("/register", response_model=RegisterResponse, status_code=201)
async def register(body: RegisterRequest, request: Request):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        await svc.register(
            session,
            full_name=body.full_name,
            username=body.username,
            credential=body.password,
            origin_host=origin_host(request),
        )
    return RegisterResponse()


@router.post("/login", response_model=LoginResponse)
async def login(body: LoginRequest, request: Request):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        outcome = await svc.login(
            session, body.username, body.password, origin_host=origin_host(request),
        )
        return LoginResponse(
            token=outcome.token,
            role=outcome.user.role,
            route=outcome.route,
            fullName=outcome.user.full_name,
            username=outcome.user.username,
        )


@router.post("/migrate-identity", response_model=OkResponse)
async def migrate_identity(body: MigrateRequest):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        user = await svc.migrate(
            session, body.old_username, body.password, body.new_username,
        )
        return OkResponse(message=f"Identity migrated to {user.username}. Please log in again.")
