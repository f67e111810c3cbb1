"""Trap endpoint called from the decoy surface. Unauthenticated, never gated."""

from fastapi import APIRouter, Depends, Request

from vault_sentry.common.security import optional_user
from vault_sentry.honeypot.schemas import TrapTriggerRequest, TrapTriggerResponse

router = APIRouter()


def _get_service():
    from vault_sentry.deps import get_incident_responder
    return get_incident_responder()


def _get_db():
    from vault_sentry.deps import get_db
    return get_db()


def source_ip(body: TrapTriggerRequest, request: Request) -> str:
    if body.ip:
        return body.ip
    forwarded = request.headers.get("x-forwarded-for", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


@router.post("/trap-trigger", response_model=TrapTriggerResponse)
async def trap_trigger(
    body: TrapTriggerRequest, request: Request, user=Depends(optional_user),
):
    svc = _get_service()
    db = _get_db()
    user_agent = body.user_agent or request.headers.get("user-agent", "")
    async with db.get_session() as session:
        await svc.trace_and_flag(session, source_ip(body, request), user_agent, user=user)
    return TrapTriggerResponse()
