"""Audit log API router (admin only)."""

from fastapi import APIRouter, Depends, Query

from vault_sentry.common.models import as_utc
from vault_sentry.common.security import require_admin
from vault_sentry.audit.models import AuditLogModel
from vault_sentry.audit.schemas import AuditChainVerification, AuditEntryResponse

router = APIRouter()


def _get_service():
    from vault_sentry.deps import get_audit_service
    return get_audit_service()


def _get_db():
    from vault_sentry.deps import get_db
    return get_db()


def to_entry_response(e: AuditLogModel) -> AuditEntryResponse:
    return AuditEntryResponse(
        id=e.id,
        timestamp=as_utc(e.timestamp),
        kind=e.kind,
        message=e.message,
        actor=e.actor,
        detail=e.detail or {},
    )


@router.get("/admin/audit", response_model=list[AuditEntryResponse])
async def list_audit_entries(
    kind: str | None = Query(None, pattern="^(INFO|WARN|ALERT)$"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    _=Depends(require_admin),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        entries = await svc.recent(session, limit=limit, kind=kind, offset=offset)
        return [to_entry_response(e) for e in entries]


@router.get("/admin/audit/verify", response_model=AuditChainVerification)
async def verify_audit_chain(_=Depends(require_admin)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        result = await svc.verify_chain(session)
        return AuditChainVerification(**result)
