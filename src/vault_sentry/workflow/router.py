"""Access request router (requester side)."""

from fastapi import APIRouter, Depends

from vault_sentry.common.models import as_utc
from vault_sentry.common.security import require_user
from vault_sentry.workflow.models import AccessRequestModel
from vault_sentry.workflow.schemas import AccessRequestCreate, AccessRequestResponse

router = APIRouter()


def _get_service():
    from vault_sentry.deps import get_request_workflow
    return get_request_workflow()


def _get_db():
    from vault_sentry.deps import get_db
    return get_db()


def to_request_response(r: AccessRequestModel, username: str = "") -> AccessRequestResponse:
    return AccessRequestResponse(
        id=r.id,
        requesterId=r.requester_id,
        username=username,
        department=r.sector,
        duration=r.duration_minutes,
        reason=r.reason,
        status=r.status,
        requestedAt=as_utc(r.requested_at),
        decidedAt=as_utc(r.decided_at),
        decidedBy=r.decided_by,
    )


@router.post("/request-access", response_model=AccessRequestResponse, status_code=201)
async def request_access(body: AccessRequestCreate, user=Depends(require_user)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        request = await svc.submit(
            session, user, body.department, body.duration, body.reason,
        )
        return to_request_response(request, user.username)
