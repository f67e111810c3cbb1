"""Dashboard summary router."""

from fastapi import APIRouter, Depends

from vault_sentry.common.security import require_user
from vault_sentry.grants.schemas import DashboardStatsResponse, SectorStats

router = APIRouter()


def _get_service():
    from vault_sentry.deps import get_grant_ledger
    return get_grant_ledger()


def _get_db():
    from vault_sentry.deps import get_db
    return get_db()


@router.get("/dashboard-stats", response_model=DashboardStatsResponse)
async def dashboard_stats(user=Depends(require_user)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        stats = await svc.summary(session, user)
        return DashboardStatsResponse(
            stats={name: SectorStats(**info) for name, info in stats.items()},
            fullName=user.full_name,
            username=user.username,
            role=user.role,
        )
