"""Admin console snapshot: one pull-based read of everything the console shows.

The console polls this every ``poll_interval`` seconds; that interval is the
staleness bound for every view except the lockdown flag, which the admin who
set it reads back immediately.
"""

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vault_sentry.common.config import VaultSettings
from vault_sentry.identity.models import UserModel


class AdminConsole:
    def __init__(
        self,
        settings: VaultSettings,
        registry,
        files,
        workflow,
        audit_service,
        incidents,
    ):
        self.settings = settings
        self.registry = registry
        self.files = files
        self.workflow = workflow
        self.audit_service = audit_service
        self.incidents = incidents

    async def usernames(self, session: AsyncSession, user_ids: set[str]) -> dict[str, str]:
        if not user_ids:
            return {}
        result = await session.execute(
            select(UserModel.id, UserModel.username).where(UserModel.id.in_(user_ids))
        )
        names = dict(result.all())
        return {uid: names.get(uid, uid) for uid in user_ids}

    async def snapshot(self, session: AsyncSession, log_limit: int = 50) -> dict[str, Any]:
        rules = await self.registry.get_settings(session)
        files = await self.files.list_all(session)
        requests = await self.workflow.list_requests(session)
        names = await self.usernames(
            session,
            {f.owner_id for f in files} | {r.requester_id for r in requests},
        )
        return {
            "settings": rules,
            "files": [(f, names[f.owner_id]) for f in files],
            "requests": [(r, names[r.requester_id]) for r in requests],
            "logs": await self.audit_service.recent(session, limit=log_limit),
            "incidents": await self.incidents.list_incidents(session),
            "sectors": await self.registry.list_sectors(session),
            "fileCounts": await self.files.count_by_sector(session),
            "pollInterval": self.settings.poll_interval,
        }
