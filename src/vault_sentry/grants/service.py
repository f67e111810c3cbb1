"""Access grant ledger: issue, extend, revoke and query sector grants."""

import logging
from datetime import datetime, timedelta
from typing import Any, Callable

from sqlalchemy import and_, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from vault_sentry.common.config import VaultSettings
from vault_sentry.common.models import as_utc, generate_uuid, utcnow
from vault_sentry.common.upsert import insert_for
from vault_sentry.files.models import FileRecordModel
from vault_sentry.grants.models import AccessGrantModel
from vault_sentry.sectors.models import SectorModel

logger = logging.getLogger(__name__)


class GrantLedger:
    """Time-limited (user, sector) authorisations.

    "Has access" is never stored: it is ``expires_at > now`` evaluated at
    query time.
    """

    def __init__(
        self,
        settings: VaultSettings,
        audit_service=None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.settings = settings
        self.audit_service = audit_service
        self.clock = clock

    async def active_grant(
        self, session: AsyncSession, user_id: str, sector: str,
    ) -> AccessGrantModel | None:
        result = await session.execute(
            select(AccessGrantModel).where(
                and_(
                    AccessGrantModel.user_id == user_id,
                    AccessGrantModel.sector == sector,
                    AccessGrantModel.expires_at > self.clock(),
                )
            )
        )
        return result.scalar_one_or_none()

    async def grant_exists(self, session: AsyncSession, user_id: str, sector: str) -> bool:
        return await self.active_grant(session, user_id, sector) is not None

    async def issue(
        self,
        session: AsyncSession,
        user_id: str,
        sector: str,
        duration_minutes: int,
        actor: str = "system",
    ) -> AccessGrantModel:
        """Create or extend a grant to ``now + duration``.

        Extension replaces the expiry, it never adds to it. The write is a
        single upsert on the (user_id, sector) key, so concurrent issues for
        the same key serialise in the database and the last one wins whole.
        """
        if not 1 <= duration_minutes <= self.settings.max_grant_minutes:
            raise ValueError(
                f"duration_minutes must be between 1 and {self.settings.max_grant_minutes}"
            )
        now = self.clock()
        expires_at = now + timedelta(minutes=duration_minutes)

        stmt = insert_for(session, AccessGrantModel).values(
            id=generate_uuid(),
            user_id=user_id,
            sector=sector,
            expires_at=expires_at,
            created_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "sector"],
            set_={"expires_at": stmt.excluded.expires_at},
        )
        await session.execute(stmt)

        result = await session.execute(
            select(AccessGrantModel)
            .where(
                AccessGrantModel.user_id == user_id,
                AccessGrantModel.sector == sector,
            )
            .execution_options(populate_existing=True)
        )
        grant = result.scalar_one()

        if self.audit_service:
            await self.audit_service.info(
                session,
                f"Access to {sector} granted for {duration_minutes}m",
                actor,
                user_id=user_id,
                sector=sector,
                expires_at=expires_at.isoformat(),
            )
        return grant

    async def revoke_all(self, session: AsyncSession, sector: str) -> int:
        """Expire every active grant on a sector immediately."""
        now = self.clock()
        result = await session.execute(
            update(AccessGrantModel)
            .where(
                AccessGrantModel.sector == sector,
                AccessGrantModel.expires_at > now,
            )
            .values(expires_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            logger.info("Revoked %d grant(s) on sector %s", result.rowcount, sector)
        return result.rowcount or 0

    async def summary(self, session: AsyncSession, user) -> dict[str, dict[str, Any]]:
        """Per-sector file count, access flag and the caller's own expiry."""
        sectors = (await session.execute(
            select(SectorModel).order_by(SectorModel.name)
        )).scalars().all()

        counts = dict((await session.execute(
            select(FileRecordModel.sector, func.count(FileRecordModel.id))
            .group_by(FileRecordModel.sector)
        )).all())

        grants = (await session.execute(
            select(AccessGrantModel.sector, AccessGrantModel.expires_at).where(
                AccessGrantModel.user_id == user.id,
                AccessGrantModel.expires_at > self.clock(),
            )
        )).all()
        expiries = {sector: as_utc(expires_at) for sector, expires_at in grants}

        stats = {}
        for sector in sectors:
            expires_at = expiries.get(sector.name)
            stats[sector.name] = {
                "count": counts.get(sector.name, 0),
                "hasAccess": user.is_admin or expires_at is not None,
                "expiresAt": expires_at,
                "securityLevel": sector.security_level,
            }
        return stats
