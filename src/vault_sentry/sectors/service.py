"""Sector registry, firewall rules and the global lockdown gate."""

import logging
import re

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from vault_sentry.common.config import VaultSettings
from vault_sentry.common.exceptions import (
    DuplicateSectorError,
    InvalidPatternError,
    NotFoundError,
    SectorInUseError,
    ServiceUnavailableError,
)
from vault_sentry.common.models import utcnow
from vault_sentry.common.upsert import insert_for
from vault_sentry.files.models import FileRecordModel
from vault_sentry.sectors.models import (
    SETTINGS_ROW_ID,
    SectorModel,
    SecurityLevel,
    SettingsModel,
)

logger = logging.getLogger(__name__)

DEFAULT_SECTORS: tuple[tuple[str, SecurityLevel], ...] = (
    ("HR", SecurityLevel.LOW),
    ("Engineering", SecurityLevel.MEDIUM),
    ("Finance", SecurityLevel.HIGH),
    ("Executive", SecurityLevel.CRITICAL),
)


def matches_id_pattern(pattern: str, username: str) -> bool:
    """An empty pattern admits every identifier."""
    if not pattern:
        return True
    try:
        return re.fullmatch(pattern, username) is not None
    except re.error:
        # Stored patterns are compiled before commit; a bad row fails closed.
        return False


def domain_allowed(allowed_domain: str, host: str | None) -> bool:
    """True when ``host`` is ``allowed_domain`` or one of its sub-domains."""
    if not allowed_domain:
        return True
    if not host:
        return False
    host = host.lower().rstrip(".")
    domain = allowed_domain.lower().lstrip(".").rstrip(".")
    return host == domain or host.endswith("." + domain)


class SectorRegistry:
    """Department definitions plus the firewall/lockdown settings row.

    The settings row is read fresh at the start of every gated call; there is
    no in-process cache, so several service instances sharing one database
    agree on the lockdown state.
    """

    def __init__(self, settings: VaultSettings, audit_service=None, ledger=None):
        self.settings = settings
        self.audit_service = audit_service
        self.ledger = ledger

    # ── Settings row ──

    async def get_settings(self, session: AsyncSession) -> SettingsModel:
        row = await session.get(SettingsModel, SETTINGS_ROW_ID, populate_existing=True)
        if row is not None:
            return row
        stmt = insert_for(session, SettingsModel).values(
            id=SETTINGS_ROW_ID,
            id_pattern=self.settings.default_id_pattern,
            allowed_domain=self.settings.default_allowed_domain,
            lockdown=False,
            version=1,
            updated_at=utcnow(),
            updated_by="system",
        ).on_conflict_do_nothing(index_elements=["id"])
        await session.execute(stmt)
        return await session.get(SettingsModel, SETTINGS_ROW_ID, populate_existing=True)

    async def is_locked_down(self, session: AsyncSession) -> bool:
        return (await self.get_settings(session)).lockdown

    async def ensure_available(self, session: AsyncSession, user=None) -> None:
        """Lockdown gate: only admins pass while lockdown is engaged."""
        if await self.is_locked_down(session) and (user is None or not user.is_admin):
            raise ServiceUnavailableError()

    async def _write_settings(self, session: AsyncSession, actor: str, **values) -> SettingsModel:
        await self.get_settings(session)
        await session.execute(
            update(SettingsModel)
            .where(SettingsModel.id == SETTINGS_ROW_ID)
            .values(
                version=SettingsModel.version + 1,
                updated_at=utcnow(),
                updated_by=actor,
                **values,
            )
            .execution_options(synchronize_session=False)
        )
        return await session.get(SettingsModel, SETTINGS_ROW_ID, populate_existing=True)

    async def set_lockdown(self, session: AsyncSession, enabled: bool, actor: str) -> SettingsModel:
        row = await self._write_settings(session, actor, lockdown=enabled)
        if enabled:
            logger.warning("Lockdown engaged by %s", actor)
        else:
            logger.info("Lockdown lifted by %s", actor)
        if self.audit_service:
            if enabled:
                await self.audit_service.alert(
                    session, "SYSTEM LOCKDOWN ENGAGED", actor, version=row.version,
                )
            else:
                await self.audit_service.info(
                    session, "System lockdown lifted", actor, version=row.version,
                )
        return row

    async def update_firewall_rules(
        self,
        session: AsyncSession,
        id_pattern: str,
        allowed_domain: str,
        actor: str,
    ) -> SettingsModel:
        """Replace both firewall fields, or neither if the pattern is invalid."""
        if id_pattern:
            try:
                re.compile(id_pattern)
            except re.error as exc:
                raise InvalidPatternError(f"Invalid ID pattern: {exc}") from exc
        row = await self._write_settings(
            session, actor,
            id_pattern=id_pattern,
            allowed_domain=allowed_domain.strip(),
        )
        if self.audit_service:
            await self.audit_service.warn(
                session, "Firewall rules updated", actor,
                id_pattern=id_pattern, allowed_domain=row.allowed_domain,
            )
        return row

    # ── Sectors ──

    async def get_sector(self, session: AsyncSession, name: str) -> SectorModel | None:
        result = await session.execute(
            select(SectorModel).where(SectorModel.name_key == name.strip().lower())
        )
        return result.scalar_one_or_none()

    async def list_sectors(self, session: AsyncSession) -> list[SectorModel]:
        result = await session.execute(select(SectorModel).order_by(SectorModel.name))
        return list(result.scalars().all())

    async def add_sector(
        self,
        session: AsyncSession,
        name: str,
        level: SecurityLevel | str,
        actor: str,
    ) -> SectorModel:
        name = name.strip()
        level = SecurityLevel(level)
        if await self.get_sector(session, name) is not None:
            raise DuplicateSectorError()

        sector = SectorModel(name=name, name_key=name.lower(), security_level=level.value)
        session.add(sector)
        try:
            await session.flush()
        except IntegrityError as exc:
            raise DuplicateSectorError() from exc

        if self.audit_service:
            await self.audit_service.info(
                session, f"Sector {name} commissioned ({level.value})", actor,
                sector=name, security_level=level.value,
            )
        return sector

    async def delete_sector(self, session: AsyncSession, name: str, actor: str) -> int:
        """Decommission an empty sector; returns the number of grants revoked."""
        sector = await self.get_sector(session, name)
        if sector is None:
            raise NotFoundError("Sector not found")

        file_count = (await session.execute(
            select(func.count(FileRecordModel.id))
            .where(FileRecordModel.sector == sector.name)
        )).scalar() or 0
        if file_count:
            raise SectorInUseError(f"Sector still holds {file_count} file(s)")

        revoked = 0
        if self.ledger:
            revoked = await self.ledger.revoke_all(session, sector.name)
        await session.delete(sector)
        await session.flush()

        if self.audit_service:
            await self.audit_service.warn(
                session, f"Sector {sector.name} decommissioned", actor,
                sector=sector.name, grants_revoked=revoked,
            )
        return revoked

    async def seed_defaults(self, session: AsyncSession) -> list[SectorModel]:
        """Create the stock sectors that do not exist yet."""
        created = []
        for name, level in DEFAULT_SECTORS:
            if await self.get_sector(session, name) is None:
                created.append(await self.add_sector(session, name, level, "system"))
        return created
