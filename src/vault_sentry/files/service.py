"""File catalogue: sector listings, uploads and owner-only mutation."""

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from vault_sentry.common.config import VaultSettings
from vault_sentry.common.exceptions import (
    AccessDeniedError,
    NotFoundError,
    SectorNotFoundError,
)
from vault_sentry.common.security import FILE_CONTEXT, hash_secret, verify_secret
from vault_sentry.files.models import FileRecordModel, LockState
from vault_sentry.identity.models import UserModel

logger = logging.getLogger(__name__)

ACCESS_ADMIN = "ADMIN"
ACCESS_STANDARD = "STANDARD"


class FileCatalogue:
    """File metadata scoped to sectors, guarded by grants and ownership."""

    def __init__(self, settings: VaultSettings, registry, ledger, audit_service=None):
        self.settings = settings
        self.registry = registry
        self.ledger = ledger
        self.audit_service = audit_service

    # ── Guards ──

    async def _require_sector(self, session: AsyncSession, name: str):
        sector = await self.registry.get_sector(session, name)
        if sector is None:
            raise SectorNotFoundError()
        return sector

    async def _require_access(self, session: AsyncSession, user, sector_name: str) -> None:
        if user.is_admin:
            return
        if not await self.ledger.grant_exists(session, user.id, sector_name):
            raise AccessDeniedError()

    async def _owned_file(self, session: AsyncSession, file_id: str, user) -> FileRecordModel:
        # A missing id and someone else's file look the same to the caller.
        record = await session.get(FileRecordModel, file_id)
        if record is None or (record.owner_id != user.id and not user.is_admin):
            raise AccessDeniedError()
        return record

    # ── Reads ──

    async def _listing(self, session: AsyncSession, sector_obj, user) -> list[FileRecordModel]:
        await self._require_access(session, user, sector_obj.name)
        result = await session.execute(
            select(FileRecordModel)
            .where(FileRecordModel.sector == sector_obj.name)
            .order_by(FileRecordModel.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_files(self, session: AsyncSession, sector: str, user) -> list[FileRecordModel]:
        await self.registry.ensure_available(session, user)
        sector_obj = await self._require_sector(session, sector)
        return await self._listing(session, sector_obj, user)

    async def enter_sector(
        self, session: AsyncSession, user, sector: str, credential: str,
    ) -> tuple[list[FileRecordModel], str]:
        """Re-verify the caller's credential, then open the sector listing.

        A wrong credential and a missing grant produce the same denial; only a
        decommissioned sector is reported distinctly.
        """
        await self.registry.ensure_available(session, user)
        sector_obj = await self._require_sector(session, sector)
        if not verify_secret(credential, user.credential_hash):
            raise AccessDeniedError()
        files = await self._listing(session, sector_obj, user)
        return files, ACCESS_ADMIN if user.is_admin else ACCESS_STANDARD

    async def list_all(self, session: AsyncSession) -> list[FileRecordModel]:
        result = await session.execute(
            select(FileRecordModel).order_by(FileRecordModel.created_at.desc())
        )
        return list(result.scalars().all())

    async def count_by_sector(self, session: AsyncSession) -> dict[str, int]:
        result = await session.execute(
            select(FileRecordModel.sector, func.count(FileRecordModel.id))
            .group_by(FileRecordModel.sector)
        )
        return dict(result.all())

    async def owner_names(
        self, session: AsyncSession, files: list[FileRecordModel],
    ) -> dict[str, str]:
        """Map owner ids to usernames; owners since removed map to their id."""
        owner_ids = {f.owner_id for f in files}
        if not owner_ids:
            return {}
        result = await session.execute(
            select(UserModel.id, UserModel.username).where(UserModel.id.in_(owner_ids))
        )
        names = dict(result.all())
        return {oid: names.get(oid, oid) for oid in owner_ids}

    # ── Writes ──

    async def upload(
        self,
        session: AsyncSession,
        user,
        sector: str,
        filename: str,
        passcode: str = "",
        lock_state: LockState | str = LockState.LOCKED,
    ) -> FileRecordModel:
        await self.registry.ensure_available(session, user)
        lock_state = LockState(lock_state)
        sector_obj = await self._require_sector(session, sector)
        await self._require_access(session, user, sector_obj.name)

        credential_hash = None
        if lock_state is LockState.LOCKED:
            if not passcode:
                raise ValueError("Locked files require a passcode")
            credential_hash = hash_secret(passcode, FILE_CONTEXT)

        record = FileRecordModel(
            filename=filename.strip(),
            owner_id=user.id,
            sector=sector_obj.name,
            lock_state=lock_state.value,
            credential_hash=credential_hash,
        )
        session.add(record)
        await session.flush()

        if self.audit_service:
            await self.audit_service.info(
                session,
                f"{user.username} uploaded {record.filename} to {sector_obj.name}",
                user.username,
                file_id=record.id,
                sector=sector_obj.name,
                lock_state=record.lock_state,
            )
        return record

    async def unlock(
        self, session: AsyncSession, user, file_id: str, passcode: str,
    ) -> FileRecordModel:
        """Check a file's own passcode; unlocked files always open."""
        await self.registry.ensure_available(session, user)
        record = await session.get(FileRecordModel, file_id)
        if record is None:
            raise AccessDeniedError()
        await self._require_access(session, user, record.sector)
        if record.lock_state == LockState.LOCKED.value and not verify_secret(
            passcode, record.credential_hash, FILE_CONTEXT,
        ):
            logger.warning("Bad passcode for file %s by %s", file_id, user.username)
            raise AccessDeniedError()
        return record

    async def rename(
        self, session: AsyncSession, file_id: str, new_name: str, user,
    ) -> FileRecordModel:
        await self.registry.ensure_available(session, user)
        record = await self._owned_file(session, file_id, user)
        old_name = record.filename
        record.filename = new_name.strip()
        await session.flush()

        if self.audit_service:
            await self.audit_service.info(
                session,
                f"{user.username} renamed {old_name} to {record.filename}",
                user.username,
                file_id=record.id,
                sector=record.sector,
            )
        return record

    async def delete(self, session: AsyncSession, file_id: str, user) -> None:
        await self.registry.ensure_available(session, user)
        record = await self._owned_file(session, file_id, user)
        await session.delete(record)
        await session.flush()

        if self.audit_service:
            await self.audit_service.warn(
                session,
                f"{user.username} deleted {record.filename} from {record.sector}",
                user.username,
                file_id=file_id,
                sector=record.sector,
            )

    async def admin_delete(self, session: AsyncSession, file_id: str, admin) -> None:
        """Delete any file regardless of owner."""
        record = await session.get(FileRecordModel, file_id)
        if record is None:
            raise NotFoundError("File not found")
        await session.delete(record)
        await session.flush()

        if self.audit_service:
            await self.audit_service.warn(
                session,
                f"Admin purged {record.filename} from {record.sector}",
                admin.username,
                file_id=file_id,
                sector=record.sector,
                owner_id=record.owner_id,
            )
