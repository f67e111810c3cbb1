"""Audit service: append, verify, and query the security event log."""

import hashlib
import hmac as hmac_mod
import json
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from vault_sentry.common.config import VaultSettings
from vault_sentry.common.upsert import insert_for
from vault_sentry.audit.models import KINDS, AuditHeadModel, AuditLogModel


class AuditService:
    """Append-only, hash-chained log of security-relevant events.

    Entries are never edited or removed through this service; each one
    links to its predecessor's hash and carries an HMAC signature, so an
    out-of-band edit shows up in ``verify_chain``.
    """

    def __init__(self, settings: VaultSettings):
        self.settings = settings

    # ── Write ──

    async def record(
        self,
        session: AsyncSession,
        kind: str,
        message: str,
        actor: str = "system",
        detail: dict[str, Any] | None = None,
    ) -> AuditLogModel:
        """Append one entry to the log."""
        if kind not in KINDS:
            raise ValueError(f"Unknown audit kind: {kind!r}")
        detail = detail or {}

        await self._lock_head(session)
        head = await self.get_head(session)
        prev_hash = head.entry_hash if head else None

        entry_hash = self._compute_entry_hash(kind, message, actor, detail, prev_hash)
        entry = AuditLogModel(
            kind=kind,
            message=message,
            actor=actor,
            detail=detail,
            prev_hash=prev_hash,
            entry_hash=entry_hash,
            signature=self._sign(entry_hash),
        )
        session.add(entry)
        await session.flush()
        return entry

    async def info(self, session: AsyncSession, message: str, actor: str = "system", **detail: Any) -> AuditLogModel:
        return await self.record(session, "INFO", message, actor, detail)

    async def warn(self, session: AsyncSession, message: str, actor: str = "system", **detail: Any) -> AuditLogModel:
        return await self.record(session, "WARN", message, actor, detail)

    async def alert(self, session: AsyncSession, message: str, actor: str = "system", **detail: Any) -> AuditLogModel:
        return await self.record(session, "ALERT", message, actor, detail)

    # ── Read ──

    async def get_head(self, session: AsyncSession) -> AuditLogModel | None:
        """Return the most recent entry."""
        result = await session.execute(
            select(AuditLogModel).order_by(AuditLogModel.id.desc()).limit(1)
        )
        return result.scalar_one_or_none()

    async def recent(
        self,
        session: AsyncSession,
        limit: int = 50,
        kind: str | None = None,
        offset: int = 0,
    ) -> list[AuditLogModel]:
        """Paginated entry list, newest first."""
        query = select(AuditLogModel)
        if kind:
            query = query.where(AuditLogModel.kind == kind)
        query = query.order_by(AuditLogModel.id.desc()).offset(offset).limit(limit)
        result = await session.execute(query)
        return list(result.scalars().all())

    # ── Verify ──

    async def verify_chain(self, session: AsyncSession) -> dict[str, Any]:
        """Walk the log oldest→newest, verify hashes and signatures."""
        result = await session.execute(
            select(AuditLogModel).order_by(AuditLogModel.id.asc())
        )
        entries = list(result.scalars().all())

        prev_hash = None
        for checked, entry in enumerate(entries):
            expected_hash = self._compute_entry_hash(
                entry.kind, entry.message, entry.actor, entry.detail, entry.prev_hash,
            )
            if (
                entry.prev_hash != prev_hash
                or entry.entry_hash != expected_hash
                or not self._verify_signature(entry.entry_hash, entry.signature)
            ):
                return {"valid": False, "entries_checked": checked, "break_at": entry.id}
            prev_hash = entry.entry_hash

        return {"valid": True, "entries_checked": len(entries), "break_at": None}

    # ── Internal helpers ──

    async def _lock_head(self, session: AsyncSession) -> None:
        """Bump the append counter; its row lock is held until commit."""
        await session.execute(
            insert_for(session, AuditHeadModel)
            .values(id=1, seq=0)
            .on_conflict_do_nothing(index_elements=["id"])
        )
        await session.execute(
            update(AuditHeadModel)
            .where(AuditHeadModel.id == 1)
            .values(seq=AuditHeadModel.seq + 1)
            .execution_options(synchronize_session=False)
        )

    @staticmethod
    def _compute_entry_hash(
        kind: str,
        message: str,
        actor: str,
        detail: dict[str, Any],
        prev_hash: str | None,
    ) -> str:
        """SHA-256 of canonical JSON of the entry fields."""
        canonical = json.dumps(
            {
                "kind": kind,
                "message": message,
                "actor": actor,
                "detail": detail,
                "prev_hash": prev_hash,
            },
            sort_keys=True,
            separators=(",", ":"),
            default=str,
        )
        return hashlib.sha256(canonical.encode()).hexdigest()

    def _sign(self, entry_hash: str) -> str:
        return hmac_mod.new(
            self.settings.current_hmac_key.encode(),
            entry_hash.encode(),
            hashlib.sha256,
        ).hexdigest()

    def _verify_signature(self, entry_hash: str, signature: str) -> bool:
        """Verify signature against all keys in the keyring."""
        for _version, key in self.settings.hmac_keyring.items():
            expected = hmac_mod.new(
                key.encode(), entry_hash.encode(), hashlib.sha256,
            ).hexdigest()
            if hmac_mod.compare_digest(expected, signature):
                return True
        return False
