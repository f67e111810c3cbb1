"""Request workflow: submit access requests and decide them exactly once."""

import logging
from datetime import datetime
from typing import Callable

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from vault_sentry.common.config import VaultSettings
from vault_sentry.common.exceptions import (
    AlreadyDecidedError,
    InvalidSectorError,
    NotFoundError,
)
from vault_sentry.common.models import utcnow
from vault_sentry.identity.models import UserModel
from vault_sentry.workflow.models import AccessRequestModel, Decision, RequestStatus

logger = logging.getLogger(__name__)


class RequestWorkflow:
    """Pending → {Approved, Denied}; terminal states never change."""

    def __init__(
        self,
        settings: VaultSettings,
        registry,
        ledger,
        audit_service=None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.settings = settings
        self.registry = registry
        self.ledger = ledger
        self.audit_service = audit_service
        self.clock = clock

    async def submit(
        self,
        session: AsyncSession,
        requester,
        sector: str,
        duration_minutes: int,
        reason: str = "",
    ) -> AccessRequestModel:
        await self.registry.ensure_available(session, requester)
        sector_obj = await self.registry.get_sector(session, sector)
        if sector_obj is None:
            raise InvalidSectorError()
        if not 1 <= duration_minutes <= self.settings.max_grant_minutes:
            raise ValueError(
                f"duration_minutes must be between 1 and {self.settings.max_grant_minutes}"
            )

        request = AccessRequestModel(
            requester_id=requester.id,
            sector=sector_obj.name,
            duration_minutes=duration_minutes,
            reason=reason.strip(),
            status=RequestStatus.PENDING.value,
            requested_at=self.clock(),
        )
        session.add(request)
        await session.flush()

        if self.audit_service:
            await self.audit_service.info(
                session,
                f"{requester.username} requested {duration_minutes}m access to {sector_obj.name}",
                requester.username,
                request_id=request.id,
                sector=sector_obj.name,
            )
        return request

    async def get_request(self, session: AsyncSession, request_id: str) -> AccessRequestModel | None:
        return await session.get(AccessRequestModel, request_id, populate_existing=True)

    async def decide(
        self,
        session: AsyncSession,
        request_id: str,
        action: Decision | str,
        decided_by: str,
    ) -> AccessRequestModel:
        """Move a Pending request to its terminal state.

        The transition is a single compare-and-set UPDATE guarded on
        ``status = 'Pending'``: when two deciders race, exactly one update
        matches and the other sees ``AlreadyDecidedError``.
        """
        action = Decision(action)
        request = await self.get_request(session, request_id)
        if request is None:
            raise NotFoundError("Request not found")
        if action is Decision.APPROVE and await self.registry.get_sector(session, request.sector) is None:
            raise InvalidSectorError()

        result = await session.execute(
            update(AccessRequestModel)
            .where(
                AccessRequestModel.id == request_id,
                AccessRequestModel.status == RequestStatus.PENDING.value,
            )
            .values(
                status=action.outcome.value,
                decided_at=self.clock(),
                decided_by=decided_by,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning(
                "Decision %s on request %s by %s rejected: already decided",
                action.value, request_id, decided_by,
            )
            raise AlreadyDecidedError()

        request = await self.get_request(session, request_id)
        if action is Decision.APPROVE:
            await self.ledger.issue(
                session, request.requester_id, request.sector,
                request.duration_minutes, actor=decided_by,
            )

        if self.audit_service:
            requester = await session.get(UserModel, request.requester_id)
            name = requester.username if requester else request.requester_id
            await self.audit_service.record(
                session,
                "INFO" if action is Decision.APPROVE else "WARN",
                f"Request by {name} for {request.sector} {action.outcome.value.upper()}",
                decided_by,
                {
                    "request_id": request.id,
                    "requester": name,
                    "sector": request.sector,
                    "outcome": action.outcome.value,
                },
            )
        return request

    async def list_requests(
        self,
        session: AsyncSession,
        status: RequestStatus | str | None = None,
        limit: int = 100,
    ) -> list[AccessRequestModel]:
        """Requests newest first, optionally filtered by status."""
        query = select(AccessRequestModel)
        if status is not None:
            query = query.where(AccessRequestModel.status == RequestStatus(status).value)
        query = query.order_by(AccessRequestModel.requested_at.desc()).limit(limit)
        result = await session.execute(query)
        return list(result.scalars().all())

    async def pending(self, session: AsyncSession) -> list[AccessRequestModel]:
        return await self.list_requests(session, RequestStatus.PENDING)
