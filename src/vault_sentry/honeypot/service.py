"""Incident responder: record trap triggers and flag the intruder."""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vault_sentry.common.config import VaultSettings
from vault_sentry.honeypot.geo import GeoLocator
from vault_sentry.honeypot.models import HoneypotIncidentModel

logger = logging.getLogger(__name__)


class IncidentResponder:
    """Honeypot back end.

    Every trigger is recorded (duplicates included, for forensics) and yields
    exactly one ALERT audit entry. Flagging is idempotent: an identity that
    is already flagged stays flagged and is not flagged again.
    """

    def __init__(
        self,
        settings: VaultSettings,
        identity_service,
        audit_service=None,
        locator: Optional[GeoLocator] = None,
    ):
        self.settings = settings
        self.identity_service = identity_service
        self.audit_service = audit_service
        self.locator = locator or GeoLocator(settings.geo_lookup_url, settings.geo_timeout)

    async def trace_and_flag(
        self,
        session: AsyncSession,
        source_ip: str,
        user_agent: str = "",
        user=None,
    ) -> tuple[HoneypotIncidentModel, bool]:
        """Returns (incident, newly_flagged)."""
        geo = await self.locator.lookup(source_ip)

        incident = HoneypotIncidentModel(
            source_ip=source_ip,
            user_agent=user_agent,
            geo_city=geo.city,
            geo_isp=geo.isp,
            lat=geo.lat,
            lon=geo.lon,
            associated_user_id=user.id if user is not None else None,
        )
        session.add(incident)
        await session.flush()

        newly_flagged = False
        if user is not None:
            newly_flagged = await self.identity_service.flag_user(session, user.id)

        who = user.username if user is not None else "anonymous"
        logger.warning(
            "Honeypot triggered from %s (%s) by %s", source_ip, geo.city, who,
        )
        if self.audit_service:
            await self.audit_service.alert(
                session,
                f"HONEYPOT TRIGGERED from {source_ip} ({geo.city}, {geo.isp})"
                + (f"; identity {who} flagged" if newly_flagged else ""),
                who,
                incident_id=incident.id,
                source_ip=source_ip,
                user_agent=user_agent,
                lat=geo.lat,
                lon=geo.lon,
                newly_flagged=newly_flagged,
            )
        return incident, newly_flagged

    async def list_incidents(self, session: AsyncSession, limit: int = 50) -> list[HoneypotIncidentModel]:
        result = await session.execute(
            select(HoneypotIncidentModel)
            .order_by(HoneypotIncidentModel.triggered_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
