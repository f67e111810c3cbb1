"""SQLAlchemy model for captured honeypot incidents."""

from datetime import datetime

from sqlalchemy import DateTime, Float, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from vault_sentry.common.models import Base, generate_uuid, utcnow


class HoneypotIncidentModel(Base):
    __tablename__ = "honeypot_incidents"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    source_ip: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    user_agent: Mapped[str] = mapped_column(Text, default="")
    geo_city: Mapped[str] = mapped_column(String(255), default="UNKNOWN")
    geo_isp: Mapped[str] = mapped_column(String(255), default="UNKNOWN")
    lat: Mapped[float | None] = mapped_column(Float, nullable=True)
    lon: Mapped[float | None] = mapped_column(Float, nullable=True)
    triggered_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )
    associated_user_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
