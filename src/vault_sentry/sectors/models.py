"""SQLAlchemy models for sectors and the global firewall settings row."""

import enum
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from vault_sentry.common.models import Base, TimestampMixin, generate_uuid, utcnow

SETTINGS_ROW_ID = 1


class SecurityLevel(str, enum.Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class SectorModel(Base, TimestampMixin):
    __tablename__ = "sectors"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    # Lower-cased name; uniqueness is case-insensitive.
    name_key: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    security_level: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SecurityLevel.LOW.value
    )


class SettingsModel(Base):
    """Single versioned row holding firewall rules and the lockdown switch."""

    __tablename__ = "vault_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    id_pattern: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    allowed_domain: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    lockdown: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_by: Mapped[str] = mapped_column(String(255), nullable=False, default="system")
