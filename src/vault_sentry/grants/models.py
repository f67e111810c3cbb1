"""SQLAlchemy model for time-boxed sector access grants."""

from datetime import datetime

from sqlalchemy import DateTime, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from vault_sentry.common.models import Base, TimestampMixin, generate_uuid


class AccessGrantModel(Base, TimestampMixin):
    """One row per (user, sector); expired rows are inert and get reused."""

    __tablename__ = "access_grants"
    __table_args__ = (
        UniqueConstraint("user_id", "sector", name="uq_grant_user_sector"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    sector: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
