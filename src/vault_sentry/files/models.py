"""SQLAlchemy model for file metadata records."""

import enum

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from vault_sentry.common.models import Base, TimestampMixin, generate_uuid


class LockState(str, enum.Enum):
    LOCKED = "Locked"
    UNLOCKED = "Unlocked"


class FileRecordModel(Base, TimestampMixin):
    """Ownership, sector and lock state of a stored file.

    The bytes themselves live elsewhere; this row only tags them.
    """

    __tablename__ = "file_records"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    owner_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    sector: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    lock_state: Mapped[str] = mapped_column(String(10), nullable=False, default=LockState.UNLOCKED.value)
    credential_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
