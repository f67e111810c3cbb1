"""SQLAlchemy model and role state machine for user identities."""

import enum

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from vault_sentry.common.models import Base, TimestampMixin, generate_uuid


class Role(str, enum.Enum):
    STANDARD = "standard"
    ADMIN = "admin"
    FLAGGED = "flagged"


# The only role change this core performs: the incident responder flagging
# a standard user. Nothing leads out of FLAGGED.
ROLE_TRANSITIONS: dict[Role, frozenset[Role]] = {
    Role.STANDARD: frozenset({Role.FLAGGED}),
    Role.ADMIN: frozenset(),
    Role.FLAGGED: frozenset(),
}


def can_transition(current: Role, target: Role) -> bool:
    return target in ROLE_TRANSITIONS[current]


class UserModel(Base, TimestampMixin):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    username: Mapped[str] = mapped_column(String(150), unique=True, nullable=False, index=True)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    credential_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=Role.STANDARD.value, index=True)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value

    @property
    def is_flagged(self) -> bool:
        return self.role == Role.FLAGGED.value
