"""Identity service: registration, login state machine, migration, flagging."""

import enum
import logging
import re
from dataclasses import dataclass

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from vault_sentry.common.config import VaultSettings
from vault_sentry.common.exceptions import (
    AccessDeniedError,
    DuplicateUsernameError,
    InvalidCredentialError,
    LoginDeniedError,
    MigrationRequiredError,
    PatternMismatchError,
    WeakCredentialError,
)
from vault_sentry.common.security import create_token, dummy_hash, hash_secret, verify_secret
from vault_sentry.identity.models import Role, UserModel, can_transition
from vault_sentry.sectors.service import domain_allowed, matches_id_pattern

logger = logging.getLogger(__name__)

_DIGIT = re.compile(r"\d")
_SYMBOL = re.compile(r"[^A-Za-z0-9\s]")


class LoginState(str, enum.Enum):
    """Terminal states of one login attempt."""

    GRANTED = "granted"
    DENIED = "denied"
    MIGRATION_REQUIRED = "migration_required"
    TRAPPED = "trapped"


# Where the client sends each role after login.
ROLE_ROUTES = {
    Role.ADMIN.value: "console",
    Role.STANDARD.value: "dashboard",
    Role.FLAGGED.value: "decoy",
}


@dataclass
class LoginOutcome:
    state: LoginState
    user: UserModel
    token: str

    @property
    def route(self) -> str:
        return ROLE_ROUTES[self.user.role]


class IdentityService:
    """User records and the per-attempt login state machine."""

    def __init__(self, settings: VaultSettings, registry, audit_service=None):
        self.settings = settings
        self.registry = registry
        self.audit_service = audit_service

    # ── Lookups ──

    async def get_user(self, session: AsyncSession, user_id: str) -> UserModel | None:
        return await session.get(UserModel, user_id, populate_existing=True)

    async def get_by_username(self, session: AsyncSession, username: str) -> UserModel | None:
        result = await session.execute(
            select(UserModel).where(UserModel.username == username)
        )
        return result.scalar_one_or_none()

    async def list_users(self, session: AsyncSession) -> list[UserModel]:
        result = await session.execute(select(UserModel).order_by(UserModel.created_at))
        return list(result.scalars().all())

    # ── Policy ──

    def check_credential_policy(self, credential: str) -> None:
        """Minimum length, at least one digit and at least one symbol."""
        if (
            len(credential) < self.settings.min_credential_length
            or not _DIGIT.search(credential)
            or not _SYMBOL.search(credential)
        ):
            raise WeakCredentialError()

    async def _ensure_username_free(self, session: AsyncSession, username: str) -> None:
        if await self.get_by_username(session, username) is not None:
            raise DuplicateUsernameError()

    async def _insert_user(
        self, session: AsyncSession, full_name: str, username: str, credential: str, role: Role,
    ) -> UserModel:
        user = UserModel(
            username=username,
            full_name=full_name,
            credential_hash=hash_secret(credential),
            role=role.value,
        )
        session.add(user)
        try:
            await session.flush()
        except IntegrityError as exc:
            raise DuplicateUsernameError() from exc
        return user

    async def _check_origin(self, session: AsyncSession, origin_host: str | None) -> None:
        """Enforce the allowed-domain firewall rule when a request host is known."""
        if origin_host is None:
            return
        rules = await self.registry.get_settings(session)
        if not domain_allowed(rules.allowed_domain, origin_host):
            logger.warning("Request from %r blocked by domain policy", origin_host)
            raise AccessDeniedError()

    # ── Registration ──

    async def register(
        self,
        session: AsyncSession,
        full_name: str,
        username: str,
        credential: str,
        origin_host: str | None = None,
    ) -> UserModel:
        await self.registry.ensure_available(session, None)
        await self._check_origin(session, origin_host)
        username = username.strip()
        self.check_credential_policy(credential)

        rules = await self.registry.get_settings(session)
        if not matches_id_pattern(rules.id_pattern, username):
            raise PatternMismatchError()
        await self._ensure_username_free(session, username)

        user = await self._insert_user(session, full_name.strip(), username, credential, Role.STANDARD)
        if self.audit_service:
            await self.audit_service.info(
                session, f"New identity registered: {username}", username, user_id=user.id,
            )
        return user

    async def create_admin(
        self, session: AsyncSession, full_name: str, username: str, credential: str,
    ) -> UserModel:
        """Bootstrap an admin account; only reachable from the CLI."""
        username = username.strip()
        self.check_credential_policy(credential)
        await self._ensure_username_free(session, username)
        user = await self._insert_user(session, full_name.strip(), username, credential, Role.ADMIN)
        if self.audit_service:
            await self.audit_service.warn(
                session, f"Admin account created: {username}", "system", user_id=user.id,
            )
        return user

    # ── Login ──

    async def login(
        self,
        session: AsyncSession,
        username: str,
        credential: str,
        origin_host: str | None = None,
    ) -> LoginOutcome:
        """Run one login attempt through Start → CredentialsChecked → outcome.

        Raises ``ServiceUnavailableError`` (lockdown), ``LoginDeniedError`` or
        ``MigrationRequiredError``; returns a GRANTED or TRAPPED outcome.
        """
        # Start
        user = await self.get_by_username(session, username.strip())
        await self.registry.ensure_available(session, user)
        await self._check_origin(session, origin_host)

        # CredentialsChecked
        valid = verify_secret(credential, user.credential_hash if user else dummy_hash())

        if user is not None and user.is_flagged:
            # Success-shaped answer that routes to the decoy.
            logger.warning("Flagged identity %s routed to decoy", user.username)
            if self.audit_service:
                await self.audit_service.warn(
                    session, f"Flagged identity {user.username} attempted login; routed to decoy",
                    user.username, user_id=user.id,
                )
            return LoginOutcome(LoginState.TRAPPED, user, create_token(user.id, user.role))

        if user is None or not valid:
            logger.warning("Login denied for %r", username)
            raise LoginDeniedError()

        if not user.is_admin:
            rules = await self.registry.get_settings(session)
            if not matches_id_pattern(rules.id_pattern, user.username):
                raise MigrationRequiredError()

        if self.audit_service:
            await self.audit_service.info(
                session, f"{user.username} logged in", user.username, role=user.role,
            )
        return LoginOutcome(LoginState.GRANTED, user, create_token(user.id, user.role))

    # ── Migration ──

    async def migrate(
        self,
        session: AsyncSession,
        old_username: str,
        credential: str,
        new_username: str,
    ) -> UserModel:
        """Rename a user to satisfy the current ID pattern; they must log in again."""
        user = await self.get_by_username(session, old_username.strip())
        await self.registry.ensure_available(session, user)
        valid = verify_secret(credential, user.credential_hash if user else dummy_hash())
        if user is None or not valid:
            raise InvalidCredentialError()

        new_username = new_username.strip()
        rules = await self.registry.get_settings(session)
        if not matches_id_pattern(rules.id_pattern, new_username):
            raise PatternMismatchError()
        if new_username != user.username:
            await self._ensure_username_free(session, new_username)

        old = user.username
        user.username = new_username
        try:
            await session.flush()
        except IntegrityError as exc:
            raise DuplicateUsernameError() from exc

        if self.audit_service:
            await self.audit_service.info(
                session, f"Identity migrated: {old} -> {new_username}", new_username,
                user_id=user.id, old_username=old,
            )
        return user

    # ── Role transitions ──

    async def flag_user(self, session: AsyncSession, user_id: str) -> bool:
        """Mark a standard user as flagged. Returns True only on a fresh flag.

        The conditional update makes repeated or concurrent flags of the same
        user a no-op after the first.
        """
        user = await self.get_user(session, user_id)
        if user is None or not can_transition(Role(user.role), Role.FLAGGED):
            return False
        result = await session.execute(
            update(UserModel)
            .where(UserModel.id == user_id, UserModel.role == Role.STANDARD.value)
            .values(role=Role.FLAGGED.value)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            await session.refresh(user)
            logger.warning("Identity %s flagged", user.username)
            return True
        return False
