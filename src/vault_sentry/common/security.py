"""Credential hashing, session tokens and the auth dependencies."""

import hashlib
import hmac
import secrets
from functools import lru_cache

from fastapi import Header
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from vault_sentry.common.exceptions import AccessDeniedError

PBKDF2_ITERATIONS = 240_000
TOKEN_SALT = "vault-session"

# Account credentials and per-file passcodes live in separate namespaces:
# the same secret hashes differently under each context.
ACCOUNT_CONTEXT = "account"
FILE_CONTEXT = "file-passcode"


def hash_secret(secret: str, context: str = ACCOUNT_CONTEXT) -> str:
    """Salted PBKDF2-SHA256 hash, encoded as ``pbkdf2_sha256$iter$salt$hash``."""
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac(
        "sha256",
        f"{context}:{secret}".encode(),
        bytes.fromhex(salt),
        PBKDF2_ITERATIONS,
    ).hex()
    return f"pbkdf2_sha256${PBKDF2_ITERATIONS}${salt}${digest}"


def verify_secret(secret: str, stored: str | None, context: str = ACCOUNT_CONTEXT) -> bool:
    if not stored:
        return False
    try:
        _scheme, iterations, salt, digest = stored.split("$")
        candidate = hashlib.pbkdf2_hmac(
            "sha256",
            f"{context}:{secret}".encode(),
            bytes.fromhex(salt),
            int(iterations),
        ).hex()
    except ValueError:
        return False
    return hmac.compare_digest(candidate, digest)


@lru_cache
def dummy_hash() -> str:
    """Hash verified against for unknown usernames, to equalise timing."""
    return hash_secret(secrets.token_urlsafe(16))


# ── Session tokens ──


def _get_serializer() -> URLSafeTimedSerializer:
    from vault_sentry.common.config import get_settings
    return URLSafeTimedSerializer(get_settings().secret_key, salt=TOKEN_SALT)


def create_token(user_id: str, role: str) -> str:
    """Sign a session payload carrying the user id and role."""
    return _get_serializer().dumps({"uid": user_id, "role": role})


def read_token(token: str) -> dict | None:
    """Verify and decode a session token. Returns payload or None."""
    from vault_sentry.common.config import get_settings

    try:
        return _get_serializer().loads(token, max_age=get_settings().token_max_age)
    except (BadSignature, SignatureExpired):
        return None


def _bearer(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


async def _load_user(token: str | None):
    payload = read_token(token) if token else None
    if not payload:
        return None

    from vault_sentry.deps import get_db, get_identity_service
    async with get_db().get_session() as session:
        return await get_identity_service().get_user(session, payload.get("uid", ""))


# ── FastAPI dependencies ──


async def optional_user(authorization: str | None = Header(None)):
    """Resolve the caller if a valid token is attached, without any gating."""
    return await _load_user(_bearer(authorization))


async def require_user(authorization: str | None = Header(None)):
    """Resolve the caller from the current user row, lockdown gate first.

    Flagged identities are never let through to the real surface.
    """
    from vault_sentry.deps import get_db, get_sector_registry

    user = await _load_user(_bearer(authorization))
    async with get_db().get_session() as session:
        await get_sector_registry().ensure_available(session, user)
    if user is None or user.is_flagged:
        raise AccessDeniedError()
    return user


async def require_admin(authorization: str | None = Header(None)):
    user = await require_user(authorization)
    if not user.is_admin:
        raise AccessDeniedError()
    return user
