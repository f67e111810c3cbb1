"""Shared test fixtures for Vault Sentry."""

from datetime import timedelta
from types import SimpleNamespace

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from vault_sentry.common.models import utcnow


HMAC_KEY = "test-hmac-key-for-unit-tests"
SECRET_KEY = "test-secret-key-for-unit-tests"
STRONG_PASSWORD = "Sup3r$ecret"
ADMIN_PASSWORD = "Adm1n$ecret!"

GEO_PAYLOAD = {
    "city": "Reykjavik",
    "region": "Capital Region",
    "country_name": "Iceland",
    "org": "Example Telecom",
    "latitude": 64.1466,
    "longitude": -21.9426,
}


class FakeClock:
    """Settable clock for grant expiry and request timestamps."""

    def __init__(self):
        self.now = utcnow()

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


def _geo_handler(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json=GEO_PAYLOAD)


@pytest.fixture
def make_settings():
    from vault_sentry.common.config import VaultSettings

    def _make(**overrides):
        defaults = {
            "hmac_key": HMAC_KEY,
            "secret_key": SECRET_KEY,
            "db_url": "sqlite+aiosqlite://",
        }
        defaults.update(overrides)
        return VaultSettings(**defaults)

    return _make


@pytest.fixture
def settings(make_settings):
    return make_settings()


@pytest.fixture
async def db(settings):
    from vault_sentry.common.database import DatabaseManager

    manager = DatabaseManager(settings)
    await manager.init()
    await manager.create_all()
    yield manager
    await manager.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def geo_transport():
    return httpx.MockTransport(_geo_handler)


@pytest.fixture
def services(settings, clock, geo_transport):
    """Every service wired the way deps.py wires them, on one fake clock."""
    from vault_sentry.admin.service import AdminConsole
    from vault_sentry.audit.service import AuditService
    from vault_sentry.files.service import FileCatalogue
    from vault_sentry.grants.service import GrantLedger
    from vault_sentry.honeypot.geo import GeoLocator
    from vault_sentry.honeypot.service import IncidentResponder
    from vault_sentry.identity.service import IdentityService
    from vault_sentry.sectors.service import SectorRegistry
    from vault_sentry.workflow.service import RequestWorkflow

    audit = AuditService(settings)
    ledger = GrantLedger(settings, audit_service=audit, clock=clock)
    registry = SectorRegistry(settings, audit_service=audit, ledger=ledger)
    identity = IdentityService(settings, registry, audit_service=audit)
    workflow = RequestWorkflow(settings, registry, ledger, audit_service=audit, clock=clock)
    files = FileCatalogue(settings, registry, ledger, audit_service=audit)
    locator = GeoLocator(settings.geo_lookup_url, settings.geo_timeout, transport=geo_transport)
    incidents = IncidentResponder(settings, identity, audit_service=audit, locator=locator)
    console = AdminConsole(settings, registry, files, workflow, audit, incidents)
    return SimpleNamespace(
        audit=audit,
        ledger=ledger,
        registry=registry,
        identity=identity,
        workflow=workflow,
        files=files,
        incidents=incidents,
        console=console,
    )


@pytest.fixture
async def sectors(db, services):
    """The four stock sectors: HR, Engineering, Finance, Executive."""
    async with db.get_session() as session:
        return await services.registry.seed_defaults(session)


@pytest.fixture
def new_user(db, services):
    async def _new_user(username="alice", password=STRONG_PASSWORD, full_name="Alice Example", admin=False):
        async with db.get_session() as session:
            if admin:
                return await services.identity.create_admin(session, full_name, username, password)
            return await services.identity.register(session, full_name, username, password)

    return _new_user


# ── Application fixtures ──


@pytest.fixture
def app(monkeypatch):
    """Create a test app with in-memory DB."""
    monkeypatch.setenv("VAULT_DB_URL", "sqlite+aiosqlite://")
    monkeypatch.setenv("VAULT_HMAC_KEY", HMAC_KEY)
    monkeypatch.setenv("VAULT_SECRET_KEY", SECRET_KEY)

    # Clear caches and singletons so new env vars take effect
    from vault_sentry.common.config import get_settings
    get_settings.cache_clear()

    from vault_sentry.deps import reset_singletons
    reset_singletons()

    from vault_sentry.app import create_app
    yield create_app()

    get_settings.cache_clear()
    reset_singletons()


@pytest.fixture
async def client(app):
    # Manually init DB since ASGITransport doesn't run lifespan
    from vault_sentry.deps import get_db, get_sector_registry
    db = get_db()
    await db.init()
    await db.create_all()
    async with db.get_session() as session:
        await get_sector_registry().seed_defaults(session)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await db.close()


@pytest.fixture
def login(client):
    """Log in through the API and return bearer headers."""
    async def _login(username, password=STRONG_PASSWORD):
        resp = await client.post("/login", json={"username": username, "password": password})
        assert resp.status_code == 200, resp.text
        return {"Authorization": f"Bearer {resp.json()['token']}"}

    return _login


@pytest.fixture
def user_headers(client, login):
    """Register a standard user through the API and log them in."""
    async def _user_headers(username="alice", password=STRONG_PASSWORD):
        resp = await client.post("/register", json={
            "fullName": username.title(), "username": username, "password": password,
        })
        assert resp.status_code == 201, resp.text
        return await login(username, password)

    return _user_headers


@pytest.fixture
async def admin_headers(client, login):
    from vault_sentry.deps import get_db, get_identity_service
    async with get_db().get_session() as session:
        await get_identity_service().create_admin(session, "Root Admin", "root", ADMIN_PASSWORD)
    return await login("root", ADMIN_PASSWORD)
