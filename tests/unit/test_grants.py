"""Tests for the access grant ledger."""

import asyncio
from datetime import timedelta

import pytest
from sqlalchemy import func, select

from vault_sentry.common.database import DatabaseManager
from vault_sentry.common.models import as_utc
from vault_sentry.grants.models import AccessGrantModel


class TestIssue:
    async def test_issue_creates_active_grant(self, db, sectors, new_user, services, clock):
        user = await new_user("alice")
        async with db.get_session() as session:
            grant = await services.ledger.issue(session, user.id, "Finance", 30, actor="root")
            assert as_utc(grant.expires_at) == clock.now + timedelta(minutes=30)
        async with db.get_session() as session:
            assert await services.ledger.grant_exists(session, user.id, "Finance")
            assert not await services.ledger.grant_exists(session, user.id, "HR")

    async def test_grant_expires(self, db, sectors, new_user, services, clock):
        user = await new_user("alice")
        async with db.get_session() as session:
            await services.ledger.issue(session, user.id, "Finance", 30)
        clock.advance(minutes=30)
        async with db.get_session() as session:
            assert not await services.ledger.grant_exists(session, user.id, "Finance")
            assert await services.ledger.active_grant(session, user.id, "Finance") is None

    async def test_extension_replaces_never_sums(self, db, sectors, new_user, services, clock):
        user = await new_user("alice")
        async with db.get_session() as session:
            await services.ledger.issue(session, user.id, "Finance", 60)
        clock.advance(minutes=10)
        async with db.get_session() as session:
            grant = await services.ledger.issue(session, user.id, "Finance", 30)
            assert as_utc(grant.expires_at) == clock.now + timedelta(minutes=30)

    async def test_one_row_per_user_and_sector(self, db, sectors, new_user, services, clock):
        user = await new_user("alice")
        for minutes in (5, 10, 15):
            async with db.get_session() as session:
                await services.ledger.issue(session, user.id, "Finance", minutes)
        async with db.get_session() as session:
            count = (await session.execute(
                select(func.count(AccessGrantModel.id))
                .where(AccessGrantModel.user_id == user.id)
            )).scalar()
            assert count == 1

    async def test_expired_grant_reused(self, db, sectors, new_user, services, clock):
        user = await new_user("alice")
        async with db.get_session() as session:
            await services.ledger.issue(session, user.id, "Finance", 5)
        clock.advance(hours=1)
        async with db.get_session() as session:
            await services.ledger.issue(session, user.id, "Finance", 5)
        async with db.get_session() as session:
            assert await services.ledger.grant_exists(session, user.id, "Finance")

    @pytest.mark.parametrize("minutes", [0, -5, 1441])
    async def test_duration_out_of_range(self, db, sectors, new_user, services, minutes):
        user = await new_user("alice")
        async with db.get_session() as session:
            with pytest.raises(ValueError):
                await services.ledger.issue(session, user.id, "Finance", minutes)

    async def test_issue_is_audited(self, db, sectors, new_user, services):
        user = await new_user("alice")
        async with db.get_session() as session:
            await services.ledger.issue(session, user.id, "Finance", 30, actor="root")
        async with db.get_session() as session:
            entry = (await services.audit.recent(session, limit=1))[0]
            assert entry.kind == "INFO"
            assert entry.actor == "root"
            assert entry.detail["sector"] == "Finance"


class TestRevokeAll:
    async def test_revokes_only_that_sector(self, db, sectors, new_user, services):
        alice = await new_user("alice")
        bob = await new_user("bob")
        async with db.get_session() as session:
            await services.ledger.issue(session, alice.id, "Finance", 30)
            await services.ledger.issue(session, bob.id, "Finance", 30)
            await services.ledger.issue(session, bob.id, "HR", 30)
        async with db.get_session() as session:
            assert await services.ledger.revoke_all(session, "Finance") == 2
        async with db.get_session() as session:
            assert not await services.ledger.grant_exists(session, alice.id, "Finance")
            assert not await services.ledger.grant_exists(session, bob.id, "Finance")
            assert await services.ledger.grant_exists(session, bob.id, "HR")

    async def test_nothing_to_revoke(self, db, sectors, services):
        async with db.get_session() as session:
            assert await services.ledger.revoke_all(session, "Finance") == 0


class TestSummary:
    async def test_standard_user_view(self, db, sectors, new_user, services, clock):
        user = await new_user("alice")
        admin = await new_user("root", admin=True)
        async with db.get_session() as session:
            await services.ledger.issue(session, user.id, "Finance", 30)
            await services.files.upload(session, admin, "Finance", "q3.pdf", passcode="1234")
            await services.files.upload(session, admin, "Finance", "q4.pdf", passcode="1234")
        async with db.get_session() as session:
            stats = await services.ledger.summary(session, user)
        assert set(stats) == {"HR", "Engineering", "Finance", "Executive"}
        assert stats["Finance"]["count"] == 2
        assert stats["Finance"]["hasAccess"] is True
        assert stats["Finance"]["expiresAt"] == clock.now + timedelta(minutes=30)
        assert stats["Finance"]["securityLevel"] == "High"
        assert stats["HR"] == {
            "count": 0, "hasAccess": False, "expiresAt": None, "securityLevel": "Low",
        }

    async def test_admin_sees_all_sectors_open(self, db, sectors, new_user, services):
        admin = await new_user("root", admin=True)
        async with db.get_session() as session:
            stats = await services.ledger.summary(session, admin)
        assert all(info["hasAccess"] for info in stats.values())
        assert all(info["expiresAt"] is None for info in stats.values())

    async def test_expired_grant_not_shown(self, db, sectors, new_user, services, clock):
        user = await new_user("alice")
        async with db.get_session() as session:
            await services.ledger.issue(session, user.id, "Finance", 5)
        clock.advance(minutes=6)
        async with db.get_session() as session:
            stats = await services.ledger.summary(session, user)
        assert stats["Finance"]["hasAccess"] is False


class TestConcurrentIssue:
    async def test_racing_issues_leave_one_whole_grant(self, tmp_path, make_settings, services, clock):
        """Two approvals for the same key land as one row with one of the two expiries."""
        settings = make_settings(db_url=f"sqlite+aiosqlite:///{tmp_path / 'grants.db'}")
        db = DatabaseManager(settings)
        await db.init()
        await db.create_all()
        try:
            async with db.get_session() as session:
                await services.registry.seed_defaults(session)
                user = await services.identity.register(session, "Alice", "alice", "Sup3r$ecret")

            async def issue(minutes, admin):
                async with db.get_session() as session:
                    grant = await services.ledger.issue(session, user.id, "Finance", minutes, actor=admin)
                    return as_utc(grant.expires_at)

            await asyncio.gather(issue(30, "root"), issue(90, "ops"))

            async with db.get_session() as session:
                rows = (await session.execute(
                    select(AccessGrantModel).where(
                        AccessGrantModel.user_id == user.id,
                        AccessGrantModel.sector == "Finance",
                    )
                )).scalars().all()
                chain = await services.audit.verify_chain(session)
            assert len(rows) == 1
            assert as_utc(rows[0].expires_at) in {
                clock.now + timedelta(minutes=30),
                clock.now + timedelta(minutes=90),
            }
            assert as_utc(rows[0].expires_at) != clock.now + timedelta(minutes=120)
            assert chain["valid"] is True
        finally:
            await db.close()
