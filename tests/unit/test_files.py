"""Tests for sector entry, uploads and the ownership boundary."""

import pytest

from vault_sentry.common.exceptions import (
    AccessDeniedError,
    NotFoundError,
    SectorNotFoundError,
    ServiceUnavailableError,
)
from vault_sentry.common.security import verify_secret
from vault_sentry.files.models import LockState
from vault_sentry.files.service import ACCESS_ADMIN, ACCESS_STANDARD


PASSWORD = "Sup3r$ecret"


@pytest.fixture
async def people(db, sectors, new_user, services):
    """alice and bob with Finance grants, plus an admin."""
    alice = await new_user("alice")
    bob = await new_user("bob")
    admin = await new_user("root", admin=True)
    async with db.get_session() as session:
        await services.ledger.issue(session, alice.id, "Finance", 60)
        await services.ledger.issue(session, bob.id, "Finance", 60)
    return alice, bob, admin


async def _upload(db, services, user, filename="report.pdf", sector="Finance", **kwargs):
    kwargs.setdefault("passcode", "1234")
    async with db.get_session() as session:
        return await services.files.upload(session, user, sector, filename, **kwargs)


class TestEnterSector:
    async def test_standard_access(self, db, people, services):
        alice, bob, _ = people
        await _upload(db, services, bob, "bobs.pdf")
        async with db.get_session() as session:
            files, access_type = await services.files.enter_sector(session, alice, "Finance", PASSWORD)
        assert access_type == ACCESS_STANDARD
        assert [f.filename for f in files] == ["bobs.pdf"]

    async def test_admin_access_without_grant(self, db, people, services):
        _, _, admin = people
        async with db.get_session() as session:
            files, access_type = await services.files.enter_sector(session, admin, "Executive", PASSWORD)
        assert access_type == ACCESS_ADMIN
        assert files == []

    async def test_no_grant_denied(self, db, people, services):
        alice, _, _ = people
        async with db.get_session() as session:
            with pytest.raises(AccessDeniedError):
                await services.files.enter_sector(session, alice, "HR", PASSWORD)

    async def test_wrong_credential_same_denial(self, db, people, services):
        alice, _, _ = people
        async with db.get_session() as session:
            with pytest.raises(AccessDeniedError) as bad_pw:
                await services.files.enter_sector(session, alice, "Finance", "Wr0ng$pass")
            with pytest.raises(AccessDeniedError) as no_grant:
                await services.files.enter_sector(session, alice, "HR", PASSWORD)
        assert bad_pw.value.message == no_grant.value.message

    async def test_removed_sector(self, db, people, services):
        alice, _, _ = people
        async with db.get_session() as session:
            await services.registry.delete_sector(session, "Finance", "root")
        async with db.get_session() as session:
            with pytest.raises(SectorNotFoundError):
                await services.files.enter_sector(session, alice, "Finance", PASSWORD)

    async def test_lockdown_overrides_grant(self, db, people, services):
        alice, _, admin = people
        async with db.get_session() as session:
            await services.registry.set_lockdown(session, True, "root")
        async with db.get_session() as session:
            with pytest.raises(ServiceUnavailableError):
                await services.files.enter_sector(session, alice, "Finance", PASSWORD)
            _, access_type = await services.files.enter_sector(session, admin, "Finance", PASSWORD)
            assert access_type == ACCESS_ADMIN

    async def test_owner_names(self, db, people, services):
        alice, bob, _ = people
        await _upload(db, services, alice, "a.pdf")
        await _upload(db, services, bob, "b.pdf")
        async with db.get_session() as session:
            files = await services.files.list_files(session, "Finance", alice)
            owners = await services.files.owner_names(session, files)
        assert set(owners.values()) == {"alice", "bob"}


class TestUpload:
    async def test_locked_upload_hashes_passcode(self, db, people, services):
        alice, _, _ = people
        record = await _upload(db, services, alice, passcode="4321")
        assert record.lock_state == LockState.LOCKED.value
        assert record.owner_id == alice.id
        assert record.credential_hash != "4321"
        assert verify_secret("4321", record.credential_hash, "file-passcode")

    async def test_unlocked_upload_has_no_hash(self, db, people, services):
        alice, _, _ = people
        record = await _upload(db, services, alice, passcode="", lock_state="Unlocked")
        assert record.credential_hash is None

    async def test_locked_requires_passcode(self, db, people, services):
        alice, _, _ = people
        with pytest.raises(ValueError):
            await _upload(db, services, alice, passcode="")

    async def test_requires_grant(self, db, people, services):
        alice, _, _ = people
        with pytest.raises(AccessDeniedError):
            await _upload(db, services, alice, sector="HR")

    async def test_unknown_sector(self, db, people, services):
        alice, _, _ = people
        with pytest.raises(SectorNotFoundError):
            await _upload(db, services, alice, sector="Atlantis")


class TestUnlock:
    async def test_right_passcode(self, db, people, services):
        alice, bob, _ = people
        record = await _upload(db, services, alice, passcode="4321")
        async with db.get_session() as session:
            opened = await services.files.unlock(session, bob, record.id, "4321")
        assert opened.id == record.id

    async def test_wrong_passcode(self, db, people, services):
        alice, bob, _ = people
        record = await _upload(db, services, alice, passcode="4321")
        async with db.get_session() as session:
            with pytest.raises(AccessDeniedError):
                await services.files.unlock(session, bob, record.id, "0000")

    async def test_account_password_is_not_a_passcode(self, db, people, services):
        alice, _, _ = people
        record = await _upload(db, services, alice, passcode=PASSWORD)
        async with db.get_session() as session:
            opened = await services.files.unlock(session, alice, record.id, PASSWORD)
        assert opened.id == record.id

    async def test_unlocked_file_always_opens(self, db, people, services):
        alice, bob, _ = people
        record = await _upload(db, services, alice, passcode="", lock_state=LockState.UNLOCKED)
        async with db.get_session() as session:
            opened = await services.files.unlock(session, bob, record.id, "")
        assert opened.id == record.id


class TestOwnership:
    async def test_owner_renames(self, db, people, services):
        alice, _, _ = people
        record = await _upload(db, services, alice)
        async with db.get_session() as session:
            renamed = await services.files.rename(session, record.id, " final.pdf ", alice)
        assert renamed.filename == "final.pdf"

    async def test_other_user_cannot_rename_or_delete(self, db, people, services):
        alice, bob, _ = people
        record = await _upload(db, services, alice)
        async with db.get_session() as session:
            with pytest.raises(AccessDeniedError):
                await services.files.rename(session, record.id, "pwned.pdf", bob)
            with pytest.raises(AccessDeniedError):
                await services.files.delete(session, record.id, bob)
        async with db.get_session() as session:
            files = await services.files.list_files(session, "Finance", alice)
        assert [f.filename for f in files] == ["report.pdf"]

    async def test_missing_file_looks_like_denial(self, db, people, services):
        alice, _, _ = people
        async with db.get_session() as session:
            with pytest.raises(AccessDeniedError):
                await services.files.delete(session, "no-such-id", alice)

    async def test_owner_deletes(self, db, people, services):
        alice, _, _ = people
        record = await _upload(db, services, alice)
        async with db.get_session() as session:
            await services.files.delete(session, record.id, alice)
        async with db.get_session() as session:
            assert await services.files.list_files(session, "Finance", alice) == []
            entry = (await services.audit.recent(session, limit=1))[0]
        assert entry.kind == "WARN"
        assert entry.actor == "alice"


class TestAdminDelete:
    async def test_admin_deletes_any_file(self, db, people, services):
        alice, _, admin = people
        record = await _upload(db, services, alice)
        async with db.get_session() as session:
            await services.files.admin_delete(session, record.id, admin)
        async with db.get_session() as session:
            assert await services.files.list_all(session) == []
            entry = (await services.audit.recent(session, limit=1))[0]
        assert entry.actor == "root"
        assert entry.detail["owner_id"] == alice.id

    async def test_admin_delete_missing(self, db, people, services):
        _, _, admin = people
        async with db.get_session() as session:
            with pytest.raises(NotFoundError):
                await services.files.admin_delete(session, "no-such-id", admin)

    async def test_count_by_sector(self, db, people, services):
        alice, _, admin = people
        await _upload(db, services, alice, "a.pdf")
        await _upload(db, services, admin, "b.pdf", sector="HR")
        await _upload(db, services, admin, "c.pdf", sector="HR")
        async with db.get_session() as session:
            assert await services.files.count_by_sector(session) == {"Finance": 1, "HR": 2}
