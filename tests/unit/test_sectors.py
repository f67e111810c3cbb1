"""Tests for the sector registry, firewall rules and the lockdown gate."""

import pytest

from vault_sentry.common.exceptions import (
    DuplicateSectorError,
    InvalidPatternError,
    NotFoundError,
    SectorInUseError,
    ServiceUnavailableError,
)
from vault_sentry.sectors.models import SecurityLevel
from vault_sentry.sectors.service import domain_allowed, matches_id_pattern


class TestHelpers:
    def test_empty_pattern_matches_everything(self):
        assert matches_id_pattern("", "anything at all")

    def test_full_match_required(self):
        assert matches_id_pattern("^CYBER-[0-9]+$", "CYBER-42")
        assert not matches_id_pattern("CYBER-[0-9]+", "CYBER-42-x")

    def test_invalid_stored_pattern_fails_closed(self):
        assert not matches_id_pattern("([", "bob")

    @pytest.mark.parametrize("host,allowed", [
        ("corp.example", True),
        ("vault.corp.example", True),
        ("VAULT.Corp.Example.", True),
        ("notcorp.example", False),
        ("corp.example.evil.test", False),
        ("", False),
        (None, False),
    ])
    def test_domain_allowed(self, host, allowed):
        assert domain_allowed("corp.example", host) is allowed

    def test_empty_domain_allows_all(self):
        assert domain_allowed("", None)


class TestSettingsRow:
    async def test_created_lazily_with_defaults(self, db, services):
        async with db.get_session() as session:
            row = await services.registry.get_settings(session)
            assert row.id_pattern == ""
            assert row.allowed_domain == ""
            assert row.lockdown is False
            assert row.version == 1

    async def test_defaults_from_configuration(self, db, services, settings):
        settings.default_id_pattern = "^[a-z]+$"
        async with db.get_session() as session:
            row = await services.registry.get_settings(session)
            assert row.id_pattern == "^[a-z]+$"

    async def test_every_write_bumps_version(self, db, services):
        async with db.get_session() as session:
            await services.registry.set_lockdown(session, True, "root")
            await services.registry.set_lockdown(session, False, "root")
            row = await services.registry.update_firewall_rules(session, "^a$", "", "root")
            assert row.version == 4
            assert row.updated_by == "root"


class TestFirewallRules:
    async def test_update_both_fields(self, db, services):
        async with db.get_session() as session:
            row = await services.registry.update_firewall_rules(
                session, "^CYBER-[0-9]+$", " corp.example ", "root",
            )
            assert row.id_pattern == "^CYBER-[0-9]+$"
            assert row.allowed_domain == "corp.example"

    async def test_invalid_pattern_changes_nothing(self, db, services):
        async with db.get_session() as session:
            await services.registry.update_firewall_rules(session, "^ok$", "corp.example", "root")
        with pytest.raises(InvalidPatternError):
            async with db.get_session() as session:
                await services.registry.update_firewall_rules(session, "([", "other.example", "root")
        async with db.get_session() as session:
            row = await services.registry.get_settings(session)
            assert row.id_pattern == "^ok$"
            assert row.allowed_domain == "corp.example"
            assert row.version == 2

    async def test_update_is_audited_as_warning(self, db, services):
        async with db.get_session() as session:
            await services.registry.update_firewall_rules(session, "", "corp.example", "root")
        async with db.get_session() as session:
            entries = await services.audit.recent(session)
            assert entries[0].kind == "WARN"
            assert entries[0].actor == "root"


class TestLockdown:
    async def test_gate_blocks_standard_and_anonymous(self, db, new_user, services):
        user = await new_user("alice")
        async with db.get_session() as session:
            await services.registry.set_lockdown(session, True, "root")
        async with db.get_session() as session:
            with pytest.raises(ServiceUnavailableError):
                await services.registry.ensure_available(session, user)
            with pytest.raises(ServiceUnavailableError):
                await services.registry.ensure_available(session, None)

    async def test_gate_admits_admin(self, db, new_user, services):
        admin = await new_user("root", admin=True)
        async with db.get_session() as session:
            await services.registry.set_lockdown(session, True, "root")
        async with db.get_session() as session:
            await services.registry.ensure_available(session, admin)

    async def test_read_after_write(self, db, services):
        async with db.get_session() as session:
            await services.registry.set_lockdown(session, True, "root")
            assert await services.registry.is_locked_down(session) is True
        async with db.get_session() as session:
            await services.registry.set_lockdown(session, False, "root")
        async with db.get_session() as session:
            assert await services.registry.is_locked_down(session) is False

    async def test_engage_is_alert_lift_is_info(self, db, services):
        async with db.get_session() as session:
            await services.registry.set_lockdown(session, True, "root")
            await services.registry.set_lockdown(session, False, "root")
        async with db.get_session() as session:
            kinds = [e.kind for e in await services.audit.recent(session)]
            assert kinds == ["INFO", "ALERT"]


class TestSectors:
    async def test_seed_defaults(self, db, sectors, services):
        assert {s.name for s in sectors} == {"HR", "Engineering", "Finance", "Executive"}
        async with db.get_session() as session:
            assert await services.registry.seed_defaults(session) == []

    async def test_add_and_lookup_case_insensitive(self, db, services):
        async with db.get_session() as session:
            sector = await services.registry.add_sector(session, "Research", "High", "root")
            assert sector.security_level == SecurityLevel.HIGH.value
        async with db.get_session() as session:
            found = await services.registry.get_sector(session, "research")
            assert found.name == "Research"

    async def test_duplicate_case_insensitive(self, db, services):
        async with db.get_session() as session:
            await services.registry.add_sector(session, "Research", SecurityLevel.LOW, "root")
        async with db.get_session() as session:
            with pytest.raises(DuplicateSectorError):
                await services.registry.add_sector(session, "RESEARCH", SecurityLevel.LOW, "root")

    async def test_unknown_level_rejected(self, db, services):
        async with db.get_session() as session:
            with pytest.raises(ValueError):
                await services.registry.add_sector(session, "Research", "Extreme", "root")

    async def test_delete_unknown(self, db, services):
        async with db.get_session() as session:
            with pytest.raises(NotFoundError):
                await services.registry.delete_sector(session, "Nowhere", "root")

    async def test_delete_refused_while_files_exist(self, db, sectors, new_user, services):
        admin = await new_user("root", admin=True)
        async with db.get_session() as session:
            await services.files.upload(session, admin, "HR", "payroll.xlsx", passcode="1234")
        with pytest.raises(SectorInUseError):
            async with db.get_session() as session:
                await services.registry.delete_sector(session, "HR", "root")
        async with db.get_session() as session:
            assert await services.registry.get_sector(session, "HR") is not None

    async def test_delete_revokes_grants(self, db, sectors, new_user, services):
        user = await new_user("alice")
        async with db.get_session() as session:
            await services.ledger.issue(session, user.id, "Finance", 60)
        async with db.get_session() as session:
            revoked = await services.registry.delete_sector(session, "finance", "root")
            assert revoked == 1
        async with db.get_session() as session:
            assert await services.registry.get_sector(session, "Finance") is None
            assert not await services.ledger.grant_exists(session, user.id, "Finance")
            entries = await services.audit.recent(session, limit=1)
            assert entries[0].kind == "WARN"
            assert entries[0].detail["grants_revoked"] == 1
