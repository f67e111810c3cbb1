"""Dependency injection singletons for Vault Sentry."""

from vault_sentry.common.config import get_settings
from vault_sentry.common.database import DatabaseManager
from vault_sentry.admin.service import AdminConsole
from vault_sentry.audit.service import AuditService
from vault_sentry.files.service import FileCatalogue
from vault_sentry.grants.service import GrantLedger
from vault_sentry.honeypot.service import IncidentResponder
from vault_sentry.identity.service import IdentityService
from vault_sentry.sectors.service import SectorRegistry
from vault_sentry.workflow.service import RequestWorkflow

_db: DatabaseManager | None = None
_audit: AuditService | None = None
_ledger: GrantLedger | None = None
_registry: SectorRegistry | None = None
_identity: IdentityService | None = None
_workflow: RequestWorkflow | None = None
_files: FileCatalogue | None = None
_incidents: IncidentResponder | None = None
_console: AdminConsole | None = None


def get_db() -> DatabaseManager:
    global _db
    if _db is None:
        _db = DatabaseManager(get_settings())
    return _db


def get_audit_service() -> AuditService:
    global _audit
    if _audit is None:
        _audit = AuditService(get_settings())
    return _audit


def get_grant_ledger() -> GrantLedger:
    global _ledger
    if _ledger is None:
        _ledger = GrantLedger(get_settings(), audit_service=get_audit_service())
    return _ledger


def get_sector_registry() -> SectorRegistry:
    global _registry
    if _registry is None:
        _registry = SectorRegistry(
            get_settings(),
            audit_service=get_audit_service(),
            ledger=get_grant_ledger(),
        )
    return _registry


def get_identity_service() -> IdentityService:
    global _identity
    if _identity is None:
        _identity = IdentityService(
            get_settings(), get_sector_registry(),
            audit_service=get_audit_service(),
        )
    return _identity


def get_request_workflow() -> RequestWorkflow:
    global _workflow
    if _workflow is None:
        _workflow = RequestWorkflow(
            get_settings(), get_sector_registry(), get_grant_ledger(),
            audit_service=get_audit_service(),
        )
    return _workflow


def get_file_catalogue() -> FileCatalogue:
    global _files
    if _files is None:
        _files = FileCatalogue(
            get_settings(), get_sector_registry(), get_grant_ledger(),
            audit_service=get_audit_service(),
        )
    return _files


def get_incident_responder() -> IncidentResponder:
    global _incidents
    if _incidents is None:
        _incidents = IncidentResponder(
            get_settings(), get_identity_service(),
            audit_service=get_audit_service(),
        )
    return _incidents


def get_admin_console() -> AdminConsole:
    global _console
    if _console is None:
        _console = AdminConsole(
            get_settings(),
            get_sector_registry(),
            get_file_catalogue(),
            get_request_workflow(),
            get_audit_service(),
            get_incident_responder(),
        )
    return _console


def reset_singletons() -> None:
    """Reset all singletons (for testing)."""
    global _db, _audit, _ledger, _registry, _identity, _workflow, _files, _incidents, _console
    _db = None
    _audit = None
    _ledger = None
    _registry = None
    _identity = None
    _workflow = None
    _files = None
    _incidents = None
    _console = None
