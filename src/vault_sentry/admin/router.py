"""Admin console router. Every route requires an admin identity."""

from fastapi import APIRouter, Depends

from vault_sentry.admin.schemas import (
    AdminDashboardResponse,
    FirewallRulesRequest,
    LockdownRequest,
    SectorCreate,
    SectorDeleteResponse,
    SectorResponse,
    SettingsResponse,
)
from vault_sentry.audit.router import to_entry_response
from vault_sentry.common.models import as_utc
from vault_sentry.common.schemas import OkResponse
from vault_sentry.common.security import require_admin
from vault_sentry.files.router import to_file_response
from vault_sentry.files.schemas import FileIdRequest
from vault_sentry.honeypot.models import HoneypotIncidentModel
from vault_sentry.honeypot.schemas import IncidentResponse
from vault_sentry.sectors.models import SectorModel, SettingsModel
from vault_sentry.workflow.router import to_request_response
from vault_sentry.workflow.schemas import AccessRequestResponse, DecisionRequest

router = APIRouter(prefix="/admin")


def _get_console():
    from vault_sentry.deps import get_admin_console
    return get_admin_console()


def _get_registry():
    from vault_sentry.deps import get_sector_registry
    return get_sector_registry()


def _get_workflow():
    from vault_sentry.deps import get_request_workflow
    return get_request_workflow()


def _get_catalogue():
    from vault_sentry.deps import get_file_catalogue
    return get_file_catalogue()


def _get_db():
    from vault_sentry.deps import get_db
    return get_db()


def to_settings_response(s: SettingsModel) -> SettingsResponse:
    return SettingsResponse(
        idPattern=s.id_pattern,
        allowedDomain=s.allowed_domain,
        lockdown=s.lockdown,
        version=s.version,
        updatedAt=as_utc(s.updated_at),
        updatedBy=s.updated_by,
    )


def to_sector_response(s: SectorModel, file_count: int = 0) -> SectorResponse:
    return SectorResponse(
        name=s.name,
        securityLevel=s.security_level,
        fileCount=file_count,
        createdAt=as_utc(s.created_at),
    )


def to_incident_response(i: HoneypotIncidentModel) -> IncidentResponse:
    return IncidentResponse(
        id=i.id,
        sourceIp=i.source_ip,
        userAgent=i.user_agent or "",
        city=i.geo_city,
        isp=i.geo_isp,
        lat=i.lat,
        lon=i.lon,
        triggeredAt=as_utc(i.triggered_at),
        userId=i.associated_user_id,
    )


@router.get("/data", response_model=AdminDashboardResponse)
async def admin_data(_=Depends(require_admin)):
    console = _get_console()
    db = _get_db()
    async with db.get_session() as session:
        snap = await console.snapshot(session)
        return AdminDashboardResponse(
            settings=to_settings_response(snap["settings"]),
            files=[to_file_response(f, owner) for f, owner in snap["files"]],
            requests=[to_request_response(r, name) for r, name in snap["requests"]],
            logs=[to_entry_response(e) for e in snap["logs"]],
            incidents=[to_incident_response(i) for i in snap["incidents"]],
            sectors=[
                to_sector_response(s, snap["fileCounts"].get(s.name, 0))
                for s in snap["sectors"]
            ],
            pollInterval=snap["pollInterval"],
        )


@router.post("/settings", response_model=SettingsResponse)
async def update_settings(body: FirewallRulesRequest, admin=Depends(require_admin)):
    registry = _get_registry()
    db = _get_db()
    async with db.get_session() as session:
        row = await registry.update_firewall_rules(
            session, body.id_pattern, body.allowed_domain, admin.username,
        )
        return to_settings_response(row)


@router.post("/lockdown", response_model=SettingsResponse)
async def set_lockdown(body: LockdownRequest, admin=Depends(require_admin)):
    registry = _get_registry()
    db = _get_db()
    async with db.get_session() as session:
        row = await registry.set_lockdown(session, body.enabled, admin.username)
        return to_settings_response(row)


@router.post("/approve-request", response_model=AccessRequestResponse)
async def decide_request(body: DecisionRequest, admin=Depends(require_admin)):
    workflow = _get_workflow()
    db = _get_db()
    async with db.get_session() as session:
        request = await workflow.decide(
            session, body.request_id, body.action, admin.username,
        )
        names = await _get_console().usernames(session, {request.requester_id})
        return to_request_response(request, names[request.requester_id])


@router.post("/delete-file", response_model=OkResponse)
async def delete_file(body: FileIdRequest, admin=Depends(require_admin)):
    catalogue = _get_catalogue()
    db = _get_db()
    async with db.get_session() as session:
        await catalogue.admin_delete(session, body.id, admin)
    return OkResponse(message="File purged")


@router.get("/sectors", response_model=list[SectorResponse])
async def list_sectors(_=Depends(require_admin)):
    registry = _get_registry()
    db = _get_db()
    async with db.get_session() as session:
        sectors = await registry.list_sectors(session)
        counts = await _get_catalogue().count_by_sector(session)
        return [to_sector_response(s, counts.get(s.name, 0)) for s in sectors]


@router.post("/sectors", response_model=SectorResponse, status_code=201)
async def add_sector(body: SectorCreate, admin=Depends(require_admin)):
    registry = _get_registry()
    db = _get_db()
    async with db.get_session() as session:
        sector = await registry.add_sector(session, body.name, body.level, admin.username)
        return to_sector_response(sector)


@router.delete("/sectors/{name}", response_model=SectorDeleteResponse)
async def delete_sector(name: str, admin=Depends(require_admin)):
    registry = _get_registry()
    db = _get_db()
    async with db.get_session() as session:
        revoked = await registry.delete_sector(session, name, admin.username)
    return SectorDeleteResponse(grantsRevoked=revoked)
