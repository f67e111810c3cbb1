"""Sector entry and file operation router."""

from fastapi import APIRouter, Depends

from vault_sentry.common.models import as_utc
from vault_sentry.common.schemas import OkResponse
from vault_sentry.common.security import require_user
from vault_sentry.files.models import FileRecordModel
from vault_sentry.files.schemas import (
    EnterSectorRequest,
    EnterSectorResponse,
    FileIdRequest,
    FileResponse,
    RenameRequest,
    UnlockRequest,
    UploadRequest,
    UploadResponse,
)

router = APIRouter()


def _get_service():
    from vault_sentry.deps import get_file_catalogue
    return get_file_catalogue()


def _get_db():
    from vault_sentry.deps import get_db
    return get_db()


def to_file_response(f: FileRecordModel, owner: str) -> FileResponse:
    return FileResponse(
        id=f.id,
        filename=f.filename,
        owner=owner,
        ownerId=f.owner_id,
        status=f.lock_state,
        department=f.sector,
        createdAt=as_utc(f.created_at),
    )


@router.post("/department-data", response_model=EnterSectorResponse)
async def department_data(body: EnterSectorRequest, user=Depends(require_user)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        files, access_type = await svc.enter_sector(
            session, user, body.department, body.password,
        )
        owners = await svc.owner_names(session, files)
        return EnterSectorResponse(
            files=[to_file_response(f, owners[f.owner_id]) for f in files],
            accessType=access_type,
        )


@router.post("/upload", response_model=UploadResponse, status_code=201)
async def upload(body: UploadRequest, user=Depends(require_user)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        record = await svc.upload(
            session, user, body.department, body.filename,
            passcode=body.passcode, lock_state=body.status,
        )
        return UploadResponse(file=to_file_response(record, user.username))


@router.post("/unlock-file", response_model=FileResponse)
async def unlock_file(body: UnlockRequest, user=Depends(require_user)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        record = await svc.unlock(session, user, body.id, body.passcode)
        owners = await svc.owner_names(session, [record])
        return to_file_response(record, owners[record.owner_id])


@router.post("/rename-file", response_model=FileResponse)
async def rename_file(body: RenameRequest, user=Depends(require_user)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        record = await svc.rename(session, body.id, body.new_name, user)
        owners = await svc.owner_names(session, [record])
        return to_file_response(record, owners[record.owner_id])


@router.post("/delete-own-file", response_model=OkResponse)
async def delete_own_file(body: FileIdRequest, user=Depends(require_user)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        await svc.delete(session, body.id, user)
    return OkResponse(message="File deleted")
