"""Backup and restore API endpoints."""

from typing import Any, Dict, List, Literal, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import Response
from pydantic import BaseModel, Field, ValidationError

from bizsnap._utils import logger
from bizsnap.backup import BackupService
from bizsnap.backup.exceptions import BackupError
from bizsnap.backup.models import (
    BackupMetadata,
    BackupOptions,
    BackupRecord,
    BackupSystemInfo,
    CreateResult,
    ExportFormat,
    ImportResult,
    OperationResult,
    RestoreOptions,
    RestoreResult,
    ScheduleConfig,
)
from ..config import settings
from ..dependencies import get_backup_service

router = APIRouter(prefix="/backups", tags=["backups"])

_STATUS_BY_CODE = {
    "validation": 400,
    "import_format": 400,
    "schedule_config": 400,
    "export": 400,
    "not_found": 404,
    "checksum": 409,
    "concurrent_modification": 409,
    "partial_restore": 500,
    "internal": 500,
}

_MEDIA_TYPES = {
    "json": "application/json",
    "compressed": "text/plain",
    "encrypted": "text/plain",
}


class CreateBackupRequest(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    options: Optional[BackupOptions] = None


def _raise_for_failure(result: OperationResult) -> None:
    if not result.success:
        raise HTTPException(status_code=_STATUS_BY_CODE.get(result.error_code, 500), detail=result.error)


@router.post("", response_model=CreateResult, status_code=201)
async def create_backup(
    request: CreateBackupRequest,
    service: BackupService = Depends(get_backup_service),
) -> CreateResult:
    """Create a backup of the selected business data."""
    result = await service.create_backup(request.name, request.description, request.options)
    _raise_for_failure(result)
    return result


@router.get("", response_model=List[BackupMetadata])
async def list_backups(service: BackupService = Depends(get_backup_service)) -> List[BackupMetadata]:
    """List all backups, newest first."""
    return await service.list_backups()


@router.get("/info", response_model=BackupSystemInfo)
async def backup_info(service: BackupService = Depends(get_backup_service)) -> BackupSystemInfo:
    return await service.get_system_info()


@router.get("/schedule", response_model=ScheduleConfig)
async def get_schedule(service: BackupService = Depends(get_backup_service)) -> ScheduleConfig:
    return await service.get_schedule()


@router.put("/schedule", response_model=ScheduleConfig)
async def update_schedule(
    config: Dict[str, Any],
    service: BackupService = Depends(get_backup_service),
) -> ScheduleConfig:
    """Replace the automatic backup schedule; the previous one is kept if invalid."""
    if not await service.schedule_automatic_backups(config):
        raise HTTPException(status_code=400, detail="Invalid schedule configuration")
    return await service.get_schedule()


@router.post("/cleanup")
async def cleanup_backups(service: BackupService = Depends(get_backup_service)) -> dict:
    """Apply the retention policy now."""
    deleted = await service.cleanup_old_backups()
    return {"deleted": deleted}


@router.post("/import", response_model=ImportResult, status_code=201)
async def import_backup(
    file: UploadFile = File(...),
    encryption_key: Optional[str] = Form(None),
    service: BackupService = Depends(get_backup_service),
) -> ImportResult:
    """Import an uploaded backup file as a new backup."""
    content = await file.read()
    if len(content) > settings.max_upload_size:
        raise HTTPException(status_code=413, detail=f"Upload exceeds {settings.max_upload_size:,} bytes")

    logger.info(f"Uploaded backup file: {file.filename} ({len(content):,} bytes)")
    result = await service.import_backup(file.filename or "", content, encryption_key)
    _raise_for_failure(result)
    return result


@router.get("/{backup_id}", response_model=BackupRecord)
async def get_backup(
    backup_id: str,
    service: BackupService = Depends(get_backup_service),
) -> BackupRecord:
    try:
        record = await service.get_backup(backup_id)
    except BackupError as e:
        raise HTTPException(status_code=_STATUS_BY_CODE.get(e.code, 500), detail=str(e))
    if record is None:
        raise HTTPException(status_code=404, detail=f"Backup not found: {backup_id}")
    return record


@router.delete("/{backup_id}")
async def delete_backup(
    backup_id: str,
    service: BackupService = Depends(get_backup_service),
) -> dict:
    """Delete a backup; deleting an unknown id succeeds."""
    await service.delete_backup(backup_id)
    return {"message": f"Backup deleted: {backup_id}"}


@router.post("/{backup_id}/restore", response_model=RestoreResult)
async def restore_backup(
    backup_id: str,
    options: Optional[RestoreOptions] = None,
    service: BackupService = Depends(get_backup_service),
) -> RestoreResult:
    """Restore a backup into the live data."""
    result = await service.restore_backup(backup_id, options)
    _raise_for_failure(result)
    return result


@router.get("/{backup_id}/export")
async def export_backup(
    backup_id: str,
    format: Literal["json", "compressed", "encrypted"] = Query("json"),
    compression_level: Literal["fast", "balanced", "maximum"] = Query("balanced"),
    encryption_key: Optional[str] = Query(None),
    service: BackupService = Depends(get_backup_service),
) -> Response:
    """Download a backup as an export file."""
    try:
        fmt = ExportFormat(format=format, compression_level=compression_level, encryption_key=encryption_key)
        text, filename = await service.render_export(backup_id, fmt)
    except BackupError as e:
        raise HTTPException(status_code=_STATUS_BY_CODE.get(e.code, 500), detail=str(e))
    except (ValidationError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))

    return Response(
        content=text,
        media_type=_MEDIA_TYPES[format],
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}"},
    )
