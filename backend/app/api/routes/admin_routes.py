from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from app.api.deps import require_admin
from app.container import container
from app.infrastructure.logging import get_logger
from app.models.schemas import ExportRequest, RequestListQuery, RestoreBackupRequest

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])
logger = get_logger(__name__)


@router.get("/requests")
def list_requests(query: RequestListQuery = Depends()) -> dict[str, object]:
    result = container.admin_service.list_requests(
        page=query.page,
        limit=query.limit,
        urgency=query.urgency,
        search=query.search,
        sort_by=query.sortBy,
        sort_order=query.sortOrder,
    )
    logger.info(
        "admin_requests_listed",
        total_count=result["pagination"]["totalCount"],
        page=query.page,
        limit=query.limit,
        urgency=query.urgency,
        search=query.search,
    )
    return result


@router.get("/stats")
def stats() -> dict[str, object]:
    return container.admin_service.stats()


@router.post("/backup", status_code=201)
def create_backup() -> dict[str, object]:
    backup = container.backup_service.create_backup()
    logger.info("admin_event", action="backup_created", target=backup.filename)
    return {"message": "Backup created successfully", "backup": backup.to_dict()}


@router.get("/backups")
def list_backups() -> dict[str, object]:
    return {"backups": [backup.to_dict() for backup in container.backup_service.list_backups()]}


@router.post("/backup/restore")
def restore_backup(payload: RestoreBackupRequest) -> dict[str, object]:
    result = container.backup_service.restore_from_backup(payload.filename)
    logger.info("admin_event", action="backup_restored", target=payload.filename)
    return {
        "message": "Data restored successfully",
        "restoredFrom": result.filename,
        "restore": result.to_dict(),
    }


@router.delete("/backups/cleanup")
def cleanup_backups(keep: int = Query(default=10, ge=0)) -> dict[str, object]:
    result = container.backup_service.cleanup_old_backups(keep)
    return {"message": "Backup cleanup completed", "keptCount": keep, "cleanup": result.to_dict()}


@router.post("/export")
def export_requests(payload: ExportRequest) -> dict[str, object]:
    result = container.export_service.export_requests(payload.to_options())
    logger.info("admin_event", action="data_exported", target=result.filename)
    return {"message": "Export completed successfully", "export": result.to_dict()}


@router.get("/export/stats")
def export_stats() -> dict[str, object]:
    return container.export_service.generate_export_stats()


@router.get("/exports")
def list_exports() -> dict[str, object]:
    return {"exports": [export.to_dict() for export in container.export_service.list_exports()]}


@router.delete("/exports/cleanup")
def cleanup_exports(keep: int = Query(default=20, ge=0)) -> dict[str, object]:
    result = container.export_service.cleanup_old_exports(keep)
    return {"message": "Export cleanup completed", "keptCount": keep, "cleanup": result.to_dict()}


@router.post("/retention/apply")
def apply_retention() -> dict[str, object]:
    result = container.backup_service.apply_data_retention()
    logger.info("admin_event", action="retention_applied", removed_count=result.removedCount)
    return {"message": "Data retention policy applied successfully", "retention": result.to_dict()}


@router.get("/health")
def admin_health() -> dict[str, object]:
    return container.admin_service.health()
