from fastapi import APIRouter

from bulk_import.backups.schemas import BackupResult
from bulk_import.dependencies import APIKey, BackupServiceDep

router = APIRouter()


@router.post("/", status_code=201, response_model=BackupResult)
async def create_backup(service: BackupServiceDep, _api_key: APIKey) -> BackupResult:
    return await service.backup()
