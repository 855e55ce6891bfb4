from fastapi import APIRouter, Query

from bulk_import.dependencies import APIKey, ImportServiceDep
from bulk_import.imports.models import ImportType
from bulk_import.recovery.schemas import CheckpointSummary, PruneResult

router = APIRouter()


@router.get("/{import_type}", response_model=list[CheckpointSummary])
async def list_checkpoints(
    import_type: ImportType,
    service: ImportServiceDep,
    _api_key: APIKey,
) -> list[CheckpointSummary]:
    return await service.list_checkpoints(import_type)


@router.get("/{import_type}/latest", response_model=CheckpointSummary)
async def get_latest_checkpoint(
    import_type: ImportType,
    service: ImportServiceDep,
    _api_key: APIKey,
) -> CheckpointSummary:
    return await service.latest_checkpoint(import_type)


@router.delete("/{import_type}", response_model=PruneResult)
async def prune_checkpoints(
    import_type: ImportType,
    service: ImportServiceDep,
    _api_key: APIKey,
    max_age: str = Query(default="7d"),
) -> PruneResult:
    return await service.prune_checkpoints(import_type, max_age)
