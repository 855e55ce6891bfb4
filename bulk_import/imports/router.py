from fastapi import APIRouter, UploadFile

from bulk_import.dependencies import APIKey, ImportServiceDep
from bulk_import.imports.models import ImportType
from bulk_import.imports.schemas import ImportOptions, ImportResult, ValidationReport

router = APIRouter()


@router.post("/{import_type}", response_model=ImportResult)
async def run_import(
    import_type: ImportType,
    file: UploadFile,
    service: ImportServiceDep,
    _api_key: APIKey,
    resume: bool = False,
    continue_on_error: bool = False,
    include_failed_records: bool = True,
    backup: bool = False,
) -> ImportResult:
    content = await file.read()
    options = ImportOptions(
        resume=resume,
        continue_on_error=continue_on_error,
        include_failed_records=include_failed_records,
        backup=backup,
    )
    return await service.import_file(content, file.filename or "upload.json", import_type, options)


@router.post("/{import_type}/validate", response_model=ValidationReport)
async def validate_import(
    import_type: ImportType,
    file: UploadFile,
    service: ImportServiceDep,
    _api_key: APIKey,
) -> ValidationReport:
    content = await file.read()
    return await service.validate_file(content, file.filename or "upload.json", import_type)
