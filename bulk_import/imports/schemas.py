from typing import Any

from pydantic import BaseModel, Field

from bulk_import.imports.models import ImportType


class ImportOptions(BaseModel):
    resume: bool = False
    continue_on_error: bool = False
    include_failed_records: bool = True
    backup: bool = False


class ImportErrorEntry(BaseModel):
    batch: int
    error: str
    items: list[Any] | None = None


class ImportResult(BaseModel):
    type: ImportType
    total: int = 0
    resumed_from: int = 0
    success: int = 0
    failed: int = 0
    errors: list[ImportErrorEntry] = Field(default_factory=list)
    checkpoints: list[str] = Field(default_factory=list)


class RecordValidationError(BaseModel):
    index: int
    error: str
    field: str | None = None


class ValidationReport(BaseModel):
    type: ImportType
    total: int
    valid: int
    invalid: int
    errors: list[RecordValidationError]
