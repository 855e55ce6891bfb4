from collections.abc import Mapping
from datetime import timedelta
from pathlib import Path

import structlog

from bulk_import.backups.service import BackupService
from bulk_import.exceptions import ImportAbortedError, NotFoundError, ValidationError
from bulk_import.importers.base import RecordValidator
from bulk_import.importers.transform import DataTransformer
from bulk_import.imports.models import ImportType
from bulk_import.imports.orchestrator import (
    ImportOrchestrator,
    RecordLoader,
    resolve_import_type,
)
from bulk_import.imports.schemas import (
    ImportOptions,
    ImportResult,
    RecordValidationError,
    ValidationReport,
)
from bulk_import.recovery.checkpoints import CheckpointStore
from bulk_import.recovery.schemas import CheckpointSummary, PruneResult

logger = structlog.get_logger()


class ImportService:
    def __init__(
        self,
        orchestrator: ImportOrchestrator,
        checkpoints: CheckpointStore,
        transformer: DataTransformer,
        validators: Mapping[ImportType, RecordValidator],
        backups: BackupService | None = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._checkpoints = checkpoints
        self._transformer = transformer
        self._validators = validators
        self._backups = backups

    async def import_file(
        self,
        content: bytes,
        filename: str,
        import_type: str,
        options: ImportOptions,
    ) -> ImportResult:
        """Import an uploaded CSV or JSON payload."""
        import_type = resolve_import_type(import_type)

        async def load_records() -> list[dict]:
            return self._transformer.transform(content, filename, import_type)

        return await self._import(import_type, load_records, options, source=filename)

    async def import_path(
        self,
        path: str | Path,
        import_type: str,
        options: ImportOptions,
    ) -> ImportResult:
        """Import a CSV or JSON file from disk."""
        import_type = resolve_import_type(import_type)

        async def load_records() -> list[dict]:
            return await self._transformer.load(path, import_type)

        return await self._import(import_type, load_records, options, source=str(path))

    async def _import(
        self,
        import_type: ImportType,
        load_records: RecordLoader,
        options: ImportOptions,
        source: str,
    ) -> ImportResult:
        logger.info("import_requested", type=import_type, source=source, options=options.model_dump())

        if options.backup:
            if self._backups is None:
                logger.warning("backup_unavailable", type=import_type)
            else:
                await self._backups.backup()

        try:
            result = await self._orchestrator.run(import_type, load_records, options)
        except ImportAbortedError as exc:
            logger.error(
                "import_failed",
                type=import_type,
                source=source,
                batch=exc.batch_index,
                success=exc.result.success,
                failed=exc.result.failed,
                checkpoints=exc.result.checkpoints,
            )
            raise

        logger.info(
            "import_summary",
            type=import_type,
            source=source,
            total=result.total,
            success=result.success,
            failed=result.failed,
        )
        return result

    async def validate_file(
        self, content: bytes, filename: str, import_type: str
    ) -> ValidationReport:
        """Run every record through its validator without committing anything."""
        import_type = resolve_import_type(import_type)
        records = self._transformer.transform(content, filename, import_type)
        return await self.validate_records(import_type, records)

    async def validate_path(self, path: str | Path, import_type: str) -> ValidationReport:
        import_type = resolve_import_type(import_type)
        records = await self._transformer.load(path, import_type)
        return await self.validate_records(import_type, records)

    async def validate_records(
        self, import_type: ImportType, records: list[dict]
    ) -> ValidationReport:
        validator = self._validators[import_type]
        errors: list[RecordValidationError] = []

        for index, record in enumerate(records):
            try:
                await validator.validate(record)
            except ValidationError as exc:
                errors.append(RecordValidationError(index=index, error=exc.message, field=exc.field))

        report = ValidationReport(
            type=import_type,
            total=len(records),
            valid=len(records) - len(errors),
            invalid=len(errors),
            errors=errors,
        )
        logger.info(
            "validation_completed",
            type=import_type,
            total=report.total,
            valid=report.valid,
            invalid=report.invalid,
        )
        return report

    async def list_checkpoints(self, import_type: str) -> list[CheckpointSummary]:
        return await self._checkpoints.list_checkpoints(resolve_import_type(import_type))

    async def latest_checkpoint(self, import_type: str) -> CheckpointSummary:
        import_type = resolve_import_type(import_type)
        checkpoint = await self._checkpoints.load_latest(import_type)
        if checkpoint is None:
            raise NotFoundError("Checkpoint", import_type)
        return CheckpointSummary(
            checkpoint_id=self._checkpoints.checkpoint_id(import_type, checkpoint.timestamp),
            type=checkpoint.type,
            timestamp=checkpoint.timestamp,
            processed_count=checkpoint.processed_count,
            total_count=checkpoint.total_count,
            remaining_count=len(checkpoint.remaining_data),
        )

    async def prune_checkpoints(
        self, import_type: str, max_age: str | timedelta
    ) -> PruneResult:
        import_type = resolve_import_type(import_type)
        removed = await self._checkpoints.prune_older_than(import_type, max_age)
        return PruneResult(type=import_type, max_age=str(max_age), removed=removed)
