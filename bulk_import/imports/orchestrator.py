"""Resumable batch import pipeline.

One ``run`` call walks the record sequence in fixed-size batches, strictly in
order: validate every record of a batch concurrently, commit the batch in a
single store transaction (retried with linear backoff), then write one
checkpoint for every multiple of the checkpoint interval the processed count
crossed. Each checkpoint records the actual processed count, never the
multiple itself, since the whole batch is already committed. A resumed run starts from the latest checkpoint's remaining records and never
resubmits the ones before it.
"""

import asyncio
from collections.abc import Awaitable, Callable, Mapping, Sequence
from datetime import timedelta
from typing import Any

import structlog

from bulk_import.documents.base import DocumentStore
from bulk_import.exceptions import CheckpointError, ConfigError, ImportAbortedError
from bulk_import.importers.base import RecordValidator
from bulk_import.imports.models import ImportType
from bulk_import.imports.schemas import ImportErrorEntry, ImportOptions, ImportResult
from bulk_import.recovery.checkpoints import CheckpointStore, parse_max_age
from bulk_import.recovery.retry import retry_operation

logger = structlog.get_logger()

RecordLoader = Callable[[], Awaitable[Sequence[Any]]]


def resolve_import_type(import_type: str) -> ImportType:
    try:
        return ImportType(import_type)
    except ValueError:
        supported = ", ".join(t.value for t in ImportType)
        raise ConfigError(
            f"Unsupported import type: {import_type}. Supported types: {supported}"
        ) from None


class ImportOrchestrator:
    def __init__(
        self,
        store: DocumentStore,
        validators: Mapping[ImportType, RecordValidator],
        checkpoints: CheckpointStore,
        *,
        batch_size: int = 50,
        checkpoint_interval: int = 50,
        max_attempts: int = 3,
        retry_delay: float = 1.0,
        checkpoint_retention: str | timedelta = "7d",
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        if batch_size < 1:
            raise ConfigError(f"batch_size must be at least 1, got {batch_size}")
        if checkpoint_interval < 1:
            raise ConfigError(f"checkpoint_interval must be at least 1, got {checkpoint_interval}")
        if max_attempts < 1:
            raise ConfigError(f"max_attempts must be at least 1, got {max_attempts}")

        self._store = store
        self._validators = validators
        self._checkpoints = checkpoints
        self._batch_size = batch_size
        self._checkpoint_interval = checkpoint_interval
        self._max_attempts = max_attempts
        self._retry_delay = retry_delay
        self._retention = parse_max_age(checkpoint_retention)
        self._sleep = sleep

    async def run(
        self,
        import_type: str,
        load_records: RecordLoader,
        options: ImportOptions | None = None,
    ) -> ImportResult:
        import_type = resolve_import_type(import_type)
        validator = self._validators.get(import_type)
        if validator is None:
            raise ConfigError(f"No validator registered for import type: {import_type}")
        options = options or ImportOptions()

        records, offset = await self._starting_point(import_type, load_records, options)
        total = offset + len(records)
        result = ImportResult(type=import_type, total=total, resumed_from=offset)

        logger.info(
            "import_started",
            type=import_type,
            total=total,
            start_index=offset,
            batch_size=self._batch_size,
        )

        for start in range(0, len(records), self._batch_size):
            batch = records[start : start + self._batch_size]
            position = offset + start
            batch_index = position // self._batch_size

            try:
                await self._process_batch(import_type, validator, batch, batch_index)
            except Exception as exc:
                result.failed += len(batch)
                result.errors.append(
                    ImportErrorEntry(
                        batch=batch_index,
                        error=str(exc),
                        items=list(batch) if options.include_failed_records else None,
                    )
                )
                if not options.continue_on_error:
                    logger.error(
                        "import_aborted",
                        type=import_type,
                        batch=batch_index,
                        error=str(exc),
                        success=result.success,
                        failed=result.failed,
                    )
                    await self._prune(import_type)
                    raise ImportAbortedError(result, batch_index, str(exc)) from exc

                logger.error(
                    "batch_failed_continuing",
                    type=import_type,
                    batch=batch_index,
                    error=str(exc),
                )
            else:
                result.success += len(batch)

            processed = position + len(batch)
            logger.info(
                "import_progress",
                type=import_type,
                processed=processed,
                total=total,
                success=result.success,
                failed=result.failed,
            )

            for _ in range(self._crossed_intervals(position, processed)):
                await self._save_checkpoint(import_type, records, processed, offset, result)

        await self._prune(import_type)

        logger.info(
            "import_completed",
            type=import_type,
            total=total,
            resumed_from=offset,
            success=result.success,
            failed=result.failed,
            checkpoints=len(result.checkpoints),
        )
        return result

    async def _starting_point(
        self,
        import_type: ImportType,
        load_records: RecordLoader,
        options: ImportOptions,
    ) -> tuple[Sequence[Any], int]:
        # A CheckpointError here propagates: starting over would resubmit
        # records that are already committed.
        if options.resume:
            checkpoint = await self._checkpoints.load_latest(import_type)
            if checkpoint is not None:
                logger.info(
                    "import_resuming",
                    type=import_type,
                    progress=checkpoint.processed_count,
                    total=checkpoint.total_count,
                )
                return checkpoint.remaining_data, checkpoint.processed_count
            logger.info("no_checkpoint_found", type=import_type)

        records = await load_records()
        return list(records), 0

    async def _process_batch(
        self,
        import_type: ImportType,
        validator: RecordValidator,
        batch: Sequence[Any],
        batch_index: int,
    ) -> None:
        documents = await self._validate_batch(validator, batch)

        async def commit() -> None:
            transaction = self._store.create_transaction()
            for document in documents:
                transaction.create(document)
            await transaction.commit()

        await retry_operation(
            commit,
            {"batch": batch_index, "type": import_type.value},
            self._max_attempts,
            self._retry_delay,
            sleep=self._sleep,
        )

    async def _validate_batch(
        self, validator: RecordValidator, batch: Sequence[Any]
    ) -> list[dict]:
        """Validate all records concurrently; the first failure fails the batch."""
        results = await asyncio.gather(
            *(validator.validate(record) for record in batch),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        return list(results)

    def _crossed_intervals(self, before: int, after: int) -> int:
        """Number of interval multiples passed; a batch larger than the interval can pass several."""
        interval = self._checkpoint_interval
        return after // interval - before // interval

    async def _save_checkpoint(
        self,
        import_type: ImportType,
        records: Sequence[Any],
        processed: int,
        offset: int,
        result: ImportResult,
    ) -> None:
        try:
            checkpoint_id = await self._checkpoints.save(
                import_type, records, processed, offset=offset
            )
        except CheckpointError as exc:
            logger.error(
                "checkpoint_skipped",
                type=import_type,
                processed=processed,
                error=exc.message,
            )
            return
        result.checkpoints.append(checkpoint_id)

    async def _prune(self, import_type: ImportType) -> None:
        removed = await self._checkpoints.prune_older_than(import_type, self._retention)
        if removed:
            logger.info("checkpoints_pruned", type=import_type, removed=len(removed))
