import asyncio
import gzip
import json
import time
from datetime import UTC, datetime
from pathlib import Path

import structlog

from bulk_import.backups.schemas import BackupResult
from bulk_import.documents.base import DocumentStore
from bulk_import.exceptions import AppError

logger = structlog.get_logger()


class BackupService:
    """Dump every document in the store to a gzip-compressed JSON array."""

    def __init__(
        self,
        store: DocumentStore,
        backup_dir: str | Path,
        dataset: str,
        batch_size: int = 100,
    ) -> None:
        self._store = store
        self._backup_dir = Path(backup_dir)
        self._dataset = dataset
        self._batch_size = batch_size

    def _backup_path(self) -> Path:
        timestamp = datetime.now(UTC).strftime("%Y-%m-%dT%H-%M-%S-%fZ")
        return self._backup_dir / f"backup-{self._dataset}-{timestamp}.json.gz"

    async def backup(self) -> BackupResult:
        await asyncio.to_thread(self._backup_dir.mkdir, parents=True, exist_ok=True)
        path = self._backup_path()
        started = time.monotonic()

        total = await self._store.count_documents()
        logger.info("backup_started", dataset=self._dataset, filename=path.name, total=total)

        document_count = 0
        try:
            with gzip.open(path, "wt", encoding="utf-8") as fh:
                await asyncio.to_thread(fh.write, "[\n")
                for start in range(0, total, self._batch_size):
                    documents = await self._store.list_documents(start, start + self._batch_size)
                    if not documents:
                        break
                    chunk = ",\n".join(json.dumps(doc) for doc in documents)
                    separator = ",\n" if document_count else ""
                    await asyncio.to_thread(fh.write, separator + chunk)
                    document_count += len(documents)
                    logger.info(
                        "backup_progress",
                        fetched=document_count,
                        total=total,
                    )
                await asyncio.to_thread(fh.write, "\n]\n")
        except (OSError, AppError) as exc:
            path.unlink(missing_ok=True)
            logger.error("backup_failed", filename=path.name, error=str(exc))
            raise AppError(f"Backup failed: {exc}", code="BACKUP_ERROR") from exc

        duration = round(time.monotonic() - started, 3)
        logger.info(
            "backup_completed",
            filename=path.name,
            documents=document_count,
            duration_seconds=duration,
        )
        return BackupResult(
            filename=str(path),
            document_count=document_count,
            duration_seconds=duration,
        )
