from typing import Annotated

from fastapi import Depends

from bulk_import.auth import verify_token
from bulk_import.backups.service import BackupService
from bulk_import.config import settings
from bulk_import.documents.base import DocumentStore
from bulk_import.documents.config import StoreBackend
from bulk_import.documents.factory import get_document_store
from bulk_import.importers import CategoryValidator, DataTransformer, ListingValidator
from bulk_import.importers.base import RecordValidator
from bulk_import.imports.models import ImportType
from bulk_import.imports.orchestrator import ImportOrchestrator
from bulk_import.imports.service import ImportService
from bulk_import.recovery.checkpoints import CheckpointStore

APIKey = Annotated[dict, Depends(verify_token)]


def get_checkpoint_store() -> CheckpointStore:
    return CheckpointStore(settings.checkpoint_dir)


def get_validators(store: DocumentStore) -> dict[ImportType, RecordValidator]:
    return {
        ImportType.category: CategoryValidator(store),
        ImportType.listing: ListingValidator(store),
    }


def get_backup_service() -> BackupService:
    dataset = settings.sanity_dataset if settings.store_backend == StoreBackend.SANITY else "local"
    return BackupService(get_document_store(), settings.backup_dir, dataset)


def get_import_service() -> ImportService:
    store = get_document_store()
    checkpoints = get_checkpoint_store()
    validators = get_validators(store)
    orchestrator = ImportOrchestrator(
        store,
        validators,
        checkpoints,
        batch_size=settings.batch_size,
        checkpoint_interval=settings.checkpoint_interval,
        max_attempts=settings.max_retries,
        retry_delay=settings.retry_delay_seconds,
        checkpoint_retention=settings.checkpoint_retention,
    )
    return ImportService(
        orchestrator,
        checkpoints,
        DataTransformer(),
        validators,
        get_backup_service(),
    )


ImportServiceDep = Annotated[ImportService, Depends(get_import_service)]
BackupServiceDep = Annotated[BackupService, Depends(get_backup_service)]
