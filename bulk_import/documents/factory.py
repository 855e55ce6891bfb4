import structlog

from bulk_import.config import settings
from bulk_import.documents.base import DocumentStore
from bulk_import.documents.config import StoreBackend
from bulk_import.exceptions import ConfigError

logger = structlog.get_logger()

_REQUIRED_SANITY_FIELDS = {
    "sanity_project_id": "BI_SANITY_PROJECT_ID",
    "sanity_dataset": "BI_SANITY_DATASET",
    "sanity_token": "BI_SANITY_TOKEN",
    "sanity_api_version": "BI_SANITY_API_VERSION",
}


class DocumentStoreFactory:
    @staticmethod
    def create(backend: str | None = None) -> DocumentStore:
        backend = backend or settings.store_backend

        match backend:
            case StoreBackend.SANITY:
                from bulk_import.documents.sanity import SanityDocumentStore

                missing = [
                    env_var
                    for field, env_var in _REQUIRED_SANITY_FIELDS.items()
                    if not getattr(settings, field)
                ]
                if missing:
                    raise ConfigError(
                        f"Missing required Sanity configuration: {', '.join(missing)}"
                    )
                return SanityDocumentStore(
                    project_id=settings.sanity_project_id,
                    dataset=settings.sanity_dataset,
                    token=settings.sanity_token,
                    api_version=settings.sanity_api_version,
                    timeout_seconds=settings.sanity_timeout_seconds,
                )

            case StoreBackend.SQLITE:
                from bulk_import.database import get_db
                from bulk_import.documents.sqlite_store import SQLiteDocumentStore

                return SQLiteDocumentStore(get_db())

            case _:
                raise ConfigError(f"Unknown document store backend: '{backend}'")


_store: DocumentStore | None = None


async def init_document_store(backend: str | None = None) -> DocumentStore:
    global _store
    _store = DocumentStoreFactory.create(backend)
    logger.info("document_store_initialized", backend=backend or settings.store_backend)
    return _store


async def close_document_store() -> None:
    global _store
    if _store is not None:
        await _store.close()
        _store = None
        logger.info("document_store_closed")


def get_document_store() -> DocumentStore:
    if _store is None:
        raise RuntimeError("Document store not initialized. Call init_document_store() first.")
    return _store
