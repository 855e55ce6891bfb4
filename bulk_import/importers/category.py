from typing import Any

import structlog

from bulk_import.documents.base import DocumentStore
from bulk_import.exceptions import AppError, ValidationError
from bulk_import.importers import validation
from bulk_import.importers.base import RecordValidator
from bulk_import.imports.models import ImportType

logger = structlog.get_logger()


class CategoryValidator(RecordValidator):
    import_type = ImportType.category
    required_fields = ("title",)

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def validate(self, record: Any) -> dict:
        try:
            data = self._check_required(record)
            color = validation.hex_color(data.get("color"), "color")
            slug = validation.generate_slug(data["title"], "title")

            featured_listing = None
            if data.get("featuredListing"):
                featured_listing = await self._resolve_reference(data["featuredListing"])
        except ValidationError as exc:
            logger.warning(
                "category_validation_failed",
                title=record.get("title") if isinstance(record, dict) else None,
                field=exc.field,
                error=exc.message,
            )
            raise

        return self._compact(
            {
                "_type": self.import_type.value,
                "title": data["title"],
                "slug": slug,
                "description": data.get("description"),
                "color": color or None,
                "featuredListing": featured_listing,
            }
        )

    async def _resolve_reference(self, listing_id: str) -> dict:
        try:
            doc = await self._store.get_document(ImportType.listing, listing_id)
        except AppError as exc:
            raise ValidationError(
                f"Failed to validate reference: {exc.message}", "featuredListing", listing_id
            ) from exc

        if doc is None:
            raise ValidationError(
                f"Referenced listing with ID {listing_id} not found",
                "featuredListing",
                listing_id,
            )
        return {"_type": "reference", "_ref": listing_id}
