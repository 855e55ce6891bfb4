import asyncio
from typing import Any

import structlog

from bulk_import.documents.base import DocumentStore
from bulk_import.exceptions import ValidationError
from bulk_import.importers import validation
from bulk_import.importers.base import RecordValidator
from bulk_import.imports.models import ImportType

logger = structlog.get_logger()


class ListingValidator(RecordValidator):
    import_type = ImportType.listing
    required_fields = ("title", "email")

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def validate(self, record: Any) -> dict:
        try:
            data = self._check_required(record)
            email = validation.email(data["email"], "email")
            website_url = validation.url(data.get("websiteUrl"), "websiteUrl")
            instagram_url = validation.url(data.get("instagramUrl"), "instagramUrl")
            slug = validation.generate_slug(data["title"], "title")
            tags = validation.array(data.get("tags"), "tags")
            category_ids = validation.array(data.get("categories"), "categories")
            image_urls = validation.array(data.get("galleryImages"), "galleryImages")
        except ValidationError as exc:
            logger.warning(
                "listing_validation_failed",
                title=record.get("title") if isinstance(record, dict) else None,
                field=exc.field,
                error=exc.message,
            )
            raise

        categories = await self._resolve_categories(category_ids)
        gallery_images = self._filter_image_urls(data["title"], image_urls)

        return self._compact(
            {
                "_type": self.import_type.value,
                "title": data["title"],
                "slug": slug,
                "description": data.get("description"),
                "email": email,
                "websiteUrl": website_url,
                "instagramUrl": instagram_url,
                "galleryImages": gallery_images,
                "categories": categories,
                "tags": tags,
            }
        )

    async def _resolve_categories(self, category_ids: list[str]) -> list[dict]:
        """Turn category ids into references, dropping ids that do not resolve."""
        if not category_ids:
            return []

        results = await asyncio.gather(
            *(self._store.get_document(ImportType.category, cid) for cid in category_ids),
            return_exceptions=True,
        )

        references = []
        for category_id, result in zip(category_ids, results, strict=True):
            if isinstance(result, Exception) or result is None:
                logger.warning(
                    "invalid_category_reference",
                    category_id=category_id,
                    error=str(result) if isinstance(result, Exception) else "not found",
                )
                continue
            references.append({"_type": "reference", "_ref": category_id})
        return references

    def _filter_image_urls(self, title: str, image_urls: list[str]) -> list[str]:
        valid = []
        for image_url in image_urls:
            try:
                valid.append(validation.url(image_url, "galleryImages"))
            except ValidationError:
                logger.warning("gallery_image_skipped", listing_title=title, url=image_url)
        return valid
