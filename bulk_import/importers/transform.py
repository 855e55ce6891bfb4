import asyncio
import csv
import io
import json
import re
from pathlib import Path
from typing import Any

import structlog

from bulk_import.exceptions import TransformError
from bulk_import.imports.models import ImportType

logger = structlog.get_logger()

SUPPORTED_FORMATS = ("csv", "json")

REQUIRED_FIELDS: dict[ImportType, tuple[str, ...]] = {
    ImportType.category: ("title",),
    ImportType.listing: ("title", "email"),
}

_LIST_SEPARATORS = re.compile(r"[,;\n]")


def _strip(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


class DataTransformer:
    """Parse CSV or JSON exports into records ready for validation."""

    async def load(self, path: str | Path, import_type: ImportType) -> list[dict]:
        path = Path(path)
        try:
            content = await asyncio.to_thread(path.read_bytes)
        except OSError as exc:
            logger.error("transform_file_unreadable", path=str(path), error=str(exc))
            raise TransformError(f"Failed to load file {path}: {exc}") from exc
        return self.transform(content, path.name, import_type)

    def transform(self, content: bytes, filename: str, import_type: ImportType) -> list[dict]:
        fmt = self._detect_format(filename)
        text = self._decode_content(content)
        raw_records = self._parse_csv(text) if fmt == "csv" else self._parse_json(text)

        self._check_structure(raw_records, import_type)

        if import_type == ImportType.listing:
            records = [self._transform_listing(raw) for raw in raw_records]
        else:
            records = [self._transform_category(raw) for raw in raw_records]

        logger.info(
            "transform_completed",
            filename=filename,
            type=import_type,
            input_records=len(raw_records),
            output_records=len(records),
        )
        return records

    def _detect_format(self, filename: str) -> str:
        extension = Path(filename).suffix.lower().lstrip(".")
        if extension not in SUPPORTED_FORMATS:
            raise TransformError(f"Unsupported file format: '{extension or filename}'")
        return extension

    def _decode_content(self, file_content: bytes) -> str:
        """Decode bytes to string with encoding fallback."""
        try:
            return file_content.decode("utf-8-sig")
        except UnicodeDecodeError:
            return file_content.decode("latin-1")

    def _parse_csv(self, text: str) -> list[dict]:
        reader = csv.DictReader(io.StringIO(text))
        records = []
        for row in reader:
            cleaned = {
                key.strip(): _strip(value) or ""
                for key, value in row.items()
                if key is not None
            }
            if any(cleaned.values()):
                records.append(cleaned)
        return records

    def _parse_json(self, text: str) -> list[dict]:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise TransformError(f"Invalid JSON format: {exc}") from exc

        if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
            raise TransformError("JSON input must be an array of objects")
        return data

    def _check_structure(self, raw_records: list[dict], import_type: ImportType) -> None:
        required = REQUIRED_FIELDS[import_type]
        problems = []
        for index, item in enumerate(raw_records):
            missing = [field for field in required if not item.get(field)]
            if missing:
                problems.append({"index": index, "missing_fields": missing})

        if problems:
            logger.error("transform_structure_invalid", type=import_type, rows=len(problems))
            raise TransformError("Data structure validation failed", details=problems)

    def _transform_category(self, raw: dict) -> dict:
        color = _strip(raw.get("color"))
        if isinstance(color, str) and color and not color.startswith("#"):
            color = f"#{color}"
        return {
            "title": _strip(raw.get("title")),
            "description": _strip(raw.get("description")) or None,
            "color": color or None,
            "featuredListing": _strip(raw.get("featured_listing_id")) or None,
        }

    def _transform_listing(self, raw: dict) -> dict:
        email = _strip(raw.get("email"))
        return {
            "title": _strip(raw.get("title")),
            "description": _strip(raw.get("description")) or None,
            "email": email.lower() if isinstance(email, str) else email,
            "websiteUrl": self._normalize_url(raw.get("website_url")),
            "instagramUrl": self._normalize_url(raw.get("instagram_url")),
            "galleryImages": self._split_list(raw.get("gallery_images")),
            "categories": self._split_list(raw.get("categories")),
            "tags": self._split_list(raw.get("tags"), lower=True),
        }

    def _normalize_url(self, value: Any) -> str | None:
        if not value or not isinstance(value, str):
            return None
        value = value.strip()
        return value if value.startswith("http") else f"https://{value}"

    def _split_list(self, value: Any, *, lower: bool = False) -> list:
        if not value:
            return []
        if isinstance(value, list):
            return value
        if isinstance(value, str):
            items = [item.strip() for item in _LIST_SEPARATORS.split(value)]
            return [item.lower() if lower else item for item in items if item]
        return []
