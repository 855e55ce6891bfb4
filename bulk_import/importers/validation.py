import re
import unicodedata
from typing import Any
from urllib.parse import urlparse

from bulk_import.exceptions import ValidationError

HEX_COLOR_PATTERN = re.compile(r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def required(value: Any, field: str) -> Any:
    if value is None or value == "":
        raise ValidationError(f"{field} is required", field, value)
    return value


def text(value: Any, field: str) -> str | None:
    """JSON input can carry numbers or objects where a string belongs."""
    if value is not None and not isinstance(value, str):
        raise ValidationError(f"{field} must be a string", field, value)
    return value


def hex_color(value: Any, field: str) -> str | None:
    value = text(value, field)
    if value and not HEX_COLOR_PATTERN.match(value):
        raise ValidationError(
            f"{field} must be a valid hex color code (e.g., #FF0000)", field, value
        )
    return value


def slugify(value: str) -> str:
    normalized = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    return re.sub(r"[^a-z0-9]+", "-", normalized.lower()).strip("-")


def generate_slug(value: Any, field: str) -> dict:
    value = text(value, field)
    if not value:
        raise ValidationError(f"Cannot generate slug: {field} is empty", field, value)
    current = slugify(value)
    if not current:
        raise ValidationError(f"Cannot generate slug: {field} has no usable characters", field, value)
    return {"_type": "slug", "current": current}


def email(value: Any, field: str) -> str | None:
    value = text(value, field)
    if value and not EMAIL_PATTERN.match(value):
        raise ValidationError(f"{field} must be a valid email address", field, value)
    return value


def url(value: Any, field: str) -> str | None:
    value = text(value, field)
    if not value:
        return value
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc or " " in value:
        raise ValidationError(
            f"{field} must be a valid URL with protocol (http:// or https://)", field, value
        )
    return value


def array(value: Any, field: str) -> list:
    if value and not isinstance(value, list | tuple):
        raise ValidationError(f"{field} must be an array", field, value)
    return list(value or [])
