from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from bulk_import.exceptions import ValidationError
from bulk_import.importers import validation
from bulk_import.imports.models import ImportType


class RecordValidator(ABC):
    import_type: ImportType
    required_fields: tuple[str, ...] = ()

    @abstractmethod
    async def validate(self, record: Any) -> dict:
        """Check one record and return the document to store."""
        ...

    def _check_required(self, record: Any) -> Mapping[str, Any]:
        if not isinstance(record, Mapping):
            raise ValidationError(
                f"{self.import_type} record must be an object", "record", record
            )
        for field in self.required_fields:
            validation.required(record.get(field), field)
        return record

    @staticmethod
    def _compact(document: dict) -> dict:
        """Drop unset optional fields."""
        return {key: value for key, value in document.items() if value is not None}
