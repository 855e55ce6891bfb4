from bulk_import.importers.base import RecordValidator
from bulk_import.importers.category import CategoryValidator
from bulk_import.importers.listing import ListingValidator
from bulk_import.importers.transform import DataTransformer

__all__ = ["CategoryValidator", "DataTransformer", "ListingValidator", "RecordValidator"]
