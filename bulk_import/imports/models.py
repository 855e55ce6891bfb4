from enum import StrEnum


class ImportType(StrEnum):
    category = "category"
    listing = "listing"
