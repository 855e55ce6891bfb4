from enum import StrEnum


class StoreBackend(StrEnum):
    SANITY = "sanity"
    SQLITE = "sqlite"
