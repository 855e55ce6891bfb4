from pydantic import BaseModel


class BackupResult(BaseModel):
    filename: str
    document_count: int
    duration_seconds: float
