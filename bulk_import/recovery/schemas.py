from typing import Any

from pydantic import BaseModel, Field, model_validator

from bulk_import.imports.models import ImportType


class Checkpoint(BaseModel):
    """Progress snapshot of one import run.

    Serialized with camelCase keys so checkpoint files stay readable by
    earlier versions of the tool.
    """

    model_config = {"populate_by_name": True, "frozen": True}

    timestamp: str
    type: ImportType
    progress: int = Field(ge=0)
    remaining_data: list[Any] = Field(alias="remainingData")
    processed_count: int = Field(alias="processedCount", ge=0)
    total_count: int = Field(alias="totalCount", ge=0)

    @model_validator(mode="after")
    def _check_counts(self) -> "Checkpoint":
        if self.processed_count + len(self.remaining_data) != self.total_count:
            raise ValueError(
                f"processedCount ({self.processed_count}) + remainingData "
                f"({len(self.remaining_data)}) does not equal totalCount ({self.total_count})"
            )
        if self.progress != self.processed_count:
            raise ValueError("progress and processedCount disagree")
        return self


class CheckpointSummary(BaseModel):
    checkpoint_id: str
    type: ImportType
    timestamp: str
    processed_count: int
    total_count: int
    remaining_count: int


class PruneResult(BaseModel):
    type: ImportType
    max_age: str
    removed: list[str]
