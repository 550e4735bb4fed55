from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, field_validator

from timetabler.schemas.timetable import EntryView


class BulkOperation(str, Enum):
    hard_delete = "hard_delete"
    export = "export"


class BulkRequest(BaseModel):
    ids: list[str] = Field(default_factory=list, max_length=1000)

    @field_validator("ids", mode="before")
    @classmethod
    def coerce_ids(cls, value):
        if isinstance(value, list):
            return [str(item) if isinstance(item, int) and not isinstance(item, bool) else item for item in value]
        return value


class BulkFailure(BaseModel):
    entry_id: str
    error_type: str
    message: str


class BulkResult(BaseModel):
    operation: BulkOperation
    succeeded: list[str] = Field(default_factory=list)
    failed: list[BulkFailure] = Field(default_factory=list)
    exported: list[EntryView] = Field(default_factory=list)

    @property
    def summary(self) -> str:
        attempted = len(self.succeeded) + len(self.failed)
        verb = "deleted" if self.operation == BulkOperation.hard_delete else "exported"
        text = f"{len(self.succeeded)} of {attempted} {verb}"
        if self.failed:
            text += f", {len(self.failed)} failed"
        return text
