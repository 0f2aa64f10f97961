"""Tracker-side records exchanged with the client collaborator."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class WorkItem(BaseModel):
    """A trackable unit of work, e.g. an issue ticket."""

    model_config = ConfigDict(extra="ignore")

    key: str = Field(..., description="Tracker key such as PROJ-123.")
    summary: str = Field(default="", description="One-line title of the work item.")
    is_subtask: bool = Field(default=False)
    subtasks: list[WorkItem] = Field(default_factory=list)

    @field_validator("key")
    @classmethod
    def _normalize_key(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("Work item key must not be empty")
        return normalized


class SearchResult(BaseModel):
    model_config = ConfigDict(extra="ignore")

    items: list[WorkItem] = Field(default_factory=list)
    total: int = 0


class WorklogEntry(BaseModel):
    """Time entry as accepted by the tracker."""

    model_config = ConfigDict(extra="ignore")

    id: str
    work_item_key: str
    time_spent: str = Field(..., description="Tracker duration text, e.g. '2h 30m'.")
    time_spent_seconds: int = 0


__all__ = ["SearchResult", "WorkItem", "WorklogEntry"]
