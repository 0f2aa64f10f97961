"""Records persisted by the ledger."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TimerState(str, Enum):
    """Lifecycle of the work timer."""

    RUNNING = "running"
    IDLE = "idle"
    STOPPED = "stopped"


class PendingSubmission(BaseModel):
    """A time entry that could not be delivered because the tracker was unreachable."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(default_factory=lambda: uuid4().hex, description="Queue-local identifier.")
    work_item_key: str = Field(..., description="Tracker key the time is booked against.")
    time_spent_seconds: int = Field(..., gt=0, description="Time to book, in whole seconds.")
    comment: str | None = Field(default=None, description="Optional worklog comment.")
    started_at: datetime = Field(..., description="When the booked work started.")
    enqueued_at: datetime = Field(..., description="When the entry entered the queue.")

    @field_validator("work_item_key")
    @classmethod
    def _normalize_key(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("Pending submission work item key must not be empty")
        return normalized


class LedgerState(BaseModel):
    """Flat record holding everything the core must survive a restart with."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    total_time_ms: int = Field(default=0, ge=0)
    status: TimerState = TimerState.STOPPED
    last_update_timestamp: int = 0
    last_issue_key: str | None = None
    last_comment: str | None = None
    auto_paused_by_focus: bool = False
    auto_paused_by_workspace_switch: bool = False
    branch_issues: dict[str, str] = Field(default_factory=dict)
    pending_submissions: list[PendingSubmission] = Field(default_factory=list)

    @field_validator("status", mode="before")
    @classmethod
    def _tolerate_unknown_status(cls, value: Any) -> Any:
        if isinstance(value, TimerState):
            return value
        if isinstance(value, str):
            normalized = value.strip().lower()
            if normalized in {state.value for state in TimerState}:
                return normalized
        return TimerState.STOPPED

    @field_validator("total_time_ms", mode="before")
    @classmethod
    def _clamp_total(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and value < 0:
            return 0
        return value


__all__ = ["LedgerState", "PendingSubmission", "TimerState"]
