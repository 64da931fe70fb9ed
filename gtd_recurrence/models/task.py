"""
Task model definitions.

Only the fields the recurrence engine reads or copies are modelled here; the
task store owns the full record.
"""

from datetime import datetime
from typing import Any, Literal, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator

from gtd_recurrence.models.enums import TaskStatus, TimeEstimate
from gtd_recurrence.models.recurrence import RecurrenceSpec
from gtd_recurrence.utils.datetime_utils import TaskDate, parse_task_date

_DATE_FIELDS = ("start_time", "due_date", "review_at")


def _parse_dates(value: Any) -> Any:
    if isinstance(value, str):
        parsed = parse_task_date(value)
        if parsed is None:
            raise ValueError(f"not an ISO date or datetime: {value!r}")
        return parsed
    return value


def _coerce_recurrence_value(value: Any) -> Optional[RecurrenceSpec]:
    from gtd_recurrence.services.recurrence_normalizer import coerce_recurrence

    return coerce_recurrence(value)


class ChecklistItem(BaseModel):
    """Checklist entry (sub-step or shopping list line)."""

    id: UUID = Field(default_factory=uuid4)
    title: str = Field(..., min_length=1, max_length=500)
    is_completed: bool = False


class Attachment(BaseModel):
    """File or link attached to a task."""

    id: UUID = Field(default_factory=uuid4)
    kind: Literal["file", "link"] = "link"
    title: str = Field(..., min_length=1, max_length=500)
    uri: str
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None


class TaskBase(BaseModel):
    """Base task fields shared across create/read."""

    title: str = Field(..., min_length=1, max_length=500)
    status: TaskStatus = TaskStatus.INBOX
    start_time: Optional[TaskDate] = Field(None, description="Start date (date-only or datetime)")
    due_date: Optional[TaskDate] = Field(None, description="Due date (date-only or datetime)")
    review_at: Optional[TaskDate] = Field(None, description="Tickler date")
    recurrence: Optional[RecurrenceSpec] = Field(
        None, description="Repeat rule; None means the task does not repeat"
    )
    tags: list[str] = Field(default_factory=list)
    contexts: list[str] = Field(default_factory=list, description="e.g. @home, @work")
    checklist: list[ChecklistItem] = Field(default_factory=list)
    description: Optional[str] = Field(None, max_length=10000)
    attachments: list[Attachment] = Field(default_factory=list)
    location: Optional[str] = Field(None, max_length=500)
    project_id: Optional[UUID] = None
    is_focused_today: bool = False
    time_estimate: Optional[TimeEstimate] = None

    @field_validator(*_DATE_FIELDS, mode="before")
    @classmethod
    def _parse_task_dates(cls, value: Any) -> Any:
        return _parse_dates(value)

    @field_validator("recurrence", mode="before")
    @classmethod
    def _coerce_recurrence(cls, value: Any) -> Optional[RecurrenceSpec]:
        return _coerce_recurrence_value(value)


class TaskCreate(TaskBase):
    """Create a new task."""

    pass


class TaskUpdate(BaseModel):
    """Update task fields. Unset fields are left unchanged."""

    title: Optional[str] = Field(None, min_length=1, max_length=500)
    status: Optional[TaskStatus] = None
    start_time: Optional[TaskDate] = None
    due_date: Optional[TaskDate] = None
    review_at: Optional[TaskDate] = None
    recurrence: Optional[RecurrenceSpec] = None
    is_focused_today: Optional[bool] = None
    completed_at: Optional[datetime] = None

    @field_validator(*_DATE_FIELDS, mode="before")
    @classmethod
    def _parse_task_dates(cls, value: Any) -> Any:
        return _parse_dates(value)

    @field_validator("recurrence", mode="before")
    @classmethod
    def _coerce_recurrence(cls, value: Any) -> Optional[RecurrenceSpec]:
        return _coerce_recurrence_value(value)


class Task(TaskBase):
    """Task with metadata."""

    id: UUID
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
