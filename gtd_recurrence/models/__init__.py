"""Pydantic models (schemas) for the recurrence engine."""

from gtd_recurrence.models.enums import (
    WEEKDAY_ORDER,
    MonthlyPattern,
    RecurrenceRule,
    RecurrenceStrategy,
    RecurrenceWeekday,
    TaskStatus,
    TimeEstimate,
)
from gtd_recurrence.models.recurrence import (
    ByDayToken,
    OrdinalWeekday,
    ParsedRule,
    RecurrenceEdit,
    RecurrenceSpec,
)
from gtd_recurrence.models.task import Attachment, ChecklistItem, Task, TaskCreate, TaskUpdate

__all__ = [
    # Enums
    "WEEKDAY_ORDER",
    "MonthlyPattern",
    "RecurrenceRule",
    "RecurrenceStrategy",
    "RecurrenceWeekday",
    "TaskStatus",
    "TimeEstimate",
    # Recurrence
    "ByDayToken",
    "OrdinalWeekday",
    "ParsedRule",
    "RecurrenceEdit",
    "RecurrenceSpec",
    # Task
    "Attachment",
    "ChecklistItem",
    "Task",
    "TaskCreate",
    "TaskUpdate",
]
