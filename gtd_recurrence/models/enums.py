"""
Enum definitions for the recurrence engine.

These enums are used across models and provide type-safe rule/strategy values.
"""

from __future__ import annotations

from datetime import date
from enum import Enum


class TaskStatus(str, Enum):
    """Task status."""

    INBOX = "inbox"
    TODO = "todo"
    NEXT = "next"
    IN_PROGRESS = "in-progress"
    WAITING = "waiting"
    SOMEDAY = "someday"
    DONE = "done"
    ARCHIVED = "archived"
    REFERENCE = "reference"


class TimeEstimate(str, Enum):
    """Rough time estimate buckets shown in the editor."""

    FIVE_MIN = "5min"
    FIFTEEN_MIN = "15min"
    THIRTY_MIN = "30min"
    ONE_HOUR = "1hr"
    TWO_HOURS_PLUS = "2hr+"


class RecurrenceRule(str, Enum):
    """Base frequencies a task can repeat at."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"

    @property
    def freq(self) -> str:
        """FREQ value used in the rule string."""
        return self.value.upper()


class RecurrenceStrategy(str, Enum):
    """
    How the next occurrence is anchored.

    STRICT = advance from the scheduled date, completion time is ignored
    FLUID = advance from the moment the task was actually completed
    """

    STRICT = "strict"
    FLUID = "fluid"


class MonthlyPattern(str, Enum):
    """Which monthly editor applies to a monthly recurrence."""

    SIMPLE = "simple"  # same calendar day every month
    CUSTOM = "custom"  # Nth/last weekday, other day of month, or N-month interval


class RecurrenceWeekday(str, Enum):
    """iCalendar day codes. Declaration order is the week order (Sunday first)."""

    SU = "SU"
    MO = "MO"
    TU = "TU"
    WE = "WE"
    TH = "TH"
    FR = "FR"
    SA = "SA"

    @property
    def index(self) -> int:
        """Position in the Sunday-first week (SU=0 ... SA=6)."""
        return WEEKDAY_ORDER.index(self)

    @classmethod
    def from_date(cls, value: date) -> "RecurrenceWeekday":
        """Weekday of a calendar date."""
        return WEEKDAY_ORDER[(value.weekday() + 1) % 7]


WEEKDAY_ORDER: tuple[RecurrenceWeekday, ...] = tuple(RecurrenceWeekday)
