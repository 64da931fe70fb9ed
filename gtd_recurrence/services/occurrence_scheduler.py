"""
Occurrence scheduler.

Computes the next anchor date of a repeating task once it is completed.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any, Optional

from gtd_recurrence.core.config import get_settings
from gtd_recurrence.core.exceptions import ValidationError
from gtd_recurrence.models.enums import (
    WEEKDAY_ORDER,
    RecurrenceRule,
    RecurrenceStrategy,
    RecurrenceWeekday,
)
from gtd_recurrence.models.recurrence import OrdinalWeekday, ParsedRule
from gtd_recurrence.services.recurrence_normalizer import coerce_recurrence
from gtd_recurrence.utils.datetime_utils import (
    TaskDate,
    add_months_clamped,
    add_years_clamped,
    days_in_month,
    format_task_date,
    parse_task_date,
)


def nth_weekday_of_month(year: int, month: int, token: OrdinalWeekday) -> Optional[date]:
    """Date of the Nth (or last, for -1) given weekday in a month, None if the month has none."""
    last_day = days_in_month(year, month)
    target = token.weekday.index
    if token.ordinal > 0:
        first_weekday = RecurrenceWeekday.from_date(date(year, month, 1)).index
        day = 1 + (target - first_weekday) % 7 + (token.ordinal - 1) * 7
        return date(year, month, day) if day <= last_day else None
    last_weekday = RecurrenceWeekday.from_date(date(year, month, last_day)).index
    return date(year, month, last_day - (last_weekday - target) % 7)


def _shift_month(value: date, months: int) -> tuple[int, int]:
    month_index = value.year * 12 + value.month - 1 + months
    return month_index // 12, month_index % 12 + 1


def _on_day(base: TaskDate, day: date) -> TaskDate:
    """Move ``base`` to ``day``, keeping its time of day and zone."""
    if isinstance(base, datetime):
        return base.replace(year=day.year, month=day.month, day=day.day)
    return day


class OccurrenceScheduler:
    """
    Next-occurrence calculation for strict and fluid recurrences.

    Pattern rules (weekly weekdays, monthly Nth weekday or day of month) are
    searched over a bounded window of interval steps; if nothing matches in the
    window the plain interval is added instead.
    """

    def __init__(
        self,
        weekly_lookahead: Optional[int] = None,
        monthly_lookahead: Optional[int] = None,
    ):
        settings = get_settings()
        if weekly_lookahead is None:
            weekly_lookahead = settings.RECURRENCE_WEEKLY_LOOKAHEAD
        if monthly_lookahead is None:
            monthly_lookahead = settings.RECURRENCE_MONTHLY_LOOKAHEAD
        if weekly_lookahead < 1 or monthly_lookahead < 1:
            raise ValidationError(
                "Lookahead windows must span at least one interval step",
                details={"weekly_lookahead": weekly_lookahead, "monthly_lookahead": monthly_lookahead},
            )
        self.weekly_lookahead = weekly_lookahead
        self.monthly_lookahead = monthly_lookahead

    def next_occurrence(
        self,
        current_anchor: Optional[TaskDate],
        spec: Any,
        completed_at: TaskDate,
    ) -> Optional[TaskDate]:
        """
        Compute the next anchor after a completion.

        Args:
            current_anchor: Scheduled date of the occurrence just completed
            spec: RecurrenceSpec, or any persisted recurrence value
            completed_at: When the task was actually completed

        Returns:
            The next anchor (same type, time of day and zone as the base it was
            computed from), or None when there is no recurrence to follow
        """
        recurrence = coerce_recurrence(spec)
        if recurrence is None:
            return None
        if recurrence.strategy == RecurrenceStrategy.FLUID or current_anchor is None:
            base = completed_at
        else:
            base = current_anchor
        if base is None:
            return None
        return self.advance(base, recurrence.parsed)

    def advance(self, base: TaskDate, parsed: ParsedRule) -> Optional[TaskDate]:
        """One step of ``parsed`` after ``base``."""
        if parsed.is_empty:
            return None
        base_day = base.date() if isinstance(base, datetime) else base
        return _on_day(base, self._advance_day(base_day, parsed))

    def shift_iso(
        self,
        base_iso: Optional[str],
        spec: Any,
        completed_at_iso: str,
    ) -> Optional[str]:
        """
        ``next_occurrence`` over stored ISO strings.

        The result keeps the shape of the string it was computed from:
        date-only stays date-only, local wall-clock stays local, zoned stays
        zoned. An empty or unreadable base falls back to the completion time.
        """
        recurrence = coerce_recurrence(spec)
        completed_at = parse_task_date(completed_at_iso)
        if recurrence is None or completed_at is None:
            return None
        template = completed_at_iso if recurrence.strategy == RecurrenceStrategy.FLUID else base_iso
        base = parse_task_date(template)
        if base is None:
            template, base = completed_at_iso, completed_at
        result = self.advance(base, recurrence.parsed)
        return format_task_date(result, template) if result is not None else None

    def _advance_day(self, base: date, parsed: ParsedRule) -> date:
        interval = parsed.interval
        freq = parsed.frequency

        if freq == RecurrenceRule.DAILY:
            return base + timedelta(days=interval)

        elif freq == RecurrenceRule.WEEKLY:
            if parsed.weekdays:
                return self._next_weekly_by_day(base, parsed.weekdays, interval)
            return base + timedelta(weeks=interval)

        elif freq == RecurrenceRule.MONTHLY:
            if parsed.ordinal_weekdays:
                return self._next_monthly_by_ordinal(base, parsed.ordinal_weekdays, interval)
            if parsed.by_month_day:
                return self._next_monthly_by_month_day(base, parsed.by_month_day, interval)
            return add_months_clamped(base, interval)

        return add_years_clamped(base, interval)

    def _next_weekly_by_day(
        self, base: date, weekdays: list[RecurrenceWeekday], interval: int
    ) -> date:
        """Next selected weekday after base; later weeks are stepped ``interval`` weeks apart."""
        ordered = [day for day in WEEKDAY_ORDER if day in weekdays]
        # Weeks start on Sunday
        week_start = base - timedelta(days=RecurrenceWeekday.from_date(base).index)

        for week_offset in range(0, interval * self.weekly_lookahead + 1, interval):
            candidate_week = week_start + timedelta(weeks=week_offset)
            for weekday in ordered:
                candidate = candidate_week + timedelta(days=weekday.index)
                if week_offset == 0 and candidate <= base:
                    continue
                return candidate
        return base + timedelta(weeks=interval)

    def _next_monthly_by_ordinal(
        self, base: date, tokens: list[OrdinalWeekday], interval: int
    ) -> date:
        """Earliest Nth/last weekday match, searching the base month first only for interval 1."""
        start = 0 if interval == 1 else interval
        for offset in range(start, interval * self.monthly_lookahead + 1, interval):
            year, month = _shift_month(base, offset)
            candidates = []
            for token in tokens:
                candidate = nth_weekday_of_month(year, month, token)
                if candidate is None or (offset == 0 and candidate <= base):
                    continue
                candidates.append(candidate)
            if candidates:
                return min(candidates)
        return add_months_clamped(base, interval)

    def _next_monthly_by_month_day(self, base: date, days: list[int], interval: int) -> date:
        """Earliest listed day of month, clamped to the length of the target month."""
        start = 0 if interval == 1 else interval
        for offset in range(start, interval * self.monthly_lookahead + 1, interval):
            year, month = _shift_month(base, offset)
            last_day = days_in_month(year, month)
            candidates = [
                date(year, month, min(day, last_day))
                for day in days
                if offset != 0 or date(year, month, min(day, last_day)) > base
            ]
            if candidates:
                return min(candidates)
        return add_months_clamped(base, interval)


def next_occurrence(
    current_anchor: Optional[TaskDate], spec: Any, completed_at: TaskDate
) -> Optional[TaskDate]:
    """Module-level shortcut for ``OccurrenceScheduler().next_occurrence``."""
    return OccurrenceScheduler().next_occurrence(current_anchor, spec, completed_at)


def shift_iso(base_iso: Optional[str], spec: Any, completed_at_iso: str) -> Optional[str]:
    """Module-level shortcut for ``OccurrenceScheduler().shift_iso``."""
    return OccurrenceScheduler().shift_iso(base_iso, spec, completed_at_iso)
