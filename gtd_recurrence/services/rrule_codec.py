"""
Rule string codec.

Converts between the structured recurrence description and the canonical
rule string (a small subset of the iCalendar RRULE grammar):

    FREQ=<DAILY|WEEKLY|MONTHLY|YEARLY>[;INTERVAL=n][;BYDAY=tok,...][;BYMONTHDAY=d,...]

Output clause order is fixed. Input clause order is free and keys are
case-insensitive. Parsing never raises: anything unrecognized degrades to the
empty rule.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Iterable, Optional

from gtd_recurrence.core.logger import setup_logger
from gtd_recurrence.models.enums import WEEKDAY_ORDER, RecurrenceRule, RecurrenceWeekday
from gtd_recurrence.models.recurrence import (
    ByDayToken,
    ParsedRule,
    parse_by_day_token,
    token_code,
)

logger = setup_logger(__name__)

_FREQUENCIES = {rule.freq: rule for rule in RecurrenceRule}


def normalize_by_day(tokens: Optional[Iterable[object]]) -> list[ByDayToken]:
    """Decode tokens, dropping invalid ones and duplicates (first one wins)."""
    result: list[ByDayToken] = []
    seen: set[str] = set()
    for raw in tokens or ():
        token = parse_by_day_token(raw)
        if token is None:
            continue
        code = token_code(token)
        if code in seen:
            continue
        seen.add(code)
        result.append(token)
    return result


def normalize_month_days(days: Optional[Iterable[object]]) -> list[int]:
    """Distinct days within 1-31, ascending. Non-numeric entries are dropped."""
    result: set[int] = set()
    for raw in days or ():
        try:
            day = int(str(raw).strip())
        except ValueError:
            continue
        if 1 <= day <= 31:
            result.add(day)
    return sorted(result)


def format_by_day(rule: RecurrenceRule, tokens: Optional[Iterable[object]]) -> list[str]:
    """BYDAY codes as they are written for ``rule``.

    Weekly rules keep bare weekdays in week order (SU first). Monthly rules
    keep every token, sorted by code. Other rules carry no BYDAY.
    """
    normalized = normalize_by_day(tokens)
    if rule == RecurrenceRule.WEEKLY:
        selected = {token for token in normalized if isinstance(token, RecurrenceWeekday)}
        return [day.value for day in WEEKDAY_ORDER if day in selected]
    if rule == RecurrenceRule.MONTHLY:
        return sorted(token_code(token) for token in normalized)
    return []


def build_rrule(
    rule: RecurrenceRule,
    by_day: Optional[Iterable[object]] = None,
    interval: Optional[int] = None,
    by_month_day: Optional[Iterable[object]] = None,
) -> str:
    """Serialize a rule. Identical input always yields an identical string."""
    rule = RecurrenceRule(rule)
    parts = [f"FREQ={rule.freq}"]
    if interval and interval > 1:
        parts.append(f"INTERVAL={interval}")
    codes = format_by_day(rule, by_day)
    if codes:
        parts.append(f"BYDAY={','.join(codes)}")
    if rule == RecurrenceRule.MONTHLY:
        days = normalize_month_days(by_month_day)
        if days:
            parts.append(f"BYMONTHDAY={','.join(str(day) for day in days)}")
    return ";".join(parts)


def parse_rrule(text: str) -> ParsedRule:
    """Decode a rule string. Malformed input yields the empty ``ParsedRule``.

    Every call returns its own copy, so callers may modify the result.
    """
    if not text or not isinstance(text, str):
        return ParsedRule()
    return _parse_cached(text).model_copy(deep=True)


@lru_cache(maxsize=512)
def _parse_cached(text: str) -> ParsedRule:
    clauses: dict[str, str] = {}
    for part in text.split(";"):
        key, sep, value = part.partition("=")
        key, value = key.strip().upper(), value.strip()
        if sep and key and value:
            clauses[key] = value

    frequency = _FREQUENCIES.get(clauses.get("FREQ", "").upper())
    if frequency is None:
        logger.debug("Unrecognized rule string degraded to no recurrence: %r", text)
        return ParsedRule()

    interval = 1
    if "INTERVAL" in clauses:
        try:
            interval = max(int(clauses["INTERVAL"]), 1)
        except ValueError:
            interval = 1

    by_day = normalize_by_day(clauses["BYDAY"].split(",")) if "BYDAY" in clauses else []
    by_month_day = (
        normalize_month_days(clauses["BYMONTHDAY"].split(","))
        if "BYMONTHDAY" in clauses
        else []
    )
    return ParsedRule(
        frequency=frequency,
        interval=interval,
        by_day=by_day,
        by_month_day=by_month_day,
    )

