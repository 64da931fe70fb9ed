"""
Recurrence models.

Defines the weekday tokens, the decoded rule string and the recurrence value
object attached to a repeating task.
"""

from __future__ import annotations

import re
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    field_validator,
    model_serializer,
    model_validator,
)

from gtd_recurrence.models.enums import RecurrenceRule, RecurrenceStrategy, RecurrenceWeekday

BY_DAY_PATTERN = re.compile(r"^(-1|1|2|3|4)?(SU|MO|TU|WE|TH|FR|SA)$")

Ordinal = Literal[1, 2, 3, 4, -1]


class OrdinalWeekday(BaseModel):
    """The Nth (1-4) or last (-1) occurrence of a weekday within a month."""

    model_config = ConfigDict(frozen=True)

    ordinal: Ordinal
    weekday: RecurrenceWeekday

    def __str__(self) -> str:
        return f"{self.ordinal}{self.weekday.value}"

    @model_serializer
    def _serialize(self) -> str:
        return str(self)

    @classmethod
    def parse(cls, token: str) -> Optional["OrdinalWeekday"]:
        """Parse ``2TU`` / ``-1FR``; anything else (including bare ``MO``) yields None."""
        parsed = parse_by_day_token(token)
        return parsed if isinstance(parsed, OrdinalWeekday) else None


ByDayToken = Union[RecurrenceWeekday, OrdinalWeekday]


def parse_by_day_token(token: Any) -> Optional[ByDayToken]:
    """Decode one BYDAY token, case-insensitively. Returns None when invalid."""
    if isinstance(token, (RecurrenceWeekday, OrdinalWeekday)):
        return token
    if not isinstance(token, str):
        return None
    match = BY_DAY_PATTERN.match(token.strip().upper())
    if not match:
        return None
    ordinal, code = match.groups()
    weekday = RecurrenceWeekday(code)
    if ordinal:
        return OrdinalWeekday(ordinal=int(ordinal), weekday=weekday)
    return weekday


def token_code(token: ByDayToken) -> str:
    """Serialized form of a BYDAY token (``MO``, ``2TU``)."""
    if isinstance(token, RecurrenceWeekday):
        return token.value
    return str(token)


def _coerce_by_day(value: Any) -> Any:
    if value is None or isinstance(value, str):
        return value
    coerced = []
    for item in value:
        token = parse_by_day_token(item)
        if token is None:
            raise ValueError(f"invalid weekday token: {item!r}")
        coerced.append(token)
    return coerced


ByDayList = Annotated[list[ByDayToken], BeforeValidator(_coerce_by_day)]


class ParsedRule(BaseModel):
    """Decoded rule string. Defaults describe "no recurrence"."""

    model_config = ConfigDict(frozen=True)

    frequency: Optional[RecurrenceRule] = None
    interval: int = Field(1, ge=1)
    by_day: ByDayList = Field(default_factory=list)
    by_month_day: list[int] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return self.frequency is None

    @property
    def weekdays(self) -> list[RecurrenceWeekday]:
        """Bare weekday tokens, in stored order."""
        return [token for token in self.by_day if isinstance(token, RecurrenceWeekday)]

    @property
    def ordinal_weekdays(self) -> list[OrdinalWeekday]:
        """Nth/last weekday tokens, in stored order."""
        return [token for token in self.by_day if isinstance(token, OrdinalWeekday)]


class RecurrenceSpec(BaseModel):
    """
    Recurrence attached to a task.

    The structured fields are the editable projection; ``rrule`` is the
    serialized form. ``interval`` and ``by_month_day`` left unset mean
    "take them from ``rrule``". Instances are immutable, an edit produces a
    new spec.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    rule: RecurrenceRule
    strategy: RecurrenceStrategy = RecurrenceStrategy.STRICT
    by_day: Optional[ByDayList] = Field(None, alias="byDay")
    interval: Optional[int] = Field(None, ge=1)
    by_month_day: Optional[list[int]] = Field(None, alias="byMonthDay")
    rrule: Optional[str] = None

    @field_validator("by_month_day")
    @classmethod
    def _check_month_days(cls, value: Optional[list[int]]) -> Optional[list[int]]:
        if value is not None:
            for day in value:
                if not 1 <= day <= 31:
                    raise ValueError(f"day of month must be within 1-31, got {day}")
        return value

    @field_validator("rrule")
    @classmethod
    def _blank_rrule_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value

    @model_validator(mode="after")
    def _check_rule_shape(self) -> "RecurrenceSpec":
        if self.by_day and self.rule != RecurrenceRule.MONTHLY:
            if any(isinstance(token, OrdinalWeekday) for token in self.by_day):
                raise ValueError("ordinal weekday tokens are only valid for monthly rules")
        if self.by_month_day and self.rule != RecurrenceRule.MONTHLY:
            raise ValueError("day of month is only valid for monthly rules")
        return self

    @property
    def parsed(self) -> ParsedRule:
        """Decoded ``rrule`` (empty when there is none). Parses are memoized per string."""
        from gtd_recurrence.services.rrule_codec import parse_rrule

        return parse_rrule(self.rrule or "")


class RecurrenceEdit(BaseModel):
    """
    One editor change. Unset fields keep their current value.

    Values are checked when the edit is applied, so that every failure is
    reported the same way regardless of which control produced it.
    """

    rule: Optional[RecurrenceRule] = None
    strategy: Optional[RecurrenceStrategy] = None
    by_day: Optional[list[Union[RecurrenceWeekday, OrdinalWeekday, str]]] = None
    interval: Optional[int] = None
    by_month_day: Optional[list[int]] = None
    clear: bool = False
