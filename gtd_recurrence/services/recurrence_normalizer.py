"""
Recurrence normalizer.

A persisted recurrence may carry the same intent three times over: the base
rule, an explicit weekday list and the rule string. This module reconciles
them into one consistent ``RecurrenceSpec`` and applies editor changes so that
all three are rebuilt together.

``None`` stands for "no recurrence" everywhere in this module.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from gtd_recurrence.core.config import get_settings
from gtd_recurrence.core.exceptions import RecurrenceValidationError
from gtd_recurrence.core.logger import setup_logger
from gtd_recurrence.models.enums import (
    MonthlyPattern,
    RecurrenceRule,
    RecurrenceStrategy,
    RecurrenceWeekday,
)
from gtd_recurrence.models.recurrence import (
    ByDayToken,
    Ordinal,
    OrdinalWeekday,
    ParsedRule,
    RecurrenceEdit,
    RecurrenceSpec,
)
from gtd_recurrence.services.rrule_codec import build_rrule, normalize_by_day, parse_rrule

logger = setup_logger(__name__)


def default_strategy() -> RecurrenceStrategy:
    return RecurrenceStrategy(get_settings().DEFAULT_RECURRENCE_STRATEGY)


def _matching_rrule(spec: RecurrenceSpec) -> ParsedRule:
    """Parsed ``rrule``, or the empty rule when its FREQ disagrees with ``spec.rule``."""
    parsed = spec.parsed
    if parsed.frequency != spec.rule:
        return ParsedRule()
    return parsed


def _tokens_for_rule(rule: RecurrenceRule, tokens: list[ByDayToken]) -> list[ByDayToken]:
    if rule == RecurrenceRule.WEEKLY:
        return [token for token in tokens if isinstance(token, RecurrenceWeekday)]
    if rule == RecurrenceRule.MONTHLY:
        return list(tokens)
    return []


def derive_by_day(spec: RecurrenceSpec) -> list[ByDayToken]:
    """Structured weekdays if any, otherwise those encoded in ``rrule``."""
    if spec.by_day:
        return normalize_by_day(spec.by_day)
    if spec.rrule:
        return list(spec.parsed.by_day)
    return []


def derive_interval(spec: RecurrenceSpec) -> int:
    if spec.interval is not None:
        return spec.interval
    return _matching_rrule(spec).interval


def derive_by_month_day(spec: RecurrenceSpec) -> list[int]:
    if spec.rule != RecurrenceRule.MONTHLY:
        return []
    if spec.by_month_day:
        return sorted(set(spec.by_month_day))
    return list(_matching_rrule(spec).by_month_day)


def derive_canonical_rrule(spec: RecurrenceSpec) -> str:
    """The stored rule string if there is one, otherwise one built from the structured fields."""
    if spec.rrule:
        return spec.rrule
    return build_rrule(spec.rule, derive_by_day(spec), derive_interval(spec), derive_by_month_day(spec))


def normalize_recurrence(spec: RecurrenceSpec) -> RecurrenceSpec:
    """
    Reconcile all fields of a recurrence.

    Structured fields win over the rule string; the string fills in whatever
    the structured fields leave unset, and is ignored when its FREQ names a
    different rule. The returned spec's ``rrule`` is rebuilt from the
    reconciled fields, and its ``by_day`` is in the same order as the string.
    Applying this twice gives the same result as applying it once.
    """
    tokens = normalize_by_day(spec.by_day) if spec.by_day else list(_matching_rrule(spec).by_day)
    by_day = _tokens_for_rule(spec.rule, tokens)
    rrule = build_rrule(spec.rule, by_day, derive_interval(spec), derive_by_month_day(spec))
    canonical = parse_rrule(rrule)
    return RecurrenceSpec(
        rule=spec.rule,
        strategy=spec.strategy,
        by_day=list(canonical.by_day) or None,
        interval=canonical.interval,
        by_month_day=list(canonical.by_month_day) or None,
        rrule=rrule,
    )


def spec_from_parsed(
    parsed: ParsedRule, strategy: Optional[RecurrenceStrategy] = None
) -> Optional[RecurrenceSpec]:
    """Recurrence for a decoded rule string, or None for the empty rule."""
    if parsed.is_empty:
        return None
    rrule = build_rrule(parsed.frequency, parsed.by_day, parsed.interval, parsed.by_month_day)
    return normalize_recurrence(
        RecurrenceSpec(rule=parsed.frequency, strategy=strategy or default_strategy(), rrule=rrule)
    )


def coerce_recurrence(value: Any) -> Optional[RecurrenceSpec]:
    """
    Read the persisted ``recurrence`` field of a task.

    Older clients store a bare rule name ("weekly"), sync payloads carry a
    JSON object (``byDay`` in camelCase), and some records only hold a rule
    string. Anything that cannot be understood is treated as no recurrence
    and logged, so that the surrounding task still loads.
    """
    if value is None or value == "":
        return None
    if isinstance(value, RecurrenceSpec):
        return normalize_recurrence(value)
    if isinstance(value, str):
        return _coerce_text(value)
    if isinstance(value, Mapping):
        return _coerce_mapping(value)
    logger.warning("Unsupported recurrence value dropped: %r", value)
    return None


def _enum_or_none(enum_cls, raw: Any):
    if isinstance(raw, enum_cls):
        return raw
    if isinstance(raw, str) and raw in {member.value for member in enum_cls}:
        return enum_cls(raw)
    return None


def _coerce_text(value: str) -> Optional[RecurrenceSpec]:
    name = value.strip().lower()
    if name in {rule.value for rule in RecurrenceRule}:
        return normalize_recurrence(
            RecurrenceSpec(rule=RecurrenceRule(name), strategy=default_strategy())
        )
    spec = spec_from_parsed(parse_rrule(value))
    if spec is None:
        logger.warning("Unrecognized recurrence string dropped: %r", value)
    return spec


def _coerce_mapping(value: Mapping) -> Optional[RecurrenceSpec]:
    raw_rule = value.get("rule")
    raw_rrule = value.get("rrule") if isinstance(value.get("rrule"), str) else None
    rule = _enum_or_none(RecurrenceRule, raw_rule)
    if rule is None and raw_rrule:
        rule = parse_rrule(raw_rrule).frequency
    if rule is None:
        logger.warning("Recurrence without a usable rule dropped: %r", dict(value))
        return None

    strategy = _enum_or_none(RecurrenceStrategy, value.get("strategy")) or default_strategy()
    raw_by_day = value.get("byDay", value.get("by_day"))
    by_day = normalize_by_day(raw_by_day) if isinstance(raw_by_day, list) else []
    payload = {
        "rule": rule,
        "strategy": strategy,
        "by_day": by_day or None,
        "interval": value.get("interval"),
        "by_month_day": value.get("byMonthDay", value.get("by_month_day")),
        "rrule": raw_rrule,
    }
    try:
        spec = RecurrenceSpec.model_validate(payload)
    except PydanticValidationError as exc:
        logger.warning(
            "Recurrence fields rejected, keeping rule string only: %s",
            exc.errors(include_url=False),
        )
        spec = RecurrenceSpec(rule=rule, strategy=strategy, rrule=raw_rrule)
    return normalize_recurrence(spec)


def classify_monthly_pattern(spec: RecurrenceSpec, anchor: date) -> Optional[MonthlyPattern]:
    """
    Decide which monthly editor applies.

    SIMPLE is "same calendar day every month": no Nth/last weekday token, an
    interval of 1, and no day of month other than the anchor's. Everything
    else is CUSTOM. Returns None for non-monthly rules.
    """
    if spec.rule != RecurrenceRule.MONTHLY:
        return None
    parsed = normalize_recurrence(spec).parsed
    month_days = parsed.by_month_day
    if parsed.ordinal_weekdays or parsed.interval > 1:
        return MonthlyPattern.CUSTOM
    if len(month_days) > 1 or (month_days and month_days[0] != anchor.day):
        return MonthlyPattern.CUSTOM
    return MonthlyPattern.SIMPLE


def _build_spec(**fields: Any) -> RecurrenceSpec:
    try:
        return RecurrenceSpec(**fields)
    except PydanticValidationError as exc:
        raise RecurrenceValidationError(
            "Invalid recurrence", details=exc.errors(include_url=False)
        ) from exc


def apply_recurrence_edit(
    current: Optional[RecurrenceSpec], edit: RecurrenceEdit
) -> Optional[RecurrenceSpec]:
    """
    Apply one editor change and rebuild every dependent field.

    Switching to another rule starts that rule from scratch (weekdays, month
    days and interval are not carried over). For monthly rules the Nth-weekday
    and day-of-month modes are exclusive: setting one clears the other.

    Raises:
        RecurrenceValidationError: the edit describes an invalid recurrence
    """
    if edit.clear:
        return None

    base = normalize_recurrence(current) if current is not None else None
    rule = edit.rule or (base.rule if base else None)
    if rule is None:
        raise RecurrenceValidationError("A recurrence needs a base rule")
    keep = base is not None and base.rule == rule

    by_day = edit.by_day if edit.by_day is not None else (base.by_day if keep else None)
    by_month_day = (
        edit.by_month_day if edit.by_month_day is not None else (base.by_month_day if keep else None)
    )
    if rule == RecurrenceRule.MONTHLY:
        if edit.by_day and edit.by_month_day is None:
            by_month_day = None
        elif edit.by_month_day and edit.by_day is None:
            by_day = None

    spec = _build_spec(
        rule=rule,
        strategy=edit.strategy or (base.strategy if base else default_strategy()),
        by_day=by_day,
        interval=edit.interval if edit.interval is not None else (base.interval if keep else 1),
        by_month_day=by_month_day,
    )
    return normalize_recurrence(spec)


def toggle_weekday(spec: RecurrenceSpec, weekday: RecurrenceWeekday) -> RecurrenceSpec:
    """Select or deselect one weekday of a weekly recurrence."""
    if spec.rule != RecurrenceRule.WEEKLY:
        raise RecurrenceValidationError(
            "Weekdays can only be toggled on a weekly recurrence",
            details={"rule": spec.rule.value},
        )
    selected = [day for day in derive_by_day(spec) if isinstance(day, RecurrenceWeekday)]
    if weekday in selected:
        selected.remove(weekday)
    else:
        selected.append(weekday)
    return apply_recurrence_edit(spec, RecurrenceEdit(by_day=selected))


def build_monthly_custom(
    strategy: RecurrenceStrategy,
    interval: int = 1,
    ordinal: Optional[Ordinal] = None,
    weekday: Optional[RecurrenceWeekday] = None,
    month_day: Optional[int] = None,
) -> RecurrenceSpec:
    """
    Result of the custom monthly picker.

    Either ``ordinal`` + ``weekday`` ("every 2nd Tuesday", "every last Friday")
    or ``month_day`` ("every 15th") must be given, optionally every
    ``interval`` months.

    Raises:
        RecurrenceValidationError: neither mode is complete, or a value is out of range
    """
    if ordinal is not None and weekday is not None:
        try:
            token = OrdinalWeekday(ordinal=ordinal, weekday=weekday)
        except PydanticValidationError as exc:
            raise RecurrenceValidationError(
                "Invalid weekday position", details=exc.errors(include_url=False)
            ) from exc
        edit = RecurrenceEdit(
            rule=RecurrenceRule.MONTHLY, strategy=strategy, by_day=[token], interval=interval
        )
    elif month_day is not None:
        edit = RecurrenceEdit(
            rule=RecurrenceRule.MONTHLY,
            strategy=strategy,
            by_month_day=[month_day],
            interval=interval,
        )
    else:
        raise RecurrenceValidationError(
            "Choose a weekday position or a day of the month",
            details={"ordinal": ordinal, "weekday": weekday, "month_day": month_day},
        )
    return apply_recurrence_edit(None, edit)
