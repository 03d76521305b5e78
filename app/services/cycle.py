from __future__ import annotations

from dataclasses import dataclass, asdict
from datetime import date, datetime, timedelta
from typing import Any, Dict, Optional, Union

from dateutil.parser import isoparse

DateLike = Union[date, datetime, str]


class InvalidInputError(ValueError):
    """A required date is missing, unparseable or chronologically impossible."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


@dataclass(frozen=True)
class GestationConstants:
    gestation_days: int = 283
    insem_window_start_days: int = 50
    insem_window_end_days: int = 90
    due_soon_threshold_days: int = 30  # calving notice horizon
    near_due_threshold_days: int = 7   # "due_soon" status


DEFAULT_CONSTANTS = GestationConstants()


def to_date(value: Optional[DateLike], field: str = "date") -> date:
    # datetime is a subclass of date, check it first
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidInputError(f"{field} is required.", field=field)
    if not isinstance(value, str):
        raise InvalidInputError(f"{field} must be a date or ISO-8601 string, got {type(value).__name__}.", field=field)
    try:
        return isoparse(value.strip()).date()
    except (ValueError, OverflowError) as exc:
        raise InvalidInputError(f"{field} is not a valid ISO-8601 date: {value!r}.", field=field) from exc


def _days_between(start: date, end: date) -> int:
    return (end - start).days


def _as_dict(obj) -> Dict[str, Any]:
    return {k: (v.isoformat() if isinstance(v, date) else v) for k, v in asdict(obj).items()}


# ---------------------------
# Gestation projection
# ---------------------------
def compute_expected_calving(last_insemination_date: DateLike, gestation_days: int = DEFAULT_CONSTANTS.gestation_days) -> date:
    if isinstance(gestation_days, bool) or not isinstance(gestation_days, int) or gestation_days <= 0:
        raise InvalidInputError("gestation_days must be a positive integer.", field="gestation_days")
    start = to_date(last_insemination_date, "last_insemination_date")
    return start + timedelta(days=gestation_days)


@dataclass(frozen=True)
class CalvingRecord:
    last_insemination_date: date
    actual_calving_date: Optional[date] = None
    gestation_days: int = DEFAULT_CONSTANTS.gestation_days

    @classmethod
    def from_values(
        cls,
        last_insemination_date: DateLike,
        actual_calving_date: Optional[DateLike] = None,
        gestation_days: int = DEFAULT_CONSTANTS.gestation_days,
    ) -> "CalvingRecord":
        insem = to_date(last_insemination_date, "last_insemination_date")
        actual = to_date(actual_calving_date, "actual_calving_date") if actual_calving_date is not None else None
        if actual is not None and actual < insem:
            raise InvalidInputError(
                "actual_calving_date cannot be before last_insemination_date.",
                field="actual_calving_date",
            )
        return cls(last_insemination_date=insem, actual_calving_date=actual, gestation_days=gestation_days)

    @property
    def expected_calving_date(self) -> date:
        return compute_expected_calving(self.last_insemination_date, self.gestation_days)


# ---------------------------
# Pregnancy progress
# ---------------------------
@dataclass(frozen=True)
class PregnancyProgress:
    status: str  # pregnant | calved | overdue | due_soon
    last_insemination_date: date
    expected_calving_date: date
    actual_calving_date: Optional[date]
    days_since_insemination: int
    days_until_calving: int
    progress_percentage: float
    total_gestation_days: int

    def as_dict(self) -> Dict[str, Any]:
        return _as_dict(self)


def compute_pregnancy_progress(
    last_insemination_date: DateLike,
    actual_calving_date: Optional[DateLike],
    now: DateLike,
    constants: GestationConstants = DEFAULT_CONSTANTS,
) -> PregnancyProgress:
    """
    Classify a pregnancy as of `now`.

    Status is decided in order: calved, overdue (past the expected date),
    due_soon (within `near_due_threshold_days`, zero included), pregnant.
    A `now` earlier than the insemination yields negative elapsed days and 0%.
    """
    record = CalvingRecord.from_values(last_insemination_date, actual_calving_date, constants.gestation_days)
    today = to_date(now, "now")

    total = constants.gestation_days
    expected = record.expected_calving_date
    since = _days_between(record.last_insemination_date, today)
    until = _days_between(today, expected)
    pct = max(0.0, min(100.0, since / total * 100.0))

    if record.actual_calving_date is not None:
        status = "calved"
        pct = 100.0
    elif until < 0:
        status = "overdue"
    elif until <= constants.near_due_threshold_days:
        status = "due_soon"
    else:
        status = "pregnant"

    return PregnancyProgress(
        status=status,
        last_insemination_date=record.last_insemination_date,
        expected_calving_date=expected,
        actual_calving_date=record.actual_calving_date,
        days_since_insemination=since,
        days_until_calving=until,
        progress_percentage=round(pct, 1),
        total_gestation_days=total,
    )


# ---------------------------
# Insemination window
# ---------------------------
@dataclass(frozen=True)
class InseminationWindow:
    last_calving_date: date
    days_since_calving: int
    ideal_start_days: int
    ideal_end_days: int
    days_until_ideal_start: int
    days_until_ideal_end: int
    is_in_window: bool
    is_past_window: bool
    is_before_window: bool
    recommended_date: date
    status: str  # ready | overdue | approaching

    def as_dict(self) -> Dict[str, Any]:
        return _as_dict(self)


def compute_next_insemination_window(
    last_calving_date: DateLike,
    now: DateLike,
    ideal_start: int = DEFAULT_CONSTANTS.insem_window_start_days,
    ideal_end: int = DEFAULT_CONSTANTS.insem_window_end_days,
) -> InseminationWindow:
    """
    Where a cow stands relative to the post-calving insemination window.

    Precondition: the cow has calved. A cow with no calving date has no
    window and callers must not ask for one.
    """
    for name, value in (("ideal_start", ideal_start), ("ideal_end", ideal_end)):
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidInputError(f"{name} must be an integer number of days.", field=name)
    if ideal_start < 0 or ideal_end < ideal_start:
        raise InvalidInputError("ideal window must satisfy 0 <= ideal_start <= ideal_end.", field="ideal_start")

    calved = to_date(last_calving_date, "last_calving_date")
    today = to_date(now, "now")
    since = _days_between(calved, today)

    is_before = since < ideal_start
    is_in = ideal_start <= since <= ideal_end
    is_past = since > ideal_end

    if is_past:
        status = "overdue"
    elif is_in:
        status = "ready"
    else:
        status = "approaching"

    return InseminationWindow(
        last_calving_date=calved,
        days_since_calving=since,
        ideal_start_days=ideal_start,
        ideal_end_days=ideal_end,
        days_until_ideal_start=max(0, ideal_start - since),
        days_until_ideal_end=max(0, ideal_end - since),
        is_in_window=is_in,
        is_past_window=is_past,
        is_before_window=is_before,
        recommended_date=calved + timedelta(days=ideal_start),
        status=status,
    )


def window_for(last_calving_date: DateLike, now: DateLike, constants: GestationConstants = DEFAULT_CONSTANTS) -> InseminationWindow:
    return compute_next_insemination_window(
        last_calving_date,
        now,
        ideal_start=constants.insem_window_start_days,
        ideal_end=constants.insem_window_end_days,
    )


def is_pregnant(cow) -> bool:
    return getattr(cow, "last_insemination_date", None) is not None and getattr(cow, "actual_calving_date", None) is None
