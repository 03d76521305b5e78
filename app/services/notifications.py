from __future__ import annotations

from dataclasses import dataclass, asdict
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from .cycle import (
    DEFAULT_CONSTANTS,
    DateLike,
    GestationConstants,
    compute_pregnancy_progress,
    is_pregnant,
    to_date,
    window_for,
)

PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}


@dataclass(frozen=True)
class HerdAnimal:
    """Plain stand-in for a cow row when the caller has no ORM object."""
    cow_id: str
    name: Optional[str] = None
    last_insemination_date: Optional[date] = None
    actual_calving_date: Optional[date] = None
    last_calving_date: Optional[date] = None


@dataclass(frozen=True)
class Notification:
    type: str  # calving_due_soon | insemination_due
    priority: str  # high | medium | low
    message: str
    tag_number: str
    name: Optional[str] = None
    days_remaining: Optional[int] = None
    days_until_ideal: Optional[int] = None
    days_since_calving: Optional[int] = None
    expected_calving_date: Optional[date] = None
    last_calving_date: Optional[date] = None
    is_overdue: bool = False
    is_in_window: bool = False
    is_approaching: bool = False

    def as_dict(self) -> Dict[str, Any]:
        return {k: (v.isoformat() if isinstance(v, date) else v) for k, v in asdict(self).items()}


def _tag(cow) -> str:
    tag = getattr(cow, "cow_id", None) or getattr(cow, "tag_number", None)
    return str(tag) if tag is not None else "?"


def _label(cow) -> str:
    name = getattr(cow, "name", None)
    return f"{_tag(cow)} ({name})" if name else _tag(cow)


def calving_notice(cow, now: DateLike, constants: GestationConstants = DEFAULT_CONSTANTS) -> Optional[Notification]:
    if not is_pregnant(cow):
        return None

    progress = compute_pregnancy_progress(cow.last_insemination_date, None, now, constants)
    days = progress.days_until_calving
    if days > constants.due_soon_threshold_days:
        return None

    if progress.status == "overdue":
        priority = "high"
        message = f"Cow {_label(cow)} is {abs(days)} days overdue for calving"
    elif progress.status == "due_soon":
        priority = "medium"
        message = f"Cow {_label(cow)} is due to calve in {days} days" if days else f"Cow {_label(cow)} is due to calve today"
    else:
        priority = "low"
        message = f"Cow {_label(cow)} is expected to calve in {days} days"

    return Notification(
        type="calving_due_soon",
        priority=priority,
        message=message,
        tag_number=_tag(cow),
        name=getattr(cow, "name", None),
        days_remaining=days,
        expected_calving_date=progress.expected_calving_date,
        is_overdue=progress.status == "overdue",
    )


def insemination_notice(cow, now: DateLike, constants: GestationConstants = DEFAULT_CONSTANTS) -> Optional[Notification]:
    last_calving = getattr(cow, "last_calving_date", None)
    if is_pregnant(cow) or last_calving is None:
        return None

    window = window_for(last_calving, now, constants)

    if window.is_past_window:
        priority = "high"
        message = f"Cow {_label(cow)} is past the ideal insemination window ({window.days_since_calving} days since calving)"
    elif window.is_in_window:
        priority = "medium"
        message = f"Cow {_label(cow)} is ready for insemination ({window.days_since_calving} days since calving)"
    elif window.days_until_ideal_start <= constants.near_due_threshold_days:
        priority = "low"
        message = f"Cow {_label(cow)} enters the insemination window in {window.days_until_ideal_start} days"
    else:
        return None

    return Notification(
        type="insemination_due",
        priority=priority,
        message=message,
        tag_number=_tag(cow),
        name=getattr(cow, "name", None),
        days_until_ideal=window.days_until_ideal_start,
        days_since_calving=window.days_since_calving,
        last_calving_date=window.last_calving_date,
        is_overdue=window.is_past_window,
        is_in_window=window.is_in_window,
        is_approaching=window.is_before_window,
    )


def rank_notifications(
    cows: Iterable,
    now: DateLike,
    constants: GestationConstants = DEFAULT_CONSTANTS,
) -> List[Notification]:
    """
    Build the herd notification list, highest priority first.

    Each cow yields at most one calving notice and one insemination notice.
    Within a priority band the input order is kept.
    """
    today = to_date(now, "now")
    notices: List[Notification] = []
    for cow in cows:
        for build in (calving_notice, insemination_notice):
            n = build(cow, today, constants)
            if n is not None:
                notices.append(n)

    # sorted() is stable
    return sorted(notices, key=lambda n: PRIORITY_ORDER[n.priority])


def summarize_notifications(notices: Iterable[Notification]) -> Dict[str, int]:
    counts = {p: 0 for p in PRIORITY_ORDER}
    total = 0
    for n in notices:
        counts[n.priority] += 1
        total += 1
    counts["total"] = total
    return counts
