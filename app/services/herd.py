from __future__ import annotations

import math
from typing import Any, Dict, Iterable, List, Sequence

from .cycle import (
    DEFAULT_CONSTANTS,
    DateLike,
    GestationConstants,
    compute_pregnancy_progress,
    is_pregnant,
    to_date,
    window_for,
)

WINDOW_STATUS_ORDER = {"overdue": 0, "ready": 1, "approaching": 2}


def upcoming_calvings(cows: Iterable, now: DateLike, constants: GestationConstants = DEFAULT_CONSTANTS) -> List[Dict[str, Any]]:
    today = to_date(now, "now")
    rows = []
    for cow in cows:
        if not is_pregnant(cow):
            continue
        progress = compute_pregnancy_progress(cow.last_insemination_date, None, today, constants)
        rows.append({
            "cow_id": cow.cow_id,
            "name": getattr(cow, "name", None),
            "last_insemination_date": progress.last_insemination_date.isoformat(),
            "expected_calving_date": progress.expected_calving_date.isoformat(),
            "days_remaining": progress.days_until_calving,
            "days_since_insemination": progress.days_since_insemination,
            "progress": {
                "status": progress.status,
                "progress_percentage": progress.progress_percentage,
                "days_until_calving": progress.days_until_calving,
            },
        })

    rows.sort(key=lambda r: r["expected_calving_date"])
    return rows


def cows_needing_insemination(cows: Iterable, now: DateLike, constants: GestationConstants = DEFAULT_CONSTANTS) -> List[Dict[str, Any]]:
    today = to_date(now, "now")
    rows = []
    for cow in cows:
        if is_pregnant(cow) or getattr(cow, "last_calving_date", None) is None:
            continue
        window = window_for(cow.last_calving_date, today, constants)
        rows.append({
            "cow_id": cow.cow_id,
            "name": getattr(cow, "name", None),
            "last_calving_date": window.last_calving_date.isoformat(),
            "days_since_calving": window.days_since_calving,
            "days_until_ideal": window.days_until_ideal_start,
            "recommended_date": window.recommended_date.isoformat(),
            "is_overdue": window.is_past_window,
            "status": window.status,
        })

    rows.sort(key=lambda r: (WINDOW_STATUS_ORDER[r["status"]], -r["days_since_calving"]))
    return rows


def paginate(items: Sequence, page: int = 1, per_page: int = 25) -> Dict[str, Any]:
    count = len(items)
    last_page = max(1, math.ceil(count / per_page))
    page = max(1, min(page, last_page))
    start = (page - 1) * per_page
    return {
        "items": list(items[start:start + per_page]),
        "count": count,
        "current_page": page,
        "per_page": per_page,
        "last_page": last_page,
    }
