"""
groupplan/features/plans/validation.py

Pure checks for plans and availability entries. Nothing here touches the
database; the repository runs entries_overlap against stored rows.
"""

import re
from datetime import date, datetime, timezone
from typing import Optional

from groupplan.core.errors import ValidationError
from groupplan.models.plan import MAX_INT_COLUMN, PlanRecord

_START_DATE_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")


def parse_start_date(raw: str) -> date:
    """Parse yyyy-mm-dd, also accepting unpadded month and day (2030-1-1)."""
    match = _START_DATE_RE.match(raw.strip())
    if not match:
        raise ValidationError(f"invalid start date format [{raw}], please use yyyy-mm-dd")
    year, month, day = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        raise ValidationError(f"invalid start date format [{raw}], please use yyyy-mm-dd")


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def validate_plan(plan: PlanRecord, today: Optional[date] = None) -> None:
    """Raise ValidationError unless the plan can be created."""
    if plan.from_date < (today or utc_today()):
        raise ValidationError("Date cannot be in the past")
    if plan.duration_days <= 0:
        raise ValidationError("Duration cannot be zero days")
    try:
        plan.end_at
    except OverflowError:
        raise ValidationError("Duration is too long, the plan would end after the last supported date")
    if not 0 <= plan.min_availability_seconds <= MAX_INT_COLUMN:
        raise ValidationError("Minimum availability is out of range")
    if not plan.title.strip():
        raise ValidationError("Title cannot be empty")
    if not plan.identifier:
        raise ValidationError("No identifier")


def validate_entry(plan: PlanRecord, start_unix: int, duration_seconds: int) -> None:
    """Raise ValidationError unless [start, start + duration] fits inside the plan."""
    if start_unix <= 0:
        raise ValidationError("Entry start time must be a positive unix timestamp")
    if duration_seconds <= 0:
        raise ValidationError("Entry duration must be positive")
    if duration_seconds < plan.min_availability_seconds:
        raise ValidationError(
            "Entry duration cannot be shorter than the plan's minimum availability "
            f"({plan.min_availability_seconds} seconds)"
        )

    plan_start = int(plan.start_at.timestamp())
    plan_end = int(plan.end_at.timestamp())
    if start_unix < plan_start:
        raise ValidationError("start at time cannot be before the plan start date")
    if plan_end < start_unix:
        raise ValidationError("start time can't be after plan end date")
    if plan_end < start_unix + duration_seconds:
        raise ValidationError("this entry would end after the plan ends")


def entries_overlap(start_a: int, duration_a: int, start_b: int, duration_b: int) -> bool:
    """Half-open overlap test on [start, start + duration).

    True when either start falls inside the other span, so an entry that
    begins exactly where another ends does not conflict.
    """
    return (start_b <= start_a < start_b + duration_b) or (start_a <= start_b < start_a + duration_a)
