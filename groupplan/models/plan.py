"""
groupplan/models/plan.py

Plan and entry models.

Records mirror table rows and stay inside the service layer. GroupPlan and
PlanEntry are the public shapes: they carry the plan's public identifier and
the owner's display details instead of internal row ids.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from groupplan.models.user import PublicUser, User

# Applied when a create request leaves min_availability_seconds out
DEFAULT_MIN_AVAILABILITY_SECONDS = 60 * 5

# Largest value the Integer columns holding plan durations accept
MAX_INT_COLUMN = 2**31 - 1


class EntryRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    plan_id: int
    user: User
    start_time_unix: int
    duration_seconds: int

    @property
    def end_time_unix(self) -> int:
        return self.start_time_unix + self.duration_seconds


class PlanRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: Optional[int] = None
    owner: User
    identifier: str
    title: str
    from_date: date
    duration_days: int
    min_availability_seconds: int = 0
    created_at: Optional[datetime] = None
    entries: List[EntryRecord] = Field(default_factory=list)

    @property
    def start_at(self) -> datetime:
        """Midnight UTC of the start date."""
        return datetime.combine(self.from_date, time.min, tzinfo=timezone.utc)

    @property
    def end_at(self) -> datetime:
        return self.start_at + timedelta(days=self.duration_days)


class PlanEntry(BaseModel):
    entry_id: int
    user: PublicUser
    start_at_unix: int
    duration_seconds: int

    @classmethod
    def from_record(cls, entry: EntryRecord) -> "PlanEntry":
        return cls(
            entry_id=entry.id,
            user=entry.user.public(),
            start_at_unix=entry.start_time_unix,
            duration_seconds=entry.duration_seconds,
        )


class GroupPlan(BaseModel):
    owner: PublicUser
    identifier: str
    title: str
    from_date: date
    duration_days: int
    min_availability_seconds: int
    entries: List[PlanEntry] = Field(default_factory=list)

    @classmethod
    def from_record(cls, plan: PlanRecord) -> "GroupPlan":
        return cls(
            owner=plan.owner.public(),
            identifier=plan.identifier,
            title=plan.title,
            from_date=plan.from_date,
            duration_days=plan.duration_days,
            min_availability_seconds=plan.min_availability_seconds,
            entries=[PlanEntry.from_record(entry) for entry in plan.entries],
        )


class AvailabilityWindow(BaseModel):
    """A span during which the same participants are all available."""
    start_at_unix: int
    duration_seconds: int
    participant_count: int
    participants: List[PublicUser] = Field(default_factory=list)


class CreatePlanRequest(BaseModel):
    title: str
    start_date: str = Field(..., description="yyyy-mm-dd")
    duration_days: int = Field(..., ge=0, le=MAX_INT_COLUMN)
    min_availability_seconds: int = Field(DEFAULT_MIN_AVAILABILITY_SECONDS, ge=0, le=MAX_INT_COLUMN)


class AddEntryRequest(BaseModel):
    start_time_unix: int
    duration_seconds: int
