"""
groupplan/features/plans/service.py

Plan manager: plan and entry operations on top of the plan repository.

Handles:
- Plan creation with a secure public identifier
- Ownership checks for deletes
- Entry validation and conflict-free insertion
- Mapping records to the public GroupPlan/PlanEntry shapes
"""

import logging
from datetime import date
from typing import Callable, List, Optional

from groupplan.core.errors import ForbiddenError, NotFoundError
from groupplan.core.secid import secure_identifier
from groupplan.features.plans.repository import PlanRepository
from groupplan.features.plans.validation import utc_today, validate_entry, validate_plan
from groupplan.features.plans.windows import find_common_windows
from groupplan.models.plan import (
    DEFAULT_MIN_AVAILABILITY_SECONDS,
    AvailabilityWindow,
    GroupPlan,
    PlanEntry,
    PlanRecord,
)
from groupplan.models.user import User

logger = logging.getLogger("groupplan.plans")

IDENTIFIER_BYTES = 16


class Planner:
    """Plan operations for authenticated users."""

    def __init__(self, repository: PlanRepository, today: Callable[[], date] = utc_today):
        self.repository = repository
        self.today = today

    def _load_plan(self, identifier: str) -> PlanRecord:
        plan = self.repository.get_plan(identifier)
        if plan is None:
            raise NotFoundError("no such plan exists")
        return plan

    def new_plan(
        self,
        title: str,
        from_date: date,
        duration_days: int,
        owner: User,
        min_availability_seconds: int = DEFAULT_MIN_AVAILABILITY_SECONDS,
    ) -> GroupPlan:
        """Create a plan owned by `owner`.

        Raises:
            ValidationError: If the plan fails validation
        """
        plan = PlanRecord(
            owner=owner,
            identifier=secure_identifier(IDENTIFIER_BYTES),
            title=title,
            from_date=from_date,
            duration_days=duration_days,
            min_availability_seconds=min_availability_seconds,
        )
        validate_plan(plan, today=self.today())
        created = self.repository.create_plan(plan)
        logger.info("Plan [%s] created by user [%s]", created.identifier, owner.id)
        return GroupPlan.from_record(created)

    def get_plan(self, identifier: str) -> GroupPlan:
        """Any authenticated caller may read a plan they know the identifier of."""
        return GroupPlan.from_record(self._load_plan(identifier))

    def get_plans(self, user: User) -> List[GroupPlan]:
        return [GroupPlan.from_record(plan) for plan in self.repository.get_plans_by_owner(user)]

    def add_entry(self, identifier: str, user: User, start_unix: int, duration_seconds: int) -> PlanEntry:
        plan = self._load_plan(identifier)
        validate_entry(plan, start_unix, duration_seconds)
        entry = self.repository.add_entry(plan, user, start_unix, duration_seconds)
        return PlanEntry.from_record(entry)

    def delete_plan(self, identifier: str, user: User) -> None:
        plan = self._load_plan(identifier)
        if plan.owner.id != user.id:
            raise ForbiddenError("you are not the owner of this plan")
        self.repository.delete_plan(plan)
        logger.info("Plan [%s] deleted by its owner", identifier)

    def delete_entry(self, identifier: str, entry_id: int, user: User) -> None:
        plan = self._load_plan(identifier)
        entry = self.repository.get_entry(entry_id)
        if entry is None or entry.plan_id != plan.id:
            raise NotFoundError("no such entry exists on this plan")
        if entry.user.id != user.id:
            raise ForbiddenError("you are not the owner of this entry")
        self.repository.delete_entry(entry.id)

    def get_entries_on_plan_by_user(self, identifier: str, user: User) -> List[PlanEntry]:
        plan = self._load_plan(identifier)
        return [PlanEntry.from_record(entry) for entry in self.repository.get_entries_on_plan_by_user(plan, user)]

    def get_windows(self, identifier: str, min_seconds: Optional[int] = None) -> List[AvailabilityWindow]:
        """Common availability windows, no shorter than the plan's minimum by default."""
        plan = self._load_plan(identifier)
        threshold = plan.min_availability_seconds if min_seconds is None else min_seconds
        return find_common_windows(plan.entries, threshold)
