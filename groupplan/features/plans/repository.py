"""
groupplan/features/plans/repository.py

Storage for plans and their availability entries.
"""

import logging
from collections import defaultdict
from typing import Dict, List, Optional

from sqlalchemy import select, insert, delete
from sqlalchemy.orm import Session

from groupplan.core.database import plans, plan_entries
from groupplan.core.errors import ConflictError, NotFoundError
from groupplan.features.plans.validation import entries_overlap
from groupplan.features.users.repository import UserRepository
from groupplan.models.plan import EntryRecord, PlanRecord
from groupplan.models.user import User

logger = logging.getLogger("groupplan.plans")


class PlanRepository:
    """Plans and entries, backed by one SQLAlchemy session.

    Reads return fully populated records (owner and entry users included).
    Writes commit before returning.
    """

    def __init__(self, session: Session, users: Optional[UserRepository] = None):
        self.session = session
        self.users = users or UserRepository(session)

    def create_plan(self, plan: PlanRecord) -> PlanRecord:
        try:
            result = self.session.execute(
                insert(plans).values(
                    owner_id=plan.owner.id,
                    identifier=plan.identifier,
                    title=plan.title,
                    from_date=plan.from_date,
                    duration_days=plan.duration_days,
                    min_availability_seconds=plan.min_availability_seconds,
                )
            )
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        plan_id = result.inserted_primary_key[0]
        return plan.model_copy(update={"id": plan_id})

    def get_plan(self, identifier: str) -> Optional[PlanRecord]:
        row = self.session.execute(select(plans).where(plans.c.identifier == identifier)).first()
        if not row:
            return None
        return self._to_records([row])[0]

    def get_plans_by_owner(self, owner: User) -> List[PlanRecord]:
        rows = self.session.execute(
            select(plans).where(plans.c.owner_id == owner.id).order_by(plans.c.from_date, plans.c.id)
        ).all()
        return self._to_records(rows)

    def delete_plan(self, plan: PlanRecord) -> None:
        """Delete the plan together with every entry on it."""
        try:
            self.session.execute(delete(plan_entries).where(plan_entries.c.plan_id == plan.id))
            self.session.execute(delete(plans).where(plans.c.id == plan.id))
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    def add_entry(self, plan: PlanRecord, user: User, start_unix: int, duration_seconds: int) -> EntryRecord:
        """Insert an entry unless it overlaps one of the user's entries on the plan.

        The conflict check and the insert share one transaction, and the plan
        row is locked first so concurrent submissions on the same plan queue
        up behind each other instead of both passing the check.
        """
        try:
            locked = self.session.execute(
                select(plans.c.id).where(plans.c.id == plan.id).with_for_update()
            ).first()
            if not locked:
                raise NotFoundError("no such plan exists")

            existing = self.session.execute(
                select(plan_entries.c.id, plan_entries.c.start_time_unix, plan_entries.c.duration_seconds).where(
                    plan_entries.c.plan_id == plan.id,
                    plan_entries.c.user_id == user.id,
                )
            ).all()
            for row in existing:
                if entries_overlap(start_unix, duration_seconds, row.start_time_unix, row.duration_seconds):
                    logger.info(
                        "Entry for user [%s] on plan [%s] conflicts with entry [%s]",
                        user.id, plan.identifier, row.id,
                    )
                    raise ConflictError("availability conflicts with another entry owned by the same user")

            result = self.session.execute(
                insert(plan_entries).values(
                    plan_id=plan.id,
                    user_id=user.id,
                    start_time_unix=start_unix,
                    duration_seconds=duration_seconds,
                )
            )
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        return EntryRecord(
            id=result.inserted_primary_key[0],
            plan_id=plan.id,
            user=user,
            start_time_unix=start_unix,
            duration_seconds=duration_seconds,
        )

    def get_entry(self, entry_id: int) -> Optional[EntryRecord]:
        row = self.session.execute(select(plan_entries).where(plan_entries.c.id == entry_id)).first()
        if not row:
            return None
        owners = self.users.get_users([row.user_id])
        return self._entry_from_row(row, owners)

    def delete_entry(self, entry_id: int) -> None:
        try:
            self.session.execute(delete(plan_entries).where(plan_entries.c.id == entry_id))
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    def get_entries_on_plan_by_user(self, plan: PlanRecord, user: User) -> List[EntryRecord]:
        rows = self.session.execute(
            select(plan_entries)
            .where(plan_entries.c.plan_id == plan.id, plan_entries.c.user_id == user.id)
            .order_by(plan_entries.c.start_time_unix, plan_entries.c.id)
        ).all()
        return [self._entry_from_row(row, {user.id: user}) for row in rows]

    @staticmethod
    def _entry_from_row(row, users_by_id: Dict[int, User]) -> EntryRecord:
        return EntryRecord(
            id=row.id,
            plan_id=row.plan_id,
            user=users_by_id[row.user_id],
            start_time_unix=row.start_time_unix,
            duration_seconds=row.duration_seconds,
        )

    def _to_records(self, plan_rows) -> List[PlanRecord]:
        """Build records for plan rows, loading entries and users in bulk."""
        if not plan_rows:
            return []
        plan_ids = [row.id for row in plan_rows]
        entry_rows = self.session.execute(
            select(plan_entries)
            .where(plan_entries.c.plan_id.in_(plan_ids))
            .order_by(plan_entries.c.start_time_unix, plan_entries.c.id)
        ).all()

        user_ids = {row.owner_id for row in plan_rows} | {row.user_id for row in entry_rows}
        users_by_id = self.users.get_users(user_ids)

        entries_by_plan: Dict[int, List[EntryRecord]] = defaultdict(list)
        for row in entry_rows:
            entries_by_plan[row.plan_id].append(self._entry_from_row(row, users_by_id))

        return [
            PlanRecord(
                id=row.id,
                owner=users_by_id[row.owner_id],
                identifier=row.identifier,
                title=row.title,
                from_date=row.from_date,
                duration_days=row.duration_days,
                min_availability_seconds=row.min_availability_seconds,
                created_at=row.created_at,
                entries=entries_by_plan.get(row.id, []),
            )
            for row in plan_rows
        ]
