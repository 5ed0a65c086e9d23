"""
groupplan/api/plans.py
Plans API: create and delete plans, submit and remove availability entries.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from groupplan.core.auth import get_current_user
from groupplan.core.database import get_db
from groupplan.features.plans.repository import PlanRepository
from groupplan.features.plans.service import Planner
from groupplan.features.plans.validation import parse_start_date
from groupplan.models.plan import (
    AddEntryRequest,
    AvailabilityWindow,
    CreatePlanRequest,
    GroupPlan,
    PlanEntry,
)
from groupplan.models.user import User

router = APIRouter(prefix="/plans", tags=["plans"])


def get_planner(db: Session = Depends(get_db)) -> Planner:
    return Planner(PlanRepository(db))


@router.put("", status_code=201, response_model=GroupPlan)
def create_plan_endpoint(
    request: CreatePlanRequest,
    user: User = Depends(get_current_user),
    planner: Planner = Depends(get_planner),
):
    """Create a plan owned by the caller"""
    return planner.new_plan(
        title=request.title,
        from_date=parse_start_date(request.start_date),
        duration_days=request.duration_days,
        owner=user,
        min_availability_seconds=request.min_availability_seconds,
    )


@router.get("", response_model=List[GroupPlan])
def my_plans_endpoint(user: User = Depends(get_current_user), planner: Planner = Depends(get_planner)):
    """List plans the caller owns"""
    return planner.get_plans(user)


@router.get("/{identifier}", response_model=GroupPlan)
def get_plan_endpoint(
    identifier: str,
    user: User = Depends(get_current_user),
    planner: Planner = Depends(get_planner),
):
    """Fetch a plan and every participant's entries by public identifier"""
    return planner.get_plan(identifier)


@router.put("/{identifier}", status_code=201, response_model=PlanEntry)
def add_entry_endpoint(
    identifier: str,
    request: AddEntryRequest,
    user: User = Depends(get_current_user),
    planner: Planner = Depends(get_planner),
):
    """Submit an availability entry for the caller"""
    return planner.add_entry(identifier, user, request.start_time_unix, request.duration_seconds)


@router.delete("/{identifier}", status_code=204)
def delete_plan_endpoint(
    identifier: str,
    user: User = Depends(get_current_user),
    planner: Planner = Depends(get_planner),
):
    planner.delete_plan(identifier, user)
    return Response(status_code=204)


@router.get("/{identifier}/entries", response_model=List[PlanEntry])
def my_entries_endpoint(
    identifier: str,
    user: User = Depends(get_current_user),
    planner: Planner = Depends(get_planner),
):
    """The caller's own entries on a plan"""
    return planner.get_entries_on_plan_by_user(identifier, user)


@router.delete("/{identifier}/entries/{entry_id}", status_code=204)
def delete_entry_endpoint(
    identifier: str,
    entry_id: int,
    user: User = Depends(get_current_user),
    planner: Planner = Depends(get_planner),
):
    planner.delete_entry(identifier, entry_id, user)
    return Response(status_code=204)


@router.get("/{identifier}/windows", response_model=List[AvailabilityWindow])
def windows_endpoint(
    identifier: str,
    min_seconds: Optional[int] = Query(None, ge=0, description="Override the plan's minimum availability"),
    user: User = Depends(get_current_user),
    planner: Planner = Depends(get_planner),
):
    """Common availability windows across all participants, best first"""
    return planner.get_windows(identifier, min_seconds)
