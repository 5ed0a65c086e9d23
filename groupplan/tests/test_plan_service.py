"""
groupplan/tests/test_plan_service.py

Tests for Planner: plan lifecycle, ownership and entry submission.
"""

import re
from datetime import date

import pytest

from groupplan.core.errors import ConflictError, ForbiddenError, NotFoundError, UnauthorizedError, ValidationError
from groupplan.features.plans.service import Planner


@pytest.fixture
def fixed_planner(plan_repository):
    """Planner whose notion of today is pinned."""
    return Planner(plan_repository, today=lambda: date(2030, 1, 1))


@pytest.fixture
def owner(make_user):
    return make_user()


@pytest.fixture
def guest(make_user):
    return make_user("guest@example.com", "Guest", "https://cdn.example.com/guest.png")


def test_new_plan_gets_url_safe_identifier(fixed_planner, owner):
    plan = fixed_planner.new_plan("Offsite", date(2030, 1, 1), 3, owner)
    assert re.fullmatch(r"[A-Za-z0-9_-]{20,}", plan.identifier)
    assert plan.owner.display_name == "Owner"
    assert plan.min_availability_seconds == 300
    assert plan.entries == []


def test_new_plans_get_distinct_identifiers(fixed_planner, owner):
    first = fixed_planner.new_plan("One", date(2030, 1, 1), 1, owner)
    second = fixed_planner.new_plan("Two", date(2030, 1, 1), 1, owner)
    assert first.identifier != second.identifier


def test_new_plan_in_the_past_is_rejected(fixed_planner, owner):
    with pytest.raises(ValidationError, match="past"):
        fixed_planner.new_plan("Offsite", date(2029, 12, 31), 3, owner)
    assert fixed_planner.get_plans(owner) == []


def test_new_plan_with_blank_title_is_rejected(fixed_planner, owner):
    with pytest.raises(ValidationError, match="Title"):
        fixed_planner.new_plan("   ", date(2030, 1, 2), 3, owner)


def test_get_plan_unknown_identifier(fixed_planner):
    with pytest.raises(NotFoundError, match="no such plan"):
        fixed_planner.get_plan("does-not-exist")


def test_get_plans_lists_only_owned(fixed_planner, owner, guest):
    fixed_planner.new_plan("Mine", date(2030, 1, 5), 1, owner)
    fixed_planner.new_plan("Theirs", date(2030, 1, 5), 1, guest)
    assert [p.title for p in fixed_planner.get_plans(owner)] == ["Mine"]


def test_owner_can_delete_plan(fixed_planner, owner):
    plan = fixed_planner.new_plan("Offsite", date(2030, 1, 1), 3, owner)
    fixed_planner.delete_plan(plan.identifier, owner)
    with pytest.raises(NotFoundError):
        fixed_planner.get_plan(plan.identifier)


def test_non_owner_cannot_delete_plan(fixed_planner, owner, guest):
    plan = fixed_planner.new_plan("Offsite", date(2030, 1, 1), 3, owner)
    with pytest.raises(ForbiddenError) as exc_info:
        fixed_planner.delete_plan(plan.identifier, guest)
    assert isinstance(exc_info.value, UnauthorizedError)
    assert fixed_planner.get_plan(plan.identifier).title == "Offsite"


def test_add_entry_validates_against_plan(fixed_planner, owner, to_unix):
    plan = fixed_planner.new_plan("Offsite", date(2030, 1, 1), 1, owner)
    with pytest.raises(ValidationError, match="end after the plan ends"):
        fixed_planner.add_entry(plan.identifier, owner, to_unix(2030, 1, 1, 23), 7200)


def test_add_entry_below_minimum_availability(fixed_planner, owner, to_unix):
    plan = fixed_planner.new_plan("Offsite", date(2030, 1, 1), 1, owner, min_availability_seconds=3600)
    with pytest.raises(ValidationError, match=r"minimum availability \(3600 seconds\)"):
        fixed_planner.add_entry(plan.identifier, owner, to_unix(2030, 1, 1, 9), 1800)


def test_add_entry_unknown_plan(fixed_planner, owner, to_unix):
    with pytest.raises(NotFoundError):
        fixed_planner.add_entry("missing", owner, to_unix(2030, 1, 1, 9), 3600)


def test_weekend_scenario(fixed_planner, owner, guest, to_unix):
    plan = fixed_planner.new_plan("Weekend", date(2030, 1, 1), 2, owner)

    first = fixed_planner.add_entry(plan.identifier, owner, to_unix(2030, 1, 1, 9), 3 * 3600)
    assert first.user.display_name == "Owner"

    with pytest.raises(ConflictError):
        fixed_planner.add_entry(plan.identifier, owner, to_unix(2030, 1, 1, 11), 3600)

    fixed_planner.add_entry(plan.identifier, owner, to_unix(2030, 1, 1, 12), 3600)
    fixed_planner.add_entry(plan.identifier, guest, to_unix(2030, 1, 1, 10), 3600)

    loaded = fixed_planner.get_plan(plan.identifier)
    assert len(loaded.entries) == 3
    assert [e.start_at_unix for e in loaded.entries] == [
        to_unix(2030, 1, 1, 9),
        to_unix(2030, 1, 1, 10),
        to_unix(2030, 1, 1, 12),
    ]

    mine = fixed_planner.get_entries_on_plan_by_user(plan.identifier, owner)
    assert len(mine) == 2


def test_delete_own_entry(fixed_planner, owner, to_unix):
    plan = fixed_planner.new_plan("Offsite", date(2030, 1, 1), 1, owner)
    entry = fixed_planner.add_entry(plan.identifier, owner, to_unix(2030, 1, 1, 9), 3600)
    fixed_planner.delete_entry(plan.identifier, entry.entry_id, owner)
    assert fixed_planner.get_entries_on_plan_by_user(plan.identifier, owner) == []


def test_delete_someone_elses_entry(fixed_planner, owner, guest, to_unix):
    plan = fixed_planner.new_plan("Offsite", date(2030, 1, 1), 1, owner)
    entry = fixed_planner.add_entry(plan.identifier, guest, to_unix(2030, 1, 1, 9), 3600)
    with pytest.raises(ForbiddenError, match="owner of this entry"):
        fixed_planner.delete_entry(plan.identifier, entry.entry_id, owner)


def test_delete_entry_from_another_plan(fixed_planner, owner, to_unix):
    first = fixed_planner.new_plan("First", date(2030, 1, 1), 1, owner)
    second = fixed_planner.new_plan("Second", date(2030, 1, 1), 1, owner)
    entry = fixed_planner.add_entry(first.identifier, owner, to_unix(2030, 1, 1, 9), 3600)
    with pytest.raises(NotFoundError, match="no such entry"):
        fixed_planner.delete_entry(second.identifier, entry.entry_id, owner)


def test_get_windows_uses_plan_minimum_by_default(fixed_planner, owner, guest, to_unix):
    plan = fixed_planner.new_plan("Offsite", date(2030, 1, 1), 1, owner, min_availability_seconds=1800)
    fixed_planner.add_entry(plan.identifier, owner, to_unix(2030, 1, 1, 9), 2 * 3600)
    fixed_planner.add_entry(plan.identifier, guest, to_unix(2030, 1, 1, 10, 45), 3600)

    windows = fixed_planner.get_windows(plan.identifier)
    # the 15 minute overlap is below the plan minimum
    assert all(w.participant_count == 1 for w in windows)

    windows = fixed_planner.get_windows(plan.identifier, min_seconds=0)
    assert windows[0].participant_count == 2
    assert windows[0].start_at_unix == to_unix(2030, 1, 1, 10, 45)
    assert windows[0].duration_seconds == 900
