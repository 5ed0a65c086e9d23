"""Tests for plan and entry validation rules."""
from datetime import date

import pytest

from groupplan.core.errors import ValidationError
from groupplan.features.plans.validation import (
    entries_overlap,
    parse_start_date,
    validate_entry,
    validate_plan,
)
from groupplan.models.plan import PlanRecord
from groupplan.models.user import User

TODAY = date(2026, 10, 18)
OWNER = User(id=1, email="owner@example.com", display_name="Owner")


def make_plan(**overrides):
    fields = dict(
        owner=OWNER,
        identifier="abc",
        title="Offsite",
        from_date=date(2030, 1, 1),
        duration_days=3,
        min_availability_seconds=300,
    )
    fields.update(overrides)
    return PlanRecord(**fields)


def test_valid_plan_passes():
    validate_plan(make_plan(), today=TODAY)


def test_plan_starting_today_passes():
    validate_plan(make_plan(from_date=TODAY), today=TODAY)


def test_plan_in_the_past_fails():
    with pytest.raises(ValidationError, match="past"):
        validate_plan(make_plan(from_date=date(2026, 10, 17)), today=TODAY)


def test_zero_duration_fails():
    with pytest.raises(ValidationError, match="zero days"):
        validate_plan(make_plan(duration_days=0), today=TODAY)


@pytest.mark.parametrize("title", ["", "        ", "\t\n"])
def test_blank_title_fails(title):
    with pytest.raises(ValidationError, match="Title"):
        validate_plan(make_plan(title=title), today=TODAY)


def test_missing_identifier_fails():
    with pytest.raises(ValidationError, match="identifier"):
        validate_plan(make_plan(identifier=""), today=TODAY)


@pytest.mark.parametrize("raw,expected", [
    ("2030-1-1", date(2030, 1, 1)),
    ("2030-01-01", date(2030, 1, 1)),
    ("2030-12-31", date(2030, 12, 31)),
])
def test_parse_start_date_accepts_padded_and_unpadded(raw, expected):
    assert parse_start_date(raw) == expected


@pytest.mark.parametrize("raw", ["01/01/2030", "2030-13-01", "2030-2-30", "tomorrow", ""])
def test_parse_start_date_rejects_garbage(raw):
    with pytest.raises(ValidationError, match="yyyy-mm-dd"):
        parse_start_date(raw)


PLAN_START = 1893456000  # 2030-01-01T00:00:00Z
PLAN_END = PLAN_START + 3 * 86400


def test_entry_inside_plan_passes():
    validate_entry(make_plan(), PLAN_START + 9 * 3600, 3600)


def test_entry_filling_the_whole_plan_passes():
    validate_entry(make_plan(), PLAN_START, PLAN_END - PLAN_START)


@pytest.mark.parametrize("start", [0, -5])
def test_entry_non_positive_start_fails(start):
    with pytest.raises(ValidationError, match="positive"):
        validate_entry(make_plan(), start, 3600)


def test_entry_non_positive_duration_fails():
    with pytest.raises(ValidationError, match="positive"):
        validate_entry(make_plan(min_availability_seconds=0), PLAN_START, 0)


def test_entry_shorter_than_minimum_fails():
    with pytest.raises(ValidationError, match="minimum availability"):
        validate_entry(make_plan(min_availability_seconds=600), PLAN_START, 599)


def test_entry_before_plan_start_fails():
    with pytest.raises(ValidationError, match="before the plan start"):
        validate_entry(make_plan(), PLAN_START - 1, 3600)


def test_entry_starting_after_plan_end_fails():
    with pytest.raises(ValidationError, match="after plan end"):
        validate_entry(make_plan(), PLAN_END + 1, 3600)


def test_entry_ending_after_plan_end_fails():
    with pytest.raises(ValidationError, match="end after the plan ends"):
        validate_entry(make_plan(), PLAN_END - 60, 3600)


def test_overlap_inside_existing_span():
    assert entries_overlap(10, 5, 10, 10)
    assert entries_overlap(19, 5, 10, 10)


def test_overlap_existing_inside_new_span():
    assert entries_overlap(5, 10, 10, 10)
    assert entries_overlap(0, 100, 10, 10)


def test_touching_spans_do_not_overlap():
    assert not entries_overlap(20, 10, 10, 10)
    assert not entries_overlap(0, 10, 10, 10)


def test_disjoint_spans_do_not_overlap():
    assert not entries_overlap(100, 10, 10, 10)


def test_plan_ending_past_the_calendar_fails():
    with pytest.raises(ValidationError, match="too long"):
        validate_plan(make_plan(duration_days=3_000_000), today=TODAY)


def test_plan_with_huge_duration_fails_before_storage():
    with pytest.raises(ValidationError, match="too long"):
        validate_plan(make_plan(duration_days=2**70), today=TODAY)


def test_plan_with_out_of_range_minimum_fails():
    with pytest.raises(ValidationError, match="Minimum availability"):
        validate_plan(make_plan(min_availability_seconds=2**40), today=TODAY)
