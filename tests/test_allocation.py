"""Tests for job-level to allocation resolution."""

from __future__ import annotations

import pytest

from leavequota.engine.allocation import normalize_label, resolve_allocation, resolve_quota
from leavequota.models.enums import QuotaType
from leavequota.schemas.policy import LeavePolicySettings

POLICY = LeavePolicySettings(allocations={"junior": 12, "senior": 16, "managers": 24})


def test_normalize_label() -> None:
    assert normalize_label("  Senior   Coach ") == "senior coach"
    assert normalize_label(None) == ""


@pytest.mark.parametrize(
    ("job_level", "expected"),
    [
        ("senior", 16),
        ("  SENIOR ", 16),
        ("Senior Coach", 16),
        ("Senior Instructor", 16),
        ("Junior Coach", 12),
        ("Operations Manager", 24),
        ("managers", 24),
    ],
)
def test_resolves_known_levels(job_level: str, expected: int) -> None:
    assert resolve_allocation(job_level, POLICY) == expected


@pytest.mark.parametrize("job_level", ["Intern", "", "   ", None])
def test_unknown_level_is_not_enforced(job_level: str | None) -> None:
    assert resolve_allocation(job_level, POLICY) is None


def test_exact_match_wins_over_substring() -> None:
    policy = LeavePolicySettings(allocations={"senior": 16, "Senior Manager": 30, "managers": 24})
    assert resolve_allocation("senior manager", policy) == 30


def test_junior_needle_checked_before_senior() -> None:
    assert resolve_allocation("Junior to Senior Trainee", POLICY) == 12


def test_custom_bucket_exact_only() -> None:
    policy = LeavePolicySettings(allocations={"Front Desk": 10})
    assert resolve_allocation("front desk", policy) == 10
    assert resolve_allocation("Front Desk Lead", policy) is None


def test_fallback_needs_bucket_present() -> None:
    policy = LeavePolicySettings(allocations={"junior": 12})
    assert resolve_allocation("Senior Coach", policy) is None


def test_zero_allocation_is_enforced() -> None:
    policy = LeavePolicySettings(allocations={"junior": 0})
    terms = resolve_quota("Junior Coach", policy)
    assert terms.allocation == 0
    assert terms.enforced


def test_resolve_quota_carries_policy_terms() -> None:
    policy = LeavePolicySettings(quota_type=QuotaType.QUARTERLY, working_days=(1, 2, 3, 4, 5), allocations={})
    terms = resolve_quota("Intern", policy)
    assert terms.allocation is None
    assert not terms.enforced
    assert terms.quota_type == QuotaType.QUARTERLY
    assert terms.working_days == frozenset({1, 2, 3, 4, 5})
