"""Map free-text job levels onto a policy's per-level day allocations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from leavequota.models.enums import QuotaType
    from leavequota.schemas.policy import LeavePolicySettings

# Substring needles tried when no allocation label matches exactly, in priority
# order. "manager" also catches labels such as "Operations Manager".
_FALLBACK_BUCKETS: tuple[tuple[str, str], ...] = (
    ("junior", "junior"),
    ("senior", "senior"),
    ("manager", "managers"),
)


@dataclass(frozen=True)
class QuotaTerms:
    """Everything the recompute engine needs to know about one person's quota.

    ``allocation`` is ``None`` when the job level matched no bucket: quota is
    not enforced for that person, which is different from an allocation of 0.
    """

    allocation: int | None
    quota_type: QuotaType
    working_days: frozenset[int]

    @property
    def enforced(self) -> bool:
        return self.allocation is not None


def normalize_label(label: str | None) -> str:
    """Lowercase, trim and collapse whitespace in a job-level label."""
    return " ".join((label or "").split()).lower()


def resolve_allocation(job_level: str | None, policy: LeavePolicySettings) -> int | None:
    """Resolve a job-level label to a day quota.

    1. Exact match against the allocation labels, ignoring case and spacing.
    2. Substring match against the ``junior``, ``senior`` and ``managers`` buckets.
    3. ``None`` when nothing matches.
    """
    label = normalize_label(job_level)
    if not label:
        return None

    for bucket, days in policy.allocations.items():
        if normalize_label(bucket) == label:
            return days

    normalized_buckets = {normalize_label(bucket): days for bucket, days in policy.allocations.items()}
    for needle, bucket in _FALLBACK_BUCKETS:
        if needle in label and bucket in normalized_buckets:
            return normalized_buckets[bucket]
    return None


def resolve_quota(job_level: str | None, policy: LeavePolicySettings) -> QuotaTerms:
    """Bundle the resolved allocation with the policy's period and working days."""
    return QuotaTerms(
        allocation=resolve_allocation(job_level, policy),
        quota_type=policy.quota_type,
        working_days=frozenset(policy.working_days),
    )
