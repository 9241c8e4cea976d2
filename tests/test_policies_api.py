"""Tests for the tenant leave-policy endpoints and the sweep a policy change triggers."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from leavequota.services.person import InMemoryPersonDirectory, PersonInfo, set_person_directory

if TYPE_CHECKING:
    from collections.abc import Iterator

    from httpx import AsyncClient

TENANT_ID = "studio-south"
PERSON_ID = "coach-7"
POLICY_URL = f"/tenants/{TENANT_ID}/leave-policy"
LEAVES_URL = f"/tenants/{TENANT_ID}/leaves"


@pytest.fixture(autouse=True)
def _seed_person_directory() -> Iterator[None]:
    """Seed the in-memory people directory for every test."""
    people = InMemoryPersonDirectory()
    people.seed(PersonInfo(id=PERSON_ID, tenant_id=TENANT_ID, name="Lee", job_level="Senior Instructor"))
    set_person_directory(people)
    yield
    set_person_directory(InMemoryPersonDirectory())


async def _approved(client: AsyncClient, start: str, end: str) -> dict:
    body: dict[str, Any] = {
        "person_id": PERSON_ID,
        "person_name": "Lee",
        "leave_type": "Annual",
        "reason": "Rest",
        "start_date": start,
        "end_date": end,
        "status": "APPROVED",
    }
    response = await client.post(LEAVES_URL, json=body)
    assert response.status_code == 201, response.text
    return response.json()


async def test_default_policy(async_client: AsyncClient) -> None:
    response = await async_client.get(POLICY_URL)
    assert response.status_code == 200
    data = response.json()
    assert data["is_default"] is True
    assert data["quota_type"] == "MONTHLY"
    assert data["working_days"] == [1, 2, 3, 4, 5, 6]
    assert data["allocations"] == {"junior": 12, "senior": 16, "managers": 24}
    assert data["updated_at"] is None


async def test_replace_policy(async_client: AsyncClient) -> None:
    body = {"quota_type": "Quarterly Quota", "working_days": [5, 1, 2, 3, 4], "allocations": {"senior": 30}}
    response = await async_client.put(POLICY_URL, json=body)
    assert response.status_code == 200
    data = response.json()
    assert data["is_default"] is False
    assert data["quota_type"] == "QUARTERLY"
    assert data["working_days"] == [1, 2, 3, 4, 5]

    fetched = (await async_client.get(POLICY_URL)).json()
    assert fetched["allocations"] == {"senior": 30}
    assert fetched["is_default"] is False


async def test_replace_policy_twice_updates_in_place(async_client: AsyncClient) -> None:
    await async_client.put(POLICY_URL, json={"allocations": {"senior": 30}})
    response = await async_client.put(POLICY_URL, json={"allocations": {"senior": 20}})
    assert response.status_code == 200
    assert (await async_client.get(POLICY_URL)).json()["allocations"] == {"senior": 20}


@pytest.mark.parametrize(
    "body",
    [
        {"working_days": []},
        {"working_days": [7]},
        {"quota_type": "WEEKLY"},
        {"allocations": {"senior": -2}},
    ],
)
async def test_invalid_policy_rejected(async_client: AsyncClient, body: dict) -> None:
    response = await async_client.put(POLICY_URL, json=body)
    assert response.status_code == 422


async def test_policies_are_tenant_scoped(async_client: AsyncClient) -> None:
    await async_client.put(POLICY_URL, json={"allocations": {"senior": 30}})
    other = (await async_client.get("/tenants/elsewhere/leave-policy")).json()
    assert other["is_default"] is True


async def test_allocation_change_reheals_records(async_client: AsyncClient) -> None:
    created = await _approved(async_client, "2025-05-05", "2025-05-07")
    assert created["balance"] == 13

    await async_client.put(POLICY_URL, json={"allocations": {"senior": 10}})

    item = (await async_client.get(f"{LEAVES_URL}/{created['id']}")).json()
    assert item["allocation_total"] == 10
    assert item["balance"] == 7


async def test_working_day_change_recounts_days(async_client: AsyncClient) -> None:
    created = await _approved(async_client, "2025-05-26", "2025-05-31")
    assert created["days"] == 6

    await async_client.put(POLICY_URL, json={"working_days": [1, 2, 3, 4, 5], "allocations": {"senior": 16}})

    item = (await async_client.get(f"{LEAVES_URL}/{created['id']}")).json()
    assert item["days"] == 5
    assert item["balance"] == 11


async def test_quarterly_policy_sums_across_months(async_client: AsyncClient) -> None:
    await async_client.put(POLICY_URL, json={"quota_type": "QUARTERLY", "allocations": {"senior": 16}})
    january = await _approved(async_client, "2025-01-06", "2025-01-08")
    march = await _approved(async_client, "2025-03-03", "2025-03-04")
    april = await _approved(async_client, "2025-04-07", "2025-04-08")

    assert january["allocation_used"] == 3
    assert march["allocation_used"] == 5
    assert march["balance"] == 11
    assert april["allocation_used"] == 2


async def test_removing_bucket_stops_enforcement(async_client: AsyncClient) -> None:
    created = await _approved(async_client, "2025-05-05", "2025-05-07")
    await async_client.put(POLICY_URL, json={"allocations": {"junior": 12}})

    item = (await async_client.get(f"{LEAVES_URL}/{created['id']}")).json()
    assert item["limit_reached"] is False
    assert item["days"] == 3
    assert item["allocation_total"] is None
    assert item["allocation_used"] is None
    assert item["balance"] is None


async def test_removing_bucket_clears_exhausted_balance(async_client: AsyncClient) -> None:
    await async_client.put(POLICY_URL, json={"allocations": {"senior": 3}})
    created = await _approved(async_client, "2025-05-05", "2025-05-07")
    assert created["balance"] == 0
    assert created["limit_reached"] is True

    await async_client.put(POLICY_URL, json={"allocations": {"junior": 12}})

    item = (await async_client.get(f"{LEAVES_URL}/{created['id']}")).json()
    assert item["days"] == 3
    assert item["allocation_total"] is None
    assert item["allocation_used"] is None
    assert item["balance"] is None
    assert item["limit_reached"] is False

    listed = (await async_client.get(LEAVES_URL)).json()
    assert listed["healed"] == 0
