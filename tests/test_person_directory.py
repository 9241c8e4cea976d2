"""Tests for the in-memory people directory."""

from __future__ import annotations

from leavequota.services.person import (
    InMemoryPersonDirectory,
    PersonDirectory,
    PersonInfo,
    get_person_directory,
    live_job_levels,
    set_person_directory,
)

TENANT_A = "tenant-a"
TENANT_B = "tenant-b"


async def test_get_person_not_found() -> None:
    directory = InMemoryPersonDirectory()
    assert await directory.get_person(TENANT_A, "nobody") is None


async def test_seed_and_get() -> None:
    directory = InMemoryPersonDirectory()
    directory.seed(PersonInfo(id="p1", tenant_id=TENANT_A, name="Ana", job_level="Senior Coach"))
    person = await directory.get_person(TENANT_A, "p1")
    assert person is not None
    assert person.job_level == "Senior Coach"


async def test_deleted_people_are_hidden() -> None:
    directory = InMemoryPersonDirectory()
    directory.seed(PersonInfo(id="p1", tenant_id=TENANT_A, name="Ana", is_deleted=True))
    assert await directory.get_person(TENANT_A, "p1") is None
    assert await directory.list_people(TENANT_A) == []


async def test_people_are_tenant_scoped() -> None:
    directory = InMemoryPersonDirectory()
    directory.seed(PersonInfo(id="p1", tenant_id=TENANT_A, name="Ana"))
    directory.seed(PersonInfo(id="p2", tenant_id=TENANT_B, name="Ben"))
    assert await directory.get_person(TENANT_B, "p1") is None
    assert [p.id for p in await directory.list_people(TENANT_A)] == ["p1"]


async def test_live_job_levels() -> None:
    directory = InMemoryPersonDirectory()
    directory.seed(PersonInfo(id="p1", tenant_id=TENANT_A, name="Ana", job_level="Junior Coach"))
    directory.seed(PersonInfo(id="p2", tenant_id=TENANT_A, name="Ben"))
    assert await live_job_levels(directory, TENANT_A) == {"p1": "Junior Coach", "p2": None}


def test_directory_satisfies_protocol() -> None:
    assert isinstance(InMemoryPersonDirectory(), PersonDirectory)


def test_set_person_directory() -> None:
    original = get_person_directory()
    replacement = InMemoryPersonDirectory()
    try:
        set_person_directory(replacement)
        assert get_person_directory() is replacement
    finally:
        set_person_directory(original)
