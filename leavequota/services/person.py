from __future__ import annotations

from typing import Protocol, runtime_checkable

from pydantic import BaseModel


class PersonInfo(BaseModel):
    """Staff member metadata from the people directory."""

    id: str
    tenant_id: str
    name: str
    job_level: str | None = None  # free text, e.g. "Senior Coach"
    is_deleted: bool = False


@runtime_checkable
class PersonDirectory(Protocol):
    """Interface for the people directory."""

    async def get_person(self, tenant_id: str, person_id: str) -> PersonInfo | None:
        """Fetch a live (not deleted) person. Returns None if not found."""
        ...

    async def list_people(self, tenant_id: str) -> list[PersonInfo]:
        """List all live people for a tenant."""
        ...


class InMemoryPersonDirectory:
    """In-memory stub implementation for development."""

    def __init__(self) -> None:
        self._people: dict[tuple[str, str], PersonInfo] = {}

    def seed(self, person: PersonInfo) -> None:
        """Seed a person for testing."""
        self._people[(person.tenant_id, person.id)] = person

    async def get_person(self, tenant_id: str, person_id: str) -> PersonInfo | None:
        person = self._people.get((tenant_id, person_id))
        if person is None or person.is_deleted:
            return None
        return person

    async def list_people(self, tenant_id: str) -> list[PersonInfo]:
        return [p for p in self._people.values() if p.tenant_id == tenant_id and not p.is_deleted]


_person_directory: PersonDirectory = InMemoryPersonDirectory()


def get_person_directory() -> PersonDirectory:
    """FastAPI dependency for the people directory."""
    return _person_directory


def set_person_directory(directory: PersonDirectory) -> None:
    """Override the directory (for testing or production wiring)."""
    global _person_directory
    _person_directory = directory


async def live_job_levels(directory: PersonDirectory, tenant_id: str) -> dict[str, str | None]:
    """Map every live person of a tenant to their current job level."""
    return {p.id: p.job_level for p in await directory.list_people(tenant_id)}
