"""Tests for the multi-tenant recompute sweep and the worker that drives it."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import date
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker

from leavequota import worker
from leavequota.models.enums import LeaveStatus
from leavequota.models.leave import LeaveRecord
from leavequota.services import leave as leave_service
from leavequota.services.leave import run_recompute_sweep
from leavequota.services.person import InMemoryPersonDirectory, PersonInfo, set_person_directory

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterator

    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

TENANT_A = "tenant-a"
TENANT_B = "tenant-b"


@pytest.fixture(autouse=True)
def _seed_person_directory() -> Iterator[None]:
    people = InMemoryPersonDirectory()
    people.seed(PersonInfo(id="a-1", tenant_id=TENANT_A, name="Ana", job_level="Senior Coach"))
    people.seed(PersonInfo(id="b-1", tenant_id=TENANT_B, name="Ben", job_level="Junior Coach"))
    set_person_directory(people)
    yield
    set_person_directory(InMemoryPersonDirectory())


def _record(tenant_id: str, person_id: str, start: date, end: date, **fields: object) -> LeaveRecord:
    return LeaveRecord(
        tenant_id=tenant_id,
        person_id=person_id,
        person_name="Someone",
        leave_type="Annual",
        reason="Rest",
        start_date=start,
        end_date=end,
        status=LeaveStatus.APPROVED.value,
        registered_date="1st May 2025",
        **fields,
    )


async def _seed_stale_records(session: AsyncSession) -> tuple[LeaveRecord, LeaveRecord]:
    a = _record(TENANT_A, "a-1", date(2025, 5, 5), date(2025, 5, 7))
    b = _record(TENANT_B, "b-1", date(2025, 5, 5), date(2025, 5, 6), days=9, balance=1)
    session.add_all([a, b])
    await session.commit()
    return a, b


async def test_sweep_heals_every_tenant(db_session: AsyncSession) -> None:
    a, b = await _seed_stale_records(db_session)

    result = await run_recompute_sweep(db_session)

    assert result.tenants == 2
    assert result.records == 2
    assert result.healed == 2
    assert result.errors == 0
    assert (a.days, a.allocation_total, a.allocation_used, a.balance) == (3, 16, 3, 13)
    assert (b.days, b.allocation_total, b.allocation_used, b.balance) == (2, 12, 2, 10)


async def test_second_sweep_finds_nothing(db_session: AsyncSession) -> None:
    await _seed_stale_records(db_session)
    await run_recompute_sweep(db_session)

    result = await run_recompute_sweep(db_session)
    assert result.healed == 0


async def test_sweep_single_tenant(db_session: AsyncSession) -> None:
    a, b = await _seed_stale_records(db_session)

    result = await run_recompute_sweep(db_session, TENANT_A)

    assert result.tenants == 1
    assert a.balance == 13
    assert b.balance == 1


async def test_failing_tenant_is_counted_and_skipped(
    db_session: AsyncSession, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    a, _ = await _seed_stale_records(db_session)
    real_sweep = leave_service.sweep_tenant

    async def _flaky(session: AsyncSession, tenant_id: str) -> tuple[list[LeaveRecord], int]:
        if tenant_id == TENANT_B:
            raise RuntimeError("boom")
        return await real_sweep(session, tenant_id)

    monkeypatch.setattr(leave_service, "sweep_tenant", _flaky)
    with caplog.at_level(logging.ERROR, logger="leavequota.services.leave"):
        result = await run_recompute_sweep(db_session)

    assert result.errors == 1
    assert result.healed == 1
    await db_session.refresh(a)
    assert a.balance == 13
    assert "tenant=tenant-b" in caplog.text


async def test_worker_runs_one_sweep(
    engine: AsyncEngine, db_session: AsyncSession, monkeypatch: pytest.MonkeyPatch
) -> None:
    await _seed_stale_records(db_session)
    factory = async_sessionmaker(engine, expire_on_commit=False)

    @asynccontextmanager
    async def _scope() -> AsyncIterator[AsyncSession]:
        async with factory() as session:
            yield session

    monkeypatch.setattr(worker, "session_scope", _scope)

    await worker.run_sweep_once()

    async with factory() as session:
        result = await run_recompute_sweep(session)
    assert result.healed == 0


async def test_worker_logs_sweep_failure(monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture) -> None:
    @asynccontextmanager
    async def _unreachable() -> AsyncIterator[AsyncSession]:
        raise ConnectionError("db down")
        yield

    monkeypatch.setattr(worker, "session_scope", _unreachable)

    with caplog.at_level(logging.ERROR, logger="leavequota.worker"):
        await worker.run_sweep_once()

    assert "Recompute sweep failed" in caplog.text
