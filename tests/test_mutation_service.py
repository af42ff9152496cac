from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest

from talentflow.errors import NotFound, ValidationError
from talentflow.services.mutation_service import MonotonicIdFactory, MutationService


FIXED_NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def _service(storage) -> MutationService:
    return MutationService(storage, id_factory=MonotonicIdFactory(clock_ns=lambda: 1000), clock=lambda: FIXED_NOW)


def test_create_assigns_id_and_timestamp(storage) -> None:
    service = _service(storage)

    async def scenario():
        first = await service.create_entity("jobs", {"title": "A"})
        second = await service.create_entity("jobs", {"title": "B"})
        candidate = await service.create_entity("candidates", {"name": "C", "job_id": first["id"]})
        return first, second, candidate

    first, second, candidate = asyncio.run(scenario())
    assert first["id"] == "job-1000"
    assert second["id"] == "job-1001"
    assert candidate["id"] == "candidate-1002"
    assert first["created_at"] == FIXED_NOW.isoformat()
    assert candidate["applied_at"] == FIXED_NOW.isoformat()


def test_create_assessment_is_rejected(memory_storage) -> None:
    with pytest.raises(ValidationError):
        asyncio.run(MutationService(memory_storage).create_entity("assessments", {"job_id": "job-1"}))


def test_update_merges_only_given_fields(storage) -> None:
    service = _service(storage)

    async def scenario():
        job = await service.create_entity("jobs", {"title": "Backend", "status": "active", "tags": ["python"]})
        updated = await service.update_entity("jobs", job["id"], {"status": "archived"})
        return job, updated

    job, updated = asyncio.run(scenario())
    assert updated == {**job, "status": "archived"}


def test_update_missing_record_raises_not_found(storage) -> None:
    with pytest.raises(NotFound) as excinfo:
        asyncio.run(_service(storage).update_entity("candidates", "candidate-404", {"stage": "hired"}))
    assert excinfo.value.key == "candidate-404"


def test_update_cannot_change_the_key(memory_storage) -> None:
    service = _service(memory_storage)
    job = asyncio.run(service.create_entity("jobs", {"title": "A"}))
    with pytest.raises(ValidationError):
        asyncio.run(service.update_entity("jobs", job["id"], {"id": "job-other"}))


def test_update_entities_writes_nothing_when_a_key_is_missing(storage) -> None:
    service = _service(storage)

    async def scenario():
        a = await service.create_entity("jobs", {"title": "A", "order": 1})
        b = await service.create_entity("jobs", {"title": "B", "order": 2})
        with pytest.raises(NotFound):
            await service.update_entities("jobs", {a["id"]: {"order": 2}, "job-missing": {"order": 1}})
        await service.update_entities("jobs", {a["id"]: {"order": 2}, b["id"]: {"order": 1}})
        return a, await storage.get_all("jobs")

    a, rows = asyncio.run(scenario())
    assert {row["id"]: row["order"] for row in rows} == {a["id"]: 2, rows[1]["id"]: 1}


def test_upsert_forces_the_key(storage) -> None:
    service = _service(storage)

    async def scenario():
        await service.upsert_entity("assessments", "job-7", {"job_id": "job-other", "title": "First"})
        await service.upsert_entity("assessments", "job-7", {"title": "Second"})
        return await storage.get_all("assessments")

    assert asyncio.run(scenario()) == [{"job_id": "job-7", "title": "Second"}]


def test_ids_increase_with_a_real_clock(memory_storage) -> None:
    service = MutationService(memory_storage)

    async def scenario():
        return [await service.create_entity("jobs", {"title": f"J{i}"}) for i in range(50)]

    numbers = [int(job["id"].split("-", 1)[1]) for job in asyncio.run(scenario())]
    assert numbers == sorted(numbers)
    assert len(set(numbers)) == 50
