from __future__ import annotations

import dataclasses
import logging
from typing import Any, Mapping, Sequence, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from talentflow.config import Settings
from talentflow.db.storage import Record, StorageBackend
from talentflow.errors import NotFound, ValidationError
from talentflow.schemas.assessment import Assessment, AssessmentUpsert
from talentflow.schemas.candidate import Candidate, CandidateCreate, CandidateFilter, CandidateUpdate
from talentflow.schemas.job import Job, JobCreate, JobFilter, JobUpdate, slugify
from talentflow.schemas.pagination import PageResult, Pagination
from talentflow.services.assessment_service import validate_responses
from talentflow.services.mutation_service import MutationService
from talentflow.services.network import Transport, build_transport
from talentflow.services.query_engine import CANDIDATES_QUERY, JOBS_QUERY, QueryEngine


logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def _simplify_errors(exc: PydanticValidationError) -> list[dict[str, Any]]:
    return [{"loc": list(err.get("loc", ())), "msg": err.get("msg", "")} for err in exc.errors()]


def parse_payload(model: type[M], data: Any) -> M:
    """Validate caller input, turning pydantic failures into ``ValidationError``."""

    if isinstance(data, model):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_unset=True)
    try:
        return model.model_validate(data or {})
    except PydanticValidationError as exc:
        errors = _simplify_errors(exc)
        first = errors[0]["msg"] if errors else "invalid payload"
        raise ValidationError(f"Invalid {model.__name__}: {first}", errors) from exc


def _patch(model: type[BaseModel], data: Any) -> dict[str, Any]:
    return parse_payload(model, data).model_dump(mode="json", exclude_unset=True, exclude_none=True)


def _next_order(jobs: Sequence[Record]) -> dict[str, int]:
    return {"order": max((int(r.get("order") or 0) for r in jobs), default=0) + 1}


class TalentFlowClient:
    """Async operations the interface calls.

    Reads and writes both travel through ``transport``; only writes can be
    failed by it. Every write goes through ``MutationService``.
    """

    def __init__(
        self,
        storage: StorageBackend,
        transport: Transport,
        *,
        mutations: MutationService | None = None,
        jobs_page_size: int = JOBS_QUERY.default_page_size,
        candidates_page_size: int = CANDIDATES_QUERY.default_page_size,
    ) -> None:
        self.storage = storage
        self.transport = transport
        self.mutations = mutations or MutationService(storage)
        self.jobs_query = QueryEngine(dataclasses.replace(JOBS_QUERY, default_page_size=jobs_page_size))
        self.candidates_query = QueryEngine(
            dataclasses.replace(CANDIDATES_QUERY, default_page_size=candidates_page_size)
        )

    @classmethod
    def from_settings(cls, storage: StorageBackend, settings: Settings) -> "TalentFlowClient":
        return cls(
            storage,
            build_transport(settings),
            jobs_page_size=settings.jobs_page_size,
            candidates_page_size=settings.candidates_page_size,
        )

    async def _read(self, operation, label: str):
        return await self.transport.perform(operation, mutating=False, label=label)

    async def _write(self, operation, label: str):
        return await self.transport.perform(operation, mutating=True, label=label)

    # jobs

    async def get_jobs(
        self,
        search: str | None = None,
        status: str | None = None,
        page: int = 1,
        page_size: int | None = None,
    ) -> PageResult[Job]:
        filters = parse_payload(JobFilter, {"search": search, "status": status or None})
        pagination = parse_payload(Pagination, {"page": page, "page_size": page_size})

        async def _op() -> PageResult[Job]:
            snapshot = await self.storage.get_all("jobs")
            result = self.jobs_query.query(snapshot, filters.model_dump(), pagination)
            return PageResult[Job](data=[Job.model_validate(r) for r in result.data], pagination=result.pagination)

        return await self._read(_op, "get_jobs")

    async def get_job(self, job_id: str) -> Job:
        async def _op() -> Job:
            record = await self.storage.get_by_key("jobs", job_id)
            if record is None:
                raise NotFound("jobs", job_id)
            return Job.model_validate(record)

        return await self._read(_op, "get_job")

    async def create_job(self, payload: JobCreate | Mapping[str, Any]) -> Job:
        data = parse_payload(JobCreate, payload)

        async def _op() -> Job:
            record = data.model_dump(mode="json")
            record["slug"] = data.slug or slugify(data.title)
            derive = _next_order if data.order is None else None
            created = await self.mutations.create_entity("jobs", record, derive=derive)
            return Job.model_validate(created)

        return await self._write(_op, "create_job")

    async def update_job(self, job_id: str, patch: JobUpdate | Mapping[str, Any]) -> Job:
        changes = _patch(JobUpdate, patch)

        async def _op() -> Job:
            return Job.model_validate(await self.mutations.update_entity("jobs", job_id, changes))

        return await self._write(_op, "update_job")

    async def reorder_jobs(self, orders: Mapping[str, int]) -> list[Job]:
        """Rewrite ``order`` on several jobs in one round-trip."""

        patches: dict[str, dict[str, Any]] = {}
        for job_id, order in orders.items():
            if isinstance(order, bool) or not isinstance(order, int):
                raise ValidationError(f"order for {job_id} must be an integer")
            patches[str(job_id)] = {"order": order}

        async def _op() -> list[Job]:
            records = await self.mutations.update_entities("jobs", patches)
            return [Job.model_validate(r) for r in records]

        return await self._write(_op, "reorder_jobs")

    # candidates

    async def get_candidates(
        self,
        search: str | None = None,
        stage: str | None = None,
        page: int = 1,
        page_size: int | None = None,
    ) -> PageResult[Candidate]:
        filters = parse_payload(CandidateFilter, {"search": search, "stage": stage or None})
        pagination = parse_payload(Pagination, {"page": page, "page_size": page_size})

        async def _op() -> PageResult[Candidate]:
            snapshot = await self.storage.get_all("candidates")
            result = self.candidates_query.query(snapshot, filters.model_dump(), pagination)
            return PageResult[Candidate](
                data=[Candidate.model_validate(r) for r in result.data], pagination=result.pagination
            )

        return await self._read(_op, "get_candidates")

    async def get_candidate(self, candidate_id: str) -> Candidate:
        async def _op() -> Candidate:
            record = await self.storage.get_by_key("candidates", candidate_id)
            if record is None:
                raise NotFound("candidates", candidate_id)
            return Candidate.model_validate(record)

        return await self._read(_op, "get_candidate")

    async def create_candidate(self, payload: CandidateCreate | Mapping[str, Any]) -> Candidate:
        data = parse_payload(CandidateCreate, payload)

        async def _op() -> Candidate:
            await self._require_job(data.job_id)
            created = await self.mutations.create_entity("candidates", data.model_dump(mode="json"))
            return Candidate.model_validate(created)

        return await self._write(_op, "create_candidate")

    async def update_candidate(self, candidate_id: str, patch: CandidateUpdate | Mapping[str, Any]) -> Candidate:
        changes = _patch(CandidateUpdate, patch)

        async def _op() -> Candidate:
            if "job_id" in changes:
                await self._require_job(changes["job_id"])
            return Candidate.model_validate(await self.mutations.update_entity("candidates", candidate_id, changes))

        return await self._write(_op, "update_candidate")

    async def _require_job(self, job_id: str) -> None:
        if await self.storage.get_by_key("jobs", job_id) is None:
            raise ValidationError(f"job_id does not reference an existing job: {job_id}")

    # assessments

    async def get_assessment(self, job_id: str) -> Assessment | None:
        async def _op() -> Assessment | None:
            record = await self.storage.get_by_key("assessments", job_id)
            return Assessment.model_validate(record) if record is not None else None

        return await self._read(_op, "get_assessment")

    async def update_assessment(self, job_id: str, assessment: AssessmentUpsert | Assessment | Mapping[str, Any]) -> Assessment:
        if isinstance(assessment, BaseModel):
            assessment = assessment.model_dump()
        body = {k: v for k, v in dict(assessment or {}).items() if k != "job_id"}
        data = parse_payload(AssessmentUpsert, body)
        record = Assessment(job_id=str(job_id), **data.model_dump()).model_dump(mode="json")

        async def _op() -> Assessment:
            return Assessment.model_validate(await self.mutations.upsert_entity("assessments", job_id, record))

        return await self._write(_op, "update_assessment")

    async def validate_assessment_responses(self, job_id: str, responses: Mapping[str, Any]) -> dict[str, str]:
        assessment = await self.get_assessment(job_id)
        if assessment is None:
            raise NotFound("assessments", job_id)
        return validate_responses(assessment, responses)
