from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from talentflow.config import Settings
from talentflow.db.storage import Record, record_key
from talentflow.schemas.assessment import (
    QUESTION_TYPES,
    Assessment,
    FileUploadQuestion,
    LongTextQuestion,
    MultiChoiceQuestion,
    NumericBounds,
    NumericQuestion,
    Section,
    ShortTextQuestion,
    SingleChoiceQuestion,
    TextLimits,
)
from talentflow.schemas.candidate import CANDIDATE_STAGES, Candidate
from talentflow.schemas.job import Job
from talentflow.services.mutation_service import MutationService


logger = logging.getLogger(__name__)

JOB_TITLES = ["Frontend Developer", "Backend Engineer", "Full Stack Developer", "DevOps Engineer", "Product Manager"]
JOB_TAGS = ["React", "Node.js", "TypeScript", "AWS", "Python"]
CHOICE_SCALE = ["Beginner", "Intermediate", "Advanced", "Expert"]
QUESTIONS_PER_SECTION = 12
LOREM = "Lorem ipsum dolor sit amet, consectetur adipiscing elit."

# store identity -> the seeding pass currently running against it.
_inflight: dict[str, asyncio.Future] = {}


@dataclass(frozen=True)
class SeedReport:
    seeded: bool
    jobs: int
    candidates: int
    assessments: int


def _build_question(index: int) -> Any:
    kind = QUESTION_TYPES[index % len(QUESTION_TYPES)]
    common = {
        "id": f"q-{index + 1}",
        "prompt": f"Question {index + 1}: What is your experience with...?",
        "required": index < QUESTIONS_PER_SECTION // 2,
    }
    if kind == "single-choice":
        return SingleChoiceQuestion(options=list(CHOICE_SCALE), **common)
    if kind == "multi-choice":
        return MultiChoiceQuestion(options=list(CHOICE_SCALE), **common)
    if kind == "short-text":
        return ShortTextQuestion(validation=TextLimits(max_length=500), **common)
    if kind == "long-text":
        return LongTextQuestion(validation=TextLimits(max_length=500), **common)
    if kind == "numeric":
        return NumericQuestion(validation=NumericBounds(min=0, max=10), **common)
    if kind == "file-upload":
        return FileUploadQuestion(validation=TextLimits(max_length=500), **common)
    raise ValueError(f"unhandled question type: {kind}")


def build_seed_data(
    rng: random.Random,
    now: datetime,
    *,
    jobs: int = 25,
    candidates: int = 1000,
    assessments: int = 3,
) -> dict[str, list[dict[str, Any]]]:
    job_rows = [
        Job(
            id=f"job-{i + 1}",
            title=f"{JOB_TITLES[i % len(JOB_TITLES)]} {i // len(JOB_TITLES) + 1}",
            slug=f"job-{i + 1}-slug",
            status="active" if rng.random() > 0.3 else "archived",
            tags=JOB_TAGS[: rng.randint(1, 3)],
            order=i + 1,
            description=LOREM,
            created_at=now - timedelta(days=rng.random() * 30),
        )
        for i in range(jobs)
    ]
    job_ids = [job.id for job in job_rows]

    candidate_rows = [
        Candidate(
            id=f"candidate-{i + 1}",
            name=f"Candidate {i + 1}",
            email=f"candidate{i + 1}@email.com",
            stage=rng.choice(CANDIDATE_STAGES),
            job_id=rng.choice(job_ids),
            applied_at=now - timedelta(days=rng.random() * 60),
            notes=[],
        )
        for i in range(candidates)
    ]

    assessment_rows = [
        Assessment(
            job_id=job_ids[i],
            title=f"Assessment for Job {i + 1}",
            sections=[
                Section(
                    id="section-1",
                    title="Technical Skills",
                    questions=[_build_question(q) for q in range(QUESTIONS_PER_SECTION)],
                )
            ],
        )
        for i in range(min(assessments, jobs))
    ]

    return {
        "jobs": [row.model_dump(mode="json") for row in job_rows],
        "candidates": [row.model_dump(mode="json") for row in candidate_rows],
        "assessments": [row.model_dump(mode="json") for row in assessment_rows],
    }


class SeedInitializer:
    """Populates an empty store once.

    Concurrent ``ensure_seeded`` calls against the same store, from this or any
    other initializer, share a single seeding pass.
    """

    def __init__(
        self,
        mutations: MutationService,
        *,
        jobs: int = 25,
        candidates: int = 1000,
        assessments: int = 3,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.mutations = mutations
        self.storage = mutations.storage
        self.sizes = {"jobs": jobs, "candidates": candidates, "assessments": assessments}
        self._rng = rng or random.Random()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @classmethod
    def from_settings(cls, mutations: MutationService, settings: Settings) -> "SeedInitializer":
        return cls(
            mutations,
            jobs=settings.seed_jobs,
            candidates=settings.seed_candidates,
            assessments=settings.seed_assessments,
            rng=random.Random(settings.seed_random),
        )

    async def ensure_seeded(self) -> SeedReport:
        key = self.storage.identity
        pending = _inflight.get(key)
        if pending is not None and pending.get_loop() is not asyncio.get_running_loop():
            # Left behind by an event loop that was closed mid-seed.
            pending = None
        if pending is None:
            pending = asyncio.ensure_future(self._seed_if_empty())
            _inflight[key] = pending

            def _release(done: asyncio.Future) -> None:
                if _inflight.get(key) is done:
                    del _inflight[key]

            pending.add_done_callback(_release)
        return await asyncio.shield(pending)

    async def _seed_if_empty(self) -> SeedReport:
        if await self.storage.count("jobs") > 0:
            return await self._report(seeded=False)

        data = build_seed_data(self._rng, self._clock(), **self.sizes)
        # Jobs go last: a non-empty jobs collection is the "already seeded" marker.
        # Records left by an interrupted pass are kept, only the missing ones are added.
        for collection in ("candidates", "assessments", "jobs"):
            await self._import_missing(collection, data[collection])
        logger.info(
            "store seeded name=%s jobs=%s candidates=%s assessments=%s",
            self.storage.name,
            len(data["jobs"]),
            len(data["candidates"]),
            len(data["assessments"]),
        )
        return await self._report(seeded=True)

    async def _import_missing(self, collection: str, records: list[Record]) -> None:
        present = {record_key(collection, row) for row in await self.storage.get_all(collection)}
        missing = [row for row in records if record_key(collection, row) not in present]
        if present:
            logger.warning(
                "seed resuming collection=%s present=%s missing=%s", collection, len(present), len(missing)
            )
        if missing:
            await self.mutations.import_records(collection, missing)

    async def _report(self, *, seeded: bool) -> SeedReport:
        return SeedReport(
            seeded=seeded,
            jobs=await self.storage.count("jobs"),
            candidates=await self.storage.count("candidates"),
            assessments=await self.storage.count("assessments"),
        )
