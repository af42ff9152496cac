from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest

from talentflow.client import TalentFlowClient
from talentflow.errors import MutationInFlight, NotFound, TransientFailure, ValidationError
from talentflow.schemas.job import Job
from talentflow.services.network import NetworkSimulator, Transport
from talentflow.services.optimistic import (
    LIST_TARGET,
    CandidateBoardController,
    ControllerState,
    JobOrderController,
    JobPatchIntent,
)


class GatedTransport(Transport):
    """Runs each write, then holds its response until the test releases it."""

    def __init__(self) -> None:
        self.gates: list[asyncio.Event] = []

    async def perform(self, operation, *, mutating=False, label="request"):
        result = await operation()
        if mutating:
            gate = asyncio.Event()
            self.gates.append(gate)
            await gate.wait()
        return result


class ScriptedTransport(Transport):
    """Fails or passes writes in the order they are performed."""

    def __init__(self, outcomes: list[str]) -> None:
        self.outcomes = list(outcomes)

    async def perform(self, operation, *, mutating=False, label="request"):
        if mutating and self.outcomes.pop(0) == "fail":
            raise TransientFailure(label)
        return await operation()


async def _until(predicate) -> None:
    for _ in range(200):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition was never reached")


def _seed_jobs(api, titles=("A", "B", "C")) -> list[Job]:
    async def scenario():
        for title in titles:
            await api.create_job({"title": title})
        return (await api.get_jobs()).data

    return asyncio.run(scenario())


def _seed_candidates(api, names=("Ada", "Grace")):
    async def scenario():
        job = await api.create_job({"title": "Backend"})
        for name in names:
            await api.create_candidate({"name": name, "email": f"{name.lower()}@example.com", "job_id": job.id})
        return (await api.get_candidates()).data

    return asyncio.run(scenario())


def test_failed_reorder_restores_exact_previous_list(api) -> None:
    jobs = _seed_jobs(api)
    failing = TalentFlowClient(api.storage, NetworkSimulator(latency_min_ms=0, latency_max_ms=0, failure_rate=1.0))
    controller = JobOrderController(failing, jobs)
    failures = []
    controller.on_failure(failures.append)

    async def scenario():
        task = controller.move(jobs[1].id, 0)
        during = [job.title for job in controller.items]
        state = controller.state()
        return during, state, await task

    during, state, settlement = asyncio.run(scenario())
    assert during == ["B", "A", "C"]
    assert state is ControllerState.SPECULATING
    assert settlement.outcome == "rolled_back"
    assert controller.items == jobs
    assert controller.state() is ControllerState.STABLE
    assert len(failures) == 1
    assert isinstance(failures[0].error, TransientFailure)
    assert failures[0].label == "reorder_jobs"
    assert [job.order for job in asyncio.run(api.get_jobs()).data] == [1, 2, 3]


def test_committed_reorder_is_persisted(api) -> None:
    jobs = _seed_jobs(api)
    controller = JobOrderController(api, jobs)

    async def scenario():
        settlement = await controller.move(jobs[2].id, 0)
        return settlement, await api.get_jobs()

    settlement, fresh = asyncio.run(scenario())
    assert settlement.outcome == "committed"
    assert [job.title for job in controller.items] == ["C", "A", "B"]
    assert [job.order for job in controller.items] == [1, 2, 3]
    assert [job.title for job in fresh.data] == ["C", "A", "B"]
    assert controller.items == fresh.data


def test_overlapping_mutations_are_rejected(api) -> None:
    jobs = _seed_jobs(api)
    transport = GatedTransport()
    controller = JobOrderController(TalentFlowClient(api.storage, transport), jobs)

    async def scenario():
        reorder = controller.move(jobs[1].id, 0)
        with pytest.raises(MutationInFlight) as excinfo:
            controller.move(jobs[2].id, 0)
        assert LIST_TARGET in excinfo.value.targets
        with pytest.raises(MutationInFlight):
            controller.set_status(jobs[0].id, "archived")

        # C lies outside the reordered window.
        archive = controller.set_status(jobs[2].id, "archived")
        await _until(lambda: len(transport.gates) == 2)
        for gate in transport.gates:
            gate.set()
        return await reorder, await archive

    reorder, archive = asyncio.run(scenario())
    assert (reorder.outcome, archive.outcome) == ("committed", "committed")
    assert [(job.title, job.status) for job in controller.items] == [
        ("B", "active"),
        ("A", "active"),
        ("C", "archived"),
    ]
    assert controller.state() is ControllerState.STABLE


def test_superseded_settle_is_ignored(api) -> None:
    candidates = _seed_candidates(api, names=("Ada",))
    transport = GatedTransport()
    board = CandidateBoardController(TalentFlowClient(api.storage, transport), candidates)
    ada = candidates[0].id

    async def scenario():
        first = board.move(ada, "screen")
        await _until(lambda: len(transport.gates) == 1)
        board.reset((await api.get_candidates()).data)
        second = board.move(ada, "tech")
        await _until(lambda: len(transport.gates) == 2)

        transport.gates[1].set()
        second_result = await second
        transport.gates[0].set()
        first_result = await first
        return first_result, second_result

    first, second = asyncio.run(scenario())
    assert second.outcome == "committed"
    assert first.outcome == "stale"
    assert board.items[0].stage == "tech"
    assert asyncio.run(api.get_candidate(ada)).stage == "tech"
    assert board.state() is ControllerState.STABLE


def test_failure_on_one_card_keeps_the_other_commit(api) -> None:
    candidates = _seed_candidates(api)
    board = CandidateBoardController(TalentFlowClient(api.storage, ScriptedTransport(["fail", "ok"])), candidates)
    failures = []
    board.on_failure(failures.append)
    ada, grace = candidates[0].id, candidates[1].id

    async def scenario():
        first = board.move(ada, "screen")
        second = board.move(grace, "tech")
        return await asyncio.gather(first, second)

    first, second = asyncio.run(scenario())
    assert (first.outcome, second.outcome) == ("rolled_back", "committed")
    assert [c.stage for c in board.items] == ["applied", "tech"]
    assert [event.targets for event in failures] == [frozenset({ada})]
    assert asyncio.run(api.get_candidate(grace)).stage == "tech"
    assert asyncio.run(api.get_candidate(ada)).stage == "applied"


def test_backend_error_rolls_back_a_patch(api) -> None:
    ghost = Job(
        id="job-ghost",
        title="Ghost",
        slug="ghost",
        status="active",
        order=1,
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )
    controller = JobOrderController(api, [ghost])

    async def scenario():
        task = controller.set_status(ghost.id, "archived")
        assert controller.items[0].status == "archived"
        return await task

    settlement = asyncio.run(scenario())
    assert settlement.outcome == "rolled_back"
    assert isinstance(settlement.error, NotFound)
    assert controller.items == [ghost]


def test_moves_that_change_nothing_or_are_invalid(api) -> None:
    jobs = _seed_jobs(api)
    controller = JobOrderController(api, jobs)

    assert controller.move(jobs[1].id, 1) is None
    with pytest.raises(ValidationError):
        controller.move(jobs[1].id, 3)
    with pytest.raises(ValidationError):
        controller.move(jobs[1].id, -1)
    with pytest.raises(ValidationError):
        controller.move("job-unknown", 0)
    assert controller.items == jobs
    assert controller.state() is ControllerState.STABLE


def test_listeners_see_speculative_and_committed_lists(api) -> None:
    jobs = _seed_jobs(api)
    controller = JobOrderController(api, jobs)
    seen: list[list[str]] = []
    unsubscribe = controller.subscribe(lambda items: seen.append([job.title for job in items]))

    async def scenario():
        await controller.move(jobs[0].id, 2)

    asyncio.run(scenario())
    assert seen == [["B", "C", "A"], ["B", "C", "A"]]

    unsubscribe()
    controller.reset(jobs)
    assert len(seen) == 2


def test_board_groups_by_stage_and_rejects_unknown_stage(api) -> None:
    candidates = _seed_candidates(api)
    board = CandidateBoardController(api, candidates)

    assert board.move(candidates[0].id, "applied") is None
    with pytest.raises(ValidationError):
        board.move(candidates[0].id, "interview")

    async def scenario():
        await board.move(candidates[1].id, "offer")

    asyncio.run(scenario())
    columns = board.by_stage()
    assert list(columns) == ["applied", "screen", "tech", "offer", "hired", "rejected"]
    assert [c.name for c in columns["applied"]] == ["Ada"]
    assert [c.name for c in columns["offer"]] == ["Grace"]


class BrokenTransport(Transport):
    async def perform(self, operation, *, mutating=False, label="request"):
        raise RuntimeError("connection reset")


@pytest.mark.parametrize(
    "source, to_index, expected",
    [
        (1, 0, ["B", "A", "C"]),
        (2, 1, ["A", "C", "B"]),
        (0, 2, ["B", "C", "A"]),
    ],
)
def test_reorder_with_duplicate_orders_persists_what_is_shown(api, source, to_index, expected) -> None:
    async def setup():
        for title in ("A", "B", "C"):
            await api.create_job({"title": title, "order": 1})
        return (await api.get_jobs()).data

    jobs = asyncio.run(setup())
    assert [job.title for job in jobs] == ["A", "B", "C"]
    controller = JobOrderController(api, jobs)

    async def scenario():
        settlement = await controller.move(jobs[source].id, to_index)
        return settlement, (await api.get_jobs()).data

    settlement, fresh = asyncio.run(scenario())
    assert settlement.outcome == "committed"
    assert [job.title for job in controller.items] == expected
    assert [job.title for job in fresh] == expected
    orders = [job.order for job in fresh]
    assert orders == sorted(set(orders))


def test_patch_intent_cannot_move_a_job(api) -> None:
    jobs = _seed_jobs(api)
    controller = JobOrderController(api, jobs)
    with pytest.raises(ValidationError):
        controller.begin(JobPatchIntent(jobs[0].id, {"order": 9}))
    assert controller.items == jobs
    assert controller.state() is ControllerState.STABLE


def test_unexpected_dispatch_error_settles_as_rollback(api) -> None:
    jobs = _seed_jobs(api)
    controller = JobOrderController(TalentFlowClient(api.storage, BrokenTransport()), jobs)
    failures = []
    controller.on_failure(failures.append)

    async def scenario():
        return await controller.set_status(jobs[0].id, "archived")

    settlement = asyncio.run(scenario())
    assert settlement.outcome == "rolled_back"
    assert isinstance(settlement.error, RuntimeError)
    assert controller.items == jobs
    assert len(failures) == 1
