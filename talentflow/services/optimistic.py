from __future__ import annotations

import asyncio
import enum
import itertools
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, Iterable, Literal, Mapping, Sequence, TypeVar

from pydantic import BaseModel

from talentflow.client import TalentFlowClient, parse_payload
from talentflow.errors import MutationInFlight, TalentFlowError, ValidationError
from talentflow.schemas.candidate import CANDIDATE_STAGES, Candidate
from talentflow.schemas.job import Job, JobUpdate


logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

# Lock key held by any mutation that changes the order of the whole list.
LIST_TARGET = "*list*"


class ControllerState(str, enum.Enum):
    STABLE = "stable"
    SPECULATING = "speculating"


@dataclass
class Plan(Generic[T]):
    """A speculative change computed against the current list, not yet applied."""

    targets: frozenset[str]
    items: list[T]
    affected: tuple[str, ...]
    dispatch: Callable[[], Awaitable[Sequence[T]]]
    label: str = "mutation"


@dataclass
class _Pending(Generic[T]):
    sequence: int
    targets: frozenset[str]
    # Pre-transform state of the targets: list order (list mutations only)
    # and the records the transform touched.
    order: list[str] | None
    records: dict[str, T]
    label: str


@dataclass(frozen=True)
class Settlement(Generic[T]):
    sequence: int
    targets: frozenset[str]
    outcome: Literal["committed", "rolled_back", "stale"]
    records: tuple[T, ...] = ()
    error: BaseException | None = None


@dataclass(frozen=True)
class MutationFailed:
    sequence: int
    targets: frozenset[str]
    label: str
    error: BaseException
    message: str = field(default="")


class OptimisticListController(ABC, Generic[T]):
    """Speculative list state with commit/rollback.

    ``begin`` applies a change to ``items`` immediately and dispatches the real
    mutation as a task. Each begin holds lock keys (entity ids, plus
    ``LIST_TARGET`` for order changes) until it settles; a begin touching a held
    key raises ``MutationInFlight``. Each begin also takes a sequence number,
    and a settle is applied only while its number is still the latest one for
    all of its keys; ``reset`` (fresh query data) makes every outstanding
    settle stale.
    """

    def __init__(self, items: Iterable[T] = ()) -> None:
        self._items: list[T] = list(items)
        self._sequence = itertools.count(1)
        self._latest: dict[str, int] = {}
        self._pending: dict[int, _Pending[T]] = {}
        self._listeners: list[Callable[[list[T]], Any]] = []
        self._failure_listeners: list[Callable[[MutationFailed], Any]] = []

    @staticmethod
    def key(item: T) -> str:
        return str(getattr(item, "id"))

    @property
    def items(self) -> list[T]:
        return list(self._items)

    def state(self, target: str | None = None) -> ControllerState:
        busy = bool(self._latest) if target is None else target in self._latest
        return ControllerState.SPECULATING if busy else ControllerState.STABLE

    def subscribe(self, listener: Callable[[list[T]], Any]) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def on_failure(self, listener: Callable[[MutationFailed], Any]) -> Callable[[], None]:
        self._failure_listeners.append(listener)
        return lambda: self._failure_listeners.remove(listener)

    def reset(self, items: Iterable[T]) -> None:
        if self._pending:
            logger.info("optimistic.reset discarding %s outstanding settle(s)", len(self._pending))
        self._pending.clear()
        self._latest.clear()
        self._set_items(list(items))

    def begin(self, intent: Any) -> asyncio.Task[Settlement[T]] | None:
        """Apply ``intent`` now and dispatch it. Returns None when it changes nothing."""

        plan = self._plan(intent)
        if plan is None:
            return None
        busy = plan.targets & self._latest.keys()
        if busy:
            raise MutationInFlight(busy)

        sequence = next(self._sequence)
        by_key = {self.key(item): item for item in self._items}
        self._pending[sequence] = _Pending(
            sequence=sequence,
            targets=plan.targets,
            order=[self.key(item) for item in self._items] if LIST_TARGET in plan.targets else None,
            records={k: by_key[k] for k in plan.affected if k in by_key},
            label=plan.label,
        )
        for target in plan.targets:
            self._latest[target] = sequence
        self._set_items(plan.items)
        return asyncio.get_running_loop().create_task(self._settle(sequence, plan))

    async def _settle(self, sequence: int, plan: Plan[T]) -> Settlement[T]:
        try:
            records = await plan.dispatch()
        except TalentFlowError as exc:
            return self._rollback(sequence, plan.targets, exc)
        except Exception as exc:
            # Callers may drop the task; the error travels in the settlement and the failure event.
            logger.exception("optimistic.dispatch unexpected error sequence=%s op=%s", sequence, plan.label)
            return self._rollback(sequence, plan.targets, exc)
        return self._commit(sequence, plan.targets, records)

    def _is_current(self, sequence: int) -> bool:
        pending = self._pending.get(sequence)
        return pending is not None and all(self._latest.get(t) == sequence for t in pending.targets)

    def _release(self, sequence: int) -> _Pending[T]:
        pending = self._pending.pop(sequence)
        for target in pending.targets:
            if self._latest.get(target) == sequence:
                del self._latest[target]
        return pending

    def _commit(self, sequence: int, targets: frozenset[str], records: Sequence[T]) -> Settlement[T]:
        if not self._is_current(sequence):
            logger.debug("optimistic.commit stale sequence=%s", sequence)
            return Settlement(sequence, targets, "stale", tuple(records))
        self._release(sequence)
        canonical = {self.key(record): record for record in records}
        # Positions stay as they are; other items may have settled meanwhile.
        self._set_items([canonical.get(self.key(item), item) for item in self._items])
        return Settlement(sequence, targets, "committed", tuple(records))

    def _rollback(self, sequence: int, targets: frozenset[str], error: BaseException) -> Settlement[T]:
        if not self._is_current(sequence):
            logger.warning("optimistic.rollback stale sequence=%s error=%s", sequence, error)
            return Settlement(sequence, targets, "stale", error=error)
        pending = self._release(sequence)
        current = {self.key(item): item for item in self._items}
        current.update(pending.records)
        if pending.order is not None:
            known = set(pending.order)
            restored = [current[k] for k in pending.order if k in current]
            restored.extend(item for item in self._items if self.key(item) not in known)
        else:
            restored = [current[self.key(item)] for item in self._items]
        self._set_items(restored)

        logger.warning("optimistic.rollback sequence=%s op=%s error=%s", sequence, pending.label, error)
        event = MutationFailed(sequence, targets, pending.label, error, message=f"{pending.label} failed: {error}")
        for listener in list(self._failure_listeners):
            listener(event)
        return Settlement(sequence, targets, "rolled_back", error=error)

    def _set_items(self, items: list[T]) -> None:
        self._items = items
        snapshot = list(items)
        for listener in list(self._listeners):
            listener(snapshot)

    def _index(self, key: str) -> int:
        for index, item in enumerate(self._items):
            if self.key(item) == key:
                return index
        raise ValidationError(f"{key} is not in the current list")

    @abstractmethod
    def _plan(self, intent: Any) -> Plan[T] | None: ...


@dataclass(frozen=True)
class ReorderIntent:
    job_id: str
    to_index: int


@dataclass(frozen=True)
class JobPatchIntent:
    job_id: str
    patch: Mapping[str, Any]


@dataclass(frozen=True)
class StageChangeIntent:
    candidate_id: str
    stage: str


class JobOrderController(OptimisticListController[Job]):
    """Job list ordered by ``order``: drag-reorder and status toggles."""

    def __init__(self, client: TalentFlowClient, items: Iterable[Job] = ()) -> None:
        super().__init__(items)
        self.client = client

    def move(self, job_id: str, to_index: int) -> asyncio.Task[Settlement[Job]] | None:
        return self.begin(ReorderIntent(job_id, to_index))

    def set_status(self, job_id: str, status: str) -> asyncio.Task[Settlement[Job]] | None:
        return self.begin(JobPatchIntent(job_id, {"status": status}))

    def _plan(self, intent: Any) -> Plan[Job] | None:
        if isinstance(intent, ReorderIntent):
            return self._plan_reorder(intent)
        if isinstance(intent, JobPatchIntent):
            return self._plan_patch(intent)
        raise TypeError(f"unsupported intent: {type(intent).__name__}")

    def _plan_reorder(self, intent: ReorderIntent) -> Plan[Job] | None:
        source = self._index(intent.job_id)
        target = intent.to_index
        if not 0 <= target < len(self._items):
            raise ValidationError(f"to_index {target} is outside the list (0..{len(self._items) - 1})")
        if source == target:
            return None

        moved = list(self._items)
        moved.insert(target, moved.pop(source))
        lo, hi = min(source, target), max(source, target)

        # The moved window reuses its own order values. Duplicate values are
        # spread out, which can push later items along too.
        slots = sorted(item.order for item in self._items[lo : hi + 1])
        if lo > 0:
            slots[0] = max(slots[0], moved[lo - 1].order + 1)
        for k in range(1, len(slots)):
            slots[k] = max(slots[k], slots[k - 1] + 1)

        orders: dict[str, int] = {}

        def _assign(index: int, slot: int) -> None:
            item = moved[index]
            if item.order != slot:
                orders[item.id] = slot
                moved[index] = item.model_copy(update={"order": slot})

        for offset, slot in enumerate(slots):
            _assign(lo + offset, slot)
        end = hi + 1
        while end < len(moved) and moved[end].order <= moved[end - 1].order:
            _assign(end, moved[end - 1].order + 1)
            end += 1

        affected = tuple(self.key(item) for item in self._items[lo:end])
        return Plan(
            targets=frozenset({LIST_TARGET, *affected}),
            items=moved,
            affected=affected,
            dispatch=lambda: self.client.reorder_jobs(orders),
            label="reorder_jobs",
        )

    def _plan_patch(self, intent: JobPatchIntent) -> Plan[Job] | None:
        index = self._index(intent.job_id)
        changes = parse_payload(JobUpdate, intent.patch).model_dump(exclude_unset=True, exclude_none=True)
        if "order" in changes:
            raise ValidationError("a job's position is changed with move(), not a patch")
        if not changes:
            return None
        items = list(self._items)
        items[index] = items[index].model_copy(update=changes)

        async def _dispatch() -> list[Job]:
            return [await self.client.update_job(intent.job_id, changes)]

        return Plan(
            targets=frozenset({intent.job_id}),
            items=items,
            affected=(intent.job_id,),
            dispatch=_dispatch,
            label="update_job",
        )


class CandidateBoardController(OptimisticListController[Candidate]):
    """Candidates shown as columns per stage; dragging a card changes its stage."""

    def __init__(self, client: TalentFlowClient, items: Iterable[Candidate] = ()) -> None:
        super().__init__(items)
        self.client = client

    def by_stage(self) -> dict[str, list[Candidate]]:
        board: dict[str, list[Candidate]] = {stage: [] for stage in CANDIDATE_STAGES}
        for candidate in self._items:
            board[candidate.stage].append(candidate)
        return board

    def move(self, candidate_id: str, stage: str) -> asyncio.Task[Settlement[Candidate]] | None:
        return self.begin(StageChangeIntent(candidate_id, stage))

    def _plan(self, intent: Any) -> Plan[Candidate] | None:
        if not isinstance(intent, StageChangeIntent):
            raise TypeError(f"unsupported intent: {type(intent).__name__}")
        if intent.stage not in CANDIDATE_STAGES:
            raise ValidationError(f"unknown stage: {intent.stage}")
        index = self._index(intent.candidate_id)
        if self._items[index].stage == intent.stage:
            return None
        items = list(self._items)
        items[index] = items[index].model_copy(update={"stage": intent.stage})

        async def _dispatch() -> list[Candidate]:
            return [await self.client.update_candidate(intent.candidate_id, {"stage": intent.stage})]

        return Plan(
            targets=frozenset({intent.candidate_id}),
            items=items,
            affected=(intent.candidate_id,),
            dispatch=_dispatch,
            label="update_candidate",
        )
