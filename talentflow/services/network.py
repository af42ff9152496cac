from __future__ import annotations

import asyncio
import logging
import random
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, TypeVar

from talentflow.config import Settings
from talentflow.errors import TransientFailure


logger = logging.getLogger(__name__)

T = TypeVar("T")

Operation = Callable[[], Awaitable[T]]
Sleep = Callable[[float], Awaitable[None]]


class Transport(ABC):
    """Carries a backend call. Callers depend on this, never on a concrete transport."""

    @abstractmethod
    async def perform(self, operation: Operation[T], *, mutating: bool = False, label: str = "request") -> T: ...


class DirectTransport(Transport):
    """No latency, no failures. Stands in where a real transport has nothing to add."""

    async def perform(self, operation: Operation[T], *, mutating: bool = False, label: str = "request") -> T:
        return await operation()


class NetworkSimulator(Transport):
    """Latency and failure injection around backend calls.

    Every call sleeps for a latency drawn uniformly from
    ``[latency_min_ms, latency_max_ms]``. Mutating calls additionally fail with
    probability ``failure_rate``; the failure is raised before the operation
    is started, so a failed write never touches the store. Reads are never
    failed.
    """

    def __init__(
        self,
        *,
        latency_min_ms: float = 200,
        latency_max_ms: float = 1200,
        failure_rate: float = 0.05,
        rng: random.Random | None = None,
        sleep: Sleep | None = None,
    ) -> None:
        if latency_min_ms < 0 or latency_min_ms > latency_max_ms:
            raise ValueError("latency range must satisfy 0 <= min <= max")
        if not 0.0 <= failure_rate <= 1.0:
            raise ValueError("failure_rate must be between 0 and 1")
        self.latency_min_ms = latency_min_ms
        self.latency_max_ms = latency_max_ms
        self.failure_rate = failure_rate
        self._rng = rng or random.Random()
        self._sleep = sleep or asyncio.sleep

    @classmethod
    def from_settings(cls, settings: Settings, *, rng: random.Random | None = None) -> "NetworkSimulator":
        return cls(
            latency_min_ms=settings.latency_min_ms,
            latency_max_ms=settings.latency_max_ms,
            failure_rate=settings.failure_rate,
            rng=rng,
        )

    def sample_latency(self) -> float:
        return self._rng.uniform(self.latency_min_ms, self.latency_max_ms)

    async def perform(self, operation: Operation[T], *, mutating: bool = False, label: str = "request") -> T:
        latency_ms = self.sample_latency()
        logger.debug("network.simulate op=%s mutating=%s latency_ms=%.0f", label, mutating, latency_ms)
        await self._sleep(latency_ms / 1000.0)
        if mutating and self.failure_rate > 0 and self._rng.random() < self.failure_rate:
            logger.warning("network.simulate injected failure op=%s", label)
            raise TransientFailure(label)
        return await operation()


def build_transport(settings: Settings) -> Transport:
    if settings.transport == "direct":
        return DirectTransport()
    return NetworkSimulator.from_settings(settings)
