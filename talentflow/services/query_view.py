from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Generic, TypeVar

from talentflow.schemas.pagination import PageResult
from talentflow.services.optimistic import OptimisticListController


logger = logging.getLogger(__name__)

T = TypeVar("T")


class QueryView(Generic[T]):
    """One list view fed by queries that may complete out of order.

    Every ``load`` takes a ticket; its result is applied only if no later
    ``load`` was issued in the meantime. An applied result replaces the
    attached controller's items.
    """

    def __init__(
        self,
        fetch: Callable[..., Awaitable[PageResult[T]]],
        controller: OptimisticListController | None = None,
    ) -> None:
        self._fetch = fetch
        self.controller = controller
        self._issued = 0
        self.result: PageResult[T] | None = None

    def is_current(self, ticket: int) -> bool:
        return ticket == self._issued

    async def load(self, **params: Any) -> PageResult[T] | None:
        self._issued += 1
        ticket = self._issued
        try:
            result = await self._fetch(**params)
        except Exception:
            if self.is_current(ticket):
                raise
            logger.warning("query_view.load ticket=%s failed after being superseded", ticket, exc_info=True)
            return None
        if not self.is_current(ticket):
            logger.debug("query_view.load ticket=%s stale, latest=%s", ticket, self._issued)
            return None
        self.result = result
        if self.controller is not None:
            self.controller.reset(result.data)
        return result
