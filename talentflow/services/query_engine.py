from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from talentflow.db.storage import Record
from talentflow.schemas.pagination import PageInfo, PageResult, Pagination


@dataclass(frozen=True)
class CollectionQuery:
    """How one collection is searched, filtered and ordered."""

    search_fields: tuple[str, ...]
    exact_fields: tuple[str, ...]
    default_page_size: int
    # Primary sort field; insertion (creation) order breaks ties and is the
    # whole ordering when unset.
    order_field: str | None = None


JOBS_QUERY = CollectionQuery(search_fields=("title",), exact_fields=("status",), default_page_size=10, order_field="order")
CANDIDATES_QUERY = CollectionQuery(search_fields=("name", "email"), exact_fields=("stage",), default_page_size=50)


def _norm(value: Any) -> str:
    return str(value or "").strip().lower()


class QueryEngine:
    def __init__(self, spec: CollectionQuery) -> None:
        self.spec = spec

    def matches(self, record: Mapping[str, Any], filters: Mapping[str, Any]) -> bool:
        needle = _norm(filters.get("search"))
        if needle and not any(needle in _norm(record.get(field)) for field in self.spec.search_fields):
            return False
        for field in self.spec.exact_fields:
            wanted = filters.get(field)
            if wanted is not None and wanted != "" and record.get(field) != wanted:
                return False
        return True

    def sort(self, records: Sequence[Record]) -> list[Record]:
        indexed = list(enumerate(records))
        field = self.spec.order_field
        if field is None:
            return [record for _, record in indexed]
        indexed.sort(key=lambda pair: (pair[1].get(field, 0), pair[0]))
        return [record for _, record in indexed]

    def query(
        self,
        snapshot: Sequence[Record],
        filters: Mapping[str, Any] | None = None,
        pagination: Pagination | None = None,
    ) -> PageResult[Record]:
        """Filter, order and slice ``snapshot`` (which is in insertion order).

        ``total`` counts the filtered set; pages past the end are empty.
        """

        filters = filters or {}
        pagination = pagination or Pagination()
        page = pagination.page
        page_size = pagination.page_size or self.spec.default_page_size

        filtered = [record for record in snapshot if self.matches(record, filters)]
        ordered = self.sort(filtered)
        total = len(ordered)
        start = (page - 1) * page_size
        return PageResult[Record](
            data=ordered[start : start + page_size],
            pagination=PageInfo(
                page=page,
                page_size=page_size,
                total=total,
                total_pages=math.ceil(total / page_size),
            ),
        )
