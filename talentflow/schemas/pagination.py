from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel, Field


T = TypeVar("T")


class Pagination(BaseModel):
    page: int = Field(default=1, ge=1)
    # None => the collection's default page size.
    page_size: int | None = Field(default=None, ge=1)


class PageInfo(BaseModel):
    page: int
    page_size: int
    total: int
    total_pages: int


class PageResult(BaseModel, Generic[T]):
    data: list[T]
    pagination: PageInfo
