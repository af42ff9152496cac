from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Literal, get_args

from pydantic import BaseModel, Field, field_validator


JobStatus = Literal["active", "archived"]
JOB_STATUSES: tuple[str, ...] = get_args(JobStatus)

_WS_RE = re.compile(r"\s+")


def slugify(title: str) -> str:
    return _WS_RE.sub("-", (title or "").strip().lower())


def _coerce_tags(v: Any) -> Any:
    # Forms submit tags as "a, b, c".
    if v is None:
        return []
    if isinstance(v, str):
        return [part.strip() for part in v.split(",") if part.strip()]
    if isinstance(v, list):
        return [str(item).strip() for item in v if str(item).strip()]
    return v


def _require_title(v: str | None) -> str | None:
    if v is None:
        return None
    value = v.strip()
    if not value:
        raise ValueError("title is required")
    return value


class Job(BaseModel):
    id: str
    title: str
    slug: str
    status: JobStatus
    tags: list[str] = Field(default_factory=list)
    order: int
    description: str = ""
    created_at: datetime


class JobCreate(BaseModel):
    title: str
    slug: str | None = None
    tags: list[str] = Field(default_factory=list)
    status: JobStatus = "active"
    description: str = ""
    order: int | None = None

    @field_validator("title")
    @classmethod
    def _validate_title(cls, v: str) -> str:
        return _require_title(v)

    @field_validator("tags", mode="before")
    @classmethod
    def _split_tags(cls, v: Any) -> Any:
        return _coerce_tags(v)

    @field_validator("slug")
    @classmethod
    def _blank_slug_is_missing(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return v.strip()


class JobUpdate(BaseModel):
    title: str | None = None
    slug: str | None = None
    status: JobStatus | None = None
    tags: list[str] | None = None
    order: int | None = None
    description: str | None = None

    @field_validator("title")
    @classmethod
    def _validate_title(cls, v: str | None) -> str | None:
        return _require_title(v)

    @field_validator("tags", mode="before")
    @classmethod
    def _split_tags(cls, v: Any) -> Any:
        if v is None:
            return None
        return _coerce_tags(v)


class JobFilter(BaseModel):
    search: str | None = None
    status: JobStatus | None = None
