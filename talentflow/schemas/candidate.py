from __future__ import annotations

from datetime import datetime
from typing import Literal, get_args

from pydantic import BaseModel, Field, field_validator


CandidateStage = Literal["applied", "screen", "tech", "offer", "hired", "rejected"]
CANDIDATE_STAGES: tuple[str, ...] = get_args(CandidateStage)


def _validate_email_like(v: str | None) -> str | None:
    if v is None:
        return None
    value = v.strip()
    if "@" not in value:
        raise ValueError("email must contain '@'")
    left, right = value.split("@", 1)
    if not left or not right:
        raise ValueError("email must have text before and after '@'")
    return value


class Candidate(BaseModel):
    id: str
    name: str
    email: str
    stage: CandidateStage
    # Checked against the jobs collection whenever it is written.
    job_id: str
    applied_at: datetime
    notes: list[str] = Field(default_factory=list)


class CandidateCreate(BaseModel):
    name: str = Field(min_length=1)
    email: str
    stage: CandidateStage = "applied"
    job_id: str = Field(min_length=1)
    notes: list[str] = Field(default_factory=list)

    @field_validator("email")
    @classmethod
    def _validate_email(cls, v: str) -> str:
        return _validate_email_like(v)


class CandidateUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    email: str | None = None
    stage: CandidateStage | None = None
    job_id: str | None = Field(default=None, min_length=1)
    notes: list[str] | None = None

    @field_validator("email")
    @classmethod
    def _validate_email(cls, v: str | None) -> str | None:
        return _validate_email_like(v)


class CandidateFilter(BaseModel):
    search: str | None = None
    stage: CandidateStage | None = None
