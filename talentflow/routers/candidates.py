from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from talentflow.client import TalentFlowClient
from talentflow.routers.dependencies import get_client
from talentflow.schemas.candidate import Candidate, CandidateCreate, CandidateStage, CandidateUpdate
from talentflow.schemas.pagination import PageResult


router = APIRouter(tags=["candidates"])


@router.get("/candidates", response_model=PageResult[Candidate])
async def list_candidates(
    search: str | None = Query(default=None, description="Case-insensitive substring of name or email"),
    stage: CandidateStage | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    page_size: int | None = Query(default=None, ge=1, alias="pageSize"),
    client: TalentFlowClient = Depends(get_client),
) -> PageResult[Candidate]:
    return await client.get_candidates(search=search, stage=stage, page=page, page_size=page_size)


@router.post("/candidates", response_model=Candidate, status_code=status.HTTP_201_CREATED)
async def create_candidate(payload: CandidateCreate, client: TalentFlowClient = Depends(get_client)) -> Candidate:
    return await client.create_candidate(payload)


@router.get("/candidates/{candidate_id}", response_model=Candidate)
async def get_candidate(candidate_id: str, client: TalentFlowClient = Depends(get_client)) -> Candidate:
    return await client.get_candidate(candidate_id)


@router.patch("/candidates/{candidate_id}", response_model=Candidate)
async def update_candidate(candidate_id: str, patch: CandidateUpdate, client: TalentFlowClient = Depends(get_client)) -> Candidate:
    return await client.update_candidate(candidate_id, patch)
