from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel

from talentflow.client import TalentFlowClient
from talentflow.routers.dependencies import get_client
from talentflow.schemas.job import Job, JobCreate, JobStatus, JobUpdate
from talentflow.schemas.pagination import PageResult


router = APIRouter(tags=["jobs"])


class JobOrderUpdate(BaseModel):
    orders: dict[str, int]


@router.get("/jobs", response_model=PageResult[Job])
async def list_jobs(
    search: str | None = Query(default=None, description="Case-insensitive substring of the title"),
    status_: JobStatus | None = Query(default=None, alias="status"),
    page: int = Query(default=1, ge=1),
    page_size: int | None = Query(default=None, ge=1, alias="pageSize"),
    client: TalentFlowClient = Depends(get_client),
) -> PageResult[Job]:
    return await client.get_jobs(search=search, status=status_, page=page, page_size=page_size)


@router.post("/jobs", response_model=Job, status_code=status.HTTP_201_CREATED)
async def create_job(payload: JobCreate, client: TalentFlowClient = Depends(get_client)) -> Job:
    return await client.create_job(payload)


@router.get("/jobs/{job_id}", response_model=Job)
async def get_job(job_id: str, client: TalentFlowClient = Depends(get_client)) -> Job:
    return await client.get_job(job_id)


@router.patch("/jobs/{job_id}", response_model=Job)
async def update_job(job_id: str, patch: JobUpdate, client: TalentFlowClient = Depends(get_client)) -> Job:
    return await client.update_job(job_id, patch)


@router.post("/jobs/reorder", response_model=list[Job])
async def reorder_jobs(payload: JobOrderUpdate, client: TalentFlowClient = Depends(get_client)) -> list[Job]:
    return await client.reorder_jobs(payload.orders)
