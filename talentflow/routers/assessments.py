from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from talentflow.client import TalentFlowClient
from talentflow.routers.dependencies import get_client
from talentflow.schemas.assessment import Assessment, AssessmentUpsert


router = APIRouter(tags=["assessments"])


class AssessmentResponses(BaseModel):
    responses: dict[str, Any] = Field(default_factory=dict)


class AssessmentValidationResult(BaseModel):
    valid: bool
    errors: dict[str, str] = Field(default_factory=dict)


@router.get("/assessments/{job_id}", response_model=Assessment)
async def get_assessment(job_id: str, client: TalentFlowClient = Depends(get_client)) -> Assessment:
    assessment = await client.get_assessment(job_id)
    if assessment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Assessment not found")
    return assessment


@router.put("/assessments/{job_id}", response_model=Assessment)
async def update_assessment(job_id: str, payload: AssessmentUpsert, client: TalentFlowClient = Depends(get_client)) -> Assessment:
    return await client.update_assessment(job_id, payload)


@router.post("/assessments/{job_id}/validate", response_model=AssessmentValidationResult)
async def validate_assessment(
    job_id: str,
    payload: AssessmentResponses,
    client: TalentFlowClient = Depends(get_client),
) -> AssessmentValidationResult:
    errors = await client.validate_assessment_responses(job_id, payload.responses)
    return AssessmentValidationResult(valid=not errors, errors=errors)
