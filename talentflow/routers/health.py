from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from talentflow.database import mask_db_url
from talentflow.db.storage import StorageBackend
from talentflow.routers.dependencies import get_storage


router = APIRouter(prefix="/health", tags=["health"])


class HealthStatus(BaseModel):
    status: str
    timestamp: datetime


class StoreHealthStatus(BaseModel):
    store: str
    durable: bool
    db_url: str | None
    jobs: int
    candidates: int
    assessments: int
    timestamp: datetime


@router.get("/", response_model=HealthStatus, summary="API heartbeat")
def health_check() -> HealthStatus:
    return HealthStatus(status="ok", timestamp=datetime.now(timezone.utc))


@router.get("/store", response_model=StoreHealthStatus, summary="Store backend and collection sizes")
async def store_health_check(storage: StorageBackend = Depends(get_storage)) -> StoreHealthStatus:
    db_url = getattr(storage, "db_url", None)
    return StoreHealthStatus(
        store=storage.name,
        durable=storage.durable,
        db_url=mask_db_url(db_url) if db_url else None,
        jobs=await storage.count("jobs"),
        candidates=await storage.count("candidates"),
        assessments=await storage.count("assessments"),
        timestamp=datetime.now(timezone.utc),
    )
