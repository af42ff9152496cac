# dependencies.py
from fastapi import Request

from talentflow.client import TalentFlowClient
from talentflow.db.storage import StorageBackend


def get_client(request: Request) -> TalentFlowClient:
    return request.app.state.client


def get_storage(request: Request) -> StorageBackend:
    return request.app.state.storage
