from fastapi import HTTPException, Request

from ..services.state import DATASETS, SafetyStore


def get_store(request: Request) -> SafetyStore:
    return request.app.state.store


def valid_dataset(dataset: str) -> str:
    if dataset not in DATASETS:
        raise HTTPException(status_code=404, detail=f"Unknown dataset: {dataset}")
    return dataset
