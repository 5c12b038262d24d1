from __future__ import annotations

from fastapi import APIRouter, Depends

from ..core.deps import get_store
from ..models.schemas import Preferences, PreferencesUpdate
from ..services.state import SafetyStore


router = APIRouter(prefix="/preferences", tags=["preferences"])


@router.get("", response_model=Preferences)
async def get_preferences(store: SafetyStore = Depends(get_store)):
    return store.preferences


@router.put("", response_model=Preferences)
async def update_preferences(body: PreferencesUpdate, store: SafetyStore = Depends(get_store)):
    return store.save_preferences(body.model_dump(exclude_none=True))
