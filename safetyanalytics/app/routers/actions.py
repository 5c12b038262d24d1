from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..core.deps import get_store
from ..models.schemas import ActionCreate, ActionItem, ActionStats, ActionStatus, ActionStatusUpdate
from ..services.state import ActionNotFoundError, InvalidTransitionError, SafetyStore


router = APIRouter(prefix="/actions", tags=["actions"])


@router.get("", response_model=List[ActionItem])
async def list_actions(
    status: Optional[ActionStatus] = Query(None, description="Only return items in this status"),
    store: SafetyStore = Depends(get_store),
):
    """Action items; open items past their due date are reported as overdue."""
    return store.list_actions(status=status)


@router.post("", response_model=ActionItem, status_code=201)
async def create_action(body: ActionCreate, store: SafetyStore = Depends(get_store)):
    return store.add_action(
        incident_id=body.incident_id,
        action=body.action,
        responsible=body.responsible,
        due_date=body.due_date,
        type=body.type,
        priority=body.priority,
    )


@router.get("/stats", response_model=ActionStats)
async def get_action_stats(store: SafetyStore = Depends(get_store)):
    return store.action_stats()


@router.patch("/{action_id}", response_model=ActionItem)
async def update_action(action_id: str, body: ActionStatusUpdate, store: SafetyStore = Depends(get_store)):
    try:
        store.update_action_status(action_id, body.status)
    except ActionNotFoundError:
        raise HTTPException(status_code=404, detail=f"Action {action_id} not found")
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return next(item for item in store.list_actions() if item["id"] == action_id)
