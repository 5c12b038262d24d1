"""
In-memory application state: record collections, per-collection filter
state, remediation action items and persisted UI preferences.

A SafetyStore is created by the application factory and handed to routes
through a dependency; computation modules only ever see the frames it
returns.
"""
from __future__ import annotations

import json
import logging
from datetime import date
from pathlib import Path
from threading import Lock
from typing import Any, Dict, List, Optional

import pandas as pd
from pydantic import ValidationError

from ..core.config import PREFERENCES_PATH
from ..models.schemas import Preferences
from .filters import FILTER_KEYS, apply_filters
from .normalizer import parse_date

logger = logging.getLogger(__name__)

DATASETS = ("injury", "nearmiss", "inspection")

ACTION_STATUSES = ("open", "in-progress", "completed", "overdue")
ACTION_PRIORITIES = ("low", "medium", "high", "critical")

# Allowed explicit transitions; 'overdue' is derived from the due date
_TRANSITIONS = {
    "open": {"in-progress", "completed"},
    "in-progress": {"completed", "open"},
    "completed": set(),
}

DEFAULT_PREFERENCES: Dict[str, Any] = {"theme": "light", "items_per_page": 25}


class UnknownDatasetError(KeyError):
    pass


class ActionNotFoundError(KeyError):
    pass


class InvalidTransitionError(ValueError):
    pass


def _empty_filters() -> Dict[str, Optional[str]]:
    return {key: None for key in FILTER_KEYS}


def _as_date(value: Any) -> Optional[date]:
    parsed = parse_date(value)
    return None if pd.isna(parsed) else parsed.date()


class SafetyStore:
    """Owns every mutable collection the API serves."""

    def __init__(self, preferences_path: Optional[Path] = None):
        self.preferences_path = Path(preferences_path) if preferences_path else PREFERENCES_PATH
        self.lock = Lock()
        self._frames: Dict[str, pd.DataFrame] = {name: pd.DataFrame() for name in DATASETS}
        self._filters: Dict[str, Dict[str, Optional[str]]] = {name: _empty_filters() for name in DATASETS}
        self._actions: List[Dict[str, Any]] = []
        self._next_action = 1
        self.preferences = self.load_preferences()

    # ---------- Records ----------

    def _check(self, dataset: str) -> None:
        if dataset not in DATASETS:
            raise UnknownDatasetError(dataset)

    def frame(self, dataset: str) -> pd.DataFrame:
        self._check(dataset)
        return self._frames[dataset]

    def replace(self, dataset: str, frame: pd.DataFrame) -> None:
        """Swap a collection wholesale and reset its filters."""
        self._check(dataset)
        with self.lock:
            self._frames[dataset] = frame
            self._filters[dataset] = _empty_filters()
        logger.info("Loaded %d %s records", len(frame), dataset)

    def clear(self) -> None:
        with self.lock:
            self._frames = {name: pd.DataFrame() for name in DATASETS}
            self._filters = {name: _empty_filters() for name in DATASETS}
            self._actions = []
            self._next_action = 1
        logger.info("Cleared all records and action items")

    # ---------- Filters ----------

    def filters(self, dataset: str) -> Dict[str, Optional[str]]:
        self._check(dataset)
        return dict(self._filters[dataset])

    def set_filters(self, dataset: str, updates: Dict[str, Any]) -> Dict[str, Optional[str]]:
        """Merge ``updates`` into the collection's filter state; unknown keys are ignored."""
        self._check(dataset)
        with self.lock:
            current = self._filters[dataset]
            for key, value in updates.items():
                if key in current:
                    current[key] = None if value is None else str(value)
            return dict(current)

    def reset_filters(self, dataset: str) -> Dict[str, Optional[str]]:
        self._check(dataset)
        with self.lock:
            self._filters[dataset] = _empty_filters()
            return dict(self._filters[dataset])

    def filtered(self, dataset: str) -> pd.DataFrame:
        self._check(dataset)
        return apply_filters(self._frames[dataset], self._filters[dataset])

    # ---------- Action items ----------

    def add_action(
        self,
        incident_id: str,
        action: str,
        responsible: str,
        due_date: Any,
        type: str = "injury",
        priority: str = "medium",
        today: Optional[date] = None,
    ) -> Dict[str, Any]:
        if priority not in ACTION_PRIORITIES:
            raise ValueError(f"Unknown priority: {priority}")
        if type not in ("injury", "nearmiss"):
            raise ValueError(f"Unknown action type: {type}")
        with self.lock:
            item = {
                "id": f"ACT-{self._next_action:04d}",
                "incident_id": incident_id,
                "type": type,
                "action": action,
                "responsible": responsible,
                "due_date": _as_date(due_date),
                "status": "open",
                "priority": priority,
                "created_date": today or date.today(),
                "completed_date": None,
            }
            self._next_action += 1
            self._actions.append(item)
        return dict(item)

    def _find_action(self, action_id: str) -> Dict[str, Any]:
        for item in self._actions:
            if item["id"] == action_id:
                return item
        raise ActionNotFoundError(action_id)

    def update_action_status(self, action_id: str, status: str, today: Optional[date] = None) -> Dict[str, Any]:
        """Move an action to ``status``. Completing stamps the completed date; completed is final.

        Setting the status an action already has leaves it unchanged.
        """
        if status not in _TRANSITIONS:
            raise InvalidTransitionError(f"Cannot set status to {status!r}")
        with self.lock:
            item = self._find_action(action_id)
            current = item["status"]
            if status == current:
                return dict(item)
            if status not in _TRANSITIONS[current]:
                raise InvalidTransitionError(f"Cannot move action {action_id} from {current!r} to {status!r}")
            item["status"] = status
            item["completed_date"] = (today or date.today()) if status == "completed" else None
            return dict(item)

    def _effective(self, item: Dict[str, Any], today: date) -> Dict[str, Any]:
        view = dict(item)
        if view["status"] != "completed" and view["due_date"] is not None and view["due_date"] < today:
            view["status"] = "overdue"
        return view

    def list_actions(self, today: Optional[date] = None, status: Optional[str] = None) -> List[Dict[str, Any]]:
        today = today or date.today()
        items = [self._effective(item, today) for item in self._actions]
        if status:
            items = [item for item in items if item["status"] == status]
        return items

    def action_stats(self, today: Optional[date] = None) -> Dict[str, Any]:
        items = self.list_actions(today)
        by_status = {s: 0 for s in ACTION_STATUSES}
        by_priority = {p: 0 for p in ACTION_PRIORITIES}
        for item in items:
            by_status[item["status"]] += 1
            by_priority[item["priority"]] += 1
        total = len(items)
        return {
            "total": total,
            "by_status": by_status,
            "by_priority": by_priority,
            "completion_rate": (by_status["completed"] / total * 100) if total else 0.0,
        }

    # ---------- Preferences ----------

    def load_preferences(self) -> Dict[str, Any]:
        """Stored preferences over the defaults; an unreadable or invalid file yields the defaults."""
        prefs = dict(DEFAULT_PREFERENCES)
        if not self.preferences_path.exists():
            return prefs
        try:
            with open(self.preferences_path, "r", encoding="utf-8") as f:
                stored = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Could not read preferences from %s: %s", self.preferences_path, e)
            return prefs
        if isinstance(stored, dict):
            prefs.update({k: v for k, v in stored.items() if k in DEFAULT_PREFERENCES})
        try:
            return Preferences.model_validate(prefs).model_dump()
        except ValidationError as e:
            logger.warning("Ignoring invalid preferences in %s: %s", self.preferences_path, e)
            return dict(DEFAULT_PREFERENCES)

    def save_preferences(self, updates: Dict[str, Any]) -> Dict[str, Any]:
        with self.lock:
            self.preferences.update({k: v for k, v in updates.items() if k in DEFAULT_PREFERENCES and v is not None})
            self.preferences_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.preferences_path, "w", encoding="utf-8") as f:
                json.dump(self.preferences, f, indent=2)
            return dict(self.preferences)
