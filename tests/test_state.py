import json
from datetime import date

import pytest

from safetyanalytics.app.services.state import (
    ActionNotFoundError,
    DEFAULT_PREFERENCES,
    InvalidTransitionError,
    SafetyStore,
    UnknownDatasetError,
)

TODAY = date(2024, 6, 1)


def test_replace_resets_filters(store, injuries):
    store.replace("injury", injuries)
    store.set_filters("injury", {"site": "GRZ1"})
    assert len(store.filtered("injury")) == 3

    store.replace("injury", injuries)
    assert store.filters("injury")["site"] is None
    assert len(store.filtered("injury")) == 10


def test_set_filters_merges_and_collections_are_independent(store, injuries, near_misses):
    store.replace("injury", injuries)
    store.replace("nearmiss", near_misses)
    store.set_filters("injury", {"site": "VIE1"})
    merged = store.set_filters("injury", {"body_part": "Hand", "bogus": "x"})
    assert merged["site"] == "VIE1"
    assert merged["body_part"] == "Hand"
    assert "bogus" not in merged
    assert list(store.filtered("injury")["case_number"]) == ["INJ-001", "INJ-002", "INJ-003"]
    assert len(store.filtered("nearmiss")) == 3

    store.reset_filters("injury")
    assert len(store.filtered("injury")) == 10


def test_unknown_dataset(store):
    with pytest.raises(UnknownDatasetError):
        store.filtered("audit")


def test_clear(store, injuries):
    store.replace("injury", injuries)
    store.add_action("INJ-001", "Replace cutters", "Lead", "2024-07-01", today=TODAY)
    store.clear()
    assert store.frame("injury").empty
    assert store.list_actions(TODAY) == []


def test_action_lifecycle(store):
    item = store.add_action("INJ-001", "Replace cutters", "Lead", "2024-07-01", priority="high", today=TODAY)
    assert item["id"] == "ACT-0001"
    assert item["status"] == "open"
    assert item["due_date"] == date(2024, 7, 1)

    assert store.update_action_status(item["id"], "in-progress", TODAY)["status"] == "in-progress"
    assert store.update_action_status(item["id"], "open", TODAY)["status"] == "open"
    done = store.update_action_status(item["id"], "completed", date(2024, 6, 10))
    assert done["status"] == "completed"
    assert done["completed_date"] == date(2024, 6, 10)

    with pytest.raises(InvalidTransitionError):
        store.update_action_status(item["id"], "open", TODAY)
    with pytest.raises(InvalidTransitionError):
        store.update_action_status(item["id"], "overdue", TODAY)
    with pytest.raises(ActionNotFoundError):
        store.update_action_status("ACT-9999", "completed", TODAY)


def test_repeating_current_status_keeps_completed_date(store):
    item = store.add_action("INJ-001", "Replace cutters", "Lead", "2024-07-01", today=TODAY)
    store.update_action_status(item["id"], "completed", date(2024, 6, 10))
    again = store.update_action_status(item["id"], "completed", date(2024, 6, 20))
    assert again["status"] == "completed"
    assert again["completed_date"] == date(2024, 6, 10)


def test_add_action_rejects_unknown_priority(store):
    with pytest.raises(ValueError):
        store.add_action("INJ-001", "Fix", "Lead", "2024-07-01", priority="urgent")


def test_overdue_marking_and_stats(store):
    late = store.add_action("INJ-001", "Fix guard", "Lead", "2024-05-01", today=TODAY)
    store.add_action("NM-0001", "Paint lines", "Ops", "2024-07-01", type="nearmiss", priority="low", today=TODAY)
    finished = store.add_action("INJ-002", "Train team", "HR", "2024-05-01", today=TODAY)
    store.update_action_status(finished["id"], "completed", TODAY)

    statuses = {a["id"]: a["status"] for a in store.list_actions(TODAY)}
    assert statuses[late["id"]] == "overdue"
    assert statuses[finished["id"]] == "completed"
    assert [a["id"] for a in store.list_actions(TODAY, status="overdue")] == [late["id"]]

    stats = store.action_stats(TODAY)
    assert stats["total"] == 3
    assert stats["by_status"] == {"open": 1, "in-progress": 0, "completed": 1, "overdue": 1}
    assert stats["by_priority"]["low"] == 1
    assert stats["completion_rate"] == pytest.approx(100 / 3)


def test_preferences_round_trip(tmp_path):
    path = tmp_path / "prefs" / "preferences.json"
    store = SafetyStore(path)
    assert store.preferences == DEFAULT_PREFERENCES
    store.save_preferences({"theme": "dark", "unknown": 1})
    assert SafetyStore(path).preferences == {"theme": "dark", "items_per_page": 25}
    assert json.loads(path.read_text()) == {"theme": "dark", "items_per_page": 25}


def test_unreadable_preferences_fall_back_to_defaults(tmp_path):
    path = tmp_path / "preferences.json"
    path.write_text("{not json")
    assert SafetyStore(path).preferences == DEFAULT_PREFERENCES


@pytest.mark.parametrize("stored", [
    {"theme": "blue"},
    {"items_per_page": 0},
    {"theme": "dark", "items_per_page": "many"},
])
def test_invalid_stored_preferences_fall_back_to_defaults(tmp_path, stored):
    path = tmp_path / "preferences.json"
    path.write_text(json.dumps(stored))
    assert SafetyStore(path).preferences == DEFAULT_PREFERENCES


def test_partial_stored_preferences_keep_other_defaults(tmp_path):
    path = tmp_path / "preferences.json"
    path.write_text(json.dumps({"items_per_page": 50}))
    assert SafetyStore(path).preferences == {"theme": "light", "items_per_page": 50}
