from __future__ import annotations

import pandas as pd
import pytest
from fastapi.testclient import TestClient

from safetyanalytics.app.main import create_app
from safetyanalytics.app.services.normalizer import normalize_injuries, normalize_near_misses
from safetyanalytics.app.services.state import SafetyStore


def _injury(n, date, recordable="No", days_away="0", **extra):
    row = {
        "Case Number": f"INJ-{n:03d}",
        "Incident Date": date,
        "Site": extra.pop("site", "VIE1"),
        "Location": extra.pop("location", "Dock"),
        "Body Part": extra.pop("body_part", "Hand"),
        "Process Path": extra.pop("process_path", "Pick"),
        "Incident Type": extra.pop("incident_type", "Cut"),
        "Severity": extra.pop("severity", "D"),
        "Recordable": recordable,
        "Days Away": days_away,
        "Description": extra.pop("description", "Associate cut finger on box cutter"),
    }
    row.update(extra)
    return row


@pytest.fixture
def raw_injuries():
    """Ten injuries: 3 recordable, 2 lost-time cases with 14 days away in total."""
    return [
        _injury(1, "2024-01-05", recordable="Yes", days_away="10", severity="B"),
        _injury(2, "2024-01-20", recordable="Yes", days_away="4", severity="C"),
        _injury(3, "2024-02-11", recordable="Yes"),
        _injury(4, "2024-02-25", body_part="Back", process_path="Stow"),
        _injury(5, "2024-03-03", body_part="Back", process_path="Pack"),
        _injury(6, "2024-03-18", body_part="Knee", process_path="Stow", site="GRZ1"),
        _injury(7, "2024-04-02", body_part="Foot", process_path="Dock", site="GRZ1"),
        _injury(8, "2024-04-22", body_part="Eye", process_path="Pack", site="GRZ1"),
        _injury(9, "2024-05-09", body_part="Head", process_path="Sort", site="LNZ1"),
        _injury(10, "2024-06-14", body_part="Wrist", process_path="Sort", site="LNZ1"),
    ]


@pytest.fixture
def injuries(raw_injuries):
    return normalize_injuries(raw_injuries)


@pytest.fixture
def raw_near_misses():
    return [
        {"Near Miss Date": "2024-05-02", "Site": "VIE1", "Location": "Dock", "Severity": "B", "Likelihood": "Likely"},
        {"Near Miss Date": "2024-05-19", "Site": "VIE1", "Location": "Dock", "Severity": "A", "Likelihood": "Possible"},
        {"Near Miss Date": "2024-06-07", "Site": "GRZ1", "Location": "Yard", "Severity": "C", "Likelihood": "Rare", "Risk": "2.5"},
    ]


@pytest.fixture
def near_misses(raw_near_misses):
    return normalize_near_misses(raw_near_misses)


@pytest.fixture
def dated_frame():
    def build(dates):
        return pd.DataFrame({"parsed_date": pd.to_datetime(pd.Series(dates, dtype=object), errors="coerce")})
    return build


@pytest.fixture
def store(tmp_path):
    return SafetyStore(tmp_path / "preferences.json")


@pytest.fixture
def client(store):
    return TestClient(create_app(store=store))
