import pandas as pd
import pytest

from safetyanalytics.app.services.insights import (
    categorize_frame,
    categorize_incident,
    detect_patterns,
    generate_predictive_insights,
    generate_recommendations,
    high_risk_areas,
    predict_severe_incident,
)
from safetyanalytics.app.services.normalizer import normalize_injuries, normalize_near_misses


def _injuries(n, **fields):
    rows = []
    for i in range(n):
        row = {
            "Incident Date": f"2024-06-{i + 1:02d}",
            "Site": f"S{i}",
            "Incident Type": f"Type {i}",
            "Body Part": "Hand",
            "Process Path": "Pick",
        }
        row.update(fields)
        rows.append(row)
    return normalize_injuries(rows)


def test_three_shared_records_flag_one_pattern():
    patterns = detect_patterns(_injuries(3), threshold=3)
    assert len(patterns) == 1
    assert patterns[0]["count"] == 3
    assert patterns[0]["keys"] == {"body_part": "Hand", "process_path": "Pick"}
    assert patterns[0]["description"] == "Hand injuries in Pick (3 occurrences)"


def test_two_shared_records_flag_none():
    assert detect_patterns(_injuries(2), threshold=3) == []


def test_pattern_threshold_is_configurable():
    assert len(detect_patterns(_injuries(2), threshold=2)) == 1


def test_site_incident_type_pattern():
    df = _injuries(3, **{"Site": "VIE1", "Incident Type": "Slip", "Body Part": ""})
    patterns = detect_patterns(df, threshold=3)
    assert [p["description"] for p in patterns] == ["Slip at VIE1 (3 occurrences)"]


def test_patterns_skip_blank_keys():
    assert detect_patterns(_injuries(4, **{"Body Part": ""}), threshold=3) == []
    assert detect_patterns(None) == []


def test_categorize_incident_picks_most_hits():
    result = categorize_incident("Worker slipped on wet floor")
    assert result["category"] == "Slip/Trip/Fall"
    assert result["confidence"] == 95
    assert result["keywords"] == ["slip", "floor", "wet"]


def test_categorize_tie_goes_to_first_declared():
    result = categorize_incident("strain from a cut")
    assert result["category"] == "Ergonomic"
    assert result["confidence"] == 40


def test_categorize_uses_root_cause_and_defaults_to_other():
    assert categorize_incident("", "Electrical shock")["category"] == "Electrical"
    other = categorize_incident("Unknown event")
    assert other == {"category": "Other", "confidence": 10, "keywords": []}


def test_categorize_frame():
    df = normalize_injuries([
        {"Description": "Slipped on stairs"},
        {"Description": "Chemical spill in aisle"},
    ])
    assert list(categorize_frame(df)) == ["Slip/Trip/Fall", "Chemical"]


def test_high_risk_areas():
    near_misses = normalize_near_misses(
        [{"Location": "Dock", "Risk": "8"}] * 3 + [{"Location": "Yard", "Risk": "9"}] * 2
    )
    assert high_risk_areas(None, near_misses) == ["Dock"]


def test_predict_severe_incident():
    assert predict_severe_incident(None)["risk"] == 0
    df = _injuries(3, **{"Severity": "A", "Incident Type": "Fall from height"})
    outlook = predict_severe_incident(df, as_of="2024-06-30")
    assert outlook["risk"] == 75
    assert outlook["confidence"] == 85
    assert len(outlook["factors"]) == 3


def test_predictive_insights_sorted_by_severity():
    df = _injuries(3, **{"Severity": "A", "Incident Type": "Fall from height"})
    insights = generate_predictive_insights(df, None, as_of="2024-06-30", pattern_threshold=3)
    order = {"critical": 0, "warning": 1, "info": 2}
    ranks = [order[i["severity"]] for i in insights]
    assert ranks == sorted(ranks)
    assert [i["id"] for i in insights] == [f"INS-{n}" for n in range(1, len(insights) + 1)]
    titles = {i["title"] for i in insights}
    assert {
        "Elevated Risk of Severe Incident",
        "Increasing Incident Trend",
        "Recurring Incident Patterns",
        "Low Near Miss Reporting",
    } <= titles


def test_predictive_insights_empty():
    assert generate_predictive_insights(None, None) == []


def test_recommendations():
    df = _injuries(5, **{"Location": "Dock", "Description": "cut hand"})
    recs = generate_recommendations(df, None)
    assert [r["category"] for r in recs] == [
        "Focus Area",
        "Process Improvement",
        "Training",
        "Safety Culture",
        "Data Quality",
    ]
    assert recs[0]["recommendation"] == "Prioritize safety improvements in Dock"
    assert recs[0]["id"] == "REC-1"


def test_recommendations_empty():
    assert generate_recommendations(None, None) == []
    assert generate_recommendations(pd.DataFrame(), None) == []
