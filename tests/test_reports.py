from io import BytesIO

import pandas as pd
import pytest

from safetyanalytics.app.services.reports import build_excel_report, kpi_summary


def test_kpi_summary_rounds_and_adds_scores(injuries, near_misses):
    summary = kpi_summary(injuries, near_misses, baseline_hours=200000)
    assert summary["trir"] == 3.0
    assert summary["avg_risk_score"] == 4.97
    assert set(summary["trends"]) == {"30_day", "60_day", "90_day"}
    assert summary["lead_indicator_score"] == 20
    assert 0 <= summary["safety_index"] <= 100
    assert set(summary["quality"]) == {"injury", "nearmiss"}


def test_kpi_summary_empty():
    summary = kpi_summary(None, None)
    assert summary["trir"] == 0
    assert summary["trends"] == {"30_day": 0, "60_day": 0, "90_day": 0}


def test_excel_report_sheets(store, injuries, near_misses):
    store.replace("injury", injuries)
    store.replace("nearmiss", near_misses)
    store.set_filters("injury", {"site": "GRZ1"})

    sheets = pd.read_excel(BytesIO(build_excel_report(store, "combined")), sheet_name=None)
    assert list(sheets) == ["KPIs", "Injury Data", "Near Miss Data"]
    assert len(sheets["Injury Data"]) == 3
    kpis = dict(zip(sheets["KPIs"]["Metric"], sheets["KPIs"]["Value"]))
    assert int(kpis["Near Misses"]) == 3

    injury_only = pd.read_excel(BytesIO(build_excel_report(store, "injury")), sheet_name=None)
    assert list(injury_only) == ["KPIs", "Injury Data"]


def test_excel_report_rejects_unknown_type(store):
    with pytest.raises(ValueError):
        build_excel_report(store, "pdf")
