"""
KPI summary and downloadable Excel report.
"""
from __future__ import annotations

from io import BytesIO
from typing import Any, Dict, Optional

import pandas as pd

from .kpis import (
    average_severity,
    calculate_kpis,
    lag_indicator_score,
    lead_indicator_score,
    safety_index,
)
from .quality import REQUIRED_FIELDS, quality_metrics
from .state import SafetyStore
from .trends import period_trend

REPORT_TYPES = ("injury", "nearmiss", "combined")

_RATE_KEYS = ("trir", "ltir", "dafwr", "nmfr", "recordable_rate", "avg_risk_score")


def kpi_summary(
    injuries: Optional[pd.DataFrame],
    near_misses: Optional[pd.DataFrame],
    baseline_hours: Optional[float] = None,
    as_of: Any = None,
) -> Dict[str, Any]:
    """KPI set with rates rounded for display, period trends, composite scores and data quality."""
    summary = calculate_kpis(injuries, near_misses, baseline_hours)
    for key in _RATE_KEYS:
        summary[key] = round(summary[key], 2)

    summary["trends"] = {
        f"{days}_day": round(period_trend(injuries, days, as_of), 1) for days in (30, 60, 90)
    }
    summary["safety_index"] = round(safety_index(summary["trir"], summary["ltir"], summary["nmfr"]), 1)
    summary["lead_indicator_score"] = lead_indicator_score(summary["near_miss_count"], summary["total_injuries"])
    summary["lag_indicator_score"] = round(lag_indicator_score(injuries), 1)
    summary["average_severity"] = round(average_severity(injuries), 2)
    summary["quality"] = {
        "injury": round(quality_metrics(injuries, REQUIRED_FIELDS["injury"])["overall"], 1),
        "nearmiss": round(quality_metrics(near_misses, REQUIRED_FIELDS["nearmiss"])["overall"], 1),
    }
    return summary


def _kpi_sheet(kpis: Dict[str, Any]) -> pd.DataFrame:
    rows = [
        ("TRIR", f"{kpis['trir']:.2f}"),
        ("LTIR", f"{kpis['ltir']:.2f}"),
        ("DAFWR", f"{kpis['dafwr']:.2f}"),
        ("NMFR", f"{kpis['nmfr']:.2f}"),
        ("Total Incidents", kpis["total_injuries"]),
        ("Recordable Injuries", kpis["recordable_injuries"]),
        ("Lost Time Cases", kpis["lost_time_cases"]),
        ("Near Misses", kpis["near_miss_count"]),
        ("Average Risk Score", f"{kpis['avg_risk_score']:.1f}"),
        ("Critical Events", kpis["critical_events"]),
        ("Baseline Hours", kpis["baseline_hours"]),
    ]
    return pd.DataFrame(rows, columns=["Metric", "Value"])


def build_excel_report(store: SafetyStore, report_type: str = "combined", baseline_hours: Optional[float] = None) -> bytes:
    """Write the KPI sheet and the filtered record sheets selected by ``report_type`` to .xlsx bytes."""
    if report_type not in REPORT_TYPES:
        raise ValueError(f"Unknown report type: {report_type}")

    injuries = store.filtered("injury")
    near_misses = store.filtered("nearmiss")
    kpis = calculate_kpis(
        None if report_type == "nearmiss" else injuries,
        None if report_type == "injury" else near_misses,
        baseline_hours,
    )

    bio = BytesIO()
    with pd.ExcelWriter(bio, engine="openpyxl") as writer:
        _kpi_sheet(kpis).to_excel(writer, sheet_name="KPIs", index=False)
        if report_type != "nearmiss" and injuries is not None and len(injuries):
            injuries.to_excel(writer, sheet_name="Injury Data", index=False)
        if report_type != "injury" and near_misses is not None and len(near_misses):
            near_misses.to_excel(writer, sheet_name="Near Miss Data", index=False)
    return bio.getvalue()
