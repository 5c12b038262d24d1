"""
Rate-based safety KPIs (TRIR, LTIR, DAFWR, NMFR) and descriptive counts.
All functions are pure over the frames they receive.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

import pandas as pd

from ..core.config import BASELINE_HOURS, OSHA_HOURS
from .risk import SEVERITY_WEIGHTS, risk_score


def _col(df: Optional[pd.DataFrame], name: str) -> pd.Series:
    if df is None or df.empty or name not in df.columns:
        return pd.Series([], dtype=object)
    return df[name]


def _count(df: Optional[pd.DataFrame]) -> int:
    return 0 if df is None else int(len(df))


def rate(count: float, baseline_hours: float) -> float:
    """Events per 200,000 hours; 0 when the baseline is not positive."""
    if not baseline_hours or baseline_hours <= 0:
        return 0.0
    return (count / baseline_hours) * OSHA_HOURS


def safe_pct(part: float, whole: float) -> float:
    return (part / whole) * 100 if whole else 0.0


def average_risk(near_misses: Optional[pd.DataFrame]) -> float:
    if near_misses is None or near_misses.empty:
        return 0.0
    if "risk_score" in near_misses.columns:
        scores = pd.to_numeric(near_misses["risk_score"], errors="coerce")
    else:
        scores = pd.Series([
            risk_score(sev, lik)
            for sev, lik in zip(_col(near_misses, "severity"), _col(near_misses, "likelihood"))
        ], dtype=float)
    scores = scores.dropna()
    return float(scores.mean()) if len(scores) else 0.0


def critical_events(injuries: Optional[pd.DataFrame], near_misses: Optional[pd.DataFrame]) -> int:
    total = 0
    for df in (injuries, near_misses):
        total += int(_col(df, "severity").isin(["A", "B"]).sum())
    return total


def calculate_kpis(
    injuries: Optional[pd.DataFrame],
    near_misses: Optional[pd.DataFrame],
    baseline_hours: Optional[float] = None,
) -> Dict[str, Any]:
    """Compute the core KPI set over an injury and a near-miss frame.

    Rates use ``count / baseline_hours * 200000``; ``baseline_hours`` defaults
    to the configured baseline. Nothing here divides by zero: an empty input
    yields zeros.
    """
    baseline = BASELINE_HOURS if baseline_hours is None else float(baseline_hours)

    total_injuries = _count(injuries)
    recordable = int(_col(injuries, "recordable").astype(bool).sum())
    days_away = pd.to_numeric(_col(injuries, "days_away"), errors="coerce").fillna(0)
    days_restricted = pd.to_numeric(_col(injuries, "days_restricted"), errors="coerce").fillna(0)
    lost_time = int((days_away > 0).sum())
    total_days_away = float(days_away.sum())
    near_miss_count = _count(near_misses)

    return {
        "trir": rate(recordable, baseline),
        "ltir": rate(lost_time, baseline),
        "dafwr": rate(total_days_away, baseline),
        "nmfr": rate(near_miss_count, baseline),
        "recordable_rate": safe_pct(recordable, total_injuries),
        "avg_risk_score": average_risk(near_misses),
        "critical_events": critical_events(injuries, near_misses),
        "total_injuries": total_injuries,
        "recordable_injuries": recordable,
        "lost_time_cases": lost_time,
        "total_days_away": total_days_away,
        "total_days_restricted": float(days_restricted.sum()),
        "near_miss_count": near_miss_count,
        "baseline_hours": baseline,
    }


def safety_index(trir: float, ltir: float, nmfr: float) -> float:
    """Composite 0-100 score, higher is better; near-miss reporting counts in favour."""
    trir_score = max(0.0, 100 - trir * 10)
    ltir_score = max(0.0, 100 - ltir * 15)
    nmfr_score = min(100.0, nmfr * 2)
    return trir_score * 0.4 + ltir_score * 0.4 + nmfr_score * 0.2


def lead_indicator_score(near_miss_count: int, injury_count: int) -> float:
    if injury_count == 0:
        return 100.0
    ratio = near_miss_count / injury_count
    # Heinrich: healthy reporting cultures log 10+ near misses per injury
    if ratio >= 10:
        return 100.0
    if ratio >= 5:
        return 80.0
    if ratio >= 3:
        return 60.0
    if ratio >= 1:
        return 40.0
    return 20.0


def lag_indicator_score(injuries: Optional[pd.DataFrame]) -> float:
    total = _count(injuries)
    if total == 0:
        return 100.0
    minor = int((_col(injuries, "severity") == "D").sum())
    return min(100.0, minor / total * 100)


def average_severity(injuries: Optional[pd.DataFrame]) -> float:
    severities = _col(injuries, "severity")
    if severities.empty:
        return 0.0
    return float(severities.map(lambda s: SEVERITY_WEIGHTS.get(s, 1)).mean())


def frequency(df: Optional[pd.DataFrame], column: str) -> List[Dict[str, Any]]:
    """Label/count/percentage distribution of a column, most frequent first."""
    values = _col(df, column)
    if values.empty:
        return []
    labels = values.fillna("").astype(str).str.strip().replace("", "Unknown")
    counts = labels.value_counts(sort=False)
    total = int(counts.sum())
    out = [
        {"label": str(label), "count": int(n), "percentage": n / total * 100}
        for label, n in counts.items()
    ]
    return sorted(out, key=lambda item: item["count"], reverse=True)


def leading_vs_lagging(
    injuries: Optional[pd.DataFrame],
    near_misses: Optional[pd.DataFrame],
    inspections: Optional[pd.DataFrame] = None,
) -> Dict[str, Any]:
    leading = {
        "near_miss_reports": _count(near_misses),
        "inspections_completed": int((_col(inspections, "status") == "Completed").sum()),
    }
    days_away = pd.to_numeric(_col(injuries, "days_away"), errors="coerce").fillna(0)
    lagging = {
        "total_injuries": _count(injuries),
        "recordable_injuries": int(_col(injuries, "recordable").astype(bool).sum()),
        "lost_time_cases": int((days_away > 0).sum()),
    }

    total_leading = sum(leading.values())
    total_lagging = sum(lagging.values())
    if total_lagging > 0:
        ratio = round(total_leading / total_lagging, 2)
        ratio_text = f"{ratio}:1"
    else:
        ratio = 0
        ratio_text = "N/A"

    if ratio >= 10:
        assessment = "Excellent - Proactive safety culture"
    elif ratio >= 5:
        assessment = "Good - Balanced approach"
    elif ratio >= 2:
        assessment = "Fair - Room for improvement"
    else:
        assessment = "Poor - Too reactive"

    return {
        "leading_indicators": leading,
        "lagging_indicators": lagging,
        "total_leading": total_leading,
        "total_lagging": total_lagging,
        "ratio": ratio,
        "ratio_text": ratio_text,
        "assessment": assessment,
    }
