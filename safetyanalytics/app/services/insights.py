"""
Heuristic insights over injury and near-miss frames: recurring patterns,
keyword categorization, high-risk areas, severe-incident outlook and
recommendations. These are best-effort rules with fixed thresholds.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

import pandas as pd

from ..core.config import PATTERN_THRESHOLD
from .kpis import frequency
from .normalizer import record_dates
from .risk import risk_score
from .trends import _as_of, analyze_trend, recent_monthly_series


# (kind, grouping columns, description template)
_PATTERN_GROUPS = [
    ("body_part_process", ["body_part", "process_path"], "{body_part} injuries in {process_path} ({count} occurrences)"),
    ("site_incident_type", ["site", "incident_type"], "{incident_type} at {site} ({count} occurrences)"),
]

# Declaration order breaks ties
CATEGORY_KEYWORDS = [
    ("Slip/Trip/Fall", ["slip", "trip", "fall", "floor", "wet", "stairs", "ladder"]),
    ("Ergonomic", ["lift", "strain", "back", "ergonomic", "repetitive", "posture"]),
    ("Struck By", ["struck", "hit", "impact", "falling object", "collision"]),
    ("Caught In/Between", ["caught", "pinch", "crush", "trapped", "between"]),
    ("Cut/Laceration", ["cut", "laceration", "sharp", "knife", "blade"]),
    ("Chemical", ["chemical", "spill", "exposure", "burn", "corrosive"]),
    ("Electrical", ["electrical", "shock", "electric", "power", "voltage"]),
]

HIGH_RISK_TYPES = ["fall", "struck", "caught", "electrical"]

_SEVERITY_ORDER = {"critical": 0, "warning": 1, "info": 2}


def _str_col(df: Optional[pd.DataFrame], name: str) -> pd.Series:
    if df is None or df.empty or name not in df.columns:
        return pd.Series([], dtype=str)
    return df[name].fillna("").astype(str).str.strip()


# ---------- Patterns ----------

def detect_patterns(injuries: Optional[pd.DataFrame], threshold: Optional[int] = None) -> List[Dict[str, Any]]:
    """Flag (body part, process path) and (site, incident type) groups with at least ``threshold`` records.

    Groups where any key is blank are not reported.
    """
    threshold = PATTERN_THRESHOLD if threshold is None else threshold
    patterns: List[Dict[str, Any]] = []
    if injuries is None or injuries.empty:
        return patterns

    for kind, keys, template in _PATTERN_GROUPS:
        if not all(k in injuries.columns for k in keys):
            continue
        frame = pd.DataFrame({k: _str_col(injuries, k) for k in keys})
        frame = frame[(frame != "").all(axis=1)]
        if frame.empty:
            continue
        sizes = frame.groupby(keys, sort=False).size()
        for group_key, n in sizes.items():
            if n < threshold:
                continue
            values = dict(zip(keys, group_key))
            patterns.append({
                "kind": kind,
                "keys": values,
                "count": int(n),
                "description": template.format(count=int(n), **values),
            })
    return patterns


# ---------- Categorization ----------

def categorize_incident(description: Optional[str], root_cause: Optional[str] = None) -> Dict[str, Any]:
    text = f"{description or ''} {root_cause or ''}".lower()

    best_category, best_keywords = "Other", []
    for category, keywords in CATEGORY_KEYWORDS:
        matched = [k for k in keywords if k in text]
        if len(matched) > len(best_keywords):
            best_category, best_keywords = category, matched

    return {
        "category": best_category,
        "confidence": min(95, len(best_keywords) * 30 + 10),
        "keywords": best_keywords,
    }


def categorize_frame(injuries: Optional[pd.DataFrame]) -> pd.Series:
    descriptions = _str_col(injuries, "description")
    if descriptions.empty:
        return pd.Series([], dtype=str)
    causes = _str_col(injuries, "root_cause")
    if causes.empty:
        causes = pd.Series("", index=descriptions.index)
    return pd.Series(
        [categorize_incident(d, c)["category"] for d, c in zip(descriptions, causes)],
        index=descriptions.index,
    )


# ---------- Risk outlook ----------

def high_risk_areas(
    injuries: Optional[pd.DataFrame],
    near_misses: Optional[pd.DataFrame],
    min_events: int = 3,
    threshold: float = 6.0,
) -> List[str]:
    """Locations with at least ``min_events`` events whose mean risk score exceeds ``threshold``."""
    parts = []
    locations = _str_col(injuries, "location")
    if not locations.empty:
        scores = [risk_score(sev, "Possible") for sev in injuries["severity"]]
        parts.append(pd.DataFrame({"location": locations.values, "risk": scores}))
    locations = _str_col(near_misses, "location")
    if not locations.empty:
        scores = pd.to_numeric(near_misses["risk_score"], errors="coerce")
        parts.append(pd.DataFrame({"location": locations.values, "risk": scores.values}))
    if not parts:
        return []

    events = pd.concat(parts, ignore_index=True)
    events = events[events["location"] != ""]
    stats = events.groupby("location", sort=False)["risk"].agg(["count", "mean"])
    flagged = stats[(stats["count"] >= min_events) & (stats["mean"] > threshold)]
    return [str(loc) for loc in flagged.index]


def predict_severe_incident(injuries: Optional[pd.DataFrame], as_of: Any = None) -> Dict[str, Any]:
    factors: List[str] = []
    score = 0
    if injuries is None or injuries.empty:
        return {"risk": 0, "confidence": 10, "factors": factors}

    dates = record_dates(injuries)
    end = _as_of(dates, as_of).normalize() + pd.Timedelta(days=1)
    recent = (dates >= end - pd.Timedelta(days=60)) & (dates < end)
    recent_severe = int((recent & injuries["severity"].isin(["A", "B"])).sum())
    if recent_severe > 0:
        score += 30
        factors.append(f"{recent_severe} severe incident(s) in last 60 days")

    series = recent_monthly_series(injuries, 6, as_of)
    if analyze_trend(series, "incidents")["direction"] == "worsening":
        score += 25
        factors.append("Worsening incident trend")

    types = _str_col(injuries, "incident_type").str.lower()
    high_risk = int(types.apply(lambda t: any(k in t for k in HIGH_RISK_TYPES)).sum())
    if high_risk > len(injuries) * 0.3:
        score += 20
        factors.append("High proportion of high-risk incident types")

    return {
        "risk": min(100, score),
        "confidence": min(90, len(factors) * 25 + 10),
        "factors": factors,
    }


def generate_predictive_insights(
    injuries: Optional[pd.DataFrame],
    near_misses: Optional[pd.DataFrame],
    as_of: Any = None,
    pattern_threshold: Optional[int] = None,
) -> List[Dict[str, Any]]:
    insights: List[Dict[str, Any]] = []
    n_injuries = 0 if injuries is None else len(injuries)
    n_near_misses = 0 if near_misses is None else len(near_misses)

    areas = high_risk_areas(injuries, near_misses)
    if areas:
        insights.append({
            "type": "risk-prediction",
            "severity": "critical",
            "title": "High-Risk Areas Identified",
            "description": f"{len(areas)} location(s) showing elevated incident rates: {', '.join(areas[:3])}",
            "confidence": 85,
            "related_data": areas,
            "suggested_actions": [
                "Conduct safety audits in identified areas",
                "Review and update risk assessments",
                "Implement additional control measures",
                "Increase supervisor presence",
            ],
        })

    if n_injuries:
        dates = record_dates(injuries)
        end = _as_of(dates, as_of).normalize() + pd.Timedelta(days=1)
        recent = int(((dates >= end - pd.Timedelta(days=30)) & (dates < end)).sum())
        if recent > n_injuries * 0.4:
            insights.append({
                "type": "trend-alert",
                "severity": "warning",
                "title": "Increasing Incident Trend",
                "description": f"{recent / n_injuries * 100:.0f}% of incidents occurred in the last 30 days",
                "confidence": 90,
                "related_data": ["trend-increase"],
                "suggested_actions": [
                    "Investigate recent operational changes",
                    "Review training effectiveness",
                    "Conduct safety stand-down meetings",
                    "Analyze common factors in recent incidents",
                ],
            })

    patterns = detect_patterns(injuries, pattern_threshold)
    if patterns:
        insights.append({
            "type": "pattern-detection",
            "severity": "warning",
            "title": "Recurring Incident Patterns",
            "description": f"{len(patterns)} pattern(s) detected in incident data suggesting systemic issues",
            "confidence": 75,
            "related_data": [p["description"] for p in patterns],
            "suggested_actions": [
                "Investigate root causes of recurring patterns",
                "Update standard operating procedures",
                "Implement preventive measures",
                "Conduct targeted training",
            ],
        })

    if n_injuries and n_near_misses / n_injuries < 3:
        insights.append({
            "type": "recommendation",
            "severity": "info",
            "title": "Low Near Miss Reporting",
            "description": "Near miss to injury ratio is below optimal levels, suggesting underreporting",
            "confidence": 70,
            "related_data": ["reporting-culture"],
            "suggested_actions": [
                "Launch near miss awareness campaign",
                "Simplify reporting process",
                "Recognize and reward proactive reporting",
                "Communicate importance of near miss data",
            ],
        })

    outlook = predict_severe_incident(injuries, as_of)
    if outlook["risk"] > 60:
        insights.append({
            "type": "risk-prediction",
            "severity": "critical",
            "title": "Elevated Risk of Severe Incident",
            "description": f"Analysis suggests {outlook['risk']}% likelihood of severe incident in next 30 days",
            "confidence": outlook["confidence"],
            "related_data": outlook["factors"],
            "suggested_actions": [
                "Increase safety inspections",
                "Review high-risk activities",
                "Conduct safety refresher training",
                "Implement additional monitoring",
            ],
        })

    insights.sort(key=lambda i: _SEVERITY_ORDER[i["severity"]])
    for n, insight in enumerate(insights, start=1):
        insight["id"] = f"INS-{n}"
    return insights


# ---------- Recommendations ----------

def _top(df: Optional[pd.DataFrame], column: str) -> Optional[Dict[str, Any]]:
    for item in frequency(df, column):
        if item["label"] != "Unknown":
            return item
    return None


def generate_recommendations(
    injuries: Optional[pd.DataFrame],
    near_misses: Optional[pd.DataFrame],
) -> List[Dict[str, Any]]:
    recommendations: List[Dict[str, Any]] = []
    n_injuries = 0 if injuries is None else len(injuries)
    if not n_injuries:
        return recommendations

    location = _top(injuries, "location")
    if location and location["count"] >= 5:
        recommendations.append({
            "category": "Focus Area",
            "recommendation": f"Prioritize safety improvements in {location['label']}",
            "reasoning": (
                f"This location accounts for {location['percentage']:.1f}% of all incidents "
                f"({location['count']} incidents)"
            ),
            "priority": 1,
            "impact": "high",
            "implementation_effort": "medium",
        })

    body_part = _top(injuries, "body_part")
    if body_part and body_part["count"] >= 3:
        recommendations.append({
            "category": "Training",
            "recommendation": f"Develop targeted training for preventing {body_part['label']} injuries",
            "reasoning": f"{body_part['label']} injuries are the most common, occurring {body_part['count']} times",
            "priority": 2,
            "impact": "high",
            "implementation_effort": "low",
        })

    process = _top(injuries, "process_path")
    if process and process["count"] >= 4:
        recommendations.append({
            "category": "Process Improvement",
            "recommendation": f"Review and improve safety controls in {process['label']} process",
            "reasoning": f"This process path has the highest incident rate with {process['count']} incidents",
            "priority": 1,
            "impact": "high",
            "implementation_effort": "high",
        })

    word_counts = _str_col(injuries, "description").str.split().str.len().fillna(0)
    poor = int((word_counts < 10).sum())
    if poor > n_injuries * 0.3:
        recommendations.append({
            "category": "Data Quality",
            "recommendation": "Improve incident investigation documentation quality",
            "reasoning": (
                f"{poor} incidents ({poor / n_injuries * 100:.0f}%) have insufficient description detail"
            ),
            "priority": 3,
            "impact": "medium",
            "implementation_effort": "low",
        })

    n_near_misses = 0 if near_misses is None else len(near_misses)
    ratio = n_near_misses / n_injuries
    if ratio < 5:
        recommendations.append({
            "category": "Safety Culture",
            "recommendation": "Promote near miss reporting to strengthen safety culture",
            "reasoning": f"Current near miss ratio ({ratio:.1f}:1) is below industry best practice (10:1)",
            "priority": 2,
            "impact": "high",
            "implementation_effort": "medium",
        })

    recommendations.sort(key=lambda r: r["priority"])
    for n, rec in enumerate(recommendations, start=1):
        rec["id"] = f"REC-{n}"
    return recommendations
