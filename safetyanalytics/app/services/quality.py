"""
Upload data quality scoring.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from .normalizer import record_dates

REQUIRED_FIELDS: Dict[str, List[str]] = {
    "injury": ["incident_date", "site", "body_part", "severity", "description", "process_path"],
    "nearmiss": ["nearmiss_date", "site", "severity", "likelihood", "description", "process_path"],
    "inspection": ["site", "inspection_type", "scheduled_date", "status"],
}

TEXT_FIELDS = ["description", "root_cause", "corrective_action", "primary_impact"]

# Descriptions at this length or longer score full accuracy
_TARGET_WORDS = 20


def _strings(df: pd.DataFrame, column: str) -> pd.Series:
    if column not in df.columns:
        return pd.Series("", index=df.index)
    return df[column].fillna("").astype(str).str.strip()


def quality_metrics(df: Optional[pd.DataFrame], required_fields: Sequence[str]) -> Dict[str, Any]:
    """Completeness, accuracy, consistency and timeliness scores (0-100) for one collection.

    Accuracy is the mean word count of the non-empty free-text fields against
    a 20-word target. Duplicates share site, date and the first 50 characters
    of the description.
    """
    if df is None or df.empty:
        return {
            "completeness": 0.0,
            "accuracy": 0.0,
            "consistency": 0.0,
            "timeliness": 0.0,
            "overall": 0.0,
            "missing_fields": [],
            "record_count": 0,
            "duplicate_count": 0,
            "avg_word_count": 0.0,
        }

    total = len(df)
    filled = pd.DataFrame({f: _strings(df, f) != "" for f in required_fields}, index=df.index)
    completeness = float(filled.values.mean() * 100) if len(required_fields) else 100.0
    missing_fields = [f for f in required_fields if not filled[f].all()]

    text_cols = [c for c in TEXT_FIELDS if c in df.columns]
    texts = pd.concat([_strings(df, c) for c in text_cols], ignore_index=True) if text_cols else pd.Series([], dtype=str)
    texts = texts[texts != ""]
    avg_words = float(texts.str.split().str.len().mean()) if len(texts) else 0.0
    accuracy = min(100.0, avg_words / _TARGET_WORDS * 100)

    key = pd.DataFrame({
        "site": _strings(df, "site"),
        "date": record_dates(df).astype(str),
        "text": _strings(df, "description").str[:50],
    })
    duplicates = int(key.duplicated().sum())
    consistency = max(0.0, 100.0 - duplicates / total * 100)

    timeliness = 100.0
    overall = completeness * 0.3 + accuracy * 0.3 + consistency * 0.2 + timeliness * 0.2

    return {
        "completeness": round(completeness, 1),
        "accuracy": round(accuracy, 1),
        "consistency": round(consistency, 1),
        "timeliness": timeliness,
        "overall": round(overall, 1),
        "missing_fields": missing_fields,
        "record_count": total,
        "duplicate_count": duplicates,
        "avg_word_count": round(avg_words, 1),
    }
