"""
Filtering utilities for safety record frames.
Applies the sparse per-collection filter state (site, severity, date range,
body part, process path, fuzzy free-text search), builds dropdown options
and proposes search and filter suggestions.
"""
from __future__ import annotations

from difflib import SequenceMatcher
from typing import Any, Dict, List, Optional

import pandas as pd

from .normalizer import parse_date, record_dates


FILTER_KEYS = ["site", "severity", "date_from", "date_to", "body_part", "process_path", "search"]

# Exact-match predicates: filter key -> column
_EXACT_FILTERS = [
    ("site", "site"),
    ("severity", "severity"),
    ("body_part", "body_part"),
    ("process_path", "process_path"),
]

SEARCH_COLUMNS = ["description", "root_cause", "site", "location", "process_path", "case_number", "incident_id"]

OPTION_COLUMNS = ["site", "severity", "body_part", "process_path"]

# Minimum similarity for a fuzzy search hit (a 0.3 match distance)
FUZZY_CUTOFF = 0.7
_MIN_FUZZY_LENGTH = 3


def is_active(value: Any) -> bool:
    """A filter value constrains nothing when it is missing, blank or 'all'."""
    if value is None:
        return False
    text = str(value).strip()
    return bool(text) and text.lower() != "all"


def active_filters(filters: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    return {k: v for k, v in (filters or {}).items() if k in FILTER_KEYS and is_active(v)}


def _similarity(needle: str, text: str) -> float:
    """1.0 for a substring hit, else the best difflib ratio against a run of as many words as the needle."""
    if needle in text:
        return 1.0
    if len(needle) < _MIN_FUZZY_LENGTH:
        return 0.0
    words = text.split()
    width = len(needle.split())
    best = 0.0
    for i in range(max(len(words) - width + 1, 0)):
        window = " ".join(words[i:i + width])
        best = max(best, SequenceMatcher(None, needle, window).ratio())
    return best


def _column_scores(series: pd.Series, needle: str) -> pd.Series:
    values = series.fillna("").astype(str).str.lower()
    scores = {v: _similarity(needle, v) for v in values.unique()}
    return values.map(scores).astype(float)


def _score_frame(df: pd.DataFrame, needle: str) -> pd.DataFrame:
    columns = [c for c in SEARCH_COLUMNS if c in df.columns]
    if not columns:
        return pd.DataFrame(index=df.index)
    return pd.concat([_column_scores(df[c], needle) for c in columns], axis=1, keys=columns)


def search_scores(df: pd.DataFrame, query: Any) -> pd.Series:
    """Best match score (0-1) of ``query`` against each row's searchable text fields."""
    needle = str(query or "").strip().lower()
    if not needle:
        return pd.Series(1.0, index=df.index)
    scores = _score_frame(df, needle)
    if scores.empty:
        return pd.Series(0.0, index=df.index)
    return scores.max(axis=1)


def apply_filters(df: Optional[pd.DataFrame], filters: Optional[Dict[str, Any]]) -> Optional[pd.DataFrame]:
    """
    Return the rows of ``df`` satisfying every active predicate in ``filters``.

    Args:
        df: Normalized injury, near-miss or inspection frame
        filters: Mapping of filter key to value; 'all' or empty means no constraint

    Returns:
        Filtered DataFrame in the original row order. Predicates whose column
        is absent from ``df`` are ignored. Rows with an unparseable date are
        dropped only while a parseable date bound is active. Search keeps rows
        whose text fields contain the term or match it with a similarity of at
        least FUZZY_CUTOFF.
    """
    if df is None or df.empty:
        return df

    active = active_filters(filters)
    if not active:
        return df

    mask = pd.Series(True, index=df.index)

    for key, column in _EXACT_FILTERS:
        if key in active and column in df.columns:
            wanted = str(active[key]).strip()
            mask &= df[column].fillna("").astype(str).str.strip() == wanted

    if "date_from" in active or "date_to" in active:
        dates = record_dates(df)
        bounded = False
        if "date_from" in active:
            start = parse_date(active["date_from"])
            if not pd.isna(start):
                mask &= dates >= start.normalize()
                bounded = True
        if "date_to" in active:
            end = parse_date(active["date_to"])
            if not pd.isna(end):
                mask &= dates < end.normalize() + pd.Timedelta(days=1)
                bounded = True
        # an unparseable bound constrains nothing, so undated rows stay
        if bounded:
            mask &= dates.notna()

    if "search" in active:
        mask &= search_scores(df, active["search"]) >= FUZZY_CUTOFF

    return df[mask]


def get_filter_summary(
    df_original: Optional[pd.DataFrame],
    df_filtered: Optional[pd.DataFrame],
    filters_applied: Optional[Dict[str, Any]],
) -> Dict[str, Any]:
    """
    Generate a summary of applied filters and their impact.

    Args:
        df_original: Frame before filtering
        df_filtered: Frame after filtering
        filters_applied: Filter state that was applied

    Returns:
        Dictionary with filter summary statistics
    """
    original_count = len(df_original) if df_original is not None else 0
    filtered_count = len(df_filtered) if df_filtered is not None else 0

    active = active_filters(filters_applied)

    return {
        "original_count": original_count,
        "filtered_count": filtered_count,
        "records_removed": original_count - filtered_count,
        "retention_rate": (filtered_count / original_count * 100) if original_count > 0 else 0,
        "active_filters": active,
        "filter_count": len(active),
    }


def _options(series: pd.Series) -> List[Dict[str, Any]]:
    values = series.fillna("").astype(str).str.strip()
    values = values[values != ""]
    counts = values.value_counts()
    return [{"value": str(v), "label": str(v), "count": int(counts[v])} for v in sorted(counts.index)]


def filter_options(df: Optional[pd.DataFrame]) -> Dict[str, Any]:
    """Distinct values with counts for each dropdown column, plus the record date range."""
    options: Dict[str, Any] = {}
    for column in OPTION_COLUMNS:
        if df is None or df.empty or column not in df.columns:
            options[column] = []
        else:
            options[column] = _options(df[column])

    dates = record_dates(df).dropna()
    options["date_range"] = {
        "min_date": dates.min().date().isoformat() if len(dates) else None,
        "max_date": dates.max().date().isoformat() if len(dates) else None,
        "total_records": 0 if df is None else int(len(df)),
    }
    return options


def search_suggestions(df: Optional[pd.DataFrame], query: Any, limit: int = 5) -> List[str]:
    """Distinct field values of the rows matching ``query``, best match first."""
    needle = str(query or "").strip().lower()
    if df is None or df.empty or not needle:
        return []
    scores = _score_frame(df, needle)
    if scores.empty:
        return []
    best = scores.max(axis=1)
    hits = best[best >= FUZZY_CUTOFF].sort_values(ascending=False, kind="stable")

    suggestions: List[str] = []
    for idx in hits.index:
        column = scores.loc[idx].idxmax()
        value = str(df.at[idx, column]).strip()
        if value and value not in suggestions:
            suggestions.append(value)
        if len(suggestions) >= limit:
            break
    return suggestions


def filter_suggestions(
    df: Optional[pd.DataFrame],
    filters: Optional[Dict[str, Any]] = None,
    limit: int = 5,
) -> List[Dict[str, Any]]:
    """
    Propose dropdown filters that would narrow ``df`` meaningfully.

    A value qualifies when it covers at least 10% and under 90% of the rows
    and is not already the active filter for its field. Largest impact first.
    """
    if df is None or df.empty:
        return []
    total = len(df)
    active = active_filters(filters)

    suggestions: List[Dict[str, Any]] = []
    for column in OPTION_COLUMNS:
        if column not in df.columns:
            continue
        current = str(active.get(column, "")).strip()
        for option in _options(df[column]):
            impact = option["count"]
            if total * 0.1 <= impact < total * 0.9 and option["value"] != current:
                suggestions.append({"field": column, "value": option["value"], "impact": impact})

    suggestions.sort(key=lambda s: -s["impact"])
    return suggestions[:limit]
