"""
Time-window trend calculations.
Implements window-over-window percentage change, monthly bucketing and a
least-squares trend classifier where falling incident counts mean improvement.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from ..core.config import TREND_THRESHOLD
from .normalizer import record_dates


def _as_of(dates: pd.Series, as_of: Any = None) -> pd.Timestamp:
    if as_of is not None:
        return pd.Timestamp(as_of)
    valid = dates.dropna()
    if len(valid):
        return pd.Timestamp(valid.max())
    return pd.Timestamp.today()


def percent_change(current: float, previous: float) -> float:
    """((current - previous) / previous) * 100, defined as 0 when previous is 0."""
    if not previous:
        return 0.0
    return ((current - previous) / previous) * 100


def window_counts(df: Optional[pd.DataFrame], days: int, as_of: Any = None) -> Dict[str, Any]:
    """Count records in the ``days``-long window ending on ``as_of`` and the one before it.

    ``as_of`` defaults to the latest record date. Windows are whole days; the
    current window includes ``as_of`` itself. Undated records are ignored.
    """
    dates = record_dates(df).dropna()
    end = _as_of(dates, as_of).normalize() + pd.Timedelta(days=1)
    start = end - pd.Timedelta(days=days)
    previous_start = start - pd.Timedelta(days=days)

    current = int(((dates >= start) & (dates < end)).sum())
    previous = int(((dates >= previous_start) & (dates < start)).sum())
    return {
        "days": days,
        "current": current,
        "previous": previous,
        "change_percent": percent_change(current, previous),
        "window_end": (end - pd.Timedelta(days=1)).date().isoformat(),
    }


def period_trend(df: Optional[pd.DataFrame], days: int, as_of: Any = None) -> float:
    return window_counts(df, days, as_of)["change_percent"]


def classify_direction(change_percent: float, threshold: Optional[float] = None) -> str:
    """'improving' when counts are predicted to fall past the threshold, 'worsening' when they rise."""
    threshold = TREND_THRESHOLD if threshold is None else threshold
    if abs(change_percent) > threshold:
        return "improving" if change_percent < 0 else "worsening"
    return "stable"


def _volatility(values: np.ndarray) -> float:
    if len(values) < 2:
        return 0.0
    mean = values.mean()
    return float(values.std() / mean) if mean else 0.0


def _trend_factors(values: np.ndarray, direction: str) -> List[str]:
    factors: List[str] = []
    if _volatility(values) > 0.3:
        factors.append("High variability in data")

    if len(values) >= 3:
        recent = values[-1] - values[-2]
        previous = values[-2] - values[-3]
        if np.sign(recent) != np.sign(previous):
            factors.append("Trend reversal detected")

    if direction == "worsening":
        factors.extend(["Increasing incident rate", "Review control measures"])
    elif direction == "improving":
        factors.extend(["Positive safety trend", "Continue current practices"])
    return factors


def analyze_trend(
    values: Sequence[float],
    metric: str = "incidents",
    threshold: Optional[float] = None,
) -> Dict[str, Any]:
    """Fit a line through a sequence of period counts and classify its direction.

    The prediction is the fitted value one period past the end; the change is
    measured against the series mean and confidence is R^2 as a percentage.
    """
    y = np.asarray(list(values), dtype=float)
    n = len(y)
    if n < 2:
        return {
            "metric": metric,
            "direction": "stable",
            "change_percent": 0.0,
            "prediction": float(y[0]) if n else 0.0,
            "confidence": 0.0,
            "slope": 0.0,
            "factors": [],
        }

    x = np.arange(n, dtype=float)
    slope, intercept = np.polyfit(x, y, 1)
    prediction = slope * n + intercept

    fitted = slope * x + intercept
    mean = y.mean()
    ss_res = float(((y - fitted) ** 2).sum())
    ss_tot = float(((y - mean) ** 2).sum())
    r_squared = 1 - ss_res / ss_tot if ss_tot else 0.0
    confidence = max(0.0, min(100.0, r_squared * 100))

    change_percent = (prediction - mean) / mean * 100 if mean else 0.0
    direction = classify_direction(change_percent, threshold)

    return {
        "metric": metric,
        "direction": direction,
        "change_percent": round(float(change_percent), 1),
        "prediction": round(float(prediction), 2),
        "confidence": round(float(confidence), 1),
        "slope": float(slope),
        "factors": _trend_factors(y, direction),
    }


def monthly_counts(df: Optional[pd.DataFrame]) -> List[Dict[str, Any]]:
    dates = record_dates(df).dropna()
    if dates.empty:
        return []
    counts = dates.dt.to_period("M").value_counts().sort_index()
    return [{"month": str(period), "count": int(n)} for period, n in counts.items()]


def recent_monthly_series(df: Optional[pd.DataFrame], months: int = 6, as_of: Any = None) -> List[int]:
    """Monthly counts for the ``months`` calendar months ending with ``as_of``'s month, zero-filled."""
    dates = record_dates(df).dropna()
    end = _as_of(dates, as_of).to_period("M")
    periods = pd.period_range(end=end, periods=months, freq="M")
    if dates.empty:
        return [0] * months
    counts = dates.dt.to_period("M").value_counts()
    return [int(counts.get(p, 0)) for p in periods]
