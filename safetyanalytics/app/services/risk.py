from __future__ import annotations

from typing import Any, Dict, List, Optional

import pandas as pd

SEVERITY_WEIGHTS: Dict[str, int] = {"A": 5, "B": 4, "C": 3, "D": 2, "Unknown": 1}
LIKELIHOOD_WEIGHTS: Dict[str, int] = {
    "Rare": 1,
    "Unlikely": 2,
    "Possible": 3,
    "Likely": 4,
    "Almost Certain": 5,
}

# (upper bound exclusive, label); scores >= 8 are Critical
_RISK_BANDS = [(2, "Low"), (4, "Moderate"), (6, "Elevated"), (8, "High")]


def risk_score(severity: Optional[str], likelihood: Optional[str]) -> float:
    """Severity x likelihood scaled onto 0-10 (A/Almost Certain = 10, Unknown/Rare = 0.4)."""
    sw = SEVERITY_WEIGHTS.get(str(severity), 1)
    lw = LIKELIHOOD_WEIGHTS.get(str(likelihood), 3)
    return round((sw * lw) / 5 * 2, 1)


def risk_level(score: Any) -> str:
    try:
        value = float(score)
    except (TypeError, ValueError):
        return "Low"
    for upper, label in _RISK_BANDS:
        if value < upper:
            return label
    return "Critical"


def risk_matrix(df: Optional[pd.DataFrame]) -> List[Dict[str, Any]]:
    """Count records per severity x likelihood cell. All 25 cells are returned."""
    counts: Dict[tuple, int] = {}
    if df is not None and not df.empty and "severity" in df.columns:
        likelihood = df["likelihood"] if "likelihood" in df.columns else pd.Series("Possible", index=df.index)
        grouped = pd.DataFrame({"severity": df["severity"], "likelihood": likelihood}).value_counts()
        counts = {key: int(n) for key, n in grouped.items()}

    cells: List[Dict[str, Any]] = []
    for severity in SEVERITY_WEIGHTS:
        for likelihood in LIKELIHOOD_WEIGHTS:
            score = risk_score(severity, likelihood)
            cells.append({
                "severity": severity,
                "likelihood": likelihood,
                "count": counts.get((severity, likelihood), 0),
                "score": score,
                "level": risk_level(score),
            })
    return cells
