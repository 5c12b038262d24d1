from __future__ import annotations

from datetime import date
from typing import Any
import math

import numpy as np
import pandas as pd


def to_native_json(obj: Any) -> Any:
    """Recursively convert pandas/numpy values into JSON-safe native types.
    - NaN/Inf/NaT -> None
    - numpy scalars -> Python scalars
    - Timestamps and dates -> ISO strings
    - DataFrames -> list of row dicts
    - Series, arrays, tuples, sets -> lists
    - dict keys -> strings
    """
    if obj is None:
        return None
    if isinstance(obj, float):
        return obj if math.isfinite(obj) else None
    if isinstance(obj, (bool, int, str)):
        return obj
    if isinstance(obj, np.generic):
        return to_native_json(obj.item())
    if obj is pd.NaT:
        return None
    if isinstance(obj, pd.Timestamp):
        return obj.isoformat()
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, pd.Period):
        return str(obj)
    if isinstance(obj, pd.DataFrame):
        return to_native_json(obj.to_dict(orient="records"))
    if isinstance(obj, (np.ndarray, pd.Series, pd.Index)):
        return to_native_json(obj.tolist())
    if isinstance(obj, (list, tuple, set)):
        return [to_native_json(v) for v in obj]
    if isinstance(obj, dict):
        return {str(to_native_json(k)): to_native_json(v) for k, v in obj.items()}
    try:
        if pd.isna(obj):
            return None
    except (TypeError, ValueError):
        pass
    return str(obj)
