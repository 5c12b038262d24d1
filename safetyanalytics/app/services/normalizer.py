"""
Field normalization for uploaded safety records.
Maps loosely-named CSV columns onto the canonical injury, near-miss and
inspection record shapes and standardizes categorical fields.
"""
from __future__ import annotations

import logging
import re
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

import pandas as pd

from .risk import risk_score

logger = logging.getLogger(__name__)

RowsLike = Union[pd.DataFrame, Iterable[Mapping[str, Any]], None]

SEVERITY_LEVELS = ["A", "B", "C", "D", "Unknown"]
LIKELIHOOD_LEVELS = ["Rare", "Unlikely", "Possible", "Likely", "Almost Certain"]

# Checked in order; first keyword hit wins
_SEVERITY_KEYWORDS = [
    ("A", ["critical", "severe", "fatal"]),
    ("B", ["high", "major", "serious"]),
    ("C", ["medium", "moderate"]),
    ("D", ["low", "minor"]),
]
_SEVERITY_NUMERIC = {5: "A", 4: "B", 3: "C", 2: "D", 1: "D"}
_LIKELIHOOD_NUMERIC = {i + 1: level for i, level in enumerate(LIKELIHOOD_LEVELS)}

_DATE_FORMATS = [
    "%Y-%m-%d",
    "%m/%d/%Y",
    "%d/%m/%Y",
    "%Y/%m/%d",
    "%d-%m-%Y",
    "%m-%d-%Y",
]
_TRUE_VALUES = {"true", "yes", "y", "1", "1.0", "x", "t"}


# ---------- Canonical schemas (column -> accepted aliases, priority order) ----------

INJURY_FIELDS: Dict[str, List[str]] = {
    "case_number": ["case_number", "case_id", "incident_id", "id"],
    "incident_date": ["incident_date", "date", "occurrence_date", "date_of_incident"],
    "incident_time": ["incident_time", "time_of_incident"],
    "site": ["site", "facility"],
    "location": ["location", "initial_info_location_event"],
    "body_part": ["initial_info_principal_body_part", "body_part", "initial_info_detailed_body_part"],
    "incident_type": ["incident_type", "type", "initial_info_impact_type_primary"],
    "severity": ["severity", "potential_severity"],
    "recordable": ["recordable"],
    "on_the_road": ["initial_info_incident_on_the_road", "on_the_road", "otr"],
    "days_away": ["total_dafw_days", "days_away", "dafw_days"],
    "days_restricted": ["total_rwa_days", "days_restricted", "rwa_days", "restricted_days"],
    "root_cause": ["rca_primary_cause", "root_cause"],
    "contributing_factor": ["rca_contributing_factor_category", "contributing_factor"],
    "process_path": ["initial_info_process_path", "process_path"],
    "description": ["initial_info_incident_description", "description", "incident_description"],
    "corrective_action": ["corrective_action"],
    "department": ["department"],
    "status": ["status"],
}

NEAR_MISS_FIELDS: Dict[str, List[str]] = {
    "incident_id": ["incident_id", "id", "case_number"],
    "nearmiss_date": ["nearmiss_date", "near_miss_date", "date", "incident_date", "occurrence_date"],
    "site": ["site", "facility"],
    "location": ["initial_info_location_event", "location"],
    "process_path": ["initial_info_process_path", "process_path"],
    "primary_impact": ["initial_info_primary_impact", "primary_impact"],
    "severity": ["potential_severity", "severity"],
    "likelihood": ["initial_risk_assessment_likeliness", "likelihood", "standardized_likelihood"],
    "risk": ["risk", "risk_score"],
    "contributing_factor": ["rca_contributing_factor_category", "contributing_factor"],
    "root_cause": ["rca_primary_cause", "root_cause"],
    "description": ["initial_info_incident_description", "description"],
    "status": ["status"],
}

INSPECTION_FIELDS: Dict[str, List[str]] = {
    "site": ["site", "facility"],
    "inspection_type": ["inspection_type", "type"],
    "scheduled_date": ["scheduled_date", "date", "due_date"],
    "completed_date": ["completed_date"],
    "status": ["status"],
    "inspector": ["inspector"],
    "score": ["score"],
    "findings": ["findings"],
    "critical_findings": ["critical_findings"],
}

INJURY_COLUMNS = [
    "case_number", "incident_date", "incident_time", "parsed_date", "site", "location",
    "body_part", "incident_type", "severity", "recordable", "on_the_road", "days_away",
    "days_restricted", "root_cause", "contributing_factor", "process_path", "description",
    "corrective_action", "department", "status",
]
NEAR_MISS_COLUMNS = [
    "incident_id", "nearmiss_date", "parsed_date", "site", "location", "process_path",
    "primary_impact", "severity", "likelihood", "risk_score", "contributing_factor",
    "root_cause", "description", "status",
]
INSPECTION_COLUMNS = [
    "site", "inspection_type", "scheduled_date", "completed_date", "status",
    "inspector", "score", "findings", "critical_findings",
]


# ---------- Field lookup ----------

def _key(name: Any) -> str:
    """Collapse casing and separators: 'Body Part', 'bodyPart', 'body_part' -> 'bodypart'."""
    return re.sub(r"[^0-9a-z]+", "", str(name).lower())


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def column_lookup(columns: Iterable[Any]) -> Dict[str, List[Any]]:
    lookup: Dict[str, List[Any]] = {}
    for col in columns:
        lookup.setdefault(_key(col), []).append(col)
    return lookup


def resolve_field(
    row: Mapping[str, Any],
    aliases: Sequence[str],
    default: Any = "",
    lookup: Optional[Dict[str, List[Any]]] = None,
) -> Any:
    """Return the first non-blank value among ``aliases``, tried in order.

    Keys are matched ignoring case, spaces, underscores and hyphens. Pass a
    precomputed ``lookup`` (see :func:`column_lookup`) when resolving many rows
    that share the same columns.
    """
    if lookup is None:
        lookup = column_lookup(row.keys())
    for alias in aliases:
        for col in lookup.get(_key(alias), []):
            value = row.get(col)
            if not _is_blank(value):
                return value
    return default


# ---------- Scalar coercion ----------

def _text(value: Any, default: str = "") -> str:
    if _is_blank(value):
        return default
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _as_number(value: Any) -> Optional[float]:
    if _is_blank(value) or isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip().replace(",", ""))
    except (TypeError, ValueError):
        return None
    if number != number or number in (float("inf"), float("-inf")):
        return None
    return number


def parse_int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool):
        return int(value)
    number = _as_number(value)
    return default if number is None else int(number)


def parse_float(value: Any, default: Optional[float] = 0.0) -> Optional[float]:
    number = _as_number(value)
    return default if number is None else number


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if _is_blank(value):
        return False
    return str(value).strip().lower() in _TRUE_VALUES


def parse_date(value: Any) -> pd.Timestamp:
    """Parse a date from the common export formats; ``NaT`` when unparseable."""
    if _is_blank(value):
        return pd.NaT
    if isinstance(value, (pd.Timestamp, datetime, date)):
        parsed = pd.Timestamp(value)
    else:
        text = str(value).strip()
        parsed = pd.NaT
        for fmt in _DATE_FORMATS:
            try:
                parsed = pd.Timestamp(datetime.strptime(text, fmt))
                break
            except ValueError:
                continue
        if pd.isna(parsed):
            try:
                parsed = pd.to_datetime(text, errors="coerce")
            except (TypeError, ValueError, OverflowError):
                return pd.NaT
    if pd.isna(parsed):
        return pd.NaT
    if parsed.tzinfo is not None:
        parsed = parsed.tz_convert(None)
    return parsed


# ---------- Categorical standardization ----------

def standardize_severity(value: Any) -> str:
    """Map a letter code, 1-5 scale or descriptive word onto A/B/C/D/Unknown."""
    if _is_blank(value):
        return "Unknown"
    text = str(value).strip()
    upper = text.upper()
    if upper in SEVERITY_LEVELS[:4]:
        return upper

    number = _as_number(text)
    if number is not None:
        if number.is_integer() and int(number) in _SEVERITY_NUMERIC:
            return _SEVERITY_NUMERIC[int(number)]
        return "Unknown"

    lower = text.lower()
    for level, keywords in _SEVERITY_KEYWORDS:
        if any(k in lower for k in keywords):
            return level
    return "Unknown"


def standardize_likelihood(value: Any) -> str:
    """Map a likelihood word or 1-5 scale onto the named levels (default Possible)."""
    if _is_blank(value):
        return "Possible"
    text = str(value).strip().lower()
    words = re.findall(r"[a-z]+", text)
    negated = "not" in words

    # whole words only: 'uncertain' is not 'certain', 'unlikely' is not 'likely'
    if "almost certain" in text or ("certain" in words and not negated):
        return "Almost Certain"
    if "unlikely" in words or ("likely" in words and negated):
        return "Unlikely"
    if "likely" in words:
        return "Likely"
    if "rare" in text:
        return "Rare"
    if "possible" in text:
        return "Possible"

    number = _as_number(text)
    if number is not None and number.is_integer() and int(number) in _LIKELIHOOD_NUMERIC:
        return _LIKELIHOOD_NUMERIC[int(number)]
    return "Possible"


def standardize_inspection_status(value: Any) -> str:
    if _is_blank(value):
        return "Upcoming"
    lower = str(value).strip().lower()
    words = re.findall(r"[a-z]+", lower)
    negated = "not" in words or "incomplete" in words
    if not negated and ("complete" in lower or "closed" in lower or lower == "done"):
        return "Completed"
    if "overdue" in lower or "late" in lower:
        return "Overdue"
    if "progress" in lower:
        return "In Progress"
    return "Upcoming"


# ---------- Record normalization ----------

def _rows(data: RowsLike) -> List[Mapping[str, Any]]:
    if data is None:
        return []
    if isinstance(data, pd.DataFrame):
        return data.to_dict(orient="records")
    return [row if isinstance(row, Mapping) else {} for row in data]


def _frame(records: List[Dict[str, Any]], columns: List[str], date_cols: Sequence[str] = ()) -> pd.DataFrame:
    df = pd.DataFrame.from_records(records, columns=columns)
    for col in date_cols:
        df[col] = pd.to_datetime(df[col], errors="coerce")
    return df


def recognized_columns(columns: Iterable[Any], fields: Dict[str, List[str]]) -> List[Any]:
    """Columns that match at least one alias of ``fields``."""
    known = {_key(a) for aliases in fields.values() for a in aliases}
    return [col for col in columns if _key(col) in known]


def _count_unrecognized(rows: List[Mapping[str, Any]], fields: Dict[str, List[str]]) -> int:
    known = {_key(a) for aliases in fields.values() for a in aliases}
    return sum(1 for row in rows if not any(_key(k) in known for k in row.keys()))


def normalize_injuries(data: RowsLike) -> pd.DataFrame:
    """Normalize raw injury rows into the canonical injury frame."""
    rows = _rows(data)
    records: List[Dict[str, Any]] = []
    for index, row in enumerate(rows):
        lookup = column_lookup(row.keys())

        def field(name: str, default: Any = "") -> Any:
            return resolve_field(row, INJURY_FIELDS[name], default, lookup)

        raw_date = _text(field("incident_date"))
        records.append({
            "case_number": _text(field("case_number")) or f"CASE-{index + 1:04d}",
            "incident_date": raw_date,
            "incident_time": _text(field("incident_time")),
            "parsed_date": parse_date(raw_date),
            "site": _text(field("site")),
            "location": _text(field("location")),
            "body_part": _text(field("body_part")),
            "incident_type": _text(field("incident_type")),
            "severity": standardize_severity(field("severity", None)),
            "recordable": parse_bool(field("recordable", None)),
            "on_the_road": parse_bool(field("on_the_road", None)),
            "days_away": max(0, parse_int(field("days_away", None))),
            "days_restricted": max(0, parse_int(field("days_restricted", None))),
            "root_cause": _text(field("root_cause")),
            "contributing_factor": _text(field("contributing_factor")),
            "process_path": _text(field("process_path")),
            "description": _text(field("description")),
            "corrective_action": _text(field("corrective_action")),
            "department": _text(field("department")),
            "status": _text(field("status"), "Open"),
        })

    unrecognized = _count_unrecognized(rows, INJURY_FIELDS)
    if unrecognized:
        logger.debug("%d injury rows had no recognized columns", unrecognized)
    return _frame(records, INJURY_COLUMNS, ["parsed_date"])


def _near_miss_id(site: str, parsed: pd.Timestamp, seq: int) -> str:
    if site and not pd.isna(parsed):
        return f"NM-{site}-{parsed.year}{parsed.month:02d}-{seq:03d}"
    return f"NM-{seq:04d}"


def normalize_near_misses(data: RowsLike) -> pd.DataFrame:
    """Normalize raw near-miss rows; back-fill risk scores that are blank or zero."""
    rows = _rows(data)
    records: List[Dict[str, Any]] = []
    for index, row in enumerate(rows):
        lookup = column_lookup(row.keys())

        def field(name: str, default: Any = "") -> Any:
            return resolve_field(row, NEAR_MISS_FIELDS[name], default, lookup)

        raw_date = _text(field("nearmiss_date"))
        parsed = parse_date(raw_date)
        site = _text(field("site"))
        severity = standardize_severity(field("severity", None))
        likelihood = standardize_likelihood(field("likelihood", None))

        risk = parse_float(field("risk", None), default=None)
        if not risk:
            risk = risk_score(severity, likelihood)

        records.append({
            "incident_id": _text(field("incident_id")) or _near_miss_id(site, parsed, index + 1),
            "nearmiss_date": raw_date,
            "parsed_date": parsed,
            "site": site,
            "location": _text(field("location")),
            "process_path": _text(field("process_path")),
            "primary_impact": _text(field("primary_impact")),
            "severity": severity,
            "likelihood": likelihood,
            "risk_score": float(risk),
            "contributing_factor": _text(field("contributing_factor")),
            "root_cause": _text(field("root_cause")),
            "description": _text(field("description")),
            "status": _text(field("status"), "Open"),
        })

    unrecognized = _count_unrecognized(rows, NEAR_MISS_FIELDS)
    if unrecognized:
        logger.debug("%d near-miss rows had no recognized columns", unrecognized)
    return _frame(records, NEAR_MISS_COLUMNS, ["parsed_date"])


RAW_DATE_COLUMNS = ["incident_date", "nearmiss_date", "scheduled_date"]


def record_dates(df: Optional[pd.DataFrame]) -> pd.Series:
    """Dates of a canonical frame, re-parsing the raw date string where ``parsed_date`` is missing."""
    if df is None or df.empty:
        return pd.Series([], dtype="datetime64[ns]")
    if "parsed_date" in df.columns:
        dates = pd.to_datetime(df["parsed_date"], errors="coerce")
    else:
        dates = pd.Series(pd.NaT, index=df.index, dtype="datetime64[ns]")

    raw_col = next((c for c in RAW_DATE_COLUMNS if c in df.columns), None)
    missing = dates.isna()
    if raw_col is not None and missing.any():
        reparsed = df.loc[missing, raw_col].map(parse_date)
        dates = dates.copy()
        dates.loc[missing] = pd.to_datetime(reparsed, errors="coerce")
    return dates


def normalize_inspections(data: RowsLike) -> pd.DataFrame:
    rows = _rows(data)
    records: List[Dict[str, Any]] = []
    for row in rows:
        lookup = column_lookup(row.keys())

        def field(name: str, default: Any = "") -> Any:
            return resolve_field(row, INSPECTION_FIELDS[name], default, lookup)

        records.append({
            "site": _text(field("site")),
            "inspection_type": _text(field("inspection_type")),
            "scheduled_date": _text(field("scheduled_date")),
            "completed_date": _text(field("completed_date")),
            "status": standardize_inspection_status(field("status", None)),
            "inspector": _text(field("inspector")),
            "score": parse_float(field("score", None), default=None),
            "findings": max(0, parse_int(field("findings", None))),
            "critical_findings": max(0, parse_int(field("critical_findings", None))),
        })
    return _frame(records, INSPECTION_COLUMNS)
