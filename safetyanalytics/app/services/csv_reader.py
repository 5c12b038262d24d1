from __future__ import annotations

import logging
from io import StringIO
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from ..core.config import MAX_UPLOAD_BYTES

logger = logging.getLogger(__name__)


class CSVParseError(ValueError):
    """Raised when an uploaded file cannot be read as a CSV with a header row."""


# UTF-16/32 byte order marks
_WIDE_BOMS = (b"\xff\xfe", b"\xfe\xff", b"\x00\x00\xfe\xff")


def _decode(content: bytes) -> str:
    if content.startswith(_WIDE_BOMS) or b"\x00" in content:
        raise CSVParseError("File is not a text CSV (binary or UTF-16/32 content)")
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError:
        # latin-1 decodes any byte sequence
        return content.decode("latin-1")


def read_csv_bytes(content: bytes, max_bytes: Optional[int] = None) -> pd.DataFrame:
    """Read CSV bytes into a frame of strings.

    Headers are trimmed, blank lines skipped and rows with no values dropped.
    Raises CSVParseError for empty, oversize or binary input, a missing
    header, or tokenizer failures.
    """
    limit = MAX_UPLOAD_BYTES if max_bytes is None else max_bytes
    if not content or not content.strip():
        raise CSVParseError("File is empty")
    if len(content) > limit:
        raise CSVParseError(f"File exceeds the {limit} byte upload limit")

    text = _decode(content)
    try:
        df = pd.read_csv(
            StringIO(text),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
        )
    except pd.errors.EmptyDataError as e:
        raise CSVParseError("No header row found") from e
    except pd.errors.ParserError as e:
        raise CSVParseError(str(e)) from e

    df.columns = [str(c).strip() for c in df.columns]
    if not any(df.columns) or all(c.startswith("Unnamed:") for c in df.columns):
        raise CSVParseError("No header row found")

    df = df.replace(r"^\s*$", np.nan, regex=True).dropna(how="all").fillna("")
    return df.reset_index(drop=True)


def df_to_payload(df: Optional[pd.DataFrame]) -> List[Dict[str, Any]]:
    if df is None:
        return []
    # Convert timestamps to ISO dates for JSON safety
    safe = df.copy()
    for col in safe.columns:
        if pd.api.types.is_datetime64_any_dtype(safe[col]):
            safe[col] = pd.to_datetime(safe[col], errors="coerce").dt.strftime("%Y-%m-%d")
    return safe.to_dict(orient="records")


def summarize_frame(name: str, df: pd.DataFrame, sample_size: int = 5) -> Tuple[str, int, int, List[str], List[Dict[str, Any]]]:
    sample = df_to_payload(df.head(sample_size))
    return name, int(len(df)), int(len(df.columns)), [str(c) for c in df.columns], sample
