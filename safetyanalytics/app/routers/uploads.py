from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from ..core.deps import get_store, valid_dataset
from ..models.schemas import UploadResponse
from ..services.csv_reader import CSVParseError, read_csv_bytes, summarize_frame
from ..services.json_utils import to_native_json
from ..services.normalizer import (
    INJURY_FIELDS,
    INSPECTION_FIELDS,
    NEAR_MISS_FIELDS,
    normalize_injuries,
    normalize_inspections,
    normalize_near_misses,
    recognized_columns,
)
from ..services.state import SafetyStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/uploads", tags=["uploads"])

# dataset -> (alias table, normalizer)
NORMALIZERS = {
    "injury": (INJURY_FIELDS, normalize_injuries),
    "nearmiss": (NEAR_MISS_FIELDS, normalize_near_misses),
    "inspection": (INSPECTION_FIELDS, normalize_inspections),
}


@router.post("/{dataset}", response_model=UploadResponse)
async def upload_csv(
    dataset: str = Depends(valid_dataset),
    file: UploadFile = File(...),
    store: SafetyStore = Depends(get_store),
):
    """Replace one record collection with the normalized contents of a CSV file.

    The collection is only replaced when the file parses and at least one
    header matches a known column for the dataset.
    """
    fields, normalize = NORMALIZERS[dataset]
    content = await file.read()
    try:
        raw = read_csv_bytes(content)
        if not recognized_columns(raw.columns, fields):
            raise CSVParseError(f"No recognized {dataset} columns in header: {', '.join(map(str, raw.columns))}")
    except CSVParseError as e:
        logger.warning("Rejected %s upload %r: %s", dataset, file.filename, e)
        raise HTTPException(status_code=400, detail=f"Failed to parse CSV: {e}")

    frame = normalize(raw)
    store.replace(dataset, frame)

    name, rows, cols, columns, sample = summarize_frame(dataset, frame)
    payload = {
        "dataset": dataset,
        "file_name": file.filename or f"{dataset}.csv",
        "upload_date": datetime.now(timezone.utc).isoformat(),
        "records": rows,
        "preview": {"name": name, "n_rows": rows, "n_cols": cols, "columns": columns, "sample": sample},
    }
    return to_native_json(payload)


@router.delete("")
async def clear_uploads(store: SafetyStore = Depends(get_store)):
    store.clear()
    return {"status": "cleared"}
