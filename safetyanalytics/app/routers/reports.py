from __future__ import annotations

from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from ..core.deps import get_store
from ..services.reports import build_excel_report
from ..services.state import SafetyStore


router = APIRouter(prefix="/reports", tags=["reports"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@router.get("/excel")
async def download_excel(
    report_type: Literal["injury", "nearmiss", "combined"] = Query("combined"),
    baseline_hours: Optional[float] = Query(None, gt=0),
    store: SafetyStore = Depends(get_store),
):
    """KPI sheet plus the filtered record sheets for the chosen report type."""
    content = build_excel_report(store, report_type, baseline_hours)
    filename = f"safety_report_{report_type}_{date.today():%Y%m%d}.xlsx"
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
