from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from ..core.deps import get_store, valid_dataset
from ..models.schemas import (
    CategorizeRequest,
    CategorizeResponse,
    Pattern,
    PredictiveInsight,
    QualityMetrics,
    SmartRecommendation,
    TrendsResponse,
)
from ..services.insights import (
    categorize_incident,
    detect_patterns,
    generate_predictive_insights,
    generate_recommendations,
)
from ..services.json_utils import to_native_json
from ..services.kpis import frequency, leading_vs_lagging
from ..services.quality import REQUIRED_FIELDS, quality_metrics
from ..services.reports import kpi_summary
from ..services.risk import risk_matrix
from ..services.state import SafetyStore
from ..services.trends import analyze_trend, monthly_counts, recent_monthly_series, window_counts


router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/kpis")
async def get_kpis(
    baseline_hours: Optional[float] = Query(None, gt=0, description="Hours worked; defaults to the configured baseline"),
    as_of: Optional[date] = Query(None, description="Reference date for period trends; defaults to the latest record"),
    store: SafetyStore = Depends(get_store),
):
    """KPI summary over the filtered injury and near-miss views."""
    summary = kpi_summary(store.filtered("injury"), store.filtered("nearmiss"), baseline_hours, as_of)
    return JSONResponse(content=to_native_json(summary))


@router.get("/trends", response_model=TrendsResponse)
async def get_trends(
    months: int = Query(6, ge=2, le=36, description="Months in the trend series"),
    as_of: Optional[date] = Query(None, description="Reference date; defaults to the latest record"),
    store: SafetyStore = Depends(get_store),
):
    """Monthly counts, 30/60/90-day window changes and a fitted trend per collection."""
    out = {}
    for dataset, metric in (("injury", "incidents"), ("nearmiss", "near misses")):
        df = store.filtered(dataset)
        series = recent_monthly_series(df, months, as_of)
        out[dataset] = {
            "monthly": monthly_counts(df),
            "series": series,
            "windows": [window_counts(df, days, as_of) for days in (30, 60, 90)],
            "analysis": analyze_trend(series, metric),
        }
    return to_native_json(out)


@router.get("/patterns", response_model=List[Pattern])
async def get_patterns(
    threshold: Optional[int] = Query(None, ge=1, description="Minimum group size; defaults to the configured threshold"),
    store: SafetyStore = Depends(get_store),
):
    return detect_patterns(store.filtered("injury"), threshold)


@router.get("/insights", response_model=List[PredictiveInsight])
async def get_insights(
    as_of: Optional[date] = Query(None, description="Reference date; defaults to the latest record"),
    store: SafetyStore = Depends(get_store),
):
    return generate_predictive_insights(store.filtered("injury"), store.filtered("nearmiss"), as_of)


@router.get("/recommendations", response_model=List[SmartRecommendation])
async def get_recommendations(store: SafetyStore = Depends(get_store)):
    return generate_recommendations(store.filtered("injury"), store.filtered("nearmiss"))


@router.post("/categorize", response_model=CategorizeResponse)
async def categorize(body: CategorizeRequest):
    return categorize_incident(body.description, body.root_cause)


@router.get("/risk-matrix")
async def get_risk_matrix(store: SafetyStore = Depends(get_store)):
    near_misses = store.filtered("nearmiss")
    return JSONResponse(content=to_native_json({
        "cells": risk_matrix(near_misses),
        "by_site": frequency(near_misses, "site"),
        "total": 0 if near_misses is None else len(near_misses),
    }))


@router.get("/quality/{dataset}", response_model=QualityMetrics)
async def get_quality(dataset: str = Depends(valid_dataset), store: SafetyStore = Depends(get_store)):
    """Quality scores for the full uploaded collection."""
    return to_native_json(quality_metrics(store.frame(dataset), REQUIRED_FIELDS[dataset]))


@router.get("/leading-vs-lagging")
async def get_leading_vs_lagging(store: SafetyStore = Depends(get_store)):
    result = leading_vs_lagging(
        store.filtered("injury"),
        store.filtered("nearmiss"),
        store.filtered("inspection"),
    )
    return JSONResponse(content=to_native_json(result))
