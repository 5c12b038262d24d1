"""
Records Router
Filtered record views, per-collection filter state, dropdown options and
search/filter suggestions.
"""
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from ..core.deps import get_store, valid_dataset
from ..models.schemas import FilterOptionsResponse, FilterState, FilterSuggestion
from ..services.csv_reader import df_to_payload
from ..services.filters import filter_options, filter_suggestions, get_filter_summary, search_suggestions
from ..services.json_utils import to_native_json
from ..services.state import SafetyStore


router = APIRouter(prefix="/records", tags=["records"])


@router.get("/{dataset}")
async def list_records(
    dataset: str = Depends(valid_dataset),
    page: int = Query(1, ge=1, description="1-based page number"),
    page_size: Optional[int] = Query(None, ge=1, le=500, description="Defaults to the items_per_page preference"),
    store: SafetyStore = Depends(get_store),
):
    """
    Return one page of the filtered view of a collection.

    Returns:
        records, pagination info and a summary of the active filters
    """
    original = store.frame(dataset)
    filtered = store.filtered(dataset)
    size = page_size or int(store.preferences.get("items_per_page", 25))
    total = len(filtered)
    start = (page - 1) * size
    page_df = filtered.iloc[start:start + size]

    return JSONResponse(content=to_native_json({
        "dataset": dataset,
        "records": df_to_payload(page_df),
        "page": page,
        "page_size": size,
        "total": total,
        "total_pages": (total + size - 1) // size,
        "filter_summary": get_filter_summary(original, filtered, store.filters(dataset)),
    }))


@router.get("/{dataset}/filters", response_model=FilterState)
async def get_filters(dataset: str = Depends(valid_dataset), store: SafetyStore = Depends(get_store)):
    return store.filters(dataset)


@router.put("/{dataset}/filters", response_model=FilterState)
async def update_filters(
    body: FilterState,
    dataset: str = Depends(valid_dataset),
    store: SafetyStore = Depends(get_store),
):
    """Merge the provided filter fields; fields left out keep their current value."""
    return store.set_filters(dataset, body.model_dump(exclude_unset=True))


@router.delete("/{dataset}/filters", response_model=FilterState)
async def reset_filters(dataset: str = Depends(valid_dataset), store: SafetyStore = Depends(get_store)):
    return store.reset_filters(dataset)


@router.get("/{dataset}/options", response_model=FilterOptionsResponse)
async def get_filter_options(dataset: str = Depends(valid_dataset), store: SafetyStore = Depends(get_store)):
    """Dropdown values with counts over the full (unfiltered) collection."""
    return filter_options(store.frame(dataset))


@router.get("/{dataset}/search-suggestions", response_model=List[str])
async def get_search_suggestions(
    q: str = Query(..., min_length=1, description="Partial or misspelled search term"),
    limit: int = Query(5, ge=1, le=20),
    dataset: str = Depends(valid_dataset),
    store: SafetyStore = Depends(get_store),
):
    """Field values of the closest-matching records in the filtered view."""
    return search_suggestions(store.filtered(dataset), q, limit)


@router.get("/{dataset}/filter-suggestions", response_model=List[FilterSuggestion])
async def get_filter_suggestions(
    limit: int = Query(5, ge=1, le=20),
    dataset: str = Depends(valid_dataset),
    store: SafetyStore = Depends(get_store),
):
    """Dropdown values that would narrow the filtered view the most."""
    return filter_suggestions(store.filtered(dataset), store.filters(dataset), limit)
