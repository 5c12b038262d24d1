from datetime import date
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


# ---------- Uploads ----------
class FramePreview(BaseModel):
    name: str
    n_rows: int
    n_cols: int
    columns: List[str]
    sample: List[Dict[str, Any]] = Field(default_factory=list)


class UploadResponse(BaseModel):
    dataset: str
    file_name: str
    upload_date: str
    records: int
    preview: FramePreview


# ---------- Filters ----------
class FilterState(BaseModel):
    site: Optional[str] = None
    severity: Optional[str] = None
    date_from: Optional[str] = Field(None, description="Inclusive lower bound, any common date format")
    date_to: Optional[str] = Field(None, description="Inclusive upper bound, any common date format")
    body_part: Optional[str] = None
    process_path: Optional[str] = None
    search: Optional[str] = Field(None, description="Case-insensitive free-text search")


class FilterOption(BaseModel):
    value: str
    label: str
    count: int


class DateRangeInfo(BaseModel):
    min_date: Optional[str] = None
    max_date: Optional[str] = None
    total_records: int = 0


class FilterOptionsResponse(BaseModel):
    site: List[FilterOption] = Field(default_factory=list)
    severity: List[FilterOption] = Field(default_factory=list)
    body_part: List[FilterOption] = Field(default_factory=list)
    process_path: List[FilterOption] = Field(default_factory=list)
    date_range: DateRangeInfo


class FilterSuggestion(BaseModel):
    field: str
    value: str
    impact: int = Field(..., description="Rows the filter would keep")


# ---------- Analytics ----------
class CategorizeRequest(BaseModel):
    description: str
    root_cause: Optional[str] = None


class CategorizeResponse(BaseModel):
    category: str
    confidence: int
    keywords: List[str] = Field(default_factory=list)


class Pattern(BaseModel):
    kind: Literal["body_part_process", "site_incident_type"]
    keys: Dict[str, str]
    count: int
    description: str


class TrendAnalysis(BaseModel):
    metric: str
    direction: Literal["improving", "worsening", "stable"]
    change_percent: float
    prediction: float
    confidence: float
    slope: float
    factors: List[str] = Field(default_factory=list)


class MonthlyCount(BaseModel):
    month: str
    count: int


class WindowCounts(BaseModel):
    days: int
    current: int
    previous: int
    change_percent: float
    window_end: str


class DatasetTrends(BaseModel):
    monthly: List[MonthlyCount] = Field(default_factory=list)
    series: List[int] = Field(default_factory=list)
    windows: List[WindowCounts] = Field(default_factory=list)
    analysis: TrendAnalysis


class TrendsResponse(BaseModel):
    injury: DatasetTrends
    nearmiss: DatasetTrends


class PredictiveInsight(BaseModel):
    id: str
    type: Literal["risk-prediction", "trend-alert", "pattern-detection", "recommendation"]
    severity: Literal["critical", "warning", "info"]
    title: str
    description: str
    confidence: float
    related_data: List[str] = Field(default_factory=list)
    suggested_actions: List[str] = Field(default_factory=list)


class SmartRecommendation(BaseModel):
    id: str
    category: str
    recommendation: str
    reasoning: str
    priority: int
    impact: Literal["high", "medium", "low"]
    implementation_effort: Literal["high", "medium", "low"]


class QualityMetrics(BaseModel):
    completeness: float
    accuracy: float
    consistency: float
    timeliness: float
    overall: float
    missing_fields: List[str] = Field(default_factory=list)
    record_count: int = 0
    duplicate_count: int = 0
    avg_word_count: float = 0.0


# ---------- Action items ----------
ActionStatus = Literal["open", "in-progress", "completed", "overdue"]
ActionPriority = Literal["low", "medium", "high", "critical"]


class ActionCreate(BaseModel):
    incident_id: str
    type: Literal["injury", "nearmiss"] = "injury"
    action: str = Field(..., min_length=1)
    responsible: str = Field(..., min_length=1)
    due_date: date
    priority: ActionPriority = "medium"


class ActionStatusUpdate(BaseModel):
    status: Literal["open", "in-progress", "completed"]


class ActionItem(BaseModel):
    id: str
    incident_id: str
    type: Literal["injury", "nearmiss"]
    action: str
    responsible: str
    due_date: Optional[date] = None
    status: ActionStatus
    priority: ActionPriority
    created_date: date
    completed_date: Optional[date] = None


class ActionStats(BaseModel):
    total: int
    by_status: Dict[str, int]
    by_priority: Dict[str, int]
    completion_rate: float


# ---------- Preferences ----------
class Preferences(BaseModel):
    theme: Literal["light", "dark"] = "light"
    items_per_page: int = Field(25, ge=1, le=500)


class PreferencesUpdate(BaseModel):
    theme: Optional[Literal["light", "dark"]] = None
    items_per_page: Optional[int] = Field(None, ge=1, le=500)
