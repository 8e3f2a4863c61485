from pydantic import BaseModel, ConfigDict, Field
from typing import Annotated, Any, List, Optional, Dict, Union, Literal

InferredType = Literal["numeric", "date", "categorical", "text", "identifier"]
ChartPurpose = Literal["distribution", "composition", "trend", "relationship"]


class Snapshot(BaseModel):
    """Immutable value object shared by every derived entity."""
    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------

class TopValue(Snapshot):
    value: str
    count: int
    pct: float  # percent of non-missing values


class NumericColumnProfile(Snapshot):
    type: Literal["numeric"] = "numeric"
    missing: int
    unique_count: int
    non_missing_count: int
    min: Optional[float] = None
    max: Optional[float] = None
    mean: Optional[float] = None
    median: Optional[float] = None
    stdev: Optional[float] = None  # sample stdev, None below 2 values
    zeros: int = 0
    negatives: int = 0
    integer_valued: bool = False
    parse_reason: str = ""


class CategoricalColumnProfile(Snapshot):
    type: Literal["categorical"] = "categorical"
    missing: int
    unique_count: int
    non_missing_count: int
    top_values: List[TopValue] = []
    inferred_as_identifier: bool = False
    parse_reason: str = ""


class DateColumnProfile(Snapshot):
    type: Literal["date"] = "date"
    missing: int
    unique_count: int
    non_missing_count: int
    min: Optional[str] = None  # ISO timestamp
    max: Optional[str] = None  # ISO timestamp
    parse_reason: str = ""


ColumnProfile = Annotated[
    Union[NumericColumnProfile, CategoricalColumnProfile, DateColumnProfile],
    Field(discriminator="type"),
]


class DatasetProfile(Snapshot):
    row_count: int = 0
    column_count: int = 0
    duplicates: int = 0
    empty_columns: List[str] = []
    constant_columns: List[str] = []
    columns: Dict[str, ColumnProfile] = {}


# ---------------------------------------------------------------------------
# KPIs
# ---------------------------------------------------------------------------

class KPI(Snapshot):
    label: str
    value: Union[int, float, str]
    type: Literal["sum", "mean", "min", "max", "count", "rate", "range", "span", "top"]
    column: Optional[str] = None


# ---------------------------------------------------------------------------
# Charts
# ---------------------------------------------------------------------------

class HistogramChart(Snapshot):
    type: Literal["histogram"] = "histogram"
    title: str
    column: str
    bin_count: int
    edges: List[float]
    counts: List[int]
    min: float
    max: float
    total: int


class BoxChart(Snapshot):
    type: Literal["box"] = "box"
    title: str
    column: str
    min: float
    q1: float
    median: float
    q3: float
    max: float
    iqr: float
    outliers: List[float]
    total: int


class BarChart(Snapshot):
    type: Literal["bar"] = "bar"
    title: str
    column: str
    labels: List[str]
    counts: List[int]
    max_bars: int


class TimePoint(Snapshot):
    x: str
    y: float


class TimeChart(Snapshot):
    type: Literal["time"] = "time"
    title: str
    x_column: str
    y_column: str
    granularity: Literal["day", "month"]
    points: List[TimePoint]


class ScatterPoint(Snapshot):
    x: float
    y: float


class ScatterChart(Snapshot):
    type: Literal["scatter"] = "scatter"
    title: str
    x_column: str
    y_column: str
    points: List[ScatterPoint]
    correlation: Optional[float] = None


class CorrelationChart(Snapshot):
    type: Literal["correlation"] = "correlation"
    title: str
    columns: List[str]
    matrix: List[List[float]]


ChartSpec = Annotated[
    Union[HistogramChart, BoxChart, BarChart, TimeChart, ScatterChart, CorrelationChart],
    Field(discriminator="type"),
]


class ChartCandidate(Snapshot):
    """A scored chart before diversity selection. Score and purpose are never rendered."""
    spec: ChartSpec
    score: float
    purpose: ChartPurpose


# ---------------------------------------------------------------------------
# Insights
# ---------------------------------------------------------------------------

class Insight(Snapshot):
    id: str
    text: str
    severity: Literal["info", "warning", "positive"] = "info"
    column: Optional[str] = None
    action: Optional[Literal["investigate", "segment", "clean", "monitor", "report"]] = None
    suggested_questions: List[str] = []


# ---------------------------------------------------------------------------
# Pipeline / API
# ---------------------------------------------------------------------------

class DatasetMeta(Snapshot):
    row_count: int
    column_count: int
    missing_count: int
    file_kind: str = "unknown"


class AnalysisResult(Snapshot):
    meta: DatasetMeta
    profile: DatasetProfile
    kpis: List[KPI]
    charts: List[ChartSpec]
    insights: List[Insight]


class AnalyzeRequest(BaseModel):
    rows: List[Any]  # validated as scalar-valued objects by the API layer
    file_kind: str = "unknown"


class AskRequest(BaseModel):
    question: str
    rows: List[Any]
    file_kind: str = "unknown"


class AskResponse(BaseModel):
    answer: str
    meta: DatasetMeta
