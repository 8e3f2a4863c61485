"""
Natural-language question answering over a computed analysis.

Questions are matched against an ordered list of intents; the first match
wins. Column references are resolved fuzzily against the profile and the
answer is rendered from fixed templates. Nothing here raises on odd input.
"""
import logging
import re
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from firstlook.core.config import DEFAULT_THRESHOLDS, Thresholds
from firstlook.core.sanitization import sanitize_for_logging
from firstlook.core.schemas import (
    KPI,
    CategoricalColumnProfile,
    ChartSpec,
    DatasetMeta,
    DatasetProfile,
    DateColumnProfile,
    Insight,
    NumericColumnProfile,
    ScatterChart,
    TimeChart,
)
from firstlook.services.formatting import fmt_compact, fmt_pct
from firstlook.services.parsing import normalize_key

logger = logging.getLogger(__name__)

PLACEHOLDER = "n/a"
NO_DATE_COLUMN = "This dataset does not contain a date column suitable for time analysis."

INTENTS: List[Tuple[str, "re.Pattern"]] = [
    ("summary", re.compile(r"(summari[sz]e|summary|overview)")),
    ("stands_out", re.compile(r"(what stands out|stand out)")),
    ("main_metric", re.compile(r"(main metric|primary metric|key metric)")),
    ("outliers", re.compile(r"(outlier|anomal)")),
    ("skew", re.compile(r"(skew|skewed|mean|median|average|robust)")),
    ("explain", re.compile(r"^\s*explain\s+")),
    ("distribution", re.compile(r"(distribution of|distribution|dist of)\s+")),
    ("top", re.compile(r"^\s*top\s+")),
    ("time", re.compile(r"(time coverage|time range|date range|time trend|trend|time series|season)")),
    ("kpi_gaps", re.compile(r"(missing kpi|kpi.*missing|what kpis|kpi gaps|dashboard kpis)")),
    ("next_steps", re.compile(r"(what would you investigate next|investigate next|next steps|what next)")),
    ("not_answerable", re.compile(r"(cannot answer|can't answer|not answer|limitations|what questions.*not)")),
    ("data_to_add", re.compile(r"(what data.*improve|add.*improve|improve decision|what would you add)")),
    ("executive", re.compile(r"(executive|stakeholder|highlight|warn|risk|assumption|mislead|mistake|decision)")),
]


def classify_intent(question: str) -> str:
    """Return the first matching intent name, or ``"fallback"``."""
    for name, pattern in INTENTS:
        if pattern.search(question):
            return name
    return "fallback"


def resolve_column(raw: str, columns: Sequence[str]) -> Optional[str]:
    """
    Resolve a user phrase to a real column name.

    Tries a normalized exact match first, then containment in either
    direction on the normalized keys.
    """
    target = normalize_key(raw or "")
    if not target:
        return None
    for col in columns:
        if normalize_key(col) == target:
            return col
    for col in columns:
        key = normalize_key(col)
        if key and (target in key or key in target):
            return col
    return None


def _num(value) -> str:
    return fmt_compact(value) if value is not None else PLACEHOLDER


def _pct(value) -> str:
    return fmt_pct(value) if value is not None else PLACEHOLDER


def _bullets(lines: List[str]) -> str:
    return "\n".join(f"• {line}" for line in lines)


class _Context:
    """Everything an answer template may read."""

    def __init__(
        self,
        question: str,
        meta: DatasetMeta,
        profile: DatasetProfile,
        kpis: Sequence[KPI],
        charts: Sequence[ChartSpec],
        insights: Sequence[Insight],
        thresholds: Thresholds,
    ):
        self.question = question
        self.meta = meta
        self.profile = profile
        self.columns = profile.columns
        self.kpis = list(kpis)
        self.charts = list(charts)
        self.insights = list(insights)
        self.thresholds = thresholds

    @property
    def main_metric(self) -> Optional[str]:
        metric = next((k for k in self.kpis if k.type == "sum" and k.column), None)
        metric = metric or next((k for k in self.kpis if k.type == "mean" and k.column), None)
        return metric.column if metric else None

    @property
    def outlier_insights(self) -> List[Insight]:
        return [i for i in self.insights if i.id.startswith("outlier-")]

    def first_date_column(self) -> Optional[str]:
        return next((c for c, info in self.columns.items() if isinstance(info, DateColumnProfile)), None)

    def count(self, kind) -> int:
        return sum(1 for info in self.columns.values() if isinstance(info, kind))


# ---------------------------------------------------------------------------
# Intent handlers
# ---------------------------------------------------------------------------

def _answer_summary(ctx: _Context) -> str:
    time_part = ", with a time dimension present." if ctx.first_date_column() else "."
    main = ctx.main_metric
    main_part = f' The primary numeric signal appears to be "{main}".' if main else ""
    return (
        f"This dataset contains {ctx.meta.row_count} rows and {ctx.meta.column_count} columns. "
        f"It includes {ctx.count(NumericColumnProfile)} numeric columns and "
        f"{ctx.count(CategoricalColumnProfile)} categorical columns{time_part}{main_part}"
    )


def _strongest_relationship(ctx: _Context) -> Optional[str]:
    best = None
    for chart in ctx.charts:
        if isinstance(chart, ScatterChart) and chart.correlation is not None:
            if best is None or abs(chart.correlation) > abs(best.correlation):
                best = chart
    if best is None or abs(best.correlation) < ctx.thresholds.notable_correlation:
        return None
    direction = "rise together" if best.correlation > 0 else "move in opposite directions"
    return f'"{best.y_column}" and "{best.x_column}" {direction} (r = {best.correlation:.2f}).'


def _answer_stands_out(ctx: _Context) -> str:
    lines = [i.text for i in ctx.insights]
    relationship = _strongest_relationship(ctx)
    if relationship:
        lines.append(relationship)
    if not lines:
        return "No strong anomalies or dominant patterns were detected."
    return _bullets(lines)


def _answer_main_metric(ctx: _Context) -> str:
    main = ctx.main_metric
    if main:
        return f'The main metric appears to be "{main}", based on scale and variation.'
    return "No clear primary metric could be identified without additional context."


def _answer_outliers(ctx: _Context) -> str:
    flagged = ctx.outlier_insights
    if not flagged:
        return "No significant outliers were detected based on basic statistical thresholds."
    return _bullets([i.text for i in flagged])


def _answer_skew(ctx: _Context) -> str:
    if ctx.outlier_insights:
        return "The main numeric columns appear skewed due to extreme values. Median-based analysis is recommended."
    return "The numeric distributions do not appear heavily skewed; mean-based summaries should be generally fine."


def _answer_explain(ctx: _Context) -> str:
    raw = re.sub(r"^\s*explain\s+", "", ctx.question).strip()
    col = resolve_column(raw, list(ctx.columns))
    if col is None:
        return f'I couldn\'t find a matching column for "{raw}". Try copying the column name from the column list.'

    info = ctx.columns[col]
    if isinstance(info, NumericColumnProfile):
        median = f", Median: {_num(info.median)}" if info.median is not None else ""
        return (
            f'"{col}" is a numeric column with {info.unique_count} unique values and {info.missing} missing values. '
            f"It ranges from {_num(info.min)} to {_num(info.max)}. Mean: {_num(info.mean)}{median}."
        )
    if isinstance(info, CategoricalColumnProfile):
        top = info.top_values[0] if info.top_values else None
        return (
            f'"{col}" is a categorical column with {info.unique_count} unique values and {info.missing} missing values. '
            f'The most common value is "{top.value if top else PLACEHOLDER}" ({_pct(top.pct if top else None)}).'
        )
    return (
        f'"{col}" is a date column. It spans from {info.min or PLACEHOLDER} to {info.max or PLACEHOLDER} '
        f"with {info.unique_count} unique dates."
    )


def _answer_distribution(ctx: _Context) -> str:
    raw = ctx.question
    for phrase in ("distribution of", "dist of", "distribution"):
        raw = raw.replace(phrase, "", 1)
    raw = raw.strip()
    col = resolve_column(raw, list(ctx.columns))
    if col is None:
        return f'I couldn\'t find a matching column for "{raw}". Try: "distribution of <exact column name>".'

    info = ctx.columns[col]
    if isinstance(info, NumericColumnProfile):
        variation = "noticeable variation" if info.stdev else "low variation"
        median = f", Median: {_num(info.median)}" if info.median is not None else ""
        return (
            f'The distribution of "{col}" spans from {_num(info.min)} to {_num(info.max)}. '
            f"Mean: {_num(info.mean)}{median}, with {variation}."
        )
    if isinstance(info, CategoricalColumnProfile):
        top = info.top_values[0] if info.top_values else None
        return (
            f'"{col}" contains {info.unique_count} categories. The top category '
            f'"{top.value if top else PLACEHOLDER}" accounts for {_pct(top.pct if top else None)}.'
        )
    return f'"{col}" does not have a distribution suitable for analysis.'


def _answer_top(ctx: _Context) -> str:
    raw = re.sub(r"^\s*top\s+", "", ctx.question).strip()
    col = resolve_column(raw, list(ctx.columns))
    if col is None:
        return f'I couldn\'t find a matching column for "{raw}".'

    info = ctx.columns[col]
    top_values = getattr(info, "top_values", None)
    if not top_values:
        return f'Top values could not be determined for "{col}".'
    listed = ", ".join(f"{v.value} ({_pct(v.pct)})" for v in top_values[:5])
    return f'Top values in "{col}": {listed}'


def _answer_time(ctx: _Context) -> str:
    date_col = ctx.first_date_column()
    if date_col is None:
        return NO_DATE_COLUMN

    info = ctx.columns[date_col]
    span = f"The dataset spans from {info.min or PLACEHOLDER} to {info.max or PLACEHOLDER}."
    unique = f" With {info.unique_count} unique dates, basic trend analysis is feasible."

    time_chart = next((c for c in ctx.charts if isinstance(c, TimeChart) and c.x_column == date_col), None)
    chart_note = ""
    if time_chart is not None:
        chart_note = (
            f' The time chart sums "{time_chart.y_column}" per {time_chart.granularity} '
            f"across {len(time_chart.points)} periods."
        )

    if "season" in ctx.question:
        return (
            f"{span}{unique}{chart_note} To confirm seasonality, you'd typically aggregate by week/month "
            "and compare recurring peaks across periods."
        )
    if "reveal" in ctx.question or "appropriate" in ctx.question or "trend analysis" in ctx.question:
        return (
            f"{span}{unique}{chart_note} A sensible approach is to aggregate the main numeric metric by "
            "week/month and compare changes over time, then segment by key categories "
            "(country/device/category) to see drivers."
        )
    return f"{span}{unique}{chart_note}"


def _answer_kpi_gaps(ctx: _Context) -> str:
    return (
        "Potential KPI gaps for a decision-ready dashboard include: growth rates (MoM/YoY), "
        "targets/benchmarks, profit or margin metrics, segmentation KPIs (by key categories), "
        "and trend KPIs (rolling averages). Without these, insights remain mostly descriptive."
    )


def _answer_next_steps(ctx: _Context) -> str:
    return (
        "Recommended next steps: segment the main metric by key categories (e.g., country/device/category), "
        "investigate extreme values, compare mean vs median trends, analyse time trends for shifts, "
        "and identify top contributors vs the long tail."
    )


def _answer_not_answerable(ctx: _Context) -> str:
    return (
        "This dataset can describe what happened (totals, distributions, segments, trends), but it cannot "
        "reliably explain causality (why it happened), intent, or performance vs targets unless you add "
        "benchmarks, campaign context, or business rules."
    )


def _answer_data_to_add(ctx: _Context) -> str:
    return (
        "To improve decision-making, add: targets/quotas, product/region hierarchy, customer IDs with "
        "lifecycle info, discount/promo flags, channel/source, and a clear profit/margin field. These unlock "
        "performance vs target, attribution, and actionable segmentation."
    )


def _answer_executive(ctx: _Context) -> str:
    return (
        "Key considerations based on this dataset: outliers may distort averages (use medians + segmentation), "
        "dominant categories can hide minority behaviour, time trends are descriptive not explanatory, and "
        "this dataset supports monitoring and exploration, not causal claims."
    )


def _answer_fallback(ctx: _Context) -> str:
    return (
        "Based on the dataset structure and available statistics: the data supports descriptive analysis and "
        "high-level trend exploration. Outliers suggest caution when using averages, and dominant categories "
        'may hide smaller segments. If you want something specific, reference a column (e.g., "explain cost", '
        '"top country", "distribution of order_value_EUR", "time coverage").'
    )


HANDLERS: Dict[str, Callable[[_Context], str]] = {
    "summary": _answer_summary,
    "stands_out": _answer_stands_out,
    "main_metric": _answer_main_metric,
    "outliers": _answer_outliers,
    "skew": _answer_skew,
    "explain": _answer_explain,
    "distribution": _answer_distribution,
    "top": _answer_top,
    "time": _answer_time,
    "kpi_gaps": _answer_kpi_gaps,
    "next_steps": _answer_next_steps,
    "not_answerable": _answer_not_answerable,
    "data_to_add": _answer_data_to_add,
    "executive": _answer_executive,
    "fallback": _answer_fallback,
}


def answer_question(
    question: str,
    meta: DatasetMeta,
    profile: DatasetProfile,
    kpis: Sequence[KPI],
    charts: Sequence[ChartSpec],
    insights: Sequence[Insight],
    thresholds: Optional[Thresholds] = None,
) -> str:
    """
    Answer a free-text question about an analyzed dataset.

    Args:
        question: User question (any casing/spacing)
        meta: Row, column and missing-cell counts
        profile: Dataset profile
        kpis: Selected KPIs
        charts: Selected chart specs
        insights: Generated insights
        thresholds: Heuristic thresholds (defaults to ``DEFAULT_THRESHOLDS``)

    Returns:
        A deterministic, templated answer
    """
    normalized = str(question or "").strip().lower()
    intent = classify_intent(normalized)
    logger.debug(f"Question '{sanitize_for_logging(normalized, 120)}' classified as {intent}")

    ctx = _Context(normalized, meta, profile, kpis, charts, insights, thresholds or DEFAULT_THRESHOLDS)
    return HANDLERS[intent](ctx)
