"""
Whole-pipeline orchestration.

rows -> profile -> (KPIs, charts, insights) -> answers. Every call recomputes
from the rows it is given; nothing is cached between calls.
"""
import logging
from typing import Any, Mapping, Optional, Sequence

from firstlook.core.config import DEFAULT_THRESHOLDS, Thresholds
from firstlook.core.performance import track_performance
from firstlook.core.schemas import AnalysisResult, DatasetMeta
from firstlook.services.ask import answer_question
from firstlook.services.charts import generate_charts
from firstlook.services.insights import generate_insights
from firstlook.services.kpis import select_kpis
from firstlook.services.parsing import is_missing
from firstlook.services.profiler import column_names, profile_dataset

logger = logging.getLogger(__name__)


def describe_rows(rows: Sequence[Mapping[str, Any]], file_kind: str = "unknown") -> DatasetMeta:
    """Row count, union column count and missing-cell count (absent keys count as missing)."""
    columns = column_names(rows)
    missing = sum(1 for row in rows for col in columns if is_missing((row or {}).get(col)))
    return DatasetMeta(
        row_count=len(rows),
        column_count=len(columns),
        missing_count=missing,
        file_kind=file_kind or "unknown",
    )


@track_performance("analyze")
def analyze(
    rows: Sequence[Mapping[str, Any]],
    file_kind: str = "unknown",
    thresholds: Optional[Thresholds] = None,
) -> AnalysisResult:
    """Run the full analysis pipeline over a set of rows."""
    thresholds = thresholds or DEFAULT_THRESHOLDS

    meta = describe_rows(rows, file_kind)
    profile = profile_dataset(rows, thresholds)
    kpis = select_kpis(rows, profile, thresholds)
    charts = generate_charts(rows, profile, thresholds)
    insights = generate_insights(profile, kpis, thresholds)

    logger.info(
        f"Analyzed {meta.row_count} rows x {meta.column_count} columns: "
        f"{len(kpis)} KPIs, {len(charts)} charts, {len(insights)} insights"
    )
    return AnalysisResult(meta=meta, profile=profile, kpis=kpis, charts=charts, insights=insights)


@track_performance("ask")
def ask(
    question: str,
    rows: Sequence[Mapping[str, Any]],
    file_kind: str = "unknown",
    thresholds: Optional[Thresholds] = None,
) -> str:
    """Recompute the analysis for ``rows`` and answer ``question`` against it."""
    result = analyze(rows, file_kind, thresholds)
    return answer_question(
        question,
        result.meta,
        result.profile,
        result.kpis,
        result.charts,
        result.insights,
        thresholds,
    )
