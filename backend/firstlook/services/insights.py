"""
Rule-based insight generation.

Turns the dataset profile and KPIs into a short, severity-ranked list of
plain-language observations: data-quality warnings first, then positive
headlines, then informational notes.
"""
import logging
from typing import Dict, List, Optional

from firstlook.core.config import DEFAULT_THRESHOLDS, Thresholds
from firstlook.core.performance import track_performance
from firstlook.core.schemas import (
    KPI,
    CategoricalColumnProfile,
    DatasetProfile,
    DateColumnProfile,
    Insight,
    NumericColumnProfile,
)
from firstlook.services.formatting import fmt_count, round_half_up
from firstlook.services.parsing import normalize_key

logger = logging.getLogger(__name__)

SEVERITY_ORDER = {"warning": 0, "positive": 1, "info": 2}


def suggest_questions(column: Optional[str], kind: str) -> List[str]:
    """
    Follow-up questions for an insight, parameterized by column name.

    Args:
        column: Column the insight is about (may be None)
        kind: One of "outlier", "dominance", "missing", "time", "headline"
    """
    col = column or ""
    templates = {
        "outlier": [
            f"explain {col}",
            f"distribution of {col}",
            "should i use mean or median",
            "are there any outliers",
            "what risks do the outliers pose",
        ],
        "dominance": [
            f"top {col}",
            f"distribution of {col}",
            "what stands out",
            "what decisions could be misleading",
            "what would you investigate next",
        ],
        "missing": [
            "missing by column",
            "is this dataset clean",
            "are there any data quality risks",
            f"explain {col}" if col else "summarise dataset",
        ],
        "time": [
            "what is the time coverage of this dataset",
            "are there enough dates to analyse trends",
            "is this data seasonal",
            "what would a time trend reveal here",
        ],
        "headline": [
            "summarise dataset",
            "what is the main metric",
            "what stands out",
            "what would you highlight to executives",
        ],
    }
    questions: List[str] = []
    for question in templates.get(kind, []):
        question = question.strip()
        if question and question not in questions:
            questions.append(question)
    return questions


def _list_columns(names: List[str], limit: int) -> str:
    listed = ", ".join(names[:limit])
    return listed + ("..." if len(names) > limit else "")


def resolve_column(raw: Optional[str], columns: Dict) -> Optional[str]:
    target = normalize_key(raw or "")
    if not target:
        return None
    for col in columns:
        if normalize_key(col) == target:
            return col
    return None


def _quality_insights(profile: DatasetProfile, thresholds: Thresholds) -> List[Insight]:
    found = []
    if profile.duplicates > 0:
        found.append(Insight(
            id="duplicates",
            severity="warning",
            action="clean",
            text=(
                f"Dataset contains {fmt_count(profile.duplicates)} duplicate row(s). "
                "Consider de-duplicating before analysis."
            ),
            suggested_questions=suggest_questions(None, "missing"),
        ))

    if profile.empty_columns:
        found.append(Insight(
            id="empty-cols",
            severity="warning",
            action="clean",
            text=(
                "Some columns are empty (all missing): "
                f"{_list_columns(profile.empty_columns, thresholds.max_listed_columns)}. Remove or fix them."
            ),
            suggested_questions=suggest_questions(None, "missing"),
        ))

    if profile.constant_columns:
        found.append(Insight(
            id="constant-cols",
            severity="info",
            action="clean",
            text=(
                "Some columns are constant (no variation): "
                f"{_list_columns(profile.constant_columns, thresholds.max_listed_columns)}. "
                "They won't help explain differences."
            ),
            suggested_questions=[
                "summarise dataset",
                "what columns are most important",
                "what would you investigate next",
            ],
        ))
    return found


def _missing_insights(profile: DatasetProfile, thresholds: Thresholds) -> List[Insight]:
    found = []
    for col, info in profile.columns.items():
        total = info.missing + info.non_missing_count
        if total <= 0:
            continue
        missing_pct = info.missing / total * 100
        if missing_pct < thresholds.missing_info_pct:
            continue
        found.append(Insight(
            id=f"{col}-missing",
            severity="warning" if missing_pct >= thresholds.missing_warning_pct else "info",
            column=col,
            action="clean",
            text=(
                f'Column "{col}" has ~{round_half_up(missing_pct)}% missing values. '
                "Any conclusions involving this column may be biased."
            ),
            suggested_questions=suggest_questions(col, "missing"),
        ))
    return found


def _outlier_insights(
    profile: DatasetProfile, main_metric: Optional[str], thresholds: Thresholds
) -> List[Insight]:
    scored = []
    for col, info in profile.columns.items():
        if not isinstance(info, NumericColumnProfile):
            continue
        if info.max is None or info.mean is None or info.mean <= 0:
            continue

        ratio = info.max / max(1e-9, info.mean)
        if ratio < thresholds.outlier_max_mean_ratio:
            continue

        is_main = main_metric == col
        score = (100 if is_main else 0) + ratio * 10
        key = normalize_key(col)
        tag = "Main metric" if is_main else "Metric"

        scored.append((score, Insight(
            id=f"outlier-{key}",
            severity="warning",
            column=col,
            action="investigate",
            text=(
                f'{tag} "{col}" has extreme values that may distort averages. '
                "Use median/percentiles and segment (e.g., by category/country) before making decisions."
            ),
            suggested_questions=suggest_questions(col, "outlier"),
        )))

        if info.min is not None and info.min < 0:
            scored.append((score - 20, Insight(
                id=f"negatives-{key}",
                severity="info",
                column=col,
                action="investigate",
                text=(
                    f'"{col}" includes negative values. '
                    "Confirm whether negatives represent refunds/credits or data errors."
                ),
                suggested_questions=[f"explain {col}", f"distribution of {col}", "are there any data quality risks"],
            )))

        if info.median is not None and info.median > 0:
            if info.mean / max(1e-9, info.median) >= thresholds.skew_mean_median_ratio:
                scored.append((score - 25, Insight(
                    id=f"skew-{key}",
                    severity="info",
                    column=col,
                    action="monitor",
                    text=(
                        f'"{col}" appears right-skewed (mean > median). '
                        "Median-based KPIs may be more stable for reporting."
                    ),
                    suggested_questions=[
                        "should i use mean or median",
                        f"distribution of {col}",
                        "are extreme values affecting averages",
                    ],
                )))

    scored.sort(key=lambda item: -item[0])
    return [insight for _, insight in scored[: thresholds.max_outlier_insights]]


def _dominance_insight(profile: DatasetProfile, thresholds: Thresholds) -> Optional[Insight]:
    best = None
    best_score = None
    for col, info in profile.columns.items():
        if not isinstance(info, CategoricalColumnProfile) or info.inferred_as_identifier:
            continue
        if not info.top_values:
            continue
        top = info.top_values[0]
        if top.pct < thresholds.dominance_pct or info.unique_count < 2:
            continue

        score = top.pct * 2 - info.unique_count
        if best_score is None or score > best_score:
            best_score = score
            best = Insight(
                id=f"dominance-{normalize_key(col)}",
                severity="info",
                column=col,
                action="segment",
                text=(
                    f'Column "{col}" is highly concentrated: "{top.value}" accounts for '
                    f"~{round_half_up(top.pct)}%. This can hide smaller segments, so break down "
                    f'key metrics by "{col}" before concluding.'
                ),
                suggested_questions=suggest_questions(col, "dominance"),
            )
    return best


def _coverage_insight(profile: DatasetProfile, thresholds: Thresholds) -> Optional[Insight]:
    date_col = next(
        (col for col, info in profile.columns.items() if isinstance(info, DateColumnProfile)),
        None,
    )
    if date_col is None:
        return None

    info = profile.columns[date_col]
    if not info.min or not info.max:
        return None

    if info.unique_count >= thresholds.trend_min_unique_dates:
        detail = (
            f"Enough granularity ({info.unique_count} unique dates) for trend/seasonality "
            "checks via weekly/monthly aggregation."
        )
    else:
        detail = f"Date coverage exists but granularity is limited ({info.unique_count} unique dates)."

    return Insight(
        id=f"{date_col}-coverage",
        severity="info",
        column=date_col,
        action="monitor",
        text=f'Time coverage: "{date_col}" spans {info.min[:10]} → {info.max[:10]}. {detail}',
        suggested_questions=suggest_questions(date_col, "time"),
    )


def _headline_insight(profile: DatasetProfile, kpis: List[KPI]) -> Optional[Insight]:
    sum_kpi = next((k for k in kpis if k.type == "sum" and k.column), None)
    mean_kpi = next((k for k in kpis if k.type == "mean" and k.column), None)

    if sum_kpi is not None:
        col = resolve_column(sum_kpi.column, profile.columns) or sum_kpi.column
        return Insight(
            id=f"headline-total-{normalize_key(col)}",
            severity="positive",
            column=col,
            action="report",
            text=f"Headline: Total {col} = {sum_kpi.value} (useful for top-line reporting).",
            suggested_questions=suggest_questions(col, "headline"),
        )
    if mean_kpi is not None:
        col = resolve_column(mean_kpi.column, profile.columns) or mean_kpi.column
        return Insight(
            id=f"headline-avg-{normalize_key(col)}",
            severity="positive",
            column=col,
            action="report",
            text=f"Headline: Average {col} = {mean_kpi.value} (useful for baseline reporting).",
            suggested_questions=suggest_questions(col, "headline"),
        )
    return None


def main_metric_column(profile: DatasetProfile, kpis: List[KPI]) -> Optional[str]:
    """Column behind the sum KPI, else the mean KPI."""
    metric = next((k for k in kpis if k.type == "sum" and k.column), None)
    metric = metric or next((k for k in kpis if k.type == "mean" and k.column), None)
    if metric is None:
        return None
    return resolve_column(metric.column, profile.columns)


@track_performance("generate_insights")
def generate_insights(
    profile: DatasetProfile,
    kpis: List[KPI],
    thresholds: Optional[Thresholds] = None,
) -> List[Insight]:
    """
    Generate severity-ranked insights from a profile and its KPIs.

    Insights are deduplicated by id, stably sorted warning > positive > info
    and capped at ``max_insights``.
    """
    thresholds = thresholds or DEFAULT_THRESHOLDS
    main_metric = main_metric_column(profile, kpis)

    collected: List[Insight] = []
    collected.extend(_quality_insights(profile, thresholds))
    collected.extend(_missing_insights(profile, thresholds))
    collected.extend(_outlier_insights(profile, main_metric, thresholds))
    for optional in (
        _dominance_insight(profile, thresholds),
        _coverage_insight(profile, thresholds),
        _headline_insight(profile, kpis),
    ):
        if optional is not None:
            collected.append(optional)

    unique: List[Insight] = []
    seen = set()
    for insight in collected:
        if insight.id not in seen:
            seen.add(insight.id)
            unique.append(insight)

    ranked = sorted(unique, key=lambda i: SEVERITY_ORDER.get(i.severity, 2))
    logger.debug(f"Generated {len(ranked)} insights, keeping {min(len(ranked), thresholds.max_insights)}")
    return ranked[: thresholds.max_insights]
