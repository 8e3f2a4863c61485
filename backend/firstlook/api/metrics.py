"""
Metrics endpoint for performance monitoring.
"""
from fastapi import APIRouter
from firstlook.core.performance import PerformanceMonitor

router = APIRouter()


@router.get("/metrics")
async def get_metrics():
    """
    Timing statistics for every tracked pipeline stage and for requests.

    Stages: profile_dataset, select_kpis, generate_charts, generate_insights,
    analyze, ask and request_duration.
    """
    return {'performance': PerformanceMonitor.get_all_metrics()}
