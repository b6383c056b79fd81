from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_pipeline
from schemas.api import RecentLogsResponse, StatsResponse, ThreatSummaryResponse
from sentinel.pipeline import SentinelPipeline

router = APIRouter()


@router.get("/stats", response_model=StatsResponse)
async def get_stats(pipeline: SentinelPipeline = Depends(get_pipeline)):
    """Return request, threat and transformation counters."""
    return StatsResponse(**pipeline.get_stats())


@router.get("/threats/summary", response_model=ThreatSummaryResponse)
async def get_threat_summary(pipeline: SentinelPipeline = Depends(get_pipeline)):
    """Summarise buffered threat events by severity and type."""
    summary = pipeline.threat_logger.get_threat_summary()
    summary["recent"] = [entry.to_dict() for entry in summary["recent"]]
    return ThreatSummaryResponse(**summary)


@router.get("/threats/recent", response_model=RecentLogsResponse)
async def get_recent_events(
    count: int = Query(10, ge=1, le=1000),
    level: str | None = Query(None, max_length=10),
    pipeline: SentinelPipeline = Depends(get_pipeline),
):
    """Return the most recent buffered security events."""
    entries = pipeline.threat_logger.get_recent(count=count, level=level)
    return RecentLogsResponse(entries=[entry.to_dict() for entry in entries])
