"""Metric ingestion and analysis API endpoints."""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..dependencies import get_current_user, get_llm_client, load_owned_website
from ..models import User
from ..schemas.metric import (
    AlertChange,
    AnalysisRequest,
    IngestionResponse,
    MetricSampleCreate,
    MetricSampleResponse,
    ReportResponse,
)
from ..services.analysis import generate_analysis, get_latest_report, get_recent_samples
from ..services.ingestion import ingestion_service
from ..services.llm_client import LLMClient, LLMError
from ..utils.db_utils import read_or_default

router = APIRouter(prefix="/api/metrics", tags=["metrics"])


@router.post("", response_model=IngestionResponse, status_code=201)
async def record_metric(
    data: MetricSampleCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Record a Core Web Vitals sample and evaluate it against alert rules."""
    website = await load_owned_website(db, data.website_id, user)
    if not website.is_active:
        raise HTTPException(status_code=409, detail="Website is deactivated")

    values = data.model_dump(exclude={"website_id"})
    outcome = await ingestion_service.ingest(db, website, values)

    return IngestionResponse(
        sample=MetricSampleResponse.model_validate(outcome.sample),
        alert_changes=[
            AlertChange(
                rule_id=d.rule_id,
                event_id=d.event_id,
                action=d.action,
                severity=d.severity,
                metric_value=d.metric_value,
            )
            for d in outcome.deltas
        ],
        evaluation_error=outcome.evaluation_error,
    )


@router.get("/{website_id}/history", response_model=List[MetricSampleResponse])
async def get_history(
    website_id: int,
    limit: int = Query(50, ge=1, le=1000),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Sample history for a website, newest first."""
    await load_owned_website(db, website_id, user)

    async def query():
        samples = await get_recent_samples(db, website_id, limit)
        return [MetricSampleResponse.model_validate(s) for s in samples]

    return await read_or_default(query, [])


@router.post("/{website_id}/analysis", response_model=ReportResponse, status_code=201)
async def create_analysis(
    website_id: int,
    request: Optional[AnalysisRequest] = None,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    client: LLMClient = Depends(get_llm_client),
):
    """Generate and store an LLM analysis of the website's metrics."""
    await load_owned_website(db, website_id, user)

    metrics = None
    if request is not None and request.metrics is not None:
        metrics = [m.model_dump() for m in request.metrics]

    try:
        report = await generate_analysis(db, website_id, metrics, client=client)
    except LLMError as e:
        raise HTTPException(status_code=502, detail=f"Analysis unavailable: {e}")

    return ReportResponse.model_validate(report)


@router.get("/{website_id}/analysis/latest", response_model=Optional[ReportResponse])
async def get_latest_analysis(
    website_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Newest analysis report for a website, or null."""
    await load_owned_website(db, website_id, user)

    async def query():
        report = await get_latest_report(db, website_id)
        return ReportResponse.model_validate(report) if report else None

    return await read_or_default(query, None)
