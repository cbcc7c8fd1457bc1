"""Website, alert rule, and alert event API endpoints."""
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..dependencies import get_current_user, load_owned_website
from ..models import AlertEvent, AlertRule, MetricSample, User, Website
from ..schemas.alert import AlertRuleCreate, AlertRuleResponse, AlertEventResponse
from ..schemas.metric import MetricSampleResponse
from ..schemas.website import WebsiteCreate, WebsiteResponse
from ..utils.db_utils import read_or_default, retry_on_lock

router = APIRouter(prefix="/api/websites", tags=["websites"])


@router.get("", response_model=List[WebsiteResponse])
async def list_websites(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List the caller's websites."""
    async def query():
        result = await db.execute(
            select(Website).where(Website.user_id == user.id).order_by(Website.name)
        )
        return [WebsiteResponse.model_validate(w) for w in result.scalars().all()]

    return await read_or_default(query, [])


@router.post("", response_model=WebsiteResponse, status_code=201)
async def create_website(
    website: WebsiteCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Register a website for the caller."""
    db_website = Website(user_id=user.id, url=website.url, name=website.name, is_active=1)
    db.add(db_website)
    await retry_on_lock(db.commit)
    await db.refresh(db_website)
    return WebsiteResponse.model_validate(db_website)


@router.get("/{website_id}", response_model=WebsiteResponse)
async def get_website(
    website_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get one of the caller's websites."""
    website = await load_owned_website(db, website_id, user)
    return WebsiteResponse.model_validate(website)


@router.post("/{website_id}/deactivate", response_model=WebsiteResponse)
async def deactivate_website(
    website_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Soft-deactivate a website. Its samples and events are kept."""
    website = await load_owned_website(db, website_id, user)
    website.is_active = 0
    await retry_on_lock(db.commit)
    await db.refresh(website)
    return WebsiteResponse.model_validate(website)


@router.get("/{website_id}/metrics", response_model=List[MetricSampleResponse])
async def get_website_metrics(
    website_id: int,
    limit: int = Query(50, ge=1, le=1000),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Latest samples for a website, newest first."""
    await load_owned_website(db, website_id, user)

    async def query():
        result = await db.execute(
            select(MetricSample)
            .where(MetricSample.website_id == website_id)
            .order_by(MetricSample.recorded_at.desc(), MetricSample.id.desc())
            .limit(limit)
        )
        return [MetricSampleResponse.model_validate(s) for s in result.scalars().all()]

    return await read_or_default(query, [])


@router.get("/{website_id}/alerts", response_model=List[AlertRuleResponse])
async def list_alert_rules(
    website_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List alert rules for a website."""
    await load_owned_website(db, website_id, user)

    async def query():
        result = await db.execute(
            select(AlertRule).where(AlertRule.website_id == website_id).order_by(AlertRule.id)
        )
        return [AlertRuleResponse.model_validate(r) for r in result.scalars().all()]

    return await read_or_default(query, [])


@router.post("/{website_id}/alerts", response_model=AlertRuleResponse, status_code=201)
async def create_alert_rule(
    website_id: int,
    rule: AlertRuleCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create an alert rule for a website."""
    await load_owned_website(db, website_id, user)

    db_rule = AlertRule(
        website_id=website_id,
        metric_type=rule.metric_type,
        threshold_value=rule.threshold_value,
        is_active=1,
    )
    db.add(db_rule)
    await retry_on_lock(db.commit)
    await db.refresh(db_rule)
    return AlertRuleResponse.model_validate(db_rule)


@router.get("/{website_id}/alert-events", response_model=List[AlertEventResponse])
async def list_alert_events(
    website_id: int,
    limit: int = Query(20, ge=1, le=500),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Recent alert events for a website, newest first."""
    await load_owned_website(db, website_id, user)

    async def query():
        result = await db.execute(
            select(AlertEvent)
            .where(AlertEvent.website_id == website_id)
            .order_by(AlertEvent.created_at.desc(), AlertEvent.id.desc())
            .limit(limit)
        )
        return [AlertEventResponse.model_validate(e) for e in result.scalars().all()]

    return await read_or_default(query, [])
