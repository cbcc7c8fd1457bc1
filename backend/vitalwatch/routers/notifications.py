"""Email subscription and digest dispatch API endpoints."""
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..dependencies import get_current_user, get_dispatcher, load_owned_website
from ..models import EmailSubscription, User
from ..schemas.subscription import SubscriptionCreate, SubscriptionResponse, SendResultResponse
from ..services.dispatcher import NotificationDispatcher
from ..utils.db_utils import read_or_default, retry_on_lock

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.post("/subscriptions", response_model=SubscriptionResponse, status_code=201)
async def subscribe(
    data: SubscriptionCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Subscribe the caller to a website's digest."""
    await load_owned_website(db, data.website_id, user)

    subscription = EmailSubscription(
        user_id=user.id,
        website_id=data.website_id,
        frequency=data.frequency,
        is_active=1,
    )
    db.add(subscription)
    await retry_on_lock(db.commit)
    await db.refresh(subscription)
    return SubscriptionResponse.model_validate(subscription)


@router.get("/subscriptions", response_model=List[SubscriptionResponse])
async def list_subscriptions(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List the caller's subscriptions."""
    async def query():
        result = await db.execute(
            select(EmailSubscription)
            .where(EmailSubscription.user_id == user.id)
            .order_by(EmailSubscription.id)
        )
        return [SubscriptionResponse.model_validate(s) for s in result.scalars().all()]

    return await read_or_default(query, [])


@router.post("/dispatch", response_model=List[SendResultResponse])
async def run_dispatch(
    user: User = Depends(get_current_user),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """Run one dispatch cycle now (for cron-style external triggers)."""
    results = await dispatcher.dispatch_due()
    return [
        SendResultResponse(
            subscription_id=r.subscription_id,
            website_id=r.website_id,
            recipient=r.recipient,
            success=r.success,
            event_count=r.event_count,
            error=r.error,
        )
        for r in results
    ]
