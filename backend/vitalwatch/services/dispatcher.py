"""Notification dispatcher - sends weekly/monthly alert digests.

Each tick scans active subscriptions of active websites and sends a digest
for every subscription that is due. The scan time ``now`` is fixed when the
tick starts: events created after it wait for the next digest.

``last_sent_at`` moves forward only after the transport confirms delivery,
and it is committed per subscription. A failed, timed-out, or cancelled send
leaves it untouched, so the next tick resends the same window. Duplicate
digests are possible; lost ones are not.
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..config import settings as app_settings
from ..models import AlertEvent, AlertRule, EmailSubscription, PerformanceReport, User, Website
from ..utils.db_utils import retry_on_lock, utcnow
from .email_sender import EmailConfig, EmailSenderService, email_sender_service
from .settings_store import get_all_settings

logger = logging.getLogger(__name__)

FREQUENCY_PERIODS = {
    "weekly": timedelta(days=7),
    "monthly": timedelta(days=30),
}


@dataclass(frozen=True)
class Digest:
    """A composed digest email."""
    subject: str
    body: str
    event_count: int


@dataclass(frozen=True)
class SendResult:
    """Outcome of one subscription's digest in a dispatch tick."""
    subscription_id: int
    website_id: int
    recipient: Optional[str]
    success: bool
    event_count: int = 0
    error: Optional[str] = None


class MailTransport(Protocol):
    """Delivers a digest. Returns True only on confirmed delivery."""

    async def send(self, recipient: str, digest: Digest) -> bool:
        ...


class SmtpMailTransport:
    """Mail transport backed by the SMTP settings in the settings table."""

    def __init__(self, session_factory: async_sessionmaker, sender: EmailSenderService = email_sender_service):
        self.session_factory = session_factory
        self.sender = sender

    async def send(self, recipient: str, digest: Digest) -> bool:
        async with self.session_factory() as session:
            settings = await get_all_settings(session)
        config = EmailConfig.from_settings(settings, timeout=app_settings.mail_timeout_seconds)
        return await self.sender.send_email(config, recipient, digest.subject, digest.body)


def is_due(subscription: EmailSubscription, now: datetime) -> bool:
    """A subscription is due when never sent or a full period has elapsed."""
    if subscription.last_sent_at is None:
        return True
    period = FREQUENCY_PERIODS.get(subscription.frequency)
    if period is None:
        logger.warning(f"Subscription {subscription.id} has unknown frequency {subscription.frequency!r}")
        return False
    return now - subscription.last_sent_at >= period


def compose_digest(
    subscription: EmailSubscription,
    website: Website,
    events: List[AlertEvent],
    rule_metrics: dict,
    report: Optional[PerformanceReport],
    now: datetime,
    subject_prefix: str = "VitalWatch",
) -> Digest:
    """Build the plain-text digest for one subscription."""
    since = subscription.last_sent_at
    open_count = sum(1 for e in events if not e.is_resolved)
    subject = (
        f"{subject_prefix} {subscription.frequency} digest - {website.name} - "
        f"{len(events)} alert event(s)"
    )

    lines = [
        f"{subject_prefix} {subscription.frequency.capitalize()} Digest",
        "=" * 40,
        "",
        f"Website: {website.name}",
        f"URL: {website.url}",
        f"Period: {since.strftime('%Y-%m-%d %H:%M UTC') if since else 'all open alerts'}"
        f" to {now.strftime('%Y-%m-%d %H:%M UTC')}",
        f"Alert events: {len(events)} ({open_count} still open)",
    ]

    if events:
        lines.append("")
        lines.append("--- Alert Events ---")
        for event in events:
            metric = rule_metrics.get(event.alert_id, "unknown")
            state = "RESOLVED" if event.is_resolved else "OPEN"
            stamp = event.created_at.strftime("%Y-%m-%d %H:%M:%S UTC")
            lines.append(f"{stamp}: {metric} = {event.metric_value} [{event.severity.upper()}] {state}")
    else:
        lines.append("")
        lines.append("No alert events in this period.")

    if report is not None:
        lines.append("")
        lines.append(f"--- Latest Report ({report.report_type}, {report.created_at.strftime('%Y-%m-%d')}) ---")
        if report.summary:
            lines.append(report.summary)
        if report.recommendations:
            lines.append("")
            lines.append(report.recommendations)

    lines.append("")
    lines.append("--")
    lines.append(f"{subject_prefix} Core Web Vitals Monitoring")

    return Digest(subject=subject, body="\n".join(lines), event_count=len(events))


class NotificationDispatcher:
    """Scans subscriptions and sends due digests."""

    def __init__(
        self,
        session_factory: async_sessionmaker,
        transport: MailTransport,
        mail_timeout: Optional[float] = None,
    ):
        self.session_factory = session_factory
        self.transport = transport
        self.mail_timeout = mail_timeout if mail_timeout is not None else app_settings.mail_timeout_seconds

    async def _due_subscriptions(self, session: AsyncSession, now: datetime) -> List[EmailSubscription]:
        result = await session.execute(
            select(EmailSubscription)
            .join(Website, Website.id == EmailSubscription.website_id)
            .where(
                EmailSubscription.is_active == 1,
                Website.is_active == 1,
            )
            .order_by(EmailSubscription.id)
        )
        return [sub for sub in result.scalars().all() if is_due(sub, now)]

    async def _window_events(
        self,
        session: AsyncSession,
        subscription: EmailSubscription,
        now: datetime,
    ) -> List[AlertEvent]:
        """Events in (last_sent_at, now], or every open event on a first send."""
        query = select(AlertEvent).where(
            AlertEvent.website_id == subscription.website_id,
            AlertEvent.created_at <= now,
        )
        if subscription.last_sent_at is None:
            query = query.where(AlertEvent.is_resolved == 0)
        else:
            query = query.where(AlertEvent.created_at > subscription.last_sent_at)
        result = await session.execute(
            query.order_by(AlertEvent.created_at, AlertEvent.id)
        )
        return list(result.scalars().all())

    async def _latest_report(self, session: AsyncSession, website_id: int) -> Optional[PerformanceReport]:
        result = await session.execute(
            select(PerformanceReport)
            .where(PerformanceReport.website_id == website_id)
            .order_by(PerformanceReport.created_at.desc(), PerformanceReport.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def _rule_metrics(self, session: AsyncSession, website_id: int) -> dict:
        result = await session.execute(
            select(AlertRule.id, AlertRule.metric_type).where(AlertRule.website_id == website_id)
        )
        return {rule_id: metric_type for rule_id, metric_type in result.all()}

    async def _deliver(self, recipient: str, digest: Digest) -> bool:
        """Call the transport; timeouts and transport errors count as failure."""
        try:
            return bool(await asyncio.wait_for(
                self.transport.send(recipient, digest),
                timeout=self.mail_timeout,
            ))
        except asyncio.TimeoutError:
            logger.warning(f"Mail transport timed out after {self.mail_timeout}s sending to {recipient}")
            return False
        except Exception as e:
            logger.error(f"Mail transport failed sending to {recipient}: {type(e).__name__}: {e}")
            return False

    async def _dispatch_one(
        self,
        session: AsyncSession,
        subscription: EmailSubscription,
        now: datetime,
        subject_prefix: str,
    ) -> SendResult:
        website = await session.get(Website, subscription.website_id)
        user = await session.get(User, subscription.user_id)
        recipient = user.email if user else None

        if not recipient:
            logger.warning(f"Subscription {subscription.id} has no recipient email, skipping")
            return SendResult(subscription.id, subscription.website_id, None, False, error="no recipient email")

        events = await self._window_events(session, subscription, now)
        report = await self._latest_report(session, subscription.website_id)
        rule_metrics = await self._rule_metrics(session, subscription.website_id)
        digest = compose_digest(subscription, website, events, rule_metrics, report, now, subject_prefix)

        if not await self._deliver(recipient, digest):
            return SendResult(
                subscription.id, subscription.website_id, recipient, False,
                event_count=digest.event_count, error="delivery failed",
            )

        subscription.last_sent_at = now
        await retry_on_lock(session.commit)
        logger.info(
            f"Sent {subscription.frequency} digest for website {subscription.website_id} "
            f"to {recipient} ({digest.event_count} events)"
        )
        return SendResult(subscription.id, subscription.website_id, recipient, True, event_count=digest.event_count)

    async def dispatch_due(self, now: Optional[datetime] = None) -> List[SendResult]:
        """Send digests for every due subscription as of ``now``."""
        now = now or utcnow()
        results = []

        async with self.session_factory() as session:
            settings = await get_all_settings(session)
            subject_prefix = settings.get("digest_subject_prefix") or "VitalWatch"
            due = await self._due_subscriptions(session, now)
            if not due:
                return results

            logger.info(f"Dispatching {len(due)} due digest(s)")
            due_keys = [(sub.id, sub.website_id) for sub in due]
            for subscription_id, website_id in due_keys:
                try:
                    # A rollback below expires loaded rows, so reload each time
                    subscription = await session.get(EmailSubscription, subscription_id, populate_existing=True)
                    results.append(await self._dispatch_one(session, subscription, now, subject_prefix))
                except SQLAlchemyError as e:
                    await session.rollback()
                    logger.error(f"Digest for subscription {subscription_id} failed on storage: {e}")
                    results.append(SendResult(subscription_id, website_id, None, False, error=f"storage error: {e}"))

        return results
