"""
Tests for digest scheduling, composition, and delivery bookkeeping
"""
import asyncio
from datetime import timedelta
from types import SimpleNamespace

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from conftest import FakeTransport, make_rule, make_user, make_website
from vitalwatch.models import AlertEvent, EmailSubscription, PerformanceReport
from vitalwatch.services.dispatcher import NotificationDispatcher, is_due


def subscription(frequency="weekly", last_sent_at=None):
    return SimpleNamespace(id=1, frequency=frequency, last_sent_at=last_sent_at)


class TestIsDue:
    def test_never_sent_is_due(self, now):
        assert is_due(subscription(last_sent_at=None), now)

    def test_weekly_sent_eight_days_ago_is_due(self, now):
        assert is_due(subscription("weekly", now - timedelta(days=8)), now)

    def test_weekly_sent_three_days_ago_is_not_due(self, now):
        assert not is_due(subscription("weekly", now - timedelta(days=3)), now)

    def test_exact_period_is_due(self, now):
        assert is_due(subscription("weekly", now - timedelta(days=7)), now)

    def test_monthly_uses_thirty_days(self, now):
        assert not is_due(subscription("monthly", now - timedelta(days=29)), now)
        assert is_due(subscription("monthly", now - timedelta(days=30)), now)


async def subscribe(session, user, website, frequency="weekly", last_sent_at=None, is_active=1):
    sub = EmailSubscription(
        user_id=user.id,
        website_id=website.id,
        frequency=frequency,
        last_sent_at=last_sent_at,
        is_active=is_active,
    )
    session.add(sub)
    await session.commit()
    return sub


async def add_event(session, rule, created_at, is_resolved=0, value="3000", severity="yellow"):
    event = AlertEvent(
        alert_id=rule.id,
        website_id=rule.website_id,
        metric_value=value,
        severity=severity,
        is_resolved=is_resolved,
        created_at=created_at,
    )
    session.add(event)
    await session.commit()
    return event


async def reload(session_factory, sub_id):
    async with session_factory() as fresh:
        result = await fresh.execute(select(EmailSubscription).where(EmailSubscription.id == sub_id))
        return result.scalar_one()


@pytest.mark.asyncio
async def test_first_send_includes_open_events_and_advances(session, session_factory, owner, website, now):
    rule = await make_rule(session, website)
    await add_event(session, rule, now - timedelta(days=2))
    await add_event(session, await make_rule(session, website, "fid", "100"), now - timedelta(days=1), is_resolved=1)
    sub = await subscribe(session, owner, website)
    transport = FakeTransport()

    results = await NotificationDispatcher(session_factory, transport).dispatch_due(now)

    assert len(results) == 1
    assert results[0].success is True
    assert results[0].event_count == 1
    recipient, digest = transport.sent[0]
    assert recipient == "owner@example.com"
    assert "lcp = 3000 [YELLOW] OPEN" in digest.body
    assert (await reload(session_factory, sub.id)).last_sent_at == now


@pytest.mark.asyncio
async def test_failed_delivery_keeps_last_sent_at(session, session_factory, owner, website, now):
    last_sent = now - timedelta(days=8)
    sub = await subscribe(session, owner, website, last_sent_at=last_sent)

    results = await NotificationDispatcher(session_factory, FakeTransport(succeed=False)).dispatch_due(now)

    assert results[0].success is False
    assert (await reload(session_factory, sub.id)).last_sent_at == last_sent


@pytest.mark.asyncio
async def test_timed_out_delivery_counts_as_failure(session, session_factory, owner, website, now):
    sub = await subscribe(session, owner, website)

    class SlowTransport:
        async def send(self, recipient, digest):
            await asyncio.sleep(5)
            return True

    dispatcher = NotificationDispatcher(session_factory, SlowTransport(), mail_timeout=0.05)
    results = await dispatcher.dispatch_due(now)

    assert results[0].success is False
    assert (await reload(session_factory, sub.id)).last_sent_at is None


@pytest.mark.asyncio
async def test_transport_exception_counts_as_failure(session, session_factory, owner, website, now):
    sub = await subscribe(session, owner, website)

    class BrokenTransport:
        async def send(self, recipient, digest):
            raise ConnectionError("smtp down")

    results = await NotificationDispatcher(session_factory, BrokenTransport()).dispatch_due(now)

    assert results[0].success is False
    assert (await reload(session_factory, sub.id)).last_sent_at is None


@pytest.mark.asyncio
async def test_failed_window_is_retried_on_next_tick(session, session_factory, owner, website, now):
    rule = await make_rule(session, website)
    last_sent = now - timedelta(days=8)
    await add_event(session, rule, now - timedelta(days=1))
    sub = await subscribe(session, owner, website, last_sent_at=last_sent)

    await NotificationDispatcher(session_factory, FakeTransport(succeed=False)).dispatch_due(now)
    transport = FakeTransport()
    later = now + timedelta(minutes=15)
    results = await NotificationDispatcher(session_factory, transport).dispatch_due(later)

    assert results[0].success is True
    assert results[0].event_count == 1
    assert (await reload(session_factory, sub.id)).last_sent_at == later


@pytest.mark.asyncio
async def test_window_covers_events_since_last_send(session, session_factory, owner, website, now):
    rule = await make_rule(session, website)
    last_sent = now - timedelta(days=7)
    await add_event(session, rule, last_sent - timedelta(hours=1), is_resolved=1, value="2900")
    await add_event(session, rule, now - timedelta(days=1), is_resolved=1, value="3100")
    await add_event(session, rule, now + timedelta(minutes=1), value="3300")  # after scan start
    await subscribe(session, owner, website, last_sent_at=last_sent)
    transport = FakeTransport()

    results = await NotificationDispatcher(session_factory, transport).dispatch_due(now)

    assert results[0].event_count == 1
    body = transport.sent[0][1].body
    assert "3100" in body
    assert "2900" not in body
    assert "3300" not in body


@pytest.mark.asyncio
async def test_not_due_subscription_is_skipped(session, session_factory, owner, website, now):
    await subscribe(session, owner, website, last_sent_at=now - timedelta(days=3))
    transport = FakeTransport()

    results = await NotificationDispatcher(session_factory, transport).dispatch_due(now)

    assert results == []
    assert transport.sent == []


@pytest.mark.asyncio
async def test_inactive_subscription_and_website_are_skipped(session, session_factory, owner, website, now):
    await subscribe(session, owner, website, is_active=0)
    retired = await make_website(session, owner, name="Retired", is_active=0)
    await subscribe(session, owner, retired)
    transport = FakeTransport()

    results = await NotificationDispatcher(session_factory, transport).dispatch_due(now)

    assert results == []
    assert transport.sent == []


@pytest.mark.asyncio
async def test_missing_recipient_is_a_failure(session, session_factory, now):
    user = await make_user(session, open_id="no-mail", email=None)
    site = await make_website(session, user)
    sub = await subscribe(session, user, site)

    results = await NotificationDispatcher(session_factory, FakeTransport()).dispatch_due(now)

    assert results[0].success is False
    assert results[0].error == "no recipient email"
    assert (await reload(session_factory, sub.id)).last_sent_at is None


@pytest.mark.asyncio
async def test_digest_includes_latest_report(session, session_factory, owner, website, now):
    session.add(PerformanceReport(
        website_id=website.id,
        report_type="analysis",
        summary="Analysis of 3 metric samples",
        recommendations="Lazy-load below-the-fold images.",
        created_at=now - timedelta(hours=2),
    ))
    await session.commit()
    await subscribe(session, owner, website)
    transport = FakeTransport()

    await NotificationDispatcher(session_factory, transport).dispatch_due(now)

    digest = transport.sent[0][1]
    assert "Lazy-load below-the-fold images." in digest.body
    assert "No alert events in this period." in digest.body
    assert "Example" in digest.subject


@pytest.mark.asyncio
async def test_large_window_is_reported_in_full(session, session_factory, owner, website, now):
    rule = await make_rule(session, website)
    start = now - timedelta(days=1)
    session.add_all([
        AlertEvent(
            alert_id=rule.id,
            website_id=website.id,
            metric_value=str(3000 + i),
            severity="yellow",
            is_resolved=1,
            created_at=start + timedelta(seconds=i),
        )
        for i in range(205)
    ])
    await session.commit()
    sub = await subscribe(session, owner, website, last_sent_at=now - timedelta(days=8))
    transport = FakeTransport()

    first = await NotificationDispatcher(session_factory, transport).dispatch_due(now)
    second = await NotificationDispatcher(session_factory, transport).dispatch_due(now + timedelta(days=8))

    assert first[0].event_count == 205
    assert second[0].event_count == 0
    body = transport.sent[0][1].body
    assert "lcp = 3000 [YELLOW]" in body
    assert "lcp = 3204 [YELLOW]" in body
    assert (await reload(session_factory, sub.id)).last_sent_at == now + timedelta(days=8)


@pytest.mark.asyncio
async def test_storage_error_on_one_subscription_does_not_stop_the_tick(session, session_factory, owner, website, now):
    other_site = await make_website(session, owner, name="Other")
    failing = await subscribe(session, owner, website)
    healthy = await subscribe(session, owner, other_site)
    transport = FakeTransport()

    class FlakyDispatcher(NotificationDispatcher):
        failed = False

        async def _window_events(self, db, subscription, scan_time):
            if not self.failed:
                self.failed = True
                raise OperationalError("SELECT alert_events", {}, Exception("disk I/O error"))
            return await super()._window_events(db, subscription, scan_time)

    results = await FlakyDispatcher(session_factory, transport).dispatch_due(now)

    assert [r.subscription_id for r in results] == [failing.id, healthy.id]
    assert results[0].success is False
    assert results[0].error.startswith("storage error")
    assert results[1].success is True
    assert len(transport.sent) == 1
    assert (await reload(session_factory, failing.id)).last_sent_at is None
    assert (await reload(session_factory, healthy.id)).last_sent_at == now
