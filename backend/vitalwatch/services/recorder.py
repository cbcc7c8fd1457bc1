"""Alert event recorder - turns evaluation results into alert event rows.

Per rule the state is one of: no event, one unresolved event, or only
resolved events. Transitions:

- breach with no open event      -> insert a new unresolved event
- breach with an open event      -> update severity/value in place
- compliant with an open event   -> resolve it (stamp resolved_at)
- compliant with no open event   -> nothing

The partial unique index on ``alert_events(alert_id) WHERE is_resolved = 0``
guarantees a single open event per rule even when two writers race. The
loser's insert fails, its transaction is rolled back and re-applied, and on
the second pass it finds the winner's row and updates it.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import AlertEvent
from ..utils.db_utils import utcnow
from .evaluator import EvaluationResult

logger = logging.getLogger(__name__)

ACTION_OPENED = "opened"
ACTION_UPDATED = "updated"
ACTION_RESOLVED = "resolved"

# One retry is enough: after a lost race the open row exists and is updated
MAX_APPLY_ATTEMPTS = 2


@dataclass(frozen=True)
class AlertEventDelta:
    """A change made to an alert event."""
    rule_id: int
    event_id: int
    action: str  # opened, updated, resolved
    severity: str
    metric_value: str


def format_metric_value(value) -> str:
    """Snapshot text for a metric value (no float rendering)."""
    return format(value, "f")


class AlertEventRecorder:
    """Applies evaluation results to the alert_events table."""

    async def _find_open_event(self, session: AsyncSession, rule_id: int) -> Optional[AlertEvent]:
        result = await session.execute(
            select(AlertEvent).where(
                AlertEvent.alert_id == rule_id,
                AlertEvent.is_resolved == 0,
            )
        )
        return result.scalar_one_or_none()

    async def _apply_once(
        self,
        session: AsyncSession,
        website_id: int,
        results: Sequence[EvaluationResult],
        now: datetime,
    ) -> List[AlertEventDelta]:
        deltas = []
        for res in results:
            open_event = await self._find_open_event(session, res.rule_id)
            metric_value = format_metric_value(res.value)

            if res.breached:
                if open_event is None:
                    event = AlertEvent(
                        alert_id=res.rule_id,
                        website_id=website_id,
                        metric_value=metric_value,
                        severity=res.severity,
                        is_resolved=0,
                        created_at=now,
                        updated_at=now,
                    )
                    session.add(event)
                    # Flush now so a duplicate open event fails on this row
                    await session.flush()
                    deltas.append(AlertEventDelta(
                        res.rule_id, event.id, ACTION_OPENED, res.severity, metric_value,
                    ))
                elif open_event.severity != res.severity or open_event.metric_value != metric_value:
                    open_event.severity = res.severity
                    open_event.metric_value = metric_value
                    open_event.updated_at = now
                    deltas.append(AlertEventDelta(
                        res.rule_id, open_event.id, ACTION_UPDATED, res.severity, metric_value,
                    ))
            elif open_event is not None:
                open_event.is_resolved = 1
                open_event.resolved_at = now
                open_event.updated_at = now
                deltas.append(AlertEventDelta(
                    res.rule_id, open_event.id, ACTION_RESOLVED, res.severity, metric_value,
                ))

        await session.flush()
        return deltas

    async def apply(
        self,
        session: AsyncSession,
        website_id: int,
        results: Sequence[EvaluationResult],
        now: Optional[datetime] = None,
    ) -> List[AlertEventDelta]:
        """Apply results for one website in a single transaction and commit it.

        Returns the changes made. Repeating an identical breach returns no
        delta and writes nothing.
        """
        if not results:
            return []
        now = now or utcnow()

        for attempt in range(1, MAX_APPLY_ATTEMPTS + 1):
            try:
                deltas = await self._apply_once(session, website_id, results, now)
                await session.commit()
            except IntegrityError:
                await session.rollback()
                if attempt == MAX_APPLY_ATTEMPTS:
                    raise
                logger.info(
                    f"Concurrent open alert event for website {website_id}, re-applying"
                )
                continue

            for delta in deltas:
                logger.info(
                    f"Alert event {delta.event_id} {delta.action} "
                    f"(rule {delta.rule_id}, {delta.severity}, value {delta.metric_value})"
                )
            return deltas
        return []


# Global instance
alert_event_recorder = AlertEventRecorder()
