"""Metric ingestion - stores a sample, then evaluates it against alert rules.

The raw sample is committed before any evaluation happens, so a failure in
evaluation or event recording never loses the measurement. Storing,
evaluating and event recording for a website run under that website's lock
(one logical writer per website); different websites proceed in parallel.
"""
import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import AlertRule, MetricSample, Website
from ..utils.db_utils import retry_on_lock, utcnow
from .evaluator import PartialSample, evaluate
from .recorder import AlertEventDelta, AlertEventRecorder, alert_event_recorder
from .settings_store import get_severity_policy

logger = logging.getLogger(__name__)


class WebsiteLocks:
    """Per-website asyncio locks, created on first use."""

    def __init__(self):
        self._locks: Dict[int, asyncio.Lock] = defaultdict(asyncio.Lock)

    def for_website(self, website_id: int) -> asyncio.Lock:
        return self._locks[website_id]


@dataclass
class IngestionOutcome:
    """Stored sample plus whatever alert changes it caused."""
    sample: MetricSample
    deltas: List[AlertEventDelta] = field(default_factory=list)
    evaluation_error: Optional[str] = None


class MetricIngestionService:
    """Records samples and drives evaluation for them."""

    def __init__(self, recorder: AlertEventRecorder = alert_event_recorder, locks: Optional[WebsiteLocks] = None):
        self.recorder = recorder
        self.locks = locks or WebsiteLocks()

    async def record_sample(self, session: AsyncSession, website: Website, values: dict) -> MetricSample:
        """Persist a raw sample. Storage errors propagate to the caller."""
        sample = MetricSample(
            website_id=website.id,
            lcp=values.get("lcp"),
            fid=values.get("fid"),
            cls=values.get("cls"),
            lighthouse_score=values.get("lighthouse_score"),
            performance_score=values.get("performance_score"),
            recorded_at=utcnow(),
        )
        session.add(sample)
        await retry_on_lock(session.commit)
        await session.refresh(sample)
        logger.debug(f"Recorded sample {sample.id} for website {website.id}")
        return sample

    async def evaluate_sample(self, session: AsyncSession, sample: MetricSample) -> List[AlertEventDelta]:
        """Evaluate a stored sample against the website's active rules.

        The caller holds the website's lock.
        """
        result = await session.execute(
            select(AlertRule).where(
                AlertRule.website_id == sample.website_id,
                AlertRule.is_active == 1,
            )
        )
        rules = list(result.scalars().all())
        if not rules:
            return []

        policy = await get_severity_policy(session)
        results = evaluate(PartialSample.from_record(sample), rules, policy)
        return await self.recorder.apply(session, sample.website_id, results)

    async def ingest(self, session: AsyncSession, website: Website, values: dict) -> IngestionOutcome:
        """Store the sample, then evaluate it.

        Evaluation failures are logged and reported on the outcome; the
        sample stays stored either way. Storing and evaluating happen under
        the website's lock so samples are evaluated in the order they were
        stored.
        """
        async with self.locks.for_website(website.id):
            sample = await self.record_sample(session, website, values)
            sample_id = sample.id
            outcome = IngestionOutcome(sample=sample)
            try:
                outcome.deltas = await self.evaluate_sample(session, sample)
            except (SQLAlchemyError, ValueError) as e:
                await session.rollback()
                logger.error(f"Alert evaluation failed for sample {sample_id}: {e}")
                outcome.evaluation_error = str(e)
        # A rollback inside evaluation expires loaded rows
        await session.refresh(sample)
        return outcome


# Global instance
ingestion_service = MetricIngestionService()
