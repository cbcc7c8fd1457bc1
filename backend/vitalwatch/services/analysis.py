"""Performance analysis - averages recent metrics and asks the LLM for advice."""
import json
import logging
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import MetricSample, PerformanceReport
from ..utils.db_utils import retry_on_lock
from .llm_client import LLMClient, llm_client

logger = logging.getLogger(__name__)

REPORT_TYPE_ANALYSIS = "analysis"
DEFAULT_SAMPLE_LIMIT = 50


def average(values: Iterable) -> Decimal:
    """Mean of the present values; zero when none are present."""
    present = [Decimal(v) for v in values if v is not None]
    if not present:
        return Decimal(0)
    return sum(present) / len(present)


def build_prompt(avg_lcp: Decimal, avg_lighthouse: Decimal) -> str:
    return (
        "Analyze these Core Web Vitals metrics and provide optimization recommendations:\n"
        "\n"
        f"Average LCP: {avg_lcp:.0f}ms\n"
        f"Average Lighthouse Score: {avg_lighthouse:.0f}/100\n"
        "\n"
        "Provide specific, actionable recommendations to improve these metrics."
    )


async def get_recent_samples(session: AsyncSession, website_id: int, limit: int = DEFAULT_SAMPLE_LIMIT):
    result = await session.execute(
        select(MetricSample)
        .where(MetricSample.website_id == website_id)
        .order_by(MetricSample.recorded_at.desc(), MetricSample.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def get_latest_report(
    session: AsyncSession,
    website_id: int,
    report_type: str = REPORT_TYPE_ANALYSIS,
) -> Optional[PerformanceReport]:
    result = await session.execute(
        select(PerformanceReport)
        .where(
            PerformanceReport.website_id == website_id,
            PerformanceReport.report_type == report_type,
        )
        .order_by(PerformanceReport.created_at.desc(), PerformanceReport.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def generate_analysis(
    session: AsyncSession,
    website_id: int,
    metrics: Optional[list] = None,
    client: LLMClient = llm_client,
) -> PerformanceReport:
    """Create an analysis report for a website.

    ``metrics`` is a list of dicts with optional ``lcp`` and
    ``lighthouse_score``; without it the latest stored samples are used.
    LLMError propagates and nothing is stored.
    """
    if metrics is None:
        samples = await get_recent_samples(session, website_id)
        metrics = [
            {"lcp": s.lcp, "lighthouse_score": s.lighthouse_score}
            for s in samples
        ]

    avg_lcp = average(m.get("lcp") for m in metrics)
    avg_lighthouse = average(m.get("lighthouse_score") for m in metrics)

    recommendations = await client.summarize(build_prompt(avg_lcp, avg_lighthouse))

    report = PerformanceReport(
        website_id=website_id,
        report_type=REPORT_TYPE_ANALYSIS,
        summary=f"Analysis of {len(metrics)} metric samples",
        metrics=json.dumps({
            "avgLcp": float(avg_lcp),
            "avgLighthouse": float(avg_lighthouse),
            "sampleCount": len(metrics),
        }),
        recommendations=recommendations,
    )
    session.add(report)
    await retry_on_lock(session.commit)
    await session.refresh(report)
    logger.info(f"Stored analysis report {report.id} for website {website_id} ({len(metrics)} samples)")
    return report
