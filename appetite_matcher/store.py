"""Appetite store — reads candidate underwriter appetites and persists match
results.

Stored appetite rows are loosely shaped (they come out of document
extraction), so each one is validated into an :class:`UnderwriterAppetite`
here; rows that fail validation are logged and skipped rather than reaching
the scorer.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from appetite_matcher.db import AppetiteData, AppetiteGuide, AppetiteMatchRecord, async_session
from appetite_matcher.matching.models import MatchResult, UnderwriterAppetite

logger = logging.getLogger("appetite_matcher.store")

PROCESSED_STATUS = "processed"


class AppetiteStore:
    """Database access for the matching engine.

    Parameters
    ----------
    session_factory:
        Optional async session factory; defaults to the application's
        :data:`appetite_matcher.db.async_session`.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
        self._session_factory = session_factory or async_session

    async def load_candidates(self, product_type: str) -> list[UnderwriterAppetite]:
        """Return the appetites for *product_type* from processed guides.

        Candidates come back in the order their appetite rows were created,
        which is the order ranking ties fall back to.
        """
        query = (
            select(AppetiteData, AppetiteGuide)
            .join(AppetiteGuide, AppetiteData.appetite_document_id == AppetiteGuide.id)
            .where(
                AppetiteData.product_type == product_type,
                AppetiteGuide.status == PROCESSED_STATUS,
            )
            .order_by(AppetiteData.created_at, AppetiteData.id)
        )
        async with self._session_factory() as session:
            rows = (await session.execute(query)).all()

        candidates: list[UnderwriterAppetite] = []
        for data, guide in rows:
            try:
                candidates.append(appetite_from_row(data, guide))
            except ValidationError as exc:
                logger.warning(
                    "Skipping malformed appetite row id=%s underwriter=%s: %s",
                    data.id,
                    data.underwriter_name,
                    exc,
                )
        logger.info("Loaded %d candidate appetites for product=%s", len(candidates), product_type)
        return candidates

    async def save_matches(self, client_document_id: str, matches: list[MatchResult]) -> int:
        """Persist one ``appetite_match_results`` row per match; returns the count written."""
        if not matches:
            return 0
        async with self._session_factory() as session:
            async with session.begin():
                session.add_all(
                    [
                        AppetiteMatchRecord(
                            client_document_id=client_document_id,
                            carrier_id=m.underwriter_id,
                            confidence_score=m.confidence_score,
                            coverage_fit=m.coverage_fit,
                            jurisdiction_fit=m.jurisdiction_fit,
                            industry_fit=m.industry_fit,
                            capacity_fit_diff=m.capacity_fit_diff,
                            exclusions_hit=list(m.exclusions_hit),
                            primary_reasons=list(m.primary_reasons),
                            explanation=m.explanation,
                            score_breakdown=dict(m.score_breakdown),
                        )
                        for m in matches
                    ]
                )
        logger.info("Saved %d match results for document=%s", len(matches), client_document_id)
        return len(matches)

    async def list_matches(self, client_document_id: str) -> list[dict]:
        """Return persisted matches for a document, best first, with the carrier name."""
        query = (
            select(
                AppetiteMatchRecord.__table__,
                AppetiteGuide.underwriter_name,
            )
            .join(AppetiteGuide, AppetiteMatchRecord.carrier_id == AppetiteGuide.id, isouter=True)
            .where(AppetiteMatchRecord.client_document_id == client_document_id)
            .order_by(AppetiteMatchRecord.confidence_score.desc())
        )
        async with self._session_factory() as session:
            rows = (await session.execute(query)).mappings().all()
        return [_row_to_dict(row) for row in rows]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def appetite_from_row(data: AppetiteData, guide: AppetiteGuide) -> UnderwriterAppetite:
    """Validate a stored appetite row into an :class:`UnderwriterAppetite`.

    The guide's id identifies the underwriter; its name and update time take
    precedence over the copies on the data row.
    """
    return UnderwriterAppetite(
        underwriter_id=guide.id,
        underwriter_name=guide.underwriter_name or data.underwriter_name,
        last_updated=guide.updated_at,
        coverage_amount_min=data.coverage_amount_min,
        coverage_amount_max=data.coverage_amount_max,
        jurisdictions=data.jurisdictions,
        industry_classes=data.industry_classes,
        target_sectors=data.target_sectors,
        revenue_range_min=data.revenue_range_min,
        revenue_range_max=data.revenue_range_max,
        security_requirements=data.security_requirements,
        exclusions=data.exclusions,
    )


def _row_to_dict(row: Any) -> dict:
    """Convert a SQLAlchemy mapping row to a plain dict, serialising dates."""
    d = dict(row)
    for k, v in d.items():
        if isinstance(v, (date, datetime)):
            d[k] = v.isoformat()
    return d
