"""Pytest configuration and shared fixtures."""

from datetime import datetime, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from appetite_matcher.db import create_tables
from appetite_matcher.matching import (
    AppetiteScorer,
    ClientProfile,
    MatchResult,
    ReasonFormatter,
    UnderwriterAppetite,
)
from appetite_matcher.store import AppetiteStore


@pytest.fixture
def make_client():
    """Factory for client profiles with neutral defaults."""

    def _make(**overrides) -> ClientProfile:
        fields = {
            "industry": "Technology",
            "requested_coverage_amount": 5_000_000,
            "insurance_product": "Cyber",
        }
        fields.update(overrides)
        return ClientProfile(**fields)

    return _make


@pytest.fixture
def make_appetite():
    """Factory for underwriter appetites with every constraint unset."""

    def _make(**overrides) -> UnderwriterAppetite:
        fields = {
            "underwriter_id": "uw-1",
            "underwriter_name": "Harbour Specialty",
        }
        fields.update(overrides)
        return UnderwriterAppetite(**fields)

    return _make


@pytest.fixture
def make_result():
    """Factory for bare match results with a given score."""

    def _make(underwriter_id: str, score: int) -> MatchResult:
        return MatchResult(
            underwriter_id=underwriter_id,
            underwriter_name=f"Underwriter {underwriter_id}",
            confidence_score=score,
        )

    return _make


@pytest.fixture
def scorer() -> AppetiteScorer:
    """Scorer with default weights and a fixed sterling formatter."""
    return AppetiteScorer(formatter=ReasonFormatter(currency_symbol="£"))


@pytest.fixture
def guide_updated_at() -> datetime:
    return datetime(2025, 3, 14, 9, 30, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def store():
    """AppetiteStore over a fresh in-memory SQLite database."""
    db_engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_tables(db_engine)
    session_factory = async_sessionmaker(db_engine, expire_on_commit=False)
    yield AppetiteStore(session_factory=session_factory)
    await db_engine.dispose()
