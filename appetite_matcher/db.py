"""SQLAlchemy ORM models for appetite guides and persisted match results."""

import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import (
    JSON, Boolean, DateTime, Float, ForeignKey, Integer, String, Text, func,
)
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from appetite_matcher.config import settings


def _new_id() -> str:
    return str(uuid.uuid4())


# ── Engine & Session ──────────────────────────────────────────────

engine = create_async_engine(settings.database_url, echo=False)
async_session = async_sessionmaker(engine, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


async def create_tables(db_engine: Optional[AsyncEngine] = None) -> None:
    """Create every table declared on :class:`Base` if it does not exist."""
    async with (db_engine or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# ── Appetite Guides ──────────────────────────────────────────────

class AppetiteGuide(Base):
    """An uploaded underwriter appetite document; its id identifies the carrier."""

    __tablename__ = "underwriter_appetites"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    underwriter_name: Mapped[str] = mapped_column(String(500), nullable=False)
    filename: Mapped[Optional[str]] = mapped_column(String(500))
    logo_url: Mapped[Optional[str]] = mapped_column(String(1000))
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    appetite_data: Mapped[list["AppetiteData"]] = relationship(back_populates="guide")


class AppetiteData(Base):
    """Structured appetite extracted from a guide, one row per product type."""

    __tablename__ = "underwriter_appetite_data"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    appetite_document_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("underwriter_appetites.id"), nullable=False
    )
    underwriter_name: Mapped[str] = mapped_column(String(500), nullable=False)
    product_type: Mapped[Optional[str]] = mapped_column(String(200))
    coverage_amount_min: Mapped[Optional[float]] = mapped_column(Float)
    coverage_amount_max: Mapped[Optional[float]] = mapped_column(Float)
    jurisdictions: Mapped[Optional[list[str]]] = mapped_column(JSON)
    industry_classes: Mapped[Optional[list[str]]] = mapped_column(JSON)
    target_sectors: Mapped[Optional[list[str]]] = mapped_column(JSON)
    revenue_range_min: Mapped[Optional[float]] = mapped_column(Float)
    revenue_range_max: Mapped[Optional[float]] = mapped_column(Float)
    security_requirements: Mapped[Optional[list[str]]] = mapped_column(JSON)
    exclusions: Mapped[Optional[list[str]]] = mapped_column(JSON)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    guide: Mapped[AppetiteGuide] = relationship(back_populates="appetite_data")


# ── Match Results ────────────────────────────────────────────────

class AppetiteMatchRecord(Base):
    """A persisted top match for a client document."""

    __tablename__ = "appetite_match_results"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    client_document_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    carrier_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("underwriter_appetites.id"), nullable=False
    )
    confidence_score: Mapped[int] = mapped_column(Integer, nullable=False)
    coverage_fit: Mapped[str] = mapped_column(String(20), nullable=False)
    jurisdiction_fit: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    industry_fit: Mapped[str] = mapped_column(String(20), nullable=False)
    capacity_fit_diff: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    exclusions_hit: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    primary_reasons: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    explanation: Mapped[str] = mapped_column(Text, nullable=False, default="")
    score_breakdown: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    matched_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
