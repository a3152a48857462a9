"""Pydantic schemas for the appetite matcher API request/response models.

Request bodies reuse the engine's input models, so shape validation happens
once at the boundary.  Responses wrap :class:`MatchResult` with presentation
fields the engine itself does not compute.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from appetite_matcher.matching.models import ClientProfile, MatchResult, UnderwriterAppetite
from appetite_matcher.matching.ranker import confidence_band


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class MatchRequest(BaseModel):
    """Inbound body for the stateless /v1/match endpoint.

    Attributes
    ----------
    client_profile:
        The client's risk profile.
    underwriter_appetites:
        Candidate appetites, already filtered to the client's product type.
    """

    client_profile: ClientProfile
    underwriter_appetites: list[UnderwriterAppetite] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class MatchResultResponse(BaseModel):
    """Single underwriter match returned within a :class:`MatchResponse`."""

    underwriter_id: str
    underwriter_name: str
    confidence_score: int
    confidence_band: str
    coverage_fit: str
    jurisdiction_fit: bool
    industry_fit: str
    capacity_fit_diff: float
    exclusions_hit: list[str] = Field(default_factory=list)
    primary_reasons: list[str] = Field(default_factory=list)
    explanation: str = ""
    score_breakdown: dict[str, int] = Field(default_factory=dict)
    last_guide_update: str = "Unknown"

    @classmethod
    def from_result(cls, match: MatchResult) -> "MatchResultResponse":
        return cls(
            **match.model_dump(exclude={"reasons", "failed_criteria"}),
            confidence_band=confidence_band(match.confidence_score),
        )


class MatchResponse(BaseModel):
    """Response from the /v1/match and document match endpoints."""

    top_matches: list[MatchResultResponse] = Field(default_factory=list)
    nearest_misses: list[MatchResultResponse] = Field(default_factory=list)
    total_evaluated: int = 0
    message: str | None = None
    match_time_ms: float = 0.0


class StoredMatchesResponse(BaseModel):
    """Persisted matches for a client document, best first."""

    client_document_id: str
    matches: list[dict[str, Any]] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """System health summary."""

    status: str
    version: str
