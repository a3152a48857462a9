"""Pydantic models for the appetite matching engine.

Inputs (:class:`ClientProfile`, :class:`UnderwriterAppetite`) are validated
here, at the ingestion boundary, so the scorer itself can treat every field as
well-typed.  Non-finite numbers are rejected; negative amounts are accepted and
flow through the arithmetic unchanged.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

CoverageFit = Literal["unknown", "within-range", "near-range", "below-minimum", "above-maximum"]
IndustryFit = Literal["no-match", "sector-match", "direct-match"]

SCORE_CATEGORIES = ("base", "coverage", "jurisdiction", "industry", "revenue", "security", "exclusions")


def _drop_blank_labels(value: Optional[list[str]]) -> Optional[list[str]]:
    if value is None:
        return None
    return [label for label in value if label and label.strip()]


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


class ClientProfile(BaseModel):
    """Normalised risk attributes of a prospective insured.

    Attributes
    ----------
    industry:
        Free-text industry label.
    requested_coverage_amount:
        Requested limit, in the platform currency.
    revenue:
        Annual revenue, if known.
    jurisdictions:
        Operating jurisdictions.  A single string is accepted and wrapped.
    security_controls:
        Control labels such as ``"MFA"`` or ``"encryption at rest"``.
    special_exposures:
        Risk exposure labels checked against underwriter exclusions.
    insurance_product:
        Product type used upstream to pre-filter candidate underwriters.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", allow_inf_nan=False)

    industry: str = Field(..., min_length=1)
    requested_coverage_amount: float
    revenue: Optional[float] = None
    jurisdictions: Optional[list[str]] = Field(
        default=None,
        validation_alias=AliasChoices("jurisdictions", "jurisdiction"),
    )
    security_controls: Optional[list[str]] = None
    special_exposures: Optional[list[str]] = None
    insurance_product: str = ""

    @field_validator("industry", mode="before")
    @classmethod
    def _strip_industry(cls, value: Any) -> Any:
        # Stripped before min_length applies, so whitespace-only is rejected
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("jurisdictions", mode="before")
    @classmethod
    def _wrap_scalar_jurisdiction(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("jurisdictions", "security_controls", "special_exposures")
    @classmethod
    def _strip_blank(cls, value: Optional[list[str]]) -> Optional[list[str]]:
        return _drop_blank_labels(value)


class UnderwriterAppetite(BaseModel):
    """One underwriter's stated appetite for a product.

    Every constraint is optional.  A missing (or zero) bound means the
    corresponding factor is not scored.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", allow_inf_nan=False)

    underwriter_id: str
    underwriter_name: str
    last_updated: Optional[datetime] = None
    coverage_amount_min: Optional[float] = None
    coverage_amount_max: Optional[float] = None
    jurisdictions: Optional[list[str]] = None
    industry_classes: Optional[list[str]] = None
    target_sectors: Optional[list[str]] = None
    revenue_range_min: Optional[float] = None
    revenue_range_max: Optional[float] = None
    security_requirements: Optional[list[str]] = None
    exclusions: Optional[list[str]] = None

    @field_validator(
        "jurisdictions",
        "industry_classes",
        "target_sectors",
        "security_requirements",
        "exclusions",
    )
    @classmethod
    def _strip_blank(cls, value: Optional[list[str]]) -> Optional[list[str]]:
        return _drop_blank_labels(value)


# ---------------------------------------------------------------------------
# Outputs
# ---------------------------------------------------------------------------


class MatchReason(BaseModel):
    """A structured scoring outcome, rendered to text by :class:`ReasonFormatter`."""

    model_config = ConfigDict(frozen=True)

    code: str
    values: dict[str, Any] = Field(default_factory=dict)


class MatchResult(BaseModel):
    """Scored, explained match of one client against one underwriter.

    Attributes
    ----------
    confidence_score:
        Fit score after the exclusion override, clamped to the weights'
        ``min_score``/``max_score`` (0-100 by default).
    capacity_fit_diff:
        Requested amount minus the underwriter's maximum (negative means
        within capacity; a missing maximum counts as 0).
    exclusions_hit:
        Lower-cased exclusion keywords that matched, not de-duplicated.
    primary_reasons:
        Up to three rendered positive reasons, in factor order.
    score_breakdown:
        Signed contribution per category; see ``SCORE_CATEGORIES``.
    reasons / failed_criteria:
        Every positive outcome and failed criterion in structured form.
    """

    model_config = ConfigDict(frozen=True)

    underwriter_id: str
    underwriter_name: str
    confidence_score: int
    coverage_fit: CoverageFit = "unknown"
    jurisdiction_fit: bool = False
    industry_fit: IndustryFit = "no-match"
    capacity_fit_diff: float = 0.0
    exclusions_hit: list[str] = Field(default_factory=list)
    primary_reasons: list[str] = Field(default_factory=list)
    explanation: str = ""
    score_breakdown: dict[str, int] = Field(default_factory=dict)
    last_guide_update: str = "Unknown"
    reasons: list[MatchReason] = Field(default_factory=list)
    failed_criteria: list[MatchReason] = Field(default_factory=list)


class MatchPartition(BaseModel):
    """Ranked suggestions: strong matches plus borderline nearest misses."""

    top_matches: list[MatchResult] = Field(default_factory=list)
    nearest_misses: list[MatchResult] = Field(default_factory=list)


class MatchRun(MatchPartition):
    """Outcome of one match run over a candidate list."""

    total_evaluated: int = 0
    message: Optional[str] = None
