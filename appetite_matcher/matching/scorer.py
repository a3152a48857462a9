"""Appetite scorer — rule-based 0-100 fit score for one client against one
underwriter's appetite, combining coverage capacity, jurisdiction, industry,
revenue band, and security-control checks, with hard exclusions overriding
everything.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Optional

from appetite_matcher.matching.models import (
    SCORE_CATEGORIES,
    ClientProfile,
    MatchReason,
    MatchResult,
    UnderwriterAppetite,
)
from appetite_matcher.matching.reasons import ReasonFormatter, build_explanation
from appetite_matcher.matching.weights import DEFAULT_WEIGHTS, ScoringWeights

logger = logging.getLogger("appetite_matcher.matching.scorer")

# Common abbreviations mapped to the names appetite guides spell out
JURISDICTION_ALIASES = {
    "uk": "united kingdom",
    "gb": "united kingdom",
    "great britain": "united kingdom",
    "us": "united states",
    "usa": "united states",
    "uae": "united arab emirates",
    "eu": "european union",
}


@dataclass
class _FactorOutcome:
    """Result of one scoring factor that was evaluated."""

    points: int = 0
    fit: Any = None
    reason: Optional[MatchReason] = None
    failure: Optional[MatchReason] = None


# ---------------------------------------------------------------------------
# AppetiteScorer
# ---------------------------------------------------------------------------


class AppetiteScorer:
    """Scores how well a client fits an underwriter's appetite.

    Starting from ``base_score`` the scorer adds or subtracts points for:

    - **coverage** — requested limit against the appetite's min/max
    - **jurisdiction** — every client jurisdiction covered
    - **industry** — direct industry class match, else target sector match
    - **revenue** — client revenue inside the appetite's revenue band
    - **security** — every mandated control present (all-or-nothing)

    A factor whose appetite data is missing is skipped.  Any hit on a hard
    exclusion forces the score to zero.  The scorer is stateless; identical
    inputs always give identical results.

    Parameters
    ----------
    weights:
        Point values and thresholds; defaults to :data:`DEFAULT_WEIGHTS`.
    formatter:
        Renders reasons to text; defaults to a :class:`ReasonFormatter`
        using the configured currency symbol.
    """

    def __init__(
        self,
        weights: ScoringWeights = DEFAULT_WEIGHTS,
        formatter: ReasonFormatter | None = None,
    ) -> None:
        self.weights = weights
        self.formatter = formatter or ReasonFormatter()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def score_match(self, client: ClientProfile, underwriter: UnderwriterAppetite) -> MatchResult:
        """Score *client* against *underwriter* and explain the result.

        Parameters
        ----------
        client:
            The client's risk profile.
        underwriter:
            One candidate underwriter appetite.

        Returns
        -------
        MatchResult
        """
        w = self.weights
        breakdown = {category: 0 for category in SCORE_CATEGORIES}
        breakdown["base"] = w.base_score
        reasons: list[MatchReason] = []
        failed: list[MatchReason] = []

        fits: dict[str, Any] = {
            "coverage": "unknown",
            "jurisdiction": False,
            "industry": "no-match",
        }

        factors = (
            ("coverage", self._score_coverage(client, underwriter)),
            ("jurisdiction", self._score_jurisdiction(client, underwriter)),
            ("industry", self._score_industry(client, underwriter)),
            ("revenue", self._score_revenue(client, underwriter)),
            ("security", self._score_security(client, underwriter)),
        )
        for category, outcome in factors:
            if outcome is None:
                continue
            breakdown[category] = outcome.points
            if category in fits and outcome.fit is not None:
                fits[category] = outcome.fit
            if outcome.reason is not None:
                reasons.append(outcome.reason)
            if outcome.failure is not None:
                failed.append(outcome.failure)

        score = w.base_score + sum(breakdown[c] for c, _ in factors)

        exclusions_hit = self._find_exclusions(client, underwriter)
        if exclusions_hit:
            score = 0
            breakdown["exclusions"] = w.exclusion_breakdown
            failed.append(MatchReason(code="exclusions_hit", values={"exclusions": exclusions_hit}))

        score = max(w.min_score, min(w.max_score, score))

        rendered_reasons = self.formatter.render_all(reasons)
        rendered_failed = self.formatter.render_all(failed)

        logger.debug(
            "Scored underwriter=%s score=%d breakdown=%s",
            underwriter.underwriter_id,
            score,
            breakdown,
        )

        return MatchResult(
            underwriter_id=underwriter.underwriter_id,
            underwriter_name=underwriter.underwriter_name,
            confidence_score=score,
            coverage_fit=fits["coverage"],
            jurisdiction_fit=fits["jurisdiction"],
            industry_fit=fits["industry"],
            capacity_fit_diff=client.requested_coverage_amount - (underwriter.coverage_amount_max or 0),
            exclusions_hit=exclusions_hit,
            primary_reasons=rendered_reasons[: w.primary_reason_limit],
            explanation=build_explanation(rendered_reasons, rendered_failed, score, w),
            score_breakdown=breakdown,
            last_guide_update=(
                underwriter.last_updated.date().isoformat()
                if underwriter.last_updated
                else "Unknown"
            ),
            reasons=reasons,
            failed_criteria=failed,
        )

    # ------------------------------------------------------------------
    # Scoring components
    # ------------------------------------------------------------------

    def _score_coverage(
        self, client: ClientProfile, underwriter: UnderwriterAppetite
    ) -> _FactorOutcome | None:
        """Score the requested limit against the appetite's coverage band.

        Requests a little way above the maximum (between the near-range and
        far-above factors) fall between the bands and score nothing.
        """
        if not (underwriter.coverage_amount_min or underwriter.coverage_amount_max):
            return None

        w = self.weights
        minimum = underwriter.coverage_amount_min or 0
        maximum = underwriter.coverage_amount_max or math.inf
        requested = client.requested_coverage_amount

        if minimum <= requested <= maximum:
            return _FactorOutcome(
                points=w.coverage_within_range,
                fit="within-range",
                reason=MatchReason(
                    code="coverage_within_range",
                    values={"requested": requested, "minimum": minimum, "maximum": maximum},
                ),
            )
        if requested <= maximum * w.near_range_upper_factor and requested >= minimum * w.near_range_lower_factor:
            return _FactorOutcome(
                points=w.coverage_near_range,
                fit="near-range",
                reason=MatchReason(code="coverage_near_range", values={"requested": requested}),
            )
        if requested < minimum:
            return _FactorOutcome(
                points=w.coverage_below_minimum,
                fit="below-minimum",
                failure=MatchReason(
                    code="coverage_below_minimum",
                    values={"requested": requested, "minimum": minimum},
                ),
            )
        if requested > maximum * w.above_maximum_factor:
            return _FactorOutcome(
                points=w.coverage_above_maximum,
                fit="above-maximum",
                failure=MatchReason(
                    code="coverage_above_maximum",
                    values={"requested": requested, "maximum": maximum},
                ),
            )
        return _FactorOutcome()

    def _score_jurisdiction(
        self, client: ClientProfile, underwriter: UnderwriterAppetite
    ) -> _FactorOutcome | None:
        """Score jurisdiction coverage: all matched, partial, or none."""
        if not underwriter.jurisdictions or not client.jurisdictions:
            return None

        w = self.weights
        client_jurisdictions = list(client.jurisdictions)
        matched = [
            cj
            for cj in client_jurisdictions
            if any(_jurisdictions_match(cj, aj) for aj in underwriter.jurisdictions)
        ]

        if len(matched) == len(client_jurisdictions):
            return _FactorOutcome(
                points=w.jurisdiction_all_matched,
                fit=True,
                reason=MatchReason(code="jurisdictions_all_matched", values={"matched": matched}),
            )
        if matched:
            return _FactorOutcome(
                points=w.jurisdiction_partial,
                fit=False,
                failure=MatchReason(
                    code="jurisdictions_partial",
                    values={"matched_count": len(matched), "client_count": len(client_jurisdictions)},
                ),
            )
        return _FactorOutcome(
            points=w.jurisdiction_none,
            fit=False,
            failure=MatchReason(code="jurisdictions_none", values={"client": client_jurisdictions}),
        )

    def _score_industry(
        self, client: ClientProfile, underwriter: UnderwriterAppetite
    ) -> _FactorOutcome | None:
        """Score industry fit; target sectors are only consulted as a fallback."""
        if not underwriter.industry_classes:
            return None

        w = self.weights
        industry = client.industry.lower()

        if any(_contains_either(cls.lower(), industry) for cls in underwriter.industry_classes):
            return _FactorOutcome(
                points=w.industry_direct_match,
                fit="direct-match",
                reason=MatchReason(
                    code="industry_direct_match",
                    values={"product": client.insurance_product, "industry": client.industry},
                ),
            )
        if underwriter.target_sectors and any(
            _contains_either(sector.lower(), industry) for sector in underwriter.target_sectors
        ):
            return _FactorOutcome(
                points=w.industry_sector_match,
                fit="sector-match",
                reason=MatchReason(code="industry_sector_match", values={"industry": client.industry}),
            )
        return _FactorOutcome(fit="no-match")

    def _score_revenue(
        self, client: ClientProfile, underwriter: UnderwriterAppetite
    ) -> _FactorOutcome | None:
        """Score client revenue against the appetite's revenue band (unknown revenue counts as 0)."""
        if not (underwriter.revenue_range_min or underwriter.revenue_range_max):
            return None

        w = self.weights
        minimum = underwriter.revenue_range_min or 0
        maximum = underwriter.revenue_range_max or math.inf
        revenue = client.revenue or 0

        if minimum <= revenue <= maximum:
            return _FactorOutcome(points=w.revenue_within_range)
        return _FactorOutcome(
            points=w.revenue_outside_range,
            failure=MatchReason(code="revenue_outside_range", values={"revenue": revenue}),
        )

    def _score_security(
        self, client: ClientProfile, underwriter: UnderwriterAppetite
    ) -> _FactorOutcome | None:
        """Score mandated security controls; one missing control forfeits the bonus."""
        if not underwriter.security_requirements or not client.security_controls:
            return None

        w = self.weights
        client_controls = [c.lower() for c in client.security_controls]
        missing = [
            required
            for required in (r.lower() for r in underwriter.security_requirements)
            if not any(_contains_either(required, control) for control in client_controls)
        ]

        if not missing:
            return _FactorOutcome(
                points=w.security_all_met,
                reason=MatchReason(code="security_requirements_met"),
            )
        return _FactorOutcome(
            points=w.security_missing,
            failure=MatchReason(code="security_controls_missing", values={"missing": missing}),
        )

    def _find_exclusions(self, client: ClientProfile, underwriter: UnderwriterAppetite) -> list[str]:
        """Return the lower-cased exclusion keywords hit by the client's industry or exposures."""
        if not underwriter.exclusions:
            return []

        industry = client.industry.lower()
        exposures = [e.lower() for e in (client.special_exposures or [])]
        return [
            exclusion
            for exclusion in (e.lower() for e in underwriter.exclusions)
            if _contains_either(exclusion, industry)
            or any(_contains_either(exclusion, exposure) for exposure in exposures)
        ]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _contains_either(a: str, b: str) -> bool:
    """True when either lower-cased label is a substring of the other."""
    return a in b or b in a


def _same_or_prefix(a: str, b: str) -> bool:
    return a == b or a.startswith(b) or b.startswith(a)


def _jurisdictions_match(client_jurisdiction: str, appetite_jurisdiction: str) -> bool:
    """Check whether two jurisdictions match via equality or a prefix either way.

    Labels are compared as written first; abbreviations in
    :data:`JURISDICTION_ALIASES` then get a second chance under their full
    names, so "UK" matches both "UK & Ireland" and "United Kingdom".
    """
    cj = client_jurisdiction.strip().lower()
    aj = appetite_jurisdiction.strip().lower()
    if _same_or_prefix(cj, aj):
        return True
    return _same_or_prefix(JURISDICTION_ALIASES.get(cj, cj), JURISDICTION_ALIASES.get(aj, aj))
