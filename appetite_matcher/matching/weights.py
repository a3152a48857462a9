"""Scoring weights — every threshold and point value used by the appetite
scorer and the match ranker, gathered into one frozen table.

The defaults reproduce the broker platform's production scoring. A JSON file
of overrides can be pointed at with ``APPETITE_WEIGHTS_FILE``; any key left
out keeps its default.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from appetite_matcher.config import settings

logger = logging.getLogger("appetite_matcher.matching.weights")


class ScoringWeights(BaseModel):
    """Point values and thresholds for one scoring scheme.

    Point values are signed contributions added to ``base_score``.  The
    ``*_factor`` fields scale the underwriter's coverage bounds to form the
    near-range and far-above-maximum bands.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    base_score: int = 50
    min_score: int = 0
    max_score: int = 100

    # Coverage amount
    coverage_within_range: int = 20
    coverage_near_range: int = 5
    coverage_below_minimum: int = -15
    coverage_above_maximum: int = -30
    near_range_lower_factor: float = 0.9
    near_range_upper_factor: float = 1.1
    above_maximum_factor: float = 1.2

    # Jurisdiction
    jurisdiction_all_matched: int = 10
    jurisdiction_partial: int = -10
    jurisdiction_none: int = -20

    # Industry
    industry_direct_match: int = 20
    industry_sector_match: int = 10

    # Revenue
    revenue_within_range: int = 5
    revenue_outside_range: int = -10

    # Security controls
    security_all_met: int = 5
    security_missing: int = -20

    # Hard exclusions
    exclusion_breakdown: int = -100

    # Ranking
    top_match_threshold: int = 60
    nearest_miss_floor: int = 50
    suggestion_slots: int = 3

    # Explanation
    primary_reason_limit: int = 3
    explanation_reason_count: int = 2
    explanation_failure_count: int = 2
    explanation_max_length: int = 200


DEFAULT_WEIGHTS = ScoringWeights()


def load_weights(path: str | Path) -> ScoringWeights:
    """Read a JSON object of weight overrides from *path*."""
    weights = ScoringWeights.model_validate_json(Path(path).read_text(encoding="utf-8"))
    logger.info("Loaded scoring weights from %s", path)
    return weights


def configured_weights() -> ScoringWeights:
    """Return the weights selected by ``settings.weights_file``, or the defaults."""
    if settings.weights_file:
        return load_weights(settings.weights_file)
    return DEFAULT_WEIGHTS
