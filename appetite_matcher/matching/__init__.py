"""Appetite matching package — rule-based client/underwriter matching engine.

Exports the public API for appetite matching:

- :class:`MatchingEngine` — scores every candidate and partitions the results
- :class:`AppetiteScorer` — scores one client against one underwriter appetite
- :class:`MatchRanker` — ranks matches into top matches and nearest misses
- :class:`ScoringWeights` — the point values and thresholds used throughout
- :class:`ReasonFormatter` — renders structured reasons for brokers
"""

from appetite_matcher.matching.models import (
    ClientProfile,
    MatchPartition,
    MatchReason,
    MatchResult,
    MatchRun,
    UnderwriterAppetite,
)
from appetite_matcher.matching.weights import DEFAULT_WEIGHTS, ScoringWeights, load_weights
from appetite_matcher.matching.reasons import ReasonFormatter, build_explanation
from appetite_matcher.matching.scorer import AppetiteScorer
from appetite_matcher.matching.ranker import MatchRanker, confidence_band
from appetite_matcher.matching.engine import MatchingEngine

__all__ = [
    "MatchingEngine",
    "AppetiteScorer",
    "MatchRanker",
    "ScoringWeights",
    "DEFAULT_WEIGHTS",
    "load_weights",
    "ReasonFormatter",
    "build_explanation",
    "confidence_band",
    "ClientProfile",
    "UnderwriterAppetite",
    "MatchResult",
    "MatchReason",
    "MatchPartition",
    "MatchRun",
]
