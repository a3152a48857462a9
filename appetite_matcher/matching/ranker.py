"""Match ranker — orders scored matches and splits them into the suggestions a
broker sees: up to three top matches, with nearest misses filling any
remaining slots.

Ranking is by confidence score alone.  The sort is stable, so ties keep the
order in which candidates were supplied.
"""

from __future__ import annotations

import logging

from appetite_matcher.matching.models import MatchPartition, MatchResult
from appetite_matcher.matching.weights import DEFAULT_WEIGHTS, ScoringWeights

logger = logging.getLogger("appetite_matcher.matching.ranker")

# Lower bound of each confidence band, best first
_CONFIDENCE_BANDS = (
    (80, "strong"),
    (60, "good"),
    (40, "fair"),
)


def confidence_band(score: int) -> str:
    """Label a confidence score as ``strong``, ``good``, ``fair`` or ``weak``."""
    for floor, label in _CONFIDENCE_BANDS:
        if score >= floor:
            return label
    return "weak"


class MatchRanker:
    """Sorts match results and partitions them into top matches and nearest misses.

    The ranker is stateless.  Nearest misses only fill the slots top
    matches leave free: with three top matches there are no nearest misses.
    """

    def __init__(self, weights: ScoringWeights = DEFAULT_WEIGHTS) -> None:
        self.weights = weights

    def rank(self, matches: list[MatchResult]) -> list[MatchResult]:
        """Return *matches* sorted by descending confidence, ties in input order."""
        return sorted(matches, key=lambda m: -m.confidence_score)

    def rank_and_partition(self, matches: list[MatchResult]) -> MatchPartition:
        """Rank *matches* and split them into suggestion buckets.

        Parameters
        ----------
        matches:
            Scored matches in candidate input order.

        Returns
        -------
        MatchPartition
            ``top_matches`` scoring at least ``top_match_threshold`` (at most
            ``suggestion_slots``) and ``nearest_misses`` scoring in
            ``[nearest_miss_floor, top_match_threshold)`` for the remaining
            slots.
        """
        if not matches:
            return MatchPartition()

        w = self.weights
        ranked = self.rank(matches)

        top = [m for m in ranked if m.confidence_score >= w.top_match_threshold][: w.suggestion_slots]
        free_slots = w.suggestion_slots - len(top)
        misses = [
            m
            for m in ranked
            if w.nearest_miss_floor <= m.confidence_score < w.top_match_threshold
        ][:free_slots]

        for position, match in enumerate(top + misses, start=1):
            logger.debug(
                "Suggestion %d: underwriter=%s score=%d band=%s",
                position,
                match.underwriter_name,
                match.confidence_score,
                confidence_band(match.confidence_score),
            )

        return MatchPartition(top_matches=top, nearest_misses=misses)
