"""Matching engine — the orchestrator for appetite matching.

:class:`MatchingEngine` scores a client against every candidate underwriter
with :class:`AppetiteScorer`, then hands the results to :class:`MatchRanker`
for ranking and partitioning.  Scoring is pure and sequential; the only I/O
is in :meth:`MatchingEngine.match_document`, which loads candidates from and
writes top matches to an :class:`AppetiteStore`.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from appetite_matcher.matching.models import ClientProfile, MatchResult, MatchRun, UnderwriterAppetite
from appetite_matcher.matching.ranker import MatchRanker
from appetite_matcher.matching.reasons import ReasonFormatter
from appetite_matcher.matching.scorer import AppetiteScorer
from appetite_matcher.matching.weights import ScoringWeights, configured_weights

if TYPE_CHECKING:
    from appetite_matcher.store import AppetiteStore

logger = logging.getLogger("appetite_matcher.matching.engine")


class MatchingEngine:
    """Runs the full appetite matching pipeline.

    Usage::

        engine = MatchingEngine()
        run = engine.match(client_profile, underwriter_appetites)

    Parameters
    ----------
    weights:
        Scoring weights; defaults to :func:`configured_weights`.
    formatter:
        Reason formatter shared with the scorer.
    store:
        Optional store used by :meth:`match_document`.
    """

    def __init__(
        self,
        weights: ScoringWeights | None = None,
        formatter: ReasonFormatter | None = None,
        store: "AppetiteStore | None" = None,
    ) -> None:
        self.weights = weights or configured_weights()
        self.scorer = AppetiteScorer(weights=self.weights, formatter=formatter)
        self.ranker = MatchRanker(weights=self.weights)
        self.store = store
        logger.info("MatchingEngine initialised")

    # ------------------------------------------------------------------
    # Primary matching API
    # ------------------------------------------------------------------

    def score_all(
        self, client: ClientProfile, appetites: list[UnderwriterAppetite] | None
    ) -> list[MatchResult]:
        """Score *client* against each appetite, preserving candidate order."""
        return [self.scorer.score_match(client, appetite) for appetite in appetites or []]

    def match(
        self, client: ClientProfile, appetites: list[UnderwriterAppetite] | None
    ) -> MatchRun:
        """Score, rank and partition *appetites* for *client*.

        The caller is expected to have pre-filtered *appetites* to the
        client's product type.  An empty or missing list gives an empty run.

        Returns
        -------
        MatchRun
            Top matches, nearest misses, and the number of candidates scored.
        """
        matches = self.score_all(client, appetites)
        partition = self.ranker.rank_and_partition(matches)
        logger.info(
            "Matching complete: evaluated=%d top=%d nearest_misses=%d",
            len(matches),
            len(partition.top_matches),
            len(partition.nearest_misses),
        )
        return MatchRun(
            top_matches=partition.top_matches,
            nearest_misses=partition.nearest_misses,
            total_evaluated=len(matches),
        )

    async def match_document(self, document_id: str, client: ClientProfile) -> MatchRun:
        """Match a stored client document against processed appetite guides.

        Loads candidates for ``client.insurance_product`` from the store,
        runs :meth:`match`, and persists the top matches against
        *document_id*.  No candidates is a normal, empty result.
        """
        if self.store is None:
            raise RuntimeError("MatchingEngine.match_document requires a store")

        appetites = await self.store.load_candidates(client.insurance_product)
        if not appetites:
            logger.info("No appetite guides found for product=%s", client.insurance_product)
            return MatchRun(
                message=f"No appetite guides available for {client.insurance_product}",
            )

        logger.info(
            "Matching document=%s against %d appetite guides", document_id, len(appetites)
        )
        run = self.match(client, appetites)
        await self.store.save_matches(document_id, run.top_matches)
        return run
