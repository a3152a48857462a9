"""Reason rendering — turns structured :class:`MatchReason` records into the
human-readable strings shown to brokers, and assembles the one-line
explanation for a match.

The scorer never formats currency itself; it records raw amounts and this
module renders them (``£5.0m``), so the symbol can change without touching
the scoring rules.
"""

from __future__ import annotations

import math
from typing import Any, Callable

from appetite_matcher.config import settings
from appetite_matcher.matching.models import MatchReason
from appetite_matcher.matching.weights import DEFAULT_WEIGHTS, ScoringWeights


class ReasonFormatter:
    """Render match reasons with a configurable currency symbol.

    Amounts are shown in millions to one decimal place.  An unbounded
    maximum renders as ``unlimited``.
    """

    def __init__(self, currency_symbol: str | None = None) -> None:
        self.currency_symbol = (
            settings.currency_symbol if currency_symbol is None else currency_symbol
        )
        self._templates: dict[str, Callable[[dict[str, Any]], str]] = {
            "coverage_within_range": lambda v: (
                f"Coverage capacity {self.money(v['requested'])} within appetite "
                f"({self.money(v['minimum'])}-{self.money(v['maximum'])})"
            ),
            "coverage_near_range": lambda v: (
                f"Coverage {self.money(v['requested'])} close to appetite range"
            ),
            "coverage_below_minimum": lambda v: (
                f"Coverage {self.money(v['requested'])} below minimum {self.money(v['minimum'])}"
            ),
            "coverage_above_maximum": lambda v: (
                f"Coverage {self.money(v['requested'])} exceeds max {self.money(v['maximum'])} by >20%"
            ),
            "jurisdictions_all_matched": lambda v: (
                f"Active in all client jurisdictions ({', '.join(v['matched'])})"
            ),
            "jurisdictions_partial": lambda v: (
                f"Partial jurisdiction match ({v['matched_count']}/{v['client_count']})"
            ),
            "jurisdictions_none": lambda v: (
                f"No jurisdiction match (client: {', '.join(v['client'])})"
            ),
            "industry_direct_match": lambda v: f"{v['product']} appetite for {v['industry']}",
            "industry_sector_match": lambda v: f"Covers related sectors in {v['industry']}",
            "revenue_outside_range": lambda v: f"Revenue {self.money(v['revenue'])} outside range",
            "security_requirements_met": lambda v: "All security requirements met",
            "security_controls_missing": lambda v: (
                f"Missing security controls: {', '.join(v['missing'])}"
            ),
            "exclusions_hit": lambda v: f"Exclusions hit: {', '.join(v['exclusions'])}",
        }

    def money(self, amount: float) -> str:
        if math.isinf(amount):
            return "unlimited"
        return f"{self.currency_symbol}{amount / 1_000_000:.1f}m"

    def render(self, reason: MatchReason) -> str:
        template = self._templates.get(reason.code)
        if template is None:
            return reason.code.replace("_", " ").capitalize()
        return template(reason.values)

    def render_all(self, reasons: list[MatchReason]) -> list[str]:
        return [self.render(r) for r in reasons]


def build_explanation(
    reasons: list[str],
    failed_criteria: list[str],
    score: int,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> str:
    """Assemble the single-line explanation for a match.

    Leads with the first positive reasons and appends the first failed
    criterion as a "Watch" note.  With no positive reasons it leads with the
    score and the first failed criteria instead.  The result is truncated to
    ``weights.explanation_max_length`` characters.
    """
    if reasons:
        explanation = "; ".join(reasons[: weights.explanation_reason_count])
        if failed_criteria:
            explanation += f". Watch: {failed_criteria[0]}"
    else:
        explanation = (
            f"Score {score}/{weights.max_score}. "
            + "; ".join(failed_criteria[: weights.explanation_failure_count])
        )
    return explanation[: weights.explanation_max_length]
