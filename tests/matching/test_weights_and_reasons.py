"""Tests for scoring weights loading and reason rendering."""

import json

import pytest
from pydantic import ValidationError

from appetite_matcher.matching import (
    DEFAULT_WEIGHTS,
    AppetiteScorer,
    MatchReason,
    ReasonFormatter,
    ScoringWeights,
    build_explanation,
    load_weights,
)


class TestScoringWeights:
    def test_defaults(self):
        assert DEFAULT_WEIGHTS.base_score == 50
        assert DEFAULT_WEIGHTS.top_match_threshold == 60
        assert DEFAULT_WEIGHTS.nearest_miss_floor == 50
        assert DEFAULT_WEIGHTS.explanation_max_length == 200

    def test_load_overrides(self, tmp_path):
        path = tmp_path / "weights.json"
        path.write_text(json.dumps({"coverage_within_range": 25, "top_match_threshold": 65}))

        weights = load_weights(path)

        assert weights.coverage_within_range == 25
        assert weights.top_match_threshold == 65
        assert weights.base_score == 50

    def test_unknown_key_rejected(self, tmp_path):
        path = tmp_path / "weights.json"
        path.write_text(json.dumps({"coverage_bonus": 25}))

        with pytest.raises(ValidationError):
            load_weights(path)

    def test_custom_weights_change_score(self, make_client, make_appetite):
        scorer = AppetiteScorer(weights=ScoringWeights(base_score=40, coverage_within_range=30))

        result = scorer.score_match(
            make_client(), make_appetite(coverage_amount_min=1_000_000, coverage_amount_max=10_000_000)
        )

        assert result.confidence_score == 70
        assert result.score_breakdown["base"] == 40

    def test_custom_score_ceiling(self, make_client, make_appetite):
        scorer = AppetiteScorer(weights=ScoringWeights(base_score=100, max_score=120))

        result = scorer.score_match(
            make_client(), make_appetite(coverage_amount_min=1_000_000, coverage_amount_max=10_000_000)
        )

        assert result.confidence_score == 120
        assert result.explanation.startswith("Coverage capacity")


class TestReasonFormatter:
    def test_currency_symbol_is_configurable(self):
        formatter = ReasonFormatter(currency_symbol="$")
        reason = MatchReason(code="coverage_below_minimum", values={"requested": 700_000, "minimum": 2_000_000})

        assert formatter.render(reason) == "Coverage $0.7m below minimum $2.0m"

    def test_unbounded_amount(self):
        assert ReasonFormatter(currency_symbol="£").money(float("inf")) == "unlimited"

    def test_unknown_code_falls_back_to_code_text(self):
        assert ReasonFormatter().render(MatchReason(code="broker_override")) == "Broker override"

    def test_scorer_uses_formatter(self, make_client, make_appetite):
        scorer = AppetiteScorer(formatter=ReasonFormatter(currency_symbol="€"))

        result = scorer.score_match(
            make_client(), make_appetite(coverage_amount_min=1_000_000, coverage_amount_max=10_000_000)
        )

        assert result.primary_reasons == ["Coverage capacity €5.0m within appetite (€1.0m-€10.0m)"]
        assert result.reasons[0].values == {"requested": 5_000_000, "minimum": 1_000_000, "maximum": 10_000_000}


class TestBuildExplanation:
    def test_reasons_only(self):
        assert build_explanation(["A", "B", "C"], [], 80) == "A; B"

    def test_reasons_with_failures(self):
        assert build_explanation(["A"], ["X", "Y"], 55) == "A. Watch: X"

    def test_failures_only(self):
        assert build_explanation([], ["X", "Y", "Z"], 20) == "Score 20/100. X; Y"

    def test_nothing(self):
        assert build_explanation([], [], 50) == "Score 50/100. "

    def test_truncation(self):
        assert len(build_explanation(["r" * 500], [], 90)) == 200
