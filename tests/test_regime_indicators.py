"""
Presentation indicators.

The confidence score is a UX heuristic built from history length and how
peaked the posteriors are. These tests pin its formula and bounds only;
nothing here treats it as a probability.
"""

import numpy as np
import pytest

from regime_engine.schemas.regime_schemas import HmmState
from regime_engine.services.regime_indicators import (
    EMPTY_CONFIDENCE, NO_DATA_CONFIDENCE, NO_DATA_RESILIENCE, build_confidence, build_indicators
)
from regime_engine.services.regime_service import run_hmm_analysis
from tests.helpers import week

UNIFORM = [0.25, 0.25, 0.25, 0.25]
CERTAIN = [1.0, 0.0, 0.0, 0.0]


# ---------------------------------------------------------------------------
# Confidence heuristic
# ---------------------------------------------------------------------------

class TestConfidenceHeuristic:
    def test_no_history(self) -> None:
        assert build_confidence(np.array([UNIFORM]), 0) == EMPTY_CONFIDENCE == 35.0

    def test_one_certain_week(self) -> None:
        # 30 base + 6 for one week + 40 for a fully peaked posterior
        assert build_confidence(np.array([CERTAIN]), 1) == pytest.approx(76.0)

    def test_one_uniform_week(self) -> None:
        assert build_confidence(np.array([UNIFORM]), 1) == pytest.approx(36.0)

    def test_length_bonus_caps_at_fifty(self) -> None:
        gamma = np.array([UNIFORM] * 20)
        assert build_confidence(gamma, 20) == pytest.approx(80.0)

    def test_capped_at_100(self) -> None:
        gamma = np.array([CERTAIN] * 12)
        assert build_confidence(gamma, 12) == pytest.approx(100.0)

    def test_grows_with_history(self) -> None:
        half = [0.5, 0.5, 0.0, 0.0]
        scores = [build_confidence(np.array([half] * n), n) for n in range(1, 10)]
        assert scores == sorted(scores)

    def test_is_a_score_not_a_probability(self) -> None:
        assert build_confidence(np.array([CERTAIN]), 1) > 1.0


# ---------------------------------------------------------------------------
# Indicators from an analysis
# ---------------------------------------------------------------------------

class TestIndicators:
    def test_fields_follow_analysis(self, alternating_weeks) -> None:
        analysis = run_hmm_analysis(alternating_weeks)
        indicators = build_indicators(analysis)
        next_index = int(np.argmax(analysis.next_distribution))

        assert indicators.resilience_score == pytest.approx((1 - analysis.crisis_probability) * 100)
        assert indicators.state_probability == pytest.approx(float(analysis.gamma[-1].max()))
        assert indicators.next_state == analysis.states[next_index]
        assert indicators.next_probability == pytest.approx(analysis.next_distribution[next_index])

    def test_empty_analysis_reports_no_data_floor(self) -> None:
        indicators = build_indicators(run_hmm_analysis([]))
        assert indicators.confidence == NO_DATA_CONFIDENCE == 25.0
        assert indicators.resilience_score == NO_DATA_RESILIENCE == 0.0
        assert indicators.state_probability == pytest.approx(0.55)
        assert indicators.next_state == HmmState.STABLE

    def test_only_invalid_weeks_report_no_data_floor(self) -> None:
        indicators = build_indicators(run_hmm_analysis([week("up", "???", "no"), 99]))
        assert indicators.confidence == NO_DATA_CONFIDENCE
        assert indicators.resilience_score == NO_DATA_RESILIENCE

    def test_single_week_leaves_no_data_floor(self) -> None:
        indicators = build_indicators(run_hmm_analysis([week("up", "high", "no")]))
        assert indicators.confidence > NO_DATA_CONFIDENCE
        assert indicators.resilience_score > 50

    def test_crisis_run_lowers_resilience(self) -> None:
        calm = build_indicators(run_hmm_analysis([week("up", "high", "no")] * 4))
        rough = build_indicators(run_hmm_analysis([week("down", "low", "yes")] * 4))
        assert rough.resilience_score < calm.resilience_score
        assert rough.next_state == HmmState.CRISIS
