"""
Regime Island - Presentation Indicators
Scalars derived from an analysis for display purposes.

None of these are statistical quantities. The confidence score in
particular is a heuristic that rewards longer histories and sharper
posteriors; it must not be read as a probability.
"""

import numpy as np

from regime_engine.schemas.regime_schemas import RegimeIndicators
from regime_engine.services.hmm_parameters import STATES

EMPTY_CONFIDENCE = 35.0

# Reported when no week encodes: nothing supports a health reading
NO_DATA_CONFIDENCE = 25.0
NO_DATA_RESILIENCE = 0.0


def _clamp(value: float, low: float, high: float) -> float:
    return min(high, max(low, value))


def build_confidence(gamma: np.ndarray, sequence_length: int) -> float:
    """
    Confidence in [25, 100].

    30 base points, up to 50 for history length (6 per week) and up to 40
    for the average peak posterior, scaled from 0.25 (uniform over four
    states) to 1.0.
    """
    if sequence_length == 0:
        return EMPTY_CONFIDENCE
    avg_max = float(np.max(gamma, axis=1).sum()) / sequence_length
    length_score = min(50, sequence_length * 6)
    stability_score = _clamp((avg_max - 0.25) / 0.75 * 40, 0, 40)
    return _clamp(30 + length_score + stability_score, 25, 100)


def build_indicators(analysis) -> RegimeIndicators:
    """
    Indicators for an HmmAnalysis.

    With no usable weeks the prior still yields a state and a next-state
    guess, but confidence and resilience drop to their no-data floor.
    """
    last_gamma = analysis.gamma[-1]
    headline_index = STATES.index(analysis.headline_state)
    next_index = int(np.argmax(analysis.next_distribution))

    if analysis.encoded:
        confidence = build_confidence(analysis.gamma, len(analysis.encoded))
        resilience = _clamp((1 - analysis.crisis_probability) * 100, 0, 100)
    else:
        confidence = NO_DATA_CONFIDENCE
        resilience = NO_DATA_RESILIENCE

    return RegimeIndicators(
        confidence=confidence,
        resilience_score=resilience,
        state_probability=float(last_gamma[headline_index]),
        next_state=STATES[next_index],
        next_probability=float(analysis.next_distribution[next_index])
    )
