"""
Regime Island - Regime Analysis Service
Orchestrates encoding, optional Baum-Welch training, forward-backward and
Viterbi into a single analysis, plus deterministic regime forecasting.
"""

import numpy as np
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence
import logging

from regime_engine.config import Settings, get_settings
from regime_engine.schemas.regime_schemas import (
    HmmState,
    RegimeAnalysisRequest, RegimeAnalysisResponse, RegimeAnalysisResult,
    RegimeForecastRequest, RegimeForecastResponse, WeeklyRegimeForecast
)
from regime_engine.services.observation_encoder import (
    INCOME_TRENDS, ENERGY_LEVELS, EXPENSE_LEVELS, N_SYMBOLS, encode_sequence
)
from regime_engine.services.hmm_parameters import (
    CRISIS_INDEX, N_STATES, STATES, HmmModel, ModelShapeError,
    default_initial_distribution, default_model, normalize_row,
    resolve_model, safe_vector
)
from regime_engine.services.hmm_inference import forward_backward, viterbi
from regime_engine.services.baum_welch import MAX_TRAIN_ITERATIONS, baum_welch, clamp_iterations
from regime_engine.services.regime_indicators import build_indicators

logger = logging.getLogger(__name__)

MAX_FORECAST_WEEKS = 52


# ═══════════════════════════════════════════════════════════════════════════════
# ANALYSIS
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class HmmAnalysis:
    """Result of one run_hmm_analysis call."""
    observations: List[Any]
    encoded: List[int]
    model: HmmModel
    gamma: np.ndarray
    viterbi_path: List[HmmState]
    next_distribution: np.ndarray
    crisis_probability: float
    headline_state: HmmState
    trained: bool
    states: List[HmmState] = field(default_factory=lambda: list(STATES))

    @property
    def dropped(self) -> int:
        return len(self.observations) - len(self.encoded)


def _step(distribution: np.ndarray, transition: np.ndarray) -> np.ndarray:
    return normalize_row(distribution @ transition)


def run_hmm_analysis(
    weeks: Iterable[Any],
    transition_matrix: Optional[Sequence] = None,
    emission_matrix: Optional[Sequence] = None,
    initial_distribution: Optional[Sequence] = None,
    train_iterations: Optional[float] = None,
    strict: bool = False
) -> HmmAnalysis:
    """
    Infer the current regime from a sequence of weeks.

    Unencodable weeks are dropped. With no usable weeks the prior is
    reported (gamma = [pi], empty Viterbi path). With at least two weeks
    and a positive iteration count the model is re-estimated first.
    """
    observations = [week for week in weeks if week is not None]
    encoded = encode_sequence(observations)

    model = resolve_model(transition_matrix, emission_matrix, initial_distribution, strict=strict)

    trained = False
    iterations = clamp_iterations(train_iterations)
    if len(encoded) > 1 and iterations > 0:
        model = baum_welch(encoded, model.transition, model.emission, model.initial, iterations)
        trained = True

    A, pi = model.transition, model.initial

    if not encoded:
        return HmmAnalysis(
            observations=observations,
            encoded=encoded,
            model=model,
            gamma=np.array([pi]),
            viterbi_path=[],
            next_distribution=_step(pi, A),
            crisis_probability=float(pi[CRISIS_INDEX]),
            headline_state=STATES[int(np.argmax(pi))],
            trained=trained
        )

    gamma = forward_backward(encoded, A, model.emission, pi).gamma
    last_gamma = gamma[-1]

    return HmmAnalysis(
        observations=observations,
        encoded=encoded,
        model=model,
        gamma=gamma,
        viterbi_path=viterbi(encoded, A, model.emission, pi),
        next_distribution=_step(last_gamma, A),
        crisis_probability=float(last_gamma[CRISIS_INDEX]),
        headline_state=STATES[int(np.argmax(last_gamma))],
        trained=trained
    )


# ═══════════════════════════════════════════════════════════════════════════════
# FORECAST
# ═══════════════════════════════════════════════════════════════════════════════

def forecast_distribution(start: Sequence[float], transition: np.ndarray, steps: int) -> np.ndarray:
    """Propagate a state distribution `steps` weeks through the transition matrix."""
    steps = min(MAX_FORECAST_WEEKS, max(1, int(steps)))
    distribution = normalize_row(start)
    rows = []
    for _ in range(steps):
        distribution = _step(distribution, transition)
        rows.append(distribution)
    return np.array(rows)


def _overall_trend(first: HmmState, last: HmmState) -> str:
    if last == HmmState.STABLE and first != HmmState.STABLE:
        return "IMPROVING"
    if last == HmmState.CRISIS and first != HmmState.CRISIS:
        return "DETERIORATING"
    return "STABLE"


# ═══════════════════════════════════════════════════════════════════════════════
# MAIN SERVICE CLASS
# ═══════════════════════════════════════════════════════════════════════════════

class RegimeService:
    """Service for HMM-based regime analysis"""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def analyze(self, request: RegimeAnalysisRequest) -> RegimeAnalysisResponse:
        """Run the full analysis for an API request"""
        iterations = request.train_iterations
        if iterations is None:
            iterations = self.settings.default_train_iterations

        analysis = run_hmm_analysis(
            request.weeks,
            transition_matrix=request.transition_matrix,
            emission_matrix=request.emission_matrix,
            initial_distribution=request.initial_distribution,
            train_iterations=iterations,
            strict=self.settings.strict_matrix_validation
        )

        logger.info(
            "Regime analysis %s: %d valid / %d dropped weeks, headline=%s, trained=%s",
            request.request_id or "-", len(analysis.encoded), analysis.dropped,
            analysis.headline_state.value, analysis.trained
        )

        return RegimeAnalysisResponse(
            request_id=request.request_id,
            analysis_timestamp=datetime.now(),
            valid_observations=len(analysis.encoded),
            dropped_observations=analysis.dropped,
            analysis=RegimeAnalysisResult(
                encoded=analysis.encoded,
                states=analysis.states,
                transition_matrix=analysis.model.transition.tolist(),
                emission_matrix=analysis.model.emission.tolist(),
                initial_distribution=analysis.model.initial.tolist(),
                gamma=analysis.gamma.tolist(),
                viterbi_path=analysis.viterbi_path,
                next_distribution=analysis.next_distribution.tolist(),
                crisis_probability=analysis.crisis_probability,
                headline_state=analysis.headline_state,
                trained=analysis.trained
            ),
            indicators=build_indicators(analysis)
        )

    def forecast(self, request: RegimeForecastRequest) -> RegimeForecastResponse:
        """Generate a week-by-week regime forecast"""
        strict = self.settings.strict_matrix_validation
        transition = resolve_model(transition_matrix=request.transition_matrix, strict=strict).transition

        start = safe_vector(request.distribution, N_STATES)
        if start is None:
            if request.distribution is not None:
                if strict:
                    raise ModelShapeError(f"distribution must be length {N_STATES}")
                logger.warning("Ignoring forecast distribution with unexpected shape, using prior")
            start = default_initial_distribution()

        weeks = request.weeks or self.settings.forecast_weeks
        rows = forecast_distribution(start, transition, weeks)

        weekly_forecast = []
        for week, distribution in enumerate(rows, start=1):
            dominant = int(np.argmax(distribution))
            weekly_forecast.append(WeeklyRegimeForecast(
                week=week,
                distribution=distribution.tolist(),
                dominant_state=STATES[dominant],
                probability=round(float(distribution[dominant]), 3)
            ))

        first_state = STATES[int(np.argmax(start))]
        last_state = weekly_forecast[-1].dominant_state

        return RegimeForecastResponse(
            start_distribution=start.tolist(),
            weekly_forecast=weekly_forecast,
            overall_trend=_overall_trend(first_state, last_state)
        )

    def model_info(self) -> Dict[str, Any]:
        """Describe the default model and engine limits"""
        model = default_model()
        return {
            "model_type": f"{N_STATES}-State Discrete Hidden Markov Model",
            "states": [state.value for state in STATES],
            "alphabet": {
                "size": N_SYMBOLS,
                "income_trend": [t.value for t in INCOME_TRENDS],
                "energy": [e.value for e in ENERGY_LEVELS],
                "expenses_spike": [x.value for x in EXPENSE_LEVELS],
                "encoding": "(income * 3 + energy) * 2 + expense"
            },
            "transition_matrix": model.transition.tolist(),
            "emission_matrix": model.emission.tolist(),
            "initial_distribution": model.initial.tolist(),
            "max_train_iterations": MAX_TRAIN_ITERATIONS,
            "max_forecast_weeks": MAX_FORECAST_WEEKS,
            "strict_matrix_validation": self.settings.strict_matrix_validation,
            "algorithms_used": ["Scaled Forward-Backward", "Viterbi", "Baum-Welch"]
        }
