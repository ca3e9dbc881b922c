"""
Regime Island - HMM Model Parameters
Row normalisation, hand-tuned priors and lenient validation of caller matrices.
"""

import numpy as np
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence
import logging

from regime_engine.schemas.regime_schemas import HmmState
from regime_engine.services.observation_encoder import (
    INCOME_TRENDS, ENERGY_LEVELS, EXPENSE_LEVELS, N_SYMBOLS
)

logger = logging.getLogger(__name__)


STATES: List[HmmState] = list(HmmState)
N_STATES = len(STATES)
CRISIS_INDEX = STATES.index(HmmState.CRISIS)


class ModelShapeError(ValueError):
    """Raised for mis-shaped caller matrices when strict validation is on."""


@dataclass
class HmmModel:
    """Transition (N x N), emission (N x M) and initial (N) parameters."""
    transition: np.ndarray
    emission: np.ndarray
    initial: np.ndarray

    @property
    def n_states(self) -> int:
        return self.transition.shape[0]

    @property
    def n_symbols(self) -> int:
        return self.emission.shape[1]

    def copy(self) -> "HmmModel":
        return HmmModel(
            transition=self.transition.copy(),
            emission=self.emission.copy(),
            initial=self.initial.copy()
        )


# ═══════════════════════════════════════════════════════════════════════════════
# NORMALISATION
# ═══════════════════════════════════════════════════════════════════════════════

def normalize_row(vector) -> np.ndarray:
    """
    Scale a vector to sum to 1.

    Negative and non-finite entries count as 0. A row whose sum is <= 0
    becomes uniform over its length instead of dividing by zero.
    """
    row = np.asarray(vector, dtype=float).ravel()
    row = np.where(np.isfinite(row) & (row > 0), row, 0.0)
    total = row.sum()
    if total <= 0:
        return np.full(row.shape[0], 1.0 / max(1, row.shape[0]))
    return row / total


def normalize_matrix(matrix) -> np.ndarray:
    """Apply normalize_row to every row."""
    return np.array([normalize_row(row) for row in matrix], dtype=float)


def safe_matrix(matrix, rows: int, cols: int) -> Optional[np.ndarray]:
    """Normalised copy of `matrix` if it is exactly rows x cols, else None."""
    if matrix is None:
        return None
    try:
        if len(matrix) != rows or any(len(row) != cols for row in matrix):
            return None
        values = np.asarray(matrix, dtype=float)
    except (TypeError, ValueError):
        return None
    return normalize_matrix(values)


def safe_vector(vector, length: int) -> Optional[np.ndarray]:
    """Normalised copy of `vector` if it has exactly `length` entries, else None."""
    if vector is None:
        return None
    try:
        if len(vector) != length:
            return None
        values = np.asarray(vector, dtype=float)
    except (TypeError, ValueError):
        return None
    if values.ndim != 1:
        return None
    return normalize_row(values)


# ═══════════════════════════════════════════════════════════════════════════════
# DEFAULT PRIORS
# ═══════════════════════════════════════════════════════════════════════════════

# Feature tables per state, outer-multiplied into the 18-symbol emission row
EMISSION_BY_FEATURE: Dict[HmmState, Dict[str, Dict[str, float]]] = {
    HmmState.STABLE: {
        "income_trend": {"up": 0.5, "flat": 0.35, "down": 0.15},
        "energy": {"high": 0.5, "med": 0.35, "low": 0.15},
        "expenses_spike": {"no": 0.8, "yes": 0.2}
    },
    HmmState.STRAIN: {
        "income_trend": {"up": 0.2, "flat": 0.4, "down": 0.4},
        "energy": {"high": 0.2, "med": 0.45, "low": 0.35},
        "expenses_spike": {"no": 0.6, "yes": 0.4}
    },
    HmmState.CRISIS: {
        "income_trend": {"up": 0.1, "flat": 0.2, "down": 0.7},
        "energy": {"high": 0.05, "med": 0.25, "low": 0.7},
        "expenses_spike": {"no": 0.35, "yes": 0.65}
    },
    HmmState.RECOVERY: {
        "income_trend": {"up": 0.45, "flat": 0.35, "down": 0.2},
        "energy": {"high": 0.4, "med": 0.4, "low": 0.2},
        "expenses_spike": {"no": 0.7, "yes": 0.3}
    }
}


def build_default_transition() -> np.ndarray:
    return normalize_matrix([
        [0.62, 0.22, 0.04, 0.12],  # From Stable
        [0.18, 0.52, 0.20, 0.10],  # From Strain
        [0.05, 0.22, 0.56, 0.17],  # From Crisis
        [0.38, 0.18, 0.08, 0.36]   # From Recovery
    ])


def _emission_row(tables: Dict[str, Dict[str, float]]) -> np.ndarray:
    income = np.array([tables["income_trend"][t.value] for t in INCOME_TRENDS])
    energy = np.array([tables["energy"][e.value] for e in ENERGY_LEVELS])
    expense = np.array([tables["expenses_spike"][x.value] for x in EXPENSE_LEVELS])
    # income outer, energy middle, expense inner
    return np.outer(np.outer(income, energy).ravel(), expense).ravel()


def build_default_emission() -> np.ndarray:
    return normalize_matrix([_emission_row(EMISSION_BY_FEATURE[state]) for state in STATES])


def default_initial_distribution() -> np.ndarray:
    return normalize_row([0.55, 0.25, 0.08, 0.12])


def default_model() -> HmmModel:
    """Fresh copy of the hand-tuned priors."""
    return HmmModel(
        transition=build_default_transition(),
        emission=build_default_emission(),
        initial=default_initial_distribution()
    )


# ═══════════════════════════════════════════════════════════════════════════════
# CALLER OVERRIDES
# ═══════════════════════════════════════════════════════════════════════════════

def _resolve(name: str, supplied, checked: Optional[np.ndarray], fallback, expected: str, strict: bool):
    if supplied is None:
        return fallback()
    if checked is not None:
        return checked
    if strict:
        raise ModelShapeError(f"{name} must be {expected}")
    logger.warning("Ignoring %s with unexpected shape (expected %s), using default", name, expected)
    return fallback()


def resolve_model(
    transition_matrix: Optional[Sequence] = None,
    emission_matrix: Optional[Sequence] = None,
    initial_distribution: Optional[Sequence] = None,
    strict: bool = False
) -> HmmModel:
    """
    Build the model for one analysis call.

    Each supplied component is row-normalised when its shape matches;
    otherwise the built-in default is used in its place. With strict=True a
    mismatch raises ModelShapeError instead.
    """
    transition = _resolve(
        "transition_matrix", transition_matrix,
        safe_matrix(transition_matrix, N_STATES, N_STATES),
        build_default_transition, f"{N_STATES}x{N_STATES}", strict
    )
    emission = _resolve(
        "emission_matrix", emission_matrix,
        safe_matrix(emission_matrix, N_STATES, N_SYMBOLS),
        build_default_emission, f"{N_STATES}x{N_SYMBOLS}", strict
    )
    initial = _resolve(
        "initial_distribution", initial_distribution,
        safe_vector(initial_distribution, N_STATES),
        default_initial_distribution, f"length {N_STATES}", strict
    )
    return HmmModel(transition=transition, emission=emission, initial=initial)
