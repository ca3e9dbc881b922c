"""
Regime Island - HMM Inference
Scaled forward-backward posteriors and log-space Viterbi decoding
over a discrete observation sequence.
"""

import numpy as np
from dataclasses import dataclass
from typing import List, Sequence

from regime_engine.schemas.regime_schemas import HmmState
from regime_engine.services.hmm_parameters import STATES, normalize_row

# Floor applied before every log so log(0) never reaches a comparison
LOG_FLOOR = 1e-12


@dataclass
class ForwardBackwardResult:
    """Scaled forward/backward passes and the posterior occupancy."""
    alpha: np.ndarray   # T x N, each row sums to 1
    beta: np.ndarray    # T x N, scaled with the same factors as alpha
    gamma: np.ndarray   # T x N posterior state probabilities
    scales: np.ndarray  # T reciprocal sums used at each step
    zero_mass_steps: int = 0

    @property
    def log_likelihood(self) -> float:
        """log P(sequence | model), or -inf when some step had zero mass."""
        if self.zero_mass_steps:
            return float("-inf")
        return float(-np.sum(np.log(self.scales)))


def _reciprocal(total: float) -> float:
    return 1.0 if total == 0 else 1.0 / total


def _check_symbols(obs: np.ndarray, n_symbols: int) -> None:
    if len(obs) and (obs.min() < 0 or obs.max() >= n_symbols):
        raise ValueError(f"observation symbols must lie in [0, {n_symbols - 1}]")


def forward_backward(
    observations: Sequence[int],
    transition: np.ndarray,
    emission: np.ndarray,
    initial: np.ndarray
) -> ForwardBackwardResult:
    """
    Scaled forward-backward for a sequence of T >= 1 symbols.

    alpha_t is rescaled by scale_t = 1 / sum(alpha_t) (1 when the sum is
    0). beta is seeded with scale_{T-1} and multiplied by scale_t on the
    way back, so alpha_t * beta_t is proportional to the posterior.
    Symbols outside the emission alphabet raise ValueError.
    """
    obs = np.asarray(observations, dtype=int)
    T = len(obs)
    if T == 0:
        raise ValueError("forward_backward needs at least one observation")
    _check_symbols(obs, emission.shape[1])
    N = transition.shape[0]
    alpha = np.zeros((T, N))
    beta = np.zeros((T, N))
    scales = np.zeros(T)
    zero_mass_steps = 0

    for t in range(T):
        if t == 0:
            alpha[0] = initial * emission[:, obs[0]]
        else:
            alpha[t] = (alpha[t - 1] @ transition) * emission[:, obs[t]]
        total = alpha[t].sum()
        if total == 0:
            zero_mass_steps += 1
        scales[t] = _reciprocal(total)
        alpha[t] *= scales[t]

    beta[T - 1] = scales[T - 1]
    for t in range(T - 2, -1, -1):
        beta[t] = (transition @ (emission[:, obs[t + 1]] * beta[t + 1])) * scales[t]

    gamma = np.array([normalize_row(alpha[t] * beta[t]) for t in range(T)])

    return ForwardBackwardResult(
        alpha=alpha, beta=beta, gamma=gamma, scales=scales,
        zero_mass_steps=zero_mass_steps
    )


def _safe_log(values) -> np.ndarray:
    return np.log(np.maximum(values, LOG_FLOOR))


def viterbi_indices(
    observations: Sequence[int],
    transition: np.ndarray,
    emission: np.ndarray,
    initial: np.ndarray
) -> List[int]:
    """
    Most likely state index path; ties go to the lowest state index.

    Symbols outside the emission alphabet raise ValueError.
    """
    obs = np.asarray(observations, dtype=int)
    T = len(obs)
    if T == 0:
        return []
    _check_symbols(obs, emission.shape[1])
    N = transition.shape[0]
    log_transition = _safe_log(transition)
    log_emission = _safe_log(emission)

    delta = np.zeros((T, N))
    psi = np.zeros((T, N), dtype=int)

    delta[0] = _safe_log(initial) + log_emission[:, obs[0]]

    for t in range(1, T):
        for j in range(N):
            trans_probs = delta[t - 1] + log_transition[:, j]
            psi[t, j] = np.argmax(trans_probs)
            delta[t, j] = trans_probs[psi[t, j]] + log_emission[j, obs[t]]

    path = [0] * T
    path[T - 1] = int(np.argmax(delta[T - 1]))
    for t in range(T - 2, -1, -1):
        path[t] = int(psi[t + 1, path[t + 1]])
    return path


def viterbi(
    observations: Sequence[int],
    transition: np.ndarray,
    emission: np.ndarray,
    initial: np.ndarray
) -> List[HmmState]:
    """Viterbi path as state labels, one per observation."""
    return [STATES[i] for i in viterbi_indices(observations, transition, emission, initial)]
