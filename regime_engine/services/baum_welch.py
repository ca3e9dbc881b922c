"""
Regime Island - Baum-Welch Trainer
EM re-estimation of (A, B, pi) from a single observation sequence.

Runs a fixed number of iterations with no convergence check: the state
and symbol spaces are tiny and the iteration count is capped.
"""

import math
import numpy as np
from typing import Optional, Sequence
import logging

from regime_engine.services.hmm_parameters import HmmModel, normalize_matrix, normalize_row
from regime_engine.services.hmm_inference import forward_backward

logger = logging.getLogger(__name__)

MAX_TRAIN_ITERATIONS = 25
PROB_FLOOR = 1e-6


def clamp_iterations(iterations: Optional[float]) -> int:
    """Floor to an int in [0, MAX_TRAIN_ITERATIONS]; None and NaN mean 0."""
    if iterations is None:
        return 0
    try:
        value = float(iterations)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(value):
        return MAX_TRAIN_ITERATIONS if value > 0 else 0
    return min(MAX_TRAIN_ITERATIONS, max(0, math.floor(value)))


def _expected_transitions(obs: np.ndarray, fb, transition: np.ndarray, emission: np.ndarray) -> np.ndarray:
    """xi[t, i, j] for t = 0..T-2, each slice summing to 1 unless it had no mass."""
    T = len(obs)
    N = transition.shape[0]
    xi = np.zeros((T - 1, N, N))
    for t in range(T - 1):
        weights = emission[:, obs[t + 1]] * fb.beta[t + 1]
        xi[t] = fb.alpha[t][:, None] * transition * weights[None, :]
        total = xi[t].sum()
        if total > 0:
            xi[t] /= total
    return xi


def baum_welch(
    observations: Sequence[int],
    transition: np.ndarray,
    emission: np.ndarray,
    initial: np.ndarray,
    iterations: Optional[float]
) -> HmmModel:
    """
    Re-estimate the model over `observations`.

    Iterations are clamped to MAX_TRAIN_ITERATIONS. With fewer than two
    observations or zero iterations the inputs come back unchanged.
    """
    model = HmmModel(
        transition=np.array(transition, dtype=float),
        emission=np.array(emission, dtype=float),
        initial=np.array(initial, dtype=float)
    )
    n_iter = clamp_iterations(iterations)
    obs = np.asarray(observations, dtype=int)
    T = len(obs)
    if T < 2 or n_iter == 0:
        return model

    A, B, pi = model.transition, model.emission, model.initial
    N = A.shape[0]
    M = B.shape[1]

    for iteration in range(n_iter):
        fb = forward_backward(obs, A, B, pi)
        gamma = fb.gamma
        xi = _expected_transitions(obs, fb, A, B)

        pi = normalize_row(gamma[0])

        new_A = np.zeros((N, N))
        gamma_sum = gamma[:T - 1].sum(axis=0)
        xi_sum = xi.sum(axis=0)
        for i in range(N):
            new_A[i] = 1.0 / N if gamma_sum[i] == 0 else xi_sum[i] / gamma_sum[i]

        new_B = np.zeros((N, M))
        counts = np.zeros((N, M))
        for t in range(T):
            counts[:, obs[t]] += gamma[t]
        gamma_total = gamma.sum(axis=0)
        for i in range(N):
            new_B[i] = 1.0 / M if gamma_total[i] == 0 else counts[i] / gamma_total[i]

        A = normalize_matrix(np.maximum(new_A, PROB_FLOOR))
        B = normalize_matrix(np.maximum(new_B, PROB_FLOOR))

        logger.debug(
            "Baum-Welch iteration %d/%d: log-likelihood %.6f",
            iteration + 1, n_iter, fb.log_likelihood
        )

    return HmmModel(transition=A, emission=B, initial=pi)
