"""
Baum-Welch re-estimation.
"""

import math

import numpy as np
import pytest

from regime_engine.services.baum_welch import (
    MAX_TRAIN_ITERATIONS, PROB_FLOOR, baum_welch, clamp_iterations
)
from regime_engine.services.hmm_inference import forward_backward

TOL = 1e-9


def train(model, sequence, iterations):
    return baum_welch(sequence, model.transition, model.emission, model.initial, iterations)


# ---------------------------------------------------------------------------
# Iteration clamping
# ---------------------------------------------------------------------------

class TestClampIterations:
    @pytest.mark.parametrize("requested, expected", [
        (None, 0),
        (0, 0),
        (-3, 0),
        (2.7, 2),
        (10, 10),
        (25, 25),
        (26, 25),
        (1000, 25),
        (math.nan, 0),
        (math.inf, MAX_TRAIN_ITERATIONS),
        ("lots", 0),
    ])
    def test_clamp(self, requested, expected) -> None:
        assert clamp_iterations(requested) == expected


# ---------------------------------------------------------------------------
# No-op cases
# ---------------------------------------------------------------------------

class TestNoOp:
    def test_zero_iterations_returns_inputs(self, model, alternating_sequence) -> None:
        trained = train(model, alternating_sequence, 0)
        np.testing.assert_array_equal(trained.transition, model.transition)
        np.testing.assert_array_equal(trained.emission, model.emission)
        np.testing.assert_array_equal(trained.initial, model.initial)

    @pytest.mark.parametrize("sequence", [[], [4]])
    def test_short_sequence_returns_inputs(self, model, sequence) -> None:
        trained = train(model, sequence, 10)
        np.testing.assert_array_equal(trained.transition, model.transition)
        np.testing.assert_array_equal(trained.emission, model.emission)
        np.testing.assert_array_equal(trained.initial, model.initial)

    def test_returned_arrays_are_copies(self, model, alternating_sequence) -> None:
        trained = train(model, alternating_sequence, 0)
        trained.transition[0, 0] = -1.0
        assert model.transition[0, 0] != -1.0


# ---------------------------------------------------------------------------
# Re-estimation
# ---------------------------------------------------------------------------

class TestTraining:
    def test_rows_stay_stochastic(self, model, alternating_sequence) -> None:
        trained = train(model, alternating_sequence, 10)
        for matrix in (trained.transition, trained.emission):
            assert np.all(matrix >= 0)
            np.testing.assert_allclose(matrix.sum(axis=1), 1.0, atol=TOL)
        assert trained.initial.sum() == pytest.approx(1.0, abs=TOL)

    def test_shapes_preserved(self, model, mixed_sequence) -> None:
        trained = train(model, mixed_sequence, 5)
        assert trained.transition.shape == (4, 4)
        assert trained.emission.shape == (4, 18)
        assert trained.initial.shape == (4,)

    def test_entries_floored_above_zero(self, model, alternating_sequence) -> None:
        trained = train(model, alternating_sequence, 25)
        # Only two symbols are ever observed; the other 16 columns sit at the floor
        assert np.all(trained.transition > 0)
        assert np.all(trained.emission > 0)
        assert trained.emission.min() < 10 * PROB_FLOOR

    def test_improves_likelihood(self, model, alternating_sequence) -> None:
        before = forward_backward(
            alternating_sequence, model.transition, model.emission, model.initial
        ).log_likelihood
        trained = train(model, alternating_sequence, 10)
        after = forward_backward(
            alternating_sequence, trained.transition, trained.emission, trained.initial
        ).log_likelihood
        assert after > before

    def test_initial_is_first_posterior(self, model, alternating_sequence) -> None:
        trained = train(model, alternating_sequence, 1)
        gamma0 = forward_backward(
            alternating_sequence, model.transition, model.emission, model.initial
        ).gamma[0]
        np.testing.assert_allclose(trained.initial, gamma0, atol=TOL)

    def test_iterations_capped(self, model, mixed_sequence) -> None:
        capped = train(model, mixed_sequence, 100)
        explicit = train(model, mixed_sequence, MAX_TRAIN_ITERATIONS)
        np.testing.assert_array_equal(capped.transition, explicit.transition)
        np.testing.assert_array_equal(capped.emission, explicit.emission)

    def test_inputs_not_mutated(self, model, mixed_sequence) -> None:
        before = model.copy()
        train(model, mixed_sequence, 5)
        np.testing.assert_array_equal(model.transition, before.transition)
        np.testing.assert_array_equal(model.emission, before.emission)
        np.testing.assert_array_equal(model.initial, before.initial)

    def test_deterministic(self, model, mixed_sequence) -> None:
        first = train(model, mixed_sequence, 7)
        second = train(model, mixed_sequence, 7)
        np.testing.assert_array_equal(first.transition, second.transition)
        np.testing.assert_array_equal(first.emission, second.emission)
        np.testing.assert_array_equal(first.initial, second.initial)

    def test_degenerate_start_model(self, mixed_sequence) -> None:
        transition = np.zeros((4, 4))
        emission = np.full((4, 18), 1 / 18)
        initial = np.full(4, 0.25)
        trained = baum_welch(mixed_sequence, transition, emission, initial, 3)
        assert np.all(np.isfinite(trained.transition))
        np.testing.assert_allclose(trained.transition.sum(axis=1), 1.0, atol=TOL)

    def test_unreachable_state_gets_uniform_rows(self, model, mixed_sequence) -> None:
        # Recovery can neither start nor be entered, so its occupancy is exactly 0
        transition = np.array([
            [0.5, 0.3, 0.2, 0.0],
            [0.3, 0.4, 0.3, 0.0],
            [0.2, 0.3, 0.5, 0.0],
            [0.4, 0.3, 0.3, 0.0],
        ])
        initial = np.array([1.0, 0.0, 0.0, 0.0])
        gamma = forward_backward(mixed_sequence, transition, model.emission, initial).gamma
        assert np.all(gamma[:, 3] == 0)

        trained = baum_welch(mixed_sequence, transition, model.emission, initial, 1)
        np.testing.assert_allclose(trained.transition[3], np.full(4, 0.25), atol=TOL)
        np.testing.assert_allclose(trained.emission[3], np.full(18, 1 / 18), atol=TOL)
        np.testing.assert_allclose(trained.transition.sum(axis=1), 1.0, atol=TOL)
        assert not np.allclose(trained.transition[0], 0.25)
