import pytest

from regime_engine.services.hmm_parameters import HmmModel, default_model
from regime_engine.services.observation_encoder import encode_sequence
from tests.helpers import week


@pytest.fixture
def model() -> HmmModel:
    """Fresh default priors."""
    return default_model()


@pytest.fixture
def alternating_weeks():
    """Eight weeks flipping between a bad week and a good week."""
    return [
        week("down", "low", "yes") if i % 2 == 0 else week("up", "high", "no")
        for i in range(8)
    ]


@pytest.fixture
def alternating_sequence(alternating_weeks):
    return encode_sequence(alternating_weeks)


@pytest.fixture
def mixed_sequence():
    """A longer encoded run with every feature varying."""
    return [4, 4, 10, 3, 15, 13, 12, 7, 2, 4, 16, 0]
