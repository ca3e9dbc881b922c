"""
Regime Island - Observation Encoder
Maps (income trend, energy, expense spike) weeks onto the 18-symbol alphabet.

ENCODING:
    index = (income_idx * 3 + energy_idx) * 2 + expense_idx

    income is the outer digit, energy the middle, expense the inner one.
    Emission matrix columns follow exactly this order.
"""

from enum import Enum
import numbers
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple
import logging

from regime_engine.schemas.regime_schemas import (
    IncomeTrend, EnergyLevel, ExpensesSpike, WeeklyObservation
)

logger = logging.getLogger(__name__)

INCOME_TRENDS: Tuple[IncomeTrend, ...] = (IncomeTrend.UP, IncomeTrend.FLAT, IncomeTrend.DOWN)
ENERGY_LEVELS: Tuple[EnergyLevel, ...] = (EnergyLevel.LOW, EnergyLevel.MED, EnergyLevel.HIGH)
EXPENSE_LEVELS: Tuple[ExpensesSpike, ...] = (ExpensesSpike.NO, ExpensesSpike.YES)

N_SYMBOLS = len(INCOME_TRENDS) * len(ENERGY_LEVELS) * len(EXPENSE_LEVELS)

_INCOME_INDEX = {trend.value: i for i, trend in enumerate(INCOME_TRENDS)}
_ENERGY_INDEX = {level.value: i for i, level in enumerate(ENERGY_LEVELS)}
_EXPENSE_INDEX = {level.value: i for i, level in enumerate(EXPENSE_LEVELS)}

_KEYS = (
    ("income_trend", "incomeTrend"),
    ("energy", "energy_level"),
    ("expenses_spike", "expensesSpike"),
)


def _token(value: Any) -> Optional[str]:
    if isinstance(value, Enum):
        value = value.value
    return value if isinstance(value, str) else None


def _fields_of(observation: Any) -> Optional[Tuple[Any, Any, Any]]:
    """Pull the three raw feature values out of any supported record shape."""
    if isinstance(observation, WeeklyObservation):
        return observation.income_trend, observation.energy, observation.expenses_spike
    if isinstance(observation, Mapping):
        values = []
        for names in _KEYS:
            value = None
            for name in names:
                if name in observation:
                    value = observation[name]
                    break
            values.append(value)
        return tuple(values)
    if isinstance(observation, Sequence) and not isinstance(observation, (str, bytes)):
        if len(observation) != 3:
            return None
        return observation[0], observation[1], observation[2]
    return None


def encode_observation(observation: Any) -> Optional[int]:
    """
    Encode one week into a symbol in [0, 17].

    Accepts a WeeklyObservation, a mapping, an (income, energy, expense)
    triple or an already-encoded int. Returns None for anything that does
    not fit the vocabulary; never raises.
    """
    if isinstance(observation, bool):
        return None
    if isinstance(observation, numbers.Integral):
        symbol = int(observation)
        return symbol if 0 <= symbol < N_SYMBOLS else None

    fields = _fields_of(observation)
    if fields is None:
        return None

    income, energy, expense = (_token(value) for value in fields)
    income_idx = _INCOME_INDEX.get(income)
    energy_idx = _ENERGY_INDEX.get(energy)
    expense_idx = _EXPENSE_INDEX.get(expense)
    if income_idx is None or energy_idx is None or expense_idx is None:
        return None

    return (income_idx * len(ENERGY_LEVELS) + energy_idx) * len(EXPENSE_LEVELS) + expense_idx


def encode_sequence(observations: Iterable[Any]) -> List[int]:
    """Encode a run of weeks, silently dropping unencodable records."""
    encoded = []
    dropped = 0
    for observation in observations:
        symbol = encode_observation(observation)
        if symbol is None:
            dropped += 1
            continue
        encoded.append(symbol)

    if dropped:
        logger.debug("Dropped %d unencodable observation(s), kept %d", dropped, len(encoded))
    return encoded


def decode_symbol(index: int) -> Optional[Tuple[IncomeTrend, EnergyLevel, ExpensesSpike]]:
    """Inverse of encode_observation for symbols in [0, 17]."""
    if isinstance(index, bool) or not isinstance(index, numbers.Integral):
        return None
    if not 0 <= index < N_SYMBOLS:
        return None
    rest, expense_idx = divmod(int(index), len(EXPENSE_LEVELS))
    income_idx, energy_idx = divmod(rest, len(ENERGY_LEVELS))
    return INCOME_TRENDS[income_idx], ENERGY_LEVELS[energy_idx], EXPENSE_LEVELS[expense_idx]
