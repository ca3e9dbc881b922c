"""
Regime Island - HMM Schemas
Pydantic models for the regime inference API request/response handling
"""

from pydantic import AliasChoices, BaseModel, Field, ConfigDict, StrictInt
from typing import Annotated, Any, List, Optional, Union
from datetime import datetime
from enum import Enum


# ═══════════════════════════════════════════════════════════════════════════════
# ENUMS
# ═══════════════════════════════════════════════════════════════════════════════

class HmmState(str, Enum):
    """Four latent financial-health states (order = matrix index)"""
    STABLE = "Stable"
    STRAIN = "Strain"
    CRISIS = "Crisis"
    RECOVERY = "Recovery"


class IncomeTrend(str, Enum):
    """Week-over-week income direction"""
    UP = "up"
    FLAT = "flat"
    DOWN = "down"


class EnergyLevel(str, Enum):
    """Self-reported energy for the week"""
    LOW = "low"
    MED = "med"
    HIGH = "high"


class ExpensesSpike(str, Enum):
    """Whether the week had an unusual expense"""
    NO = "no"
    YES = "yes"


# ═══════════════════════════════════════════════════════════════════════════════
# REQUEST SCHEMAS
# ═══════════════════════════════════════════════════════════════════════════════

class WeeklyObservation(BaseModel):
    """
    One week of signals.

    Fields accept any JSON value: unknown or non-string tokens are dropped
    by the encoder rather than rejected by request validation.
    """
    income_trend: Optional[Any] = Field(
        default=None,
        validation_alias=AliasChoices("income_trend", "incomeTrend"),
        description="up | flat | down"
    )
    energy: Optional[Any] = Field(
        default=None,
        validation_alias=AliasChoices("energy", "energy_level"),
        description="low | med | high"
    )
    expenses_spike: Optional[Any] = Field(
        default=None,
        validation_alias=AliasChoices("expenses_spike", "expensesSpike"),
        description="no | yes"
    )

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "income_trend": "flat",
            "energy": "med",
            "expenses_spike": "yes"
        }
    })


# Pre-encoded symbol, then a record, then anything else (nulls, strings,
# triples) passed through untouched for the encoder to accept or drop
WeekInput = Annotated[
    Union[StrictInt, WeeklyObservation, Any],
    Field(union_mode="left_to_right")
]


class RegimeAnalysisRequest(BaseModel):
    """Request for regime inference over a sequence of weeks"""
    weeks: List[WeekInput] = Field(
        default_factory=list,
        validation_alias=AliasChoices("weeks", "observations", "sequence"),
        description="Weekly observations, or pre-encoded symbols 0-17"
    )
    transition_matrix: Optional[List[List[float]]] = Field(
        default=None,
        validation_alias=AliasChoices("transition_matrix", "transitionMatrix"),
        description="Optional 4x4 transition matrix override"
    )
    emission_matrix: Optional[List[List[float]]] = Field(
        default=None,
        validation_alias=AliasChoices("emission_matrix", "emissionMatrix"),
        description="Optional 4x18 emission matrix override"
    )
    initial_distribution: Optional[List[float]] = Field(
        default=None,
        validation_alias=AliasChoices("initial_distribution", "initialDistribution"),
        description="Optional length-4 initial distribution override"
    )
    train_iterations: Optional[float] = Field(
        default=None, ge=0, le=1000,
        validation_alias=AliasChoices("train_iterations", "trainIterations"),
        description="Baum-Welch iterations (engine caps at 25)"
    )
    request_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("request_id", "requestId"),
        description="Echoed back so clients can drop stale responses"
    )

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "weeks": [
                {"income_trend": "up", "energy": "high", "expenses_spike": "no"},
                {"income_trend": "flat", "energy": "med", "expenses_spike": "yes"},
                {"income_trend": "down", "energy": "low", "expenses_spike": "yes"}
            ],
            "train_iterations": 5
        }
    })


class RegimeForecastRequest(BaseModel):
    """Request for propagating a state distribution forward"""
    distribution: Optional[List[float]] = Field(
        default=None,
        description="Starting distribution over the 4 states (defaults to the prior)"
    )
    transition_matrix: Optional[List[List[float]]] = Field(
        default=None,
        validation_alias=AliasChoices("transition_matrix", "transitionMatrix"),
        description="Optional 4x4 transition matrix override"
    )
    weeks: Optional[int] = Field(
        default=None, ge=1, le=52,
        description="Number of weeks to forecast (1-52)"
    )


# ═══════════════════════════════════════════════════════════════════════════════
# RESPONSE SCHEMAS
# ═══════════════════════════════════════════════════════════════════════════════

class RegimeAnalysisResult(BaseModel):
    """Mathematical output of one analysis run"""
    encoded: List[int]
    states: List[HmmState]
    transition_matrix: List[List[float]]
    emission_matrix: List[List[float]]
    initial_distribution: List[float]
    gamma: List[List[float]] = Field(
        ..., description="Posterior state occupancy per week ([prior] when no weeks)"
    )
    viterbi_path: List[HmmState]
    next_distribution: List[float]
    crisis_probability: float = Field(..., ge=0, le=1)
    headline_state: HmmState
    trained: bool


class RegimeIndicators(BaseModel):
    """Presentation-facing scalars; heuristics, not statistical guarantees"""
    confidence: float = Field(
        ..., ge=0, le=100,
        description="Heuristic from sequence length and posterior sharpness"
    )
    resilience_score: float = Field(..., ge=0, le=100)
    state_probability: float = Field(..., ge=0, le=1)
    next_state: HmmState
    next_probability: float = Field(..., ge=0, le=1)


class RegimeAnalysisResponse(BaseModel):
    """Complete regime analysis output"""
    request_id: Optional[str] = None
    analysis_timestamp: datetime
    valid_observations: int
    dropped_observations: int
    analysis: RegimeAnalysisResult
    indicators: RegimeIndicators


class WeeklyRegimeForecast(BaseModel):
    """Forecast state distribution for one week ahead"""
    week: int
    distribution: List[float]
    dominant_state: HmmState
    probability: float = Field(..., ge=0, le=1)


class RegimeForecastResponse(BaseModel):
    """Regime forecast response"""
    start_distribution: List[float]
    weekly_forecast: List[WeeklyRegimeForecast]
    overall_trend: str = Field(
        ..., description="IMPROVING, STABLE, or DETERIORATING"
    )
