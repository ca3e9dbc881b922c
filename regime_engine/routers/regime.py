"""
Regime Island - Regime Router
HMM-based financial regime detection and forecasting
"""

from fastapi import APIRouter, HTTPException
from starlette.concurrency import run_in_threadpool
import logging

from regime_engine.schemas.regime_schemas import (
    RegimeAnalysisRequest, RegimeAnalysisResponse,
    RegimeForecastRequest, RegimeForecastResponse
)
from regime_engine.services.regime_service import RegimeService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/regime")

# Initialize service
regime_service = RegimeService()


@router.post("/analyze", response_model=RegimeAnalysisResponse)
async def analyze_regime(request: RegimeAnalysisRequest):
    """
    Infer the current financial-health regime from weekly observations.

    Uses a 4-state discrete Hidden Markov Model over:
    - **Stable**: income steady or rising, energy high, few spikes
    - **Strain**: flat or falling income, energy slipping
    - **Crisis**: falling income, low energy, expense spikes
    - **Recovery**: income turning up after a hard stretch

    Weeks that do not fit the vocabulary are dropped. Optional matrices
    override the built-in priors when their shape matches, and
    `train_iterations` re-estimates them with Baum-Welch (capped at 25).

    The `indicators` block is presentation-oriented; `confidence` is a
    heuristic, not a probability.
    """
    try:
        return await run_in_threadpool(regime_service.analyze, request)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("Regime analysis failed")
        raise HTTPException(status_code=500, detail=f"Analysis failed: {str(e)}")


@router.post("/forecast", response_model=RegimeForecastResponse)
async def forecast_regimes(request: RegimeForecastRequest):
    """
    Forecast regime probabilities for the next N weeks.

    Propagates the starting distribution (the prior if omitted) through
    the transition matrix one week at a time.
    """
    try:
        return regime_service.forecast(request)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("Regime forecast failed")
        raise HTTPException(status_code=500, detail=f"Forecast failed: {str(e)}")


@router.get("/model-info")
async def get_model_info():
    """
    Get information about the default HMM and engine limits.
    """
    return regime_service.model_info()
