from regime_engine.schemas.regime_schemas import WeeklyObservation


def week(income: str, energy: str, expense: str) -> WeeklyObservation:
    """Shorthand for a WeeklyObservation."""
    return WeeklyObservation(income_trend=income, energy=energy, expenses_spike=expense)
