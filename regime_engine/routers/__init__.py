# Regime Island - Routers Package
from regime_engine.routers import health, regime

__all__ = ["health", "regime"]
