"""
Regime Island - FastAPI Application Entry Point
Hidden-state regime detection for personal finance self-assessment
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

from regime_engine.config import get_settings
from regime_engine.routers import health, regime

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Runs startup and shutdown logic.
    """
    # Startup
    logger.info("Starting %s v%s", settings.app_name, settings.app_version)
    logger.info("Environment: %s", settings.app_env)
    yield
    # Shutdown
    logger.info("Shutting down %s", settings.app_name)


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="""
## Regime Island API

Infers which of four latent financial-health states
(Stable, Strain, Crisis, Recovery) a sequence of weekly check-ins points to.

### Signals per week

- Income trend: up / flat / down
- Energy: low / med / high
- Expense spike: no / yes

### Algorithms

- Scaled forward-backward posteriors
- Viterbi most-likely path
- Baum-Welch re-estimation (optional, capped)
    """,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# CORS middleware for cross-origin requests
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register API routers
app.include_router(health.router, tags=["Health"])
app.include_router(
    regime.router,
    prefix=settings.api_prefix,
    tags=["Regime (Hidden States)"]
)


@app.get("/", tags=["Root"])
async def root():
    """
    Welcome endpoint with API information.
    """
    return {
        "message": "Welcome to Regime Island API",
        "tagline": "Where is your financial weather heading?",
        "version": settings.app_version,
        "docs": "/docs",
        "health": "/health"
    }
