"""
Earthtones HTTP service.

Run with: uvicorn main:app
"""
from fastapi import FastAPI

from earthtones import __version__
from earthtones.api.v1 import router as v1_router
from earthtones.config import config
from earthtones.schemas import HealthResponse
from earthtones.utils.logging import configure_logging

configure_logging(config.LOG_LEVEL)

app = FastAPI(
    title="Earthtones",
    description="Earth-inspired color palettes from satellite imagery",
    version=__version__,
)

app.include_router(v1_router)


@app.get("/healthz", response_model=HealthResponse)
def health_check():
    """Health check endpoint."""
    return HealthResponse(ok=True, version=__version__)


@app.get("/")
def root():
    return {"service": "earthtones", "docs": "/docs", "palette": "/v1/earthtones"}
