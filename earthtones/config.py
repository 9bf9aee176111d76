"""
Earthtones Configuration
Manages environment variables and policy defaults for the palette pipeline.
"""
import os
from typing import Optional


class Config:
    """Configuration class for earthtones services."""

    # Zoom policy (0 = whole world, 13 = maximum practical detail)
    MIN_ZOOM: int = int(os.environ.get("EARTHTONES_MIN_ZOOM", "0"))
    MAX_ZOOM: int = int(os.environ.get("EARTHTONES_MAX_ZOOM", "13"))

    # Sampling policy
    DEFAULT_SAMPLE_RATE: int = int(os.environ.get("EARTHTONES_DEFAULT_SAMPLE_RATE", "500"))
    # Below this subsampling divisor the medoid method gets a performance hint
    MEDOID_ADVISORY_RATE: int = int(os.environ.get("EARTHTONES_MEDOID_ADVISORY_RATE", "300"))
    # MEDOID holds an n x n float64 distance matrix; 5000 samples is 200 MB
    MAX_MEDOID_SAMPLES: int = int(os.environ.get("EARTHTONES_MAX_MEDOID_SAMPLES", "5000"))

    # Tile retrieval
    TILE_URL_ESRI: str = os.environ.get(
        "EARTHTONES_TILE_URL_ESRI",
        "https://server.arcgisonline.com/ArcGIS/rest/services/World_Imagery/MapServer/tile/{z}/{y}/{x}",
    )
    TILE_TIMEOUT: float = float(os.environ.get("EARTHTONES_TILE_TIMEOUT", "10"))
    MAX_TILES: int = int(os.environ.get("EARTHTONES_MAX_TILES", "64"))
    USER_AGENT: str = os.environ.get("EARTHTONES_USER_AGENT", "earthtones/1.0")

    # Logging
    LOG_LEVEL: str = os.environ.get("EARTHTONES_LOG_LEVEL", "INFO")

    # Optional fixed seed for API requests that do not pass one
    DEFAULT_SEED: Optional[int] = (
        int(os.environ["EARTHTONES_DEFAULT_SEED"]) if os.environ.get("EARTHTONES_DEFAULT_SEED") else None
    )

    # Number of colors accepted by the HTTP surface
    MAX_COLORS: int = int(os.environ.get("EARTHTONES_MAX_COLORS", "16"))


# Global config instance
config = Config()
