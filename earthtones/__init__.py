"""
Earthtones

Derives earth-inspired color palettes from satellite imagery: tile retrieval,
pixel sampling, CIE L*a*b* conversion and clustering into representative colors.
"""

__version__ = "1.0.0"

from earthtones.errors import (
    EarthtonesError,
    InsufficientData,
    InvalidClusterCount,
    InvalidParameter,
    RetrievalFailure,
)
from earthtones.services.colors.clustering import ClusterMethod
from earthtones.services.palette import Provider, colors_from_raster, get_earthtones

__all__ = [
    "ClusterMethod",
    "EarthtonesError",
    "InsufficientData",
    "InvalidClusterCount",
    "InvalidParameter",
    "Provider",
    "RetrievalFailure",
    "colors_from_raster",
    "get_earthtones",
]
