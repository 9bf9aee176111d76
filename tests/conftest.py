"""
Test configuration and fixtures for earthtones tests.
"""
import numpy as np
import pytest
from loguru import logger

from earthtones.errors import RetrievalFailure
from earthtones.services.tiles import Raster


class FakeTileFetcher:
    """Stands in for TileFetcher; returns a fixed grid and records calls."""

    def __init__(self, pixels=None, error=None, scale=255.0):
        self.pixels = pixels
        self.error = error
        self.scale = scale
        self.calls = []

    def fetch(self, bbox, provider, zoom, crop=True):
        self.calls.append({"bbox": bbox, "provider": provider, "zoom": zoom, "crop": crop})
        if self.error is not None:
            raise self.error
        return Raster(pixels=self.pixels, extent=bbox, zoom=int(round(zoom)), provider=provider,
                      scale=self.scale)


@pytest.fixture
def grey_grid():
    """10×10 uniform (128, 128, 128) grid."""
    return np.full((10, 10, 3), 128, dtype=np.uint8)


@pytest.fixture
def two_color_grid():
    """10×10 grid: 50 pure red pixels followed by 50 pure blue pixels."""
    grid = np.zeros((10, 10, 3), dtype=np.uint8)
    grid[:5, :] = (255, 0, 0)
    grid[5:, :] = (0, 0, 255)
    return grid


@pytest.fixture
def nodata_grid():
    """10×10 grid where every pixel is missing."""
    return np.full((10, 10, 3), np.nan)


@pytest.fixture
def fake_fetcher(two_color_grid):
    return FakeTileFetcher(pixels=two_color_grid)


@pytest.fixture
def failing_fetcher():
    return FakeTileFetcher(error=RetrievalFailure("Provider unreachable"))


@pytest.fixture
def log_records():
    """Capture loguru records emitted during a test."""
    records = []
    handler_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
    yield records
    logger.remove(handler_id)


@pytest.fixture
def fetcher_factory():
    """Build FakeTileFetcher instances with custom pixels or errors."""
    return FakeTileFetcher
