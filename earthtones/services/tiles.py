"""
Tile retrieval and coordinate transforms.

Fetches XYZ imagery tiles covering a Web Mercator (EPSG:3857) bounding box,
mosaics them and crops the result to the box. Only the single configured
provider is supported.
"""
import math
from dataclasses import dataclass
from enum import Enum
from io import BytesIO
from typing import Dict, List, Optional, Tuple

import numpy as np
import requests
from loguru import logger
from PIL import Image, UnidentifiedImageError

from earthtones.config import config
from earthtones.errors import InvalidParameter, RetrievalFailure

EARTH_RADIUS_M = 6378137.0
ORIGIN_SHIFT_M = math.pi * EARTH_RADIUS_M
MAX_MERCATOR_LAT = 85.05112878
TILE_SIZE = 256


class Provider(str, Enum):
    """Supported imagery providers."""

    ESRI_WORLD_IMAGERY = "Esri.WorldImagery"

    @classmethod
    def names(cls) -> List[str]:
        return [p.value for p in cls]

    @classmethod
    def parse(cls, value) -> "Provider":
        """Resolve a member, its provider name, or "default"."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            if value == "default":
                return DEFAULT_PROVIDER
            for provider in cls:
                if provider.value == value:
                    return provider
        raise InvalidParameter(
            f"Provider {value!r} is not supported. Choose from: {', '.join(cls.names())}"
        )


DEFAULT_PROVIDER = Provider.ESRI_WORLD_IMAGERY


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box in EPSG:3857 metres."""

    xmin: float
    ymin: float
    xmax: float
    ymax: float

    @property
    def width(self) -> float:
        return self.xmax - self.xmin

    @property
    def height(self) -> float:
        return self.ymax - self.ymin


class Raster:
    """RGB image with its georeferencing and channel scale (255 for 8-bit, 1 for normalized)."""

    def __init__(self, pixels: np.ndarray, extent: BoundingBox, zoom: int,
                 provider: Optional[Provider] = None, crs: str = "EPSG:3857",
                 scale: float = 255.0):
        self.pixels = pixels
        self.extent = extent
        self.zoom = zoom
        self.provider = provider or DEFAULT_PROVIDER
        self.crs = crs
        self.scale = scale

    def __repr__(self) -> str:
        height, width = self.shape
        return f"Raster({width}×{height}, zoom={self.zoom}, provider={self.provider.value}, crs={self.crs})"

    @property
    def shape(self) -> Tuple[int, int]:
        return self.pixels.shape[:2]

    def to_uint8(self) -> np.ndarray:
        """RGB bands rescaled to 8-bit; missing values become black."""
        rgb = np.asarray(self.pixels[..., :3], dtype=np.float64) * (255.0 / self.scale)
        return np.clip(np.nan_to_num(rgb, nan=0.0), 0, 255).round().astype(np.uint8)


def lonlat_to_mercator(longitude: float, latitude: float) -> Tuple[float, float]:
    """Project WGS84 longitude/latitude to spherical Web Mercator metres."""
    lat = max(-MAX_MERCATOR_LAT, min(MAX_MERCATOR_LAT, latitude))
    x = EARTH_RADIUS_M * math.radians(longitude)
    y = EARTH_RADIUS_M * math.log(math.tan(math.pi / 4.0 + math.radians(lat) / 2.0))
    return x, y


def bbox_around(longitude: float, latitude: float, zoom: float) -> BoundingBox:
    """
    Square box centred on a point, sized inversely to zoom.

    The half-width is 5 km per zoom level below 15, so zoom 0 covers
    +/-75 km and zoom 13 covers +/-10 km.
    """
    x, y = lonlat_to_mercator(longitude, latitude)
    half = 5000.0 * (15.0 - zoom)
    return BoundingBox(x - half, y - half, x + half, y + half)


def tile_span(zoom: int) -> float:
    """Edge length of one tile in metres at a zoom level."""
    return 2.0 * ORIGIN_SHIFT_M / (2 ** zoom)


def tile_range(bbox: BoundingBox, zoom: int) -> Tuple[int, int, int, int]:
    """Inclusive XYZ tile index range (x0, y0, x1, y1) covering a bbox."""
    n = 2 ** zoom
    span = tile_span(zoom)

    def clip(i: float) -> int:
        return int(min(max(math.floor(i), 0), n - 1))

    x0 = clip((bbox.xmin + ORIGIN_SHIFT_M) / span)
    x1 = clip((bbox.xmax + ORIGIN_SHIFT_M) / span)
    y0 = clip((ORIGIN_SHIFT_M - bbox.ymax) / span)
    y1 = clip((ORIGIN_SHIFT_M - bbox.ymin) / span)
    return x0, y0, x1, y1


def crop_to_bbox(pixels: np.ndarray, extent: BoundingBox, bbox: BoundingBox) -> Tuple[np.ndarray, BoundingBox]:
    """Crop a north-up raster to the part that intersects bbox."""
    height, width = pixels.shape[:2]
    res_x = extent.width / width
    res_y = extent.height / height

    col0 = int(np.clip(math.floor((bbox.xmin - extent.xmin) / res_x), 0, width))
    col1 = int(np.clip(math.ceil((bbox.xmax - extent.xmin) / res_x), 0, width))
    row0 = int(np.clip(math.floor((extent.ymax - bbox.ymax) / res_y), 0, height))
    row1 = int(np.clip(math.ceil((extent.ymax - bbox.ymin) / res_y), 0, height))

    cropped = pixels[row0:row1, col0:col1]
    new_extent = BoundingBox(
        xmin=extent.xmin + col0 * res_x,
        ymin=extent.ymax - row1 * res_y,
        xmax=extent.xmin + col1 * res_x,
        ymax=extent.ymax - row0 * res_y,
    )
    return cropped, new_extent


class TileFetcher:
    """Downloads and mosaics XYZ tiles with a shared requests session."""

    def __init__(self,
                 session: Optional[requests.Session] = None,
                 url_templates: Optional[Dict[Provider, str]] = None,
                 timeout: Optional[float] = None,
                 max_tiles: Optional[int] = None):
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", config.USER_AGENT)
        self.url_templates = url_templates or {Provider.ESRI_WORLD_IMAGERY: config.TILE_URL_ESRI}
        self.timeout = timeout if timeout is not None else config.TILE_TIMEOUT
        self.max_tiles = max_tiles if max_tiles is not None else config.MAX_TILES

    def _fetch_tile(self, template: str, z: int, x: int, y: int) -> np.ndarray:
        url = template.format(z=z, x=x, y=y)
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Tile request failed for {url}: {e}")
            raise RetrievalFailure(f"Failed to fetch tile z={z} x={x} y={y}: {e}") from e

        try:
            image = Image.open(BytesIO(response.content)).convert("RGB")
        except (UnidentifiedImageError, OSError) as e:
            raise RetrievalFailure(f"Tile z={z} x={x} y={y} is not a decodable image") from e

        if image.size != (TILE_SIZE, TILE_SIZE):
            image = image.resize((TILE_SIZE, TILE_SIZE), Image.Resampling.BILINEAR)
        return np.asarray(image, dtype=np.uint8)

    def fetch(self, bbox: BoundingBox, provider=DEFAULT_PROVIDER, zoom: float = 11, crop: bool = True) -> Raster:
        """
        Retrieve imagery covering bbox.

        Args:
            bbox: Target box in EPSG:3857 metres
            provider: Provider member or name
            zoom: Zoom level; rounded to the nearest tile level
            crop: Crop the mosaic to bbox

        Returns:
            Raster with (H, W, 3) uint8 pixels

        Raises:
            RetrievalFailure: Unknown provider, network/HTTP error, bad tile data
                or a request that would need more than max_tiles tiles
        """
        try:
            provider = Provider.parse(provider)
        except InvalidParameter as e:
            raise RetrievalFailure(str(e)) from e
        template = self.url_templates.get(provider)
        if template is None:
            raise RetrievalFailure(f"No tile URL configured for provider {provider.value}")

        z = int(round(zoom))
        x0, y0, x1, y1 = tile_range(bbox, z)
        n_tiles = (x1 - x0 + 1) * (y1 - y0 + 1)
        if n_tiles > self.max_tiles:
            raise RetrievalFailure(
                f"Request needs {n_tiles} tiles at zoom {z}, more than the limit of {self.max_tiles}"
            )
        logger.info(f"Fetching {n_tiles} tile(s) from {provider.value} at zoom {z}")

        rows = []
        for y in range(y0, y1 + 1):
            rows.append(np.concatenate(
                [self._fetch_tile(template, z, x, y) for x in range(x0, x1 + 1)], axis=1
            ))
        mosaic = np.concatenate(rows, axis=0)

        span = tile_span(z)
        extent = BoundingBox(
            xmin=x0 * span - ORIGIN_SHIFT_M,
            ymin=ORIGIN_SHIFT_M - (y1 + 1) * span,
            xmax=(x1 + 1) * span - ORIGIN_SHIFT_M,
            ymax=ORIGIN_SHIFT_M - y0 * span,
        )
        if crop:
            mosaic, extent = crop_to_bbox(mosaic, extent, bbox)
            logger.debug(f"Cropped mosaic to {mosaic.shape[1]}×{mosaic.shape[0]} pixels")

        return Raster(pixels=mosaic, extent=extent, zoom=z, provider=provider)
