"""
Earthtones palette facade.

Validates caller parameters, retrieves imagery for a location and runs the
color pipeline:

    tile retrieval -> pixel sampling -> sRGB to L*a*b* -> clustering
    -> L*a*b* to sRGB -> clamp -> #RRGGBB

Each call is independent and holds no state between calls; batches of
locations can be fanned out across worker processes by the caller.
"""

import math
import time
from numbers import Real
from typing import List, Optional, Union

import numpy as np
import requests
from loguru import logger

from earthtones.config import Config, config as default_config
from earthtones.errors import InvalidParameter, RetrievalFailure
from earthtones.schemas import Palette, PaletteBundle
from earthtones.services.colors.clustering import (
    ClusterMethod,
    check_cluster_count,
    cluster_samples,
    representatives_to_hex,
)
from earthtones.services.colors.conversion import to_perceptual
from earthtones.services.colors.sampling import advise_sampling, sample_pixels
from earthtones.services.tiles import Provider, Raster, TileFetcher, bbox_around


def validate_zoom(zoom, min_zoom: float, max_zoom: float) -> float:
    """
    Validate that zoom is a single finite number within [min_zoom, max_zoom].

    Raises:
        InvalidParameter: For non-numeric, multi-valued or out-of-range zoom
    """
    value = zoom
    if isinstance(zoom, (list, tuple, np.ndarray)):
        arr = np.asarray(zoom)
        if arr.size != 1:
            value = None
        else:
            value = arr.reshape(-1)[0].item()

    if (value is None or isinstance(value, (bool, np.bool_)) or not isinstance(value, Real)
            or not math.isfinite(value) or value < min_zoom or value > max_zoom):
        raise InvalidParameter(
            f"Zoom level must be a single numeric value between {min_zoom} (world view) "
            f"and {max_zoom} (maximum detail). Provided: {zoom!r}"
        )
    return float(value)


def validate_sample_rate(sample_rate) -> int:
    """Validate the subsampling divisor."""
    if isinstance(sample_rate, bool) or not isinstance(sample_rate, (int, np.integer)) or sample_rate < 1:
        raise InvalidParameter(f"Sample rate must be a positive integer. Provided: {sample_rate!r}")
    return int(sample_rate)


def validate_coordinates(latitude, longitude) -> None:
    """Validate geographic coordinates."""
    for name, value, limit in (("latitude", latitude, 90.0), ("longitude", longitude, 180.0)):
        if (isinstance(value, bool) or not isinstance(value, Real)
                or not math.isfinite(value) or abs(value) > limit):
            raise InvalidParameter(f"{name.capitalize()} must be a number within ±{limit:g}. Provided: {value!r}")


def colors_from_raster(raster: Union[Raster, np.ndarray],
                       number_of_colors: int,
                       method=ClusterMethod.MEDOID,
                       sample_rate: int = 500,
                       random_state=None,
                       advisory_rate: Optional[int] = None,
                       sort_lightness: bool = False,
                       scale: Optional[float] = None,
                       max_medoid_samples: Optional[int] = None) -> List[str]:
    """
    Extract a palette from an already retrieved raster or pixel grid.

    Args:
        raster: Raster or pixel array (H, W, C) / (N, C)
        number_of_colors: Palette size k
        method: ClusterMethod or its name
        sample_rate: Keep every n-th valid pixel
        random_state: Seed for reproducible clustering
        advisory_rate: Medoid performance-hint threshold (None disables)
        sort_lightness: Order the palette by ascending L*
        scale: Full-intensity channel value of the grid; defaults to the
            raster's own scale, or 255 for plain arrays
        max_medoid_samples: Largest sample count MEDOID will cluster (None disables)

    Returns:
        List of number_of_colors #RRGGBB strings

    Raises:
        InvalidParameter: MEDOID asked to cluster more than max_medoid_samples
    """
    method = ClusterMethod.parse(method)
    if isinstance(raster, Raster):
        grid = raster.pixels
        scale = raster.scale if scale is None else scale
    else:
        grid = raster
        scale = 255.0 if scale is None else scale

    start_time = time.time()
    samples_rgb = sample_pixels(grid, every_nth=sample_rate, scale=scale)
    advise_sampling(method, sample_rate, advisory_rate)
    if (method is ClusterMethod.MEDOID and max_medoid_samples is not None
            and len(samples_rgb) > max_medoid_samples):
        raise InvalidParameter(
            f"MEDOID clustering of {len(samples_rgb)} samples exceeds the limit of "
            f"{max_medoid_samples}. Increase sample_rate or use CENTROID."
        )
    lab = to_perceptual(samples_rgb)
    sampling_duration = (time.time() - start_time) * 1000
    logger.debug(f"Sampling and conversion took {sampling_duration:.1f}ms")

    start_time = time.time()
    result = cluster_samples(lab, number_of_colors, method,
                             random_state=random_state, sort_lightness=sort_lightness)
    clustering_duration = (time.time() - start_time) * 1000

    palette = representatives_to_hex(result.representatives)
    logger.bind(method=method.value, k=result.k, samples=len(lab)).info(
        f"Palette extracted in {clustering_duration:.1f}ms: {palette}"
    )
    return palette


def get_earthtones(latitude: float = 50.759,
                   longitude: float = -125.673,
                   zoom: float = 11,
                   number_of_colors: int = 3,
                   method: Union[str, ClusterMethod] = ClusterMethod.MEDOID,
                   sample_rate: int = 500,
                   include_map: bool = True,
                   provider: Union[str, Provider] = "default",
                   random_state=None,
                   fetcher=None,
                   sort_lightness: bool = False,
                   config: Optional[Config] = None) -> Union[Palette, PaletteBundle]:
    """
    Download satellite imagery around a point and derive an earth-tone palette.

    All parameters are validated before any network request is made.

    Args:
        latitude: Latitude of the image centre
        longitude: Longitude of the image centre
        zoom: 0 (whole world) to 13 (high detail); higher zooms in closer
        number_of_colors: Number of dominant colors to extract
        method: "MEDOID" (partitioning around medoids) or "CENTROID" (k-means)
        sample_rate: Subsampling divisor; higher is faster but coarser
        include_map: Return a PaletteBundle with the source raster
        provider: Imagery provider name, or "default"
        random_state: Seed for reproducible clustering
        fetcher: Object with fetch(bbox, provider, zoom, crop) -> Raster
        sort_lightness: Order the palette by ascending L*
        config: Policy configuration (zoom bounds, advisory threshold, medoid cap)

    Returns:
        Palette, or PaletteBundle when include_map is true

    Raises:
        InvalidParameter: Bad zoom, method, provider, coordinates or sample rate,
            or a MEDOID request above config.MAX_MEDOID_SAMPLES samples
        InvalidClusterCount: number_of_colors < 1 or above the sample count
        RetrievalFailure: Imagery could not be retrieved, or the fetcher
            returned something other than a Raster
        InsufficientData: No usable pixels in the retrieved imagery
    """
    cfg = config or default_config

    zoom_value = validate_zoom(zoom, cfg.MIN_ZOOM, cfg.MAX_ZOOM)
    method = ClusterMethod.parse(method)
    provider = Provider.parse(provider)
    validate_coordinates(latitude, longitude)
    sample_rate = validate_sample_rate(sample_rate)
    check_cluster_count(number_of_colors)

    bbox = bbox_around(longitude, latitude, zoom_value)
    logger.info(
        f"Requesting {provider.value} imagery at ({latitude}, {longitude}), zoom={zoom_value}"
    )

    fetcher = fetcher or TileFetcher()
    try:
        raster = fetcher.fetch(bbox, provider=provider, zoom=zoom_value, crop=True)
    except requests.RequestException as e:
        raise RetrievalFailure(f"Imagery retrieval failed: {e}") from e
    if not isinstance(raster, Raster):
        raise RetrievalFailure(f"Imagery fetcher returned {type(raster).__name__}, expected Raster")

    colors = colors_from_raster(
        raster, number_of_colors, method,
        sample_rate=sample_rate,
        random_state=random_state,
        advisory_rate=cfg.MEDOID_ADVISORY_RATE,
        sort_lightness=sort_lightness,
        max_medoid_samples=cfg.MAX_MEDOID_SAMPLES,
    )
    palette = Palette(colors=colors)

    if include_map:
        return PaletteBundle(palette=palette, raster=raster)
    return palette
