"""
Pixel sampling for palette extraction.

Turns a retrieved raster into a bounded set of valid RGB samples in [0, 1].
Subsampling is a deterministic stride over scan order, not a statistical
design: a very large stride can miss small but visually important features
such as a narrow river or a single rooftop.
"""

from typing import Optional

import numpy as np
from loguru import logger

from earthtones.errors import InsufficientData, InvalidParameter
from earthtones.services.colors.clustering import ClusterMethod


def _as_pixel_rows(grid) -> np.ndarray:
    """Flatten an (H, W, C) or (N, C) grid to float rows, masked entries as NaN."""
    if np.ma.isMaskedArray(grid):
        grid = np.ma.filled(grid.astype(np.float64), np.nan)
    arr = np.asarray(grid, dtype=np.float64)

    if arr.ndim == 3:
        arr = arr.reshape(-1, arr.shape[-1])
    elif arr.ndim != 2:
        raise InsufficientData(f"Expected a pixel grid of shape (H, W, C) or (N, C), got {arr.shape}")

    if arr.shape[1] < 3:
        raise InsufficientData(
            f"Raster does not have RGB bands: found {arr.shape[1]} band(s)"
        )
    return arr[:, :3]


def sample_pixels(grid, every_nth: int = 1, scale: float = 255.0) -> np.ndarray:
    """
    Filter and subsample a pixel grid.

    Args:
        grid: Pixel array (H, W, C) or (N, C), C >= 3; extra bands are ignored
        every_nth: Keep every n-th valid pixel in scan order (1 keeps all)
        scale: Value of a full-intensity channel (255 for 8-bit, 1 for normalized)

    Returns:
        RGB samples (M, 3) float64 in [0, 1], M > 0

    Raises:
        InvalidParameter: If every_nth is not a positive integer
        InsufficientData: If the grid has no RGB bands or no valid pixels
    """
    if isinstance(every_nth, bool) or not isinstance(every_nth, (int, np.integer)) or every_nth < 1:
        raise InvalidParameter(f"Sample rate must be a positive integer. Provided: {every_nth!r}")

    rows = _as_pixel_rows(grid)
    initial_count = rows.shape[0]

    valid = np.all(np.isfinite(rows), axis=1)
    # Out-of-range rows are treated like no-data
    with np.errstate(invalid="ignore"):
        valid &= np.all((rows >= 0.0) & (rows <= scale), axis=1)
    rows = rows[valid]
    logger.debug(f"Validity filter: kept {rows.shape[0]}/{initial_count} pixels")

    if every_nth > 1:
        rows = rows[::every_nth]
        logger.debug(f"Subsampled every {every_nth}th pixel -> {rows.shape[0]} pixels")

    if rows.shape[0] == 0:
        raise InsufficientData(
            f"No usable pixels after filtering {initial_count} raster cells. "
            "Try a different zoom or location."
        )

    logger.info(f"Sampling: {initial_count} → {rows.shape[0]} pixels")
    return rows / float(scale)


def advise_sampling(method, every_nth: int, threshold: Optional[int]) -> bool:
    """
    Emit a performance hint for the medoid method with a low sample rate.

    Never raises and never changes the pipeline; returns True when the hint
    was logged.
    """
    if threshold is None or method is not ClusterMethod.MEDOID:
        return False
    if every_nth < threshold:
        logger.warning(
            f"MEDOID clustering can be slow; consider a sample rate of at least {threshold} "
            f"(got {every_nth})"
        )
        return True
    return False
