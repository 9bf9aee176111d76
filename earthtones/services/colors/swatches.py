"""
Swatch Rendering Module

Renders palettes, and palette bundles with their source imagery, as PNG
images. Presentation only: the extraction pipeline never calls this.
"""

import base64
from typing import List, Optional, Sequence, Tuple, Union

import cv2
import numpy as np
from loguru import logger

from earthtones.schemas import Palette, PaletteBundle
from earthtones.services.colors.conversion import hex_to_rgb


def hex_to_bgr(hex_color: str) -> Tuple[int, int, int]:
    """Convert hex color to BGR tuple for OpenCV."""
    r, g, b = hex_to_rgb(hex_color)
    return (b, g, r)


def render_swatch_strip(hex_colors: Sequence[str],
                        chip_size: int = 40,
                        width: Optional[int] = None) -> np.ndarray:
    """
    Render a horizontal strip of equally wide color chips.

    Args:
        hex_colors: List of hex color strings
        chip_size: Height of the strip, and chip width when width is not given
        width: Total strip width in pixels

    Returns:
        BGR uint8 image (chip_size, width, 3)
    """
    if not hex_colors:
        raise ValueError("Empty hex_colors list provided")

    k = len(hex_colors)
    img_width = width or chip_size * k
    img = np.zeros((chip_size, img_width, 3), dtype=np.uint8)

    edges = np.linspace(0, img_width, k + 1).round().astype(int)
    for i, hex_color in enumerate(hex_colors):
        img[:, edges[i]:edges[i + 1], :] = hex_to_bgr(hex_color)

    logger.debug(f"Rendered swatch strip with {k} colors at {img_width}×{chip_size}")
    return img


def _colors_of(result: Union[Palette, PaletteBundle]) -> List[str]:
    if result.kind == "bundle":
        return result.palette.colors
    return result.colors


def render_result(result: Union[Palette, PaletteBundle],
                  width: int = 512,
                  strip_height: int = 64) -> bytes:
    """
    Render a palette (strip only) or a bundle (map above strip) as PNG bytes.

    Raises:
        RuntimeError: If PNG encoding fails
    """
    strip = render_swatch_strip(_colors_of(result), chip_size=strip_height, width=width)
    panels = []

    if result.kind == "bundle":
        map_rgb = np.ascontiguousarray(result.raster.to_uint8())
        height, map_width = map_rgb.shape[:2]
        if height and map_width:
            map_height = max(1, int(round(height * width / map_width)))
            map_bgr = cv2.cvtColor(map_rgb, cv2.COLOR_RGB2BGR)
            panels.append(cv2.resize(map_bgr, (width, map_height), interpolation=cv2.INTER_AREA))

    panels.append(strip)
    image = np.vstack(panels)

    success, buffer = cv2.imencode('.png', image)
    if not success:
        raise RuntimeError("Failed to encode image as PNG")
    return buffer.tobytes()


def render_result_b64(result: Union[Palette, PaletteBundle], **kwargs) -> str:
    """Render a result as a base64-encoded PNG string."""
    return base64.b64encode(render_result(result, **kwargs)).decode('ascii')
