"""
Color Space Conversion

sRGB <-> CIE L*a*b* under a fixed D65 reference white. Clustering happens in
L*a*b* so that Euclidean distance tracks perceived color difference.

Neither direction clamps: cluster centers found in L*a*b* routinely fall
outside the sRGB gamut, and callers clamp explicitly with `clamp_unit`
before formatting.
"""

from typing import Tuple

import numpy as np

# D65 reference white (2 degree observer), normalized to Y = 1
D65_WHITE = np.array([0.95047, 1.0, 1.08883])

# Linear sRGB -> XYZ (IEC 61966-2-1)
XYZ_FROM_RGB = np.array([
    [0.412453, 0.357580, 0.180423],
    [0.212671, 0.715160, 0.072169],
    [0.019334, 0.119193, 0.950227],
])
RGB_FROM_XYZ = np.linalg.inv(XYZ_FROM_RGB)

# Exact CIE constants; f(t) is continuous at epsilon
CIE_EPSILON = 216.0 / 24389.0
CIE_KAPPA = 24389.0 / 27.0
_DELTA = 6.0 / 29.0

# sRGB companding knee, expressed on both sides of the curve
SRGB_KNEE = 0.04045
LINEAR_KNEE = SRGB_KNEE / 12.92


def _as_triples(values) -> np.ndarray:
    arr = np.asarray(values, dtype=np.float64)
    if arr.shape[-1] != 3:
        raise ValueError(f"Expected trailing dimension of 3 channels, got shape {arr.shape}")
    return arr


def srgb_to_linear(rgb: np.ndarray) -> np.ndarray:
    """Undo sRGB gamma companding."""
    rgb = np.asarray(rgb, dtype=np.float64)
    return np.where(rgb > SRGB_KNEE, np.power((np.maximum(rgb, SRGB_KNEE) + 0.055) / 1.055, 2.4), rgb / 12.92)


def linear_to_srgb(linear: np.ndarray) -> np.ndarray:
    """Apply sRGB gamma companding; negative input stays on the linear segment."""
    linear = np.asarray(linear, dtype=np.float64)
    safe = np.maximum(linear, LINEAR_KNEE)
    return np.where(linear > LINEAR_KNEE, 1.055 * np.power(safe, 1.0 / 2.4) - 0.055, 12.92 * linear)


def _f(t: np.ndarray) -> np.ndarray:
    return np.where(t > CIE_EPSILON, np.cbrt(t), (CIE_KAPPA * t + 16.0) / 116.0)


def _f_inv(f: np.ndarray) -> np.ndarray:
    return np.where(f > _DELTA, f ** 3, (116.0 * f - 16.0) / CIE_KAPPA)


def to_perceptual(rgb) -> np.ndarray:
    """
    Convert sRGB triples in [0, 1] to CIE L*a*b*.

    Args:
        rgb: Array-like of shape (..., 3)

    Returns:
        Array of the same shape holding (L, a, b)
    """
    rgb = _as_triples(rgb)
    xyz = srgb_to_linear(rgb) @ XYZ_FROM_RGB.T
    fx, fy, fz = np.moveaxis(_f(xyz / D65_WHITE), -1, 0)

    L = 116.0 * fy - 16.0
    a = 500.0 * (fx - fy)
    b = 200.0 * (fy - fz)
    return np.stack([L, a, b], axis=-1)


def to_display(lab) -> np.ndarray:
    """
    Convert CIE L*a*b* back to sRGB. The result is NOT clamped.

    Args:
        lab: Array-like of shape (..., 3)

    Returns:
        Array of the same shape holding (r, g, b), possibly outside [0, 1]
    """
    lab = _as_triples(lab)
    L, a, b = np.moveaxis(lab, -1, 0)

    fy = (L + 16.0) / 116.0
    fx = fy + a / 500.0
    fz = fy - b / 200.0
    xyz = _f_inv(np.stack([fx, fy, fz], axis=-1)) * D65_WHITE

    return linear_to_srgb(xyz @ RGB_FROM_XYZ.T)


def clamp_unit(rgb) -> np.ndarray:
    """Clamp every channel independently to [0, 1]."""
    return np.clip(np.asarray(rgb, dtype=np.float64), 0.0, 1.0)


def rgb_to_hex(rgb_unit) -> str:
    """Convert one clamped RGB triple in [0, 1] to an uppercase #RRGGBB string."""
    r, g, b = [int(x) for x in np.round(clamp_unit(rgb_unit) * 255.0)]
    return f"#{r:02X}{g:02X}{b:02X}"


def hex_to_rgb(hex_color: str) -> Tuple[int, int, int]:
    """Convert hex color string to RGB tuple."""
    hex_color = hex_color.lstrip('#')
    return tuple(int(hex_color[i:i+2], 16) for i in (0, 2, 4))
