"""Core pixel kernels: sharpen, vignette, pixelate, duotone, posterize, Sobel edges.

Each kernel mutates the buffer it is given and is deterministic. The
array-level functions (``unsharp_mask``, ``sobel_magnitude``, ...) take
and return plain numpy arrays so they can be reused outside a recipe.
"""

import logging
import math

import numpy as np
from scipy import ndimage

from imgrecipe.core.context import RunContext
from imgrecipe.core.raster import RasterBuffer
from imgrecipe.core.registry import TransformationDefinition
from imgrecipe.transforms.common import (
    bool_param,
    color_param,
    parse_hex_color,
    range_param,
    to_uint8,
)

__all__ = [
    'unsharp_mask',
    'vignette_mask',
    'nearest_indices',
    'duotone_map',
    'posterize_levels',
    'sobel_magnitude',
    'SOBEL_MAX_MAGNITUDE',
    'ADVANCED_FILTERS',
]

logger = logging.getLogger(__name__)

SOBEL_X = np.array([[-1, 0, 1],
                    [-2, 0, 2],
                    [-1, 0, 1]], dtype=np.float64)
SOBEL_Y = np.array([[-1, -2, -1],
                    [0, 0, 0],
                    [1, 2, 1]], dtype=np.float64)

# Largest |G| on 8-bit luminance: both gradients at 4 * 255
SOBEL_MAX_MAGNITUDE = math.hypot(4 * 255, 4 * 255)

VIGNETTE_OUTER_STOP = 0.8


# =============================================================================
# Array-level kernels
# =============================================================================

def unsharp_mask(rgb: np.ndarray, amount: float, radius: float, threshold: float) -> np.ndarray:
    """Unsharp mask on an ``(H, W, 3)`` array.

    Parameters
    ----------
    rgb : ndarray
        Colour channels, 0-255.
    amount : float
        Multiplier applied to ``original - blurred`` (1.0 == 100%).
    radius : float
        Gaussian standard deviation in pixels. 0 disables sharpening.
    threshold : float
        Minimum ``|original - blurred|`` for a channel value to change.

    Returns
    -------
    ndarray
        uint8 result, same shape.
    """
    original = rgb.astype(np.float64)
    # The blurred copy is an 8-bit image, as a canvas blur would produce
    blurred = np.rint(ndimage.gaussian_filter(original, sigma=(radius, radius, 0), mode="nearest")) \
        if radius > 0 else original
    difference = original - blurred
    sharpened = original + difference * amount
    out = np.where(np.abs(difference) >= threshold, sharpened, original)
    return to_uint8(out)


def vignette_mask(width: int, height: int, amount: float, radius: float) -> np.ndarray:
    """Darkening alpha per pixel for a centred radial vignette.

    Alpha ramps linearly from 0 at ``max(w, h) * radius * 0.5`` to
    ``amount`` at ``max(w, h) * 0.8``, measured at pixel centres.
    ``amount`` and ``radius`` are fractions (0-1).
    """
    longest = max(width, height)
    inner = longest * radius * 0.5
    outer = longest * VIGNETTE_OUTER_STOP
    ys = np.arange(height, dtype=np.float64) + 0.5 - height / 2.0
    xs = np.arange(width, dtype=np.float64) + 0.5 - width / 2.0
    distance = np.hypot(xs[np.newaxis, :], ys[:, np.newaxis])
    ramp = np.clip((distance - inner) / (outer - inner), 0.0, 1.0)
    return amount * ramp


def nearest_indices(source_length: int, target_length: int) -> np.ndarray:
    """Source index sampled by each target index under nearest-neighbour scaling."""
    positions = (np.arange(target_length, dtype=np.float64) + 0.5) * source_length / target_length
    return np.minimum(positions.astype(np.intp), source_length - 1)


def duotone_map(luminance: np.ndarray, dark: np.ndarray, light: np.ndarray) -> np.ndarray:
    """Interpolate between two colours by normalized luminance. Returns uint8 RGB."""
    t = (luminance / 255.0)[..., np.newaxis]
    return to_uint8(dark + (light - dark) * t)


def posterize_levels(rgb: np.ndarray, levels: int) -> np.ndarray:
    """Quantize each channel to ``levels`` evenly spaced values."""
    step = 255.0 / (levels - 1)
    # Round half up, then store like an 8-bit canvas (half to even)
    quantized = np.floor(rgb.astype(np.float64) / step + 0.5) * step
    return to_uint8(quantized)


def sobel_magnitude(luminance: np.ndarray) -> np.ndarray:
    """Gradient magnitude with zero padding outside the image."""
    gx = ndimage.correlate(luminance, SOBEL_X, mode="constant", cval=0.0)
    gy = ndimage.correlate(luminance, SOBEL_Y, mode="constant", cval=0.0)
    return np.hypot(gx, gy)


# =============================================================================
# Buffer kernels
# =============================================================================

def sharpen(buffer: RasterBuffer, params, context: RunContext) -> None:
    pixels = buffer.pixels
    pixels[..., :3] = unsharp_mask(
        pixels[..., :3],
        amount=params.amount / 100.0,
        radius=params.radius,
        threshold=params.threshold,
    )


def vignette(buffer: RasterBuffer, params, context: RunContext) -> None:
    alpha = vignette_mask(buffer.width, buffer.height,
                          amount=params.amount / 100.0, radius=params.radius / 100.0)
    pixels = buffer.pixels
    pixels[..., :3] = to_uint8(pixels[..., :3] * (1.0 - alpha)[..., np.newaxis])


def pixelate(buffer: RasterBuffer, params, context: RunContext) -> None:
    size = int(params.size)
    height, width = buffer.height, buffer.width
    small_h, small_w = math.ceil(height / size), math.ceil(width / size)

    rows_down, cols_down = nearest_indices(height, small_h), nearest_indices(width, small_w)
    small = buffer.pixels[rows_down][:, cols_down]

    rows_up, cols_up = nearest_indices(small_h, height), nearest_indices(small_w, width)
    buffer.replace(small[rows_up][:, cols_up])


def duotone(buffer: RasterBuffer, params, context: RunContext) -> None:
    dark = parse_hex_color(params.color1)
    light = parse_hex_color(params.color2)
    buffer.pixels[..., :3] = duotone_map(buffer.luminance(), dark, light)


def posterize(buffer: RasterBuffer, params, context: RunContext) -> None:
    pixels = buffer.pixels
    pixels[..., :3] = posterize_levels(pixels[..., :3], int(params.levels))


def edge_detection(buffer: RasterBuffer, params, context: RunContext) -> None:
    edges = sobel_magnitude(buffer.luminance()) > params.threshold
    pixels = buffer.pixels

    if params.composite:
        edge_value = 0 if params.invert else 255
        pixels[edges] = (edge_value, edge_value, edge_value, 255)
        return

    value = np.where(edges, 255, 0).astype(np.uint8)
    if params.invert:
        value = 255 - value
    pixels[..., 0] = value
    pixels[..., 1] = value
    pixels[..., 2] = value
    pixels[..., 3] = 255


# =============================================================================
# Definitions
# =============================================================================

ADVANCED_FILTERS = (
    TransformationDefinition(
        id="filter-sharpen",
        name="Sharpen",
        description="Unsharp mask: boost detail relative to a blurred copy.",
        params=(
            range_param("amount", "Amount (%)", 100, 0, 500),
            range_param("radius", "Radius (px)", 1, 0, 20, step=0.1),
            range_param("threshold", "Threshold", 0, 0, 255),
        ),
        apply=sharpen,
    ),
    TransformationDefinition(
        id="filter-vignette",
        name="Vignette",
        description="Darken the corners with a radial gradient.",
        params=(
            range_param("amount", "Amount (%)", 50, 0, 100),
            range_param("radius", "Radius (%)", 50, 0, 100),
        ),
        apply=vignette,
    ),
    TransformationDefinition(
        id="filter-pixelate",
        name="Pixelate",
        description="Blocky mosaic of size x size cells.",
        params=(range_param("size", "Block Size", 10, 2, 100, step=1),),
        apply=pixelate,
    ),
    TransformationDefinition(
        id="filter-duotone",
        name="Duotone",
        description="Map luminance onto a two-colour gradient.",
        params=(
            color_param("color1", "Dark Color", "#0000ff"),
            color_param("color2", "Light Color", "#ff0000"),
        ),
        apply=duotone,
    ),
    TransformationDefinition(
        id="filter-posterize",
        name="Posterize",
        description="Reduce each channel to a few levels.",
        params=(range_param("levels", "Levels", 8, 2, 255, step=1),),
        apply=posterize,
    ),
    TransformationDefinition(
        id="filter-edge-detection",
        name="Edge Detection",
        description="Sobel edges as a map or drawn over the image.",
        params=(
            range_param("threshold", "Threshold", 50, 0, math.ceil(SOBEL_MAX_MAGNITUDE)),
            bool_param("composite", "Overlay on Image", False),
            bool_param("invert", "Invert", True),
        ),
        apply=edge_detection,
    ),
)
