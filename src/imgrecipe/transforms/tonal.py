"""Simple tonal kernels: grayscale, sepia, brightness, blur, noise, levels, opacity."""

import logging

import numpy as np
from skimage import exposure

from imgrecipe.core.context import RunContext
from imgrecipe.core.raster import RasterBuffer
from imgrecipe.core.registry import TransformationDefinition
from imgrecipe.transforms.common import gaussian_blur, number_param, range_param, to_uint8

__all__ = ['TONAL_FILTERS', 'SEPIA_MATRIX']

logger = logging.getLogger(__name__)

SEPIA_MATRIX = np.array([
    [0.393, 0.769, 0.189],
    [0.349, 0.686, 0.168],
    [0.272, 0.534, 0.131],
])

AUTO_LEVELS_PERCENTILES = (0.5, 99.5)


def grayscale(buffer: RasterBuffer, params, context: RunContext) -> None:
    luma = to_uint8(buffer.luminance())
    pixels = buffer.pixels
    for channel in range(3):
        pixels[..., channel] = luma


def sepia(buffer: RasterBuffer, params, context: RunContext) -> None:
    strength = params.intensity / 100.0
    rgb = buffer.rgb.astype(np.float64)
    toned = rgb @ SEPIA_MATRIX.T
    buffer.pixels[..., :3] = to_uint8(rgb + (toned - rgb) * strength)


def brightness(buffer: RasterBuffer, params, context: RunContext) -> None:
    factor = 1.0 + params.amount / 100.0
    buffer.pixels[..., :3] = to_uint8(buffer.rgb.astype(np.float64) * factor)


def blur(buffer: RasterBuffer, params, context: RunContext) -> None:
    if params.radius <= 0:
        return
    buffer.replace(to_uint8(gaussian_blur(buffer.pixels, params.radius)))


def noise(buffer: RasterBuffer, params, context: RunContext) -> None:
    """Monochrome uniform noise.

    Stochastic unless ``seed`` is non-zero.
    """
    seed = int(params.seed)
    rng = np.random.default_rng(seed if seed > 0 else None)
    spread = params.amount * 2.55
    offsets = (rng.random((buffer.height, buffer.width, 1)) - 0.5) * spread
    buffer.pixels[..., :3] = to_uint8(buffer.rgb.astype(np.float64) + offsets)


def auto_levels(buffer: RasterBuffer, params, context: RunContext) -> None:
    """Stretch each colour channel to the full 0-255 range."""
    pixels = buffer.pixels
    low_pct, high_pct = AUTO_LEVELS_PERCENTILES
    for channel in range(3):
        values = pixels[..., channel]
        low, high = np.percentile(values, (low_pct, high_pct))
        if high <= low:
            continue
        stretched = exposure.rescale_intensity(
            values.astype(np.float64), in_range=(low, high), out_range=(0.0, 255.0)
        )
        pixels[..., channel] = to_uint8(stretched)


def opacity(buffer: RasterBuffer, params, context: RunContext) -> None:
    alpha = buffer.alpha.astype(np.float64) * (params.opacity / 100.0)
    buffer.pixels[..., 3] = to_uint8(alpha)


TONAL_FILTERS = (
    TransformationDefinition(
        id="filter-grayscale",
        name="Grayscale",
        description="Replace colour with luminance.",
        apply=grayscale,
    ),
    TransformationDefinition(
        id="filter-sepia",
        name="Sepia",
        description="Warm brown toning.",
        params=(range_param("intensity", "Intensity (%)", 100, 0, 100),),
        apply=sepia,
    ),
    TransformationDefinition(
        id="filter-brightness",
        name="Brightness",
        description="Scale brightness up or down.",
        params=(range_param("amount", "Amount", 0, -100, 100),),
        apply=brightness,
    ),
    TransformationDefinition(
        id="filter-blur",
        name="Blur",
        description="Gaussian blur.",
        params=(range_param("radius", "Radius (px)", 2, 0, 50, step=0.5),),
        apply=blur,
    ),
    TransformationDefinition(
        id="filter-noise",
        name="Noise",
        description="Add film-grain style noise. Random unless a seed is set.",
        params=(
            range_param("amount", "Amount", 20, 0, 100),
            number_param("seed", "Seed (0 = random)", 0, min=0, step=1),
        ),
        apply=noise,
        stochastic=True,
    ),
    TransformationDefinition(
        id="color-auto-levels",
        name="Auto Levels",
        description="Per-channel contrast stretch.",
        apply=auto_levels,
    ),
    TransformationDefinition(
        id="color-opacity",
        name="Opacity",
        description="Scale the alpha channel.",
        params=(range_param("opacity", "Opacity (%)", 100, 0, 100),),
        apply=opacity,
    ),
)
