"""Geometric kernels: resize, crop, flip, rotate, border.

These change the buffer's dimensions, so they hand a new array to
``RasterBuffer.replace`` rather than writing in place.
"""

import logging

import numpy as np
from PIL import Image

from imgrecipe.core.context import RunContext
from imgrecipe.core.raster import RasterBuffer
from imgrecipe.core.registry import TransformationDefinition
from imgrecipe.transforms.common import (
    bool_param,
    color_param,
    number_param,
    parse_hex_color,
    range_param,
    select_param,
)

__all__ = ['GEOMETRY_TRANSFORMS', 'crop_box', 'resize_pixels']

logger = logging.getLogger(__name__)


def resize_pixels(pixels: np.ndarray, width: int, height: int) -> np.ndarray:
    """Bilinear resize of an RGBA array to ``width`` x ``height``."""
    image = Image.fromarray(pixels)
    return np.array(image.resize((max(1, int(width)), max(1, int(height))), Image.Resampling.BILINEAR))


def crop_box(buffer: RasterBuffer, x: int, y: int, width: int, height: int) -> None:
    """Crop in place to the given box, clamped to the buffer bounds."""
    x = min(max(int(x), 0), buffer.width - 1)
    y = min(max(int(y), 0), buffer.height - 1)
    right = min(max(int(x + width), x + 1), buffer.width)
    bottom = min(max(int(y + height), y + 1), buffer.height)
    buffer.replace(buffer.pixels[y:bottom, x:right].copy())


def resize(buffer: RasterBuffer, params, context: RunContext) -> None:
    width, height = int(params.width), int(params.height)
    if params.maintain_aspect:
        scale = min(width / buffer.width, height / buffer.height)
        width = max(1, round(buffer.width * scale))
        height = max(1, round(buffer.height * scale))
    if (width, height) == buffer.size:
        return
    buffer.replace(resize_pixels(buffer.pixels, width, height))


def crop(buffer: RasterBuffer, params, context: RunContext) -> None:
    crop_box(buffer, params.x, params.y, params.width, params.height)


def flip(buffer: RasterBuffer, params, context: RunContext) -> None:
    if params.direction == "vertical":
        buffer.replace(buffer.pixels[::-1].copy())
    else:
        buffer.replace(buffer.pixels[:, ::-1].copy())


def rotate(buffer: RasterBuffer, params, context: RunContext) -> None:
    # np.rot90 turns counter-clockwise; angles are clockwise
    turns = int(params.angle) // 90
    buffer.replace(np.rot90(buffer.pixels, k=-turns).copy())


def border(buffer: RasterBuffer, params, context: RunContext) -> None:
    size = int(params.size)
    if size <= 0:
        return
    color = np.append(parse_hex_color(params.color), 255).astype(np.uint8)
    padded = np.empty((buffer.height + 2 * size, buffer.width + 2 * size, 4), dtype=np.uint8)
    padded[...] = color
    padded[size:size + buffer.height, size:size + buffer.width] = buffer.pixels
    buffer.replace(padded)


GEOMETRY_TRANSFORMS = (
    TransformationDefinition(
        id="geometry-resize",
        name="Resize",
        description="Scale to a target size, optionally keeping the aspect ratio.",
        params=(
            number_param("width", "Width (px)", 800, min=1, max=20000, step=1),
            number_param("height", "Height (px)", 600, min=1, max=20000, step=1),
            bool_param("maintain_aspect", "Maintain Aspect Ratio", True),
        ),
        apply=resize,
    ),
    TransformationDefinition(
        id="geometry-crop",
        name="Crop",
        description="Cut out a rectangle.",
        params=(
            number_param("x", "X (px)", 0, min=0, step=1),
            number_param("y", "Y (px)", 0, min=0, step=1),
            number_param("width", "Width (px)", 500, min=1, step=1),
            number_param("height", "Height (px)", 500, min=1, step=1),
        ),
        apply=crop,
    ),
    TransformationDefinition(
        id="geometry-flip",
        name="Flip",
        description="Mirror horizontally or vertically.",
        params=(
            select_param("direction", "Direction", "horizontal",
                         [("Horizontal", "horizontal"), ("Vertical", "vertical")]),
        ),
        apply=flip,
    ),
    TransformationDefinition(
        id="geometry-rotate",
        name="Rotate",
        description="Rotate clockwise by a quarter turn multiple.",
        params=(
            select_param("angle", "Angle", "90",
                         [("90°", "90"), ("180°", "180"), ("270°", "270")]),
        ),
        apply=rotate,
    ),
    TransformationDefinition(
        id="geometry-border",
        name="Border",
        description="Add a solid frame around the image.",
        params=(
            range_param("size", "Size (px)", 10, 0, 500, step=1),
            color_param("color", "Color", "#ffffff"),
        ),
        apply=border,
    ),
)
