"""Shared helpers for transformation modules.

Parameter declaration shorthands, colour parsing and the Gaussian blur
used by several kernels.
"""

import re
from typing import Optional, Sequence, Tuple

import numpy as np
from scipy import ndimage

from imgrecipe.schemas.parameter import ParameterDefinition, SelectOption

_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{6})$")


# =============================================================================
# Parameter declaration shorthands
# =============================================================================

def range_param(name: str, label: str, default: float, min: float, max: float,
                step: Optional[float] = None) -> ParameterDefinition:
    return ParameterDefinition(name=name, label=label, type="range", default_value=default,
                               min=min, max=max, step=step)


def number_param(name: str, label: str, default: float, min: Optional[float] = None,
                 max: Optional[float] = None, step: Optional[float] = None) -> ParameterDefinition:
    return ParameterDefinition(name=name, label=label, type="number", default_value=default,
                               min=min, max=max, step=step)


def bool_param(name: str, label: str, default: bool) -> ParameterDefinition:
    return ParameterDefinition(name=name, label=label, type="boolean", default_value=default)


def text_param(name: str, label: str, default: str) -> ParameterDefinition:
    return ParameterDefinition(name=name, label=label, type="text", default_value=default)


def color_param(name: str, label: str, default: str) -> ParameterDefinition:
    return ParameterDefinition(name=name, label=label, type="color", default_value=default)


def select_param(name: str, label: str, default: str,
                 options: Sequence[Tuple[str, str]]) -> ParameterDefinition:
    """``options`` is a sequence of ``(label, value)`` pairs."""
    return ParameterDefinition(
        name=name, label=label, type="select", default_value=default,
        options=[SelectOption(label=lbl, value=val) for lbl, val in options],
    )


# =============================================================================
# Pixel helpers
# =============================================================================

def parse_hex_color(value: str) -> np.ndarray:
    """``#rrggbb`` → float64 ``[r, g, b]``. Anything unparsable is black."""
    match = _HEX_RE.match(value.strip()) if isinstance(value, str) else None
    if match is None:
        return np.zeros(3, dtype=np.float64)
    digits = match.group(1)
    return np.array([int(digits[i:i + 2], 16) for i in (0, 2, 4)], dtype=np.float64)


def gaussian_blur(pixels: np.ndarray, sigma: float) -> np.ndarray:
    """Blur every channel of an ``(H, W, C)`` array with std dev ``sigma`` px.

    Edges replicate the nearest pixel. Returns float64.
    """
    data = pixels.astype(np.float64)
    if sigma <= 0:
        return data
    return ndimage.gaussian_filter(data, sigma=(sigma, sigma, 0), mode="nearest")


def to_uint8(values: np.ndarray) -> np.ndarray:
    """Round half to even and clamp into 0-255."""
    return np.clip(np.rint(values), 0, 255).astype(np.uint8)
