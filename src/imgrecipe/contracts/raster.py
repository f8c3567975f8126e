"""Raster contract.

After every kernel step the buffer must still be a non-empty RGBA
uint8 grid, whatever the kernel did to its dimensions.
"""

import numpy as np

from imgrecipe.contracts.base import require


def assert_raster(buffer, step_label: str = "") -> None:
    """Enforce the raster buffer contract.

    Parameters
    ----------
    buffer : RasterBuffer
        Buffer a kernel just handed back.
    step_label : str
        Step description used in the violation message.

    Raises
    ------
    ContractViolation
        If the pixel array is not ``(H, W, 4)`` uint8 with H, W > 0.
    """
    where = f" after {step_label}" if step_label else ""
    pixels = buffer.pixels
    require(
        isinstance(pixels, np.ndarray),
        f"Raster contract violated{where}: pixels are {type(pixels).__name__}, expected ndarray"
    )
    require(
        pixels.ndim == 3 and pixels.shape[2] == 4,
        f"Raster contract violated{where}: shape {pixels.shape}, expected (H, W, 4)"
    )
    require(
        pixels.dtype == np.uint8,
        f"Raster contract violated{where}: dtype {pixels.dtype}, expected uint8"
    )
    require(
        pixels.shape[0] > 0 and pixels.shape[1] > 0,
        f"Raster contract violated{where}: empty raster {pixels.shape[1]}x{pixels.shape[0]}"
    )
