"""Raster buffer: the RGBA pixel grid mutated through a recipe.

One execution pass owns exactly one buffer. Kernels mutate ``pixels``
in place or, when they change the dimensions, hand a new array to
``replace``.
"""

import numpy as np
from PIL import Image

__all__ = ['RasterBuffer', 'LUMA_WEIGHTS']

# ITU-R BT.601 luma weights
LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114])


class RasterBuffer:
    """Mutable ``(height, width, 4)`` uint8 RGBA pixel grid.

    Examples
    --------
    >>> buf = RasterBuffer.blank(4, 2, (255, 0, 0, 255))
    >>> buf.width, buf.height
    (4, 2)
    """

    __slots__ = ('_pixels',)

    def __init__(self, pixels: np.ndarray):
        self._pixels = self._as_rgba(pixels)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @staticmethod
    def _as_rgba(pixels: np.ndarray) -> np.ndarray:
        arr = np.asarray(pixels)
        if arr.dtype != np.uint8:
            arr = np.clip(np.rint(arr), 0, 255).astype(np.uint8)
        if arr.ndim == 2:
            arr = np.stack([arr, arr, arr], axis=-1)
        if arr.ndim != 3 or arr.shape[2] not in (3, 4):
            raise ValueError(f"Expected HxW, HxWx3 or HxWx4 pixels, got shape {arr.shape}")
        if arr.shape[2] == 3:
            alpha = np.full(arr.shape[:2] + (1,), 255, dtype=np.uint8)
            arr = np.concatenate([arr, alpha], axis=-1)
        if arr.shape[0] == 0 or arr.shape[1] == 0:
            raise ValueError("Raster dimensions must be non-zero")
        arr = np.ascontiguousarray(arr)
        if not arr.flags.writeable:
            arr = arr.copy()
        return arr

    @classmethod
    def blank(cls, width: int, height: int, color=(0, 0, 0, 0)) -> "RasterBuffer":
        pixels = np.empty((int(height), int(width), 4), dtype=np.uint8)
        pixels[...] = np.asarray(color, dtype=np.uint8)
        return cls(pixels)

    @classmethod
    def from_pil(cls, image: Image.Image) -> "RasterBuffer":
        return cls(np.array(image.convert("RGBA")))

    def to_pil(self) -> Image.Image:
        return Image.fromarray(self._pixels)

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    @property
    def pixels(self) -> np.ndarray:
        return self._pixels

    @property
    def width(self) -> int:
        return self._pixels.shape[1]

    @property
    def height(self) -> int:
        return self._pixels.shape[0]

    @property
    def size(self) -> tuple:
        """``(width, height)``, the Pillow ordering."""
        return self.width, self.height

    @property
    def rgb(self) -> np.ndarray:
        """View of the colour channels."""
        return self._pixels[..., :3]

    @property
    def alpha(self) -> np.ndarray:
        return self._pixels[..., 3]

    def luminance(self) -> np.ndarray:
        """Per-pixel ``0.299R + 0.587G + 0.114B`` as float64."""
        return self._pixels[..., :3].astype(np.float64) @ LUMA_WEIGHTS

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def replace(self, pixels: np.ndarray) -> None:
        """Swap in a new pixel array, possibly with new dimensions."""
        self._pixels = self._as_rgba(pixels)

    def load(self, other: "RasterBuffer") -> None:
        """Overwrite this buffer with a copy of ``other``."""
        self._pixels = other.pixels.copy()

    def copy(self) -> "RasterBuffer":
        return RasterBuffer(self._pixels.copy())

    def same_pixels(self, other: "RasterBuffer") -> bool:
        return self._pixels.shape == other.pixels.shape and np.array_equal(self._pixels, other.pixels)

    def __repr__(self) -> str:
        return f"RasterBuffer(width={self.width}, height={self.height})"
