"""Encode raster buffers to image bytes and decode them back.

Pillow does the format work. JPEG has no alpha channel, so RGBA pixels
are composited over opaque black before encoding.
"""

import io
import logging
from pathlib import PurePosixPath

from PIL import Image, UnidentifiedImageError

from imgrecipe.core.errors import EncodingError, ImageLoadError
from imgrecipe.core.raster import RasterBuffer
from imgrecipe.schemas.param import normalize_image_format

__all__ = [
    'FORMAT_EXTENSIONS',
    'encode_raster',
    'flatten_over_black',
    'decode_image',
    'with_extension',
]

logger = logging.getLogger(__name__)

FORMAT_EXTENSIONS = {
    "jpeg": "jpg",
    "png": "png",
    "webp": "webp",
    "avif": "avif",
    "tiff": "tiff",
}

_PIL_FORMATS = {
    "jpeg": "JPEG",
    "png": "PNG",
    "webp": "WEBP",
    "avif": "AVIF",
    "tiff": "TIFF",
}

# Formats whose encoder may be missing from a Pillow build
OPTIONAL_FORMATS = ("avif", "tiff")


def flatten_over_black(image: Image.Image) -> Image.Image:
    """Composite an image over opaque black, as drawing onto a black canvas would."""
    if image.mode == "RGB":
        return image
    background = Image.new("RGBA", image.size, (0, 0, 0, 255))
    return Image.alpha_composite(background, image.convert("RGBA")).convert("RGB")


def _encode_image(image: Image.Image, fmt: str, quality: int) -> bytes:
    pil_format = _PIL_FORMATS[fmt]
    if fmt == "jpeg":
        image = flatten_over_black(image)

    save_kwargs = {}
    if fmt in ("jpeg", "webp", "avif"):
        save_kwargs["quality"] = int(quality)
    elif fmt == "png":
        save_kwargs["optimize"] = False
    elif fmt == "tiff":
        save_kwargs["compression"] = "tiff_lzw"

    stream = io.BytesIO()
    image.save(stream, format=pil_format, **save_kwargs)
    return stream.getvalue()


def encode_raster(buffer: RasterBuffer, fmt: str, quality: int = 95,
                  fallback_to_jpeg: bool = False) -> tuple:
    """Encode the buffer.

    Parameters
    ----------
    buffer : RasterBuffer
        Pixels to encode (not modified).
    fmt : str
        ``jpeg``, ``png``, ``webp``, ``avif`` or ``tiff``. MIME types
        such as ``image/png`` are accepted.
    quality : int
        1-100, used by the lossy formats.
    fallback_to_jpeg : bool
        When True and an optional encoder (AVIF, TIFF) fails, encode as
        JPEG instead of raising.

    Returns
    -------
    tuple of (bytes, str)
        Encoded data and the format actually used.

    Raises
    ------
    EncodingError
        If encoding fails and no fallback applies.
    """
    fmt = normalize_image_format(fmt)
    if fmt not in _PIL_FORMATS:
        raise EncodingError(f"Unsupported output format: {fmt}")

    image = buffer.to_pil()
    try:
        return _encode_image(image, fmt, quality), fmt
    except (OSError, KeyError, ValueError) as e:
        if fallback_to_jpeg and fmt in OPTIONAL_FORMATS:
            logger.warning("%s export failed (%s), falling back to JPEG", fmt.upper(), e)
            try:
                return _encode_image(image, "jpeg", quality), "jpeg"
            except (OSError, ValueError) as jpeg_error:
                raise EncodingError(f"JPEG fallback encoding failed: {jpeg_error}") from jpeg_error
        raise EncodingError(f"Could not encode image as {fmt}: {e}") from e


def decode_image(data: bytes) -> RasterBuffer:
    """Decode encoded image bytes (first frame) into an RGBA buffer."""
    try:
        with Image.open(io.BytesIO(data)) as image:
            image.load()
            return RasterBuffer.from_pil(image)
    except (UnidentifiedImageError, OSError) as e:
        raise ImageLoadError(f"Could not decode image data: {e}") from e


def with_extension(filename: str, fmt: str, suffix: str = "") -> str:
    """``photo.png`` + jpeg + ``_web`` → ``photo_web.jpg``."""
    stem = PurePosixPath(filename).stem or "image"
    return f"{stem}{suffix}.{FORMAT_EXTENSIONS[normalize_image_format(fmt)]}"
