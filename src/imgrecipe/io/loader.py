"""Image loading and batch input discovery."""

import logging
from pathlib import Path
from typing import Iterable, List

from PIL import Image, ImageOps, UnidentifiedImageError

from imgrecipe.core.errors import ImageLoadError
from imgrecipe.core.raster import RasterBuffer

__all__ = ['load_image', 'discover_inputs', 'IMAGE_EXTENSIONS']

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp", ".bmp", ".gif", ".tif", ".tiff", ".avif")


def load_image(path: str | Path) -> RasterBuffer:
    """Decode an image file into an RGBA raster.

    EXIF orientation is applied, so phone photos come out upright.

    Raises
    ------
    ImageLoadError
        If the file is missing or cannot be decoded.
    """
    path = Path(path)
    try:
        with Image.open(path) as img:
            img.load()
            upright = ImageOps.exif_transpose(img)
            buffer = RasterBuffer.from_pil(upright.convert("RGBA"))
    except FileNotFoundError as e:
        raise ImageLoadError(f"Image not found: {path}") from e
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise ImageLoadError(f"Could not decode {path.name}: {e}") from e

    logger.debug("Loaded %s (%dx%d)", path.name, buffer.width, buffer.height)
    return buffer


def discover_inputs(inputs: Iterable[str | Path]) -> List[Path]:
    """Expand files and directories into a list of image paths.

    Directories are scanned non-recursively for ``IMAGE_EXTENSIONS``
    and their files sorted by name. Explicit files are kept as given,
    in the given order.

    Raises
    ------
    FileNotFoundError
        If an input does not exist.
    """
    paths: List[Path] = []
    for item in inputs:
        item = Path(item)
        if item.is_dir():
            found = sorted(
                p for p in item.iterdir()
                if p.is_file() and p.suffix.lower() in IMAGE_EXTENSIONS
            )
            if not found:
                logger.warning("No images found in %s", item)
            paths.extend(found)
        elif item.is_file():
            paths.append(item)
        else:
            raise FileNotFoundError(f"Input not found: {item}")
    return paths
