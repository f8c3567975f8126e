"""EXIF metadata extraction.

Produces the per-image ``metadata`` mapping that ``metadata.<key>``
conditions and the batch log read.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from PIL import ExifTags, Image

from imgrecipe.core.context import Detector
from imgrecipe.core.raster import RasterBuffer

__all__ = ['ExifMetadataExtractor', 'dms_to_degrees']

logger = logging.getLogger(__name__)


def dms_to_degrees(dms, ref: Optional[str] = None) -> float:
    """Convert an EXIF ``(degrees, minutes, seconds)`` triple to decimal degrees.

    ``ref`` 'S' or 'W' makes the result negative.

    Examples
    --------
    >>> dms_to_degrees((52, 30, 0), "N")
    52.5
    """
    degrees, minutes, seconds = (float(v) for v in dms)
    value = degrees + minutes / 60.0 + seconds / 3600.0
    if ref and str(ref).strip().upper() in ("S", "W"):
        value = -value
    return value


class ExifMetadataExtractor:
    """Reads capture date, GPS position and dimensions from image files.

    Parameters
    ----------
    face_detector : Detector, optional
        When given, the number of detected faces is stored as
        ``face_count``.

    Notes
    -----
    Extraction never fails the image: unreadable EXIF or a detector
    error is logged and the affected keys are left out.
    """

    def __init__(self, face_detector: Optional[Detector] = None):
        self.face_detector = face_detector

    def extract(self, path: Optional[str | Path], image: Optional[RasterBuffer] = None) -> Dict[str, Any]:
        """Metadata for one image.

        Parameters
        ----------
        path : str or Path, optional
            Source file. None skips the EXIF part (in-memory inputs).
        image : RasterBuffer, optional
            Decoded image, used for dimensions and face counting.

        Returns
        -------
        dict
            Any of ``date``, ``gps`` (``{"lat", "lon"}``), ``face_count``,
            ``width``, ``height``, ``format``.
        """
        metadata: Dict[str, Any] = {}

        if path is not None:
            try:
                metadata.update(self._read_exif(Path(path)))
            except Exception as e:
                logger.warning("Failed to extract EXIF from %s: %s", Path(path).name, e)

        if image is not None:
            metadata["width"] = image.width
            metadata["height"] = image.height

            if self.face_detector is not None:
                try:
                    metadata["face_count"] = len(self.face_detector.detect(image))
                except Exception as e:
                    logger.warning("Face counting failed: %s", e)

        return metadata

    def _read_exif(self, path: Path) -> Dict[str, Any]:
        found: Dict[str, Any] = {}

        with Image.open(path) as img:
            found["format"] = img.format
            found["width"], found["height"] = img.size
            exif = img.getexif()

        if not exif:
            return found

        exif_ifd = exif.get_ifd(ExifTags.IFD.Exif)
        date = exif_ifd.get(ExifTags.Base.DateTimeOriginal) or exif.get(ExifTags.Base.DateTime)
        if date:
            found["date"] = str(date).strip("\x00 ")

        gps_ifd = exif.get_ifd(ExifTags.IFD.GPSInfo)
        lat = gps_ifd.get(ExifTags.GPS.GPSLatitude)
        lon = gps_ifd.get(ExifTags.GPS.GPSLongitude)
        if lat and lon:
            found["gps"] = {
                "lat": dms_to_degrees(lat, gps_ifd.get(ExifTags.GPS.GPSLatitudeRef)),
                "lon": dms_to_degrees(lon, gps_ifd.get(ExifTags.GPS.GPSLongitudeRef)),
            }

        return found
