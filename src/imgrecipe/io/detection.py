"""Face detection backed by OpenCV's bundled Haar cascade."""

import logging
import threading
from pathlib import Path
from typing import List, Optional, TYPE_CHECKING

import cv2

from imgrecipe.core.context import Detection
from imgrecipe.core.raster import RasterBuffer

if TYPE_CHECKING:
    from imgrecipe.schemas import InternalConfig

__all__ = ['HaarCascadeFaceDetector', 'build_face_detector']

logger = logging.getLogger(__name__)

DEFAULT_CASCADE = "haarcascade_frontalface_default.xml"


class HaarCascadeFaceDetector:
    """Frontal-face detector satisfying the ``Detector`` protocol.

    Haar cascades give no per-face score, so every detection has
    confidence 1.0 and passes any kernel confidence threshold.

    Parameters
    ----------
    scale_factor : float
        Image pyramid step, > 1.
    min_neighbors : int
        Overlapping hits needed to keep a detection.
    min_size : int
        Smallest face side in pixels.
    cascade_path : str or Path, optional
        Cascade XML; defaults to OpenCV's frontal-face cascade.
    """

    def __init__(self, scale_factor: float = 1.1, min_neighbors: int = 5, min_size: int = 24,
                 cascade_path: Optional[str | Path] = None):
        if cascade_path is None:
            cascade_path = Path(cv2.data.haarcascades) / DEFAULT_CASCADE
        self.cascade_path = Path(cascade_path)
        self.scale_factor = scale_factor
        self.min_neighbors = min_neighbors
        self.min_size = min_size

        self._classifier = cv2.CascadeClassifier(str(self.cascade_path))
        if self._classifier.empty():
            raise RuntimeError(f"Could not load Haar cascade: {self.cascade_path}")
        # CascadeClassifier is not safe to share between threads
        self._lock = threading.Lock()

    def detect(self, image: RasterBuffer) -> List[Detection]:
        gray = cv2.cvtColor(image.pixels, cv2.COLOR_RGBA2GRAY)
        gray = cv2.equalizeHist(gray)
        with self._lock:
            boxes = self._classifier.detectMultiScale(
                gray,
                scaleFactor=self.scale_factor,
                minNeighbors=self.min_neighbors,
                minSize=(self.min_size, self.min_size),
            )
        detections = [Detection(box=tuple(int(v) for v in box)) for box in boxes]
        logger.debug("Haar cascade found %d face(s)", len(detections))
        return detections


def build_face_detector(config: "InternalConfig") -> Optional[HaarCascadeFaceDetector]:
    """Face detector selected by ``config.detection``, or None."""
    detection = config.detection
    if detection.face_detector == "none":
        return None
    return HaarCascadeFaceDetector(
        scale_factor=detection.scale_factor,
        min_neighbors=detection.min_neighbors,
        min_size=detection.min_size,
    )
