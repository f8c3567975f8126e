"""Input/output: image loading, metadata, face detection, artifact routing and the batch log."""

from imgrecipe.io.loader import load_image, discover_inputs, IMAGE_EXTENSIONS
from imgrecipe.io.metadata import ExifMetadataExtractor
from imgrecipe.io.detection import HaarCascadeFaceDetector, build_face_detector
from imgrecipe.io.output_router import OutputRouter
from imgrecipe.io.batch_log import BatchLog

__all__ = [
    'load_image',
    'discover_inputs',
    'IMAGE_EXTENSIONS',
    'ExifMetadataExtractor',
    'HaarCascadeFaceDetector',
    'build_face_detector',
    'OutputRouter',
    'BatchLog',
]
